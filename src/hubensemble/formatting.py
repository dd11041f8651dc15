"""
formatting.py
-------------
Convert a quantile-only ensemble into the hub submission format:

    forecast_date, target, target_end_date, location, type, quantile, value

with a "point" row (the median) added for every target.
"""

from __future__ import annotations
import logging

import numpy as np
import pandas as pd

from hubensemble.utils.dates import last_week_end

logger = logging.getLogger(__name__)

SUBMISSION_COLUMNS = [
    "forecast_date", "target", "target_end_date", "location", "type", "quantile", "value",
]


def _horizon_label(h) -> str:
    h = float(h)
    return str(int(h)) if h.is_integer() else str(h)


def add_point_forecasts(ensemble: pd.DataFrame) -> pd.DataFrame:
    """Append a type="point" copy of each 0.5 quantile row, with no quantile."""
    median = ensemble[(ensemble["type"] == "quantile") & np.isclose(ensemble["quantile"], 0.5)]
    point = (
        median.drop_duplicates(["location", "target", "target_end_date"])
        .assign(type="point", quantile=np.nan)
    )
    return pd.concat([ensemble, point], ignore_index=True)


def format_ensemble(
    ensemble: pd.DataFrame,
    forecast_date,
    temporal_resolution: str = "wk",
) -> pd.DataFrame:
    """
    Standardise an ensemble for submission.

    `target_end_date` and `type` are only added when missing; existing
    columns are kept as they are. Values are rounded to integers.

    Args:
        ensemble            : quantile ensemble with horizon, target_variable,
                              location, quantile, value
        forecast_date       : date the forecast is made
        temporal_resolution : unit of the horizon used in target labels

    Returns:
        DataFrame with exactly SUBMISSION_COLUMNS.
    """
    ensemble = ensemble.reset_index(drop=True).copy()
    forecast_date = pd.Timestamp(forecast_date).normalize()

    # Weekly targets end on Saturdays
    if "target_end_date" not in ensemble.columns:
        ensemble["target_end_date"] = last_week_end(forecast_date) + pd.to_timedelta(
            7 * ensemble["horizon"].astype(float), unit="D"
        )

    if "type" not in ensemble.columns:
        ensemble["type"] = "quantile"

    ensemble["forecast_date"] = forecast_date
    ensemble["target"] = (
        ensemble["horizon"].map(_horizon_label)
        + f" {temporal_resolution} ahead "
        + ensemble["target_variable"].astype(str)
    )
    ensemble = ensemble[SUBMISSION_COLUMNS].copy()
    ensemble["value"] = ensemble["value"].round()

    return add_point_forecasts(ensemble)
