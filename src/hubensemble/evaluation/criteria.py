"""
criteria.py
-----------
Inclusion criteria for models contributing to the ensemble.

A model is included only if it passes every enabled criterion:
  - not manually excluded
  - not designated "other" in the hub metadata (optional)
  - mean relative skill at or below a cutoff (optional)
  - all required quantiles present for every target it forecasts (optional)

Group-level thresholds (minimum number of models per target) are applied
separately by `apply_min_models` and do not change the criteria table.
"""

from __future__ import annotations
import logging
import math
from typing import Iterable, Optional, Union

import numpy as np
import pandas as pd

from hubensemble.errors import ArgumentError
from hubensemble.evaluation.skill import relative_skill

logger = logging.getLogger(__name__)

CRITERIA_COLUMNS = [
    "model", "forecast_date", "all_quantiles_present", "not_excluded_manually",
    "not_designated_other", "rel_skill_within_cutoff", "included_in_ensemble",
]


def _designation_lookup(forecasts: pd.DataFrame, designations) -> pd.Series:
    if designations is None:
        if "designation" not in forecasts.columns:
            raise ArgumentError(
                "exclude_designated_other needs `designations` or a designation column"
            )
        designations = forecasts[["model", "designation"]].drop_duplicates("model")
    if isinstance(designations, pd.DataFrame):
        return designations.set_index("model")["designation"]
    return pd.Series(dict(designations), dtype=object)


def _models_with_all_quantiles(forecasts: pd.DataFrame, required: Iterable[float]) -> set:
    required = {round(float(q), 3) for q in required}
    keys = [c for c in ("model", "target_variable", "location", "horizon", "target_end_date")
            if c in forecasts.columns]
    present = forecasts.assign(quantile=forecasts["quantile"].round(3)).groupby(keys)["quantile"]
    complete = present.agg(lambda q: required.issubset(set(q))).groupby(level="model").all()
    return set(complete[complete].index)


def use_ensemble_criteria(
    forecasts: pd.DataFrame,
    exclude_models: Optional[Iterable[str]] = None,
    exclude_designated_other: bool = True,
    rel_wis_cutoff: float = math.inf,
    designations: Union[pd.DataFrame, dict, None] = None,
    evaluation: Optional[pd.DataFrame] = None,
    skill: str = "wis",
    history="All",
    required_quantiles: Optional[Iterable[float]] = None,
    return_criteria: bool = True,
):
    """
    Filter candidate forecasts to models passing all inclusion criteria.

    Args:
        forecasts                : candidate forecasts (point rows are dropped)
        exclude_models           : model names to exclude manually
        exclude_designated_other : drop models designated "other"
        rel_wis_cutoff           : drop models whose mean relative skill
                                   exceeds this; models without an evaluation
                                   are kept
        designations             : model → designation, as a dict or a table
                                   with model, designation columns (default:
                                   the `designation` column of forecasts)
        evaluation               : evaluation table, needed for a finite cutoff
        skill, history           : which relative score and history window
        required_quantiles       : quantile levels every target must have
        return_criteria          : also return the criteria table

    Returns:
        Filtered forecasts, or a dict {"forecasts", "criteria"} when
        return_criteria is set.
    """
    forecasts = forecasts[forecasts["type"] == "quantile"]
    models = pd.Index(sorted(forecasts["model"].unique()), name="model")
    criteria = pd.DataFrame(index=models)

    if len(forecasts):
        criteria["forecast_date"] = pd.to_datetime(forecasts.groupby("model")["forecast_date"].max())
    else:
        criteria["forecast_date"] = pd.Series(dtype="datetime64[ns]")

    if required_quantiles is not None:
        complete = _models_with_all_quantiles(forecasts, required_quantiles)
        criteria["all_quantiles_present"] = models.isin(list(complete))
    else:
        criteria["all_quantiles_present"] = True

    excluded = set(exclude_models or [])
    criteria["not_excluded_manually"] = ~models.isin(list(excluded))

    if exclude_designated_other:
        lookup = _designation_lookup(forecasts, designations)
        criteria["not_designated_other"] = models.map(lookup).to_numpy() != "other"
    else:
        criteria["not_designated_other"] = True

    if rel_wis_cutoff < math.inf:
        if evaluation is None:
            raise ArgumentError("a finite rel_wis_cutoff needs an evaluation table")
        skill_df = relative_skill(evaluation, skill=skill, history=history)
        model_skill = skill_df.groupby("model")["relative_skill"].mean()
        # unevaluated models are not penalised
        scores = models.map(model_skill).to_numpy(dtype=float)
        criteria["rel_skill_within_cutoff"] = np.isnan(scores) | (scores <= rel_wis_cutoff)
    else:
        criteria["rel_skill_within_cutoff"] = True

    criteria["included_in_ensemble"] = (
        criteria["all_quantiles_present"]
        & criteria["not_excluded_manually"]
        & criteria["not_designated_other"]
        & criteria["rel_skill_within_cutoff"]
    )
    criteria = criteria.reset_index()[CRITERIA_COLUMNS]

    included = criteria.loc[criteria["included_in_ensemble"], "model"]
    filtered = forecasts[forecasts["model"].isin(included)].reset_index(drop=True)
    logger.info(f"Ensemble criteria: {len(included)}/{len(models)} models included")

    if return_criteria:
        return {"forecasts": filtered, "criteria": criteria}
    return filtered


def apply_min_models(forecasts: pd.DataFrame, min_nmodels: int = 0) -> pd.DataFrame:
    """Drop target groups with fewer than `min_nmodels` distinct models."""
    if min_nmodels <= 0 or forecasts.empty:
        return forecasts
    keys = [c for c in ("location", "horizon", "temporal_resolution",
                        "target_variable", "target_end_date") if c in forecasts.columns]
    n_models = forecasts.groupby(keys, dropna=False)["model"].transform("nunique")
    kept = forecasts[n_models >= min_nmodels].reset_index(drop=True)
    if len(kept) < len(forecasts):
        logger.info(f"Dropped {len(forecasts) - len(kept):,} rows from targets "
                    f"with fewer than {min_nmodels} models")
    return kept
