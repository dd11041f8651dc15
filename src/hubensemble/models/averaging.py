"""
averaging.py
------------
Weighted mean / median and the equal-weight quantile ensemble.

Quantile averaging ("Vincentization"): each quantile level of the ensemble is
the average of the models' values at that level, per target, location and
horizon. Weights are per model, never per quantile.
"""

from __future__ import annotations
import logging
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from hubensemble.errors import ArgumentError

logger = logging.getLogger(__name__)

AVERAGES = ("mean", "median")
ENSEMBLE_GROUPS = ["quantile", "target_variable", "location", "horizon"]


def weighted_average(
    values: Sequence[float],
    weights: Optional[Sequence[float]] = None,
    average: str = "mean",
) -> float:
    """
    Weighted mean or weighted median.

    Pairs where either the value or the weight is missing are ignored.
    The median is the first value, in ascending order, at which the
    normalised cumulative weight reaches 0.5.

    Args:
        values  : numbers to average
        weights : non-negative weights, same length as values (default: equal)
        average : "mean" or "median"

    Returns:
        The average, or NaN for a median of empty input or of weights that
        sum to zero.

    Raises:
        ArgumentError on length mismatch, negative weights, an unknown
        average, or a zero weight sum (including empty input) for the mean.
    """
    if average not in AVERAGES:
        raise ArgumentError(f"average must be one of {AVERAGES}, got {average!r}")

    x = np.asarray(values, dtype=float)
    w = np.ones_like(x) if weights is None else np.asarray(weights, dtype=float)
    if x.shape != w.shape:
        raise ArgumentError(f"values and weights differ in length: {x.size} vs {w.size}")

    keep = ~(np.isnan(x) | np.isnan(w))
    x, w = x[keep], w[keep]
    if (w < 0).any():
        raise ArgumentError("weights must be non-negative")

    total = w.sum()
    if average == "mean":
        if x.size == 0:
            raise ArgumentError("no values to average")
        if total == 0:
            raise ArgumentError("weights sum to zero")
        return float(np.sum(x * w) / total)

    if total == 0:
        return float("nan")
    order = np.argsort(x, kind="stable")
    cumulative = np.cumsum(w[order]) / total
    # tolerance for float sums such as 0.1 + 0.2 + 0.2
    return float(x[order][np.argmax(cumulative >= 0.5 - 1e-12)])


def create_ensemble_average(forecasts: pd.DataFrame, method: str = "mean") -> pd.DataFrame:
    """
    Equal-weight ensemble: mean or median of `value` across models.

    Missing values are skipped. `n_models` counts distinct contributing models.

    Args:
        forecasts : quantile forecasts (type == "quantile" only)
        method    : "mean" or "median"
    """
    if method not in AVERAGES:
        raise ArgumentError(f"method must be one of {AVERAGES}, got {method!r}")
    if "type" in forecasts.columns and (forecasts["type"] != "quantile").any():
        raise ArgumentError("create_ensemble_average expects quantile forecasts only")

    ensemble = (
        forecasts.groupby(ENSEMBLE_GROUPS)
        .agg(value=("value", method), n_models=("model", "nunique"))
        .reset_index()
    )
    return ensemble


def equal_weights(forecasts: pd.DataFrame) -> pd.DataFrame:
    """Implied weight 1/n_models of each model per target and location."""
    counts = forecasts.groupby(["target_variable", "location"])["model"].transform("nunique")
    weights = (
        forecasts.assign(weight=1 / counts)[["model", "target_variable", "location", "weight"]]
        .drop_duplicates(["model", "target_variable", "location"])
        .sort_values(["target_variable", "location", "model"])
        .reset_index(drop=True)
    )
    return weights
