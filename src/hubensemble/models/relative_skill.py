"""
relative_skill.py
-----------------
Ensemble weighted by inverse relative skill.

Algorithm:
  1. Load the evaluation summary for the evaluation date
  2. Keep rows for the requested history window (`weeks_included`)
  3. Keep models that have forecasts, at least `continuous_weeks` of
     evaluation history, and a relative skill value
  4. Average skill over horizons, unless weighting by horizon
  5. inverse skill = 1 / skill, or 0 when skill <= 0
  6. weight = inverse / sum(inverse) per target_variable, location (, horizon)
  7. Join weights onto forecasts; models without a weight drop out
  8. Weighted mean / median of each quantile per target, location, horizon

Weights are by model, target, location (and horizon), never by quantile.
"""

from __future__ import annotations
import logging
from typing import Optional

import numpy as np
import pandas as pd

from hubensemble.evaluation.skill import mean_relative_skill, relative_skill
from hubensemble.models.averaging import ENSEMBLE_GROUPS, weighted_average
from hubensemble.utils.data_loader import load_evaluation

logger = logging.getLogger(__name__)

DEFAULT_EVAL_DIR = "evaluation/weekly-summary"


def skill_weights(skill: pd.DataFrame, by_horizon: bool = False) -> pd.DataFrame:
    """
    Normalised inverse-skill weights.

    Args:
        skill      : relative skill rows (model, target_variable, location,
                     horizon, relative_skill)
        by_horizon : keep a separate weight per horizon

    Returns:
        DataFrame of model, target_variable, location[, horizon], weight.
        Groups in which no model has positive skill are dropped.
    """
    groups = ["target_variable", "location"] + (["horizon"] if by_horizon else [])

    if not by_horizon:
        skill = mean_relative_skill(skill, by=["model", "location", "target_variable"])

    skill = skill.copy()
    positive = skill["relative_skill"] > 0
    skill["inv_skill"] = np.where(positive, 1 / skill["relative_skill"].where(positive, 1), 0.0)

    sum_inv = skill.groupby(groups)["inv_skill"].transform("sum")
    # 0 / 0 leaves NaN for groups without a positive skill
    skill["weight"] = skill["inv_skill"] / sum_inv.replace(0, np.nan)

    weights = skill.dropna(subset=["weight"])[["model"] + groups + ["weight"]]
    return weights.sort_values(groups + ["model"]).reset_index(drop=True)


def create_ensemble_relative_skill(
    forecasts: pd.DataFrame,
    evaluation_date=None,
    continuous_weeks: int = 4,
    average: str = "mean",
    skill: str = "wis",
    history="All",
    by_horizon: bool = False,
    eval_dir=DEFAULT_EVAL_DIR,
    evaluation: Optional[pd.DataFrame] = None,
    return_criteria: bool = False,
    verbose: bool = False,
):
    """
    Build an ensemble weighted by inverse relative skill.

    Args:
        forecasts        : quantile forecasts (type == "quantile" only)
        evaluation_date  : date of the evaluation summary to use
                           (default: latest forecast_date in `forecasts`)
        continuous_weeks : minimum consecutive weeks of evaluation history
        average          : "mean" or "median"
        skill            : score; column `rel_{skill}` must be in the evaluation
        history          : "All" or a number of recent weeks (`weeks_included`)
        by_horizon       : weight separately for each horizon
        eval_dir         : directory holding `evaluation-{date}.csv` files
        evaluation       : evaluation table to use instead of reading eval_dir
        return_criteria  : also return the weights
        verbose          : log progress

    Returns:
        Ensemble DataFrame (quantile, target_variable, location, horizon,
        value, n_models), or a dict {"ensemble", "weights"} if return_criteria.

    Raises:
        NotFoundError if no evaluation exists for the date,
        SchemaError if it lacks `rel_{skill}`.
    """
    if evaluation_date is None:
        evaluation_date = pd.to_datetime(forecasts["forecast_date"]).max()
    evaluation_date = pd.Timestamp(evaluation_date)

    if evaluation is None:
        evaluation = load_evaluation(eval_dir, evaluation_date)
    skill_df = relative_skill(evaluation, skill=skill, history=history)

    if verbose:
        logger.info(f"Relative skill evaluation as of {evaluation_date.date()}")

    skill_df = skill_df[
        skill_df["model"].isin(forecasts["model"].unique())
        & (skill_df["continuous_weeks"] >= continuous_weeks)
        & skill_df["relative_skill"].notna()
    ]

    weights = skill_weights(skill_df, by_horizon=by_horizon)
    if verbose:
        logger.info(f"Included {weights['model'].nunique()} models")

    join = list(weights.columns.drop("weight"))
    forecast_skill = forecasts.merge(weights, on=join, how="inner")

    rows = []
    for key, group in forecast_skill.groupby(ENSEMBLE_GROUPS, sort=True):
        if group["weight"].sum() == 0:
            # only zero-weight models forecast this quantile
            continue
        rows.append({
            **dict(zip(ENSEMBLE_GROUPS, key)),
            "value": weighted_average(group["value"], group["weight"], average=average),
            "n_models": len(group),
        })
    ensemble = pd.DataFrame(rows, columns=ENSEMBLE_GROUPS + ["value", "n_models"])

    if return_criteria:
        return {"ensemble": ensemble, "weights": weights}
    return ensemble
