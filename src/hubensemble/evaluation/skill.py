"""
skill.py
--------
Relative skill from hub evaluation summaries.

Evaluation files hold one row per model, target_variable, location and
horizon, with relative scores named `rel_{skill}` (e.g. `rel_wis`, lower is
better), a `continuous_weeks` count of consecutive evaluated weeks, and
optionally `weeks_included` ("All" or a number of recent weeks).
"""

from __future__ import annotations
import logging

import pandas as pd

from hubensemble.errors import SchemaError

logger = logging.getLogger(__name__)

SKILL_COLUMNS = ["model", "continuous_weeks", "target_variable", "horizon",
                 "location", "relative_skill"]


def relative_skill(
    evaluation: pd.DataFrame,
    skill: str = "wis",
    history="All",
) -> pd.DataFrame:
    """
    Extract relative skill rows from an evaluation table.

    Args:
        evaluation : evaluation summary table
        skill      : score name; column `rel_{skill}` must exist
        history    : keep rows whose `weeks_included` equals this value
                     exactly (ignored when the column is absent)

    Returns:
        DataFrame with SKILL_COLUMNS; `relative_skill` is numeric, with
        unparseable entries as NaN.

    Raises:
        SchemaError if `rel_{skill}` (or another required column) is missing.
    """
    col_name = f"rel_{skill}"
    if col_name not in evaluation.columns:
        raise SchemaError(f"Evaluation does not include relative {skill} ({col_name})")

    df = evaluation.copy()
    df["relative_skill"] = pd.to_numeric(df[col_name], errors="coerce")

    if "weeks_included" in df.columns:
        df = df[df["weeks_included"].astype(str) == str(history)]

    missing = [c for c in SKILL_COLUMNS if c not in df.columns]
    if missing:
        raise SchemaError(f"Evaluation is missing columns: {missing}")
    return df[SKILL_COLUMNS].reset_index(drop=True)


def mean_relative_skill(skill: pd.DataFrame, by: list[str]) -> pd.DataFrame:
    """Average relative skill within `by`, skipping missing values."""
    return skill.groupby(by, as_index=False)["relative_skill"].mean()
