"""
dates.py
--------
Week-end date helpers and daily → weekly conversion of truth data.

Hub weeks run Sunday–Saturday: a forecast horizon of h weeks targets the
Saturday h weeks after the last complete week before the forecast date.
"""

from __future__ import annotations
import logging

import pandas as pd

logger = logging.getLogger(__name__)

SATURDAY = 5  # pandas dayofweek, Monday=0


def date_to_week_end(dates, week_start: int = 7):
    """
    Map each date to the last day of the week containing it.

    Args:
        dates      : a date, Timestamp, or Series / array of dates
        week_start : first day of the week, 1=Monday ... 7=Sunday
                     (default Sunday, so weeks end on Saturday)

    Returns:
        Same shape as the input: Timestamp for a scalar, Series otherwise.
    """
    if not 1 <= week_start <= 7:
        raise ValueError(f"week_start must be in 1..7, got {week_start}")
    week_end = (week_start + 5) % 7  # pandas dayofweek of the last day

    if pd.api.types.is_scalar(dates):
        ts = pd.Timestamp(dates).normalize()
        return ts + pd.Timedelta(days=(week_end - ts.dayofweek) % 7)

    ts = pd.to_datetime(pd.Series(dates)).dt.normalize()
    return ts + pd.to_timedelta((week_end - ts.dt.dayofweek) % 7, unit="D")


def last_week_end(date) -> pd.Timestamp:
    """Saturday on or before `date`."""
    ts = pd.Timestamp(date).normalize()
    return ts - pd.Timedelta(days=(ts.dayofweek - SATURDAY) % 7)


def convert_to_weekly(truth: pd.DataFrame, week_start: int = 7) -> pd.DataFrame:
    """
    Convert truth data to one row per series and week.

    Daily series keep the latest observation of each complete week.
    Series that are already weekly but dated on the Sunday after the week
    end (Mon–Sun reporting) are shifted back to the Saturday. Output dates
    are always the week end.

    Args:
        truth      : long table with `location`, `date`, `value` and any
                     number of series identifier columns
        week_start : passed to `date_to_week_end`
    """
    aggregation_vars = [c for c in ("date", "value", "status", "snapshot_date", "type")
                        if c in truth.columns]
    series_vars = [c for c in truth.columns if c not in aggregation_vars]

    df = truth.copy()
    df["date"] = pd.to_datetime(df["date"])
    df = df.sort_values(series_vars + ["date"]).reset_index(drop=True)
    df["sat_date"] = date_to_week_end(df["date"], week_start=week_start)

    # Observations per week tell daily and weekly series apart
    df["n"] = df.groupby(series_vars + ["sat_date"], dropna=False)["date"].transform("size")
    is_weekly = df.groupby(series_vars, dropna=False)["n"].transform(lambda n: (n == 1).all()).astype(bool)

    # Keep only weeks as complete as the most recent ones
    recent_max = df.groupby("location")["n"].transform(lambda n: n.tail(7).max())
    keep = (df["n"] == recent_max) | is_weekly
    df, is_weekly = df[keep].copy(), is_weekly[keep]

    shift = is_weekly & (df["date"] + pd.Timedelta(days=6) == df["sat_date"])
    df.loc[shift, "date"] = df.loc[shift, "date"] + pd.Timedelta(days=6)

    latest = df.groupby(series_vars + ["sat_date"], dropna=False)["date"].transform("max")
    df = df[df["date"] == latest].copy()

    df["date"] = date_to_week_end(df["date"], week_start=week_start)
    df = df.drop(columns=["sat_date", "n"]).reset_index(drop=True)

    logger.info(f"Converted truth data to weekly: {len(truth):,} → {len(df):,} rows")
    return df
