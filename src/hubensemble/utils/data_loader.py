"""
data_loader.py — Loads config, hub forecasts, model metadata and evaluations.

Local hub layout:
    {hub_path}/data-processed/{model}/{YYYY-MM-DD}-{model}.csv
    {hub_path}/model-metadata/{model}.yml
    {eval_dir}/evaluation-{YYYY-MM-DD}.csv
"""
from __future__ import annotations
import logging
import re
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd
import yaml

from hubensemble.errors import NotFoundError

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent.parent

FORECAST_COLUMNS = [
    "model", "forecast_date", "location", "target_variable", "horizon",
    "temporal_resolution", "target_end_date", "type", "quantile", "value",
]

TARGET_PATTERN = re.compile(r"^\s*(\d+)\s+(\w+)\s+ahead\s+(.+?)\s*$")


def _resolve(path) -> Path:
    p = Path(path)
    if not p.is_absolute():
        p = PROJECT_ROOT / p
    return p


def load_config(path: str = "configs/default.yaml") -> dict:
    with open(_resolve(path)) as f:
        return yaml.safe_load(f)


def parse_target(target: str) -> tuple[int, str, str]:
    """Split a hub target label, e.g. "2 wk ahead inc case" → (2, "wk", "inc case")."""
    match = TARGET_PATTERN.match(str(target))
    if match is None:
        raise ValueError(f"Unrecognised target label: {target!r}")
    horizon, resolution, variable = match.groups()
    return int(horizon), resolution, variable


def _add_target_parts(df: pd.DataFrame) -> pd.DataFrame:
    labels = df["target"].astype(str)
    parts = labels.str.extract(TARGET_PATTERN)
    bad = parts[0].isna()
    if bad.any():
        logger.warning(f"Dropping {int(bad.sum())} rows with unrecognised targets: "
                       f"{sorted(labels[bad].unique())[:5]}")
    df = df[~bad].copy()
    parts = parts[~bad]
    df["horizon"] = parts[0].astype(int)
    df["temporal_resolution"] = parts[1]
    df["target_variable"] = parts[2]
    return df


def load_forecasts(
    hub_path,
    dates: Iterable,
    models: Optional[list[str]] = None,
) -> pd.DataFrame:
    """
    Read every model's forecast files submitted on any of `dates`.

    Args:
        hub_path : hub repository root
        dates    : forecast dates to load
        models   : restrict to these model directories (default: all)

    Returns:
        Long-format forecast table with FORECAST_COLUMNS (plus any extra
        columns found in the files).
    """
    processed = _resolve(hub_path) / "data-processed"
    if not processed.is_dir():
        raise NotFoundError(f"No data-processed directory in hub at {processed.parent}")

    day_strs = sorted({pd.Timestamp(d).strftime("%Y-%m-%d") for d in dates})
    model_dirs = sorted(p for p in processed.iterdir() if p.is_dir())
    if models is not None:
        model_dirs = [p for p in model_dirs if p.name in set(models)]

    frames = []
    for model_dir in model_dirs:
        for day in day_strs:
            path = model_dir / f"{day}-{model_dir.name}.csv"
            if not path.exists():
                continue
            df = pd.read_csv(path, dtype={"location": str})
            df["model"] = model_dir.name
            if "forecast_date" not in df.columns:
                df["forecast_date"] = day
            frames.append(df)

    if not frames:
        logger.warning(f"No forecasts found for {day_strs[0] if day_strs else '-'}"
                       f" to {day_strs[-1] if day_strs else '-'}")
        return pd.DataFrame(columns=FORECAST_COLUMNS)

    forecasts = _add_target_parts(pd.concat(frames, ignore_index=True))
    for col in ("forecast_date", "target_end_date"):
        forecasts[col] = pd.to_datetime(forecasts[col])

    extra = [c for c in forecasts.columns if c not in FORECAST_COLUMNS and c != "target"]
    logger.info(f"Loaded {len(forecasts):,} forecast rows from "
                f"{forecasts['model'].nunique()} models")
    return forecasts[FORECAST_COLUMNS + extra].reset_index(drop=True)


def load_model_designations(hub_path) -> pd.DataFrame:
    """Read `model, designation` from the hub's YAML model metadata files."""
    meta_dir = _resolve(hub_path) / "model-metadata"
    if not meta_dir.is_dir():
        raise NotFoundError(f"No model-metadata directory in hub at {meta_dir.parent}")

    rows = []
    for path in sorted(meta_dir.glob("*.y*ml")):
        with open(path) as f:
            meta = yaml.safe_load(f) or {}
        rows.append({
            "model": meta.get("model_abbr", meta.get("model", path.stem)),
            "designation": meta.get("team_model_designation", meta.get("designation")),
        })
    return pd.DataFrame(rows, columns=["model", "designation"])


def load_evaluation(eval_dir, evaluation_date) -> pd.DataFrame:
    """Load `evaluation-{date}.csv`; raises NotFoundError when absent."""
    day = pd.Timestamp(evaluation_date).strftime("%Y-%m-%d")
    path = _resolve(eval_dir) / f"evaluation-{day}.csv"
    if not path.exists():
        raise NotFoundError(f"Evaluation not found for {day} ({path})")
    return pd.read_csv(path, dtype={"location": str})


def load_exclusions(path) -> pd.DataFrame:
    """Load a `model, forecast_date` table of manual exclusions."""
    path = _resolve(path)
    if not path.exists():
        raise NotFoundError(f"Exclusions file not found: {path}")
    exclusions = pd.read_csv(path)
    exclusions["forecast_date"] = pd.to_datetime(exclusions["forecast_date"])
    return exclusions
