"""
generate_demo_data.py — Writes a small synthetic forecast hub (no real hub needed).
Usage: python -m hubensemble.utils.generate_demo_data
"""
from __future__ import annotations
import logging
from pathlib import Path

import numpy as np
import pandas as pd
import yaml

from hubensemble.utils.data_loader import PROJECT_ROOT, load_config

logger = logging.getLogger(__name__)

QUANTILES = [0.01, 0.025] + [round(q, 2) for q in np.arange(0.05, 0.951, 0.05)] + [0.975, 0.99]
TARGET_VARIABLES = ["inc case", "inc death"]
HORIZONS = [1, 2, 3, 4]


def _model_name(i: int) -> str:
    return f"team{i + 1}-model"


def generate_forecasts(forecast_date, locations, rng) -> pd.DataFrame:
    forecast_date = pd.Timestamp(forecast_date)
    last_sat = forecast_date - pd.Timedelta(days=(forecast_date.dayofweek - 5) % 7)
    bias = rng.uniform(0.8, 1.2)
    rows = []
    for loc_idx, loc in enumerate(locations):
        for target in TARGET_VARIABLES:
            level = (5000 if target == "inc case" else 50) * (1 + loc_idx)
            for h in HORIZONS:
                centre = level * bias * (1 + 0.05 * h)
                draws = rng.normal(centre, 0.1 * centre * np.sqrt(h), 2000)
                values = np.maximum(0, np.quantile(draws, QUANTILES))
                end = last_sat + pd.Timedelta(weeks=h)
                label = f"{h} wk ahead {target}"
                rows += [{"forecast_date": forecast_date.date(), "target": label,
                          "target_end_date": end.date(), "location": loc, "type": "quantile",
                          "quantile": q, "value": round(float(v), 1)}
                         for q, v in zip(QUANTILES, values)]
                rows.append({"forecast_date": forecast_date.date(), "target": label,
                             "target_end_date": end.date(), "location": loc, "type": "point",
                             "quantile": np.nan, "value": round(float(np.median(draws)), 1)})
    return pd.DataFrame(rows)


def generate_evaluation(models, locations, rng, continuous_weeks=6) -> pd.DataFrame:
    rows = []
    for m_idx, model in enumerate(models):
        for loc in locations:
            for target in TARGET_VARIABLES:
                for h in HORIZONS:
                    for weeks in ("All", "10"):
                        rows.append({"model": model, "location": loc, "target_variable": target,
                                     "horizon": h, "weeks_included": weeks,
                                     "continuous_weeks": continuous_weeks - (m_idx == 0) * 4,
                                     "rel_wis": round(float(rng.lognormal(0, 0.3)), 3)})
    return pd.DataFrame(rows)


def generate_demo_hub(
    out_dir,
    n_models: int = 5,
    forecast_dates=("2021-03-08",),
    locations=("DE", "FR", "GB"),
    seed: int = 42,
) -> Path:
    """
    Write forecasts, model metadata and an evaluation summary for a demo hub.

    The first model has too short an evaluation history for relative skill
    weighting and the last is designated "other".

    Returns:
        The hub root directory.
    """
    rng = np.random.default_rng(seed)
    out = Path(out_dir)
    models = [_model_name(i) for i in range(n_models)]
    locations = list(locations)

    for i, model in enumerate(models):
        model_dir = out / "data-processed" / model
        model_dir.mkdir(parents=True, exist_ok=True)
        for date in forecast_dates:
            day = pd.Timestamp(date).strftime("%Y-%m-%d")
            generate_forecasts(date, locations, rng).to_csv(
                model_dir / f"{day}-{model}.csv", index=False)

        designation = "primary" if i == 0 else ("other" if i == n_models - 1 else "secondary")
        meta_dir = out / "model-metadata"
        meta_dir.mkdir(parents=True, exist_ok=True)
        with open(meta_dir / f"{model}.yml", "w") as f:
            yaml.safe_dump({"team_name": f"Team {i + 1}", "model_abbr": model,
                            "team_model_designation": designation}, f)

    eval_dir = out / "evaluation" / "weekly-summary"
    eval_dir.mkdir(parents=True, exist_ok=True)
    latest = max(pd.Timestamp(d) for d in forecast_dates).strftime("%Y-%m-%d")
    generate_evaluation(models, locations, rng).to_csv(
        eval_dir / f"evaluation-{latest}.csv", index=False)

    logger.info(f"Demo hub with {n_models} models written to {out}")
    return out


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    cfg = load_config()
    demo = cfg["demo"]
    out_dir = PROJECT_ROOT / demo["output_dir"]
    weeks = pd.date_range(end=pd.Timestamp(cfg["ensemble"]["forecast_dates"][-1]),
                          periods=demo["n_weeks"], freq="7D")
    generate_demo_hub(out_dir, n_models=demo["n_models"], forecast_dates=list(weeks),
                      locations=demo["locations"])


if __name__ == "__main__":
    main()
