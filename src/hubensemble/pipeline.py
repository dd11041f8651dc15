"""
pipeline.py
-----------
Ensemble runner: forecasts → inclusion criteria → ensemble → hub format.

Includes:
  - run_ensemble: a single ensemble for one method and forecast date
  - run_multiple_ensembles: every method for every forecast date
  - run_pipeline: the same, driven by a YAML config

Usage:
    from hubensemble.utils.data_loader import load_config
    results = run_pipeline(load_config("configs/default.yaml"))
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional, Union

import pandas as pd

from hubensemble.errors import ConfigurationError
from hubensemble.evaluation.criteria import apply_min_models, use_ensemble_criteria
from hubensemble.formatting import format_ensemble
from hubensemble.models.averaging import create_ensemble_average, equal_weights
from hubensemble.models.methods import EnsembleMethod
from hubensemble.models.relative_skill import DEFAULT_EVAL_DIR, create_ensemble_relative_skill
from hubensemble.utils.data_loader import (
    load_evaluation,
    load_exclusions,
    load_forecasts,
    load_model_designations,
)

logger = logging.getLogger(__name__)

WINDOW_DAYS = 6
RELATIVE_SKILL_ARGS = {"evaluation_date", "continuous_weeks", "skill", "history"}


@dataclass
class EnsembleResult:
    """An ensemble with the provenance of how it was built."""
    ensemble: pd.DataFrame
    criteria: pd.DataFrame
    method: str
    weights: pd.DataFrame
    forecast_date: pd.Timestamp

    def __repr__(self) -> str:
        n_models = int(self.criteria["included_in_ensemble"].sum())
        return (
            f"EnsembleResult(method={self.method}, "
            f"forecast_date={self.forecast_date.date()}, "
            f"models={n_models}, rows={len(self.ensemble)})"
        )


def forecast_window(forecast_date) -> list[pd.Timestamp]:
    """The forecast date and the five days before it, latest first."""
    forecast_date = pd.Timestamp(forecast_date).normalize()
    return [forecast_date - pd.Timedelta(days=i) for i in range(WINDOW_DAYS)]


def resolve_exclusions(
    exclude_models: Union[pd.DataFrame, Iterable[str], None],
    forecast_date,
) -> list[str]:
    """Manual exclusions as a list, from a list or a (model, forecast_date) table."""
    if exclude_models is None:
        return []
    if isinstance(exclude_models, pd.DataFrame):
        dates = pd.to_datetime(exclude_models["forecast_date"])
        return list(exclude_models.loc[dates == pd.Timestamp(forecast_date), "model"])
    if isinstance(exclude_models, str):
        return [exclude_models]
    return list(exclude_models)


def run_ensemble(
    method: str = "mean",
    forecast_date=None,
    forecasts: Optional[pd.DataFrame] = None,
    hub_path=".",
    exclude_models=None,
    min_nmodels: int = 0,
    return_criteria: bool = True,
    verbose: bool = False,
    exclude_designated_other: bool = True,
    designations=None,
    identifier: str = "",
    rel_wis_cutoff: float = math.inf,
    eval_dir=DEFAULT_EVAL_DIR,
    evaluation: Optional[pd.DataFrame] = None,
    **kwargs,
):
    """
    Create one ensemble forecast.

    Takes all forecasts made in the six days up to `forecast_date`, filters
    models by the inclusion criteria, ensembles them with `method` and
    formats the result for submission.

    Args:
        method                   : "mean", "median", or "relative_skill" with
                                   optional "_by_horizon" / "_median" suffixes
        forecast_date            : date of the ensemble forecast
        forecasts                : candidate forecasts; loaded from the local
                                   hub at `hub_path` when omitted
        hub_path                 : local hub root
        exclude_models           : list of models, or a table of model,
                                   forecast_date, to exclude manually
        min_nmodels              : minimum models per target for an ensemble
        return_criteria          : return an EnsembleResult rather than the
                                   bare ensemble
        verbose                  : log progress
        exclude_designated_other : drop models designated "other"
        designations             : model designations (default: the forecasts'
                                   designation column, else hub metadata)
        identifier               : prefix for the reported method name
        rel_wis_cutoff           : drop models with mean relative WIS above this
        eval_dir                 : directory of evaluation summaries
        evaluation               : evaluation table to use instead of eval_dir
        **kwargs                 : relative skill settings (evaluation_date,
                                   continuous_weeks, skill, history)

    Raises:
        ConfigurationError for unknown methods or unsupported arguments,
        NotFoundError / SchemaError from the evaluation used for weighting.
    """
    if forecast_date is None:
        raise ConfigurationError("run_ensemble requires a forecast_date")

    # ── Method ────────────────────────────────────────────────────────────────
    ensemble_method = EnsembleMethod.parse(method)
    if verbose:
        logger.info(f"Ensemble method: {method}")

    if not ensemble_method.is_relative_skill and kwargs:
        raise ConfigurationError(f"Unknown arguments passed to `run_ensemble`: {sorted(kwargs)}")
    unknown = set(kwargs) - RELATIVE_SKILL_ARGS
    if unknown:
        raise ConfigurationError(f"Unknown arguments passed to `run_ensemble`: {sorted(unknown)}")

    # ── Dates ─────────────────────────────────────────────────────────────────
    forecast_dates = forecast_window(forecast_date)
    forecast_date = max(forecast_dates)

    # ── Load forecasts ────────────────────────────────────────────────────────
    if forecasts is None:
        all_forecasts = load_forecasts(hub_path, forecast_dates)
    else:
        submitted = pd.to_datetime(forecasts["forecast_date"]).dt.normalize()
        all_forecasts = forecasts[submitted.isin(forecast_dates)].copy()
        all_forecasts["forecast_date"] = submitted[submitted.isin(forecast_dates)]

    if verbose:
        logger.info(f"Forecasts loaded from {min(forecast_dates).date()} "
                    f"to {forecast_date.date()}")

    # ── Exclusions ────────────────────────────────────────────────────────────
    excluded = resolve_exclusions(exclude_models, forecast_date)

    if (exclude_designated_other and designations is None
            and "designation" not in all_forecasts.columns):
        designations = load_model_designations(hub_path)

    # the cutoff always uses the evaluation as of the forecast date
    cutoff_evaluation = evaluation
    if rel_wis_cutoff < math.inf and cutoff_evaluation is None:
        cutoff_evaluation = load_evaluation(eval_dir, forecast_date)

    selected = use_ensemble_criteria(
        forecasts=all_forecasts,
        exclude_models=excluded,
        exclude_designated_other=exclude_designated_other,
        rel_wis_cutoff=rel_wis_cutoff,
        designations=designations,
        evaluation=cutoff_evaluation,
        return_criteria=True,
    )
    criteria = selected["criteria"]
    forecasts = selected["forecasts"]

    forecasts = forecasts[forecasts["type"] == "quantile"].assign(
        quantile=lambda df: df["quantile"].astype(float).round(3),
        horizon=lambda df: pd.to_numeric(df["horizon"]),
        value=lambda df: df["value"].astype(float),
    )
    forecasts = apply_min_models(forecasts, min_nmodels=min_nmodels)

    # ── Ensemble ──────────────────────────────────────────────────────────────
    if ensemble_method.is_relative_skill:
        built = create_ensemble_relative_skill(
            forecasts=forecasts,
            by_horizon=ensemble_method.by_horizon,
            average=ensemble_method.statistic,
            eval_dir=eval_dir,
            evaluation=evaluation,
            return_criteria=True,
            verbose=verbose,
            **kwargs,
        )
        ensemble, weights = built["ensemble"], built["weights"]
        criteria = criteria.assign(
            included_in_ensemble=criteria["included_in_ensemble"]
            & criteria["model"].isin(weights["model"])
        )
    else:
        ensemble = create_ensemble_average(forecasts, method=ensemble_method.statistic)
        weights = equal_weights(forecasts)

    # ── Format ────────────────────────────────────────────────────────────────
    ensemble = format_ensemble(ensemble, forecast_date=forecast_date)
    if verbose:
        logger.info("Ensemble formatted in hub standard")

    if not return_criteria:
        return ensemble
    return EnsembleResult(
        ensemble=ensemble,
        criteria=criteria,
        method=f"{identifier}_{method}" if identifier else method,
        weights=weights,
        forecast_date=forecast_date,
    )


def run_multiple_ensembles(forecast_dates: Iterable, methods: list[str], **kwargs) -> dict:
    """
    Run every method for every forecast date.

    Returns:
        dict keyed "{method}-{YYYY-MM-DD}", dates in the outer loop.
    """
    results = {}
    for date in forecast_dates:
        date = pd.Timestamp(date)
        for method in methods:
            results[f"{method}-{date:%Y-%m-%d}"] = run_ensemble(method, date, **kwargs)
    return results


def run_pipeline(config: dict, forecasts: Optional[pd.DataFrame] = None) -> dict:
    """
    Run the ensembles described by a config dict (see configs/default.yaml).

    Relative skill settings are only passed to relative skill methods.
    """
    log_cfg = config.get("logging", {})
    logging.basicConfig(
        level=log_cfg.get("level", "INFO"),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    hub_cfg = config["hub"]
    ens_cfg = config["ensemble"]
    dates = [pd.Timestamp(d) for d in ens_cfg["forecast_dates"]]
    methods = list(ens_cfg["methods"])

    exclude_models = None
    if hub_cfg.get("exclusions"):
        exclude_models = load_exclusions(hub_cfg["exclusions"])

    shared = dict(
        forecasts=forecasts,
        hub_path=hub_cfg.get("path", "."),
        eval_dir=hub_cfg.get("eval_dir", DEFAULT_EVAL_DIR),
        exclude_models=exclude_models,
        min_nmodels=ens_cfg.get("min_nmodels", 0),
        exclude_designated_other=ens_cfg.get("exclude_designated_other", True),
        identifier=ens_cfg.get("identifier", ""),
        rel_wis_cutoff=float(ens_cfg.get("rel_wis_cutoff", math.inf)),
        verbose=ens_cfg.get("verbose", False),
    )
    skill_args = ens_cfg.get("relative_skill", {}) or {}

    equal = [m for m in methods if not EnsembleMethod.parse(m).is_relative_skill]
    skill_based = [m for m in methods if m not in equal]

    logger.info(f"Running {len(methods)} methods for {len(dates)} forecast dates")
    results = run_multiple_ensembles(dates, equal, **shared)
    results.update(run_multiple_ensembles(dates, skill_based, **shared, **skill_args))

    order = [f"{m}-{d:%Y-%m-%d}" for d in dates for m in methods]
    return {key: results[key] for key in order}
