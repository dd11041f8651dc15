"""
hubensemble
-----------
Ensemble utilities for a quantile forecast hub.

Combines per-model quantile forecasts into a single hub ensemble using an
equal-weight average or weights derived from relative skill, then formats the
result for submission.

Usage:
    from hubensemble import run_ensemble
    result = run_ensemble("relative_skill", "2021-03-08", forecasts=forecasts,
                          eval_dir="evaluation/weekly-summary")
    result.ensemble.head()
"""

from hubensemble.errors import (
    ArgumentError,
    ConfigurationError,
    EnsembleError,
    NotFoundError,
    SchemaError,
)
from hubensemble.formatting import format_ensemble
from hubensemble.models.averaging import create_ensemble_average, weighted_average
from hubensemble.models.relative_skill import create_ensemble_relative_skill
from hubensemble.pipeline import EnsembleResult, run_ensemble, run_multiple_ensembles

__version__ = "0.1.0"

__all__ = [
    "ArgumentError",
    "ConfigurationError",
    "EnsembleError",
    "EnsembleResult",
    "NotFoundError",
    "SchemaError",
    "create_ensemble_average",
    "create_ensemble_relative_skill",
    "format_ensemble",
    "run_ensemble",
    "run_multiple_ensembles",
    "weighted_average",
]
