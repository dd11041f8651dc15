"""errors.py — Exceptions raised while building hub ensembles."""
from __future__ import annotations


class EnsembleError(Exception):
    """Base class for all ensemble errors."""


class NotFoundError(EnsembleError, FileNotFoundError):
    """An expected input file (e.g. a dated evaluation) does not exist."""


class SchemaError(EnsembleError, KeyError):
    """A required column is missing from an input table."""

    def __str__(self) -> str:
        # KeyError quotes its message by default
        return str(self.args[0]) if self.args else ""


class ConfigurationError(EnsembleError, TypeError):
    """Unknown ensemble method or arguments the method does not accept."""


class ArgumentError(EnsembleError, ValueError):
    """Invalid values passed to a numeric routine."""
