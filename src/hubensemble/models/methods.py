"""methods.py — Ensemble method names and what they mean."""
from __future__ import annotations
from dataclasses import dataclass

from hubensemble.errors import ConfigurationError

EQUAL = "equal"
RELATIVE_SKILL = "relative_skill"


@dataclass(frozen=True)
class EnsembleMethod:
    """
    Parsed ensemble method.

    name       : the method string as requested, e.g. "relative_skill_by_horizon"
    weighting  : "equal" or "relative_skill"
    statistic  : "mean" or "median"
    by_horizon : weight relative skill separately per horizon
    """
    name: str
    weighting: str
    statistic: str = "mean"
    by_horizon: bool = False

    @classmethod
    def parse(cls, name: str) -> "EnsembleMethod":
        """
        Supported names: "mean", "median", and "relative_skill" with the
        optional suffixes "_by_horizon" then "_median", e.g.
        "relative_skill_by_horizon_median".
        """
        if name in ("mean", "median"):
            return cls(name=name, weighting=EQUAL, statistic=name)

        if name.startswith(RELATIVE_SKILL):
            rest = name[len(RELATIVE_SKILL):]
            by_horizon = rest.startswith("_by_horizon")
            if by_horizon:
                rest = rest[len("_by_horizon"):]
            if rest in ("", "_median"):
                return cls(
                    name=name,
                    weighting=RELATIVE_SKILL,
                    statistic="median" if rest else "mean",
                    by_horizon=by_horizon,
                )

        raise ConfigurationError(f"Unknown ensemble method: {name!r}")

    @property
    def is_relative_skill(self) -> bool:
        return self.weighting == RELATIVE_SKILL
