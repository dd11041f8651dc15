"""
test_averaging.py
-----------------
Unit tests for weighted averaging and the equal-weight ensemble.
"""
import numpy as np
import pandas as pd
import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hubensemble.errors import ArgumentError
from hubensemble.models.averaging import (
    create_ensemble_average,
    equal_weights,
    weighted_average,
)


def make_forecasts(values_by_model: dict, quantiles=(0.1, 0.5, 0.9),
                   location="DE", target_variable="inc case", horizon=1) -> pd.DataFrame:
    """One quantile forecast per model for a single target."""
    rows = []
    for model, values in values_by_model.items():
        for q, v in zip(quantiles, values):
            rows.append({
                "model": model,
                "location": location,
                "target_variable": target_variable,
                "horizon": horizon,
                "forecast_date": pd.Timestamp("2021-03-08"),
                "type": "quantile",
                "quantile": q,
                "value": v,
            })
    return pd.DataFrame(rows)


# ── Weighted Average ──────────────────────────────────────────────────────────

class TestWeightedAverage:
    def test_uniform_weights_equal_mean(self):
        x = np.array([3.0, 1.0, 7.0, 2.0])
        assert weighted_average(x, np.full(4, 0.25)) == pytest.approx(np.mean(x))

    def test_default_weights_are_uniform(self):
        x = [3.0, 1.0, 7.0]
        assert weighted_average(x) == pytest.approx(np.mean(x))

    def test_uniform_weights_equal_median(self):
        x = np.array([5.0, 1.0, 3.0, 9.0, 4.0])
        assert weighted_average(x, np.ones(5), average="median") == pytest.approx(np.median(x))

    def test_weighted_mean(self):
        assert weighted_average([1.0, 2.0], [0.8, 0.2]) == pytest.approx(1.2)

    def test_weights_need_not_sum_to_one(self):
        assert weighted_average([1.0, 2.0], [4, 1]) == pytest.approx(1.2)

    def test_weighted_median_follows_weight(self):
        assert weighted_average([1.0, 2.0, 3.0], [0.1, 0.1, 0.8], average="median") == 3.0

    def test_median_takes_first_value_reaching_half(self):
        """With an even count the lower middle value is returned."""
        assert weighted_average([4.0, 1.0, 3.0, 2.0], [1, 1, 1, 1], average="median") == 2.0

    def test_missing_values_ignored(self):
        assert weighted_average([1.0, np.nan, 3.0], [1, 1, 1]) == pytest.approx(2.0)

    def test_length_mismatch_raises(self):
        with pytest.raises(ArgumentError):
            weighted_average([1.0, 2.0, 3.0], [0.5, 0.5])

    def test_argument_error_is_value_error(self):
        with pytest.raises(ValueError):
            weighted_average([1.0], [1.0, 2.0])

    def test_zero_weights_mean_raises(self):
        with pytest.raises(ArgumentError):
            weighted_average([1.0, 2.0], [0.0, 0.0])

    def test_zero_weights_median_is_nan(self):
        assert np.isnan(weighted_average([1.0, 2.0], [0.0, 0.0], average="median"))

    def test_negative_weights_raise(self):
        with pytest.raises(ArgumentError):
            weighted_average([1.0, 2.0], [1.5, -0.5])

    def test_unknown_average_raises(self):
        with pytest.raises(ArgumentError):
            weighted_average([1.0, 2.0], average="mode")

    def test_empty_mean_raises(self):
        with pytest.raises(ArgumentError):
            weighted_average([], [])

    def test_all_missing_mean_raises(self):
        with pytest.raises(ArgumentError):
            weighted_average([np.nan, np.nan], [1.0, 1.0])

    def test_empty_median_is_nan(self):
        assert np.isnan(weighted_average([], [], average="median"))


# ── Equal-weight Ensemble ─────────────────────────────────────────────────────

class TestEnsembleAverage:
    def test_mean_of_two_models(self):
        fc = make_forecasts({"A": [1, 2, 3], "B": [2, 3, 4]})
        ens = create_ensemble_average(fc, method="mean").sort_values("quantile")
        assert ens["value"].tolist() == pytest.approx([1.5, 2.5, 3.5])
        assert ens["quantile"].tolist() == pytest.approx([0.1, 0.5, 0.9])
        assert (ens["n_models"] == 2).all()

    def test_median_of_three_models(self):
        fc = make_forecasts({"A": [1, 2, 3], "B": [2, 3, 4], "C": [10, 20, 30]})
        ens = create_ensemble_average(fc, method="median").sort_values("quantile")
        assert ens["value"].tolist() == pytest.approx([2, 3, 4])

    def test_groups_kept_separate(self):
        fc = pd.concat([
            make_forecasts({"A": [1, 2, 3]}, location="DE"),
            make_forecasts({"A": [5, 6, 7], "B": [7, 8, 9]}, location="FR"),
        ])
        ens = create_ensemble_average(fc)
        fr = ens[ens["location"] == "FR"].sort_values("quantile")
        assert len(ens) == 6
        assert fr["value"].tolist() == pytest.approx([6, 7, 8])

    def test_point_rows_rejected(self):
        fc = make_forecasts({"A": [1, 2, 3]})
        fc.loc[0, "type"] = "point"
        with pytest.raises(ArgumentError):
            create_ensemble_average(fc)

    def test_output_columns(self):
        ens = create_ensemble_average(make_forecasts({"A": [1, 2, 3]}))
        assert set(ens.columns) == {"quantile", "target_variable", "location",
                                    "horizon", "value", "n_models"}


class TestEqualWeights:
    def test_weights_uniform(self):
        fc = make_forecasts({"A": [1, 2, 3], "B": [2, 3, 4], "C": [3, 4, 5], "D": [1, 1, 1]})
        w = equal_weights(fc)
        assert len(w) == 4
        assert w["weight"].tolist() == pytest.approx([0.25] * 4)

    def test_weights_sum_to_one_per_group(self):
        fc = pd.concat([
            make_forecasts({"A": [1, 2, 3]}, location="DE"),
            make_forecasts({"A": [1, 2, 3], "B": [2, 3, 4], "C": [1, 2, 2]}, location="FR"),
        ])
        sums = equal_weights(fc).groupby(["target_variable", "location"])["weight"].sum()
        assert sums.tolist() == pytest.approx([1.0, 1.0])
