"""
test_data_loader.py
-------------------
Tests for hub loading using a generated demo hub.
"""
import pandas as pd
import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hubensemble.errors import NotFoundError
from hubensemble.utils.data_loader import (
    FORECAST_COLUMNS,
    load_config,
    load_evaluation,
    load_exclusions,
    load_forecasts,
    load_model_designations,
    parse_target,
)
from hubensemble.utils.generate_demo_data import QUANTILES, generate_demo_hub


@pytest.fixture
def hub(tmp_path):
    return generate_demo_hub(tmp_path / "hub", n_models=4, forecast_dates=["2021-03-08"],
                             locations=["DE", "FR"])


class TestParseTarget:
    def test_parse(self):
        assert parse_target("2 wk ahead inc case") == (2, "wk", "inc case")

    def test_parse_day_resolution(self):
        assert parse_target("14 day ahead inc hosp") == (14, "day", "inc hosp")

    def test_unrecognised(self):
        with pytest.raises(ValueError):
            parse_target("next week cases")


class TestLoadForecasts:
    def test_loads_all_models(self, hub):
        fc = load_forecasts(hub, ["2021-03-08"])
        assert list(fc.columns) == FORECAST_COLUMNS
        assert fc["model"].nunique() == 4
        assert set(fc["horizon"]) == {1, 2, 3, 4}
        assert set(fc["target_variable"]) == {"inc case", "inc death"}
        assert set(fc["temporal_resolution"]) == {"wk"}

    def test_row_count(self, hub):
        fc = load_forecasts(hub, ["2021-03-08"])
        # models × locations × targets × horizons × (quantiles + point)
        assert len(fc) == 4 * 2 * 2 * 4 * (len(QUANTILES) + 1)

    def test_dates_parsed(self, hub):
        fc = load_forecasts(hub, ["2021-03-08"])
        assert pd.api.types.is_datetime64_any_dtype(fc["forecast_date"])
        assert pd.api.types.is_datetime64_any_dtype(fc["target_end_date"])

    def test_model_subset(self, hub):
        fc = load_forecasts(hub, ["2021-03-08"], models=["team2-model"])
        assert set(fc["model"]) == {"team2-model"}

    def test_no_files_for_dates(self, hub):
        fc = load_forecasts(hub, ["2020-01-06"])
        assert fc.empty
        assert list(fc.columns) == FORECAST_COLUMNS

    def test_missing_hub(self, tmp_path):
        with pytest.raises(NotFoundError):
            load_forecasts(tmp_path / "nowhere", ["2021-03-08"])

    def test_bad_targets_dropped(self, tmp_path):
        model_dir = tmp_path / "data-processed" / "x-model"
        model_dir.mkdir(parents=True)
        pd.DataFrame({
            "forecast_date": ["2021-03-08"] * 2,
            "target": ["1 wk ahead inc case", "whenever"],
            "target_end_date": ["2021-03-13"] * 2,
            "location": ["DE"] * 2,
            "type": ["quantile"] * 2,
            "quantile": [0.5, 0.5],
            "value": [1.0, 2.0],
        }).to_csv(model_dir / "2021-03-08-x-model.csv", index=False)
        fc = load_forecasts(tmp_path, ["2021-03-08"])
        assert len(fc) == 1


class TestMetadataAndEvaluation:
    def test_designations(self, hub):
        meta = load_model_designations(hub).set_index("model")["designation"]
        assert meta["team1-model"] == "primary"
        assert meta["team4-model"] == "other"

    def test_evaluation(self, hub):
        evaluation = load_evaluation(hub / "evaluation" / "weekly-summary", "2021-03-08")
        assert "rel_wis" in evaluation.columns
        assert evaluation["location"].dtype == object

    def test_evaluation_missing(self, hub):
        with pytest.raises(NotFoundError):
            load_evaluation(hub / "evaluation" / "weekly-summary", "2021-03-15")

    def test_exclusions(self, tmp_path):
        path = tmp_path / "exclusions.csv"
        pd.DataFrame({"model": ["team1-model"], "forecast_date": ["2021-03-08"]}).to_csv(
            path, index=False)
        exclusions = load_exclusions(path)
        assert exclusions["forecast_date"].tolist() == [pd.Timestamp("2021-03-08")]

    def test_exclusions_missing(self, tmp_path):
        with pytest.raises(NotFoundError):
            load_exclusions(tmp_path / "exclusions.csv")


class TestConfig:
    def test_default_config(self):
        cfg = load_config()
        assert "mean" in cfg["ensemble"]["methods"]
        assert cfg["ensemble"]["rel_wis_cutoff"] == float("inf")
