"""
Smoke Tests: end-to-end CLI runs on synthetic data

No external data or network access; every dataset is generated in-process.
"""

import json

import pandas as pd
import pytest
from typer.testing import CliRunner

from src.comparison.cli import app
from src.comparison.config import ComparisonConfig
from src.comparison.datasets import get_dataset, list_datasets, load_csv
from src.comparison.io_utils import write_report
from src.comparison.training import compare_models

runner = CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("SEASON_LENGTH", "HOLDOUT", "MODELS", "DATASET", "ARTIFACTS_DIR"):
        monkeypatch.delenv(f"FORECAST_{name}", raising=False)


@pytest.mark.smoke
class TestCli:
    """Typer commands run and exit cleanly"""

    def test_list_models(self):
        result = runner.invoke(app, ["list-models"])
        assert result.exit_code == 0
        assert "seasonal_naive" in result.stdout
        assert "gam" in result.stdout

    def test_compare(self):
        result = runner.invoke(app, [
            "compare", "--dataset", "quarterly",
            "-m", "seasonal_naive", "-m", "arima",
        ])
        assert result.exit_code == 0, result.stdout
        assert "Best by RMSE" in result.stdout

    def test_compare_saves_artifacts(self, tmp_path):
        out = tmp_path / "run"
        result = runner.invoke(app, [
            "compare", "--dataset", "random_walk", "--holdout", "6",
            "-m", "seasonal_naive", "-m", "arima",
            "--no-residuals", "--save", "--artifacts-dir", str(out),
        ])
        assert result.exit_code == 0, result.stdout
        assert (out / "leaderboard.csv").exists()
        assert (out / "forecasts.csv").exists()

        summary = json.loads((out / "summary.json").read_text())
        assert summary["dataset"] == "random_walk"
        assert summary["season_length"] == 1

    def test_compare_from_csv(self, tmp_path):
        series = get_dataset("quarterly").series.to_pandas()
        path = tmp_path / "quarterly.csv"
        pd.DataFrame({"ds": series.index, "y": series.values}).to_csv(path, index=False)

        result = runner.invoke(app, [
            "compare", "--csv", str(path), "--season-length", "4",
            "--holdout", "4", "-m", "seasonal_naive",
        ])
        assert result.exit_code == 0, result.stdout

    def test_backtest(self):
        result = runner.invoke(app, [
            "backtest", "--dataset", "quarterly", "--holdout", "4",
            "--n-windows", "2", "-m", "seasonal_naive", "-m", "ets",
        ])
        assert result.exit_code == 0, result.stdout

    def test_diagnose(self):
        result = runner.invoke(app, ["diagnose", "--dataset", "monthly"])
        assert result.exit_code == 0, result.stdout
        assert "Suggested differencing" in result.stdout

    @pytest.mark.fail_loud
    def test_unknown_model_exits_cleanly(self):
        result = runner.invoke(app, ["compare", "--dataset", "quarterly", "-m", "lstm"])
        assert result.exit_code == 1
        assert "Invalid options" in result.stdout
        assert not isinstance(result.exception, ValueError)

    @pytest.mark.fail_loud
    def test_unknown_metric_exits_cleanly(self):
        result = runner.invoke(app, [
            "backtest", "--dataset", "quarterly", "--metric", "smape", "-m", "seasonal_naive",
        ])
        assert result.exit_code == 1
        assert "Invalid options" in result.stdout

    @pytest.mark.fail_loud
    def test_csv_requires_season_length(self, tmp_path):
        path = tmp_path / "series.csv"
        pd.DataFrame({
            "ds": pd.date_range("2020-01-01", periods=12, freq="MS"),
            "y": range(1, 13),
        }).to_csv(path, index=False)

        result = runner.invoke(app, ["compare", "--csv", str(path), "-m", "seasonal_naive"])

        assert result.exit_code == 1
        assert "--season-length" in result.stdout

    @pytest.mark.fail_loud
    def test_holdout_too_large_exits_nonzero(self):
        result = runner.invoke(app, [
            "compare", "--dataset", "quarterly", "--holdout", "100", "-m", "seasonal_naive",
        ])
        assert result.exit_code == 1


class TestDatasetsAndArtifacts:
    """Dataset provider and report persistence"""

    @pytest.mark.parametrize("name", list_datasets())
    def test_datasets_are_seeded(self, name):
        a = get_dataset(name)
        b = get_dataset(name)
        assert a.series == b.series
        assert a.season_length >= 1

    def test_unknown_dataset_raises(self):
        with pytest.raises(ValueError):
            get_dataset("airline")

    def test_load_csv_sorts_rows(self, tmp_path):
        path = tmp_path / "unsorted.csv"
        pd.DataFrame({
            "ds": ["2024-03-01", "2024-01-01", "2024-02-01"],
            "y": [3.0, 1.0, 2.0],
        }).to_csv(path, index=False)

        data = load_csv(path, season_length=1)

        assert list(data.series.values) == [1.0, 2.0, 3.0]
        assert data.name == "unsorted"

    @pytest.mark.fail_loud
    def test_load_csv_duplicate_timestamps_raise(self, tmp_path):
        path = tmp_path / "dup.csv"
        pd.DataFrame({"ds": ["2024-01-01", "2024-01-01"], "y": [1.0, 2.0]}).to_csv(path, index=False)
        with pytest.raises(ValueError):
            load_csv(path, season_length=1)

    def test_write_report(self, tmp_path):
        data = get_dataset("quarterly")
        report = compare_models(data.series, models=["seasonal_naive", "ets"],
                                season_length=4, holdout=8)
        cfg = ComparisonConfig(artifacts_dir=str(tmp_path))

        paths = write_report(report, cfg)

        leaderboard = pd.read_csv(paths["leaderboard"])
        forecasts = pd.read_csv(paths["forecasts"])
        assert list(leaderboard["model_name"]) == ["seasonal_naive", "ets(AAA)"]
        assert len(forecasts) == 16
        assert forecasts["actual"].notna().all()
