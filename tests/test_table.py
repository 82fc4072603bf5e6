"""
Ranking Table Tests

Best-model selection, tie-breaking, skipped models and the leaderboard frame.
"""

import pytest

from src.comparison.errors import EmptyTableError
from src.comparison.evaluation import AccuracyRecord
from src.comparison.table import ComparisonTable, Metric


def record(name, rmse=1.0, mae=1.0, mape=1.0, mase=1.0, flags=()):
    return AccuracyRecord(model_name=name, rmse=rmse, mae=mae, mape=mape,
                          mase=mase, flags=flags)


@pytest.fixture
def table():
    t = ComparisonTable()
    t.add("ets", record("ets", rmse=2.1, mae=1.9, mape=5.0, mase=0.9))
    t.add("arima", record("arima", rmse=1.5, mae=1.4, mape=6.0, mase=0.7))
    t.add("gam", record("gam", rmse=1.5, mae=1.2, mape=4.0, mase=0.8))
    return t


@pytest.mark.smoke
class TestBestModel:
    """best() returns the lowest value, first inserted on ties"""

    def test_tie_goes_to_first_inserted(self, table):
        assert table.best(Metric.RMSE) == "arima"

    def test_metric_by_name(self, table):
        assert table.best("mae") == "gam"
        assert table.best("MAPE") == "gam"
        assert table.best(Metric.MASE) == "arima"

    def test_best_per_metric(self, table):
        assert table.best_per_metric() == {
            "rmse": "arima",
            "mae": "gam",
            "mape": "gam",
            "mase": "arima",
        }

    def test_ranking_order(self, table):
        names = [name for name, _ in table.ranking("rmse")]
        assert names == ["arima", "gam", "ets"]

    def test_unknown_metric_raises(self, table):
        with pytest.raises(ValueError):
            table.best("smape")


@pytest.mark.fail_loud
class TestEmptyAndUndefined:
    """Empty tables and undefined metrics never pick a model silently"""

    def test_empty_table_raises(self):
        with pytest.raises(EmptyTableError):
            ComparisonTable().best(Metric.RMSE)

    def test_undefined_mape_excluded(self):
        t = ComparisonTable()
        t.add("a", record("a", mape=None, flags=("mape_undefined",)))
        t.add("b", record("b", mape=12.0))
        assert t.best(Metric.MAPE) == "b"

    def test_all_undefined_raises(self):
        t = ComparisonTable()
        t.add("a", record("a", mape=None, flags=("mape_undefined",)))
        with pytest.raises(EmptyTableError):
            t.best(Metric.MAPE)

    def test_only_skipped_raises(self):
        t = ComparisonTable()
        t.add_skipped("arima", "FitError: singular")
        with pytest.raises(EmptyTableError):
            t.best()

    def test_duplicate_name_raises(self, table):
        with pytest.raises(ValueError):
            table.add("ets", record("ets"))

    def test_name_must_match_record(self):
        """Leaderboard rows and ranking names can never disagree"""
        t = ComparisonTable()
        with pytest.raises(ValueError):
            t.add("arima", record("ets"))
        assert len(t) == 0


class TestTableContents:
    """Insertion order, membership and the leaderboard frame"""

    def test_all_preserves_insertion_order(self, table):
        assert [name for name, _ in table.all()] == ["ets", "arima", "gam"]
        assert len(table) == 3
        assert "gam" in table

    def test_skipped_listed_but_not_ranked(self, table):
        table.add_skipped("holt_winters", "FitError: constant series")

        assert table.skipped == ["holt_winters"]
        assert table.get("holt_winters").is_skipped
        assert "holt_winters" not in [name for name, _ in table.ranking()]
        assert table.best() == "arima"

    def test_to_frame_ranks(self, table):
        df = table.to_frame()

        assert list(df["model_name"]) == ["ets", "arima", "gam"]
        assert list(df["rmse_rank"]) == [3.0, 1.0, 2.0]
        assert list(df["mae_rank"]) == [3.0, 2.0, 1.0]
        assert df.loc[df["model_name"] == "arima", "avg_rank"].item() == pytest.approx(1.75)

    def test_to_frame_empty(self):
        assert ComparisonTable().to_frame().empty
