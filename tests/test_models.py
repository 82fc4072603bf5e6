"""
Model Runner Tests

Every variant honours the same contract: fit on the training prefix, return
exactly `horizon` finite forecasts, fail with FitError / PredictionError.
"""

import numpy as np
import pandas as pd
import pytest

from src.comparison.backtesting import split_series
from src.comparison.datasets import quarterly_seasonal, random_walk
from src.comparison.errors import FitError, PredictionError
from src.comparison.models import (ARIMAModel, ETSModel, ForecastResult,
                                   GAMModel, HoltWintersModel, ModelFactory,
                                   ModelKind, SeasonalNaiveModel)
from src.comparison.series import TimeSeries


@pytest.fixture(scope="module")
def quarterly_split():
    return split_series(quarterly_seasonal().series, 8)


@pytest.mark.smoke
class TestSeasonalNaive:
    """Baseline repeats the last observed season"""

    def test_repeats_last_season(self):
        train = TimeSeries.from_values([10.0, 20.0, 30.0, 40.0] * 3)
        model = SeasonalNaiveModel(season_length=4)

        forecast = model.predict(model.fit(train), horizon=8)

        np.testing.assert_allclose(
            forecast.point, [10.0, 20.0, 30.0, 40.0, 10.0, 20.0, 30.0, 40.0]
        )

    def test_non_seasonal_repeats_last_value(self):
        train = TimeSeries.from_values([3.0, 5.0, 4.0, 7.0])
        model = SeasonalNaiveModel(season_length=1)

        forecast = model.predict(model.fit(train), horizon=3)

        np.testing.assert_allclose(forecast.point, [7.0, 7.0, 7.0])

    def test_one_season_of_history_forecasts_without_intervals(self):
        """No in-sample seasonal difference exists, so no interval is reported"""
        model = SeasonalNaiveModel(season_length=4)
        forecast = model.predict(model.fit(TimeSeries.from_values([1.0, 2.0, 3.0, 4.0])), horizon=4)

        np.testing.assert_allclose(forecast.point, [1.0, 2.0, 3.0, 4.0])
        assert not forecast.has_intervals

    def test_residuals_are_seasonal_differences(self):
        train = TimeSeries.from_values([1.0, 2.0, 4.0, 7.0, 11.0])
        fitted = SeasonalNaiveModel(season_length=2).fit(train)
        np.testing.assert_allclose(fitted.residuals, [3.0, 5.0, 7.0])

    def test_forecast_index_continues_series(self, quarterly_split):
        model = SeasonalNaiveModel(season_length=4)
        forecast = model.predict(model.fit(quarterly_split.train), horizon=8)
        assert forecast.index.equals(quarterly_split.test.index)


@pytest.mark.parametrize("kind", [
    ModelKind.SEASONAL_NAIVE,
    ModelKind.HOLT_WINTERS,
    ModelKind.ETS,
    ModelKind.ARIMA,
    ModelKind.AUTO_ARIMA,
    ModelKind.GAM,
])
class TestModelContract:
    """Shared fit/predict behaviour across all variants"""

    def test_forecast_length_and_finite(self, kind, quarterly_split):
        model = ModelFactory.create(kind, season_length=4)
        forecast = model.predict(model.fit(quarterly_split.train), horizon=8)

        assert forecast.horizon == 8
        assert np.all(np.isfinite(forecast.point))

    def test_intervals_ordered(self, kind, quarterly_split):
        model = ModelFactory.create(kind, season_length=4)
        forecast = model.predict(model.fit(quarterly_split.train), horizon=8)

        if forecast.has_intervals:
            assert np.all(forecast.lower <= forecast.upper)
            assert forecast.confidence_level == pytest.approx(0.95)

    def test_residuals_finite_where_present(self, kind, quarterly_split):
        fitted = ModelFactory.create(kind, season_length=4).fit(quarterly_split.train)
        assert fitted.kind == kind
        assert fitted.residuals is not None
        assert np.isfinite(fitted.residuals).any()

    def test_non_positive_horizon_raises(self, kind, quarterly_split):
        model = ModelFactory.create(kind, season_length=4)
        fitted = model.fit(quarterly_split.train)
        with pytest.raises(PredictionError):
            model.predict(fitted, horizon=0)

    def test_foreign_fitted_model_raises(self, kind, quarterly_split):
        """A model refuses fit results it did not produce"""
        fitted = ModelFactory.create(kind, season_length=4).fit(quarterly_split.train)
        other = ModelFactory.create(kind, season_length=4)
        with pytest.raises(PredictionError):
            other.predict(fitted, horizon=4)


@pytest.mark.fail_loud
class TestFitFailures:
    """Preconditions surface as FitError before the library is called"""

    def test_holt_winters_needs_two_seasons(self):
        short = TimeSeries.from_values([1.0, 2.0, 3.0, 4.0, 5.0])
        with pytest.raises(FitError):
            HoltWintersModel(season_length=4).fit(short)

    def test_arima_constant_series(self):
        constant = TimeSeries.from_values(np.full(30, 5.0))
        with pytest.raises(FitError):
            ARIMAModel().fit(constant)

    def test_ets_constant_series(self):
        constant = TimeSeries.from_values(np.full(30, 5.0))
        with pytest.raises(FitError):
            ETSModel(season_length=1).fit(constant)

    def test_multiplicative_needs_positive_data(self):
        data = np.tile([1.0, -2.0, 3.0, 4.0], 4)
        with pytest.raises(FitError):
            HoltWintersModel(season_length=4, seasonal="mul").fit(TimeSeries.from_values(data))

    def test_seasonal_naive_needs_one_season(self):
        with pytest.raises(FitError):
            SeasonalNaiveModel(season_length=12).fit(TimeSeries.from_values(np.arange(6.0)))

    def test_gam_horizon_beyond_max_raises(self, quarterly_split):
        model = GAMModel(season_length=4, max_horizon=4)
        fitted = model.fit(quarterly_split.train)

        assert model.predict(fitted, horizon=4).horizon == 4
        with pytest.raises(PredictionError):
            model.predict(fitted, horizon=5)

    def test_fit_error_is_comparison_error(self):
        from src.comparison.errors import ComparisonError
        assert issubclass(FitError, ComparisonError)
        assert issubclass(PredictionError, ComparisonError)


class TestModelConfiguration:
    """Names, kinds and factory lookups"""

    def test_factory_lists_every_kind(self):
        assert ModelFactory.list_models() == [k.value for k in ModelKind]

    def test_parse_is_case_insensitive(self):
        assert ModelKind.parse(" ARIMA ") is ModelKind.ARIMA

    def test_unknown_kind_raises(self):
        with pytest.raises(ValueError):
            ModelFactory.create("prophet")

    def test_default_names(self):
        assert ETSModel(season_length=4).name == "ets(AAA)"
        assert ETSModel(season_length=1).name == "ets(AAN)"
        assert ARIMAModel().name == "arima(1, 1, 1)"
        assert ARIMAModel(season_length=4, seasonal_order=(0, 1, 1)).name == \
            "arima(1, 1, 1)(0, 1, 1)[4]"

    def test_custom_name(self):
        assert ARIMAModel(name="ar1", order=(1, 0, 0)).name == "ar1"

    def test_level_in_percent(self):
        assert SeasonalNaiveModel(confidence_level=0.95).level == 95
        assert SeasonalNaiveModel(confidence_level=0.8).level == 80

    def test_invalid_confidence_level_raises(self):
        with pytest.raises(ValueError):
            SeasonalNaiveModel(confidence_level=1.5)

    def test_non_seasonal_random_walk_arima(self):
        series = random_walk(n=60).series
        split = split_series(series, 6)
        model = ARIMAModel(order=(0, 1, 0))
        forecast = model.predict(model.fit(split.train), horizon=6)
        assert forecast.horizon == 6


class TestExponentialSmoothingPrediction:
    """ETS forecasts from raw arrays across statsmodels releases"""

    def test_ets_forecast_with_intervals(self, quarterly_split):
        model = ETSModel(season_length=4)
        forecast = model.predict(model.fit(quarterly_split.train), horizon=8)

        assert forecast.horizon == 8
        assert forecast.has_intervals
        assert np.all(forecast.lower <= forecast.point)
        assert np.all(forecast.point <= forecast.upper)

    def test_ets_damped_non_seasonal(self):
        series = random_walk(n=60, drift=0.5).series
        model = ETSModel(season_length=1, damped_trend=True)
        forecast = model.predict(model.fit(series), horizon=5)
        assert np.all(np.isfinite(forecast.point))


class TestForecastResult:
    """Forecast containers are read-only and self-consistent"""

    def test_point_read_only(self):
        result = ForecastResult(model_name="m", point=np.array([1.0, 2.0]))
        with pytest.raises(ValueError):
            result.point[0] = 5.0

    def test_bounds_must_come_together(self):
        with pytest.raises(ValueError):
            ForecastResult(model_name="m", point=np.ones(2), lower=np.zeros(2))

    def test_interval_length_checked(self):
        with pytest.raises(ValueError):
            ForecastResult(model_name="m", point=np.ones(3),
                           lower=np.zeros(2), upper=np.ones(2))

    def test_to_frame(self):
        index = pd.date_range("2024-01-01", periods=2, freq="MS")
        result = ForecastResult(model_name="m", point=np.array([1.0, 2.0]),
                                lower=np.array([0.0, 1.0]), upper=np.array([2.0, 3.0]),
                                index=index)
        df = result.to_frame()
        assert list(df.columns) == ["model", "ds", "yhat", "lo", "hi"]
        assert (df["model"] == "m").all()
