"""
Model Comparison: Model Implementations

One capability interface {fit, predict} with a variant per method:
1. Seasonal naive (baseline)
2. Holt-Winters exponential smoothing
3. ETS (state-space exponential smoothing)
4. ARIMA/SARIMA
5. Auto-ARIMA
6. GAM (penalised spline trend + seasonal effects)

Variants are selected by ModelKind, never by inspecting types at runtime.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from .errors import FitError, PredictionError
from .series import TimeSeries

logger = logging.getLogger(__name__)


class ModelKind(Enum):
    """Forecasting methods available to the comparison"""
    SEASONAL_NAIVE = "seasonal_naive"
    HOLT_WINTERS = "holt_winters"
    ETS = "ets"
    ARIMA = "arima"
    AUTO_ARIMA = "auto_arima"
    GAM = "gam"

    @classmethod
    def parse(cls, value: Union[str, "ModelKind"]) -> "ModelKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(k.value for k in cls)
            raise ValueError(f"Unknown model: {value} (expected one of: {valid})") from None


def _readonly(values) -> Optional[np.ndarray]:
    if values is None:
        return None
    arr = np.array(values, dtype=float, copy=True).reshape(-1)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class ForecastResult:
    """Point forecasts with optional interval bounds, aligned with the test set"""
    model_name: str
    point: np.ndarray
    lower: Optional[np.ndarray] = None
    upper: Optional[np.ndarray] = None
    confidence_level: Optional[float] = None
    index: Optional[pd.Index] = None

    def __post_init__(self):
        point = _readonly(self.point)
        lower = _readonly(self.lower)
        upper = _readonly(self.upper)

        if (lower is None) != (upper is None):
            raise ValueError("lower and upper bounds must be given together")
        for bound in (lower, upper):
            if bound is not None and len(bound) != len(point):
                raise ValueError(
                    f"Interval length ({len(bound)}) != forecast length ({len(point)})"
                )
        if self.index is not None and len(self.index) != len(point):
            raise ValueError(
                f"Index length ({len(self.index)}) != forecast length ({len(point)})"
            )

        object.__setattr__(self, "point", point)
        object.__setattr__(self, "lower", lower)
        object.__setattr__(self, "upper", upper)

    @property
    def horizon(self) -> int:
        return len(self.point)

    @property
    def has_intervals(self) -> bool:
        return self.lower is not None

    def to_frame(self) -> pd.DataFrame:
        """Forecast table [ds, yhat, lo, hi]"""
        df = pd.DataFrame({
            "ds": self.index if self.index is not None else np.arange(self.horizon),
            "yhat": self.point,
        })
        if self.has_intervals:
            df["lo"] = self.lower
            df["hi"] = self.upper
        df.insert(0, "model", self.model_name)
        return df


@dataclass(frozen=True, eq=False)
class FittedModel:
    """Opaque fit result; only the model that produced it may predict from it"""
    model_name: str
    kind: ModelKind
    train: TimeSeries
    result: Any = field(repr=False)
    residuals: Optional[np.ndarray] = field(default=None, repr=False)
    owner: Any = field(default=None, repr=False)


class ForecastModel(ABC):
    """Base class for forecasting models"""

    kind: ModelKind

    def __init__(
        self,
        season_length: int = 1,
        confidence_level: float = 0.95,
        name: Optional[str] = None
    ):
        if int(season_length) < 1:
            raise ValueError(f"season_length must be >= 1, got {season_length}")
        if not 0 < confidence_level < 1:
            raise ValueError(f"confidence_level must be in (0, 1), got {confidence_level}")

        self.season_length = int(season_length)
        self.confidence_level = float(confidence_level)
        self._name = name

    @property
    def name(self) -> str:
        """Model name"""
        return self._name or self.default_name()

    def default_name(self) -> str:
        return self.kind.value

    @property
    def alpha(self) -> float:
        """Significance level matching confidence_level"""
        return 1.0 - self.confidence_level

    @property
    def level(self) -> Union[int, float]:
        """Confidence level in percent, as statsforecast labels its columns"""
        pct = round(self.confidence_level * 100, 6)
        return int(pct) if float(pct).is_integer() else pct

    @property
    def is_seasonal(self) -> bool:
        return self.season_length > 1

    def fit(self, train: TimeSeries) -> FittedModel:
        """
        Fit model to training data

        Raises:
            FitError: preconditions violated or the library fit failed
        """
        if len(train) == 0:
            raise FitError(f"{self.name}: cannot fit an empty series")

        y = np.array(train.values, dtype=float)
        self._check_preconditions(y)

        try:
            result, residuals = self._fit(y)
        except FitError:
            raise
        except Exception as e:
            raise FitError(f"{self.name} fitting failed: {e}") from e

        logger.debug(f"{self.name} fitted on {len(y)} observations")

        return FittedModel(
            model_name=self.name,
            kind=self.kind,
            train=train,
            result=result,
            residuals=_readonly(residuals),
            owner=self,
        )

    def predict(self, fitted: FittedModel, horizon: int) -> ForecastResult:
        """
        Generate forecast for given horizon

        Raises:
            PredictionError: horizon <= 0, foreign fitted model, or library failure
        """
        if isinstance(horizon, bool) or not isinstance(horizon, (int, np.integer)):
            raise PredictionError(f"{self.name}: horizon must be an integer, got {horizon!r}")
        if horizon <= 0:
            raise PredictionError(f"{self.name}: horizon must be positive, got {horizon}")
        if fitted.owner is not self:
            raise PredictionError(
                f"{self.name}: fitted model was produced by {fitted.model_name}"
            )

        h = int(horizon)
        try:
            point, lower, upper = self._predict(fitted, h)
        except PredictionError:
            raise
        except Exception as e:
            raise PredictionError(f"{self.name} prediction failed: {e}") from e

        point = np.asarray(point, dtype=float).reshape(-1)
        if len(point) != h or not np.all(np.isfinite(point)):
            raise PredictionError(f"{self.name}: forecast has invalid values")

        if lower is not None and upper is not None:
            lower = np.asarray(lower, dtype=float).reshape(-1)
            upper = np.asarray(upper, dtype=float).reshape(-1)
            if not (np.all(np.isfinite(lower)) and np.all(np.isfinite(upper))):
                logger.debug(f"{self.name}: non-finite interval bounds dropped")
                lower = upper = None
        else:
            lower = upper = None

        return ForecastResult(
            model_name=self.name,
            point=point,
            lower=lower,
            upper=upper,
            confidence_level=self.confidence_level if lower is not None else None,
            index=fitted.train.future_index(h),
        )

    def _check_preconditions(self, y: np.ndarray) -> None:
        """Raise FitError when the method cannot be fitted to `y`"""

    def _require_history(self, y: np.ndarray, needed: int, why: str) -> None:
        if len(y) < needed:
            raise FitError(f"{self.name}: needs >= {needed} observations ({why}), got {len(y)}")

    def _require_variation(self, y: np.ndarray) -> None:
        if np.ptp(y) == 0:
            raise FitError(f"{self.name}: constant series, optimisation is singular")

    def _require_positive(self, y: np.ndarray, why: str) -> None:
        if np.any(y <= 0):
            raise FitError(f"{self.name}: {why} requires strictly positive data")

    @abstractmethod
    def _fit(self, y: np.ndarray) -> Tuple[Any, Optional[np.ndarray]]:
        """Fit the library model; return (result, in-sample residuals)"""

    @abstractmethod
    def _predict(
        self,
        fitted: FittedModel,
        horizon: int
    ) -> Tuple[np.ndarray, Optional[np.ndarray], Optional[np.ndarray]]:
        """Return (point, lower, upper) for `horizon` steps"""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, season_length={self.season_length})"


def _interval_columns(out: Dict[str, np.ndarray], level) -> Tuple[Optional[np.ndarray], Optional[np.ndarray]]:
    lo_key, hi_key = f"lo-{level}", f"hi-{level}"
    if lo_key in out and hi_key in out:
        return out[lo_key], out[hi_key]
    return None, None


class SeasonalNaiveModel(ForecastModel):
    """Repeat the last observed season (last value when non-seasonal)"""

    kind = ModelKind.SEASONAL_NAIVE

    def _check_preconditions(self, y):
        self._require_history(y, self.season_length, "one full season")

    def _fit(self, y):
        from statsforecast.models import SeasonalNaive

        model = SeasonalNaive(season_length=self.season_length)
        model.fit(y=y)
        m = self.season_length
        residuals = y[m:] - y[:-m]
        return model, residuals

    def _predict(self, fitted, horizon):
        # Intervals need at least one in-sample seasonal difference
        if len(fitted.train) <= self.season_length:
            out = fitted.result.predict(h=horizon)
            return out["mean"], None, None

        out = fitted.result.predict(h=horizon, level=[self.level])
        lower, upper = _interval_columns(out, self.level)
        return out["mean"], lower, upper


class HoltWintersModel(ForecastModel):
    """Holt-Winters exponential smoothing with bootstrapped intervals"""

    kind = ModelKind.HOLT_WINTERS

    def __init__(
        self,
        season_length: int = 1,
        confidence_level: float = 0.95,
        name: Optional[str] = None,
        trend: Optional[str] = "add",
        seasonal: Optional[str] = "add",
        damped_trend: bool = False,
        bootstrap_samples: int = 500,
        random_state: Optional[int] = 0
    ):
        super().__init__(season_length, confidence_level, name)
        self.trend = trend
        self.seasonal = seasonal if self.is_seasonal else None
        self.damped_trend = damped_trend if trend else False
        self.bootstrap_samples = bootstrap_samples
        self.random_state = random_state

    def _check_preconditions(self, y):
        if self.seasonal:
            self._require_history(y, 2 * self.season_length, "two full seasons")
        else:
            self._require_history(y, 3, "level and trend initialisation")
        self._require_variation(y)
        if self.seasonal == "mul" or self.trend == "mul":
            self._require_positive(y, "multiplicative smoothing")

    def _fit(self, y):
        from statsmodels.tsa.holtwinters import ExponentialSmoothing

        model = ExponentialSmoothing(
            y,
            trend=self.trend,
            damped_trend=self.damped_trend,
            seasonal=self.seasonal,
            seasonal_periods=self.season_length if self.seasonal else None,
            initialization_method="estimated",
        )
        fit = model.fit()
        return fit, np.asarray(fit.resid, dtype=float)

    def _predict(self, fitted, horizon):
        point = np.asarray(fitted.result.forecast(horizon), dtype=float)

        lower = upper = None
        residuals = fitted.residuals
        if self.bootstrap_samples and residuals is not None:
            residuals = residuals[np.isfinite(residuals)]
            if residuals.size > 0:
                residuals = residuals - np.mean(residuals)
                rng = np.random.default_rng(self.random_state)
                draws = rng.choice(residuals, size=(self.bootstrap_samples, horizon), replace=True)
                simulations = point + draws
                lower = np.quantile(simulations, self.alpha / 2, axis=0)
                upper = np.quantile(simulations, 1 - self.alpha / 2, axis=0)

        return point, lower, upper


class ETSModel(ForecastModel):
    """State-space exponential smoothing (error, trend, seasonal)"""

    kind = ModelKind.ETS

    def __init__(
        self,
        season_length: int = 1,
        confidence_level: float = 0.95,
        name: Optional[str] = None,
        error: str = "add",
        trend: Optional[str] = "add",
        seasonal: Optional[str] = "add",
        damped_trend: bool = False
    ):
        super().__init__(season_length, confidence_level, name)
        self.error = error
        self.trend = trend
        self.seasonal = seasonal if self.is_seasonal else None
        self.damped_trend = damped_trend if trend else False

    def default_name(self) -> str:
        code = "".join(
            (part or "n")[0].upper()
            for part in (self.error, self.trend, self.seasonal)
        )
        return f"ets({code})"

    def _check_preconditions(self, y):
        if self.seasonal:
            self._require_history(y, 2 * self.season_length, "two full seasons")
        else:
            self._require_history(y, 3, "state initialisation")
        self._require_variation(y)
        if "mul" in (self.error, self.trend, self.seasonal):
            self._require_positive(y, "multiplicative ETS")

    def _fit(self, y):
        from statsmodels.tsa.exponential_smoothing.ets import ETSModel as _ETS

        # get_prediction needs an indexed endog on newer statsmodels
        model = _ETS(
            pd.Series(y),
            error=self.error,
            trend=self.trend,
            damped_trend=self.damped_trend,
            seasonal=self.seasonal,
            seasonal_periods=self.season_length if self.seasonal else None,
        )
        fit = model.fit(disp=False)
        return fit, np.asarray(fit.resid, dtype=float)

    def _predict(self, fitted, horizon):
        n = len(fitted.train)
        pred = fitted.result.get_prediction(start=n, end=n + horizon - 1)
        frame = pred.summary_frame(alpha=self.alpha)
        return (
            frame["mean"].to_numpy(),
            frame["pi_lower"].to_numpy(),
            frame["pi_upper"].to_numpy(),
        )


class ARIMAModel(ForecastModel):
    """ARIMA/SARIMA model wrapper"""

    kind = ModelKind.ARIMA

    def __init__(
        self,
        season_length: int = 1,
        confidence_level: float = 0.95,
        name: Optional[str] = None,
        order: Tuple[int, int, int] = (1, 1, 1),
        seasonal_order: Optional[Tuple[int, int, int]] = None,
        trend: Optional[str] = None
    ):
        super().__init__(season_length, confidence_level, name)
        self.order = tuple(order)
        # Seasonal (P, D, Q); the period always comes from season_length
        if seasonal_order is None or not self.is_seasonal:
            self.seasonal_order = (0, 0, 0, 0)
        else:
            self.seasonal_order = tuple(seasonal_order[:3]) + (self.season_length,)
        self.trend = trend

    def default_name(self) -> str:
        if any(self.seasonal_order[:3]):
            return f"arima{self.order}{self.seasonal_order[:3]}[{self.season_length}]"
        return f"arima{self.order}"

    def _check_preconditions(self, y):
        p, d, q = self.order
        P, D, Q, s = self.seasonal_order
        needed = d + D * s + max(p + P * s, q + Q * s) + 2
        self._require_history(y, needed, f"order {self.order}x{self.seasonal_order}")
        self._require_variation(y)

    def _fit(self, y):
        from statsmodels.tsa.arima.model import ARIMA

        model = ARIMA(
            y,
            order=self.order,
            seasonal_order=self.seasonal_order,
            trend=self.trend,
        )
        fit = model.fit()
        logger.debug(f"ARIMA{self.order} fitted successfully")
        return fit, np.asarray(fit.resid, dtype=float)

    def _predict(self, fitted, horizon):
        forecast = fitted.result.get_forecast(steps=horizon)
        point = np.asarray(forecast.predicted_mean, dtype=float)
        conf = np.asarray(forecast.conf_int(alpha=self.alpha), dtype=float)
        return point, conf[:, 0], conf[:, 1]


class AutoARIMAModel(ForecastModel):
    """Order-selected ARIMA (statsforecast AutoARIMA)"""

    kind = ModelKind.AUTO_ARIMA

    def _check_preconditions(self, y):
        needed = 2 * self.season_length if self.is_seasonal else 4
        self._require_history(y, needed, "order search")

    def _fit(self, y):
        from statsforecast.models import AutoARIMA

        model = AutoARIMA(season_length=self.season_length)
        model.fit(y=y)
        fitted_values = model.predict_in_sample()["fitted"]
        return model, y - np.asarray(fitted_values, dtype=float)

    def _predict(self, fitted, horizon):
        out = fitted.result.predict(h=horizon, level=[self.level])
        lower, upper = _interval_columns(out, self.level)
        return out["mean"], lower, upper


class GAMModel(ForecastModel):
    """
    Generalized additive model: y ~ s(t) + season

    The smooth of time is a penalised cubic B-spline whose outer knot sits
    `max_horizon` steps past the last observation, so forecasts extrapolate
    the final spline segment. Seasonality enters as fixed dummy effects.
    """

    kind = ModelKind.GAM

    def __init__(
        self,
        season_length: int = 1,
        confidence_level: float = 0.95,
        name: Optional[str] = None,
        df: int = 6,
        penalty: float = 1.0,
        max_horizon: int = 24
    ):
        super().__init__(season_length, confidence_level, name)
        if max_horizon <= 0:
            raise ValueError(f"max_horizon must be positive, got {max_horizon}")
        self.df = int(df)
        self.penalty = float(penalty)
        self.max_horizon = int(max_horizon)

    def _design(self, t: np.ndarray) -> np.ndarray:
        """Intercept plus one dummy per non-reference seasonal position"""
        columns = [np.ones(len(t))]
        if self.is_seasonal:
            phase = t.astype(int) % self.season_length
            for k in range(1, self.season_length):
                columns.append((phase == k).astype(float))
        return np.column_stack(columns)

    def _check_preconditions(self, y):
        needed = max(self.df + self.season_length + 1, 2 * self.season_length)
        self._require_history(y, needed, f"spline df={self.df} plus seasonal effects")

    def _fit(self, y):
        from statsmodels.gam.api import BSplines, GLMGam

        n = len(y)
        t = np.arange(n, dtype=float)
        smoother = BSplines(
            t[:, None],
            df=[self.df],
            degree=[3],
            knot_kwds=[{"lower_bound": 0.0, "upper_bound": float(n - 1 + self.max_horizon)}],
        )
        model = GLMGam(y, exog=self._design(t), smoother=smoother, alpha=self.penalty)
        fit = model.fit()
        return fit, np.asarray(fit.resid_response, dtype=float)

    def _predict(self, fitted, horizon):
        from scipy import stats

        if horizon > self.max_horizon:
            raise PredictionError(
                f"{self.name}: horizon {horizon} exceeds max_horizon {self.max_horizon}"
            )

        n = len(fitted.train)
        t_new = np.arange(n, n + horizon, dtype=float)
        pred = fitted.result.get_prediction(
            exog=self._design(t_new),
            exog_smooth=t_new[:, None],
        )
        frame = pred.summary_frame(alpha=self.alpha)
        point = frame["mean"].to_numpy()
        se_mean = frame["mean_se"].to_numpy()

        # Prediction interval: parameter uncertainty plus residual variance
        z = stats.norm.ppf(1 - self.alpha / 2)
        half_width = z * np.sqrt(se_mean ** 2 + fitted.result.scale)
        return point, point - half_width, point + half_width


class ModelFactory:
    """Factory for creating model instances"""

    _models = {
        ModelKind.SEASONAL_NAIVE: SeasonalNaiveModel,
        ModelKind.HOLT_WINTERS: HoltWintersModel,
        ModelKind.ETS: ETSModel,
        ModelKind.ARIMA: ARIMAModel,
        ModelKind.AUTO_ARIMA: AutoARIMAModel,
        ModelKind.GAM: GAMModel,
    }

    @classmethod
    def create(cls, kind: Union[str, ModelKind], **kwargs) -> ForecastModel:
        """Create model by kind"""
        return cls._models[ModelKind.parse(kind)](**kwargs)

    @classmethod
    def list_models(cls) -> List[str]:
        """List available models"""
        return [kind.value for kind in cls._models]
