# file: src/comparison/evaluation.py
"""
Model Comparison: Accuracy Metrics

Computes RMSE, MAE, MAPE and MASE between a forecast and held-out actuals.

Fail-loud principle:
- Length mismatches raise LengthMismatchError
- A zero actual makes MAPE undefined: flagged on the record, never a number
- The MASE scale comes from the training series and is computed once per run
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from .errors import InsufficientDataError, LengthMismatchError, MapeUndefined
from .series import TimeSeries

logger = logging.getLogger(__name__)

MAPE_UNDEFINED = "mape_undefined"
MASE_UNDEFINED = "mase_undefined"


@dataclass(frozen=True)
class AccuracyRecord:
    """Per-model accuracy on one holdout"""
    model_name: str
    rmse: Optional[float] = None
    mae: Optional[float] = None
    mape: Optional[float] = None
    mase: Optional[float] = None
    coverage: Optional[float] = None
    flags: Tuple[str, ...] = ()
    status: str = "ok"
    error: Optional[str] = None

    @classmethod
    def skipped(cls, model_name: str, reason: str) -> "AccuracyRecord":
        """Entry for a model whose fit or predict failed"""
        return cls(model_name=model_name, status="skipped", error=reason)

    @property
    def is_skipped(self) -> bool:
        return self.status == "skipped"

    @property
    def mape_undefined(self) -> bool:
        return MAPE_UNDEFINED in self.flags

    def metric(self, name: str) -> Optional[float]:
        """Metric value by lowercase name, None if unavailable"""
        return getattr(self, name)

    def to_dict(self) -> Dict:
        return {
            "model_name": self.model_name,
            "rmse": self.rmse,
            "mae": self.mae,
            "mape": self.mape,
            "mase": self.mase,
            "coverage": self.coverage,
            "flags": ",".join(self.flags),
            "status": self.status,
            "error": self.error,
        }


class ForecastMetrics:
    """Forecast error metrics on aligned numpy arrays"""

    @staticmethod
    def _check_lengths(y_true: np.ndarray, y_pred: np.ndarray) -> None:
        if len(y_true) != len(y_pred):
            raise LengthMismatchError(
                f"Forecast length ({len(y_pred)}) != actual length ({len(y_true)})"
            )
        if len(y_true) == 0:
            raise InsufficientDataError("Cannot score an empty forecast")

    @staticmethod
    def rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
        """Root Mean Squared Error: sqrt(mean((f - a)^2))"""
        ForecastMetrics._check_lengths(y_true, y_pred)
        return float(np.sqrt(np.mean((y_pred - y_true) ** 2)))

    @staticmethod
    def mae(y_true: np.ndarray, y_pred: np.ndarray) -> float:
        """Mean Absolute Error: mean(|f - a|)"""
        ForecastMetrics._check_lengths(y_true, y_pred)
        return float(np.mean(np.abs(y_pred - y_true)))

    @staticmethod
    def mape(y_true: np.ndarray, y_pred: np.ndarray) -> float:
        """
        Mean Absolute Percentage Error (%)

        mean(|f - a| / |a|) * 100

        Raises:
            MapeUndefined: any actual value is exactly zero
        """
        ForecastMetrics._check_lengths(y_true, y_pred)

        n_zero = int((y_true == 0).sum())
        if n_zero:
            raise MapeUndefined(f"{n_zero} actual value(s) equal zero")

        ape = np.abs(y_pred - y_true) / np.abs(y_true)
        return float(100 * np.mean(ape))

    @staticmethod
    def mase(
        y_true: np.ndarray,
        y_pred: np.ndarray,
        scale: float
    ) -> float:
        """
        Mean Absolute Scaled Error

        Test MAE divided by the in-sample seasonal naive MAE (`scale`,
        see mase_scale). Returns NaN when the scale is zero.
        """
        mae_test = ForecastMetrics.mae(y_true, y_pred)

        if not np.isfinite(scale) or scale <= 0:
            return np.nan

        return float(mae_test / scale)

    @staticmethod
    def coverage(
        y_true: np.ndarray,
        lower: np.ndarray,
        upper: np.ndarray
    ) -> float:
        """
        Prediction Interval Coverage (%)

        Percentage of actual values within [lower, upper].
        """
        ForecastMetrics._check_lengths(y_true, lower)
        ForecastMetrics._check_lengths(y_true, upper)

        covered = (y_true >= lower) & (y_true <= upper)
        return float(100 * np.mean(covered))


def mase_scale(train: TimeSeries, season_length: int = 1) -> float:
    """
    In-sample MAE of the seasonal naive forecast: mean(|y_t - y_{t-lag}|)

    Compute once per comparison run and pass the value to every evaluate()
    call so all models share the same denominator.

    Args:
        train: Training series
        season_length: Seasonal period (lag); 1 for non-seasonal data

    Raises:
        InsufficientDataError: training series not longer than the lag
    """
    lag = int(season_length)
    if lag < 1:
        raise ValueError(f"season_length must be >= 1, got {season_length}")

    y = train.values
    if len(y) <= lag:
        raise InsufficientDataError(
            f"MASE scale needs more than {lag} training observations, got {len(y)}"
        )

    return float(np.mean(np.abs(y[lag:] - y[:-lag])))


def evaluate(
    forecast,
    actual: TimeSeries,
    scale: float,
    model_name: str = "model"
) -> AccuracyRecord:
    """
    Score one forecast against the held-out actuals

    Args:
        forecast: ForecastResult aligned index-for-index with `actual`
        actual: Held-out series
        scale: MASE denominator from mase_scale(train, season_length)
        model_name: Label stored on the record

    Returns:
        AccuracyRecord with undefined metrics flagged

    Raises:
        LengthMismatchError: forecast and actual lengths differ
    """
    y_pred = np.asarray(forecast.point, dtype=float)
    y_true = np.asarray(actual.values, dtype=float)

    if len(y_pred) != len(y_true):
        raise LengthMismatchError(
            f"{model_name}: forecast length ({len(y_pred)}) != "
            f"actual length ({len(y_true)})"
        )

    flags = []

    try:
        mape_val = ForecastMetrics.mape(y_true, y_pred)
    except MapeUndefined as e:
        logger.warning(f"{model_name}: MAPE undefined ({e})")
        mape_val = None
        flags.append(MAPE_UNDEFINED)

    mase_val = ForecastMetrics.mase(y_true, y_pred, scale)
    if np.isnan(mase_val):
        logger.warning(f"{model_name}: MASE undefined (scale={scale})")
        mase_val = None
        flags.append(MASE_UNDEFINED)

    coverage_val = None
    if forecast.has_intervals:
        coverage_val = ForecastMetrics.coverage(y_true, forecast.lower, forecast.upper)

    return AccuracyRecord(
        model_name=model_name,
        rmse=ForecastMetrics.rmse(y_true, y_pred),
        mae=ForecastMetrics.mae(y_true, y_pred),
        mape=mape_val,
        mase=mase_val,
        coverage=coverage_val,
        flags=tuple(flags),
    )
