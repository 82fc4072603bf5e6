# file: src/comparison/diagnostics.py
"""
Model Comparison: Series and Residual Diagnostics

- STL decomposition with strength-of-trend / strength-of-seasonality
- ADF + KPSS stationarity tests and a differencing suggestion
- Ljung-Box test on the in-sample residuals of a fitted model
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .errors import InsufficientDataError
from .models import FittedModel
from .series import TimeSeries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Decomposition:
    """STL components (trend + seasonal + remainder == observed)"""
    observed: np.ndarray
    trend: np.ndarray
    seasonal: np.ndarray
    remainder: np.ndarray
    period: int

    @property
    def trend_strength(self) -> float:
        """max(0, 1 - Var(R) / Var(T + R))"""
        return _strength(self.remainder, self.trend + self.remainder)

    @property
    def seasonal_strength(self) -> float:
        """max(0, 1 - Var(R) / Var(S + R))"""
        return _strength(self.remainder, self.seasonal + self.remainder)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "observed": self.observed,
            "trend": self.trend,
            "seasonal": self.seasonal,
            "remainder": self.remainder,
        })


def _strength(remainder: np.ndarray, combined: np.ndarray) -> float:
    var_combined = np.var(combined)
    if var_combined == 0:
        return 0.0
    return float(max(0.0, 1.0 - np.var(remainder) / var_combined))


def decompose(series: TimeSeries, period: int, robust: bool = True) -> Decomposition:
    """
    STL decomposition

    Args:
        series: Series to decompose
        period: Seasonal period (>= 2)
        robust: Use robust LOESS weights

    Raises:
        InsufficientDataError: fewer than two full periods
    """
    from statsmodels.tsa.seasonal import STL

    if period < 2:
        raise ValueError(f"STL needs period >= 2, got {period}")
    if len(series) < 2 * period:
        raise InsufficientDataError(
            f"STL needs >= {2 * period} observations, got {len(series)}"
        )

    y = np.array(series.values, dtype=float)
    result = STL(y, period=period, robust=robust).fit()

    decomposition = Decomposition(
        observed=y,
        trend=np.asarray(result.trend, dtype=float),
        seasonal=np.asarray(result.seasonal, dtype=float),
        remainder=np.asarray(result.resid, dtype=float),
        period=period,
    )
    logger.info(
        f"{series.name}: trend strength {decomposition.trend_strength:.3f}, "
        f"seasonal strength {decomposition.seasonal_strength:.3f}"
    )
    return decomposition


@dataclass(frozen=True)
class StatTestOutcome:
    """One hypothesis test result"""
    name: str
    statistic: float
    pvalue: float
    stationary: bool
    lags: Optional[int] = None


@dataclass(frozen=True)
class StationarityReport:
    """ADF (H0: unit root) and KPSS (H0: stationary) together"""
    adf: StatTestOutcome
    kpss: StatTestOutcome
    alpha: float

    @property
    def verdict(self) -> str:
        """stationary / non-stationary / inconclusive"""
        if self.adf.stationary and self.kpss.stationary:
            return "stationary"
        if not self.adf.stationary and not self.kpss.stationary:
            return "non-stationary"
        return "inconclusive"

    @property
    def is_stationary(self) -> bool:
        return self.verdict == "stationary"

    def to_records(self) -> List[Dict]:
        return [
            {"test": t.name, "statistic": t.statistic, "pvalue": t.pvalue,
             "stationary": t.stationary, "lags": t.lags}
            for t in (self.adf, self.kpss)
        ]


def _as_array(series) -> np.ndarray:
    if isinstance(series, TimeSeries):
        return np.array(series.values, dtype=float)
    return np.asarray(series, dtype=float)


def stationarity_report(series, alpha: float = 0.05) -> StationarityReport:
    """
    Run ADF and KPSS on a series

    ADF rejects a unit root when p < alpha; KPSS keeps stationarity when
    p > alpha. KPSS p-values are clipped to its lookup table range.
    """
    from statsmodels.tsa.stattools import adfuller, kpss

    y = _as_array(series)
    if len(y) < 8:
        raise InsufficientDataError(f"Stationarity tests need >= 8 observations, got {len(y)}")
    if np.ptp(y) == 0:
        raise ValueError("Stationarity tests are undefined for a constant series")

    adf_stat, adf_pval, adf_usedlag, _, _, _ = adfuller(y, autolag="AIC")

    # KPSS warns when the p-value falls outside its interpolation table
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        kpss_stat, kpss_pval, kpss_lags, _ = kpss(y, regression="c", nlags="auto")

    return StationarityReport(
        adf=StatTestOutcome(
            name="adf",
            statistic=float(adf_stat),
            pvalue=float(adf_pval),
            stationary=bool(adf_pval < alpha),
            lags=int(adf_usedlag),
        ),
        kpss=StatTestOutcome(
            name="kpss",
            statistic=float(kpss_stat),
            pvalue=float(kpss_pval),
            stationary=bool(kpss_pval > alpha),
            lags=int(kpss_lags),
        ),
        alpha=alpha,
    )


def suggest_differencing(
    series,
    period: int = 1,
    max_d: int = 2,
    alpha: float = 0.05
) -> Tuple[int, int]:
    """
    Differences (d, D) needed before the series tests stationary

    One seasonal difference is taken first when period > 1 and the seasonal
    strength of the series is at least 0.64, then ordinary differences until
    KPSS no longer rejects stationarity.
    """
    y = _as_array(series)
    D = 0

    if period > 1 and len(y) >= 2 * period:
        ts = TimeSeries.from_values(y)
        if decompose(ts, period).seasonal_strength >= 0.64:
            y = y[period:] - y[:-period]
            D = 1

    d = 0
    while d < max_d and len(y) >= 8 and np.ptp(y) > 0:
        if stationarity_report(y, alpha=alpha).kpss.stationary:
            break
        y = np.diff(y)
        d += 1

    logger.info(f"Suggested differencing: d={d}, D={D} (period {period})")
    return d, D


@dataclass(frozen=True)
class ResidualDiagnostics:
    """Ljung-Box white-noise check on model residuals"""
    model_name: str
    lags: Tuple[int, ...]
    statistics: Tuple[float, ...]
    pvalues: Tuple[float, ...]
    alpha: float
    residual_mean: float
    residual_std: float

    @property
    def is_white_noise(self) -> bool:
        """No lag rejects the white-noise null"""
        return all(p > self.alpha for p in self.pvalues)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "lag": self.lags,
            "lb_stat": self.statistics,
            "lb_pvalue": self.pvalues,
        })


def residual_diagnostics(
    fitted: FittedModel,
    lags: Optional[Sequence[int]] = None,
    alpha: float = 0.05,
    skip: int = 0
) -> ResidualDiagnostics:
    """
    Ljung-Box test on a fitted model's in-sample residuals

    Args:
        fitted: FittedModel, normally the ranking winner of a comparison
        lags: Lags to test (default: min(10, n // 5) and twice the seasonal
            period of the training data when it fits)
        alpha: Significance level
        skip: Leading residuals to drop (burn-in of differenced models)
    """
    from statsmodels.stats.diagnostic import acorr_ljungbox

    if fitted.residuals is None:
        raise ValueError(f"{fitted.model_name}: no residuals available")

    resid = np.asarray(fitted.residuals, dtype=float)[skip:]
    resid = resid[np.isfinite(resid)]
    n = len(resid)
    if n < 4:
        raise InsufficientDataError(f"{fitted.model_name}: only {n} residuals")

    if lags is None:
        lags = [max(1, min(10, n // 5))]
        period = getattr(fitted.owner, "season_length", 1)
        if period > 1 and 2 * period < n:
            lags.append(2 * period)
    lags = sorted({int(lag) for lag in lags if 0 < int(lag) < n})
    if not lags:
        raise InsufficientDataError(f"{fitted.model_name}: no testable lags for {n} residuals")

    lb = acorr_ljungbox(resid, lags=lags, return_df=True)

    return ResidualDiagnostics(
        model_name=fitted.model_name,
        lags=tuple(lags),
        statistics=tuple(float(v) for v in lb["lb_stat"].to_numpy()),
        pvalues=tuple(float(v) for v in lb["lb_pvalue"].to_numpy()),
        alpha=alpha,
        residual_mean=float(np.mean(resid)),
        residual_std=float(np.std(resid, ddof=1)),
    )
