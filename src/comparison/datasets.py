"""
Model Comparison: Dataset Provider

Small seeded synthetic series in the shape of classic teaching datasets,
plus CSV loading. Each dataset states its seasonal period explicitly; the
period is never inferred from the dataset's identity.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import numpy as np
import pandas as pd

from .series import TimeSeries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Dataset:
    """A series together with its seasonal period"""
    name: str
    series: TimeSeries
    season_length: int
    description: str = ""


def quarterly_seasonal(
    n_years: int = 12,
    start: str = "2010-01-01",
    level: float = 400.0,
    slope: float = 1.5,
    amplitude: float = 40.0,
    noise: float = 8.0,
    seed: int = 42
) -> Dataset:
    """Quarterly production-style series: linear trend + additive Q4 peak"""
    rng = np.random.default_rng(seed)
    n = 4 * n_years
    t = np.arange(n)
    pattern = np.array([-0.4, -0.6, -0.2, 1.2]) * amplitude
    y = level + slope * t + pattern[t % 4] + rng.normal(0, noise, n)

    return Dataset(
        name="quarterly",
        series=TimeSeries.from_values(y, freq="QS", start=start, name="production"),
        season_length=4,
        description="Quarterly series with linear trend and additive seasonality",
    )


def monthly_multiplicative(
    n_years: int = 10,
    start: str = "1949-01-01",
    level: float = 120.0,
    growth: float = 0.01,
    amplitude: float = 0.18,
    noise: float = 0.03,
    seed: int = 7
) -> Dataset:
    """Monthly airline-style series: exponential growth, seasonal swing grows with level"""
    rng = np.random.default_rng(seed)
    n = 12 * n_years
    t = np.arange(n)
    season = 1 + amplitude * np.sin(2 * np.pi * (t % 12) / 12 - np.pi / 2)
    y = level * np.exp(growth * t) * season * np.exp(rng.normal(0, noise, n))

    return Dataset(
        name="monthly",
        series=TimeSeries.from_values(y, freq="MS", start=start, name="passengers"),
        season_length=12,
        description="Monthly series with exponential trend and multiplicative seasonality",
    )


def random_walk(
    n: int = 120,
    start_value: float = 100.0,
    drift: float = 0.0,
    scale: float = 2.0,
    seed: int = 0
) -> Dataset:
    """Non-seasonal random walk (with optional drift)"""
    rng = np.random.default_rng(seed)
    y = start_value + np.cumsum(drift + rng.normal(0, scale, n))

    return Dataset(
        name="random_walk",
        series=TimeSeries.from_values(y, name="random_walk"),
        season_length=1,
        description="Gaussian random walk, no seasonality",
    )


_DATASETS: Dict[str, Callable[..., Dataset]] = {
    "quarterly": quarterly_seasonal,
    "monthly": monthly_multiplicative,
    "random_walk": random_walk,
}


def list_datasets() -> List[str]:
    return list(_DATASETS)


def get_dataset(name: str, **kwargs) -> Dataset:
    """Build a registered synthetic dataset by name"""
    if name not in _DATASETS:
        raise ValueError(f"Unknown dataset: {name} (expected one of: {', '.join(_DATASETS)})")
    return _DATASETS[name](**kwargs)


def load_csv(
    path: Union[str, Path],
    season_length: int,
    ds_col: str = "ds",
    y_col: str = "y",
    freq: Optional[str] = None
) -> Dataset:
    """
    Load a [ds, y] CSV as a Dataset

    Rows are sorted by ds; duplicate timestamps fail loud. When `freq` is
    not given it is inferred from the timestamps if possible.
    """
    path = Path(path)
    df = pd.read_csv(path)

    missing = [col for col in (ds_col, y_col) if col not in df.columns]
    if missing:
        raise ValueError(f"{path.name}: missing required columns: {missing}")

    df[ds_col] = pd.to_datetime(df[ds_col], errors="raise")
    df = df.sort_values(ds_col).reset_index(drop=True)

    n_dup = int(df[ds_col].duplicated().sum())
    if n_dup:
        raise ValueError(f"{path.name}: {n_dup} duplicate timestamps")

    if freq is None and len(df) >= 3:
        freq = pd.infer_freq(pd.DatetimeIndex(df[ds_col]))

    series = TimeSeries.from_frame(df, ds_col=ds_col, y_col=y_col, freq=freq)
    logger.info(f"Loaded {len(series)} rows from {path} (freq={freq})")

    return Dataset(
        name=path.stem,
        series=series,
        season_length=season_length,
        description=f"Loaded from {path}",
    )
