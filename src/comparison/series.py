# file: src/comparison/series.py
"""
Model Comparison: Time Series Object

A TimeSeries is an immutable, strictly increasing, finite sequence of values
with a fixed sampling period. Construction fails loud on any violation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

from .errors import InvalidSeriesError


@dataclass(frozen=True, eq=False)
class TimeSeries:
    """Ordered (index, value) pairs with a fixed sampling period"""
    values: np.ndarray
    index: pd.Index
    freq: Optional[str] = None
    name: str = "y"

    def __post_init__(self):
        values = np.array(self.values, dtype=float, copy=True)
        if values.ndim != 1:
            raise InvalidSeriesError(f"Expected 1-D values, got shape {values.shape}")

        index = pd.Index(self.index)
        if len(index) != len(values):
            raise InvalidSeriesError(
                f"Index length ({len(index)}) != values length ({len(values)})"
            )
        if len(index) > 1 and not (
            index.is_monotonic_increasing and index.is_unique
        ):
            raise InvalidSeriesError("Index must be strictly increasing")

        n_bad = int((~np.isfinite(values)).sum())
        if n_bad:
            raise InvalidSeriesError(f"{self.name}: {n_bad} non-finite values")

        values.setflags(write=False)
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "index", index)

    @classmethod
    def from_values(
        cls,
        values: Sequence[float],
        freq: Optional[str] = None,
        start: Union[str, pd.Timestamp, None] = None,
        name: str = "y",
    ) -> "TimeSeries":
        """
        Build a series from raw values.

        With `start` and `freq` the index is a DatetimeIndex, otherwise a
        0-based RangeIndex.
        """
        n = len(values)
        if start is not None and freq is not None:
            index = pd.date_range(start=start, periods=n, freq=freq)
        else:
            index = pd.RangeIndex(n)
        return cls(values=np.asarray(values, dtype=float), index=index, freq=freq, name=name)

    @classmethod
    def from_pandas(
        cls,
        series: pd.Series,
        freq: Optional[str] = None,
    ) -> "TimeSeries":
        """Build from a pandas Series whose index is already in time order"""
        if freq is None and isinstance(series.index, pd.DatetimeIndex):
            freq = series.index.freqstr
        name = str(series.name) if series.name is not None else "y"
        return cls(values=series.to_numpy(dtype=float), index=series.index, freq=freq, name=name)

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        ds_col: str = "ds",
        y_col: str = "y",
        freq: Optional[str] = None,
    ) -> "TimeSeries":
        """Build from a tidy [ds, y] table"""
        missing = [col for col in (ds_col, y_col) if col not in df.columns]
        if missing:
            raise InvalidSeriesError(f"Missing required columns: {missing}")

        ds = pd.to_datetime(df[ds_col], errors="raise")
        y = pd.to_numeric(df[y_col], errors="raise")
        return cls(
            values=y.to_numpy(dtype=float),
            index=pd.DatetimeIndex(ds),
            freq=freq,
            name=y_col,
        )

    def __len__(self) -> int:
        return len(self.values)

    def __eq__(self, other) -> bool:
        if not isinstance(other, TimeSeries):
            return NotImplemented
        return (
            np.array_equal(self.values, other.values)
            and self.index.equals(other.index)
            and self.freq == other.freq
        )

    __hash__ = None

    def slice(self, start: int, stop: int) -> "TimeSeries":
        """Contiguous positional sub-series [start, stop)"""
        return TimeSeries(
            values=self.values[start:stop],
            index=self.index[start:stop],
            freq=self.freq,
            name=self.name,
        )

    def concat(self, other: "TimeSeries") -> "TimeSeries":
        """Append `other`, which must start strictly after this series ends"""
        return TimeSeries(
            values=np.concatenate([self.values, other.values]),
            index=self.index.append(other.index),
            freq=self.freq,
            name=self.name,
        )

    def future_index(self, horizon: int) -> pd.Index:
        """Index labels for the `horizon` steps after the last observation"""
        if isinstance(self.index, pd.DatetimeIndex) and self.freq is not None:
            return pd.date_range(self.index[-1], periods=horizon + 1, freq=self.freq)[1:]
        last = int(self.index[-1]) if len(self.index) else -1
        return pd.RangeIndex(last + 1, last + 1 + horizon)

    def to_pandas(self) -> pd.Series:
        return pd.Series(np.array(self.values), index=self.index, name=self.name)
