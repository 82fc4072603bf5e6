"""
Model Comparison: Train/Test Splitting

Holdout splitting for fair model comparison:
1. Single holdout: train on prefix, score on the trailing h observations
2. Rolling origin: expanding training window, several holdout windows

Both guarantee train ++ test == series with no overlap (no leakage).
"""

import logging
from dataclasses import dataclass
from typing import Dict, List

import numpy as np

from .errors import InsufficientDataError
from .series import TimeSeries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Split:
    """A contiguous (train, test) partition of one series"""
    train: TimeSeries
    test: TimeSeries
    split_id: int = 0

    def __post_init__(self):
        """Validate no leakage"""
        if len(self.train) == 0 or len(self.test) == 0:
            raise InsufficientDataError(
                f"Split {self.split_id}: empty train ({len(self.train)}) "
                f"or test ({len(self.test)})"
            )
        if self.train.index[-1] >= self.test.index[0]:
            raise ValueError(
                f"Train/test leakage: train_end ({self.train.index[-1]}) >= "
                f"test_start ({self.test.index[0]})"
            )

    @property
    def holdout(self) -> int:
        """Number of held-out observations"""
        return len(self.test)

    @property
    def train_size(self) -> int:
        """Number of training observations"""
        return len(self.train)

    @property
    def info(self) -> Dict:
        """Serialize split info"""
        return {
            "split_id": self.split_id,
            "train_start": str(self.train.index[0]),
            "train_end": str(self.train.index[-1]),
            "test_start": str(self.test.index[0]),
            "test_end": str(self.test.index[-1]),
            "train_size": self.train_size,
            "test_size": self.holdout,
        }

    def reconstruct(self) -> TimeSeries:
        """train ++ test"""
        return self.train.concat(self.test)


def _check_holdout(holdout) -> int:
    if isinstance(holdout, bool) or not isinstance(holdout, (int, np.integer)):
        raise TypeError(f"Holdout must be an integer, got {type(holdout).__name__}")
    if holdout <= 0:
        raise ValueError(f"Holdout must be positive, got {holdout}")
    return int(holdout)


def split_series(series: TimeSeries, holdout: int) -> Split:
    """
    Partition a series into a training prefix and a `holdout`-long suffix

    Args:
        series: Ordered series to split
        holdout: Number of trailing observations to withhold (h)

    Returns:
        Split with len(test) == holdout

    Raises:
        InsufficientDataError: holdout >= len(series)
    """
    h = _check_holdout(holdout)
    n = len(series)

    if h >= n:
        raise InsufficientDataError(
            f"Series {series.name} too short: holdout {h} >= length {n}"
        )

    return Split(
        train=series.slice(0, n - h),
        test=series.slice(n - h, n),
    )


def rolling_origin_splits(
    series: TimeSeries,
    holdout: int,
    n_windows: int = 3,
    step: int = 1
) -> List[Split]:
    """
    Generate expanding-window splits ending at the end of the series

    The last split is identical to split_series(series, holdout); each
    earlier one moves the forecast origin back by `step` observations.

    Args:
        series: Ordered series
        holdout: Test size (forecast horizon) of every window
        n_windows: Number of forecast origins
        step: Observations between consecutive origins

    Returns:
        List of Split objects, oldest origin first
    """
    h = _check_holdout(holdout)
    if n_windows <= 0:
        raise ValueError(f"n_windows must be positive, got {n_windows}")
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")

    n = len(series)
    first_train_end = n - h - (n_windows - 1) * step

    if first_train_end < 1:
        raise InsufficientDataError(
            f"Series {series.name} too short: {n} < "
            f"{h + (n_windows - 1) * step + 1}"
        )

    splits = []
    for i in range(n_windows):
        train_end = first_train_end + i * step
        splits.append(Split(
            train=series.slice(0, train_end),
            test=series.slice(train_end, train_end + h),
            split_id=i,
        ))

    logger.info(f"Generated {len(splits)} rolling-origin splits for {series.name}")
    return splits


def validate_split(series: TimeSeries, split: Split) -> bool:
    """
    Validate a split against the series it was cut from

    Checks:
    1. No overlapping index labels
    2. train ++ test reproduces the series (or its prefix) exactly
    """
    is_valid = True

    train_labels = set(split.train.index)
    test_labels = set(split.test.index)
    if train_labels & test_labels:
        logger.error(f"{series.name} split {split.split_id}: overlapping indices")
        is_valid = False

    # Rolling-origin splits reconstruct a prefix, not the whole series
    n = split.train_size + split.holdout
    if n > len(series) or not split.reconstruct() == series.slice(0, n):
        logger.error(f"{series.name} split {split.split_id}: round-trip mismatch")
        is_valid = False

    return is_valid
