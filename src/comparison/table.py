"""
Model Comparison: Ranking Table

Insertion-ordered accuracy records with best-model queries.
Lower is better for every metric; ties go to the first inserted model.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from .errors import EmptyTableError
from .evaluation import AccuracyRecord

logger = logging.getLogger(__name__)


class Metric(Enum):
    """Ranking metrics"""
    RMSE = "rmse"
    MAE = "mae"
    MAPE = "mape"
    MASE = "mase"

    @classmethod
    def parse(cls, value: Union[str, "Metric"]) -> "Metric":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown metric: {value} (expected one of: {valid})") from None


def _usable(value: Optional[float]) -> bool:
    return value is not None and bool(np.isfinite(value))


class ComparisonTable:
    """Select best model based on performance"""

    def __init__(self):
        self._records: Dict[str, AccuracyRecord] = {}

    def add(self, name: str, record: AccuracyRecord) -> None:
        """Add a model's record; names must be unique and match the record"""
        if name in self._records:
            raise ValueError(f"Model already in table: {name}")
        if record.model_name != name:
            raise ValueError(
                f"Record for {record.model_name!r} added under name {name!r}"
            )
        self._records[name] = record

    def add_skipped(self, name: str, reason: str) -> None:
        """Record a model that could not be fitted or forecast"""
        logger.warning(f"Skipping {name}: {reason}")
        self.add(name, AccuracyRecord.skipped(name, reason))

    def all(self) -> List[Tuple[str, AccuracyRecord]]:
        """(name, record) pairs in insertion order"""
        return list(self._records.items())

    def get(self, name: str) -> AccuracyRecord:
        return self._records[name]

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, name: str) -> bool:
        return name in self._records

    @property
    def skipped(self) -> List[str]:
        return [name for name, r in self._records.items() if r.is_skipped]

    def ranking(self, metric: Union[str, Metric] = Metric.RMSE) -> List[Tuple[str, float]]:
        """
        Models with a usable value for `metric`, best first

        Stable sort, so equal values keep insertion order.
        """
        m = Metric.parse(metric)
        scored = [
            (name, float(record.metric(m.value)))
            for name, record in self._records.items()
            if _usable(record.metric(m.value))
        ]
        return sorted(scored, key=lambda item: item[1])

    def best(self, metric: Union[str, Metric] = Metric.RMSE) -> str:
        """
        Name of the model with the lowest `metric`

        Raises:
            EmptyTableError: no records, or no record has a value for `metric`
        """
        m = Metric.parse(metric)
        if not self._records:
            raise EmptyTableError("No records added")

        ranked = self.ranking(m)
        if not ranked:
            raise EmptyTableError(f"No model has a usable {m.value}")

        return ranked[0][0]

    def best_per_metric(self) -> Dict[str, Optional[str]]:
        """Best model for every metric (None where no model qualifies)"""
        out = {}
        for m in Metric:
            try:
                out[m.value] = self.best(m)
            except EmptyTableError:
                out[m.value] = None
        return out

    def to_frame(self) -> pd.DataFrame:
        """
        Generate model leaderboard

        One row per model in insertion order, with a rank per metric and the
        average rank across the metrics each model has.
        """
        rows = [record.to_dict() for _, record in self._records.items()]
        columns = ["model_name", "rmse", "mae", "mape", "mase", "coverage",
                   "flags", "status", "error"]
        leaderboard = pd.DataFrame(rows, columns=columns)

        if leaderboard.empty:
            return leaderboard

        rank_cols = []
        for m in Metric:
            col = f"{m.value}_rank"
            values = pd.to_numeric(leaderboard[m.value], errors="coerce")
            leaderboard[col] = values.rank(method="first")
            rank_cols.append(col)

        leaderboard["avg_rank"] = leaderboard[rank_cols].mean(axis=1)
        return leaderboard

    def __repr__(self) -> str:
        return f"ComparisonTable(models={list(self._records)})"
