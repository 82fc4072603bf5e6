"""
Model Comparison: Training and Scoring Pipeline

Fits every candidate on the same training prefix, forecasts the holdout,
scores it with a shared MASE scale and ranks the results.

One failing model never blocks the rest: FitError / PredictionError mark the
candidate as skipped. Split and length errors are misuse and propagate.
"""

import logging
import time
import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .backtesting import Split, rolling_origin_splits, split_series
from .errors import FitError, InsufficientDataError, PredictionError
from .evaluation import AccuracyRecord, evaluate, mase_scale
from .models import FittedModel, ForecastModel, ForecastResult, ModelFactory, ModelKind
from .series import TimeSeries
from .table import ComparisonTable, Metric

logger = logging.getLogger(__name__)

DEFAULT_MODELS = (
    ModelKind.SEASONAL_NAIVE,
    ModelKind.HOLT_WINTERS,
    ModelKind.ETS,
    ModelKind.ARIMA,
    ModelKind.GAM,
)

Candidate = Union[str, ModelKind, ForecastModel]


@dataclass
class ModelOutcome:
    """Result of running one candidate on one split"""
    name: str
    fitted: Optional[FittedModel] = None
    forecast: Optional[ForecastResult] = None
    record: Optional[AccuracyRecord] = None
    error: Optional[str] = None
    train_time: float = 0.0
    forecast_time: float = 0.0


@dataclass
class ComparisonReport:
    """Everything a report layer needs from one comparison run"""
    split: Split
    table: ComparisonTable
    season_length: int
    scale: float
    forecasts: Dict[str, ForecastResult] = field(default_factory=dict)
    fitted: Dict[str, FittedModel] = field(default_factory=dict)
    timings: Dict[str, Tuple[float, float]] = field(default_factory=dict)

    def best(self, metric: Union[str, Metric] = Metric.RMSE) -> str:
        return self.table.best(metric)

    def best_fitted(self, metric: Union[str, Metric] = Metric.RMSE) -> FittedModel:
        """Fitted model of the ranking winner"""
        return self.fitted[self.best(metric)]

    def summary(self, metric: Union[str, Metric] = Metric.RMSE) -> Dict:
        """Serializable run summary"""
        return {
            "split": self.split.info,
            "season_length": self.season_length,
            "mase_scale": self.scale if np.isfinite(self.scale) else None,
            "primary_metric": Metric.parse(metric).value,
            "best_model": self.best(metric),
            "best_per_metric": self.table.best_per_metric(),
            "skipped": self.table.skipped,
            "records": [record.to_dict() for _, record in self.table.all()],
        }


class ComparisonRunner:
    """Trains and scores candidate models on a common holdout"""

    def __init__(
        self,
        models: Optional[Sequence[Candidate]] = None,
        season_length: int = 1,
        holdout: int = 8,
        confidence_level: float = 0.95,
        n_jobs: int = 1,
        model_params: Optional[Dict[str, Dict]] = None
    ):
        """
        Initialize comparison runner

        Args:
            models: Model kinds (or names, or ready-made ForecastModel instances)
            season_length: Seasonal period used by models and the MASE scale
            holdout: Number of trailing observations held out (h)
            confidence_level: Interval level passed to models built here
            n_jobs: Worker threads for fitting candidates (1 = sequential)
            model_params: Extra constructor kwargs keyed by model kind value
        """
        if models is None:
            models = DEFAULT_MODELS

        self.season_length = int(season_length)
        self.holdout = holdout
        self.confidence_level = confidence_level
        self.n_jobs = max(1, int(n_jobs))
        self.model_params = model_params or {}
        self.models = [self._build(candidate) for candidate in models]

        names = [model.name for model in self.models]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate model names: {duplicates}")

    def _build(self, candidate: Candidate) -> ForecastModel:
        if isinstance(candidate, ForecastModel):
            return candidate

        kind = ModelKind.parse(candidate)
        params = {
            "season_length": self.season_length,
            "confidence_level": self.confidence_level,
        }
        params.update(self.model_params.get(kind.value, {}))
        return ModelFactory.create(kind, **params)

    def run(self, series: TimeSeries) -> ComparisonReport:
        """
        Run a single-holdout comparison

        Args:
            series: Full series; the last `holdout` observations are scored

        Returns:
            ComparisonReport with the ranked table and per-model forecasts
        """
        logger.info(f"Starting comparison with {len(self.models)} models")

        split = split_series(series, self.holdout)
        scale = self._scale(split.train)

        logger.info(
            f"Train size {split.train_size}, holdout {split.holdout}, "
            f"MASE scale {scale:.4f} (lag {self.season_length})"
        )

        outcomes = self._run_split(split, scale)

        table = ComparisonTable()
        report = ComparisonReport(
            split=split,
            table=table,
            season_length=self.season_length,
            scale=scale,
        )

        for outcome in outcomes:
            if outcome.record is None:
                table.add_skipped(outcome.name, outcome.error)
                continue

            table.add(outcome.name, outcome.record)
            report.forecasts[outcome.name] = outcome.forecast
            report.fitted[outcome.name] = outcome.fitted
            report.timings[outcome.name] = (outcome.train_time, outcome.forecast_time)

        logger.info(
            f"Scored {len(table) - len(table.skipped)}/{len(table)} models "
            f"({len(table.skipped)} skipped)"
        )
        return report

    def backtest(
        self,
        series: TimeSeries,
        n_windows: int = 3,
        step: int = 1
    ) -> ComparisonTable:
        """
        Rolling-origin comparison

        Each window gets its own MASE scale from its own training prefix.
        Metrics are averaged per model across windows; a model that fails in
        any window is skipped.

        Returns:
            ComparisonTable of window-averaged records
        """
        splits = rolling_origin_splits(series, self.holdout, n_windows=n_windows, step=step)

        per_model: Dict[str, List[AccuracyRecord]] = {m.name: [] for m in self.models}
        failures: Dict[str, str] = {}

        for split in splits:
            scale = self._scale(split.train)
            for outcome in self._run_split(split, scale):
                if outcome.record is None:
                    failures.setdefault(
                        outcome.name, f"window {split.split_id}: {outcome.error}"
                    )
                else:
                    per_model[outcome.name].append(outcome.record)

        table = ComparisonTable()
        for model in self.models:
            if model.name in failures:
                table.add_skipped(model.name, failures[model.name])
            else:
                table.add(model.name, _average_records(model.name, per_model[model.name]))

        return table

    def _scale(self, train: TimeSeries) -> float:
        """
        MASE scale for one training prefix

        NaN when the prefix is not longer than the seasonal lag; every
        record of that split is then flagged mase_undefined.
        """
        try:
            return mase_scale(train, self.season_length)
        except InsufficientDataError as e:
            logger.warning(f"MASE undefined for this split: {e}")
            return float("nan")

    def _run_split(self, split: Split, scale: float) -> List[ModelOutcome]:
        """Run all candidates on one split, results in candidate order"""
        # Entered and exited on the calling thread only; workers never touch
        # the global warning filters.
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            if self.n_jobs == 1 or len(self.models) == 1:
                outcomes = [self._run_one(model, split, scale) for model in self.models]
            else:
                with ThreadPoolExecutor(max_workers=self.n_jobs) as executor:
                    futures = [
                        executor.submit(self._run_one, model, split, scale)
                        for model in self.models
                    ]
                    outcomes = [future.result() for future in futures]

        for w in caught:
            logger.debug(f"split {split.split_id}: {w.category.__name__}: {w.message}")

        return outcomes

    def _run_one(self, model: ForecastModel, split: Split, scale: float) -> ModelOutcome:
        """Train model and generate forecast"""
        outcome = ModelOutcome(name=model.name)

        try:
            start_time = time.time()
            outcome.fitted = model.fit(split.train)
            outcome.train_time = time.time() - start_time

            start_time = time.time()
            outcome.forecast = model.predict(outcome.fitted, horizon=split.holdout)
            outcome.forecast_time = time.time() - start_time

        except (FitError, PredictionError) as e:
            logger.warning(f"Failed to train {model.name} on split {split.split_id}: {e}")
            outcome.error = f"{type(e).__name__}: {e}"
            return outcome

        outcome.record = evaluate(
            outcome.forecast,
            split.test,
            scale=scale,
            model_name=model.name,
        )
        return outcome


def _average_records(name: str, records: Iterable[AccuracyRecord]) -> AccuracyRecord:
    """Mean of each metric across windows; undefined in any window stays undefined"""
    records = list(records)

    def _mean(metric: str) -> Optional[float]:
        values = [r.metric(metric) for r in records]
        if not values or any(v is None for v in values):
            return None
        return float(np.mean(values))

    flags = tuple(sorted({flag for r in records for flag in r.flags}))
    return AccuracyRecord(
        model_name=name,
        rmse=_mean("rmse"),
        mae=_mean("mae"),
        mape=_mean("mape"),
        mase=_mean("mase"),
        coverage=_mean("coverage"),
        flags=flags,
    )


def compare_models(
    series: TimeSeries,
    models: Optional[Sequence[Candidate]] = None,
    season_length: int = 1,
    holdout: int = 8,
    **kwargs
) -> ComparisonReport:
    """Convenience wrapper: ComparisonRunner(...).run(series)"""
    runner = ComparisonRunner(
        models=models,
        season_length=season_length,
        holdout=holdout,
        **kwargs
    )
    return runner.run(series)
