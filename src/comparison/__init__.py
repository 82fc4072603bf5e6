"""
Forecast Model Comparison

Split a series, fit candidate models uniformly, score them on the holdout and
rank them:
- Splitting (single holdout, rolling origin)
- Model runners (seasonal naive, Holt-Winters, ETS, ARIMA, auto-ARIMA, GAM)
- Evaluation metrics (RMSE, MAE, MAPE, MASE, interval coverage)
- Comparison table and best-model selection
- Diagnostics (STL, ADF/KPSS, Ljung-Box)
"""

from .backtesting import Split, rolling_origin_splits, split_series, validate_split
from .config import ComparisonConfig, load_config
from .datasets import Dataset, get_dataset, list_datasets, load_csv
from .diagnostics import (Decomposition, ResidualDiagnostics, StationarityReport,
                          decompose, residual_diagnostics, stationarity_report,
                          suggest_differencing)
from .errors import (ComparisonError, EmptyTableError, FitError,
                     InsufficientDataError, InvalidSeriesError,
                     LengthMismatchError, MapeUndefined, PredictionError)
from .evaluation import AccuracyRecord, ForecastMetrics, evaluate, mase_scale
from .models import (ARIMAModel, AutoARIMAModel, ETSModel, FittedModel,
                     ForecastModel, ForecastResult, GAMModel, HoltWintersModel,
                     ModelFactory, ModelKind, SeasonalNaiveModel)
from .series import TimeSeries
from .table import ComparisonTable, Metric
from .training import ComparisonReport, ComparisonRunner, compare_models

__all__ = [
    # Series and splitting
    "TimeSeries",
    "Split",
    "split_series",
    "rolling_origin_splits",
    "validate_split",
    # Models
    "ModelKind",
    "ForecastModel",
    "FittedModel",
    "ForecastResult",
    "SeasonalNaiveModel",
    "HoltWintersModel",
    "ETSModel",
    "ARIMAModel",
    "AutoARIMAModel",
    "GAMModel",
    "ModelFactory",
    # Evaluation
    "AccuracyRecord",
    "ForecastMetrics",
    "evaluate",
    "mase_scale",
    # Ranking
    "Metric",
    "ComparisonTable",
    "ComparisonRunner",
    "ComparisonReport",
    "compare_models",
    # Diagnostics
    "Decomposition",
    "StationarityReport",
    "ResidualDiagnostics",
    "decompose",
    "stationarity_report",
    "suggest_differencing",
    "residual_diagnostics",
    # Datasets and config
    "Dataset",
    "get_dataset",
    "list_datasets",
    "load_csv",
    "ComparisonConfig",
    "load_config",
    # Errors
    "ComparisonError",
    "InvalidSeriesError",
    "InsufficientDataError",
    "FitError",
    "PredictionError",
    "LengthMismatchError",
    "MapeUndefined",
    "EmptyTableError",
]
