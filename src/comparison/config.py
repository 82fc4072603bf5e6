# file: src/comparison/config.py
"""
Model Comparison: Configuration

Seasonal period and MASE lag are explicit settings, never inferred from the
dataset. Values can be overridden through FORECAST_* environment variables
(or a local .env file).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv

ENV_PREFIX = "FORECAST_"


@dataclass(frozen=True)
class ComparisonConfig:
    # Data
    dataset: str = "quarterly"
    season_length: int = 4

    # Evaluation
    holdout: int = 8
    confidence_level: float = 0.95
    primary_metric: str = "rmse"

    # Candidates
    models: Tuple[str, ...] = ("seasonal_naive", "holt_winters", "ets", "arima", "gam")
    gam_max_horizon: int = 24

    # Rolling origin
    n_windows: int = 3
    step: int = 1

    # Execution
    n_jobs: int = 1

    # IO
    artifacts_dir: str = "artifacts/comparison"

    def __post_init__(self):
        if self.season_length < 1:
            raise ValueError(f"season_length must be >= 1, got {self.season_length}")
        if self.holdout < 1:
            raise ValueError(f"holdout must be >= 1, got {self.holdout}")
        if not 0 < self.confidence_level < 1:
            raise ValueError(f"confidence_level must be in (0, 1), got {self.confidence_level}")

    def run_id(self) -> str:
        return datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")

    def model_params(self) -> dict:
        return {"gam": {"max_horizon": max(self.gam_max_horizon, self.holdout)}}

    def artifacts_path(self) -> Path:
        return Path(self.artifacts_dir)

    def leaderboard_path(self) -> Path:
        return self.artifacts_path() / "leaderboard.csv"

    def forecasts_path(self) -> Path:
        return self.artifacts_path() / "forecasts.csv"

    def summary_path(self) -> Path:
        return self.artifacts_path() / "summary.json"


def _coerce(raw: str, current):
    if isinstance(current, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    if isinstance(current, tuple):
        return tuple(item.strip() for item in raw.split(",") if item.strip())
    return raw


def load_config(**overrides) -> ComparisonConfig:
    """
    Load configuration from environment, then apply explicit overrides.

    FORECAST_SEASON_LENGTH=12 sets season_length, FORECAST_MODELS=ets,arima
    sets models, and so on. Explicit keyword overrides win; None is ignored.
    """
    load_dotenv()

    base = ComparisonConfig()
    values = {}
    for f in fields(ComparisonConfig):
        raw = os.getenv(f"{ENV_PREFIX}{f.name.upper()}")
        if raw is not None:
            values[f.name] = _coerce(raw, getattr(base, f.name))

    values.update({k: v for k, v in overrides.items() if v is not None})
    return replace(base, **values)
