# file: src/comparison/io_utils.py
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

import pandas as pd

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def atomic_write_csv(df: pd.DataFrame, path: Path) -> None:
    """
    Atomic CSV write: write to temp in same directory, then replace.
    """
    ensure_dir(path.parent)
    tmp = path.with_suffix(path.suffix + ".tmp")
    df.to_csv(tmp, index=False)
    os.replace(tmp, path)


def atomic_write_json(payload: Dict[str, Any], path: Path) -> None:
    ensure_dir(path.parent)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, default=str)
    os.replace(tmp, path)


def write_report(report, config) -> Dict[str, Path]:
    """
    Persist a ComparisonReport: leaderboard CSV, stacked forecasts CSV and a
    JSON summary, each written atomically under config.artifacts_path().
    """
    paths = {
        "leaderboard": config.leaderboard_path(),
        "forecasts": config.forecasts_path(),
        "summary": config.summary_path(),
    }

    atomic_write_csv(report.table.to_frame(), paths["leaderboard"])

    frames = [fc.to_frame() for fc in report.forecasts.values()]
    forecasts = pd.concat(frames, ignore_index=True) if frames else pd.DataFrame()
    if not forecasts.empty:
        actual = pd.Series(
            report.split.test.values, index=report.split.test.index, name="actual"
        )
        forecasts["actual"] = forecasts["ds"].map(actual)
    atomic_write_csv(forecasts, paths["forecasts"])

    summary = report.summary(config.primary_metric)
    summary["run_id"] = config.run_id()
    summary["dataset"] = config.dataset
    atomic_write_json(summary, paths["summary"])

    logger.info(f"Saved report to {config.artifacts_path()}")
    return paths
