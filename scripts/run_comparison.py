"""
Forecast Model Comparison: Experiment Runner

Complete orchestration of:
1. Dataset loading (synthetic or CSV)
2. Single-holdout comparison
3. Rolling-origin backtest
4. Residual check on the winner
5. Artifact generation

Usage:
    python scripts/run_comparison.py \
        --dataset monthly \
        --output artifacts/comparison \
        --models seasonal_naive ets arima gam \
        --n-windows 4
"""

import argparse
import json
import logging
import os
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

from src.comparison.config import ComparisonConfig, load_config
from src.comparison.datasets import Dataset, get_dataset, load_csv
from src.comparison.diagnostics import residual_diagnostics
from src.comparison.errors import ComparisonError
from src.comparison.io_utils import atomic_write_csv, atomic_write_json, write_report
from src.comparison.training import ComparisonReport, ComparisonRunner


class ComparisonExperiment:
    """Orchestrates a full comparison experiment"""

    def __init__(self, config: ComparisonConfig, explicit_season_length: bool = False):
        self.config = config
        self.explicit_season_length = explicit_season_length
        self.output_dir = config.artifacts_path()
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def run(self, csv_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Run the complete experiment

        Args:
            csv_path: Optional [ds, y] CSV; the configured dataset otherwise

        Returns:
            Dictionary with status and results
        """
        logger.info("=" * 80)
        logger.info("Forecast Model Comparison")
        logger.info("=" * 80)

        try:
            logger.info("[1/5] Loading data...")
            data = self._load_data(csv_path)
            runner = self._runner()

            logger.info("[2/5] Single-holdout comparison...")
            report = runner.run(data.series)

            logger.info("[3/5] Rolling-origin backtest...")
            backtest = runner.backtest(
                data.series, n_windows=self.config.n_windows, step=self.config.step
            )

            logger.info("[4/5] Residual diagnostics...")
            residuals = self._check_residuals(report)

            logger.info("[5/5] Saving outputs...")
            paths = write_report(report, self.config)
            backtest_path = self.output_dir / "backtest_leaderboard.csv"
            atomic_write_csv(backtest.to_frame(), backtest_path)
            paths["backtest"] = backtest_path

            best = report.best(self.config.primary_metric)
            record = report.table.get(best)
            experiment = {
                "timestamp": datetime.now().isoformat(),
                "dataset": data.name,
                "season_length": self.config.season_length,
                "holdout": self.config.holdout,
                "best_model": best,
                "best_backtest_model": backtest.best(self.config.primary_metric),
                "residuals": residuals,
            }
            experiment_path = self.output_dir / "experiment.json"
            atomic_write_json(experiment, experiment_path)
            paths["experiment"] = experiment_path

            logger.info("=" * 80)
            logger.info(f"Best Model: {best}")
            logger.info(f"  RMSE: {record.rmse:.2f}")
            logger.info(f"  MAE: {record.mae:.2f}")
            if record.mape is not None:
                logger.info(f"  MAPE: {record.mape:.2f}%")
            logger.info(f"Artifacts saved to: {self.output_dir}")

            return {
                "status": "SUCCESS",
                "best_model": best,
                "skipped": report.table.skipped,
                "artifacts": {key: str(path) for key, path in paths.items()},
            }

        except (ComparisonError, ValueError) as e:
            logger.exception(f"Experiment failed: {e}")
            return {
                "status": "FAILED",
                "error": str(e),
                "output_dir": str(self.output_dir),
            }

    def _load_data(self, csv_path: Optional[str]) -> Dataset:
        if csv_path:
            if not self.explicit_season_length:
                raise ValueError("--season-length is required with --csv")
            data = load_csv(csv_path, season_length=self.config.season_length)
        else:
            data = get_dataset(self.config.dataset)
            if not self.explicit_season_length:
                self.config = replace(self.config, season_length=data.season_length)

        logger.info(f"  Loaded {len(data.series)} observations ({data.name})")
        logger.info(f"  Season length: {self.config.season_length}")
        return data

    def _runner(self) -> ComparisonRunner:
        return ComparisonRunner(
            models=self.config.models,
            season_length=self.config.season_length,
            holdout=self.config.holdout,
            confidence_level=self.config.confidence_level,
            n_jobs=self.config.n_jobs,
            model_params=self.config.model_params(),
        )

    def _check_residuals(self, report: ComparisonReport) -> Optional[Dict[str, Any]]:
        try:
            diag = residual_diagnostics(report.best_fitted(self.config.primary_metric))
        except (ComparisonError, ValueError) as e:
            logger.warning(f"  Residual check unavailable: {e}")
            return None

        logger.info(
            f"  {diag.model_name}: "
            f"{'white noise' if diag.is_white_noise else 'autocorrelated'} residuals"
        )
        return {
            "model": diag.model_name,
            "white_noise": diag.is_white_noise,
            "ljung_box": diag.to_frame().to_dict(orient="records"),
        }


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = argparse.ArgumentParser(description="Forecast model comparison experiment")
    parser.add_argument("--dataset", type=str, default=None, help="Synthetic dataset name")
    parser.add_argument("--csv", type=str, default=None, help="CSV with [ds, y] columns")
    parser.add_argument("--season-length", type=int, default=None, help="Seasonal period")
    parser.add_argument("--holdout", type=int, default=None, help="Held-out observations")
    parser.add_argument("--models", type=str, nargs="+", default=None, help="Models to compare")
    parser.add_argument("--n-windows", type=int, default=None, help="Backtest windows")
    parser.add_argument("--output", type=str, default=None, help="Output directory")

    args = parser.parse_args(argv)

    config = load_config(
        dataset=args.dataset,
        season_length=args.season_length,
        holdout=args.holdout,
        models=tuple(args.models) if args.models else None,
        n_windows=args.n_windows,
        artifacts_dir=args.output,
    )

    experiment = ComparisonExperiment(
        config,
        explicit_season_length=args.season_length is not None
        or "FORECAST_SEASON_LENGTH" in os.environ,
    )
    result = experiment.run(csv_path=args.csv)
    print(json.dumps(result, indent=2))

    return 0 if result["status"] == "SUCCESS" else 1


if __name__ == "__main__":
    raise SystemExit(main())
