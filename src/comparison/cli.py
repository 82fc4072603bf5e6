# file: src/comparison/cli.py
from __future__ import annotations

import logging
import math
import os
from dataclasses import replace
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from src.comparison.config import ComparisonConfig, load_config
from src.comparison.datasets import Dataset, get_dataset, list_datasets, load_csv
from src.comparison.diagnostics import (decompose, residual_diagnostics,
                                        stationarity_report, suggest_differencing)
from src.comparison.errors import ComparisonError
from src.comparison.io_utils import write_report
from src.comparison.models import ModelFactory
from src.comparison.table import ComparisonTable, Metric
from src.comparison.training import ComparisonRunner

logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")
app = typer.Typer(add_completion=False, help="Forecast model comparison")
console = Console()


def _fmt(value: Optional[float], digits: int = 3) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return "-"
    return f"{value:.{digits}f}"


def _load_dataset(
    cfg: ComparisonConfig,
    csv: Optional[str],
    season_length: Optional[int],
) -> Tuple[ComparisonConfig, Dataset]:
    """
    Synthetic datasets carry their own period, used unless one was set on
    the command line or through FORECAST_SEASON_LENGTH. A CSV has no period
    of its own, so one of those two is required.
    """
    explicit = season_length is not None or bool(os.getenv("FORECAST_SEASON_LENGTH"))

    if csv:
        if not explicit:
            raise ValueError("--season-length is required with --csv")
        return cfg, load_csv(csv, season_length=cfg.season_length)

    data = get_dataset(cfg.dataset)
    if not explicit:
        cfg = replace(cfg, season_length=data.season_length)
    return cfg, data


def _abort(title: str, error: Exception) -> None:
    console.print(f"[red]{title}:[/red] {escape(str(error))}")
    raise typer.Exit(code=1)


def _runner(cfg: ComparisonConfig) -> ComparisonRunner:
    return ComparisonRunner(
        models=cfg.models,
        season_length=cfg.season_length,
        holdout=cfg.holdout,
        confidence_level=cfg.confidence_level,
        n_jobs=cfg.n_jobs,
        model_params=cfg.model_params(),
    )


def _leaderboard_table(title: str, table: ComparisonTable, metric: Metric) -> Table:
    ranked = {name: i + 1 for i, (name, _) in enumerate(table.ranking(metric))}

    out = Table(title=title)
    out.add_column("Rank", style="cyan", justify="right")
    out.add_column("Model", style="bold")
    for m in Metric:
        out.add_column(m.value.upper(), justify="right")
    out.add_column("Coverage %", justify="right")
    out.add_column("Notes", style="yellow")

    for name, record in table.all():
        if record.is_skipped:
            out.add_row("-", escape(name), *["-"] * (len(Metric) + 1), escape(f"skipped: {record.error}"))
            continue
        notes = ", ".join(record.flags)
        out.add_row(
            str(ranked.get(name, "-")),
            escape(name),
            _fmt(record.rmse),
            _fmt(record.mae),
            _fmt(record.mape, 2),
            _fmt(record.mase),
            _fmt(record.coverage, 1),
            notes,
        )
    return out


def _print_best(table: ComparisonTable) -> None:
    best = Table(title="Best model per metric")
    best.add_column("Metric", style="cyan")
    best.add_column("Model", style="green")
    for metric, name in table.best_per_metric().items():
        best.add_row(metric.upper(), escape(name or "-"))
    console.print(best)


@app.command()
def compare(
    dataset: Optional[str] = typer.Option(None, help=f"Synthetic dataset ({', '.join(list_datasets())})"),
    csv: Optional[str] = typer.Option(None, help="CSV with [ds, y] columns"),
    season_length: Optional[int] = typer.Option(None, help="Seasonal period / MASE lag"),
    holdout: Optional[int] = typer.Option(None, help="Held-out observations"),
    model: Optional[List[str]] = typer.Option(None, "--model", "-m", help="Candidate model (repeatable)"),
    metric: Optional[str] = typer.Option(None, help="Primary ranking metric"),
    n_jobs: Optional[int] = typer.Option(None, help="Worker threads"),
    save: bool = typer.Option(False, help="Write leaderboard, forecasts and summary"),
    artifacts_dir: Optional[str] = typer.Option(None, help="Output directory for --save"),
    residuals: bool = typer.Option(True, help="Ljung-Box check on the winner's residuals"),
):
    """Fit every candidate on the training prefix and rank them on the holdout."""
    try:
        cfg = load_config(
            dataset=dataset,
            season_length=season_length,
            holdout=holdout,
            models=tuple(model) if model else None,
            primary_metric=metric,
            n_jobs=n_jobs,
            artifacts_dir=artifacts_dir,
        )
        primary = Metric.parse(cfg.primary_metric)
        cfg, data = _load_dataset(cfg, csv, season_length)
        runner = _runner(cfg)
    except (ValueError, OSError) as e:
        _abort("Invalid options", e)

    try:
        report = runner.run(data.series)
    except ComparisonError as e:
        _abort("Comparison failed", e)

    console.print(_leaderboard_table(
        f"{data.name}: holdout {cfg.holdout}, season {cfg.season_length}",
        report.table,
        primary,
    ))
    _print_best(report.table)

    try:
        winner = report.best(primary)
    except ComparisonError as e:
        _abort("No model could be ranked", e)

    console.print(f"Best by {primary.value.upper()}: [bold green]{escape(winner)}[/bold green]")

    if residuals:
        try:
            diag = residual_diagnostics(report.best_fitted(primary))
        except (ComparisonError, ValueError) as e:
            console.print(f"[yellow]Residual check unavailable:[/yellow] {escape(str(e))}")
        else:
            verdict = "white noise" if diag.is_white_noise else "autocorrelated"
            pvals = ", ".join(f"lag {l}: p={p:.3f}" for l, p in zip(diag.lags, diag.pvalues))
            console.print(f"Ljung-Box on {escape(winner)} residuals: {verdict} ({pvals})")

    if save:
        paths = write_report(report, cfg)
        for key, path in paths.items():
            console.print(f"Saved {key}: {path}")


@app.command()
def backtest(
    dataset: Optional[str] = typer.Option(None, help="Synthetic dataset"),
    csv: Optional[str] = typer.Option(None, help="CSV with [ds, y] columns"),
    season_length: Optional[int] = typer.Option(None, help="Seasonal period / MASE lag"),
    holdout: Optional[int] = typer.Option(None, help="Horizon of every window"),
    n_windows: Optional[int] = typer.Option(None, help="Number of forecast origins"),
    step: Optional[int] = typer.Option(None, help="Observations between origins"),
    model: Optional[List[str]] = typer.Option(None, "--model", "-m", help="Candidate model (repeatable)"),
    metric: Optional[str] = typer.Option(None, help="Primary ranking metric"),
):
    """Rolling-origin comparison with window-averaged metrics."""
    try:
        cfg = load_config(
            dataset=dataset,
            season_length=season_length,
            holdout=holdout,
            n_windows=n_windows,
            step=step,
            models=tuple(model) if model else None,
            primary_metric=metric,
        )
        primary = Metric.parse(cfg.primary_metric)
        cfg, data = _load_dataset(cfg, csv, season_length)
        runner = _runner(cfg)
    except (ValueError, OSError) as e:
        _abort("Invalid options", e)

    try:
        table = runner.backtest(data.series, n_windows=cfg.n_windows, step=cfg.step)
    except (ComparisonError, ValueError) as e:
        _abort("Backtest failed", e)

    console.print(_leaderboard_table(
        f"{data.name}: {cfg.n_windows} windows x {cfg.holdout} steps",
        table,
        primary,
    ))
    _print_best(table)


@app.command()
def diagnose(
    dataset: Optional[str] = typer.Option(None, help="Synthetic dataset"),
    csv: Optional[str] = typer.Option(None, help="CSV with [ds, y] columns"),
    season_length: Optional[int] = typer.Option(None, help="Seasonal period"),
):
    """Decomposition strengths, stationarity tests and suggested differencing."""
    try:
        cfg = load_config(dataset=dataset, season_length=season_length)
        cfg, data = _load_dataset(cfg, csv, season_length)
    except (ValueError, OSError) as e:
        _abort("Invalid options", e)
    period = cfg.season_length

    table = Table(title=f"{data.name} diagnostics")
    table.add_column("Check", style="cyan")
    table.add_column("Value", style="green")

    try:
        if period > 1:
            dec = decompose(data.series, period)
            table.add_row("Trend strength", _fmt(dec.trend_strength))
            table.add_row("Seasonal strength", _fmt(dec.seasonal_strength))

        report = stationarity_report(data.series)
        d, D = suggest_differencing(data.series, period=period)
    except (ComparisonError, ValueError) as e:
        _abort("Diagnostics failed", e)

    for row in report.to_records():
        table.add_row(
            f"{row['test'].upper()} (p-value)",
            f"{_fmt(row['pvalue'])} -> {'stationary' if row['stationary'] else 'non-stationary'}",
        )
    table.add_row("Verdict", report.verdict)
    table.add_row("Suggested differencing", f"d={d}, D={D}")

    console.print(table)


@app.command("list-models")
def list_models():
    """Show the available model kinds."""
    table = Table(title="Models")
    table.add_column("Kind", style="cyan")
    for kind in ModelFactory.list_models():
        table.add_row(kind)
    console.print(table)


if __name__ == "__main__":
    app()
