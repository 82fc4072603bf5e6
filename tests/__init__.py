"""
Forecast Comparison Test Suite

- test_series.py: TimeSeries contract and configuration loading
- test_backtesting.py: split correctness (no leakage, exact round-trip)
- test_metrics.py: RMSE / MAE / MAPE / MASE and flagged undefined metrics
- test_table.py: ranking, tie-breaks and skipped entries
- test_models.py: model runners (fit / predict contracts)
- test_training.py: end-to-end comparison runs
- test_diagnostics.py: STL, stationarity and residual checks
- test_smoke.py: CLI smoke tests (synthetic data)
"""
