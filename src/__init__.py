"""
Forecast Model Comparison

Modules:
- comparison: Train/test splitting, uniform model runners, accuracy metrics,
  ranking table, diagnostics, datasets and the Typer CLI
"""
