"""
Model Comparison: Error Taxonomy

Structural misuse (bad split, mismatched lengths) propagates to the caller.
Model failures (fit/predict) are caught by the runner and recorded as skipped
entries. An undefined MAPE is surfaced as a flag, not a failure.
"""


class ComparisonError(Exception):
    """Base class for all harness errors"""


class InvalidSeriesError(ComparisonError, ValueError):
    """Series violates the ordering / finiteness contract"""


class InsufficientDataError(ComparisonError, ValueError):
    """Not enough observations for the requested split or scale"""


class FitError(ComparisonError):
    """Model preconditions violated or the underlying fit failed"""


class PredictionError(ComparisonError):
    """Invalid horizon or the underlying forecast failed"""


class LengthMismatchError(ComparisonError, ValueError):
    """Forecast and actual sequences differ in length"""


class MapeUndefined(ComparisonError, ArithmeticError):
    """MAPE has a zero actual in its denominator"""


class EmptyTableError(ComparisonError):
    """Ranking query with nothing to rank"""
