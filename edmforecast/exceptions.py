"""
Error kinds raised by the forecasting routines.

Parameter-level errors abort a call. UnderdeterminedFit and InsufficientHistory
raised for a single prediction index are caught by the forecasters and recorded
as skipped rows instead.
"""


class EDMError(ValueError):
    pass


class InsufficientHistory(EDMError):
    """Empty series, nothing to embed."""


class UnderdeterminedFit(EDMError):
    """Not enough admissible neighbours / well-conditioned library rows for a forecast."""


class EmptyLibraryOrPredictionRange(EDMError):
    """Library or prediction range holds no valid index after exclusions."""


class InvalidParameter(EDMError):
    """Malformed parameter, e.g. E < 1, theta < 0 or a library size larger than the library."""
