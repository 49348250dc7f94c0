"""Error types raised by the sweep."""


class DeerPopError(Exception):
    """Base class for all errors raised by deerpop."""


class ProcessGroupError(DeerPopError):
    """The process group could not start or a range message failed. Always fatal."""


class OutputStreamError(DeerPopError):
    """The per-process output stream could not be opened or written."""


class NumericalSingularityError(DeerPopError, FloatingPointError):
    """A degenerate (P, alpha) pair produced a zero denominator or a non-finite path.

    Only raised when finite checking is switched on; otherwise NaN/Inf values
    are written to the output unchanged.
    """

    def __init__(self, message: str, P: float, alpha: float):
        super().__init__(message)
        self.P = P
        self.alpha = alpha
