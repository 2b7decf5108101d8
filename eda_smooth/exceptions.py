class LoessError(Exception):
    """
    Base class for errors raised by the loess smoother.
    """


class InvalidConfiguration(LoessError, ValueError):
    """
    Raised when `alpha`, `degree`, `kernel` or `robust_iterations` is
    outside its admissible range.
    """


class InsufficientData(LoessError, ValueError):
    """
    Raised when a dataset has too few samples for the requested local fit.
    """


class DegenerateNeighborhood(UserWarning):
    """
    Issued when one or more local fits were rank-deficient and fell back
    to a weighted mean. The affected points are flagged on the returned
    curve.
    """
