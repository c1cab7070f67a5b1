class KNNError(Exception):
    """Base class for all errors raised by knn_rs."""


class CapacityError(KNNError, MemoryError):
    """Requested matrix dimension cannot be represented."""


class IndexOutOfRange(KNNError, IndexError):
    """Entity ID outside the current matrix dimension."""


class ParseError(KNNError, ValueError):
    """Malformed correlation file."""


class ArgumentError(KNNError, ValueError):
    """Invalid parameter, rejected before any computation."""


class NotFittedError(KNNError, RuntimeError):
    """Model used before .fit() or .load_model()."""
