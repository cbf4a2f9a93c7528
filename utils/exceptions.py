# utils/exceptions.py
# Central place for the small custom exceptions used across the codebase.

class ConfigurationError(ValueError):
    """
    Raised when a parameter bundle is rejected at construction time
    (beta outside (0,1), s1 > s2, negative max_reps, unknown policy ...).
    These are setup failures: nothing is simulated until they are fixed.
    """
    pass

class NotSupportedError(LookupError):
    """
    Raised when a performance measure has no statistics in the grid.
    Distinct from OutOfRangeError: the query is legal, the data is absent.
    """
    pass

class OutOfRangeError(IndexError):
    """
    Raised when a row, column or observation-set index lies outside the
    dimensions of a supported measure.  Always a programming error.
    """
    pass

class InvalidProbeError(RuntimeError):
    """
    Raised when a confidence interval is requested from an accumulator of
    an unrecognised kind.  Signals an engine/configuration mismatch and is
    never retried.
    """
    pass
