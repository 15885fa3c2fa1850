"""Exception classes raised by the suite tree."""


class SuiteTreeError(Exception):
    """Base class for suite tree exceptions."""


class MalformedResultError(SuiteTreeError, ValueError):
    """Raised when a result payload cannot be reconciled into the tree."""


class UnknownStatusError(SuiteTreeError, ValueError):
    """Raised when a status outside the known enumeration is aggregated."""


class BloomError(SuiteTreeError):
    """Raised when a node's children cannot be materialized."""
