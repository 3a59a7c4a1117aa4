"""Exception hierarchy for row bisection runs."""


class RowBisectError(Exception):
    """Base exception for all row bisection errors."""

    pass


class ConfigurationError(RowBisectError):
    """Raised when a run cannot start because its configuration is invalid."""

    pass


class InvalidBoundsError(ConfigurationError):
    """Raised when row identifier bounds are inverted or out of range."""

    pass


class EmptyTableError(ConfigurationError):
    """Raised when the target table has no rows to scan."""

    pass


class SchedulerClosedError(RowBisectError):
    """Raised when work is submitted to a scheduler that has been shut down."""

    pass
