"""
Decorators for adding tracing to functions.
"""

import functools

from .context import trace_operation


def trace_function(operation_name: str | None = None, **default_attributes):
    """
    Decorator for tracing function calls.

    Args:
        operation_name: Optional custom operation name (defaults to module.function)
        **default_attributes: Attributes added to every span

    Example:
        >>> @trace_function(component="startup")
        ... def fetch_rowid_bounds(pool, table):
        ...     ...
    """
    def decorator(func):
        name = operation_name or f"{func.__module__}.{func.__name__}"

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with trace_operation(name, function=func.__name__, **default_attributes):
                return func(*args, **kwargs)

        return wrapper
    return decorator
