"""
Exception classes for mldist.

Invalid parameters and dimension mismatches raise the builtin ``ValueError``;
the classes here cover failures that callers may want to catch separately.
"""

from typing import Any, Dict, Optional


class MLDistError(Exception):
    """
    Base class for mldist errors.

    Attributes
    ----------
    message : str
        The primary error message.
    context : dict
        Extra diagnostic values, appended to the message.
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}

        full_message = message
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            full_message += f" ({context_str})"
        super().__init__(full_message)


class ConvergenceError(MLDistError, RuntimeError):
    """An iterative estimator did not reach its tolerance in time."""

    def __init__(self, message: str, iterations: Optional[int] = None,
                 tolerance: Optional[float] = None, **context: Any):
        self.iterations = iterations
        self.tolerance = tolerance
        if iterations is not None:
            context['iterations'] = iterations
        if tolerance is not None:
            context['tolerance'] = tolerance
        super().__init__(message, context)


class SerializationError(MLDistError, ValueError):
    """Serialized data is malformed, truncated or describes an unknown type."""

    def __init__(self, message: str, format: Optional[str] = None, **context: Any):
        self.format = format
        if format is not None:
            context['format'] = format
        super().__init__(message, context)
