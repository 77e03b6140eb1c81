"""Base class shared by every distribution."""

from .distribution import Distribution, check_random_state

__all__ = [
    "Distribution",
    "check_random_state",
]
