"""
Exception taxonomy for the generative core.

Failures are surfaced synchronously to the caller; nothing here is
retried or logged.
"""


class GeometricInteriorError(Exception):
    """Base class for every error raised by the package."""


class InvalidSeed(GeometricInteriorError, ValueError):
    """Seed is absent, not a string or tag triple, or empty after parsing."""


class InvalidParameter(GeometricInteriorError, ValueError):
    """A control or derived parameter cannot produce a valid scene."""


class RenderFailure(GeometricInteriorError, RuntimeError):
    """Non-finite values survived into finalised buffers."""


class TransitionCancelled(GeometricInteriorError):
    """
    Raised into a completion handler when its transition was cancelled.

    Not an error condition: callers are expected to swallow it.
    """


class EmptyTimeline(GeometricInteriorError, ValueError):
    """Timeline evaluated without any events."""

    def __init__(self, message: str = "Animation has no events"):
        super().__init__(message)
