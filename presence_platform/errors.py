"""
Error types for Presence Platform.

The register never recovers locally from a store failure: it lets
StoreUnavailable travel up to the HTTP layer, which answers 503.
An unknown count is not the same thing as zero active visitors.
"""

__all__ = ["PresenceError", "StoreUnavailable"]


class PresenceError(Exception):
    """Base class for presence-tracking failures."""


class StoreUnavailable(PresenceError):
    """The presence store could not be reached or the operation timed out."""

    def __init__(self, message: str = "Presence store unavailable"):
        super().__init__(message)
        self.message = message
