"""
Error taxonomy for the Airfocus access layer.

Every failure raised by the gateway, the snapshot cache or the service facade is an
AirfocusError subclass, so the HTTP layer can map it to a structured response with
a single handler. asyncio.CancelledError is never wrapped.
"""

from typing import Optional


class AirfocusError(Exception):
    """Base error; carries a human-readable message and the resource it concerns."""

    def __init__(self, message: str, resource: Optional[str] = None):
        self.message = message
        self.resource = resource
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.resource:
            return f"{self.resource}: {self.message}"
        return self.message


class TransportError(AirfocusError):
    """Network or connection failure while talking to the upstream API."""


class UpstreamError(AirfocusError):
    """Upstream API answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: int, body: str = "", resource: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message, resource)


class DecodeError(AirfocusError):
    """Upstream response body was not JSON or did not have the expected shape."""


class NotFoundError(AirfocusError):
    """A named lookup (workspace, field, user) produced no match."""


class ConfigurationError(AirfocusError):
    """Required caller input is missing, e.g. an empty API key or identifier."""
