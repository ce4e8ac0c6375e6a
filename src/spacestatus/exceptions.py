"""Custom exception hierarchy for spacestatus."""

from __future__ import annotations


class SpaceStatusError(Exception):
    """Base exception for all spacestatus errors."""


class ConfigError(SpaceStatusError):
    """Invalid or missing configuration."""


class PayloadParseError(SpaceStatusError):
    """A transport payload could not be parsed into the mutator's value type.

    Recovered locally: the mutator keeps its previous value.
    """

    def __init__(
        self,
        message: str,
        *,
        topic: str = "",
        payload: bytes = b"",
    ) -> None:
        self.topic = topic
        self.payload = payload
        super().__init__(message)


class TransportError(SpaceStatusError):
    """Publish/subscribe failure reported by the transport collaborator."""

    def __init__(
        self,
        message: str,
        *,
        topic: str = "",
    ) -> None:
        self.topic = topic
        super().__init__(message)


class RegistrationError(SpaceStatusError):
    """Mutator registration rejected (duplicate sensor, or after startup)."""


class StatusNotInitializedError(SpaceStatusError):
    """The rendered document lacks a field that must exist after startup.

    Raised when a badge is requested for a document without ``state``.
    This is an invariant violation, not a recoverable runtime condition.
    """
