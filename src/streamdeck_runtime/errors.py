"""Error taxonomy for the plugin runtime.

Only ConnectionFailure is terminal. The others are contained per message:
the runtime logs them and carries on with the next envelope.
"""

from __future__ import annotations


class StreamDeckError(Exception):
    """Base class for runtime errors."""


class ConnectionFailure(StreamDeckError):
    """The WebSocket to the controller could not be opened or was lost."""


class MalformedEnvelope(StreamDeckError):
    """An inbound message could not be decoded into a known event."""

    def __init__(self, message: str, raw: str | bytes | None = None) -> None:
        super().__init__(message)
        self.raw = raw


class UnserializableCommand(StreamDeckError):
    """An outbound command cannot be represented as JSON."""

    def __init__(self, event: str, reason: str) -> None:
        super().__init__(f"Data for {event} is not valid JSON: {reason}")
        self.event = event


class DuplicateRegistration(StreamDeckError):
    """An appear event arrived for a context that is already live."""

    def __init__(self, context: str) -> None:
        super().__init__(f"Instance {context} has already been registered")
        self.context = context


class UnknownTargetInstance(StreamDeckError):
    """An event addressed a context with no live instance."""

    def __init__(self, context: str) -> None:
        super().__init__(f"No live instance for context {context}")
        self.context = context
