from __future__ import annotations


class SentinelError(Exception):
    """Base class for errors raised by the detection-and-query pipeline."""


class NotFound(SentinelError, LookupError):
    """Requested identifier is not present in the store."""

    def __init__(self, event_id: str) -> None:
        super().__init__(f"Log entry not found: {event_id}")
        self.event_id = event_id


class InvalidInput(SentinelError, ValueError):
    """Ingest batch or entry has a malformed shape."""


class InternalError(SentinelError):
    """Unexpected failure while classifying or storing events."""
