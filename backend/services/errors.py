"""Error taxonomy for the odds tracker.

None of these escape a poll cycle: the tracker logs them and carries on with
the state it already has. ``InvalidQuery`` is the only one surfaced to API
clients (as HTTP 400).
"""

from __future__ import annotations


class OddsTrackerError(Exception):
    """Base class for odds tracker failures."""


class FetchFailure(OddsTrackerError):
    """The odds source was unreachable or rejected the request."""


class CorruptSnapshotError(OddsTrackerError):
    """A stored snapshot could not be read or decoded."""

    def __init__(self, name: str, reason: str):
        super().__init__(f"Corrupt snapshot {name}: {reason}")
        self.name = name
        self.reason = reason


class StorageWriteFailure(OddsTrackerError):
    """A snapshot could not be appended to the store."""


class InvalidQuery(OddsTrackerError):
    """A read query is missing a required parameter."""
