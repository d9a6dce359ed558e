"""Core models for dash-sync."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, tzinfo
from enum import Enum
from typing import Any, ClassVar, Protocol, TypeVar, runtime_checkable

from .exceptions import InvalidDateError

DATE_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$")
"""ISO calendar date as stored on every record (``YYYY-MM-DD``)."""


def validate_date(value: Any) -> str:
    """
    Validate an ISO ``YYYY-MM-DD`` date string.

    Args:
        value: Candidate date

    Returns:
        The date, unchanged

    Raises:
        InvalidDateError: If the value is not a valid date string
    """
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise InvalidDateError(value)
    return value


def split_timestamp(timestamp_ms: int, tz: tzinfo | None = None) -> tuple[str, str]:
    """
    Convert a millisecond timestamp to ``(YYYY-MM-DD, HH:MM:SS)``.

    Uses local time when ``tz`` is None.
    """
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=tz)
    return dt.strftime("%Y-%m-%d"), dt.strftime("%H:%M:%S")


def now_ms() -> int:
    """Current time in milliseconds."""
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Sharded records
# ---------------------------------------------------------------------------


@runtime_checkable
class ShardedRecord(Protocol):
    """
    Protocol for records stored in month shards.

    Any dataclass exposing a stable ``id``, an ISO ``date`` used for shard
    assignment, a ``sort_key`` (larger is newer) and a dict codec can be
    persisted by ShardedWriter and reconstructed by ShardedReader.
    """

    id: str
    date: str

    @property
    def sort_key(self) -> Any: ...

    def to_dict(self) -> dict[str, Any]: ...

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ShardedRecord: ...


R = TypeVar("R", bound=ShardedRecord)


@dataclass(frozen=True)
class Thought:
    """
    A short timestamped note.

    ``date`` and ``time`` are derived once from ``timestamp`` at creation
    and never recomputed. ``id`` is the creation timestamp as a string.

    Attributes:
        id: Creation timestamp in milliseconds, as a string
        text: Note body
        timestamp: Creation time in epoch milliseconds
        date: Local creation date (YYYY-MM-DD)
        time: Local creation time (HH:MM:SS)
    """

    id: str
    text: str
    timestamp: int
    date: str
    time: str

    @classmethod
    def create(cls, text: str, now_ms: int | None = None, tz: tzinfo | None = None) -> Thought:
        """Create a thought stamped at ``now_ms`` (defaults to the current time)."""
        timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
        date, time_str = split_timestamp(timestamp, tz)
        return cls(id=str(timestamp), text=text, timestamp=timestamp, date=date, time=time_str)

    @property
    def sort_key(self) -> int:
        return self.timestamp

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "timestamp": self.timestamp,
            "date": self.date,
            "time": self.time,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Thought:
        """
        Deserialize a thought.

        Legacy entries written before ``date``/``time`` existed are upgraded
        by deriving both from ``timestamp``.
        """
        timestamp = int(data["timestamp"])
        date = data.get("date")
        time_str = data.get("time")
        if not date or not time_str:
            date, time_str = split_timestamp(timestamp)
        return cls(
            id=str(data.get("id") or timestamp),
            text=str(data.get("text", "")),
            timestamp=timestamp,
            date=validate_date(date),
            time=str(time_str),
        )


@dataclass(frozen=True)
class Note:
    """A shared note, ordered by its date and time strings."""

    id: str
    content: str
    date: str
    time: str

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.date, self.time)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "content": self.content, "date": self.date, "time": self.time}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Note:
        return cls(
            id=str(data["id"]),
            content=str(data.get("content", "")),
            date=validate_date(data.get("date")),
            time=str(data.get("time", "00:00:00")),
        )


@dataclass(frozen=True)
class ShardSummary:
    """Per-month overview of a sharded collection."""

    shard_key: str
    count: int
    latest_date: str


# ---------------------------------------------------------------------------
# Check-in aggregate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CheckinEvent:
    """
    A trackable habit.

    Without ``start``/``end`` the event is open-ended. ``start`` only means
    active from that date onward, ``end`` only means active up to that
    date, and both make it active on the closed interval ``[start, end]``.
    """

    id: str
    name: str
    color: str
    start: str | None = None
    end: str | None = None

    def is_active_on(self, date: str) -> bool:
        """Check whether the event is active on ``date``."""
        validate_date(date)
        # ISO dates order lexically
        if self.start is not None and date < self.start:
            return False
        if self.end is not None and date > self.end:
            return False
        return True

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.id, "name": self.name, "color": self.color}
        if self.start is not None:
            result["start"] = self.start
        if self.end is not None:
            result["end"] = self.end
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CheckinEvent:
        start = data.get("start") or None
        end = data.get("end") or None
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            color=str(data.get("color", "")),
            start=validate_date(start) if start is not None else None,
            end=validate_date(end) if end is not None else None,
        )


@dataclass(frozen=True)
class CheckinRecord:
    """Presence of a record for ``(date, event_id)`` means checked in."""

    date: str
    event_id: str

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "eventId": self.event_id}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CheckinRecord:
        return cls(date=validate_date(data["date"]), event_id=str(data["eventId"]))


@dataclass(frozen=True)
class CheckinPosition:
    """Last persisted drag offset of an event card."""

    x: float
    y: float

    def to_dict(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CheckinPosition:
        x, y = data["x"], data["y"]
        if any(isinstance(v, bool) or not isinstance(v, int | float) for v in (x, y)):
            raise TypeError("position coordinates must be numbers")
        return cls(x=x, y=y)


@dataclass(frozen=True)
class CheckinData:
    """
    The habit tracker aggregate document.

    This document is the sole source of truth remotely; any local copy is a
    disposable mirror.
    """

    events: tuple[CheckinEvent, ...] = ()
    records: tuple[CheckinRecord, ...] = ()
    positions: dict[str, CheckinPosition] = field(default_factory=dict)

    EMPTY: ClassVar[CheckinData]

    def is_empty(self) -> bool:
        return not self.events and not self.records and not self.positions

    def evolve(self, **changes: Any) -> CheckinData:
        """Return a copy with ``changes`` applied."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "events": [e.to_dict() for e in self.events],
            "records": [r.to_dict() for r in self.records],
            "positions": {k: p.to_dict() for k, p in self.positions.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CheckinData:
        if not isinstance(data, dict):
            raise TypeError(f"expected an object, got {type(data).__name__}")
        return cls(
            events=tuple(CheckinEvent.from_dict(e) for e in data.get("events") or []),
            records=tuple(CheckinRecord.from_dict(r) for r in data.get("records") or []),
            positions={
                str(k): CheckinPosition.from_dict(v)
                for k, v in (data.get("positions") or {}).items()
            },
        )


CheckinData.EMPTY = CheckinData()


# ---------------------------------------------------------------------------
# Object store primitives
# ---------------------------------------------------------------------------


class FileMode(str, Enum):
    """Tree entry file modes."""

    REGULAR = "100644"


@dataclass(frozen=True)
class TreeEntry:
    """A path to blob mapping inside a tree snapshot."""

    path: str
    blob_id: str
    mode: FileMode = FileMode.REGULAR


@dataclass(frozen=True)
class CommitResult:
    """
    Outcome of a successful write pipeline.

    Attributes:
        commit_id: The commit the branch now points to
        tree_id: The tree snapshot referenced by the commit
        paths: Paths written by this commit
        attempts: Number of pipeline runs needed (>1 after a ref conflict)
    """

    commit_id: str
    tree_id: str
    paths: tuple[str, ...]
    attempts: int = 1
