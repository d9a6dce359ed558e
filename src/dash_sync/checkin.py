"""Habit tracker state transitions.

Every operation is a pure function returning a new CheckinData, so UI
commands can be replayed deterministically and the result handed to
``AggregateStore.schedule_save()``.
"""

from __future__ import annotations

from .models import CheckinData, CheckinEvent, CheckinPosition, CheckinRecord, validate_date


def add_event(data: CheckinData, event: CheckinEvent) -> CheckinData:
    """Add ``event``, replacing any event with the same id in place."""
    if any(e.id == event.id for e in data.events):
        events = tuple(event if e.id == event.id else e for e in data.events)
    else:
        events = (*data.events, event)
    return data.evolve(events=events)


def remove_event(data: CheckinData, event_id: str) -> CheckinData:
    """
    Remove an event and its card position.

    Records referencing the event are kept as dangling references.
    """
    positions = {k: v for k, v in data.positions.items() if k != event_id}
    return data.evolve(
        events=tuple(e for e in data.events if e.id != event_id),
        positions=positions,
    )


def is_checked(data: CheckinData, date: str, event_id: str) -> bool:
    return CheckinRecord(date, event_id) in data.records


def toggle_checkin(data: CheckinData, date: str, event_id: str) -> CheckinData:
    """Check in ``event_id`` on ``date``, or undo an existing check-in."""
    record = CheckinRecord(validate_date(date), event_id)
    if record in data.records:
        return data.evolve(records=tuple(r for r in data.records if r != record))
    return data.evolve(records=(*data.records, record))


def set_position(data: CheckinData, event_id: str, x: float, y: float) -> CheckinData:
    return data.evolve(positions={**data.positions, event_id: CheckinPosition(x, y)})


def events_active_on(data: CheckinData, date: str) -> list[CheckinEvent]:
    validate_date(date)
    return [e for e in data.events if e.is_active_on(date)]


def checked_count(data: CheckinData, date: str) -> int:
    """Number of active events checked in on ``date``."""
    return sum(1 for e in events_active_on(data, date) if is_checked(data, date, e.id))
