"""Month sharding policy and collection utilities.

A sharded collection stores one JSON array per calendar month at
``<collection_root>/<YYYY-MM>.json``. The shard key is always the first
seven characters of a record's ``date``.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date as Date

from .models import R, validate_date

PLACEHOLDER_NAME = ".gitkeep"
"""Empty file written when a collection has no shards left."""

DEFAULT_WINDOW_MONTHS = 12


def shard_key_of(date: str) -> str:
    """
    Map an ISO date to its shard key.

    Args:
        date: Date string in ``YYYY-MM-DD`` form

    Returns:
        The ``YYYY-MM`` shard key

    Raises:
        InvalidDateError: If ``date`` is not a valid ISO date
    """
    return validate_date(date)[:7]


def path_for(collection_root: str, shard_key: str) -> str:
    """Build the storage path of a shard."""
    return f"{collection_root.rstrip('/')}/{shard_key}.json"


def placeholder_path(collection_root: str) -> str:
    """Build the storage path of the empty-collection placeholder."""
    return f"{collection_root.rstrip('/')}/{PLACEHOLDER_NAME}"


def group_by_shard(records: Iterable[R]) -> dict[str, list[R]]:
    """
    Group records by shard key.

    Input order is preserved within each shard. Records sharing an id are
    collapsed so that ids stay unique per shard; the last occurrence wins
    but keeps the position of the first.
    """
    grouped: dict[str, dict[str, R]] = {}
    for record in records:
        grouped.setdefault(shard_key_of(record.date), {})[record.id] = record
    return {key: list(by_id.values()) for key, by_id in grouped.items()}


def month_window(today: Date, months: int = DEFAULT_WINDOW_MONTHS) -> list[str]:
    """
    List shard keys for the current month and the preceding ``months - 1``.

    Keys are returned newest first.
    """
    if months < 1:
        raise ValueError("months must be positive")
    keys = []
    year, month = today.year, today.month
    for _ in range(months):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return keys


def sort_newest_first(records: Iterable[R]) -> list[R]:
    """Stable sort, descending by ``sort_key``."""
    return sorted(records, key=lambda r: r.sort_key, reverse=True)
