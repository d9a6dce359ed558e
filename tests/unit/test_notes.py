"""Tests for NotesSession."""

import json
from datetime import timedelta, timezone

import pytest

from dash_sync.auth import StaticTokenProvider
from dash_sync.cache import MemoryCache, set_json
from dash_sync.exceptions import AuthError, NetworkError
from dash_sync.models import Thought
from dash_sync.notes import NotesSession, SessionStatus
from dash_sync.reader import ShardedReader
from dash_sync.stores.memory import MemoryObjectStore
from dash_sync.writer import ShardedWriter

ROOT = "src/data/thoughts"
UTC_PLUS_8 = timezone(timedelta(hours=8))


def _session(
    store: MemoryObjectStore,
    cache: MemoryCache,
    token: str | None = "t0ken",
    tz: timezone | None = UTC_PLUS_8,
) -> NotesSession:
    return NotesSession(
        ShardedReader(store, ROOT, Thought),
        ShardedWriter(store, "main", ROOT, label="thoughts"),
        StaticTokenProvider(token),
        cache,
        tz=tz,
    )


def _shard_texts(store: MemoryObjectStore) -> list[str]:
    return [
        t["text"]
        for path, content in store.files().items()
        if path.endswith(".json")
        for t in json.loads(content)
    ]


class TestSubmit:
    """Tests for NotesSession.submit()."""

    async def test_submit_writes_month_shard(
        self, store: MemoryObjectStore, cache: MemoryCache
    ) -> None:
        """A thought at 1700000000000 in UTC+8 lands in the 2023-11 shard."""
        session = _session(store, cache)

        state = await session.submit("hello", now_ms=1700000000000)

        assert state.status is SessionStatus.SAVED
        assert state.remote
        assert state.latest is not None
        assert (state.latest.date, state.latest.time) == ("2023-11-15", "06:13:20")
        shard = json.loads(store.files()[f"{ROOT}/2023-11.json"])
        assert shard == [
            {
                "id": "1700000000000",
                "text": "hello",
                "timestamp": 1700000000000,
                "date": "2023-11-15",
                "time": "06:13:20",
            }
        ]
        assert store.history()[0] == "Update thoughts (1 month: 2023-11)"

    async def test_newest_first(self, store: MemoryObjectStore, cache: MemoryCache) -> None:
        session = _session(store, cache)
        await session.submit("first", now_ms=1700000000000)
        state = await session.submit("second", now_ms=1700000060000)
        assert [t.text for t in state.thoughts] == ["second", "first"]

    async def test_only_touched_shard_is_written(
        self, store: MemoryObjectStore, cache: MemoryCache
    ) -> None:
        session = _session(store, cache)
        await session.submit("october", now_ms=1697000000000)
        await session.submit("november", now_ms=1700000000000)
        assert store.history()[0] == "Update thoughts (1 month: 2023-11)"
        assert len(json.loads(store.files()[f"{ROOT}/2023-10.json"])) == 1

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    async def test_blank_text_is_ignored(
        self, store: MemoryObjectStore, cache: MemoryCache, text: str
    ) -> None:
        session = _session(store, cache)
        state = await session.submit(text)
        assert state.thoughts == ()
        assert store.calls["create_blob"] == 0

    async def test_text_is_trimmed(self, store: MemoryObjectStore, cache: MemoryCache) -> None:
        state = await _session(store, cache).submit("  hi  ", now_ms=1700000000000)
        assert state.latest is not None
        assert state.latest.text == "hi"

    async def test_remote_failure_keeps_local_copy(
        self, store: MemoryObjectStore, cache: MemoryCache
    ) -> None:
        session = _session(store, cache)
        store.fail_next("create_blob", NetworkError("offline"))

        state = await session.submit("keep me", now_ms=1700000000000)

        assert state.status is SessionStatus.FAILED
        assert state.error is not None
        assert [t.text for t in state.thoughts] == ["keep me"]
        assert json.loads(cache.get("thoughts") or b"")[0]["text"] == "keep me"
        assert f"{ROOT}/2023-11.json" not in store.files()

    async def test_without_credentials_saves_locally(
        self, store: MemoryObjectStore, cache: MemoryCache
    ) -> None:
        session = _session(store, cache, token=None)

        state = await session.submit("offline", now_ms=1700000000000)

        assert state.status is SessionStatus.SAVED_LOCALLY
        assert not state.remote
        assert sum(store.calls.values()) == 0
        assert json.loads(cache.get("thoughts") or b"")[0]["text"] == "offline"


class TestDelete:
    """Tests for NotesSession.delete()."""

    async def test_delete_rewrites_shard(
        self, store: MemoryObjectStore, cache: MemoryCache
    ) -> None:
        session = _session(store, cache)
        await session.submit("a", now_ms=1700000000000)
        state = await session.submit("b", now_ms=1700000060000)

        state = await session.delete(state.thoughts[1].id)

        assert [t.text for t in state.thoughts] == ["b"]
        shard = json.loads(store.files()[f"{ROOT}/2023-11.json"])
        assert [t["text"] for t in shard] == ["b"]

    async def test_delete_last_thought_leaves_empty_shard(
        self, store: MemoryObjectStore, cache: MemoryCache
    ) -> None:
        session = _session(store, cache)
        state = await session.submit("only", now_ms=1700000000000)

        await session.delete(state.thoughts[0].id)

        files = store.files()
        assert files[f"{ROOT}/2023-11.json"] == b"[]"
        assert f"{ROOT}/.gitkeep" in files

    async def test_delete_unknown_id(self, store: MemoryObjectStore, cache: MemoryCache) -> None:
        session = _session(store, cache)
        before = await session.submit("a", now_ms=1700000000000)
        assert await session.delete("nope") == before


class TestLoad:
    """Tests for NotesSession.load()."""

    async def test_load_remote(self, store: MemoryObjectStore, cache: MemoryCache) -> None:
        writer_session = _session(store, cache, tz=None)
        await writer_session.submit("remote")

        state = await _session(store, MemoryCache(), tz=None).load()

        assert state.status is SessionStatus.LOADED
        assert state.remote
        assert [t.text for t in state.thoughts] == ["remote"]

    async def test_load_local_without_credentials(
        self, store: MemoryObjectStore, cache: MemoryCache
    ) -> None:
        set_json(
            cache,
            "thoughts",
            [
                {"id": "1", "text": "old", "timestamp": 1, "date": "1970-01-01", "time": "00:00:00"},
                {"id": "2", "text": "new", "timestamp": 2, "date": "1970-01-01", "time": "00:00:00"},
            ],
        )

        state = await _session(store, cache, token=None).load()

        assert not state.remote
        assert [t.text for t in state.thoughts] == ["new", "old"]
        assert store.calls["read_path"] == 0

    async def test_load_ignores_unreadable_cache(
        self, store: MemoryObjectStore, cache: MemoryCache
    ) -> None:
        cache.set("thoughts", b"{not json")
        state = await _session(store, cache, token=None).load()
        assert state.thoughts == ()

    async def test_load_falls_back_to_cache_on_remote_failure(
        self, store: MemoryObjectStore, cache: MemoryCache
    ) -> None:
        set_json(
            cache,
            "thoughts",
            [{"id": "1", "text": "cached", "timestamp": 1, "date": "1970-01-01", "time": "00:00:00"}],
        )
        store.fail_next("read_path", AuthError("Bad credentials", status=401))

        state = await _session(store, cache).load()

        assert state.status is SessionStatus.FAILED
        assert not state.remote
        assert state.error is not None
        assert [t.text for t in state.thoughts] == ["cached"]

    async def test_failed_load_never_overwrites_remote_shard(
        self, store: MemoryObjectStore, cache: MemoryCache
    ) -> None:
        await _session(store, MemoryCache(), tz=None).submit("existing")
        session = _session(store, cache, tz=None)
        store.fail_next("read_path", NetworkError("offline"))

        await session.load()
        state = await session.submit("new")

        assert state.status is SessionStatus.FAILED
        assert not state.remote
        assert _shard_texts(store) == ["existing"]
        assert [t["text"] for t in json.loads(cache.get("thoughts") or b"")] == ["new"]

    async def test_successful_reload_allows_remote_writes(
        self, store: MemoryObjectStore, cache: MemoryCache
    ) -> None:
        await _session(store, MemoryCache(), tz=None).submit("existing")
        session = _session(store, cache, tz=None)
        store.fail_next("read_path", NetworkError("offline"))
        await session.load()

        assert (await session.load()).remote
        state = await session.submit("again")

        assert state.status is SessionStatus.SAVED
        assert _shard_texts(store) == ["again", "existing"]
