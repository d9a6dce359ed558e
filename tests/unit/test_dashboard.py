"""Tests for Dashboard wiring."""

import json
from pathlib import Path

import pytest

from dash_sync.aggregate import read_cached, write_cached
from dash_sync.auth import StaticTokenProvider
from dash_sync.cache import FileCache, MemoryCache, set_json
from dash_sync.checkin import toggle_checkin
from dash_sync.config import Backend, SyncConfig
from dash_sync.dashboard import Dashboard, open_store
from dash_sync.exceptions import NetworkError, ValidationError
from dash_sync.migration import MigrationStatus
from dash_sync.models import CheckinData
from dash_sync.stores.memory import MemoryObjectStore

CONFIG = SyncConfig(backend=Backend.MEMORY, debounce_seconds=60)


class TestOpenStore:
    """Tests for open_store."""

    def test_memory(self) -> None:
        store = open_store(SyncConfig(backend=Backend.MEMORY, branch="data"))
        assert isinstance(store, MemoryObjectStore)
        assert store.branch == "data"

    def test_github(self) -> None:
        from dash_sync.stores.github import GitHubObjectStore

        config = SyncConfig(owner="me", repo="site", endpoint_url="https://ghe.local/api/v3")
        store = open_store(config)
        assert isinstance(store, GitHubObjectStore)
        assert store.api_url == "https://ghe.local/api/v3"
        assert store.repo_url == "/repos/me/site"

    def test_dynamodb(self) -> None:
        from dash_sync.stores.dynamodb import DynamoDBObjectStore

        store = open_store(
            SyncConfig(backend=Backend.DYNAMODB, table_name="tbl", region="eu-west-1")
        )
        assert isinstance(store, DynamoDBObjectStore)
        assert (store.table_name, store.region) == ("tbl", "eu-west-1")

    def test_github_without_repository(self) -> None:
        config = SyncConfig(owner="me", repo="site")
        object.__setattr__(config, "repo", None)
        with pytest.raises(ValidationError, match="owner and repo are required"):
            open_store(config)


class TestDashboard:
    """Tests for Dashboard."""

    async def test_layout(self, store: MemoryObjectStore) -> None:
        async with Dashboard(CONFIG, store, tokens=StaticTokenProvider("t")) as dash:
            assert dash.thoughts_writer.collection_root == "src/data/thoughts"
            assert dash.notes_reader.collection_root == "src/app/share/notes"
            assert dash.checkins.path == "public/checkin/data.json"

    async def test_startup_migrates_local_state(self, store: MemoryObjectStore) -> None:
        cache = MemoryCache()
        write_cached(cache, toggle_checkin(CheckinData(), "2024-01-15", "e1"))

        async with Dashboard(CONFIG, store, tokens=StaticTokenProvider("t"), cache=cache) as dash:
            results = await dash.startup()

        assert results["checkin"].status is MigrationStatus.MIGRATED
        assert results["thoughts"].status is MigrationStatus.NOTHING_TO_MIGRATE
        assert "public/checkin/data.json" in store.files()
        assert read_cached(cache) is None

    async def test_startup_reports_unavailable_remote(self, store: MemoryObjectStore) -> None:
        store.fail_next("read_path", NetworkError("offline"), times=20)
        async with Dashboard(CONFIG, store, tokens=StaticTokenProvider("t")) as dash:
            results = await dash.startup()
        assert all(r.should_retry for r in results.values())

    async def test_startup_without_credentials_keeps_cache(self, tmp_path: Path) -> None:
        config = SyncConfig(backend=Backend.MEMORY, cache_dir=str(tmp_path))
        cached = [
            {"id": "1", "text": "kept", "timestamp": 1, "date": "1970-01-01", "time": "00:00:00"}
        ]
        set_json(FileCache(tmp_path), "thoughts", cached)

        async with Dashboard(config, tokens=StaticTokenProvider(None)) as dash:
            results = await dash.startup()
            state = await dash.thoughts.load()

        assert {r.status for r in results.values()} == {MigrationStatus.SKIPPED}
        assert not any(r.should_retry for r in results.values())
        assert sum(dash.store.calls.values()) == 0
        assert [t.text for t in state.thoughts] == ["kept"]
        assert FileCache(tmp_path).get("thoughts") is not None

    async def test_close_flushes_pending_checkin(self, store: MemoryObjectStore) -> None:
        dash = Dashboard(CONFIG, store, tokens=StaticTokenProvider("t"))
        dash.checkins.schedule_save(toggle_checkin(CheckinData(), "2024-01-15", "e1"))
        await dash.close()
        document = json.loads(store.files()["public/checkin/data.json"])
        assert document["records"] == [{"date": "2024-01-15", "eventId": "e1"}]

    async def test_notifications_reach_callback(
        self, store: MemoryObjectStore, notifications
    ) -> None:
        async with Dashboard(
            CONFIG, store, tokens=StaticTokenProvider("t"), notify=notifications
        ) as dash:
            await dash.thoughts.submit("hi", now_ms=1700000000000)
        assert notifications.levels == ["success"]

    def test_file_cache_from_config(self, tmp_path: Path) -> None:
        config = SyncConfig(backend=Backend.MEMORY, cache_dir=str(tmp_path))
        dash = Dashboard(config, tokens=StaticTokenProvider(None))
        assert isinstance(dash.cache, FileCache)

    def test_memory_cache_by_default(self) -> None:
        dash = Dashboard(SyncConfig(backend=Backend.MEMORY))
        assert isinstance(dash.cache, MemoryCache)
