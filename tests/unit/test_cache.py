"""Tests for local caches."""

from pathlib import Path

import pytest

from dash_sync.cache import FileCache, LocalCache, MemoryCache, get_json, set_json
from dash_sync.exceptions import DocumentParseError


class TestMemoryCache:
    """Tests for MemoryCache."""

    def test_get_set_clear(self) -> None:
        cache = MemoryCache({"a": b"1"})
        assert cache.get("a") == b"1"
        cache.set("b", b"2")
        cache.clear("a")
        cache.clear("missing")
        assert cache.data == {"b": b"2"}

    def test_satisfies_protocol(self) -> None:
        assert isinstance(MemoryCache(), LocalCache)


class TestFileCache:
    """Tests for FileCache."""

    def test_persists_across_instances(self, tmp_path: Path) -> None:
        FileCache(tmp_path / "cache").set("thoughts", b"[]")
        assert FileCache(tmp_path / "cache").get("thoughts") == b"[]"

    def test_missing_key(self, tmp_path: Path) -> None:
        assert FileCache(tmp_path).get("nothing") is None

    def test_overwrite_leaves_no_temp_files(self, tmp_path: Path) -> None:
        cache = FileCache(tmp_path)
        cache.set("k", b"1")
        cache.set("k", b"2")
        assert cache.get("k") == b"2"
        assert [p.name for p in tmp_path.iterdir()] == ["k"]

    def test_clear(self, tmp_path: Path) -> None:
        cache = FileCache(tmp_path)
        cache.set("k", b"1")
        cache.clear("k")
        cache.clear("k")
        assert cache.get("k") is None

    @pytest.mark.parametrize("key", ["../escape", "a/b", "", ".hidden"])
    def test_rejects_unsafe_keys(self, tmp_path: Path, key: str) -> None:
        with pytest.raises(ValueError):
            FileCache(tmp_path).get(key)

    def test_satisfies_protocol(self, tmp_path: Path) -> None:
        assert isinstance(FileCache(tmp_path), LocalCache)


class TestJsonHelpers:
    """Tests for get_json/set_json."""

    def test_roundtrip_keeps_unicode(self) -> None:
        cache = MemoryCache()
        set_json(cache, "k", {"text": "héllo"})
        assert "héllo".encode() in cache.data["k"]
        assert get_json(cache, "k") == {"text": "héllo"}

    def test_missing(self) -> None:
        assert get_json(MemoryCache(), "k") is None

    def test_malformed(self) -> None:
        with pytest.raises(DocumentParseError) as exc_info:
            get_json(MemoryCache({"k": b"{"}), "k")
        assert exc_info.value.path == "cache:k"
