"""Unit tests for the settings store and settings repair."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from mediavault.models.library import AppSettings, MediaFolder
from mediavault.models.media import MediaFilter, MediaItem, MediaType, SourceType
from mediavault.models.session import RedditSort, VideoSelection
from mediavault.settings.connection import RedisConnection
from mediavault.settings.store import (
    SettingsStore,
    load_settings,
    repair_settings,
    save_settings,
    settings_key,
)


class FakeRedis:
    """Dict-backed stand-in for the async Redis client."""

    def __init__(self):
        self.data = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value
        return True

    async def delete(self, key):
        return 1 if self.data.pop(key, None) is not None else 0


def image(media_id):
    return MediaItem(
        id=media_id,
        type=MediaType.IMAGE,
        url=f"https://i.redd.it/{media_id}.jpg",
        source=SourceType.REDDIT,
    )


class TestSettingsStore:
    """Test suite for SettingsStore."""

    @pytest.fixture
    def mock_redis(self):
        """Create a mock Redis client."""
        mock = AsyncMock()
        mock.get = AsyncMock(return_value=None)
        mock.set = AsyncMock()
        mock.delete = AsyncMock(return_value=1)
        return mock

    @pytest.fixture
    def store(self, mock_redis):
        return SettingsStore(mock_redis)

    def test_settings_key(self):
        """Test versioned key format."""
        assert settings_key("settings") == "mediavault:settings:v1"

    @pytest.mark.asyncio
    async def test_get_decodes_json(self, store, mock_redis):
        """Test get() returns the decoded document."""
        mock_redis.get.return_value = json.dumps({"defaultSort": "new"})

        result = await store.get("k")

        assert result == {"defaultSort": "new"}
        mock_redis.get.assert_called_once_with("k")

    @pytest.mark.asyncio
    async def test_get_miss(self, store):
        """Test get() returns None for absent keys."""
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_get_invalid_json(self, store, mock_redis):
        """Test undecodable values read as absent."""
        mock_redis.get.return_value = "invalid json {"

        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_get_redis_error(self, store, mock_redis):
        """Test Redis failures read as absent."""
        mock_redis.get.side_effect = ConnectionError("down")

        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_without_redis(self):
        """Test a store without a client degrades to no-ops."""
        store = SettingsStore(None)

        assert await store.get("k") is None
        assert await store.set("k", {"a": 1}) is False
        assert await store.delete("k") is False

    @pytest.mark.asyncio
    async def test_set_encodes_json(self, store, mock_redis):
        """Test set() stores JSON without expiry."""
        assert await store.set("k", {"a": [1, 2]}) is True

        mock_redis.set.assert_called_once_with("k", json.dumps({"a": [1, 2]}))

    @pytest.mark.asyncio
    async def test_set_unserializable(self, store, mock_redis):
        """Test values that are not JSON are refused."""
        assert await store.set("k", {"a": object()}) is False
        mock_redis.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_set_redis_error(self, store, mock_redis):
        """Test write failures return False."""
        mock_redis.set.side_effect = ConnectionError("down")

        assert await store.set("k", {"a": 1}) is False

    @pytest.mark.asyncio
    async def test_delete(self, store, mock_redis):
        """Test delete() reports whether a key was removed."""
        assert await store.delete("k") is True

        mock_redis.delete.return_value = 0
        assert await store.delete("k") is False


class TestRepairSettings:
    """Test repair of partial and legacy settings payloads."""

    @pytest.mark.parametrize("payload", [None, "garbage", 42, ["a"]])
    def test_non_dict_gives_defaults(self, payload):
        """Test unusable payloads give default settings."""
        assert repair_settings(payload) == AppSettings()

    def test_non_list_fields_reset(self):
        """Test list fields holding other types become empty lists."""
        settings = repair_settings(
            {
                "favorite_subreddits": "pics",
                "favorite_media": {"id": "x"},
                "media_folders": None,
                "selected_videos": 3,
            }
        )

        assert settings.favorite_subreddits == []
        assert settings.favorite_media == []
        assert settings.media_folders == []
        assert settings.selected_videos == []

    def test_legacy_camel_case_keys(self):
        """Test camelCase keys from older payloads are read."""
        settings = repair_settings(
            {
                "defaultSort": "top",
                "mediaFilter": "videos",
                "favoriteSubreddits": ["pics", "aww"],
                "selectedYouTubeVideos": [{"id": "v1", "title": "Lofi"}],
            }
        )

        assert settings.default_sort == RedditSort.TOP
        assert settings.media_filter == MediaFilter.VIDEOS
        assert settings.favorite_subreddits == ["pics", "aww"]
        assert settings.selected_videos == [VideoSelection(id="v1", title="Lofi")]

    def test_invalid_scalar_falls_back(self):
        """Test an unknown sort resets to the default."""
        settings = repair_settings({"default_sort": "sideways", "media_filter": "images"})

        assert settings.default_sort == RedditSort.HOT
        assert settings.media_filter == MediaFilter.IMAGES

    def test_invalid_entries_dropped(self):
        """Test bare id strings and malformed entries are dropped."""
        settings = repair_settings(
            {
                "favorite_media": ["abc123", image("a").model_dump(mode="json")],
                "favorite_subreddits": ["pics", None],
            }
        )

        assert [item.id for item in settings.favorite_media] == ["a"]
        assert settings.favorite_subreddits == ["pics"]

    def test_legacy_folder_migrated(self):
        """Test folders with mediaItems and camelCase fields are migrated."""
        settings = repair_settings(
            {
                "mediaFolders": [
                    {
                        "id": "f1",
                        "name": "Cats",
                        "mediaItems": [image("a").model_dump(mode="json")],
                        "customThumbnail": "https://i.redd.it/a.jpg",
                        "createdAt": "2024-05-01T10:00:00Z",
                    },
                    {"id": "f2", "name": "Empty"},
                    {"id": "f3"},
                ]
            }
        )

        first, second = settings.media_folders
        assert [item.id for item in first.items] == ["a"]
        assert first.custom_thumbnail == "https://i.redd.it/a.jpg"
        assert first.created_at.year == 2024
        assert second.items == []


class TestLoadSave:
    """Test persisting AppSettings."""

    @pytest.mark.asyncio
    async def test_round_trip(self):
        """Test saved settings load back unchanged."""
        store = SettingsStore(FakeRedis())
        settings = AppSettings(
            default_sort=RedditSort.NEW,
            favorite_subreddits=["pics"],
            favorite_media=[image("a")],
            media_folders=[MediaFolder(id="f1", name="Cats", items=[image("b")])],
        )

        assert await save_settings(store, settings) is True
        loaded = await load_settings(store)

        assert loaded == settings

    @pytest.mark.asyncio
    async def test_load_nothing_stored(self):
        """Test loading from an empty store gives defaults."""
        assert await load_settings(SettingsStore(FakeRedis())) == AppSettings()

    @pytest.mark.asyncio
    async def test_load_legacy_document(self):
        """Test a legacy document in the store is repaired on load."""
        redis = FakeRedis()
        redis.data[settings_key("settings")] = json.dumps(
            {"defaultSort": "rising", "favoriteMedia": ["old_id"]}
        )

        loaded = await load_settings(SettingsStore(redis))

        assert loaded.default_sort == RedditSort.RISING
        assert loaded.favorite_media == []


class TestRedisConnection:
    """Test suite for RedisConnection."""

    def test_pool_initialized(self):
        """Test the pool is built without connecting."""
        connection = RedisConnection("redis://localhost:6379/0")

        assert connection.is_available() is True
        assert connection.pool is not None

    def test_pool_failure_fails_open(self):
        """Test a pool error leaves no client."""
        with patch(
            "mediavault.settings.connection.ConnectionPool.from_url",
            side_effect=ValueError("bad url"),
        ):
            connection = RedisConnection("nonsense://")

        assert connection.is_available() is False
        assert SettingsStore.from_connection(connection).redis is None

    @pytest.mark.asyncio
    async def test_ping(self):
        """Test ping reports health and swallows errors."""
        connection = RedisConnection()
        connection.client = AsyncMock()
        connection.client.ping = AsyncMock(return_value=True)
        assert await connection.ping() is True

        connection.client.ping.side_effect = ConnectionError("down")
        assert await connection.ping() is False

    @pytest.mark.asyncio
    async def test_close(self):
        """Test close releases the client and the pool."""
        connection = RedisConnection()
        connection.client = AsyncMock()
        connection.pool = AsyncMock()

        await connection.close()

        connection.client.aclose.assert_awaited_once()
        connection.pool.disconnect.assert_awaited_once()
