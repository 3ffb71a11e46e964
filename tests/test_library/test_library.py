"""
Tests for the Library (favorites and folders).

Tests cover:
- Favorite toggles with snapshot copies
- Folder create, rename, delete and thumbnail
- Per-folder media id uniqueness
- Persistence through the settings store
- Account mirroring without rollback on failure
"""

import json
from unittest.mock import AsyncMock

import pytest

from mediavault.library.backend import AccountBackend
from mediavault.library.library import (
    DEFAULT_FOLDER_COLOR,
    FolderNotFoundError,
    Library,
    generate_folder_id,
)
from mediavault.models.library import MediaFolder
from mediavault.models.media import GalleryImage, MediaFilter, MediaItem, MediaType, SourceType
from mediavault.models.session import RedditSort
from mediavault.settings.store import SettingsStore, settings_key


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


def stored_settings(redis):
    return json.loads(redis.data[settings_key("settings")])


@pytest.fixture
def redis():
    return FakeRedis()


@pytest.fixture
def library(redis):
    return Library(SettingsStore(redis))


@pytest.fixture
def backend():
    return AsyncMock(spec=AccountBackend)


class TestFavorites:
    """Test favorite toggles."""

    @pytest.mark.asyncio
    async def test_toggle_media(self, library, redis):
        """Test toggling adds then removes and persists each step."""
        item = image("a")

        assert await library.toggle_favorite_media(item) is True
        assert library.is_favorite("a")
        assert stored_settings(redis)["favorite_media"][0]["id"] == "a"

        assert await library.toggle_favorite_media(item) is False
        assert not library.is_favorite("a")
        assert stored_settings(redis)["favorite_media"] == []

    @pytest.mark.asyncio
    async def test_favorite_is_snapshot(self, library):
        """Test the stored favorite is a copy of the item."""
        item = MediaItem(
            id="g",
            type=MediaType.GALLERY,
            source=SourceType.REDDIT,
            gallery=[GalleryImage(url="https://i.redd.it/g1.png")],
        )

        await library.toggle_favorite_media(item)

        saved = library.settings.favorite_media[0]
        assert saved == item
        assert saved is not item
        assert saved.gallery is not item.gallery

    @pytest.mark.asyncio
    async def test_toggle_subreddit(self, library):
        """Test subreddit favorites toggle."""
        assert await library.toggle_favorite_subreddit("pics") is True
        assert await library.toggle_favorite_subreddit("aww") is True
        assert await library.toggle_favorite_subreddit("pics") is False

        assert library.settings.favorite_subreddits == ["aww"]


class TestFolders:
    """Test folder operations."""

    @pytest.mark.asyncio
    async def test_create_folder(self, library):
        """Test a folder is created with defaults and deduped initial items."""
        folder = await library.create_folder(
            "  Wallpapers ", initial_items=[image("a"), image("b"), image("a")]
        )

        assert folder.name == "Wallpapers"
        assert folder.color == DEFAULT_FOLDER_COLOR
        assert [item.id for item in folder.items] == ["a", "b"]
        assert library.get_folder(folder.id) == folder

    @pytest.mark.asyncio
    async def test_create_folder_blank_name(self, library):
        """Test blank names are rejected."""
        with pytest.raises(ValueError):
            await library.create_folder("   ")

    @pytest.mark.asyncio
    async def test_folder_ids_unique(self, redis):
        """Test a colliding generated id is drawn again."""
        ids = iter(["f1", "f1", "f2"])
        library = Library(SettingsStore(redis), id_factory=ids.__next__)

        first = await library.create_folder("One")
        second = await library.create_folder("Two")

        assert (first.id, second.id) == ("f1", "f2")

    @pytest.mark.asyncio
    async def test_add_to_folder_skips_duplicates(self, library):
        """Test media ids stay unique within a folder."""
        folder = await library.create_folder("Cats", initial_items=[image("a")])

        added = await library.add_to_folder(folder.id, [image("a"), image("b"), image("b")])

        assert added == 1
        assert [item.id for item in library.get_folder(folder.id).items] == ["a", "b"]
        assert await library.add_to_folder(folder.id, [image("a")]) == 0

    @pytest.mark.asyncio
    async def test_same_item_in_two_folders(self, library):
        """Test one media id may live in several folders."""
        first = await library.create_folder("One", initial_items=[image("a")])
        second = await library.create_folder("Two")

        assert await library.add_to_folder(second.id, [image("a")]) == 1
        assert library.get_folder(first.id).contains("a")
        assert library.get_folder(second.id).contains("a")

    @pytest.mark.asyncio
    async def test_remove_from_folder(self, library):
        """Test removal reports whether the id was present."""
        folder = await library.create_folder("Cats", initial_items=[image("a")])

        assert await library.remove_from_folder(folder.id, "a") is True
        assert await library.remove_from_folder(folder.id, "a") is False
        assert library.get_folder(folder.id).items == []

    @pytest.mark.asyncio
    async def test_rename_and_thumbnail(self, library, redis):
        """Test rename and custom thumbnail are persisted."""
        folder = await library.create_folder("Cats")

        await library.rename_folder(folder.id, "Kittens")
        await library.set_folder_thumbnail(folder.id, "https://i.redd.it/t.jpg")

        stored = stored_settings(redis)["media_folders"][0]
        assert stored["name"] == "Kittens"
        assert stored["custom_thumbnail"] == "https://i.redd.it/t.jpg"

    @pytest.mark.asyncio
    async def test_delete_folder(self, library):
        """Test a deleted folder is gone."""
        folder = await library.create_folder("Cats")

        await library.delete_folder(folder.id)

        assert library.folders == []
        with pytest.raises(FolderNotFoundError):
            library.get_folder(folder.id)

    @pytest.mark.asyncio
    async def test_unknown_folder(self, library):
        """Test operations on unknown folders raise FolderNotFoundError."""
        with pytest.raises(FolderNotFoundError):
            await library.add_to_folder("missing", [image("a")])
        with pytest.raises(FolderNotFoundError):
            await library.rename_folder("missing", "x")
        with pytest.raises(FolderNotFoundError):
            await library.delete_folder("missing")

    def test_generate_folder_id(self):
        """Test generated ids are prefixed and distinct."""
        assert generate_folder_id().startswith("folder_")
        assert generate_folder_id() != generate_folder_id()


class TestPersistence:
    """Test loading and preferences."""

    @pytest.mark.asyncio
    async def test_load_restores_state(self, redis):
        """Test a new library sees what a previous one saved."""
        first = Library(SettingsStore(redis))
        await first.toggle_favorite_media(image("a"))
        folder = await first.create_folder("Cats", initial_items=[image("b")])

        second = await Library.load(SettingsStore(redis))

        assert second.is_favorite("a")
        assert [item.id for item in second.get_folder(folder.id).items] == ["b"]

    @pytest.mark.asyncio
    async def test_works_without_redis(self):
        """Test the library keeps working in memory when nothing persists."""
        library = Library(SettingsStore(None))

        assert await library.toggle_favorite_media(image("a")) is True
        assert library.is_favorite("a")

    @pytest.mark.asyncio
    async def test_update_preferences(self, library):
        """Test preference updates accept enum values or strings."""
        settings = await library.update_preferences(default_sort="top", media_filter=MediaFilter.VIDEOS)

        assert settings.default_sort == RedditSort.TOP
        assert settings.media_filter == MediaFilter.VIDEOS


class TestAccountMirroring:
    """Test mirroring to an account backend."""

    @pytest.mark.asyncio
    async def test_changes_mirrored(self, redis, backend):
        """Test each local change is sent to the backend."""
        library = Library(SettingsStore(redis), backend=backend)

        await library.toggle_favorite_media(image("a"))
        await library.toggle_favorite_subreddit("pics")
        folder = await library.create_folder("Cats")
        await library.add_to_folder(folder.id, [image("b")])
        await library.remove_from_folder(folder.id, "b")

        backend.add_favorite_media.assert_awaited_once()
        backend.add_favorite_subreddit.assert_awaited_once_with("pics")
        backend.create_folder.assert_awaited_once_with(folder)
        backend.add_to_folder.assert_awaited_once()
        backend.remove_from_folder.assert_awaited_once_with(folder.id, "b")

    @pytest.mark.asyncio
    async def test_remote_failure_keeps_local_change(self, redis, backend):
        """Test a failed mirror is logged without rollback."""
        backend.add_favorite_media.side_effect = ConnectionError("offline")
        library = Library(SettingsStore(redis), backend=backend)

        assert await library.toggle_favorite_media(image("a")) is True

        assert library.is_favorite("a")
        assert stored_settings(redis)["favorite_media"][0]["id"] == "a"

    @pytest.mark.asyncio
    async def test_nothing_added_not_mirrored(self, redis, backend):
        """Test duplicate adds send nothing to the backend."""
        library = Library(SettingsStore(redis), backend=backend)
        folder = await library.create_folder("Cats", initial_items=[image("a")])

        await library.add_to_folder(folder.id, [image("a")])

        backend.add_to_folder.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sync_from_account(self, redis, backend):
        """Test account data replaces local favorites and folders."""
        backend.list_favorite_media.return_value = [image("remote")]
        backend.list_favorite_subreddits.return_value = ["aww"]
        backend.list_folders.return_value = [MediaFolder(id="f9", name="Remote")]
        library = Library(SettingsStore(redis), backend=backend)
        await library.toggle_favorite_media(image("local"))

        assert await library.sync_from_account() is True

        assert library.settings.favorite_media_ids == ["remote"]
        assert library.settings.favorite_subreddits == ["aww"]
        assert [f.id for f in library.folders] == ["f9"]

    @pytest.mark.asyncio
    async def test_sync_from_account_failure(self, redis, backend):
        """Test an unreadable account leaves local data alone."""
        backend.list_favorite_media.side_effect = ConnectionError("offline")
        library = Library(SettingsStore(redis), backend=backend)
        await library.toggle_favorite_media(image("local"))

        assert await library.sync_from_account() is False
        assert library.is_favorite("local")

    @pytest.mark.asyncio
    async def test_sync_without_backend(self, library):
        """Test sync is a no-op without a backend."""
        assert await library.sync_from_account() is False
