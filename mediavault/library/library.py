"""
Favorites and folders.

Every operation updates the local AppSettings first, persists it through
the settings store, then mirrors the change to the account backend when
one is attached. Remote failures are logged and never roll back the local
change.
"""

import uuid
from typing import Any, Awaitable, Callable, Iterable, Optional

from mediavault.library.backend import AccountBackend
from mediavault.models.library import AppSettings, MediaFolder
from mediavault.models.media import MediaFilter, MediaItem
from mediavault.models.session import RedditSort
from mediavault.settings.store import SettingsStore, load_settings, save_settings
from mediavault.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_FOLDER_COLOR = "#6366f1"


class FolderNotFoundError(LookupError):
    """Raised when a folder id is not in the library."""

    def __init__(self, folder_id: str) -> None:
        self.folder_id = folder_id
        super().__init__(f"Folder '{folder_id}' not found")


def generate_folder_id() -> str:
    return f"folder_{uuid.uuid4().hex[:12]}"


class Library:
    """
    The user's saved media.

    Favorited media and folder contents are stored as snapshots, so they
    stay viewable after the session that produced them is closed.

    Example:
        >>> library = await Library.load(SettingsStore(connection.client))
        >>> await library.toggle_favorite_media(item)
        True
        >>> folder = await library.create_folder("Wallpapers", initial_items=[item])
    """

    def __init__(
        self,
        store: SettingsStore,
        backend: Optional[AccountBackend] = None,
        settings: Optional[AppSettings] = None,
        id_factory: Callable[[], str] = generate_folder_id,
    ) -> None:
        self.store = store
        self.backend = backend
        self._settings = settings or AppSettings()
        self._id_factory = id_factory

    @classmethod
    async def load(
        cls,
        store: SettingsStore,
        backend: Optional[AccountBackend] = None,
        **kwargs: Any,
    ) -> "Library":
        """Create a library from the persisted settings."""
        return cls(store, backend=backend, settings=await load_settings(store), **kwargs)

    @property
    def settings(self) -> AppSettings:
        return self._settings

    @property
    def folders(self) -> list[MediaFolder]:
        return list(self._settings.media_folders)

    def is_favorite(self, media_id: str) -> bool:
        return media_id in self._settings.favorite_media_ids

    def get_folder(self, folder_id: str) -> MediaFolder:
        for folder in self._settings.media_folders:
            if folder.id == folder_id:
                return folder
        raise FolderNotFoundError(folder_id)

    # Persistence

    async def _commit(self, **changes: Any) -> bool:
        self._settings = self._settings.model_copy(update=changes)
        return await save_settings(self.store, self._settings)

    async def _mirror(self, operation: str, call: Callable[[], Awaitable[Any]]) -> None:
        if self.backend is None:
            return
        try:
            await call()
            logger.debug("account_sync_success", operation=operation)
        except Exception as e:
            logger.error(
                "account_sync_failed",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def _replace_folder(
        self, folder_id: str, change: Callable[[MediaFolder], MediaFolder]
    ) -> MediaFolder:
        folders = self._settings.media_folders
        for index, folder in enumerate(folders):
            if folder.id == folder_id:
                updated = change(folder)
                await self._commit(
                    media_folders=folders[:index] + [updated] + folders[index + 1 :]
                )
                return updated
        raise FolderNotFoundError(folder_id)

    # Favorites

    async def toggle_favorite_media(self, item: MediaItem) -> bool:
        """
        Add or remove a media snapshot from favorites.

        Returns:
            True if the item is now a favorite
        """
        favorites = self._settings.favorite_media
        if self.is_favorite(item.id):
            await self._commit(favorite_media=[f for f in favorites if f.id != item.id])
            await self._mirror(
                "remove_favorite_media",
                lambda: self.backend.remove_favorite_media(item.id),
            )
            logger.info("favorite_media_removed", media_id=item.id)
            return False

        snapshot = item.snapshot()
        await self._commit(favorite_media=favorites + [snapshot])
        await self._mirror(
            "add_favorite_media", lambda: self.backend.add_favorite_media(snapshot)
        )
        logger.info("favorite_media_added", media_id=item.id, source=item.source.value)
        return True

    async def toggle_favorite_subreddit(self, name: str) -> bool:
        """
        Add or remove a subreddit from favorites.

        Returns:
            True if the subreddit is now a favorite
        """
        subreddits = self._settings.favorite_subreddits
        if name in subreddits:
            await self._commit(favorite_subreddits=[s for s in subreddits if s != name])
            await self._mirror(
                "remove_favorite_subreddit",
                lambda: self.backend.remove_favorite_subreddit(name),
            )
            return False

        await self._commit(favorite_subreddits=subreddits + [name])
        await self._mirror(
            "add_favorite_subreddit", lambda: self.backend.add_favorite_subreddit(name)
        )
        return True

    # Folders

    async def create_folder(
        self,
        name: str,
        color: str = DEFAULT_FOLDER_COLOR,
        initial_items: Iterable[MediaItem] = (),
    ) -> MediaFolder:
        """
        Create a folder, optionally seeded with media.

        Raises:
            ValueError: If ``name`` is blank
        """
        name = name.strip()
        if not name:
            raise ValueError("Folder name is required")

        existing = {folder.id for folder in self._settings.media_folders}
        folder_id = self._id_factory()
        while folder_id in existing:
            folder_id = self._id_factory()

        items: list[MediaItem] = []
        for item in initial_items:
            if not any(i.id == item.id for i in items):
                items.append(item.snapshot())

        folder = MediaFolder(id=folder_id, name=name, color=color, items=items)
        await self._commit(media_folders=self._settings.media_folders + [folder])
        await self._mirror("create_folder", lambda: self.backend.create_folder(folder))

        logger.info("folder_created", folder_id=folder_id, item_count=len(items))
        return folder

    async def delete_folder(self, folder_id: str) -> None:
        self.get_folder(folder_id)
        await self._commit(
            media_folders=[f for f in self._settings.media_folders if f.id != folder_id]
        )
        await self._mirror("delete_folder", lambda: self.backend.delete_folder(folder_id))
        logger.info("folder_deleted", folder_id=folder_id)

    async def rename_folder(self, folder_id: str, name: str) -> MediaFolder:
        name = name.strip()
        if not name:
            raise ValueError("Folder name is required")

        folder = await self._replace_folder(
            folder_id, lambda f: f.model_copy(update={"name": name})
        )
        await self._mirror(
            "rename_folder", lambda: self.backend.rename_folder(folder_id, name)
        )
        return folder

    async def add_to_folder(self, folder_id: str, items: Iterable[MediaItem]) -> int:
        """
        Add media snapshots to a folder, skipping ids it already holds.

        Returns:
            Number of items actually added
        """
        current = self.get_folder(folder_id)
        added: list[MediaItem] = []
        for item in items:
            if current.contains(item.id) or any(a.id == item.id for a in added):
                continue
            added.append(item.snapshot())

        if not added:
            return 0

        await self._replace_folder(
            folder_id, lambda f: f.model_copy(update={"items": f.items + added})
        )
        for item in added:
            await self._mirror(
                "add_to_folder",
                lambda item=item: self.backend.add_to_folder(folder_id, item),
            )

        logger.info("folder_items_added", folder_id=folder_id, added=len(added))
        return len(added)

    async def remove_from_folder(self, folder_id: str, media_id: str) -> bool:
        """Remove one media id from a folder; False when it was not there."""
        if not self.get_folder(folder_id).contains(media_id):
            return False

        await self._replace_folder(
            folder_id,
            lambda f: f.model_copy(
                update={"items": [i for i in f.items if i.id != media_id]}
            ),
        )
        await self._mirror(
            "remove_from_folder",
            lambda: self.backend.remove_from_folder(folder_id, media_id),
        )
        return True

    async def set_folder_thumbnail(self, folder_id: str, thumbnail_url: str) -> MediaFolder:
        folder = await self._replace_folder(
            folder_id, lambda f: f.model_copy(update={"custom_thumbnail": thumbnail_url})
        )
        await self._mirror(
            "set_folder_thumbnail",
            lambda: self.backend.set_folder_thumbnail(folder_id, thumbnail_url),
        )
        return folder

    # Preferences

    async def update_preferences(
        self,
        default_sort: Optional[RedditSort] = None,
        media_filter: Optional[MediaFilter] = None,
    ) -> AppSettings:
        changes: dict[str, Any] = {}
        if default_sort is not None:
            changes["default_sort"] = RedditSort(default_sort)
        if media_filter is not None:
            changes["media_filter"] = MediaFilter(media_filter)
        if changes:
            await self._commit(**changes)
        return self._settings

    async def sync_from_account(self) -> bool:
        """
        Replace local favorites and folders with the account's copy.

        Returns:
            False when no backend is attached or the account could not be read
        """
        if self.backend is None:
            return False

        try:
            media = await self.backend.list_favorite_media()
            subreddits = await self.backend.list_favorite_subreddits()
            folders = await self.backend.list_folders()
        except Exception as e:
            logger.error("account_load_failed", error=str(e), error_type=type(e).__name__)
            return False

        await self._commit(
            favorite_media=list(media),
            favorite_subreddits=list(subreddits),
            media_folders=list(folders),
        )
        logger.info(
            "account_loaded",
            favorite_media=len(media),
            favorite_subreddits=len(subreddits),
            folders=len(folders),
        )
        return True
