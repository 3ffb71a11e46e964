"""
Remote account collaborator.

A signed-in user's favorites and folders are mirrored to an account
service. The library only needs the calls below; how they reach the
service is up to the implementation.
"""
from typing import Protocol, runtime_checkable

from mediavault.models.library import MediaFolder
from mediavault.models.media import MediaItem


@runtime_checkable
class AccountBackend(Protocol):
    """Async operations of the remote account service."""

    async def list_favorite_media(self) -> list[MediaItem]: ...

    async def add_favorite_media(self, item: MediaItem) -> None: ...

    async def remove_favorite_media(self, media_id: str) -> None: ...

    async def list_favorite_subreddits(self) -> list[str]: ...

    async def add_favorite_subreddit(self, name: str) -> None: ...

    async def remove_favorite_subreddit(self, name: str) -> None: ...

    async def list_folders(self) -> list[MediaFolder]: ...

    async def create_folder(self, folder: MediaFolder) -> None: ...

    async def delete_folder(self, folder_id: str) -> None: ...

    async def rename_folder(self, folder_id: str, name: str) -> None: ...

    async def add_to_folder(self, folder_id: str, item: MediaItem) -> None: ...

    async def remove_from_folder(self, folder_id: str, media_id: str) -> None: ...

    async def set_folder_thumbnail(self, folder_id: str, thumbnail_url: str) -> None: ...
