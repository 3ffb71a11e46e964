"""Favorites, folders and the remote account collaborator."""

from mediavault.library.backend import AccountBackend
from mediavault.library.library import (
    DEFAULT_FOLDER_COLOR,
    FolderNotFoundError,
    Library,
    generate_folder_id,
)

__all__ = [
    "AccountBackend",
    "Library",
    "FolderNotFoundError",
    "DEFAULT_FOLDER_COLOR",
    "generate_folder_id",
]
