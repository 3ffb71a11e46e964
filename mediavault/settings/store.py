"""Key-value settings store with fail-open error handling.

Settings are JSON documents under versioned keys
(``mediavault:{name}:v1``). Every operation degrades gracefully: a missing
or unreachable Redis reads as "nothing stored" and writes report False.
"""

import json
from typing import Any, Callable, Optional

import structlog
from pydantic import TypeAdapter, ValidationError

from mediavault.models.library import AppSettings, MediaFolder
from mediavault.models.media import MediaItem
from mediavault.models.session import VideoSelection
from mediavault.settings.connection import RedisConnection

logger = structlog.get_logger(__name__)

KEY_PREFIX = "mediavault"
KEY_VERSION = "v1"
SETTINGS_NAME = "settings"


def settings_key(name: str) -> str:
    """
    Build a versioned store key.

    Example:
        >>> settings_key("settings")
        'mediavault:settings:v1'
    """
    return f"{KEY_PREFIX}:{name}:{KEY_VERSION}"


class SettingsStore:
    """
    JSON get/set over a Redis client.

    Attributes:
        redis: Redis client, or None when the store runs without persistence
    """

    def __init__(self, client: Any = None) -> None:
        self.redis = client

    @classmethod
    def from_connection(cls, connection: RedisConnection) -> "SettingsStore":
        return cls(connection.client)

    async def get(self, key: str) -> Optional[Any]:
        """
        Read and decode a stored JSON value.

        Returns:
            The decoded value, or None if absent, undecodable or unreachable
        """
        if not self.redis:
            logger.debug("settings_get_skipped", reason="redis_not_available", key=key)
            return None

        try:
            value = await self.redis.get(key)
            if value is None:
                logger.debug("settings_miss", key=key)
                return None
            return json.loads(value)

        except json.JSONDecodeError as e:
            logger.error("settings_get_json_decode_error", key=key, error=str(e))
            return None

        except Exception as e:
            logger.error(
                "settings_get_error",
                key=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    async def set(self, key: str, value: Any) -> bool:
        """
        Encode and store a JSON value without expiry.

        Returns:
            True if stored, False otherwise
        """
        if not self.redis:
            logger.debug("settings_set_skipped", reason="redis_not_available", key=key)
            return False

        try:
            payload = json.dumps(value)
            await self.redis.set(key, payload)
            logger.debug("settings_set", key=key, data_size=len(payload))
            return True

        except (TypeError, ValueError) as e:
            logger.error(
                "settings_set_serialization_error",
                key=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        except Exception as e:
            logger.error(
                "settings_set_error",
                key=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    async def delete(self, key: str) -> bool:
        if not self.redis:
            return False

        try:
            return bool(await self.redis.delete(key))
        except Exception as e:
            logger.error("settings_delete_error", key=key, error=str(e))
            return False


# Payload field -> (legacy camelCase key, item validator)
_LIST_FIELDS: dict[str, tuple[str, Callable[[Any], Any]]] = {
    "favorite_subreddits": ("favoriteSubreddits", TypeAdapter(str).validate_python),
    "favorite_media": ("favoriteMedia", MediaItem.model_validate),
    "media_folders": ("mediaFolders", MediaFolder.model_validate),
    "selected_videos": ("selectedYouTubeVideos", VideoSelection.model_validate),
}

_SCALAR_FIELDS = {
    "default_sort": "defaultSort",
    "media_filter": "mediaFilter",
}


def _lookup(payload: dict, field: str, legacy: str) -> Any:
    return payload[field] if field in payload else payload.get(legacy)


def _migrate_folder(folder: Any) -> Any:
    # Folders written before items were embedded carry "mediaItems" or nothing
    if not isinstance(folder, dict):
        return folder
    folder = dict(folder)
    if "items" not in folder:
        legacy_items = folder.pop("mediaItems", None)
        folder["items"] = legacy_items if isinstance(legacy_items, list) else []
    if "customThumbnail" in folder and "custom_thumbnail" not in folder:
        folder["custom_thumbnail"] = folder.pop("customThumbnail")
    if "createdAt" in folder and "created_at" not in folder:
        folder["created_at"] = folder.pop("createdAt")
    return folder


def repair_settings(payload: Any) -> AppSettings:
    """
    Build AppSettings from a possibly legacy or partial payload.

    List fields that are not lists reset to empty lists; list entries that
    fail validation are dropped; invalid scalar fields fall back to their
    defaults. Never raises.
    """
    if not isinstance(payload, dict):
        if payload is not None:
            logger.warning("settings_payload_reset", payload_type=type(payload).__name__)
        return AppSettings()

    values: dict[str, Any] = {}

    for field, legacy in _SCALAR_FIELDS.items():
        raw = _lookup(payload, field, legacy)
        if raw is None:
            continue
        try:
            validated = AppSettings.model_validate({field: raw})
        except ValidationError:
            logger.warning("settings_field_reset", field=field, value=raw)
            continue
        values[field] = getattr(validated, field)

    for field, (legacy, validate) in _LIST_FIELDS.items():
        raw = _lookup(payload, field, legacy)
        if not isinstance(raw, list):
            if raw is not None:
                logger.warning("settings_field_reset", field=field)
            values[field] = []
            continue

        entries = []
        for entry in raw:
            if field == "media_folders":
                entry = _migrate_folder(entry)
            try:
                entries.append(validate(entry))
            except ValidationError:
                logger.warning("settings_entry_dropped", field=field)
        values[field] = entries

    return AppSettings(**values)


async def load_settings(store: SettingsStore) -> AppSettings:
    """Load and repair the persisted AppSettings (defaults when none are stored)."""
    return repair_settings(await store.get(settings_key(SETTINGS_NAME)))


async def save_settings(store: SettingsStore, settings: AppSettings) -> bool:
    """Persist AppSettings; returns False when the write did not happen."""
    return await store.set(settings_key(SETTINGS_NAME), settings.model_dump(mode="json"))
