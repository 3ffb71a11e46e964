"""Persistent settings backed by Redis.

This package provides:
- Connection pooling (RedisConnection)
- Fail-open JSON key-value operations (SettingsStore)
- AppSettings load/save with legacy payload repair
"""

from mediavault.settings.connection import RedisConnection
from mediavault.settings.store import (
    SettingsStore,
    load_settings,
    repair_settings,
    save_settings,
    settings_key,
)

__all__ = [
    "RedisConnection",
    "SettingsStore",
    "settings_key",
    "load_settings",
    "save_settings",
    "repair_settings",
]
