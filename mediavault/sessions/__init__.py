"""Tab-like registry of independent browsing sessions."""

from mediavault.sessions.store import (
    SessionNotFoundError,
    SessionStore,
    generate_session_id,
)

__all__ = [
    "SessionStore",
    "SessionNotFoundError",
    "generate_session_id",
]
