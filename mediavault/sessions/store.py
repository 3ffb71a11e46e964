"""
Registry of open browsing sessions.

The store is the only shared mutable structure of the engine. Its
methods never await, so on one event loop each call is atomic and no two
sessions ever need a joint update.
"""

import secrets
import time
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Optional

from mediavault.models.media import SourceType
from mediavault.models.session import (
    CRITERIA_TYPES,
    Criteria,
    SessionState,
    ViewerSession,
)
from mediavault.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TITLES = {
    SourceType.REDDIT: "reddit",
    SourceType.TAG_INDEX: "tag_index",
    SourceType.VIDEO_SEARCH: "video_search",
}


class SessionNotFoundError(LookupError):
    """Raised when an operation names a session id the store does not hold."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session '{session_id}' not found")


def generate_session_id() -> str:
    """Random opaque id, e.g. ``session_1718000000000_3f9a1c2b7d``."""
    return f"session_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


class SessionStore:
    """
    Keyed registry of ViewerSession records plus the active pointer.

    Sessions keep insertion order; tab cycling follows it. ``last_active_at``
    is informational only and never drives eviction.

    Example:
        >>> store = SessionStore()
        >>> sid = store.create_session(SourceType.TAG_INDEX, TagCriteria(tags="cat"))
        >>> store.find_session(SourceType.TAG_INDEX, TagCriteria(tags="cat")) == sid
        True
    """

    def __init__(
        self,
        id_factory: Callable[[], str] = generate_session_id,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._sessions: dict[str, ViewerSession] = {}
        self._active_id: Optional[str] = None
        self._id_factory = id_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # Queries

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[ViewerSession]:
        return iter(list(self._sessions.values()))

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    @property
    def sessions(self) -> list[ViewerSession]:
        return list(self._sessions.values())

    @property
    def active_session_id(self) -> Optional[str]:
        return self._active_id

    def get_session(self, session_id: str) -> Optional[ViewerSession]:
        return self._sessions.get(session_id)

    def get_active_session(self) -> Optional[ViewerSession]:
        if self._active_id is None:
            return None
        return self._sessions.get(self._active_id)

    def require_session(self, session_id: str) -> ViewerSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def find_session(self, source: SourceType, criteria: Criteria) -> Optional[str]:
        """
        Find an open session serving the same query.

        Matches on source type plus the criteria fields relevant to it
        (see each criteria model's ``match_key``).
        """
        for session in self._sessions.values():
            if session.matches(source, criteria):
                return session.id
        return None

    # Mutations

    def create_session(
        self,
        source: SourceType,
        criteria: Criteria,
        title: Optional[str] = None,
    ) -> str:
        """
        Register a new session with empty state and make it active.

        Raises:
            TypeError: If ``criteria`` does not belong to ``source``
        """
        source = SourceType(source)
        expected = CRITERIA_TYPES[source]
        if not isinstance(criteria, expected):
            raise TypeError(
                f"{source.value} sessions need {expected.__name__}, "
                f"got {type(criteria).__name__}"
            )

        now = self._clock()
        session = ViewerSession(
            id=self._id_factory(),
            source=source,
            title=title or DEFAULT_TITLES[source],
            icon=source.value,
            criteria=criteria.model_copy(deep=True),
            state=SessionState(),
            created_at=now,
            last_active_at=now,
        )
        self._sessions[session.id] = session
        self._active_id = session.id

        logger.info(
            "session_created",
            session_id=session.id,
            source=source.value,
            title=session.title,
            open_sessions=len(self._sessions),
        )
        return session.id

    def switch_to_session(self, session_id: str) -> None:
        """Make ``session_id`` active and stamp its ``last_active_at``."""
        session = self.require_session(session_id)
        self._active_id = session_id
        self._sessions[session_id] = session.model_copy(
            update={"last_active_at": self._clock()}
        )
        logger.debug("session_switched", session_id=session_id)

    def close_session(self, session_id: str) -> None:
        """
        Remove a session.

        When the closed session was active, the session now at its former
        index becomes active, else the one before it, else the first
        remaining, else none.
        """
        if session_id not in self._sessions:
            logger.warning("session_close_unknown", session_id=session_id)
            return

        order = list(self._sessions)
        index = order.index(session_id)
        del self._sessions[session_id]

        if self._active_id == session_id:
            remaining = list(self._sessions)
            if index < len(remaining):
                self._active_id = remaining[index]
            elif index > 0:
                self._active_id = remaining[index - 1]
            elif remaining:
                self._active_id = remaining[0]
            else:
                self._active_id = None

        logger.info(
            "session_closed",
            session_id=session_id,
            active_session_id=self._active_id,
            open_sessions=len(self._sessions),
        )

    def update_session(self, session_id: str, **state: Any) -> bool:
        """
        Shallow-merge ``state`` fields into a session's SessionState.

        Returns:
            False when the session no longer exists (the write is dropped)
        """
        session = self._sessions.get(session_id)
        if session is None:
            logger.debug("session_update_dropped", session_id=session_id)
            return False

        new_state = session.state.model_copy(update=state)
        self._sessions[session_id] = session.model_copy(
            update={"state": new_state, "last_active_at": self._clock()}
        )
        return True

    def update_session_data(self, session_id: str, **criteria: Any) -> bool:
        """
        Shallow-merge query criteria fields into a session.

        The merged criteria are validated again, so nested fields given as
        plain mappings become models.

        Returns:
            False when the session no longer exists

        Raises:
            pydantic.ValidationError: If the merged criteria are invalid
        """
        session = self._sessions.get(session_id)
        if session is None:
            logger.debug("session_data_update_dropped", session_id=session_id)
            return False

        current = session.criteria
        new_criteria = type(current).model_validate({**current.model_dump(), **criteria})
        self._sessions[session_id] = session.model_copy(
            update={"criteria": new_criteria, "last_active_at": self._clock()}
        )
        return True

    def cycle_to_next_session(self) -> Optional[str]:
        """Activate the next session in insertion order, wrapping around."""
        if len(self._sessions) <= 1:
            return self._active_id

        order = list(self._sessions)
        try:
            current = order.index(self._active_id)  # type: ignore[arg-type]
        except ValueError:
            current = -1
        self._active_id = order[(current + 1) % len(order)]
        return self._active_id

    # Fetch bookkeeping

    def begin_fetch(self, session_id: str, new_query: bool) -> int:
        """
        Mark a session loading and return the generation the fetch belongs to.

        A new query bumps the generation and resets the cursor and items,
        so any response still in flight for the previous query is recognised
        as stale.
        """
        session = self.require_session(session_id)
        generation = session.state.generation
        update: dict[str, Any] = {"is_loading": True, "error": None}
        if new_query:
            generation += 1
            update.update(
                generation=generation,
                cursor=None,
                items=[],
                has_more=True,
                selected_index=None,
            )
        self.update_session(session_id, **update)
        return generation

    def is_current(self, session_id: str, generation: int) -> bool:
        """True when the session still exists and is on ``generation``."""
        session = self._sessions.get(session_id)
        return session is not None and session.state.generation == generation
