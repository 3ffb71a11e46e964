"""
Common contract for content adapters.

Each adapter translates one upstream listing protocol into
``fetch_page(criteria, cursor) -> FetchResult``. A cursor of None asks for
the first page, and the caller discards whatever items it held before.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, TypeVar

from mediavault.adapters.exceptions import ValidationError
from mediavault.adapters.http import AsyncHTTPClient
from mediavault.models.cursor import Cursor, FetchResult
from mediavault.models.media import SourceType

C = TypeVar("C")


def require_query(text: Optional[str], field: str = "search_query") -> str:
    """Return trimmed search text; empty text is rejected before any request."""
    query = (text or "").strip()
    if not query:
        raise ValidationError("Search query is required", field=field)
    return query


class ContentAdapter(ABC):
    """
    Abstract base for listing adapters.

    Attributes:
        source: Source type served by the adapter
    """

    source: SourceType

    def __init__(self, http: AsyncHTTPClient) -> None:
        self._http = http

    @abstractmethod
    async def fetch_page(self, criteria: Any, cursor: Cursor) -> FetchResult:
        """
        Fetch one page of raw records.

        Args:
            criteria: Query criteria for this adapter's source type
            cursor: Cursor returned with the previous page, or None

        Returns:
            FetchResult with raw records and the next cursor (None when exhausted)

        Raises:
            FetchError: Any validation, transport or upstream failure
        """

    async def close(self) -> None:
        """Release the adapter's HTTP connections."""
        await self._http.close()

    @staticmethod
    def _require(value: Any, expected: type[C], field: str) -> C:
        if not isinstance(value, expected):
            raise ValidationError(
                f"expected {expected.__name__}, got {type(value).__name__}",
                field=field,
            )
        return value

    @staticmethod
    def _optional_cursor(cursor: Cursor, expected: type[C]) -> Optional[C]:
        if cursor is None:
            return None
        return ContentAdapter._require(cursor, expected, "cursor")
