"""
Pagination cursors shared by all content adapters.

The three listing protocols continue differently: Reddit and the video
service hand back an opaque token, the tag index counts pages. Both are
wrapped here so callers only ever test ``cursor is None``.
"""
from typing import Generic, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field


class OpaqueCursor(BaseModel):
    """Continuation token issued by the upstream service."""

    model_config = ConfigDict(frozen=True)

    token: str = Field(..., min_length=1)


class PageCursor(BaseModel):
    """Zero-based page index for services without continuation tokens."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0)


Cursor = Optional[Union[OpaqueCursor, PageCursor]]

T = TypeVar("T")


class FetchResult(BaseModel, Generic[T]):
    """
    One page of raw records plus the cursor for the next page.

    A ``next_cursor`` of None means the listing is exhausted.
    """

    items: list[T] = Field(default_factory=list)
    next_cursor: Cursor = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None
