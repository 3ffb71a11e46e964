"""
Subreddit metadata shown next to a Reddit browse session.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class SubredditInfo(BaseModel):
    """Header details of one subreddit."""

    name: str
    icon: Optional[str] = None
    subscribers: Optional[int] = None
    description: Optional[str] = None


class SubredditSearchResult(BaseModel):
    """One hit of a subreddit name search."""

    name: str
    display_name: str = ""
    title: str = ""
    description: str = ""
    subscribers: int = Field(0, ge=0)
    icon: str = ""
    is_nsfw: bool = False
    url: str = ""
    created: Optional[datetime] = None
