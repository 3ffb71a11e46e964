"""
Runtime configuration read from environment variables.
"""
import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field

from mediavault.adapters.reddit import DEFAULT_USER_AGENT


class AppConfig(BaseModel):
    """
    Application configuration.

    Attributes:
        reddit_client_id: Reddit application id (installed or script app)
        reddit_client_secret: Reddit application secret
        reddit_user_agent: User-Agent sent on every Reddit request
        tag_index_api_key: Optional tag index API key
        tag_index_user_id: Optional tag index user id paired with the key
        video_search_api_key: Video search API key
        redis_url: Settings store connection URL
        log_level: Logging level name
        environment: "development" selects console log output
        http_timeout: Per-request timeout in seconds
        reddit_rate_limit: Reddit calls allowed per minute
    """

    reddit_client_id: Optional[str] = None
    reddit_client_secret: Optional[str] = None
    reddit_user_agent: str = DEFAULT_USER_AGENT
    tag_index_api_key: Optional[str] = None
    tag_index_user_id: Optional[str] = None
    video_search_api_key: Optional[str] = None
    redis_url: str = "redis://localhost:6379/0"
    log_level: str = "INFO"
    environment: str = "production"
    http_timeout: float = Field(30.0, gt=0)
    reddit_rate_limit: int = Field(100, ge=1)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """
        Build configuration from environment variables.

        Unset or empty variables fall back to the field defaults.

        Example:
            >>> config = AppConfig.from_env({"LOG_LEVEL": "DEBUG"})
            >>> config.log_level
            'DEBUG'
        """
        env = os.environ if environ is None else environ
        values = {
            field: env.get(field.upper())
            for field in cls.model_fields
        }
        return cls(**{key: value for key, value in values.items() if value})
