"""Reddit application-only OAuth2 credential handling."""

from mediavault.auth.credentials import (
    CredentialCache,
    SAFETY_MARGIN_SECONDS,
    TokenState,
)

__all__ = [
    "CredentialCache",
    "SAFETY_MARGIN_SECONDS",
    "TokenState",
]
