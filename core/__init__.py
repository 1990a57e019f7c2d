"""Core utilities for gdocs-markdown-mcp."""

from core.config import DocsConfig, get_config, reload_config
from core.errors import (
    APIError,
    AuthenticationError,
    CredentialsNotFoundError,
    GDocsMCPError,
    LocalFileNotFoundError,
    NotFoundError,
    OffsetInvariantError,
    PartialApplyError,
    PermissionDeniedError,
    RateLimitError,
    ValidationError,
    format_error,
    handle_http_error,
)

__all__ = [
    "APIError",
    "AuthenticationError",
    "CredentialsNotFoundError",
    "DocsConfig",
    "format_error",
    "GDocsMCPError",
    "get_config",
    "handle_http_error",
    "LocalFileNotFoundError",
    "NotFoundError",
    "OffsetInvariantError",
    "PartialApplyError",
    "PermissionDeniedError",
    "RateLimitError",
    "reload_config",
    "ValidationError",
]
