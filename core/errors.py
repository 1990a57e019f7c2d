"""
Custom error types for Google Docs operations.

Provides user-friendly error messages and structured error handling.
"""

from typing import Any

# =============================================================================
# Base Exception Hierarchy
# =============================================================================


class GDocsMCPError(Exception):
    """Base exception for all gdocs-markdown-mcp errors."""

    pass


# =============================================================================
# Authentication Errors
# =============================================================================


class AuthenticationError(GDocsMCPError):
    """Raised when authentication fails or credentials are invalid."""

    pass


class CredentialsNotFoundError(AuthenticationError):
    """Raised when no stored credentials are found."""

    def __init__(self, credentials_path: str):
        super().__init__(
            f"No credentials found at {credentials_path}. "
            "Authorize once and point GDOCS_MCP_CREDENTIALS_FILE at the saved token."
        )
        self.credentials_path = credentials_path


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(GDocsMCPError):
    """Raised when input validation fails."""

    pass


# =============================================================================
# Lookup Errors
# =============================================================================


class NotFoundError(GDocsMCPError):
    """Raised when a referenced document, tab, table or file does not exist."""

    pass


class LocalFileNotFoundError(NotFoundError):
    """Raised when a local file referenced from markdown does not exist."""

    def __init__(self, local_path: str, message: str = ""):
        super().__init__(message or f"Local file not found: '{local_path}'")
        self.local_path = local_path


# =============================================================================
# Mutation Errors
# =============================================================================


class OffsetInvariantError(GDocsMCPError):
    """Raised when a computed document index falls outside the live document."""

    def __init__(self, index: int, end_index: int, context: str = ""):
        where = f" ({context})" if context else ""
        super().__init__(f"Computed index {index} is outside the document bounds [1, {end_index}){where}")
        self.index = index
        self.end_index = end_index


class PartialApplyError(GDocsMCPError):
    """
    Raised when a multi-step mutation fails partway.

    Mutations applied before the failure are not rolled back; `completed`
    tells the caller how many units landed out of `total`.
    """

    def __init__(self, message: str, completed: int, total: int, details: Any | None = None):
        super().__init__(f"{message} ({completed} of {total} applied)")
        self.completed = completed
        self.total = total
        self.details = details


# =============================================================================
# API Errors
# =============================================================================


class APIError(GDocsMCPError):
    """Raised for general Google API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PermissionDeniedError(APIError):
    """Raised when the user lacks permission for an operation (403)."""

    pass


class RateLimitError(APIError):
    """Raised when API rate limits are exceeded (429)."""

    pass


def _status_of(error: Exception) -> int | None:
    resp = getattr(error, "resp", None)
    status = getattr(resp, "status", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def handle_http_error(error: Exception, document_id: str | None = None) -> GDocsMCPError:
    """
    Convert Google API HTTP errors to user-friendly errors.
    """
    status = _status_of(error)
    error_str = str(error)

    if status == 404:
        return NotFoundError(f"Doc not found or not a Google Doc (id={document_id or 'unknown'})")
    elif status == 403:
        return PermissionDeniedError("Permission denied. You may not have access to this document.", status_code=403)
    elif status == 401:
        return AuthenticationError("Authentication expired. Please re-authorize.")
    elif status == 429:
        return RateLimitError("Rate limit exceeded. Please wait and try again.", status_code=429)
    else:
        return APIError(f"Google API error: {error_str}", status_code=status)


def format_error(operation: str, error: Exception) -> str:
    """Format an error for display to the user."""
    return f"{operation} failed: {error}"
