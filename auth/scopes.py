"""
Google Docs / Drive OAuth Scopes

This module centralizes OAuth scope definitions.
Separated from service_decorator.py to avoid circular imports.
"""

# Google Drive scopes
DRIVE_SCOPE = "https://www.googleapis.com/auth/drive"
DRIVE_READONLY_SCOPE = "https://www.googleapis.com/auth/drive.readonly"
DRIVE_FILE_SCOPE = "https://www.googleapis.com/auth/drive.file"

# Google Docs scopes
DOCS_READONLY_SCOPE = "https://www.googleapis.com/auth/documents.readonly"
DOCS_WRITE_SCOPE = "https://www.googleapis.com/auth/documents"

DOCS_SCOPES = [DOCS_READONLY_SCOPE, DOCS_WRITE_SCOPE]
DRIVE_SCOPES = [DRIVE_SCOPE, DRIVE_READONLY_SCOPE, DRIVE_FILE_SCOPE]

# Short names used by the service decorators
SCOPE_GROUPS: dict[str, str] = {
    "docs_read": DOCS_READONLY_SCOPE,
    "docs_write": DOCS_WRITE_SCOPE,
    "drive_read": DRIVE_READONLY_SCOPE,
    "drive_file": DRIVE_FILE_SCOPE,
    "drive": DRIVE_SCOPE,
}

# API name and version per service type
SERVICE_CONFIGS: dict[str, dict[str, str]] = {
    "docs": {"service": "docs", "version": "v1"},
    "drive": {"service": "drive", "version": "v3"},
}


# Broader scopes that also grant the narrower ones listed
IMPLIED_SCOPES: dict[str, set[str]] = {
    DRIVE_SCOPE: {DRIVE_READONLY_SCOPE, DRIVE_FILE_SCOPE},
    DOCS_WRITE_SCOPE: {DOCS_READONLY_SCOPE},
}


def resolve_scopes(scopes: str | list[str]) -> list[str]:
    """Expand short scope names ("docs_write") into full scope URLs."""
    if isinstance(scopes, str):
        scopes = [scopes]
    return [SCOPE_GROUPS.get(scope, scope) for scope in scopes]


def missing_scopes(required: list[str], granted: list[str]) -> list[str]:
    """Return the required scopes not covered by the granted ones."""
    covered = set(granted)
    for scope in granted:
        covered |= IMPLIED_SCOPES.get(scope, set())
    return [scope for scope in required if scope not in covered]
