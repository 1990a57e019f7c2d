# Make the auth directory a Python package
# Public API exports from canonical locations

from auth.credential_store import TokenFileCredentialStore, get_credential_store, set_credential_store
from auth.scopes import SCOPE_GROUPS, SERVICE_CONFIGS, missing_scopes, resolve_scopes

__all__ = [
    "TokenFileCredentialStore",
    "get_credential_store",
    "set_credential_store",
    "SCOPE_GROUPS",
    "SERVICE_CONFIGS",
    "missing_scopes",
    "resolve_scopes",
]
