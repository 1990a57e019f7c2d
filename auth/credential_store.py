"""
Stored OAuth credentials.

Credential acquisition (the consent flow) happens outside this project; this
module only loads an authorized-user token file, refreshes it when expired and
writes the refreshed token back.
"""

import json
import logging
import os
from datetime import datetime

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from core.config import get_credentials_file
from core.errors import AuthenticationError, CredentialsNotFoundError

logger = logging.getLogger(__name__)


class TokenFileCredentialStore:
    """Credential store backed by a single authorized-user JSON file."""

    def __init__(self, path: str | None = None):
        self.path: str = path or get_credentials_file()

    def get_credential(self) -> Credentials | None:
        """Load credentials from the token file, or None when it does not exist."""
        if not os.path.exists(self.path):
            logger.debug(f"No credential file found at {self.path}")
            return None

        try:
            with open(self.path) as f:
                creds_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading credentials from {self.path}: {e}")
            return None

        expiry = None
        if creds_data.get("expiry"):
            try:
                expiry = datetime.fromisoformat(creds_data["expiry"].replace("Z", "+00:00"))
                if expiry.tzinfo is not None:
                    expiry = expiry.replace(tzinfo=None)
            except (ValueError, TypeError) as e:
                logger.warning(f"Could not parse expiry time in {self.path}: {e}")

        return Credentials(
            token=creds_data.get("token"),
            refresh_token=creds_data.get("refresh_token"),
            token_uri=creds_data.get("token_uri", "https://oauth2.googleapis.com/token"),
            client_id=creds_data.get("client_id"),
            client_secret=creds_data.get("client_secret"),
            scopes=creds_data.get("scopes"),
            expiry=expiry,
        )

    def store_credential(self, credentials: Credentials) -> bool:
        """Write credentials back to the token file."""
        creds_data = {
            "token": credentials.token,
            "refresh_token": credentials.refresh_token,
            "token_uri": credentials.token_uri,
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
            "scopes": credentials.scopes,
            "expiry": credentials.expiry.isoformat() if credentials.expiry else None,
        }

        try:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(self.path, "w") as f:
                json.dump(creds_data, f, indent=2)
            logger.info(f"Stored refreshed credentials to {self.path}")
            return True
        except OSError as e:
            logger.error(f"Error storing credentials to {self.path}: {e}")
            return False

    def load_valid_credentials(self) -> Credentials:
        """
        Return usable credentials, refreshing an expired token if possible.

        Raises:
            CredentialsNotFoundError: If the token file is missing or unreadable.
            AuthenticationError: If the token cannot be refreshed.
        """
        credentials = self.get_credential()
        if credentials is None:
            raise CredentialsNotFoundError(self.path)

        if credentials.valid:
            return credentials

        if not credentials.refresh_token:
            raise AuthenticationError(f"Stored token at {self.path} is expired and has no refresh token.")

        try:
            credentials.refresh(Request())
        except RefreshError as e:
            raise AuthenticationError(f"Failed to refresh token from {self.path}: {e}") from e

        self.store_credential(credentials)
        return credentials


_credential_store: TokenFileCredentialStore | None = None


def get_credential_store() -> TokenFileCredentialStore:
    """Get the global credential store instance."""
    global _credential_store

    if _credential_store is None:
        _credential_store = TokenFileCredentialStore()
        logger.info(f"Initialized credential store at {_credential_store.path}")

    return _credential_store


def set_credential_store(store: TokenFileCredentialStore | None) -> None:
    """Set the global credential store instance (for testing)."""
    global _credential_store
    _credential_store = store
