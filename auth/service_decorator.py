"""
Service injection decorators for tools.

`require_google_service` builds an authenticated Google API client and passes
it to the wrapped tool as its `service` argument. Credential loading and refresh
run in a worker thread. The injected parameter is removed from the public
signature so MCP clients never see it.
"""

import asyncio
import functools
import inspect
import logging
from typing import Any

from googleapiclient.discovery import build

from auth.credential_store import get_credential_store
from auth.scopes import SERVICE_CONFIGS, missing_scopes, resolve_scopes
from core.errors import AuthenticationError

logger = logging.getLogger(__name__)


def get_google_service(service_type: str, scopes: str | list[str]) -> Any:
    """
    Build a Google API client for the given service type.

    Args:
        service_type: "docs" or "drive".
        scopes: Short scope name(s) required by the caller.

    Raises:
        AuthenticationError: If the stored token lacks a required scope.
    """
    config = SERVICE_CONFIGS.get(service_type)
    if config is None:
        raise ValueError(f"Unknown service type: {service_type}")

    credentials = get_credential_store().load_valid_credentials()
    # Tokens saved without a scope list are trusted as-is
    if credentials.scopes:
        missing = missing_scopes(resolve_scopes(scopes), list(credentials.scopes))
        if missing:
            raise AuthenticationError(f"Stored token is missing required scopes: {', '.join(missing)}")

    logger.debug(f"Building {config['service']} {config['version']} service")
    return build(config["service"], config["version"], credentials=credentials, cache_discovery=False)


def _strip_params(func, names: set[str]) -> inspect.Signature:
    sig = inspect.signature(func)
    params = [p for p in sig.parameters.values() if p.name not in names]
    return sig.replace(parameters=params)


def require_google_service(service_type: str, scopes: str | list[str], param_name: str = "service"):
    """Inject one authenticated service as `param_name`."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            kwargs[param_name] = await asyncio.to_thread(get_google_service, service_type, scopes)
            return await func(*args, **kwargs)

        wrapper.__signature__ = _strip_params(func, {param_name})
        return wrapper

    return decorator


def require_multiple_services(service_configs: list[dict[str, Any]]):
    """
    Inject several services at once.

    Each config dict has "service_type", "scopes" and "param_name" keys.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            for config in service_configs:
                kwargs[config["param_name"]] = await asyncio.to_thread(
                    get_google_service, config["service_type"], config["scopes"]
                )
            return await func(*args, **kwargs)

        wrapper.__signature__ = _strip_params(func, {c["param_name"] for c in service_configs})
        return wrapper

    return decorator
