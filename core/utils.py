import asyncio
import functools
import logging
import re
import ssl

from googleapiclient.errors import HttpError

from core.errors import APIError, GDocsMCPError, ValidationError, format_error, handle_http_error

logger = logging.getLogger(__name__)


def validate_document_id(document_id: str, param_name: str = "document_id") -> str:
    """Validate a Google Docs document ID."""
    if not document_id:
        raise ValidationError(f"{param_name} is required")

    document_id = document_id.strip()
    if not document_id:
        raise ValidationError(f"{param_name} cannot be empty")

    if not re.match(r"^[\w\-]+$", document_id):
        raise ValidationError(f"{param_name} contains invalid characters")

    return document_id


def validate_non_empty(value: str | None, param_name: str) -> str:
    """Validate that a string parameter is present and not blank."""
    if value is None or not value.strip():
        raise ValidationError(f"empty {param_name}")
    return value.strip()


def validate_choice(value: str | None, choices: tuple[str, ...], param_name: str, default: str) -> str:
    """Normalize a case-insensitive choice, falling back to default when blank."""
    normalized = (value or "").strip().lower() or default
    if normalized not in choices:
        raise ValidationError(f"{param_name} must be {' or '.join(choices)}")
    return normalized


class TransientNetworkError(APIError):
    """Custom exception for transient network errors after retries."""

    pass


def handle_http_errors(tool_name: str, is_read_only: bool = False, service_type: str | None = None):
    """
    A decorator to handle Google API HttpErrors and transient SSL errors in a standardized way.

    It wraps a tool function, catches HttpError, logs a detailed error message,
    and raises an error from the project hierarchy with a user-friendly message.

    If is_read_only is True, it will also catch ssl.SSLError and retry with
    exponential backoff. After exhausting retries, it raises a TransientNetworkError.

    Args:
        tool_name (str): The name of the tool being decorated (e.g., 'get_doc_content').
        is_read_only (bool): If True, the operation is considered safe to retry on
                             transient network errors. Defaults to False.
        service_type (str): Optional. The Google service type (e.g., 'docs', 'drive').
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            max_retries = 3
            base_delay = 1

            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except ssl.SSLError as e:
                    if is_read_only and attempt < max_retries - 1:
                        delay = base_delay * (2**attempt)
                        logger.warning(
                            f"SSL error in {tool_name} on attempt {attempt + 1}: {e}. Retrying in {delay} seconds..."
                        )
                        await asyncio.sleep(delay)
                    else:
                        logger.error(f"SSL error in {tool_name} on final attempt: {e}. Raising exception.")
                        raise TransientNetworkError(
                            f"A transient SSL error occurred in '{tool_name}' after {attempt + 1} attempt(s). "
                            "This is likely a temporary network or certificate issue. Please try again shortly."
                        ) from e
                except ValidationError as e:
                    logger.warning(f"Input error in {tool_name}: {e}")
                    raise
                except GDocsMCPError as e:
                    # Already classified (not found, partial apply, offset invariant, ...)
                    logger.warning(format_error(tool_name, e))
                    raise
                except HttpError as error:
                    mapped = handle_http_error(error, kwargs.get("document_id"))
                    logger.error(f"API error in {tool_name} ({service_type or 'google'}): {error}", exc_info=True)
                    raise mapped from error
                except Exception as e:
                    message = f"An unexpected error occurred in {tool_name}: {e}"
                    logger.exception(message)
                    raise APIError(message) from e

        return wrapper

    return decorator
