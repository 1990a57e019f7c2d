"""
Google Docs Export Tools

This module provides MCP tools for exporting and copying Google Docs through
the Drive API.
"""

import asyncio
import io
import logging
import re
from pathlib import Path
from typing import Any

from googleapiclient.http import MediaIoBaseDownload

from auth.service_decorator import require_google_service
from core.errors import ValidationError
from core.server import server
from core.utils import handle_http_errors, validate_choice, validate_document_id, validate_non_empty
from gdrive.drive_helpers import GOOGLE_DOC_MIME_TYPE

logger = logging.getLogger(__name__)

EXPORT_FORMATS: dict[str, tuple[str, str]] = {
    "pdf": ("application/pdf", ".pdf"),
    "docx": ("application/vnd.openxmlformats-officedocument.wordprocessingml.document", ".docx"),
    "txt": ("text/plain", ".txt"),
}


async def _get_google_doc_metadata(service: Any, document_id: str) -> dict[str, Any]:
    """Fetch Drive metadata and make sure the file is a native Google Doc."""
    file_metadata = await asyncio.to_thread(
        service.files()
        .get(fileId=document_id, fields="id, name, mimeType, webViewLink", supportsAllDrives=True)
        .execute
    )
    mime_type = file_metadata.get("mimeType", "")
    if mime_type != GOOGLE_DOC_MIME_TYPE:
        raise ValidationError(
            f"File '{file_metadata.get('name', document_id)}' is not a Google Doc (MIME type: {mime_type})"
        )
    return file_metadata


def _default_output_path(name: str, extension: str) -> Path:
    safe_name = re.sub(r"[\\/:*?\"<>|]+", "_", name).strip() or "document"
    return Path.cwd() / f"{safe_name}{extension}"


@server.tool()
@handle_http_errors("export_doc", is_read_only=True, service_type="drive")
@require_google_service("drive", "drive_read")
async def export_doc(
    service: Any,
    document_id: str,
    export_format: str = "pdf",
    output_path: str | None = None,
) -> str:
    """
    Exports a Google Doc to a local file.

    Args:
        document_id: ID of the Google Doc to export.
        export_format: "pdf", "docx" or "txt". Defaults to "pdf".
        output_path: Destination path (optional - defaults to "<title>.<ext>" in the working directory).

    Returns:
        str: Confirmation message with the written path and size.
    """
    logger.info(f"[export_doc] Doc={document_id}, format={export_format}, output_path={output_path}")

    document_id = validate_document_id(document_id)
    export_format = validate_choice(export_format, tuple(EXPORT_FORMATS), "export_format", "pdf")
    mime_type, extension = EXPORT_FORMATS[export_format]

    file_metadata = await _get_google_doc_metadata(service, document_id)
    original_name = file_metadata.get("name", "document")

    request_obj = service.files().export_media(fileId=document_id, mimeType=mime_type)
    fh = io.BytesIO()
    downloader = MediaIoBaseDownload(fh, request_obj)

    done = False
    while not done:
        _, done = await asyncio.to_thread(downloader.next_chunk)

    data = fh.getvalue()
    path = Path(output_path).expanduser() if output_path else _default_output_path(original_name, extension)
    await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
    await asyncio.to_thread(path.write_bytes, data)

    logger.info(f"[export_doc] Wrote {len(data)} bytes to {path}")
    return f"Exported '{original_name}' as {export_format} to {path} ({len(data):,} bytes)"


@server.tool()
@handle_http_errors("copy_doc", service_type="drive")
@require_google_service("drive", "drive_file")
async def copy_doc(
    service: Any,
    document_id: str,
    title: str,
    parent_folder_id: str | None = None,
) -> str:
    """
    Copies a Google Doc.

    Args:
        document_id: ID of the Google Doc to copy.
        title: Title of the copy.
        parent_folder_id: Drive folder for the copy (optional - defaults to the original's folder).

    Returns:
        str: Confirmation message with the new document ID and link.
    """
    logger.info(f"[copy_doc] Doc={document_id}, title='{title}', parent={parent_folder_id}")

    document_id = validate_document_id(document_id)
    title = validate_non_empty(title, "title")
    await _get_google_doc_metadata(service, document_id)

    body: dict[str, Any] = {"name": title}
    if parent_folder_id and parent_folder_id.strip():
        body["parents"] = [parent_folder_id.strip()]

    copied = await asyncio.to_thread(
        service.files()
        .copy(fileId=document_id, body=body, fields="id, name, webViewLink", supportsAllDrives=True)
        .execute
    )
    link = copied.get("webViewLink", "#")
    logger.info(f"[copy_doc] Copied {document_id} to {copied.get('id')}")
    return f"Copied Google Doc to '{copied.get('name', title)}' (ID: {copied.get('id')}). Link: {link}"
