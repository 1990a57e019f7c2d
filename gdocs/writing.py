"""
Google Docs Writing Tools

This module provides MCP tools for creating Google Docs and replacing or
appending their content, as plain text or as formatted markdown.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any

from auth.service_decorator import require_multiple_services
from core.config import get_temp_image_folder_id
from core.errors import LocalFileNotFoundError, ValidationError
from core.server import server
from core.utils import handle_http_errors, validate_choice, validate_document_id, validate_non_empty
from gdocs.docs_helpers import (
    create_delete_range_request,
    create_insert_text_request,
    docs_web_view_link,
    get_document_end_index,
)
from gdocs.managers import MarkdownWriter
from gdrive.drive_helpers import GOOGLE_DOC_MIME_TYPE

logger = logging.getLogger(__name__)

CONTENT_FORMATS = ("plain", "markdown")

# A new, empty document body is a section break plus one newline
EMPTY_DOCUMENT_END_INDEX = 2


async def read_content_file(content_file: str) -> str:
    path = Path(content_file).expanduser()
    if not path.is_file():
        raise LocalFileNotFoundError(str(path))
    return await asyncio.to_thread(path.read_text, encoding="utf-8")


async def _resolve_content(content: str | None, content_file: str | None) -> str:
    if content and content_file:
        raise ValidationError("content and content_file are mutually exclusive")
    if content_file:
        return await read_content_file(content_file)
    return content or ""


@server.tool()
@handle_http_errors("create_doc", service_type="docs")
@require_multiple_services(
    [
        {"service_type": "drive", "scopes": "drive_file", "param_name": "drive_service"},
        {"service_type": "docs", "scopes": "docs_write", "param_name": "docs_service"},
    ]
)
async def create_doc(
    drive_service: Any,
    docs_service: Any,
    title: str,
    parent_folder_id: str | None = None,
    content: str = "",
    markdown_file: str | None = None,
    parse_markdown: bool = True,
) -> str:
    """
    Creates a new Google Doc, optionally filled with content.

    Markdown (the default) is converted to native formatting: headings, lists,
    bold/italic/code/strikethrough, links, code blocks, horizontal rules,
    native tables and inline images. Local image paths are resolved relative
    to `markdown_file`, uploaded to Drive temporarily, and deleted afterwards.

    Args:
        title: Title of the new document.
        parent_folder_id: Drive folder to create the document in (optional).
        content: Initial content (markdown unless parse_markdown is False).
        markdown_file: Path to a markdown file to import instead of `content`.
        parse_markdown: Convert markdown to formatting. Defaults to True.

    Returns:
        str: Confirmation message with document ID and link.
    """
    logger.info(f"[create_doc] Invoked. Title='{title}', parent={parent_folder_id}, file={markdown_file}")

    title = validate_non_empty(title, "title")
    body = await _resolve_content(content, markdown_file)

    file_metadata: dict[str, Any] = {"name": title, "mimeType": GOOGLE_DOC_MIME_TYPE}
    if parent_folder_id and parent_folder_id.strip():
        file_metadata["parents"] = [parent_folder_id.strip()]

    created = await asyncio.to_thread(
        drive_service.files()
        .create(body=file_metadata, fields="id, name, mimeType, webViewLink", supportsAllDrives=True)
        .execute
    )
    doc_id = created["id"]
    link = created.get("webViewLink") or docs_web_view_link(doc_id)

    detail = ""
    if body and parse_markdown:
        writer = MarkdownWriter(
            docs_service,
            doc_id,
            drive_service=drive_service,
            markdown_path=markdown_file,
            temp_folder_id=get_temp_image_folder_id(),
        )
        result = await writer.write(body, base_index=1, document_end_index=EMPTY_DOCUMENT_END_INDEX)
        detail = f" with {result.summary()}"
    elif body:
        requests = [create_insert_text_request(1, body)]
        await asyncio.to_thread(
            docs_service.documents().batchUpdate(documentId=doc_id, body={"requests": requests}).execute
        )
        detail = f" with {len(body)} characters of plain text"

    logger.info(f"[create_doc] Created Google Doc '{title}' (ID: {doc_id}). Link: {link}")
    return f"Created Google Doc '{title}' (ID: {doc_id}){detail}. Link: {link}"


@server.tool()
@handle_http_errors("update_doc", service_type="docs")
@require_multiple_services(
    [
        {"service_type": "docs", "scopes": "docs_write", "param_name": "docs_service"},
        {"service_type": "drive", "scopes": "drive_file", "param_name": "drive_service"},
    ]
)
async def update_doc(
    docs_service: Any,
    drive_service: Any,
    document_id: str,
    content: str | None = None,
    content_file: str | None = None,
    content_format: str = "plain",
    append: bool = False,
) -> str:
    """
    Replaces or appends to the content of a Google Doc.

    Args:
        document_id: ID of the document to update.
        content: Text to write (mutually exclusive with content_file).
        content_file: Path to a file whose content is written.
        content_format: "plain" or "markdown". Defaults to "plain".
        append: Append at the end instead of replacing all content.

    Returns:
        str: Confirmation message.
    """
    logger.info(f"[update_doc] Doc={document_id}, format={content_format}, append={append}, file={content_file}")

    document_id = validate_document_id(document_id)
    content_format = validate_choice(content_format, CONTENT_FORMATS, "content_format", "plain")
    text = await _resolve_content(content, content_file)
    if not text:
        raise ValidationError("either content or content_file is required")

    doc = await asyncio.to_thread(docs_service.documents().get(documentId=document_id).execute)
    end_index = get_document_end_index(doc)

    preamble: list[dict[str, Any]] = []
    if append:
        base_index = max(end_index - 1, 1)
        pre_insert_end = end_index
    else:
        base_index = 1
        if end_index > EMPTY_DOCUMENT_END_INDEX:
            preamble.append(create_delete_range_request(1, end_index - 1))
        pre_insert_end = min(end_index, EMPTY_DOCUMENT_END_INDEX)

    if content_format == "markdown":
        writer = MarkdownWriter(
            docs_service,
            document_id,
            drive_service=drive_service,
            markdown_path=content_file,
            temp_folder_id=get_temp_image_folder_id(),
        )
        result = await writer.write(text, base_index=base_index, document_end_index=pre_insert_end, preamble=preamble)
        detail = result.summary()
    else:
        requests = preamble + [create_insert_text_request(base_index, text)]
        await asyncio.to_thread(
            docs_service.documents().batchUpdate(documentId=document_id, body={"requests": requests}).execute
        )
        detail = f"{len(text)} characters of plain text"

    action = "Appended to" if append else "Updated"
    logger.info(f"[update_doc] {action} document {document_id}: {detail}")
    return f"{action} document {document_id}: {detail}. Link: {docs_web_view_link(document_id)}"
