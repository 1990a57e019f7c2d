"""
Google Docs Reading Tools

This module provides MCP tools for reading Google Docs metadata, plain text
and tabs.
"""

import asyncio
import json
import logging
from typing import Annotated, Any

from pydantic import Field

from auth.service_decorator import require_google_service
from core.config import get_default_max_bytes
from core.errors import NotFoundError
from core.server import server
from core.utils import handle_http_errors, validate_document_id
from gdocs.docs_helpers import docs_web_view_link
from gdocs.docs_text import (
    docs_plain_text,
    find_tab,
    flatten_tabs,
    tab_info_json,
    tab_json,
    tab_plain_text,
    tab_title,
)
from gdrive.drive_helpers import GOOGLE_DOC_MIME_TYPE

logger = logging.getLogger(__name__)


@server.tool()
@handle_http_errors("get_doc_info", is_read_only=True, service_type="docs")
@require_google_service("docs", "docs_read")
async def get_doc_info(service: Any, document_id: str, as_json: bool = False) -> str:
    """
    Gets metadata for a Google Doc: ID, title, revision and link.

    Args:
        document_id: ID of the document.
        as_json: Return a JSON object instead of tab-separated lines.

    Returns:
        str: Document metadata.
    """
    logger.info(f"[get_doc_info] Doc={document_id}")
    document_id = validate_document_id(document_id)

    doc = await asyncio.to_thread(
        service.documents().get(documentId=document_id, fields="documentId,title,revisionId").execute
    )
    doc_id = doc.get("documentId", document_id)
    info = {
        "id": doc_id,
        "name": doc.get("title", ""),
        "mimeType": GOOGLE_DOC_MIME_TYPE,
        "webViewLink": docs_web_view_link(doc_id),
    }
    if doc.get("revisionId"):
        info["revision"] = doc["revisionId"]

    if as_json:
        return json.dumps({"file": info, "document": doc}, indent=2)

    lines = [
        f"id\t{info['id']}",
        f"name\t{info['name']}",
        f"mime\t{info['mimeType']}",
        f"link\t{info['webViewLink']}",
    ]
    if "revision" in info:
        lines.append(f"revision\t{info['revision']}")
    return "\n".join(lines)


@server.tool()
@handle_http_errors("get_doc_content", is_read_only=True, service_type="docs")
@require_google_service("docs", "docs_read")
async def get_doc_content(
    service: Any,
    document_id: str,
    max_bytes: Annotated[int | None, Field(description="Max UTF-8 bytes to return; 0 = unlimited.")] = None,
    tab: str | None = None,
    all_tabs: bool = False,
    as_json: bool = False,
) -> str:
    """
    Retrieves the plain text of a Google Doc.

    Tables are rendered with tabs between cells and newlines between rows.

    Args:
        document_id: ID of the document.
        max_bytes: Max UTF-8 bytes to return (0 = unlimited). Defaults to the configured budget.
        tab: Title or ID of a single tab to read.
        all_tabs: Read every tab, each under a "=== Tab: <title> ===" header.
        as_json: Return a JSON object instead of raw text.

    Returns:
        str: The document text.
    """
    logger.info(f"[get_doc_content] Doc={document_id}, tab={tab}, all_tabs={all_tabs}, max_bytes={max_bytes}")
    document_id = validate_document_id(document_id)
    if max_bytes is None:
        max_bytes = get_default_max_bytes()

    if not tab and not all_tabs:
        doc = await asyncio.to_thread(service.documents().get(documentId=document_id).execute)
        text = docs_plain_text(doc, max_bytes)
        return json.dumps({"text": text}, indent=2) if as_json else text

    doc = await asyncio.to_thread(service.documents().get(documentId=document_id, includeTabsContent=True).execute)
    tabs = flatten_tabs(doc.get("tabs"))

    if tab:
        found = find_tab(tabs, tab)
        if found is None:
            raise NotFoundError(f"tab not found: {tab}")
        text = tab_plain_text(found, max_bytes)
        return json.dumps({"tab": tab_json(found, text)}, indent=2) if as_json else text

    if as_json:
        return json.dumps({"tabs": [tab_json(t, tab_plain_text(t, max_bytes)) for t in tabs]}, indent=2)

    sections = []
    for t in tabs:
        text = tab_plain_text(t, max_bytes)
        if text and not text.endswith("\n"):
            text += "\n"
        sections.append(f"=== Tab: {tab_title(t)} ===\n{text}")
    return "\n".join(sections)


@server.tool()
@handle_http_errors("list_doc_tabs", is_read_only=True, service_type="docs")
@require_google_service("docs", "docs_read")
async def list_doc_tabs(service: Any, document_id: str, as_json: bool = False) -> str:
    """
    Lists all tabs of a Google Doc, nested tabs included, in document order.

    Args:
        document_id: ID of the document.
        as_json: Return a JSON object instead of a tab-separated table.

    Returns:
        str: One line per tab: ID, title and index.
    """
    logger.info(f"[list_doc_tabs] Doc={document_id}")
    document_id = validate_document_id(document_id)

    doc = await asyncio.to_thread(service.documents().get(documentId=document_id, includeTabsContent=True).execute)
    tabs = flatten_tabs(doc.get("tabs"))

    if as_json:
        return json.dumps({"tabs": [tab_info_json(t) for t in tabs]}, indent=2)

    lines = ["ID\tTITLE\tINDEX"]
    for t in tabs:
        props = t.get("tabProperties")
        if props is not None:
            lines.append(f"{props.get('tabId', '')}\t{props.get('title', '')}\t{props.get('index', 0)}")
    return "\n".join(lines)
