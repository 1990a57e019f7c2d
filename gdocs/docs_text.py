"""
Plain-text extraction and tab helpers for Docs API document JSON.

Extraction walks structural elements in document order under a UTF-8 byte
budget. Every level returns a keep-going flag; once the budget is filled the
flag is False and the whole walk unwinds without visiting anything else.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)

UNTITLED_TAB = "(untitled)"


class _BoundedBuffer:
    """Accumulates text, never holding more than `max_bytes` UTF-8 bytes."""

    def __init__(self, max_bytes: int):
        self.max_bytes = max_bytes
        self.parts: list[str] = []
        self.size = 0

    def append(self, text: str) -> bool:
        """Append text; return False once the budget is exhausted."""
        if self.max_bytes <= 0:
            self.parts.append(text)
            return True

        remaining = self.max_bytes - self.size
        if remaining <= 0:
            return False

        data = text.encode("utf-8")
        if len(data) > remaining:
            # Cut on a character boundary so the output stays valid UTF-8
            fragment = data[:remaining].decode("utf-8", errors="ignore")
            self.parts.append(fragment)
            self.size += len(fragment.encode("utf-8"))
            return False

        self.parts.append(text)
        self.size += len(data)
        return True

    def getvalue(self) -> str:
        return "".join(self.parts)


def _append_element_text(buf: _BoundedBuffer, element: dict[str, Any]) -> bool:
    if not element:
        return True

    if "paragraph" in element:
        for run in element["paragraph"].get("elements", []):
            text_run = run.get("textRun")
            if text_run and text_run.get("content"):
                if not buf.append(text_run["content"]):
                    return False

    elif "table" in element:
        for row_idx, row in enumerate(element["table"].get("tableRows", [])):
            if row_idx > 0 and not buf.append("\n"):
                return False
            for cell_idx, cell in enumerate(row.get("tableCells", [])):
                if cell_idx > 0 and not buf.append("\t"):
                    return False
                for content in cell.get("content", []):
                    if not _append_element_text(buf, content):
                        return False

    elif "tableOfContents" in element:
        for content in element["tableOfContents"].get("content", []):
            if not _append_element_text(buf, content):
                return False

    return True


def extract_text(content: list[dict[str, Any]], max_bytes: int = 0) -> str:
    """
    Extract plain text from a list of structural elements.

    Args:
        content: `body.content` style list of structural elements.
        max_bytes: UTF-8 byte budget; `<= 0` means unlimited.

    Returns:
        Extracted text, at most `max_bytes` bytes when a budget is set.
    """
    buf = _BoundedBuffer(max_bytes)
    for element in content or []:
        if not _append_element_text(buf, element):
            logger.debug(f"Extraction stopped at byte budget {max_bytes}")
            break
    return buf.getvalue()


def docs_plain_text(document: dict[str, Any] | None, max_bytes: int = 0) -> str:
    """Extract the body text of a document."""
    if not document:
        return ""
    return extract_text(document.get("body", {}).get("content", []), max_bytes)


def tab_plain_text(tab: dict[str, Any] | None, max_bytes: int = 0) -> str:
    """Extract the body text of a single tab."""
    if not tab:
        return ""
    body = (tab.get("documentTab") or {}).get("body") or {}
    return extract_text(body.get("content", []), max_bytes)


def flatten_tabs(tabs: list[dict[str, Any] | None] | None) -> list[dict[str, Any]]:
    """Flatten a tab tree pre-order: each tab precedes its child tabs."""
    result: list[dict[str, Any]] = []
    for tab in tabs or []:
        if tab is None:
            continue
        result.append(tab)
        if tab.get("childTabs"):
            result.extend(flatten_tabs(tab["childTabs"]))
    return result


def find_tab(tabs: list[dict[str, Any]], query: str) -> dict[str, Any] | None:
    """Find a tab by exact ID, then by case-insensitive title."""
    query = (query or "").strip()
    for tab in tabs:
        if tab.get("tabProperties", {}).get("tabId") == query:
            return tab

    lower = query.lower()
    for tab in tabs:
        props = tab.get("tabProperties")
        if props is not None and props.get("title", "").lower() == lower:
            return tab
    return None


def tab_title(tab: dict[str, Any]) -> str:
    return tab.get("tabProperties", {}).get("title") or UNTITLED_TAB


def tab_json(tab: dict[str, Any], text: str) -> dict[str, Any]:
    data: dict[str, Any] = {"text": text}
    props = tab.get("tabProperties")
    if props is not None:
        data["id"] = props.get("tabId", "")
        data["title"] = props.get("title", "")
        data["index"] = props.get("index", 0)
    return data


def tab_info_json(tab: dict[str, Any]) -> dict[str, Any]:
    """Tab metadata without content; nesting keys only appear when set."""
    data: dict[str, Any] = {}
    props = tab.get("tabProperties")
    if props is not None:
        data["id"] = props.get("tabId", "")
        data["title"] = props.get("title", "")
        data["index"] = props.get("index", 0)
        if props.get("nestingLevel", 0) > 0:
            data["nestingLevel"] = props["nestingLevel"]
        if props.get("parentTabId"):
            data["parentTabId"] = props["parentTabId"]
    return data
