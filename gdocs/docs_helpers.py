"""
Google Docs Helper Functions

Request builders for the Docs `batchUpdate` API and index arithmetic shared by
the compiler, the table inserter and the image placeholder pass.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)

# Named style mappings for headings (level 1 -> HEADING_1, etc.)
HEADING_STYLE_MAP: dict[int, str] = {
    1: "HEADING_1",
    2: "HEADING_2",
    3: "HEADING_3",
    4: "HEADING_4",
    5: "HEADING_5",
    6: "HEADING_6",
}

# Code styling (monospace font with light gray background)
CODE_FONT_FAMILY = "Consolas"
CODE_BACKGROUND_COLOR = {"red": 0.96, "green": 0.96, "blue": 0.96}  # #f5f5f5

# Horizontal rule styling (paragraph bottom border)
HR_BORDER_WIDTH_PT = 1.0
HR_BORDER_COLOR = {"red": 0.7, "green": 0.7, "blue": 0.7}  # #b3b3b3 light gray
HR_PADDING_BELOW_PT = 6


def utf16_len(text: str) -> int:
    """Length of text in UTF-16 code units, the unit Docs indices count in."""
    return len(text.encode("utf-16-le")) // 2


def build_text_style(
    bold: bool = False,
    italic: bool = False,
    strikethrough: bool = False,
    code: bool = False,
    link: str | None = None,
) -> tuple[dict[str, Any], str]:
    """
    Build a textStyle dict and the matching field mask.

    Returns:
        (text_style, fields) where fields is a comma-separated mask.
    """
    text_style: dict[str, Any] = {}
    fields: list[str] = []

    if bold:
        text_style["bold"] = True
        fields.append("bold")
    if italic:
        text_style["italic"] = True
        fields.append("italic")
    if strikethrough:
        text_style["strikethrough"] = True
        fields.append("strikethrough")
    if code:
        text_style["weightedFontFamily"] = {"fontFamily": CODE_FONT_FAMILY, "weight": 400}
        text_style["backgroundColor"] = {"color": {"rgbColor": CODE_BACKGROUND_COLOR}}
        fields.extend(["weightedFontFamily", "backgroundColor"])
    if link is not None:
        text_style["link"] = {"url": link}
        fields.append("link")

    return text_style, ",".join(fields)


def heading_paragraph_style(level: int) -> dict[str, Any]:
    return {"namedStyleType": HEADING_STYLE_MAP.get(level, "HEADING_6")}


def horizontal_rule_paragraph_style() -> dict[str, Any]:
    return {
        "borderBottom": {
            "color": {"color": {"rgbColor": HR_BORDER_COLOR}},
            "width": {"magnitude": HR_BORDER_WIDTH_PT, "unit": "PT"},
            "dashStyle": "SOLID",
            "padding": {"magnitude": HR_PADDING_BELOW_PT, "unit": "PT"},
        }
    }


def create_insert_text_request(index: int, text: str) -> dict[str, Any]:
    """Create an insertText request."""
    return {"insertText": {"location": {"index": index}, "text": text}}


def create_delete_range_request(start_index: int, end_index: int) -> dict[str, Any]:
    """Create a deleteContentRange request over [start_index, end_index)."""
    return {
        "deleteContentRange": {
            "range": {"startIndex": start_index, "endIndex": end_index},
        }
    }


def create_format_text_request(
    start_index: int, end_index: int, text_style: dict[str, Any], fields: str | None = None
) -> dict[str, Any]:
    """
    Create an updateTextStyle request.

    When `fields` is omitted the mask is the top-level keys of `text_style`.
    """
    return {
        "updateTextStyle": {
            "range": {"startIndex": start_index, "endIndex": end_index},
            "textStyle": text_style,
            "fields": fields if fields is not None else ",".join(text_style.keys()),
        }
    }


def create_paragraph_style_request(
    start_index: int, end_index: int, paragraph_style: dict[str, Any], fields: str | None = None
) -> dict[str, Any]:
    """Create an updateParagraphStyle request."""
    return {
        "updateParagraphStyle": {
            "range": {"startIndex": start_index, "endIndex": end_index},
            "paragraphStyle": paragraph_style,
            "fields": fields if fields is not None else ",".join(paragraph_style.keys()),
        }
    }


def create_insert_table_request(index: int, rows: int, columns: int) -> dict[str, Any]:
    """Create an insertTable request."""
    return {"insertTable": {"location": {"index": index}, "rows": rows, "columns": columns}}


def create_insert_image_request(index: int, image_uri: str) -> dict[str, Any]:
    """Create an insertInlineImage request."""
    return {"insertInlineImage": {"location": {"index": index}, "uri": image_uri}}


def table_cell_index(table_index: int, row: int, col: int, columns: int) -> int:
    """
    Index of the first content position of cell (row, col) in a freshly
    inserted, empty table whose insertTable location was `table_index`.

    A new table occupies: table start (1) + per row [row start (1) + per cell
    (cell start + paragraph newline = 2)] + trailing paragraph. The first cell's
    content therefore sits at table_index + 3.
    """
    return table_index + 3 + row * (2 * columns + 1) + 2 * col


def empty_table_length(rows: int, columns: int) -> int:
    """Number of index units an empty rows x columns table occupies."""
    return 2 + rows * (2 * columns + 1)


def get_document_end_index(document: dict[str, Any]) -> int:
    """Return the endIndex of the last body element (1 for an empty body)."""
    content = document.get("body", {}).get("content", [])
    if not content:
        return 1
    return content[-1].get("endIndex", 1)


def docs_web_view_link(document_id: str) -> str:
    return f"https://docs.google.com/document/d/{document_id}/edit"
