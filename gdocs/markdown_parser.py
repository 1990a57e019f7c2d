"""
Markdown Parser

This module turns Markdown source into the flat element sequence defined in
`gdocs/markdown_elements.py`. Parsing is done by markdown-it-py (CommonMark
preset plus GFM tables and strikethrough, and the tasklists plugin); the
parser here walks the token stream and keeps only the element set the
compiler understands.

Parsing is total: anything unrecognized degrades to a plain paragraph.

Example:
    >>> elements = parse_markdown("# Hello\\n\\nThis is **bold** text.")
    >>> [type(e).__name__ for e in elements]
    ['Heading', 'Paragraph']

See Also:
    - `gdocs/markdown_compiler.py` for turning elements into Docs API requests
    - `render_markdown` below for the inverse direction
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from markdown_it import MarkdownIt
from mdit_py_plugins.tasklists import tasklists_plugin

from gdocs.markdown_elements import (
    CodeBlock,
    Heading,
    HorizontalRule,
    ImageRef,
    InlineSpan,
    ListItem,
    MarkdownElement,
    Paragraph,
    Table,
    is_remote_ref,
)

if TYPE_CHECKING:
    from markdown_it.token import Token

logger = logging.getLogger(__name__)

# Task list checkbox characters (Unicode ballot box symbols)
CHECKBOX_UNCHECKED = "☐"  # U+2610 BALLOT BOX
CHECKBOX_CHECKED = "☑"  # U+2611 BALLOT BOX WITH CHECK


class MarkdownParser:
    """
    Converts Markdown text into a flat list of `MarkdownElement`.

    The parser keeps a little state while walking block tokens:
    - `_list_stack`: list types ("bullet"/"ordered") for nesting depth
    - `_item_has_text`: whether the current list item already produced its ListItem
    - `_heading_level`: set between heading_open and heading_close
    - table buffers for rows and cells

    The same parser instance can be reused for multiple inputs.
    """

    def __init__(self) -> None:
        self.md = MarkdownIt("commonmark").enable("table").enable("strikethrough").use(tasklists_plugin)
        self.elements: list[MarkdownElement] = []
        self._list_stack: list[str] = []
        self._item_has_text: list[bool] = []
        self._heading_level: int | None = None
        self._in_table = False
        self._table_rows: list[list[tuple[InlineSpan, ...]]] = []
        self._current_row: list[tuple[InlineSpan, ...]] = []
        self._current_cell: tuple[InlineSpan, ...] = ()

    def parse(self, markdown_text: str) -> list[MarkdownElement]:
        """
        Parse Markdown text into elements.

        Args:
            markdown_text: The Markdown string to parse.

        Returns:
            The ordered element sequence. Never raises for any string input.
        """
        self.elements = []
        self._list_stack = []
        self._item_has_text = []
        self._heading_level = None
        self._in_table = False
        self._table_rows = []
        self._current_row = []
        self._current_cell = ()

        tokens: list[Token] = self.md.parse(markdown_text or "")
        for token in tokens:
            self._handle_token(token)

        logger.debug(f"Parsed {len(tokens)} tokens into {len(self.elements)} elements")
        return self.elements

    def _handle_token(self, token: Token) -> None:
        """Dispatch a block-level token."""
        if token.type == "inline":
            self._handle_inline(token)
        elif token.type == "heading_open":
            self._heading_level = int(token.tag[1:]) if token.tag[1:].isdigit() else 1
        elif token.type == "heading_close":
            self._heading_level = None
        elif token.type in ("bullet_list_open", "ordered_list_open"):
            self._list_stack.append("ordered" if token.type == "ordered_list_open" else "bullet")
        elif token.type in ("bullet_list_close", "ordered_list_close"):
            if self._list_stack:
                self._list_stack.pop()
            else:
                logger.warning("list_close without matching list_open")
        elif token.type == "list_item_open":
            self._item_has_text.append(False)
        elif token.type == "list_item_close":
            if self._item_has_text:
                self._item_has_text.pop()
        elif token.type in ("fence", "code_block"):
            self._handle_code_block(token)
        elif token.type == "hr":
            self.elements.append(HorizontalRule())
        elif token.type == "html_block":
            text = token.content.rstrip("\n")
            if text:
                self.elements.append(Paragraph((InlineSpan(text),)))
        elif token.type == "table_open":
            self._in_table = True
            self._table_rows = []
        elif token.type == "table_close":
            self._handle_table_close()
        elif token.type == "tr_open":
            self._current_row = []
        elif token.type == "tr_close":
            self._table_rows.append(self._current_row)
            self._current_row = []
        elif token.type in ("th_open", "td_open"):
            self._current_cell = ()
        elif token.type in ("th_close", "td_close"):
            self._current_row.append(self._current_cell)
            self._current_cell = ()

    def _handle_inline(self, token: Token) -> None:
        """Turn an inline token into the element its block context calls for."""
        pieces = _inline_pieces(token.children or [])

        if self._in_table:
            self._current_cell = _spans_only(pieces)
            return

        if self._heading_level is not None:
            self.elements.append(Heading(self._heading_level, _spans_only(pieces)))
            return

        if self._list_stack and self._item_has_text and not self._item_has_text[-1]:
            self._item_has_text[-1] = True
            depth = len(self._list_stack) - 1
            ordered = self._list_stack[-1] == "ordered"
            self.elements.append(ListItem(ordered, depth, _spans_only(pieces)))
            return

        self._emit_paragraph_pieces(pieces)

    def _emit_paragraph_pieces(self, pieces: list[InlineSpan | ImageRef]) -> None:
        """Emit a paragraph, splitting it around inline images."""
        segment: list[InlineSpan] = []
        for piece in pieces:
            if isinstance(piece, ImageRef):
                self._flush_segment(segment)
                segment = []
                self.elements.append(piece)
            else:
                segment.append(piece)
        self._flush_segment(segment)

    def _flush_segment(self, segment: list[InlineSpan]) -> None:
        spans = _trim_spans(segment)
        if spans:
            self.elements.append(Paragraph(spans))

    def _handle_code_block(self, token: Token) -> None:
        """Handle fenced code blocks (```) and indented code blocks."""
        text = token.content
        if text.endswith("\n"):
            text = text[:-1]
        self.elements.append(CodeBlock(text))

    def _handle_table_close(self) -> None:
        rows = [tuple(row) for row in self._table_rows if row]
        self._in_table = False
        self._table_rows = []
        if not rows:
            logger.warning("Table close with no buffered rows")
            return
        self.elements.append(Table(tuple(rows)))
        logger.debug(f"Table parsed: {len(rows)} rows")


def _image_ref(token: Token) -> ImageRef | None:
    src = token.attrGet("src") if hasattr(token, "attrGet") else None
    if not src and isinstance(token.attrs, dict):
        src = token.attrs.get("src")
    if not src:
        logger.warning("Image token missing 'src' attribute, skipping")
        return None
    src = str(src)
    return ImageRef(original_ref=src, is_remote=is_remote_ref(src), alt=token.content or "")


def _inline_pieces(children: list[Token]) -> list[InlineSpan | ImageRef]:
    """
    Flatten inline children into styled spans and image references.

    Styles are tracked with counters so nested emphasis (***both***) works;
    adjacent text with identical styling is merged into one span.
    """
    pieces: list[InlineSpan | ImageRef] = []
    bold = italic = strike = 0
    links: list[str] = []

    def add(text: str, code: bool = False) -> None:
        if not text:
            return
        span = InlineSpan(
            text=text,
            bold=bold > 0,
            italic=italic > 0,
            code=code,
            strikethrough=strike > 0,
            link=links[-1] if links else None,
        )
        last = pieces[-1] if pieces else None
        if isinstance(last, InlineSpan) and last.same_style(span):
            pieces[-1] = InlineSpan(
                text=last.text + span.text,
                bold=span.bold,
                italic=span.italic,
                code=span.code,
                strikethrough=span.strikethrough,
                link=span.link,
            )
        else:
            pieces.append(span)

    for child in children:
        if child.type == "text":
            add(child.content)
        elif child.type == "softbreak":
            add(" ")
        elif child.type == "hardbreak":
            add("\n")
        elif child.type == "strong_open":
            bold += 1
        elif child.type == "strong_close":
            bold = max(0, bold - 1)
        elif child.type == "em_open":
            italic += 1
        elif child.type == "em_close":
            italic = max(0, italic - 1)
        elif child.type == "s_open":
            strike += 1
        elif child.type == "s_close":
            strike = max(0, strike - 1)
        elif child.type == "link_open":
            href = child.attrGet("href") if hasattr(child, "attrGet") else None
            links.append(str(href or ""))
        elif child.type == "link_close":
            if links:
                links.pop()
        elif child.type == "code_inline":
            add(child.content, code=True)
        elif child.type == "image":
            image = _image_ref(child)
            if image is not None:
                pieces.append(image)
        elif child.type == "html_inline":
            content = child.content
            if 'class="task-list-item-checkbox"' in content:
                add(CHECKBOX_CHECKED if 'checked="checked"' in content else CHECKBOX_UNCHECKED)
            else:
                add(content)

    return pieces


def _spans_only(pieces: list[InlineSpan | ImageRef]) -> tuple[InlineSpan, ...]:
    """Replace images with their alt text where images cannot stand alone."""
    spans: list[InlineSpan] = []
    for piece in pieces:
        if isinstance(piece, ImageRef):
            if piece.alt:
                spans.append(InlineSpan(piece.alt))
        else:
            spans.append(piece)
    return tuple(spans)


def _with_text(span: InlineSpan, text: str) -> InlineSpan:
    return InlineSpan(
        text=text,
        bold=span.bold,
        italic=span.italic,
        code=span.code,
        strikethrough=span.strikethrough,
        link=span.link,
    )


def _trim_spans(spans: list[InlineSpan]) -> tuple[InlineSpan, ...]:
    """Strip whitespace at the edges of a segment left over from an image split."""
    trimmed = list(spans)
    while trimmed and not trimmed[0].text.strip():
        trimmed.pop(0)
    while trimmed and not trimmed[-1].text.strip():
        trimmed.pop()
    if not trimmed:
        return ()
    trimmed[0] = _with_text(trimmed[0], trimmed[0].text.lstrip())
    trimmed[-1] = _with_text(trimmed[-1], trimmed[-1].text.rstrip())
    return tuple(trimmed)


_parser: MarkdownParser | None = None


def parse_markdown(markdown_text: str) -> list[MarkdownElement]:
    """Parse Markdown into a flat element sequence using a shared parser."""
    global _parser
    if _parser is None:
        _parser = MarkdownParser()
    return _parser.parse(markdown_text)


# =============================================================================
# Rendering back to Markdown
# =============================================================================

_ESCAPE_RE = re.compile(r"([\\`*_\[\]~<>|])")
_BLOCK_START_RE = re.compile(r"^([#>+\-=]|\d+[.)])")


def _escape(text: str) -> str:
    return _ESCAPE_RE.sub(r"\\\1", text)


def render_spans(spans: tuple[InlineSpan, ...] | list[InlineSpan]) -> str:
    """Render inline spans back to Markdown syntax."""
    out: list[str] = []
    for span in spans:
        if span.code:
            fence = "``" if "`" in span.text else "`"
            pad = " " if fence == "``" else ""
            text = f"{fence}{pad}{span.text}{pad}{fence}"
        else:
            text = _escape(span.text).replace("\n", "\\\n")
        if span.strikethrough:
            text = f"~~{text}~~"
        if span.italic:
            text = f"*{text}*"
        if span.bold:
            text = f"**{text}**"
        if span.link is not None:
            text = f"[{text}]({span.link})"
        out.append(text)

    rendered = "".join(out)
    match = _BLOCK_START_RE.match(rendered)
    if match:
        marker = match.group(1)
        rendered = f"{marker[:-1]}\\{marker[-1]}{rendered[len(marker):]}"
    return rendered


def _render_table(table: Table) -> str:
    cols = max((len(row) for row in table.rows), default=0)
    lines = []
    for r, row in enumerate(table.rows):
        cells = [render_spans(cell) for cell in row] + [""] * (cols - len(row))
        lines.append("| " + " | ".join(cells) + " |")
        if r == 0:
            lines.append("|" + "|".join(["---"] * cols) + "|")
    return "\n".join(lines)


def _render_code(block: CodeBlock) -> str:
    fence = "```"
    while fence in block.text:
        fence += "`"
    return f"{fence}\n{block.text}\n{fence}"


def render_markdown(elements: list[MarkdownElement]) -> str:
    """
    Render an element sequence back to Markdown.

    For inputs built from the supported element set, parsing the rendered
    text yields the same element sequence.
    """
    blocks: list[str] = []
    indent_stack: list[int] = []
    previous_was_item = False

    for element in elements:
        if isinstance(element, ListItem):
            del indent_stack[element.depth :]
            while len(indent_stack) < element.depth:
                indent_stack.append(2)
            marker = "1." if element.ordered else "-"
            line = " " * sum(indent_stack) + f"{marker} {render_spans(element.spans)}"
            indent_stack.append(len(marker) + 1)
            if previous_was_item:
                blocks[-1] += "\n" + line
            else:
                blocks.append(line)
            previous_was_item = True
            continue

        previous_was_item = False
        indent_stack = []
        if isinstance(element, Heading):
            blocks.append("#" * element.level + " " + render_spans(element.spans))
        elif isinstance(element, Paragraph):
            blocks.append(render_spans(element.spans))
        elif isinstance(element, Table):
            blocks.append(_render_table(element))
        elif isinstance(element, ImageRef):
            ref = element.original_ref
            if any(ch in ref for ch in " ()"):
                ref = f"<{ref}>"
            blocks.append(f"![{_escape(element.alt)}]({ref})")
        elif isinstance(element, HorizontalRule):
            blocks.append("---")
        elif isinstance(element, CodeBlock):
            blocks.append(_render_code(element))

    return "\n\n".join(blocks) + ("\n" if blocks else "")
