"""
Markdown to Google Docs mutation compiler.

Walks a flat element sequence once and produces:
- a single plain-text payload inserted at a base index,
- text/paragraph style operations addressed relative to that base,
- deferred table descriptors (one anchor unit each in the payload),
- image placeholders (a short marker line each in the payload).

Offsets are fixed at emission time and never rewritten. Callers insert the
payload first, then apply `operations`, then hand `tables` to the
`TableInserter` and `images` to the `ImagePlaceholderManager`.

Example:
    >>> compiled = compile_markdown(parse_markdown("Hello **world**"))
    >>> compiled.plain_text
    'Hello world\\n'
    >>> compiled.operations[0].to_request()["updateTextStyle"]["range"]
    {'startIndex': 7, 'endIndex': 12}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from gdocs.docs_helpers import (
    build_text_style,
    create_format_text_request,
    create_insert_image_request,
    create_insert_text_request,
    create_paragraph_style_request,
    heading_paragraph_style,
    horizontal_rule_paragraph_style,
    utf16_len,
)
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
    spans_text,
)
from gdocs.markdown_parser import parse_markdown

logger = logging.getLogger(__name__)

# One index unit reserved in the payload for each table; replaced on insertion.
TABLE_ANCHOR = "\u0000"

# Short, ASCII, unstyled so the marker survives as a single text run.
IMAGE_PLACEHOLDER_FORMAT = "[[{tag}:{ordinal}]]"
DEFAULT_IMAGE_TAG = "IMG"

BULLET_PREFIX = "• "

Cell = tuple[InlineSpan, ...]


def image_placeholder(ordinal: int, tag: str = DEFAULT_IMAGE_TAG) -> str:
    return IMAGE_PLACEHOLDER_FORMAT.format(tag=tag, ordinal=ordinal)


def choose_image_tag(text: str) -> str:
    """First marker tag whose `[[<tag>:` prefix never occurs in `text`."""
    tag = DEFAULT_IMAGE_TAG
    suffix = 0
    while f"[[{tag}:" in text:
        suffix += 1
        tag = f"{DEFAULT_IMAGE_TAG}{suffix}"
    return tag


def _element_text(element: MarkdownElement) -> str:
    if isinstance(element, (Heading, Paragraph, ListItem)):
        return spans_text(element.spans)
    if isinstance(element, CodeBlock):
        return element.text
    if isinstance(element, Table):
        return "\n".join(spans_text(cell) for row in element.rows for cell in row)
    return ""


# =============================================================================
# Compiled operations
# =============================================================================


@dataclass(frozen=True)
class InsertText:
    offset: int
    text: str

    def to_request(self) -> dict[str, Any]:
        return create_insert_text_request(self.offset, self.text)


@dataclass(frozen=True)
class ApplyTextStyle:
    start_offset: int
    end_offset: int
    style: dict[str, Any]
    fields: str

    def to_request(self) -> dict[str, Any]:
        return create_format_text_request(self.start_offset, self.end_offset, self.style, self.fields)


@dataclass(frozen=True)
class ApplyParagraphStyle:
    start_offset: int
    end_offset: int
    style: dict[str, Any]
    fields: str

    def to_request(self) -> dict[str, Any]:
        return create_paragraph_style_request(self.start_offset, self.end_offset, self.style, self.fields)


@dataclass(frozen=True)
class InsertInlineImage:
    offset: int
    source_url: str

    def to_request(self) -> dict[str, Any]:
        return create_insert_image_request(self.offset, self.source_url)


CompiledOperation = InsertText | ApplyTextStyle | ApplyParagraphStyle | InsertInlineImage


@dataclass(frozen=True)
class TableDescriptor:
    """A table deferred to the second wave; `start_offset` is its anchor's offset."""

    start_offset: int
    cells: tuple[tuple[Cell, ...], ...]

    @property
    def rows(self) -> int:
        return len(self.cells)

    @property
    def columns(self) -> int:
        return len(self.cells[0]) if self.cells else 0

    def cell_texts(self) -> list[list[str]]:
        return [[spans_text(cell) for cell in row] for row in self.cells]


@dataclass(frozen=True)
class ImagePlaceholder:
    ordinal: int
    marker: str
    original_ref: str
    is_remote: bool
    offset: int
    alt: str = field(default="", compare=False)
    tag: str = field(default=DEFAULT_IMAGE_TAG, compare=False)


class CompiledMarkdown(NamedTuple):
    operations: list[ApplyTextStyle | ApplyParagraphStyle]
    plain_text: str
    tables: list[TableDescriptor]
    images: list[ImagePlaceholder]
    warnings: list[str]
    base_offset: int = 1
    image_tag: str = DEFAULT_IMAGE_TAG

    @property
    def end_offset(self) -> int:
        return self.base_offset + utf16_len(self.plain_text)

    def insert_request(self) -> dict[str, Any]:
        """The single insertText request that must land before any operation."""
        return InsertText(self.base_offset, self.plain_text).to_request()

    def requests(self) -> list[dict[str, Any]]:
        """Text insert followed by all style operations, ready for one batchUpdate."""
        if not self.plain_text:
            return []
        return [self.insert_request()] + [op.to_request() for op in self.operations]


# =============================================================================
# Compiler
# =============================================================================


class MarkdownToDocsCompiler:
    """
    Compiles markdown elements into a Docs text payload plus operations.

    State, reset on each `compile` call:
    - `offset`: next index in compile coordinates
    - `_ordered_counters`: current number per list depth
    """

    def __init__(self) -> None:
        self.base_offset = 1
        self.offset = 1
        self._text: list[str] = []
        self.operations: list[ApplyTextStyle | ApplyParagraphStyle] = []
        self.tables: list[TableDescriptor] = []
        self.images: list[ImagePlaceholder] = []
        self.warnings: list[str] = []
        self._ordered_counters: dict[int, int] = {}
        self.image_tag = DEFAULT_IMAGE_TAG

    def compile(self, elements: list[MarkdownElement], base_offset: int = 1) -> CompiledMarkdown:
        self.base_offset = base_offset
        self.offset = base_offset
        self._text = []
        self.operations = []
        self.tables = []
        self.images = []
        self.warnings = []
        self._ordered_counters = {}
        self.image_tag = choose_image_tag("\n".join(_element_text(e) for e in elements))

        for element in elements:
            self._handle_element(element)

        plain_text = "".join(self._text)
        logger.debug(
            f"Compiled {len(elements)} elements: {utf16_len(plain_text)} units, "
            f"{len(self.operations)} operations, {len(self.tables)} tables, {len(self.images)} images"
        )
        return CompiledMarkdown(
            operations=list(self.operations),
            plain_text=plain_text,
            tables=list(self.tables),
            images=list(self.images),
            warnings=list(self.warnings),
            base_offset=base_offset,
            image_tag=self.image_tag,
        )

    def _handle_element(self, element: MarkdownElement) -> None:
        if isinstance(element, ListItem):
            self._handle_list_item(element)
            return

        self._ordered_counters.clear()
        if isinstance(element, Heading):
            self._handle_heading(element)
        elif isinstance(element, Paragraph):
            self._emit_spans(element.spans)
            self._emit("\n")
        elif isinstance(element, CodeBlock):
            self._handle_code_block(element)
        elif isinstance(element, HorizontalRule):
            self._handle_horizontal_rule()
        elif isinstance(element, Table):
            self._handle_table(element)
        elif isinstance(element, ImageRef):
            self._handle_image(element)
        else:
            logger.warning(f"Unknown element type: {type(element).__name__}")

    def _emit(self, text: str) -> int:
        """Append text to the payload and return its start offset."""
        start = self.offset
        self._text.append(text)
        self.offset += utf16_len(text)
        return start

    def _emit_spans(self, spans: tuple[InlineSpan, ...]) -> None:
        for span in spans:
            if not span.text:
                continue
            start = self._emit(span.text)
            if not span.is_styled:
                continue
            style, fields = build_text_style(
                bold=span.bold,
                italic=span.italic,
                strikethrough=span.strikethrough,
                code=span.code,
                link=span.link,
            )
            self.operations.append(ApplyTextStyle(start, self.offset, style, fields))

    def _handle_heading(self, heading: Heading) -> None:
        start = self.offset
        # Paragraph style goes ahead of the span styles so start offsets stay non-decreasing
        slot = len(self.operations)
        self._emit_spans(heading.spans)
        end = self.offset
        if end > start:
            style = heading_paragraph_style(heading.level)
            self.operations.insert(slot, ApplyParagraphStyle(start, end, style, "namedStyleType"))
            logger.debug(f"Heading level {heading.level} over [{start}, {end})")
        self._emit("\n")

    def _handle_list_item(self, item: ListItem) -> None:
        depth = max(item.depth, 0)
        for deeper in [d for d in self._ordered_counters if d > depth]:
            del self._ordered_counters[deeper]

        if item.ordered:
            number = self._ordered_counters.get(depth, 0) + 1
            self._ordered_counters[depth] = number
            marker = f"{number}. "
        else:
            self._ordered_counters.pop(depth, None)
            marker = BULLET_PREFIX

        self._emit("\t" * depth + marker)
        self._emit_spans(item.spans)
        self._emit("\n")

    def _handle_code_block(self, block: CodeBlock) -> None:
        text = block.text.rstrip("\n")
        if text:
            start = self._emit(text)
            style, fields = build_text_style(code=True)
            self.operations.append(ApplyTextStyle(start, self.offset, style, fields))
        self._emit("\n")

    def _handle_horizontal_rule(self) -> None:
        start = self._emit("\n")
        style = horizontal_rule_paragraph_style()
        self.operations.append(ApplyParagraphStyle(start, self.offset, style, "borderBottom"))

    def _handle_table(self, table: Table) -> None:
        rows = [tuple(row) for row in table.rows]
        columns = max((len(row) for row in rows), default=0)
        if not rows or columns == 0:
            warning = f"Table #{len(self.tables) + 1} has no cells; skipped"
            self.warnings.append(warning)
            logger.warning(warning)
            return

        short_rows = sum(1 for row in rows if len(row) < columns)
        if short_rows:
            rows = [row + ((),) * (columns - len(row)) for row in rows]
            warning = f"Table #{len(self.tables) + 1}: padded {short_rows} short row(s) to {columns} columns"
            self.warnings.append(warning)
            logger.warning(warning)

        start = self._emit(TABLE_ANCHOR)
        self.tables.append(TableDescriptor(start_offset=start, cells=tuple(rows)))
        logger.debug(f"Table anchor at {start}: {len(rows)}x{columns}")

    def _handle_image(self, image: ImageRef) -> None:
        ordinal = len(self.images)
        marker = image_placeholder(ordinal, self.image_tag)
        start = self._emit(marker)
        self._emit("\n")
        self.images.append(
            ImagePlaceholder(
                ordinal=ordinal,
                marker=marker,
                original_ref=image.original_ref,
                is_remote=image.is_remote,
                offset=start,
                alt=image.alt,
                tag=self.image_tag,
            )
        )


def compile_markdown(elements: list[MarkdownElement] | str, base_offset: int = 1) -> CompiledMarkdown:
    """
    Compile markdown elements (or raw markdown text) at `base_offset`.

    Never raises for well-formed element input; shape problems are repaired
    and reported in `warnings`.
    """
    if isinstance(elements, str):
        elements = parse_markdown(elements)
    return MarkdownToDocsCompiler().compile(elements, base_offset)
