"""
Table Inserter

Second-wave table insertion for compiled markdown. Each table replaces its
one-unit anchor with an empty table structure, then the cells are filled one
batchUpdate at a time. A running cumulative offset carries the index drift of
every inserted table so later descriptors, whose offsets were computed before
any table existed, still land on their anchors.
"""

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from core.errors import OffsetInvariantError, PartialApplyError
from gdocs.docs_helpers import (
    build_text_style,
    create_delete_range_request,
    create_format_text_request,
    create_insert_table_request,
    create_insert_text_request,
    empty_table_length,
    table_cell_index,
    utf16_len,
)
from gdocs.markdown_compiler import TableDescriptor
from gdocs.markdown_elements import InlineSpan, spans_text

logger = logging.getLogger(__name__)

CellContent = str | Sequence[InlineSpan]


def _cell_spans(cell: CellContent) -> tuple[InlineSpan, ...]:
    if isinstance(cell, str):
        return (InlineSpan(cell),) if cell else ()
    return tuple(cell)


def _cell_requests(spans: tuple[InlineSpan, ...], index: int, bold: bool) -> list[dict[str, Any]]:
    """insertText for the whole cell plus one updateTextStyle per styled span."""
    text = spans_text(spans)
    requests = [create_insert_text_request(index, text)]

    if bold:
        style, fields = build_text_style(bold=True)
        requests.append(create_format_text_request(index, index + utf16_len(text), style, fields))

    offset = index
    for span in spans:
        length = utf16_len(span.text)
        if span.is_styled and length:
            style, fields = build_text_style(
                bold=span.bold,
                italic=span.italic,
                strikethrough=span.strikethrough,
                code=span.code,
                link=span.link,
            )
            requests.append(create_format_text_request(offset, offset + length, style, fields))
        offset += length
    return requests


class TableInserter:
    """
    Inserts tables into a live document and tracks the cumulative offset.

    One instance serves one pass over one document; `cumulative_offset`
    starts at 0 and only grows as tables land.
    """

    def __init__(self, service: Any, document_id: str, bold_headers: bool = True):
        self.service = service
        self.document_id = document_id
        self.bold_headers = bold_headers
        self.cumulative_offset = 0

    async def _batch_update(self, requests: list[dict[str, Any]]) -> dict[str, Any]:
        return await asyncio.to_thread(
            self.service.documents().batchUpdate(documentId=self.document_id, body={"requests": requests}).execute
        )

    async def insert_table(
        self, index: int, cells: Sequence[Sequence[CellContent]], replace_anchor: bool = True
    ) -> int:
        """
        Insert and populate a table at an absolute index.

        Args:
            index: Live document index of the table (the anchor's index).
            cells: Row-major grid; each cell is a string or a span sequence.
            replace_anchor: Delete the one-unit anchor at `index` first.

        Returns:
            The index just after the populated table.

        Raises:
            PartialApplyError: If a cell write fails after the structure exists.
        """
        grid = [[_cell_spans(cell) for cell in row] for row in cells]
        rows = len(grid)
        columns = max((len(row) for row in grid), default=0)
        if rows == 0 or columns == 0:
            raise ValueError(f"Invalid table dimensions: {rows}x{columns}")
        for row in grid:
            row.extend([()] * (columns - len(row)))

        structure_requests = []
        if replace_anchor:
            structure_requests.append(create_delete_range_request(index, index + 1))
        structure_requests.append(create_insert_table_request(index, rows, columns))
        await self._batch_update(structure_requests)
        logger.debug(f"Inserted {rows}x{columns} table structure at {index}")

        total = sum(1 for row in grid for cell in row if spans_text(cell))
        completed = 0
        text_offset = 0
        for r, row in enumerate(grid):
            for c, spans in enumerate(row):
                text = spans_text(spans)
                if not text:
                    continue
                cell_index = table_cell_index(index, r, c, columns) + text_offset
                bold = self.bold_headers and r == 0
                try:
                    await self._batch_update(_cell_requests(spans, cell_index, bold))
                except Exception as e:
                    logger.error(f"Table at {index}: cell ({r}, {c}) failed after {completed}/{total} cells: {e}")
                    raise PartialApplyError(
                        f"Failed to populate table cell ({r}, {c})",
                        completed=completed,
                        total=total,
                        details={"table_index": index, "row": r, "column": c},
                    ) from e
                completed += 1
                text_offset += utf16_len(text)

        end_index = index + empty_table_length(rows, columns) + text_offset
        logger.debug(f"Table at {index} populated: {completed} cells, ends at {end_index}")
        return end_index

    async def insert_tables(
        self,
        descriptors: Sequence[TableDescriptor],
        document_end_index: int | None = None,
        anchors_present: bool = True,
    ) -> list[int]:
        """
        Insert compiled tables in order against their stale compile offsets.

        Each table lands at `descriptor.start_offset + cumulative_offset`; after
        it lands the offset grows by `(end - index) - 1`, the table's length
        minus the anchor unit it replaced.

        Args:
            descriptors: Table descriptors in compile order.
            document_end_index: Live end index of the body, if known. Every
                computed index must lie in [1, document_end_index).
            anchors_present: False when the service dropped the anchor units
                from the inserted text. Indices are unchanged, since each
                missing anchor is the unit the `- 1` accounts for; only the
                anchor deletion is skipped.

        Returns:
            The end index of each inserted table.

        Raises:
            OffsetInvariantError: If a computed index falls outside the document.
            PartialApplyError: If a table fails; `completed` counts the tables
                that fully landed before it.
        """
        end_indices: list[int] = []
        tracked_end = document_end_index

        for number, descriptor in enumerate(descriptors, start=1):
            index = descriptor.start_offset + self.cumulative_offset
            if index < 1 or (tracked_end is not None and index >= tracked_end):
                raise OffsetInvariantError(
                    index,
                    tracked_end if tracked_end is not None else index,
                    context=f"table {number} of {len(descriptors)}",
                )

            try:
                end_index = await self.insert_table(index, descriptor.cells, replace_anchor=anchors_present)
            except Exception as e:
                details = {"table": number, "table_index": index}
                if isinstance(e, PartialApplyError):
                    details.update(cells_completed=e.completed, cells_total=e.total)
                logger.error(f"Table {number} of {len(descriptors)} at {index} failed: {e}")
                raise PartialApplyError(
                    f"Failed to insert table {number}",
                    completed=number - 1,
                    total=len(descriptors),
                    details=details,
                ) from e

            drift = (end_index - index) - 1
            self.cumulative_offset += drift
            if tracked_end is not None:
                tracked_end += drift
            end_indices.append(end_index)
            logger.debug(
                f"Table {number}: compiled offset {descriptor.start_offset} -> {index}, "
                f"end {end_index}, cumulative offset {self.cumulative_offset}"
            )

        return end_indices
