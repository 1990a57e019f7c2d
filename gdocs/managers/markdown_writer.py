"""
Markdown Writer

Runs the full markdown write against one document:
parse -> compile at the base index -> one batchUpdate with the text payload
and its styles -> tables (second wave) -> image placeholders (second pass).
"""

import asyncio
import logging
from typing import Any, NamedTuple

from gdocs.docs_helpers import get_document_end_index, utf16_len
from gdocs.managers.image_manager import ImagePlaceholderManager
from gdocs.managers.table_inserter import TableInserter
from gdocs.markdown_compiler import compile_markdown
from gdocs.markdown_parser import parse_markdown

logger = logging.getLogger(__name__)


class MarkdownWriteResult(NamedTuple):
    characters: int
    styles: int
    tables: int
    images: int
    warnings: list[str]

    def summary(self) -> str:
        parts = [f"{self.characters} characters", f"{self.styles} style operations"]
        if self.tables:
            parts.append(f"{self.tables} tables")
        if self.images:
            parts.append(f"{self.images} images")
        text = ", ".join(parts)
        if self.warnings:
            text += f" ({len(self.warnings)} warnings: {'; '.join(self.warnings)})"
        return text


class MarkdownWriter:
    """
    Writes markdown into a live document at a given index.

    `drive_service` is only needed when the markdown references local images.
    """

    def __init__(
        self,
        docs_service: Any,
        document_id: str,
        drive_service: Any = None,
        markdown_path: str | None = None,
        temp_folder_id: str | None = None,
    ):
        self.docs_service = docs_service
        self.document_id = document_id
        self.drive_service = drive_service
        self.markdown_path = markdown_path
        self.temp_folder_id = temp_folder_id

    async def write(
        self,
        markdown: str,
        base_index: int = 1,
        document_end_index: int | None = None,
        preamble: list[dict[str, Any]] | None = None,
    ) -> MarkdownWriteResult:
        """
        Write markdown at `base_index`.

        Args:
            markdown: Markdown source.
            base_index: Live index the compiled text is inserted at.
            document_end_index: Body end index right before the text insert
                (after `preamble`), used to bounds-check table indices.
            preamble: Requests sent in the same batch ahead of the text insert,
                e.g. the deletion that clears a document for replacement.
        """
        compiled = compile_markdown(parse_markdown(markdown), base_offset=base_index)
        for warning in compiled.warnings:
            logger.warning(f"[markdown_writer] {warning}")

        requests = list(preamble or []) + compiled.requests()
        if requests:
            await asyncio.to_thread(
                self.docs_service.documents()
                .batchUpdate(documentId=self.document_id, body={"requests": requests})
                .execute
            )
        logger.info(
            f"[markdown_writer] Inserted {utf16_len(compiled.plain_text)} units at {base_index} "
            f"with {len(compiled.operations)} style operations into {self.document_id}"
        )

        if compiled.tables:
            live_end = None
            anchors_present = True
            if document_end_index is not None:
                live_end = document_end_index + utf16_len(compiled.plain_text)
                anchors_present = await self._anchors_survived(live_end, len(compiled.tables))
            inserter = TableInserter(self.docs_service, self.document_id)
            await inserter.insert_tables(
                compiled.tables, document_end_index=live_end, anchors_present=anchors_present
            )

        images_inserted = 0
        if compiled.images:
            image_manager = ImagePlaceholderManager(
                self.docs_service,
                self.drive_service,
                self.document_id,
                markdown_path=self.markdown_path,
                temp_folder_id=self.temp_folder_id,
            )
            images_inserted = await image_manager.insert_images(compiled.images, min_index=base_index)

        return MarkdownWriteResult(
            characters=len(compiled.plain_text),
            styles=len(compiled.operations),
            tables=len(compiled.tables),
            images=images_inserted,
            warnings=compiled.warnings,
        )

    async def _anchors_survived(self, expected_end: int, table_count: int) -> bool:
        """
        Check the live body end against the payload length.

        A body exactly `table_count` units short means the service stripped
        the anchor units from the inserted text.
        """
        document = await asyncio.to_thread(self.docs_service.documents().get(documentId=self.document_id).execute)
        actual_end = get_document_end_index(document)
        if actual_end == expected_end:
            return True
        if actual_end == expected_end - table_count:
            logger.warning(f"[markdown_writer] Table anchors were dropped from {self.document_id}; inserting without them")
            return False
        logger.warning(
            f"[markdown_writer] Body of {self.document_id} ends at {actual_end}, expected {expected_end}; "
            f"assuming anchors are in place"
        )
        return True
