"""
Image Placeholder Manager

Second pass of markdown image insertion. The compiler leaves a short
`[[IMG:<n>]]` marker line where each image belongs, switching to `IMG1`,
`IMG2`, ... when the text already contains that prefix. Once the text is in
the document, the live indices of those markers are only known to the service.
This manager re-fetches the document, finds the markers in document order,
hosts local images on Drive temporarily, swaps every marker for an inline
image in one batchUpdate, and always deletes the temporary uploads.
"""

import asyncio
import logging
import re
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from core.errors import PartialApplyError, ValidationError
from gdocs.docs_helpers import create_delete_range_request, utf16_len
from gdocs.docs_text import flatten_tabs
from gdocs.markdown_compiler import DEFAULT_IMAGE_TAG, ImagePlaceholder, InsertInlineImage
from gdrive.drive_helpers import (
    delete_drive_files_best_effort,
    make_link_readable,
    resolve_markdown_image_path,
    upload_temporary_file,
)

logger = logging.getLogger(__name__)


def placeholder_pattern(tag: str = DEFAULT_IMAGE_TAG) -> re.Pattern[str]:
    return re.compile(rf"\[\[{re.escape(tag)}:(\d+)\]\]")


def _iter_text_runs(content: list[dict[str, Any]]) -> Iterator[tuple[int, str]]:
    """Yield (startIndex, text) for every text run, depth-first in document order."""
    for element in content or []:
        if "paragraph" in element:
            for run in element["paragraph"].get("elements", []):
                text_run = run.get("textRun")
                if text_run and text_run.get("content") and "startIndex" in run:
                    yield run["startIndex"], text_run["content"]
        elif "table" in element:
            for row in element["table"].get("tableRows", []):
                for cell in row.get("tableCells", []):
                    yield from _iter_text_runs(cell.get("content", []))
        elif "tableOfContents" in element:
            yield from _iter_text_runs(element["tableOfContents"].get("content", []))


def _document_contents(document: dict[str, Any]) -> Iterator[list[dict[str, Any]]]:
    body = document.get("body")
    if body:
        yield body.get("content", [])
    for tab in flatten_tabs(document.get("tabs")):
        tab_body = (tab.get("documentTab") or {}).get("body")
        if tab_body:
            yield tab_body.get("content", [])


def find_placeholder_indices(
    document: dict[str, Any], expected_count: int, tag: str = DEFAULT_IMAGE_TAG, min_index: int = 1
) -> dict[int, tuple[int, int]]:
    """
    Locate image markers in a live document.

    Args:
        document: Docs API document JSON.
        expected_count: Markers `[[<tag>:0]]` .. `[[<tag>:<expected_count-1>]]` are searched.
        tag: Marker tag chosen by the compiler for this write.
        min_index: Matches starting before this index belong to earlier
            content and are skipped.

    Returns:
        ordinal -> (start, end) live index range, in document order. Markers
        that are not found are absent; the first occurrence of each wins.
    """
    found: dict[int, tuple[int, int]] = {}
    if expected_count <= 0:
        return found

    pattern = placeholder_pattern(tag)
    for content in _document_contents(document):
        for run_start, text in _iter_text_runs(content):
            for match in pattern.finditer(text):
                ordinal = int(match.group(1))
                if ordinal >= expected_count or ordinal in found:
                    continue
                start = run_start + utf16_len(text[: match.start()])
                if start < min_index:
                    continue
                found[ordinal] = (start, start + utf16_len(match.group(0)))

    logger.debug(f"Found {len(found)}/{expected_count} image placeholders")
    return found


def build_image_insert_requests(
    placeholders: Mapping[int, tuple[int, int]], image_urls: Mapping[int, str]
) -> list[dict[str, Any]]:
    """
    Build requests replacing each marker with an inline image.

    Requests are ordered from the highest index down so each replacement
    leaves the indices of the remaining markers untouched.
    """
    requests: list[dict[str, Any]] = []
    ordered = sorted(placeholders.items(), key=lambda item: item[1][0], reverse=True)
    for ordinal, (start, end) in ordered:
        url = image_urls.get(ordinal)
        if not url:
            continue
        requests.append(create_delete_range_request(start, end))
        requests.append(InsertInlineImage(start, url).to_request())
    return requests


class ImagePlaceholderManager:
    """
    Resolves image placeholders in a freshly written document.

    Local image references are resolved relative to `markdown_path` and
    uploaded to `temp_folder_id` (Drive root when None).
    """

    def __init__(
        self,
        docs_service: Any,
        drive_service: Any,
        document_id: str,
        markdown_path: str | None = None,
        temp_folder_id: str | None = None,
    ):
        self.docs_service = docs_service
        self.drive_service = drive_service
        self.document_id = document_id
        self.markdown_path = markdown_path
        self.temp_folder_id = temp_folder_id
        self.uploaded_file_ids: list[str] = []

    async def resolve_placeholders(
        self, expected_count: int, tag: str = DEFAULT_IMAGE_TAG, min_index: int = 1
    ) -> dict[int, tuple[int, int]]:
        """Fetch the live document and locate up to `expected_count` markers."""
        document = await asyncio.to_thread(self.docs_service.documents().get(documentId=self.document_id).execute)
        return find_placeholder_indices(document, expected_count, tag=tag, min_index=min_index)

    async def _resolve_url(self, placeholder: ImagePlaceholder) -> str:
        if placeholder.is_remote:
            return placeholder.original_ref

        if self.drive_service is None:
            raise ValidationError(f"Local image '{placeholder.original_ref}' needs Drive access to upload")

        path = resolve_markdown_image_path(placeholder.original_ref, self.markdown_path)
        file_id = await upload_temporary_file(self.drive_service, path, self.temp_folder_id)
        self.uploaded_file_ids.append(file_id)
        return await make_link_readable(self.drive_service, file_id)

    async def insert_images(self, images: Sequence[ImagePlaceholder], min_index: int = 1) -> int:
        """
        Replace compiled image markers with inline images.

        Markers are matched by the tag the compiler gave `images`; matches
        before `min_index` (the write's base index) are ignored.

        Returns:
            Number of images inserted.

        Raises:
            LocalFileNotFoundError: If a local image does not exist.
            PartialApplyError: If the replacement batchUpdate fails.
        """
        if not images:
            return 0

        placeholders = await self.resolve_placeholders(len(images), tag=images[0].tag, min_index=min_index)
        missing = [image.ordinal for image in images if image.ordinal not in placeholders]
        if missing:
            logger.warning(f"Image placeholders not found in document {self.document_id}: {missing}")

        try:
            image_urls: dict[int, str] = {}
            for image in images:
                if image.ordinal in placeholders:
                    image_urls[image.ordinal] = await self._resolve_url(image)

            requests = build_image_insert_requests(placeholders, image_urls)
            if not requests:
                return 0

            try:
                await asyncio.to_thread(
                    self.docs_service.documents()
                    .batchUpdate(documentId=self.document_id, body={"requests": requests})
                    .execute
                )
            except Exception as e:
                raise PartialApplyError("Failed to insert images", completed=0, total=len(image_urls)) from e

            logger.info(f"Inserted {len(image_urls)} images into document {self.document_id}")
            return len(image_urls)
        finally:
            if self.uploaded_file_ids:
                await delete_drive_files_best_effort(self.drive_service, self.uploaded_file_ids)
                self.uploaded_file_ids = []
