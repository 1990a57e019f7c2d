"""
Unit tests for image placeholder resolution.

Live documents are simulated by turning compiled plain text into Docs API
paragraph JSON with real start indices.
"""

import os

import pytest

from core.errors import LocalFileNotFoundError, PartialApplyError, ValidationError
from gdocs.docs_helpers import utf16_len
from gdocs.managers.image_manager import (
    ImagePlaceholderManager,
    build_image_insert_requests,
    find_placeholder_indices,
)
from gdocs.markdown_compiler import compile_markdown

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16

MARKDOWN = """# Gallery 😀

![first](a.png)

Some text between.

![second](https://example.com/remote.png)

![third](img/b.png)

![fourth](c.png)
"""


def _document_from_text(text, base=1):
    """Build Docs document JSON with one paragraph per line of text."""
    content = [{"endIndex": base, "sectionBreak": {}}]
    index = base
    for line in text.splitlines(keepends=True):
        length = utf16_len(line)
        content.append(
            {
                "startIndex": index,
                "endIndex": index + length,
                "paragraph": {"elements": [{"startIndex": index, "endIndex": index + length, "textRun": {"content": line}}]},
            }
        )
        index += length
    return {"documentId": "doc123", "body": {"content": content}}


@pytest.fixture
def image_dir(temp_dir):
    os.makedirs(os.path.join(temp_dir, "img"))
    for name in ("a.png", os.path.join("img", "b.png"), "c.png"):
        with open(os.path.join(temp_dir, name), "wb") as f:
            f.write(PNG_BYTES)
    markdown_path = os.path.join(temp_dir, "doc.md")
    with open(markdown_path, "w", encoding="utf-8") as f:
        f.write(MARKDOWN)
    return markdown_path


def _sent_requests(docs_service):
    calls = docs_service.documents.return_value.batchUpdate.call_args_list
    return [c.kwargs["body"]["requests"] for c in calls]


def _deleted_ids(drive_service):
    return [c.kwargs["fileId"] for c in drive_service.files.return_value.delete.call_args_list]


class TestFindPlaceholderIndices:
    def test_round_trip_through_compiled_text(self):
        compiled = compile_markdown(MARKDOWN)
        document = _document_from_text(compiled.plain_text)

        found = find_placeholder_indices(document, len(compiled.images))

        assert len(found) == 4
        for image in compiled.images:
            assert found[image.ordinal] == (image.offset, image.offset + len(image.marker))

    def test_found_in_document_order(self):
        compiled = compile_markdown(MARKDOWN)
        found = find_placeholder_indices(_document_from_text(compiled.plain_text), 4)
        starts = [found[ordinal][0] for ordinal in range(4)]
        assert starts == sorted(starts)

    def test_marker_inside_longer_run(self):
        document = _document_from_text("é before [[IMG:0]] after\n", base=10)
        assert find_placeholder_indices(document, 1) == {0: (19, 28)}

    def test_marker_inside_table_cell(self):
        document = {
            "body": {
                "content": [
                    {
                        "table": {
                            "tableRows": [
                                {
                                    "tableCells": [
                                        {
                                            "content": [
                                                {
                                                    "paragraph": {
                                                        "elements": [
                                                            {"startIndex": 5, "textRun": {"content": "[[IMG:0]]\n"}}
                                                        ]
                                                    }
                                                }
                                            ]
                                        }
                                    ]
                                }
                            ]
                        }
                    }
                ]
            }
        }
        assert find_placeholder_indices(document, 1) == {0: (5, 14)}

    def test_markers_in_tabs(self):
        document = {
            "tabs": [
                {
                    "tabProperties": {"tabId": "t.0"},
                    "documentTab": {"body": {"content": _document_from_text("[[IMG:0]]\n")["body"]["content"]}},
                }
            ]
        }
        assert find_placeholder_indices(document, 1) == {0: (1, 10)}

    def test_first_occurrence_wins(self):
        document = _document_from_text("[[IMG:0]]\n[[IMG:0]]\n")
        assert find_placeholder_indices(document, 1) == {0: (1, 10)}

    def test_unexpected_ordinals_ignored(self):
        document = _document_from_text("[[IMG:0]]\n[[IMG:7]]\n")
        assert find_placeholder_indices(document, 2) == {0: (1, 10)}

    def test_zero_expected(self):
        assert find_placeholder_indices(_document_from_text("[[IMG:0]]\n"), 0) == {}

    def test_only_the_given_tag_matches(self):
        document = _document_from_text("[[IMG:0]]\n[[IMG1:0]]\n")
        assert find_placeholder_indices(document, 1, tag="IMG1") == {0: (11, 21)}

    def test_matches_before_min_index_are_skipped(self):
        # Earlier content already holds the same marker text
        document = _document_from_text("old [[IMG:0]]\n[[IMG:0]]\n")
        assert find_placeholder_indices(document, 1) == {0: (5, 14)}
        assert find_placeholder_indices(document, 1, min_index=15) == {0: (15, 24)}


class TestBuildImageInsertRequests:
    def test_descending_delete_then_insert(self):
        placeholders = {0: (5, 14), 1: (20, 29), 2: (40, 49)}
        urls = {0: "https://a", 1: "https://b", 2: "https://c"}

        requests = build_image_insert_requests(placeholders, urls)

        assert requests == [
            {"deleteContentRange": {"range": {"startIndex": 40, "endIndex": 49}}},
            {"insertInlineImage": {"location": {"index": 40}, "uri": "https://c"}},
            {"deleteContentRange": {"range": {"startIndex": 20, "endIndex": 29}}},
            {"insertInlineImage": {"location": {"index": 20}, "uri": "https://b"}},
            {"deleteContentRange": {"range": {"startIndex": 5, "endIndex": 14}}},
            {"insertInlineImage": {"location": {"index": 5}, "uri": "https://a"}},
        ]

    def test_placeholder_without_url_is_skipped(self):
        assert build_image_insert_requests({0: (5, 14)}, {}) == []


class TestImagePlaceholderManager:
    @pytest.fixture
    def compiled(self):
        return compile_markdown(MARKDOWN)

    @pytest.fixture
    def docs_service(self, mock_docs_service, compiled):
        get = mock_docs_service.documents.return_value.get.return_value
        get.execute.return_value = _document_from_text(compiled.plain_text)
        return mock_docs_service

    @pytest.mark.asyncio
    async def test_inserts_all_images_and_cleans_up(self, docs_service, mock_drive_service, compiled, image_dir):
        manager = ImagePlaceholderManager(docs_service, mock_drive_service, "doc123", markdown_path=image_dir)

        inserted = await manager.insert_images(compiled.images)

        assert inserted == 4
        (requests,) = _sent_requests(docs_service)
        uris = [r["insertInlineImage"]["uri"] for r in requests if "insertInlineImage" in r]
        assert uris == [
            "https://drive.google.com/uc?id=tmpfile3",
            "https://drive.google.com/uc?id=tmpfile2",
            "https://example.com/remote.png",
            "https://drive.google.com/uc?id=tmpfile1",
        ]
        starts = [r["deleteContentRange"]["range"]["startIndex"] for r in requests if "deleteContentRange" in r]
        assert starts == sorted(starts, reverse=True)
        assert _deleted_ids(mock_drive_service) == ["tmpfile1", "tmpfile2", "tmpfile3"]
        assert manager.uploaded_file_ids == []

    @pytest.mark.asyncio
    async def test_uploads_are_shared_link_readable(self, docs_service, mock_drive_service, compiled, image_dir):
        manager = ImagePlaceholderManager(docs_service, mock_drive_service, "doc123", markdown_path=image_dir)
        await manager.insert_images(compiled.images)

        permission_calls = mock_drive_service.permissions.return_value.create.call_args_list
        assert [c.kwargs["fileId"] for c in permission_calls] == ["tmpfile1", "tmpfile2", "tmpfile3"]
        assert all(c.kwargs["body"] == {"type": "anyone", "role": "reader"} for c in permission_calls)

    @pytest.mark.asyncio
    async def test_uploads_into_temp_folder(self, docs_service, mock_drive_service, compiled, image_dir):
        manager = ImagePlaceholderManager(
            docs_service, mock_drive_service, "doc123", markdown_path=image_dir, temp_folder_id="folder9"
        )
        await manager.insert_images(compiled.images)

        create_calls = mock_drive_service.files.return_value.create.call_args_list
        assert create_calls[0].kwargs["body"] == {"name": "tmp-a.png", "parents": ["folder9"]}

    @pytest.mark.asyncio
    async def test_cleanup_runs_when_batch_fails(self, docs_service, mock_drive_service, compiled, image_dir):
        docs_service.documents.return_value.batchUpdate.return_value.execute.side_effect = RuntimeError("boom")
        manager = ImagePlaceholderManager(docs_service, mock_drive_service, "doc123", markdown_path=image_dir)

        with pytest.raises(PartialApplyError) as exc_info:
            await manager.insert_images(compiled.images)

        assert (exc_info.value.completed, exc_info.value.total) == (0, 4)
        assert _deleted_ids(mock_drive_service) == ["tmpfile1", "tmpfile2", "tmpfile3"]

    @pytest.mark.asyncio
    async def test_cleanup_failure_does_not_mask_result(self, docs_service, mock_drive_service, compiled, image_dir):
        mock_drive_service.files.return_value.delete.return_value.execute.side_effect = RuntimeError("gone")
        manager = ImagePlaceholderManager(docs_service, mock_drive_service, "doc123", markdown_path=image_dir)

        assert await manager.insert_images(compiled.images) == 4

    @pytest.mark.asyncio
    async def test_missing_local_file(self, docs_service, mock_drive_service, temp_dir):
        compiled = compile_markdown("![here](a.png)\n\n![gone](missing.png)")
        docs_service.documents.return_value.get.return_value.execute.return_value = _document_from_text(
            compiled.plain_text
        )
        with open(os.path.join(temp_dir, "a.png"), "wb") as f:
            f.write(PNG_BYTES)
        manager = ImagePlaceholderManager(
            docs_service, mock_drive_service, "doc123", markdown_path=os.path.join(temp_dir, "doc.md")
        )

        with pytest.raises(LocalFileNotFoundError, match="missing.png"):
            await manager.insert_images(compiled.images)

        assert _sent_requests(docs_service) == []
        assert _deleted_ids(mock_drive_service) == ["tmpfile1"]

    @pytest.mark.asyncio
    async def test_local_image_without_drive(self, docs_service, compiled, image_dir):
        manager = ImagePlaceholderManager(docs_service, None, "doc123", markdown_path=image_dir)
        with pytest.raises(ValidationError):
            await manager.insert_images(compiled.images)

    @pytest.mark.asyncio
    async def test_remote_only_needs_no_drive(self, mock_docs_service):
        compiled = compile_markdown("![r](https://example.com/r.png)")
        mock_docs_service.documents.return_value.get.return_value.execute.return_value = _document_from_text(
            compiled.plain_text
        )
        manager = ImagePlaceholderManager(mock_docs_service, None, "doc123")

        assert await manager.insert_images(compiled.images) == 1

    @pytest.mark.asyncio
    async def test_missing_placeholder_is_skipped(self, mock_docs_service, mock_drive_service):
        compiled = compile_markdown("![a](https://x.test/a.png)\n\n![b](https://x.test/b.png)")
        mock_docs_service.documents.return_value.get.return_value.execute.return_value = _document_from_text(
            "[[IMG:1]]\n"
        )
        manager = ImagePlaceholderManager(mock_docs_service, mock_drive_service, "doc123")

        assert await manager.insert_images(compiled.images) == 1

    @pytest.mark.asyncio
    async def test_no_images_is_a_no_op(self, mock_docs_service, mock_drive_service):
        manager = ImagePlaceholderManager(mock_docs_service, mock_drive_service, "doc123")
        assert await manager.insert_images([]) == 0
        mock_docs_service.documents.return_value.get.assert_not_called()
