"""
Unit tests for TableInserter.

The Docs service is a MagicMock; assertions read the batchUpdate bodies the
inserter sent.
"""

from unittest.mock import MagicMock

import pytest

from core.errors import OffsetInvariantError, PartialApplyError
from gdocs.docs_helpers import empty_table_length
from gdocs.managers.table_inserter import TableInserter
from gdocs.markdown_compiler import TableDescriptor, compile_markdown
from gdocs.markdown_elements import InlineSpan


@pytest.fixture
def service():
    service = MagicMock()
    service.documents.return_value.batchUpdate.return_value.execute.return_value = {"replies": []}
    return service


def _sent(service):
    """Request lists of every batchUpdate call, in order."""
    calls = service.documents.return_value.batchUpdate.call_args_list
    return [c.kwargs["body"]["requests"] for c in calls]


def _table_indices(service):
    return [
        req["insertTable"]["location"]["index"]
        for requests in _sent(service)
        for req in requests
        if "insertTable" in req
    ]


def _descriptor(start, rows, cols, text="x"):
    cells = tuple(tuple((InlineSpan(text),) for _ in range(cols)) for _ in range(rows))
    return TableDescriptor(start_offset=start, cells=cells)


class TestInsertTable:
    @pytest.mark.asyncio
    async def test_structure_batch_replaces_anchor(self, service):
        inserter = TableInserter(service, "doc123")
        await inserter.insert_table(10, [["a", "b"], ["1", "2"]])

        structure = _sent(service)[0]
        assert structure == [
            {"deleteContentRange": {"range": {"startIndex": 10, "endIndex": 11}}},
            {"insertTable": {"location": {"index": 10}, "rows": 2, "columns": 2}},
        ]

    @pytest.mark.asyncio
    async def test_cells_written_at_shifted_indices(self, service):
        inserter = TableInserter(service, "doc123")
        end = await inserter.insert_table(10, [["a", "b"], ["1", "2"]])

        inserts = [
            (req["insertText"]["location"]["index"], req["insertText"]["text"])
            for requests in _sent(service)[1:]
            for req in requests
            if "insertText" in req
        ]
        assert inserts == [(13, "a"), (16, "b"), (20, "1"), (23, "2")]
        assert end == 10 + empty_table_length(2, 2) + 4

    @pytest.mark.asyncio
    async def test_empty_cells_are_skipped(self, service):
        inserter = TableInserter(service, "doc123")
        end = await inserter.insert_table(1, [["a", ""], ["", "b"]])

        assert len(_sent(service)) == 1 + 2
        assert end == 1 + empty_table_length(2, 2) + 2

    @pytest.mark.asyncio
    async def test_header_row_is_bold(self, service):
        inserter = TableInserter(service, "doc123")
        await inserter.insert_table(1, [["h"], ["v"]])

        header_cell, body_cell = _sent(service)[1], _sent(service)[2]
        assert {"updateTextStyle": {"range": {"startIndex": 4, "endIndex": 5}, "textStyle": {"bold": True}, "fields": "bold"}} in header_cell
        assert all("updateTextStyle" not in req for req in body_cell)

    @pytest.mark.asyncio
    async def test_bold_headers_can_be_disabled(self, service):
        inserter = TableInserter(service, "doc123", bold_headers=False)
        await inserter.insert_table(1, [["h"]])
        assert _sent(service)[1] == [{"insertText": {"location": {"index": 4}, "text": "h"}}]

    @pytest.mark.asyncio
    async def test_span_styles_inside_cell(self, service):
        inserter = TableInserter(service, "doc123", bold_headers=False)
        await inserter.insert_table(1, [[(InlineSpan("a "), InlineSpan("b", italic=True))]])

        cell = _sent(service)[1]
        assert cell[0]["insertText"]["text"] == "a b"
        assert cell[1]["updateTextStyle"]["range"] == {"startIndex": 6, "endIndex": 7}
        assert cell[1]["updateTextStyle"]["fields"] == "italic"

    @pytest.mark.asyncio
    async def test_without_anchor_replacement(self, service):
        inserter = TableInserter(service, "doc123")
        await inserter.insert_table(5, [["a"]], replace_anchor=False)
        assert _sent(service)[0] == [{"insertTable": {"location": {"index": 5}, "rows": 1, "columns": 1}}]

    @pytest.mark.asyncio
    async def test_zero_dimension_rejected(self, service):
        inserter = TableInserter(service, "doc123")
        with pytest.raises(ValueError):
            await inserter.insert_table(1, [])
        assert _sent(service) == []

    @pytest.mark.asyncio
    async def test_cell_failure_reports_progress(self, service):
        service.documents.return_value.batchUpdate.return_value.execute.side_effect = [
            {},
            {},
            RuntimeError("boom"),
        ]
        inserter = TableInserter(service, "doc123")

        with pytest.raises(PartialApplyError) as exc_info:
            await inserter.insert_table(1, [["a", "b"], ["c", "d"]])

        error = exc_info.value
        assert (error.completed, error.total) == (1, 4)
        assert error.details == {"table_index": 1, "row": 0, "column": 1}
        assert isinstance(error.__cause__, RuntimeError)


class TestCumulativeOffset:
    @pytest.mark.asyncio
    async def test_two_compiled_tables(self, service):
        compiled = compile_markdown("| a | b |\n|---|---|\n| 1 | 2 |\n\nmiddle\n\n| c |\n|---|\n| 3 |")
        assert [t.start_offset for t in compiled.tables] == [1, 9]

        inserter = TableInserter(service, "doc123")
        ends = await inserter.insert_tables(compiled.tables, document_end_index=11)

        assert _table_indices(service) == [1, 24]
        assert ends == [17, 34]
        assert inserter.cumulative_offset == (17 - 1 - 1) + (34 - 24 - 1)

    @pytest.mark.asyncio
    async def test_every_table_lands_on_its_shifted_anchor(self, service):
        descriptors = [_descriptor(3, 2, 3), _descriptor(10, 1, 1, text="long text"), _descriptor(12, 4, 2, text="")]
        inserter = TableInserter(service, "doc123")
        ends = await inserter.insert_tables(descriptors)

        indices = _table_indices(service)
        for k, descriptor in enumerate(descriptors):
            drift = sum(ends[j] - indices[j] - 1 for j in range(k))
            assert indices[k] == descriptor.start_offset + drift

    @pytest.mark.asyncio
    async def test_no_tables_is_a_no_op(self, service):
        inserter = TableInserter(service, "doc123")
        assert await inserter.insert_tables([]) == []
        assert inserter.cumulative_offset == 0
        assert _sent(service) == []

    @pytest.mark.asyncio
    async def test_index_past_document_end_raises(self, service):
        inserter = TableInserter(service, "doc123")
        with pytest.raises(OffsetInvariantError) as exc_info:
            await inserter.insert_tables([_descriptor(40, 1, 1)], document_end_index=30)

        assert exc_info.value.index == 40
        assert "table 1 of 1" in str(exc_info.value)
        assert _sent(service) == []

    @pytest.mark.asyncio
    async def test_index_before_body_raises(self, service):
        inserter = TableInserter(service, "doc123")
        with pytest.raises(OffsetInvariantError):
            await inserter.insert_tables([_descriptor(0, 1, 1)])

    @pytest.mark.asyncio
    async def test_tracked_end_grows_with_each_table(self, service):
        # The second anchor is only in bounds once the first table's drift is added
        inserter = TableInserter(service, "doc123")
        ends = await inserter.insert_tables([_descriptor(1, 1, 1), _descriptor(3, 1, 1)], document_end_index=4)
        assert len(ends) == 2

    @pytest.mark.asyncio
    async def test_second_table_structure_failure_counts_landed_tables(self, service):
        service.documents.return_value.batchUpdate.return_value.execute.side_effect = [
            {},
            {},
            RuntimeError("quota"),
        ]
        inserter = TableInserter(service, "doc123")

        with pytest.raises(PartialApplyError) as exc_info:
            await inserter.insert_tables([_descriptor(1, 1, 1), _descriptor(3, 1, 1), _descriptor(5, 1, 1)])

        error = exc_info.value
        assert (error.completed, error.total) == (1, 3)
        assert error.details["table"] == 2
        assert isinstance(error.__cause__, RuntimeError)
        assert len(_table_indices(service)) == 2

    @pytest.mark.asyncio
    async def test_cell_failure_keeps_cell_progress_in_details(self, service):
        service.documents.return_value.batchUpdate.return_value.execute.side_effect = [
            {},
            {},
            {},
            {},
            RuntimeError("quota"),
        ]
        inserter = TableInserter(service, "doc123")

        with pytest.raises(PartialApplyError) as exc_info:
            await inserter.insert_tables([_descriptor(1, 1, 1), _descriptor(3, 1, 2)])

        error = exc_info.value
        assert (error.completed, error.total) == (1, 2)
        assert (error.details["cells_completed"], error.details["cells_total"]) == (1, 2)
        assert isinstance(error.__cause__, PartialApplyError)

    @pytest.mark.asyncio
    async def test_dropped_anchors_keep_indices_and_skip_delete(self, service):
        descriptors = [_descriptor(1, 2, 2), _descriptor(9, 1, 1)]
        with_anchors = TableInserter(service, "doc123")
        await with_anchors.insert_tables(descriptors)
        expected = _table_indices(service)

        service.reset_mock()
        without_anchors = TableInserter(service, "doc123")
        await without_anchors.insert_tables(descriptors, anchors_present=False)

        assert _table_indices(service) == expected
        assert not any("deleteContentRange" in req for batch in _sent(service) for req in batch)
