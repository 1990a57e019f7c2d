"""
Google Docs Operation Managers

This package provides manager classes for the multi-request second wave of
markdown writes (tables and images), keeping that logic out of the tool
modules.
"""

from .image_manager import ImagePlaceholderManager, build_image_insert_requests, find_placeholder_indices
from .markdown_writer import MarkdownWriter, MarkdownWriteResult
from .table_inserter import TableInserter

__all__ = [
    "MarkdownWriter",
    "MarkdownWriteResult",
    "TableInserter",
    "ImagePlaceholderManager",
    "find_placeholder_indices",
    "build_image_insert_requests",
]
