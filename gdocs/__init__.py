"""
Google Docs MCP Tools Package

This package provides MCP tools for interacting with Google Docs API.
"""

from gdocs.export import copy_doc, export_doc
from gdocs.reading import get_doc_content, get_doc_info, list_doc_tabs
from gdocs.writing import create_doc, update_doc

__all__ = [
    "create_doc",
    "update_doc",
    "get_doc_info",
    "get_doc_content",
    "list_doc_tabs",
    "export_doc",
    "copy_doc",
]
