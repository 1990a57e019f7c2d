"""
Google Drive helpers

Temporary file hosting used by the Docs image placeholder pass.
"""

from .drive_helpers import (
    GOOGLE_DOC_MIME_TYPE,
    delete_drive_files_best_effort,
    make_link_readable,
    resolve_markdown_image_path,
    upload_temporary_file,
)

__all__ = [
    "GOOGLE_DOC_MIME_TYPE",
    "delete_drive_files_best_effort",
    "make_link_readable",
    "resolve_markdown_image_path",
    "upload_temporary_file",
]
