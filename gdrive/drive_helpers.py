"""
Google Drive Helper Functions

Temporary image hosting for the Docs image placeholder pass: local files are
uploaded to Drive, shared link-readable so the Docs service can fetch them,
and deleted again once the images are in the document.
"""

import asyncio
import io
import logging
import mimetypes
import os
from pathlib import Path
from typing import Any

from googleapiclient.http import MediaIoBaseUpload

from core.errors import LocalFileNotFoundError, ValidationError

logger = logging.getLogger(__name__)

UPLOAD_CHUNK_SIZE_BYTES = 5 * 1024 * 1024  # 5 MB (Google recommended minimum)

DRIVE_DOWNLOAD_URL = "https://drive.google.com/uc?id={file_id}"

GOOGLE_DOC_MIME_TYPE = "application/vnd.google-apps.document"


def resolve_markdown_image_path(ref: str, markdown_path: str | None = None) -> Path:
    """
    Resolve a local image reference against the markdown file's directory.

    Absolute paths and `~` are honored; relative paths fall back to the
    current working directory when no markdown path is known.

    Raises:
        LocalFileNotFoundError: If the resolved path is not an existing file.
    """
    ref = ref.strip()
    if ref.startswith("file://"):
        ref = ref[len("file://") :]

    path = Path(os.path.expanduser(ref))
    if not path.is_absolute():
        base_dir = Path(markdown_path).resolve().parent if markdown_path else Path.cwd()
        path = base_dir / path

    if not path.is_file():
        raise LocalFileNotFoundError(str(path), f"Image file not found: {path}")
    return path


def guess_image_mime_type(path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(str(path))
    if not mime_type or not mime_type.startswith("image/"):
        raise ValidationError(f"Unsupported image type for {path.name}: {mime_type or 'unknown'}")
    return mime_type


async def upload_temporary_file(drive_service: Any, path: Path, folder_id: str | None = None) -> str:
    """
    Upload a local file to Drive and return its file ID.

    The file is created with a "tmp-" name prefix so leftovers are easy to
    spot if cleanup ever fails.
    """
    mime_type = guess_image_mime_type(path)
    file_data = await asyncio.to_thread(path.read_bytes)
    logger.info(f"[upload_temporary_file] Uploading {path.name} ({len(file_data)} bytes) as {mime_type}")

    file_metadata: dict[str, Any] = {"name": f"tmp-{path.name}"}
    if folder_id:
        file_metadata["parents"] = [folder_id]

    media = MediaIoBaseUpload(
        io.BytesIO(file_data),
        mimetype=mime_type,
        resumable=True,
        chunksize=UPLOAD_CHUNK_SIZE_BYTES,
    )
    created_file = await asyncio.to_thread(
        drive_service.files()
        .create(
            body=file_metadata,
            media_body=media,
            fields="id",
            supportsAllDrives=True,
        )
        .execute
    )
    return created_file["id"]


async def make_link_readable(drive_service: Any, file_id: str) -> str:
    """Grant anyone-with-link read access and return a fetchable URL."""
    await asyncio.to_thread(
        drive_service.permissions()
        .create(
            fileId=file_id,
            body={"type": "anyone", "role": "reader"},
            supportsAllDrives=True,
        )
        .execute
    )
    return DRIVE_DOWNLOAD_URL.format(file_id=file_id)


async def delete_drive_files_best_effort(drive_service: Any, file_ids: list[str]) -> int:
    """
    Delete temporary files, logging and swallowing failures.

    Returns:
        Number of files deleted.
    """
    deleted = 0
    for file_id in file_ids:
        try:
            await asyncio.to_thread(drive_service.files().delete(fileId=file_id, supportsAllDrives=True).execute)
            deleted += 1
        except Exception as e:
            logger.warning(f"Failed to delete temporary Drive file {file_id}: {e}")
    if file_ids:
        logger.debug(f"Deleted {deleted}/{len(file_ids)} temporary Drive files")
    return deleted
