"""Local storage for original uploaded files.

Files are stored as ``<upload_dir>/<document_id><ext>`` so the on-disk name
never depends on user input beyond a validated extension.
"""

import logging
from pathlib import Path
from typing import Optional

from docintake.config import get_settings

logger = logging.getLogger(__name__)


def get_upload_dir() -> Path:
    upload_dir = Path(get_settings().upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    return upload_dir


def save_upload(document_id: str, filename: str, content: bytes) -> str:
    """Write upload content to disk and return the stored path.

    Args:
        document_id: UUID of the document record
        filename: Sanitized filename (only its extension is used)
        content: Raw file bytes

    Returns:
        str: Path of the stored file
    """
    extension = Path(filename).suffix.lower()
    path = get_upload_dir() / f"{document_id}{extension}"
    path.write_bytes(content)
    return str(path)


def delete_upload(file_path: Optional[str]) -> bool:
    """Remove a stored upload; returns False when there was nothing to remove."""
    if not file_path:
        return False

    path = Path(file_path)
    if not path.exists():
        return False

    try:
        path.unlink()
    except OSError as e:
        logger.warning("Could not delete stored file %s: %s", file_path, e)
        return False

    logger.info("Stored file deleted: %s", file_path)
    return True
