"""
File validation service for document uploads.

Provides security checks including:
- File size limits
- MIME type and extension allow-lists
- Filename sanitization
- Content hash calculation
"""

import hashlib
import re
from pathlib import Path
from typing import NamedTuple, Optional

import magic
from fastapi import HTTPException, UploadFile

# Constants
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB in bytes

DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

ALLOWED_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/jpg",
    "image/png",
    "application/pdf",
    DOCX_MIME_TYPE,
    "text/plain",
})

ALLOWED_EXTENSIONS = (".jpg", ".jpeg", ".png", ".pdf", ".docx", ".txt")


class ValidatedUpload(NamedTuple):
    content: bytes
    file_hash: str
    filename: str
    original_name: str
    mime_type: str


async def validate_upload(
    file: UploadFile,
    max_size: Optional[int] = None,
) -> ValidatedUpload:
    """
    Validate an uploaded document and return its content and metadata.

    Args:
        file: FastAPI UploadFile instance from multipart/form-data
        max_size: Maximum size in bytes (default: 10MB)

    Returns:
        ValidatedUpload with content, sha256 hash, sanitized filename,
        original filename and detected MIME type

    Raises:
        HTTPException: 400 for validation errors, 413 for file too large
    """
    limit = max_size or DEFAULT_MAX_FILE_SIZE
    original_name = file.filename or ""

    # Check extension first, it is the cheapest check
    extension = Path(original_name).suffix.lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file extension. Allowed: {', '.join(ALLOWED_EXTENSIONS)}"
        )

    content = await file.read()

    if len(content) == 0:
        raise HTTPException(status_code=400, detail="File is empty")

    if len(content) > limit:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {limit // (1024 * 1024)}MB"
        )

    # Validate MIME type from content using python-magic
    mime_type = magic.from_buffer(content, mime=True)
    if mime_type not in ALLOWED_MIME_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type '{mime_type}'. Allowed types: {', '.join(ALLOWED_EXTENSIONS)}"
        )

    file_hash = hashlib.sha256(content).hexdigest()

    return ValidatedUpload(
        content=content,
        file_hash=file_hash,
        filename=sanitize_filename(original_name),
        original_name=original_name,
        mime_type=mime_type,
    )


def sanitize_filename(filename: str) -> str:
    """
    Sanitize filename to prevent path traversal and header injection.

    Args:
        filename: Original filename from upload

    Returns:
        Sanitized filename safe for storage and Content-Disposition headers

    Security:
        - Removes directory components
        - Replaces everything outside [A-Za-z0-9.-] with underscores
        - Collapses runs of underscores
        - Limits length to 255 characters, keeping the extension
    """
    # Normalize Windows separators before taking the base name
    filename = Path(filename.replace("\\", "/")).name
    filename = filename.replace("\0", "")

    filename = re.sub(r"[^a-zA-Z0-9.-]", "_", filename)
    filename = re.sub(r"_{2,}", "_", filename)
    filename = filename.lstrip(".")

    if not filename:
        filename = "upload"

    if len(filename) > 255:
        suffix = Path(filename).suffix[:10]
        filename = filename[:255 - len(suffix)] + suffix

    return filename
