"""Text extraction for uploaded documents.

Converts a stored upload into plain text. On failure, or when a file yields
almost nothing, a short placeholder naming the file is returned instead. Every
placeholder contains one of the classifier's failure markers ("processing
failed", "parsing failed", "minimal content"), so callers never need to
inspect exceptions.

Supported formats:
- PDF: embedded text layer via pypdf
- JPEG/PNG: Tesseract OCR via pytesseract
- DOCX: paragraph text via python-docx
- TXT: UTF-8 read
"""

import logging
import re
from pathlib import Path

import pytesseract
from docx import Document
from PIL import Image
from pypdf import PdfReader

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".pdf", ".jpg", ".jpeg", ".png", ".docx", ".txt")

# Anything shorter is reported as minimal content rather than returned
_MIN_PDF_CHARS = 100
_MIN_OCR_CHARS = 10
_MIN_DOCX_CHARS = 10
_MIN_TXT_CHARS = 5

# Raw PDF object syntax leaking into extracted text means the text layer is junk
_PDF_SYNTAX_PATTERN = re.compile(
    r"\b(ReportLab|endobj|endstream|stream\s*\n|/Type\s*/Page|/Filter|/Length)",
    re.IGNORECASE,
)


def extract_text(file_path: str) -> str:
    """Extract text from a stored document.

    Args:
        file_path: Path of the stored upload; the extension selects the extractor.

    Returns:
        Extracted text, or a placeholder carrying a failure marker.
    """
    path = Path(file_path)
    extension = path.suffix.lower()
    name = path.name

    if extension not in SUPPORTED_EXTENSIONS:
        logger.warning("Unsupported file type for extraction: %s", extension)
        return f"{name} - Unsupported file format {extension}, parsing failed."

    try:
        if extension == ".pdf":
            text = _extract_pdf(path)
        elif extension in (".jpg", ".jpeg", ".png"):
            text = _extract_image(path)
        elif extension == ".docx":
            text = _extract_docx(path)
        else:
            text = _extract_txt(path)
    except Exception as e:
        logger.warning("Text extraction failed for %s: %s", name, e)
        return f"{name} - Document processing failed: {e}"

    logger.info("Extracted %d characters from %s", len(text), name)
    return text


def _extract_pdf(path: Path) -> str:
    reader = PdfReader(str(path), strict=False)
    pages = [page.extract_text() or "" for page in reader.pages]
    text = "\n".join(pages).strip()

    if len(text) > _MIN_PDF_CHARS and not _PDF_SYNTAX_PATTERN.search(text):
        logger.debug("PDF %s: %d pages with a usable text layer", path.name, len(reader.pages))
        return text

    if text and _PDF_SYNTAX_PATTERN.search(text):
        return f"{path.name} - PDF text layer parsing failed (raw object data found)."

    size_kb = path.stat().st_size / 1024
    return (
        f"{path.name} ({size_kb:.2f} KB PDF) - Content extraction yielded minimal content. "
        "This PDF may be scanned, encrypted, or contain primarily images."
    )


def _extract_image(path: Path) -> str:
    with Image.open(path) as image:
        text = pytesseract.image_to_string(image, lang="eng").strip()

    if len(text) > _MIN_OCR_CHARS:
        return text
    return (
        f"{path.name} - Image processed but OCR found minimal content. "
        "The image may be unclear, low quality, or contain non-text content."
    )


def _extract_docx(path: Path) -> str:
    document = Document(str(path))
    paragraphs = [p.text for p in document.paragraphs if p.text.strip()]
    text = "\n".join(paragraphs).strip()

    if len(text) > _MIN_DOCX_CHARS:
        return text
    return f"{path.name} - Word document contains minimal content."


def _extract_txt(path: Path) -> str:
    text = path.read_text(encoding="utf-8", errors="replace").strip()

    if len(text) > _MIN_TXT_CHARS:
        return text
    return f"{path.name} - Text file is empty or contains minimal content."
