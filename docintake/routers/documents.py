"""
Document intake API endpoints.

Upload a document for extraction and classification, browse and download
processed documents, and read aggregate statistics.
"""

import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import Any, Awaitable, Dict, Optional, TypeVar

from fastapi import APIRouter, BackgroundTasks, Depends, File, Query, Request, Response, UploadFile, status
from fastapi.responses import FileResponse, JSONResponse

from docintake.config import get_settings
from docintake.db.store import DocumentStore, get_document_store
from docintake.middleware.errors import AppError
from docintake.middleware.logging import audit
from docintake.middleware.rate_limit import get_limiter, upload_rate_limit
from docintake.models.classification import (
    CategoryLabel,
    ClassificationInput,
    ClassificationResult,
    PriorityLabel,
)
from docintake.models.document import (
    DocumentFilters,
    DocumentRecord,
    DocumentStatus,
    ProcessingMetadata,
)
from docintake.services.classification_rules import is_failed_extraction
from docintake.services.document_classifier import classify_document
from docintake.services.file_storage import delete_upload, save_upload
from docintake.services.file_validator import validate_upload
from docintake.services.notifier import notify_document_processed
from docintake.services.text_extractor import extract_text

router = APIRouter(prefix="/api", tags=["documents"])
limiter = get_limiter()
logger = logging.getLogger(__name__)

T = TypeVar("T")


def require_document_id(document_id: str) -> str:
    """Reject anything that is not a canonical UUID4 string with 400."""
    try:
        parsed = uuid.UUID(document_id)
    except ValueError:
        parsed = None

    if parsed is None or parsed.version != 4 or str(parsed) != document_id.lower():
        raise AppError("Invalid document ID format", status.HTTP_400_BAD_REQUEST)
    return str(parsed)


async def _store_call(operation: Awaitable[T], action: str) -> T:
    try:
        return await operation
    except RuntimeError as e:
        logger.error("Document store failed to %s: %s", action, e)
        raise AppError(f"Failed to {action}", status.HTTP_500_INTERNAL_SERVER_ERROR) from e


async def _load_document(store: DocumentStore, document_id: str) -> DocumentRecord:
    record = await _store_call(store.get(require_document_id(document_id)), "fetch document")
    if record is None:
        raise AppError("Document not found", status.HTTP_404_NOT_FOUND)
    return record


@router.post("/process-file", status_code=status.HTTP_201_CREATED)
@limiter.limit(upload_rate_limit)  # type: ignore[untyped-decorator]
async def process_file(
    request: Request,
    background_tasks: BackgroundTasks,
    document: UploadFile = File(..., description="Document to classify (jpg, png, pdf, docx, txt)"),
    store: DocumentStore = Depends(get_document_store),
) -> Response:
    """
    Upload a document, extract its text, classify it and store the result.

    This endpoint:
    1. Validates the upload (extension, size, detected MIME type)
    2. Stores the original file under a fresh document ID
    3. Extracts text (PDF, OCR, DOCX or plain text)
    4. Classifies category and priority (AI + keyword validation, or the
       filename-only path when extraction failed)
    5. Persists the document record and schedules the notification

    Returns:
        201: Document processed; category/priority also in X-Document-* headers
        400: Invalid file
        413: File too large
        429: Rate limit exceeded
        500: Storage error
    """
    settings = get_settings()
    started = time.perf_counter()

    upload = await validate_upload(document, max_size=settings.max_upload_size_bytes)
    document_id = str(uuid.uuid4())
    audit(request, "upload", document_id)

    file_path = await asyncio.to_thread(save_upload, document_id, upload.filename, upload.content)

    # Extraction and classification block on OCR and the Gemini call
    extracted_text = await asyncio.to_thread(extract_text, file_path)
    result = await asyncio.to_thread(classify_document, extracted_text, upload.original_name)

    classification_path = "filename" if is_failed_extraction(extracted_text) else "ai"
    record = DocumentRecord(
        id=document_id,
        filename=upload.filename,
        original_name=upload.original_name,
        category=result.category,
        priority=result.priority,
        analysis=result.analysis,
        extracted_text=extracted_text,
        file_path=file_path,
        file_size=len(upload.content),
        mime_type=upload.mime_type,
        file_hash=upload.file_hash,
        status=DocumentStatus.COMPLETED,
        processing_time_ms=int((time.perf_counter() - started) * 1000),
        metadata=ProcessingMetadata(
            ai_model=settings.model_name if classification_path == "ai" else None,
            classification_path=classification_path,
        ),
    )

    try:
        record = await store.save(record)
    except RuntimeError as e:
        logger.error("Failed to persist document %s: %s", document_id, e)
        await asyncio.to_thread(delete_upload, file_path)
        raise AppError("Failed to store document", status.HTTP_500_INTERNAL_SERVER_ERROR) from e

    logger.info(
        "Document %s processed: category=%s priority=%s path=%s time_ms=%d",
        document_id,
        record.category.value,
        record.priority.value,
        classification_path,
        record.processing_time_ms,
    )

    background_tasks.add_task(notify_document_processed, record)

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={
            "success": True,
            "message": "Document processed successfully",
            "document": record.to_view().model_dump(mode="json"),
        },
        headers={
            "X-Document-Category": record.category.value,
            "X-Document-Priority": record.priority.value,
        },
    )


@router.post("/classify", response_model=ClassificationResult)
@limiter.limit(upload_rate_limit)  # type: ignore[untyped-decorator]
async def classify_text(request: Request, payload: ClassificationInput) -> ClassificationResult:
    """Classify already-extracted text without uploading a file."""
    return await asyncio.to_thread(classify_document, payload.text, payload.filename)


@router.get("/documents", status_code=status.HTTP_200_OK)
async def list_all_documents(
    category: Optional[str] = None,
    priority: Optional[str] = None,
    document_status: Optional[str] = Query(None, alias="status"),
    page: int = 1,
    limit: int = 50,
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, Any]:
    """
    List processed documents, newest first.

    Args:
        category: Optional category filter (e.g. "Finance")
        priority: Optional priority filter ("High", "Medium", "Low")
        document_status: Optional status filter, query parameter ``status``
        page: Page number, starting at 1
        limit: Page size, 1 to 100

    Returns:
        200: Documents with pagination metadata
        400: Invalid filter or pagination parameters
    """
    category_filter = None
    if category is not None:
        category_filter = CategoryLabel.parse(category)
        if category_filter is None:
            raise AppError(
                f"Invalid category. Must be one of: {', '.join(c.value for c in CategoryLabel)}",
                status.HTTP_400_BAD_REQUEST,
            )

    priority_filter = None
    if priority is not None:
        priority_filter = PriorityLabel.parse(priority)
        if priority_filter is None:
            raise AppError(
                f"Invalid priority. Must be one of: {', '.join(p.value for p in PriorityLabel)}",
                status.HTTP_400_BAD_REQUEST,
            )

    status_value = None
    if document_status is not None:
        try:
            status_value = DocumentStatus(document_status.strip().lower())
        except ValueError:
            raise AppError(
                f"Invalid status. Must be one of: {', '.join(s.value for s in DocumentStatus)}",
                status.HTTP_400_BAD_REQUEST,
            )

    filters = DocumentFilters(category=category_filter, priority=priority_filter, status=status_value)

    try:
        result = await _store_call(store.list(filters, page=page, limit=limit), "list documents")
    except ValueError as e:
        raise AppError(str(e), status.HTTP_400_BAD_REQUEST)

    return {
        "success": True,
        "documents": [r.to_view().model_dump(mode="json") for r in result.documents],
        "pagination": result.pagination.model_dump(),
    }


@router.get("/documents/{document_id}", status_code=status.HTTP_200_OK)
async def get_document_by_id(
    document_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, Any]:
    record = await _load_document(store, document_id)
    return {"success": True, "document": record.to_view().model_dump(mode="json")}


@router.get("/download/{document_id}")
async def download_document(
    request: Request,
    document_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> FileResponse:
    """Stream the original uploaded file as an attachment."""
    record = await _load_document(store, document_id)

    if not Path(record.file_path).is_file():
        logger.warning("Stored file missing for document %s: %s", record.id, record.file_path)
        raise AppError("File not found on server", status.HTTP_404_NOT_FOUND)

    audit(request, "download", record.id)
    return FileResponse(
        record.file_path,
        media_type=record.mime_type,
        filename=record.filename,
    )


@router.get("/statistics", status_code=status.HTTP_200_OK)
async def document_statistics(store: DocumentStore = Depends(get_document_store)) -> Dict[str, Any]:
    stats = await _store_call(store.statistics(), "compute statistics")
    return {"success": True, **stats.model_dump()}


@router.delete("/delete/{document_id}", status_code=status.HTTP_200_OK)
async def delete_document_by_id(
    request: Request,
    document_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> Dict[str, Any]:
    """Remove a document record together with its stored file."""
    record = await _load_document(store, document_id)

    file_removed = await asyncio.to_thread(delete_upload, record.file_path)
    await _store_call(store.delete(record.id), "delete document")

    audit(request, "delete", record.id)
    logger.info("Document %s deleted (file removed: %s)", record.id, file_removed)

    return {"success": True, "message": "Document deleted successfully"}
