"""Pydantic models for processed document records and API views."""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from docintake.models.classification import CategoryLabel, PriorityLabel


class DocumentStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ProcessingMetadata(BaseModel):
    """How a document was processed."""

    ai_model: Optional[str] = Field(default=None, description="Gemini model used, if any")
    ocr_engine: str = Field(default="tesseract", description="Text extraction engine family")
    classification_path: Literal["ai", "filename"] = Field(
        description="'ai' for AI + keyword validation, 'filename' for the degraded path"
    )


class DocumentRecord(BaseModel):
    """A processed document as persisted by a document store."""

    id: str = Field(description="UUID4 of the document")
    filename: str = Field(description="Sanitized filename")
    original_name: str = Field(description="Filename as uploaded")
    category: CategoryLabel
    priority: PriorityLabel
    analysis: str
    extracted_text: str
    file_path: str = Field(description="Location of the stored original file")
    file_size: int = Field(ge=0)
    mime_type: str
    file_hash: str = Field(description="SHA-256 of the file content")
    status: DocumentStatus = DocumentStatus.COMPLETED
    processing_time_ms: int = Field(default=0, ge=0)
    uploaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Optional[ProcessingMetadata] = None

    def to_view(self) -> "DocumentView":
        return DocumentView(
            id=self.id,
            filename=self.filename,
            category=self.category,
            priority=self.priority,
            analysis=self.analysis,
            extracted_text=self.extracted_text,
            uploaded_at=self.uploaded_at,
            size=self.file_size,
            status=self.status,
            processing_time_ms=self.processing_time_ms,
        )


class DocumentView(BaseModel):
    """Public representation of a document returned by the API."""

    id: str
    filename: str
    category: CategoryLabel
    priority: PriorityLabel
    analysis: str
    extracted_text: str
    uploaded_at: datetime
    size: int
    status: DocumentStatus
    processing_time_ms: int


class DocumentFilters(BaseModel):
    category: Optional[CategoryLabel] = None
    priority: Optional[PriorityLabel] = None
    status: Optional[DocumentStatus] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class DocumentPage(BaseModel):
    documents: List[DocumentRecord]
    pagination: Pagination


class DocumentStatistics(BaseModel):
    total: int = 0
    by_category: Dict[str, int] = Field(default_factory=dict)
    by_priority: Dict[str, int] = Field(default_factory=dict)
    recent_uploads: int = Field(default=0, description="Documents uploaded in the last 24 hours")
