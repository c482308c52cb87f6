"""Pydantic models for document classification results.

Category and priority are closed enumerations; every value the pipeline
hands back is one of these members.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class CategoryLabel(str, Enum):
    """Department a document is routed to."""

    ENGINEERING = "Engineering"
    FINANCE = "Finance"
    PROCUREMENT = "Procurement"
    HR = "HR"
    LEGAL = "Legal"
    SAFETY = "Safety"
    REGULATORY = "Regulatory"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: object) -> Optional["CategoryLabel"]:
        """Match a loosely formatted label, or return None when out of range."""
        return _match_label(cls, value)


class PriorityLabel(str, Enum):
    """Urgency of a document. Members are declared highest first."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def parse(cls, value: object) -> Optional["PriorityLabel"]:
        """Match a loosely formatted label, or return None when out of range."""
        return _match_label(cls, value)


def _match_label(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return None
    wanted = value.strip().lower()
    for member in enum_cls:
        if member.value.lower() == wanted:
            return member
    return None


class ClassificationInput(BaseModel):
    """Text extracted from a document plus the name it was uploaded under."""

    text: str = Field(description="Extracted document content")
    filename: str = Field(default="", description="Original (sanitized) filename")


class AIClassification(BaseModel):
    """Provisional triple produced by the AI classifier adapter."""

    category: CategoryLabel = Field(default=CategoryLabel.OTHER)
    priority: Optional[PriorityLabel] = Field(
        default=None,
        description="Priority suggested by the model, used only as a last-resort default"
    )
    summary: str = Field(description="Short factual description of the document")


class ClassificationResult(BaseModel):
    """Final category/priority/analysis triple returned to callers."""

    category: CategoryLabel = Field(description="Department category")
    priority: PriorityLabel = Field(description="Urgency priority")
    analysis: str = Field(description="Human-readable 2-3 sentence summary")
