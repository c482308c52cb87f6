"""Hybrid AI + keyword document classifier.

Determines department category and urgency priority for an uploaded
document:

1. Degraded input check (instant, free): if text extraction failed, classify
   from the filename alone and skip the AI call entirely.
2. Gemini structured call: provisional category/priority/summary.
3. Keyword validation: override an obviously wrong category and recompute
   priority from urgency phrases.
"""

import logging
from typing import Optional

from google import genai

from docintake.models.classification import ClassificationResult
from docintake.services.ai_classifier import classify_with_ai
from docintake.services.classification_rules import is_failed_extraction
from docintake.services.filename_analyzer import analyze_from_filename
from docintake.services.keyword_validator import validate

logger = logging.getLogger(__name__)


def classify_document(
    text: str,
    filename: str = "",
    gemini_client: Optional[genai.Client] = None,
) -> ClassificationResult:
    """Classify a document from its extracted text and filename.

    Args:
        text: Text returned by the extraction gateway (or its failure placeholder).
        filename: Name the document was uploaded under.
        gemini_client: Optional Gemini client; built from settings when omitted.

    Returns:
        ClassificationResult with category, priority and analysis. Never raises:
        AI failures degrade to keyword rules over a generic summary.
    """
    text = text or ""
    filename = filename or ""
    logger.info(
        "Classifying %r (%d chars of extracted text)", filename, len(text)
    )

    if is_failed_extraction(text):
        logger.info("Text extraction appears to have failed, using filename-based analysis")
        return analyze_from_filename(filename)

    ai_result = classify_with_ai(text, filename, gemini_client)
    logger.info(
        "AI result: category=%s priority=%s",
        ai_result.category.value,
        ai_result.priority.value if ai_result.priority else None,
    )

    result = validate(text, filename, ai_result)
    logger.info(
        "Validated result: category=%s final priority=%s",
        result.category.value,
        result.priority.value,
    )
    return result
