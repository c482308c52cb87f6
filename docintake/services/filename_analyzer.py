"""Filename-only classification used when text extraction failed."""

import logging

from docintake.models.classification import (
    CategoryLabel,
    ClassificationResult,
    PriorityLabel,
)
from docintake.services.classification_rules import (
    FILENAME_CATEGORY_KEYWORDS,
    FILENAME_PRIORITY_KEYWORDS,
    contains_any,
    count_keyword_hits,
)

logger = logging.getLogger(__name__)


def analyze_from_filename(filename: str) -> ClassificationResult:
    """Classify a document from its filename alone.

    The category with the most keyword hits wins (first in declaration order
    on a tie, "Other" with no hits). Any category hit is itself enough for
    Medium priority.
    """
    lowered = filename.lower()

    category = CategoryLabel.OTHER
    max_matches = 0
    for candidate, keywords in FILENAME_CATEGORY_KEYWORDS.items():
        matches = count_keyword_hits(lowered, keywords)
        if matches > max_matches:
            max_matches = matches
            category = candidate

    if contains_any(lowered, FILENAME_PRIORITY_KEYWORDS[PriorityLabel.HIGH]):
        priority = PriorityLabel.HIGH
    elif contains_any(lowered, FILENAME_PRIORITY_KEYWORDS[PriorityLabel.MEDIUM]) or max_matches > 0:
        priority = PriorityLabel.MEDIUM
    else:
        priority = PriorityLabel.LOW

    if max_matches > 0:
        summary = (
            f'{category.value} document identified from filename: "{filename}". '
            "Content extraction unsuccessful - manual review recommended for detailed analysis."
        )
    else:
        summary = (
            f'Document "{filename}" has been uploaded. '
            "Content extraction was unsuccessful - please review the original file for details."
        )

    logger.info(
        "Filename-based classification for %r: %s/%s (%d keyword hits)",
        filename, category.value, priority.value, max_matches,
    )
    return ClassificationResult(category=category, priority=priority, analysis=summary)
