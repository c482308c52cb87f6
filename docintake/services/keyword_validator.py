"""Deterministic keyword rules applied on top of the AI classification.

The model's category is kept unless a department's keyword set is clearly
dominant in the document; priority is always recomputed from urgency
phrases, with the model's suggestion only as the last-resort default.
"""

import logging
from typing import Dict, Optional

from docintake.models.classification import (
    AIClassification,
    CategoryLabel,
    ClassificationResult,
    PriorityLabel,
)
from docintake.services.classification_rules import (
    CATEGORY_OVERRIDE_MIN_MATCHES,
    TEXT_CATEGORY_KEYWORDS,
    TEXT_PRIORITY_KEYWORDS,
    contains_any,
    count_keyword_hits,
)

logger = logging.getLogger(__name__)


def score_categories(text: str, filename: str) -> Dict[CategoryLabel, int]:
    """Count distinct keyword hits per category over text and filename."""
    haystack = f"{text.lower()} {filename.lower()}"
    return {
        category: count_keyword_hits(haystack, keywords)
        for category, keywords in TEXT_CATEGORY_KEYWORDS.items()
    }


def override_category(
    text: str,
    filename: str,
    ai_category: CategoryLabel,
) -> CategoryLabel:
    """Replace the AI category with a strictly dominant keyword category.

    The best-scoring category wins only when no other category ties it and it
    reached ``CATEGORY_OVERRIDE_MIN_MATCHES``; otherwise ``ai_category`` stands.
    """
    scores = score_categories(text, filename)
    best_score = max(scores.values())
    leaders = [category for category, score in scores.items() if score == best_score]

    if best_score < CATEGORY_OVERRIDE_MIN_MATCHES or len(leaders) != 1:
        return ai_category

    candidate = leaders[0]
    if candidate != ai_category:
        logger.info(
            "Keyword override: %s -> %s (%d keyword hits)",
            ai_category.value, candidate.value, best_score,
        )
    return candidate


def compute_priority(text: str, ai_priority: Optional[PriorityLabel] = None) -> PriorityLabel:
    """Recompute priority from urgency phrases in the document text.

    High phrases beat Medium phrases; with neither, the model's valid
    suggestion is used, then Low.
    """
    lowered = text.lower()
    if contains_any(lowered, TEXT_PRIORITY_KEYWORDS[PriorityLabel.HIGH]):
        return PriorityLabel.HIGH
    if contains_any(lowered, TEXT_PRIORITY_KEYWORDS[PriorityLabel.MEDIUM]):
        return PriorityLabel.MEDIUM
    return PriorityLabel.parse(ai_priority) or PriorityLabel.LOW


def validate(text: str, filename: str, ai_result: AIClassification) -> ClassificationResult:
    """Apply keyword rules to a provisional AI classification.

    Args:
        text: Full extracted document text.
        filename: Name the document was uploaded under.
        ai_result: Triple returned by the AI classifier adapter.

    Returns:
        ClassificationResult with the validated category, recomputed priority
        and the AI summary passed through unchanged.
    """
    category = override_category(text, filename, ai_result.category)
    priority = compute_priority(text, ai_result.priority)
    return ClassificationResult(
        category=category,
        priority=priority,
        analysis=ai_result.summary,
    )
