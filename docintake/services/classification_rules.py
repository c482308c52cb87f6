"""Static keyword tables and thresholds shared by the classification pipeline.

Two category tables live here on purpose. ``TEXT_CATEGORY_KEYWORDS`` drives
the keyword validator, which scans document text plus filename.
``FILENAME_CATEGORY_KEYWORDS`` drives the filename-only analyzer and carries
shorter stems and generic filename terms ("work", "project", "order",
"bill") that would be too noisy against full document text.

Everything in this module is read-only configuration.
"""

from types import MappingProxyType
from typing import Mapping, Tuple

from docintake.models.classification import CategoryLabel, PriorityLabel

# Text shorter than this is treated as a failed extraction.
MIN_EXTRACTED_TEXT_LENGTH = 50

# A keyword candidate must hit at least this many distinct keywords to
# replace the category chosen by the model.
CATEGORY_OVERRIDE_MIN_MATCHES = 2

# Only this many leading characters of the document go into the AI prompt.
AI_PROMPT_MAX_CHARS = 2000

# Substrings the extraction gateway embeds in its placeholder text on failure.
EXTRACTION_FAILURE_MARKERS: Tuple[str, ...] = (
    "parsing failed",
    "processing failed",
    "minimal content",
)


TEXT_CATEGORY_KEYWORDS: Mapping[CategoryLabel, Tuple[str, ...]] = MappingProxyType({
    CategoryLabel.ENGINEERING: (
        "maintenance", "repair", "technical", "equipment", "infrastructure",
        "construction", "mechanical", "electrical", "system",
    ),
    CategoryLabel.FINANCE: (
        "budget", "payment", "invoice", "expense", "cost", "revenue",
        "financial", "accounting",
    ),
    CategoryLabel.PROCUREMENT: (
        "purchase", "vendor", "supplier", "tender", "quotation",
        "contract award", "rfp", "procurement",
    ),
    CategoryLabel.HR: (
        "employee", "staff", "personnel", "recruitment", "training", "leave",
        "human resource", "hr",
    ),
    CategoryLabel.LEGAL: (
        "legal", "contract", "agreement", "compliance", "regulation", "law",
        "litigation", "audit",
    ),
    CategoryLabel.SAFETY: (
        "safety", "security", "emergency", "incident", "accident", "hazard",
        "risk", "protocol",
    ),
    CategoryLabel.REGULATORY: (
        "regulatory", "government", "ministry", "policy", "circular",
        "notification", "directive", "guideline",
    ),
})

FILENAME_CATEGORY_KEYWORDS: Mapping[CategoryLabel, Tuple[str, ...]] = MappingProxyType({
    CategoryLabel.ENGINEERING: (
        "maintenance", "repair", "technical", "equipment", "infrastructure",
        "construction", "mech", "elect", "system", "work", "project",
    ),
    CategoryLabel.FINANCE: (
        "budget", "payment", "invoice", "expense", "cost", "revenue",
        "financial", "account", "bill", "fund",
    ),
    CategoryLabel.PROCUREMENT: (
        "purchase", "vendor", "supplier", "tender", "quotation", "contract",
        "rfp", "procurement", "order",
    ),
    CategoryLabel.HR: (
        "employee", "staff", "personnel", "recruitment", "training", "leave",
        "hr", "attendance", "salary",
    ),
    CategoryLabel.LEGAL: (
        "legal", "contract", "agreement", "compliance", "regulation", "law",
        "audit", "policy",
    ),
    CategoryLabel.SAFETY: (
        "safety", "security", "emergency", "incident", "accident", "hazard",
        "risk", "circular", "alert",
    ),
    CategoryLabel.REGULATORY: (
        "regulatory", "government", "ministry", "notification", "directive",
        "guideline", "rule", "standard",
    ),
})


TEXT_PRIORITY_KEYWORDS: Mapping[PriorityLabel, Tuple[str, ...]] = MappingProxyType({
    PriorityLabel.HIGH: (
        "urgent", "immediate", "emergency", "critical", "deadline", "asap",
        "action required", "time sensitive", "priority", "escalate",
    ),
    PriorityLabel.MEDIUM: (
        "important", "attention", "review required", "follow up", "notice",
        "update", "reminder", "please note",
    ),
})

FILENAME_PRIORITY_KEYWORDS: Mapping[PriorityLabel, Tuple[str, ...]] = MappingProxyType({
    PriorityLabel.HIGH: ("urgent", "immediate", "emergency", "critical", "asap"),
    PriorityLabel.MEDIUM: ("important", "attention", "notice", "reminder"),
})


def count_keyword_hits(haystack: str, keywords: Tuple[str, ...]) -> int:
    """Count distinct keywords occurring as substrings of an already-lowercased string."""
    return sum(1 for keyword in keywords if keyword in haystack)


def contains_any(haystack: str, keywords: Tuple[str, ...]) -> bool:
    return any(keyword in haystack for keyword in keywords)


def is_failed_extraction(text: str) -> bool:
    """Whether extracted text is too short or is a gateway failure placeholder."""
    if len(text) < MIN_EXTRACTED_TEXT_LENGTH:
        return True
    lowered = text.lower()
    return any(marker in lowered for marker in EXTRACTION_FAILURE_MARKERS)
