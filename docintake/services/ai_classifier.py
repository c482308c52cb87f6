"""Gemini-backed classification adapter.

Sends the head of the extracted text plus the filename to Gemini with a
rigid JSON-only instruction, then parses the reply defensively. The model is
not trusted to return only JSON, or only valid labels.

The outcome of a request is one of three variants:

- ``AIResponseOk``: a JSON object was found; its fields are normalized with
  per-field fallbacks.
- ``AIParseFailure``: the reply had no usable JSON object.
- ``AINetworkFailure``: the request never produced a reply (missing key,
  timeout, transport or API error).

Both failure variants resolve to the same fixed fallback triple, so
``classify_with_ai`` always returns a usable ``AIClassification``.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from google import genai
from google.genai import types

from docintake.config import get_settings
from docintake.models.classification import AIClassification, CategoryLabel, PriorityLabel
from docintake.services.classification_rules import AI_PROMPT_MAX_CHARS
from docintake.services.gemini_client import get_gemini_client

logger = logging.getLogger(__name__)


_PROMPT_TEMPLATE = """Analyze the following document text and provide a structured JSON response with EXACTLY these fields:

Document Text: "{text}"
File Name: "{filename}"

You must respond with ONLY a valid JSON object in this exact format:
{{
  "category": "one of: {categories}",
  "priority": "one of: {priorities}",
  "summary": "A factual 2-3 sentence summary based STRICTLY on the actual document content. Do not add generic statements or assumptions. Only describe what is explicitly mentioned in the text."
}}

Rules:
1. Base your analysis ONLY on the actual text content provided
2. Do not make assumptions or add generic information
3. The summary must reflect specific content from the document
4. Use exact category names from the list
5. Priority should be based on urgency indicators in the text
6. Respond with ONLY the JSON object, no other text
"""

_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "category": {"type": "STRING", "enum": [c.value for c in CategoryLabel]},
        "priority": {"type": "STRING", "enum": [p.value for p in PriorityLabel]},
        "summary": {"type": "STRING"},
    },
    "required": ["category", "priority", "summary"],
}


@dataclass(frozen=True)
class AIResponseOk:
    classification: AIClassification


@dataclass(frozen=True)
class AIParseFailure:
    reason: str
    raw_text: str = ""


@dataclass(frozen=True)
class AINetworkFailure:
    reason: str


AIOutcome = Union[AIResponseOk, AIParseFailure, AINetworkFailure]


def word_count_summary(text: str) -> str:
    """Generic summary used whenever the model gives no usable summary."""
    return f"Document contains {len(text.split(' '))} words and has been processed for review."


def fallback_classification(text: str) -> AIClassification:
    return AIClassification(
        category=CategoryLabel.OTHER,
        priority=PriorityLabel.LOW,
        summary=word_count_summary(text),
    )


def build_prompt(text: str, filename: str) -> str:
    return _PROMPT_TEMPLATE.format(
        text=text[:AI_PROMPT_MAX_CHARS],
        filename=filename,
        categories=", ".join(c.value for c in CategoryLabel),
        priorities=", ".join(p.value for p in PriorityLabel),
    )


def extract_json_object(raw: str) -> Optional[str]:
    """Return the balanced ``{...}`` substring opened by the first ``{`` in ``raw``.

    Braces inside JSON string literals are ignored when balancing. The scan
    is a single pass: if the first object never closes, there is no result.
    """
    start = raw.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(raw)):
        char = raw[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return raw[start:index + 1]
    return None


def parse_ai_response(raw_text: str, text: str) -> AIOutcome:
    """Turn raw model output into an ``AIResponseOk`` or ``AIParseFailure``."""
    candidate = extract_json_object(raw_text)
    if candidate is None:
        return AIParseFailure(reason="no JSON object in response", raw_text=raw_text)

    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        return AIParseFailure(reason=f"invalid JSON: {e}", raw_text=raw_text)

    if not isinstance(data, dict):
        return AIParseFailure(reason="JSON value is not an object", raw_text=raw_text)

    summary = data.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        summary = word_count_summary(text)

    return AIResponseOk(
        classification=AIClassification(
            category=CategoryLabel.parse(data.get("category")) or CategoryLabel.OTHER,
            priority=PriorityLabel.parse(data.get("priority")) or PriorityLabel.LOW,
            summary=summary.strip(),
        )
    )


def request_ai_classification(
    text: str,
    filename: str,
    gemini_client: Optional[genai.Client] = None,
) -> AIOutcome:
    """Send one classification request to Gemini and classify the outcome."""
    try:
        settings = get_settings()
        client = gemini_client if gemini_client is not None else get_gemini_client()
    except Exception as e:
        return AINetworkFailure(reason=f"client not configured: {type(e).__name__}: {e}")

    try:
        response = client.models.generate_content(
            model=settings.model_name,
            contents=build_prompt(text, filename),
            config=types.GenerateContentConfig(
                temperature=0.0,
                response_mime_type="application/json",
                response_schema=_RESPONSE_SCHEMA,
            ),
        )
        raw_text = response.text or ""
    except Exception as e:
        return AINetworkFailure(reason=f"{type(e).__name__}: {e}")

    return parse_ai_response(raw_text, text)


def resolve_outcome(outcome: AIOutcome, text: str) -> AIClassification:
    """Map every outcome variant onto a usable classification."""
    if isinstance(outcome, AIResponseOk):
        return outcome.classification

    if isinstance(outcome, AIParseFailure):
        logger.warning(
            "AI response could not be parsed (%s); response snippet: %s",
            outcome.reason,
            outcome.raw_text[:200],
        )
    else:
        logger.warning("AI classification request failed: %s", outcome.reason)

    return fallback_classification(text)


def classify_with_ai(
    text: str,
    filename: str,
    gemini_client: Optional[genai.Client] = None,
) -> AIClassification:
    """Classify a document with Gemini, falling back to Other/Low on any failure.

    Args:
        text: Extracted document text (only the head is sent).
        filename: Name the document was uploaded under.
        gemini_client: Optional pre-built client; one is created from settings
            when omitted.

    Returns:
        AIClassification; never raises.
    """
    outcome = request_ai_classification(text, filename, gemini_client)
    result = resolve_outcome(outcome, text)
    logger.debug(
        "AI classification for %r: %s/%s",
        filename,
        result.category.value,
        result.priority.value if result.priority else None,
    )
    return result
