"""Tests for the Gemini classification adapter."""

import json
import time
from unittest.mock import MagicMock, patch

import pytest

from docintake.models.classification import AIClassification, CategoryLabel, PriorityLabel
from docintake.services.ai_classifier import (
    AINetworkFailure,
    AIParseFailure,
    AIResponseOk,
    build_prompt,
    classify_with_ai,
    extract_json_object,
    parse_ai_response,
    request_ai_classification,
    resolve_outcome,
    word_count_summary,
)

TEXT = "Quarterly figures attached for the regional office, see the tables below."


def make_client(response_text=None, side_effect=None) -> MagicMock:
    """Create a mock genai.Client whose generate_content returns response_text."""
    client = MagicMock()
    if side_effect is not None:
        client.models.generate_content.side_effect = side_effect
    else:
        client.models.generate_content.return_value = MagicMock(text=response_text)
    return client


class TestWordCountSummary:
    def test_counts_space_separated_tokens(self):
        assert word_count_summary("one two  three") == (
            "Document contains 4 words and has been processed for review."
        )

    def test_empty_text_counts_one(self):
        assert word_count_summary("") == "Document contains 1 words and has been processed for review."


class TestBuildPrompt:
    def test_truncates_text(self):
        prompt = build_prompt("a" * 5000, "long.txt")

        assert "a" * 2000 in prompt
        assert "a" * 2001 not in prompt

    def test_includes_filename_and_labels(self):
        prompt = build_prompt("Body", "memo.pdf")

        assert 'File Name: "memo.pdf"' in prompt
        assert "Engineering, Finance, Procurement, HR, Legal, Safety, Regulatory, Other" in prompt
        assert "High, Medium, Low" in prompt


class TestExtractJsonObject:
    def test_object_wrapped_in_prose(self):
        raw = 'Sure! Here it is: {"category": "Finance"} Hope this helps.'

        assert extract_json_object(raw) == '{"category": "Finance"}'

    def test_braces_inside_strings(self):
        raw = '{"summary": "Uses {braces} and \\"quotes\\"", "category": "HR"}'

        assert json.loads(extract_json_object(raw))["category"] == "HR"

    def test_nested_object(self):
        raw = 'x {"a": {"b": 1}} y'

        assert extract_json_object(raw) == '{"a": {"b": 1}}'

    def test_no_object(self):
        assert extract_json_object("no json here") is None

    def test_unbalanced(self):
        assert extract_json_object('{"category": "HR"') is None

    def test_unclosed_braces_scan_once(self):
        raw = "{" * 50000 + ' {"category": "HR"}'

        started = time.perf_counter()
        assert extract_json_object(raw) is None
        assert time.perf_counter() - started < 1.0


class TestParseAIResponse:
    def test_valid_response(self):
        raw = '{"category": "Legal", "priority": "High", "summary": "A contract review."}'

        outcome = parse_ai_response(raw, TEXT)

        assert outcome == AIResponseOk(
            classification=AIClassification(
                category=CategoryLabel.LEGAL,
                priority=PriorityLabel.HIGH,
                summary="A contract review.",
            )
        )

    def test_labels_are_normalised(self):
        raw = '{"category": " finance ", "priority": "medium", "summary": "x"}'

        outcome = parse_ai_response(raw, TEXT)

        assert isinstance(outcome, AIResponseOk)
        assert outcome.classification.category == CategoryLabel.FINANCE
        assert outcome.classification.priority == PriorityLabel.MEDIUM

    def test_out_of_range_fields_fall_back(self):
        raw = '{"category": "Marketing", "priority": "Extreme", "summary": ""}'

        outcome = parse_ai_response(raw, TEXT)

        assert isinstance(outcome, AIResponseOk)
        assert outcome.classification.category == CategoryLabel.OTHER
        assert outcome.classification.priority == PriorityLabel.LOW
        assert outcome.classification.summary == word_count_summary(TEXT)

    def test_missing_fields_fall_back(self):
        outcome = parse_ai_response("{}", TEXT)

        assert isinstance(outcome, AIResponseOk)
        assert outcome.classification == AIClassification(
            category=CategoryLabel.OTHER,
            priority=PriorityLabel.LOW,
            summary=word_count_summary(TEXT),
        )

    def test_no_json_is_parse_failure(self):
        outcome = parse_ai_response("I cannot help with that.", TEXT)

        assert isinstance(outcome, AIParseFailure)
        assert outcome.raw_text == "I cannot help with that."

    def test_invalid_json_is_parse_failure(self):
        outcome = parse_ai_response("{category: Finance}", TEXT)

        assert isinstance(outcome, AIParseFailure)
        assert "invalid JSON" in outcome.reason


class TestRequestAIClassification:
    def test_uses_structured_output_config(self):
        client = make_client('{"category": "HR", "priority": "Low", "summary": "Leave form."}')

        outcome = request_ai_classification(TEXT, "form.pdf", client)

        assert isinstance(outcome, AIResponseOk)
        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["config"].response_mime_type == "application/json"
        assert kwargs["config"].temperature == 0.0
        assert "form.pdf" in kwargs["contents"]

    def test_api_error_is_network_failure(self):
        client = make_client(side_effect=TimeoutError("deadline exceeded"))

        outcome = request_ai_classification(TEXT, "form.pdf", client)

        assert isinstance(outcome, AINetworkFailure)
        assert "TimeoutError" in outcome.reason

    def test_none_text_is_parse_failure(self):
        client = make_client(response_text=None)

        outcome = request_ai_classification(TEXT, "form.pdf", client)

        assert isinstance(outcome, AIParseFailure)

    @patch("docintake.services.ai_classifier.get_gemini_client")
    def test_missing_api_key_is_network_failure(self, mock_get_client):
        mock_get_client.side_effect = ValueError("GEMINI_API_KEY not set in environment.")

        outcome = request_ai_classification(TEXT, "form.pdf")

        assert isinstance(outcome, AINetworkFailure)
        assert "not configured" in outcome.reason

    @patch("docintake.services.ai_classifier.get_gemini_client")
    def test_client_construction_error_is_network_failure(self, mock_get_client):
        mock_get_client.side_effect = RuntimeError("SDK failed to initialise")

        outcome = request_ai_classification(TEXT, "form.pdf")

        assert isinstance(outcome, AINetworkFailure)
        assert "RuntimeError" in outcome.reason

    @patch("docintake.services.ai_classifier.get_gemini_client")
    def test_client_construction_error_falls_back(self, mock_get_client):
        mock_get_client.side_effect = RuntimeError("SDK failed to initialise")

        result = classify_with_ai(TEXT, "form.pdf")

        assert result.category == CategoryLabel.OTHER
        assert result.priority == PriorityLabel.LOW


class TestResolveOutcome:
    @pytest.mark.parametrize(
        "outcome",
        [AIParseFailure(reason="no JSON object in response"), AINetworkFailure(reason="timeout")],
    )
    def test_failures_map_to_fallback(self, outcome):
        result = resolve_outcome(outcome, TEXT)

        assert result.category == CategoryLabel.OTHER
        assert result.priority == PriorityLabel.LOW
        assert result.summary == word_count_summary(TEXT)


def test_classify_with_ai_never_raises():
    client = make_client(side_effect=RuntimeError("boom"))

    result = classify_with_ai(TEXT, "x.pdf", client)

    assert result.category == CategoryLabel.OTHER
    assert result.summary == word_count_summary(TEXT)
