"""Tests for Gemini API client initialization."""

from unittest.mock import MagicMock, patch

import pytest

from docintake.services.gemini_client import get_gemini_client


@patch("docintake.services.gemini_client.get_settings")
def test_missing_api_key_raises(mock_get_settings):
    """Test that a missing GEMINI_API_KEY raises ValueError."""
    mock_get_settings.return_value = MagicMock(gemini_api_key=None)

    with pytest.raises(ValueError, match="GEMINI_API_KEY not set"):
        get_gemini_client()


@patch("docintake.services.gemini_client.genai.Client")
@patch("docintake.services.gemini_client.get_settings")
def test_client_created_with_key_and_timeout(mock_get_settings, mock_client_class):
    """Test that the client gets the API key and a millisecond timeout."""
    mock_get_settings.return_value = MagicMock(gemini_api_key="test-key", ai_timeout_seconds=8.0)
    mock_client_class.return_value = MagicMock()

    client = get_gemini_client()

    assert client is mock_client_class.return_value
    kwargs = mock_client_class.call_args.kwargs
    assert kwargs["api_key"] == "test-key"
    assert kwargs["http_options"].timeout == 8000


@patch("docintake.services.gemini_client.genai.Client")
@patch("docintake.services.gemini_client.get_settings")
def test_fractional_timeout(mock_get_settings, mock_client_class):
    mock_get_settings.return_value = MagicMock(gemini_api_key="test-key", ai_timeout_seconds=2.5)

    get_gemini_client()

    assert mock_client_class.call_args.kwargs["http_options"].timeout == 2500
