"""Gemini API client initialization with error handling.

Uses the modern google-genai SDK (not google.generativeai).
"""

from google import genai
from google.genai import types

from docintake.config import get_settings


def get_gemini_client() -> genai.Client:
    """Initialize and return a Gemini API client.

    The client reads the GEMINI_API_KEY from the application settings and
    bounds every request by ``ai_timeout_seconds``.

    Returns:
        genai.Client: Initialized Gemini client ready for API calls.

    Raises:
        ValueError: If GEMINI_API_KEY is not set in environment.

    Example:
        >>> client = get_gemini_client()
        >>> response = client.models.generate_content(
        ...     model="gemini-3-flash-preview",
        ...     contents=["Hello world"]
        ... )
    """
    settings = get_settings()

    if not settings.gemini_api_key:
        raise ValueError(
            "GEMINI_API_KEY not set in environment. "
            "Please set this variable in your .env file or environment."
        )

    # HttpOptions.timeout is expressed in milliseconds
    timeout_ms = int(settings.ai_timeout_seconds * 1000)
    return genai.Client(
        api_key=settings.gemini_api_key,
        http_options=types.HttpOptions(timeout=timeout_ms),
    )
