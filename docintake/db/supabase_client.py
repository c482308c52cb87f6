"""
Supabase client initialization module.

This module provides a thread-safe singleton Supabase client for document
persistence. It is only used when SUPABASE_URL and SUPABASE_KEY are both set.
"""

import threading
from supabase import create_client, Client
from docintake.config import get_settings

_client: Client | None = None
_lock = threading.Lock()


def get_supabase_client() -> Client:
    """
    Return the shared Supabase client (singleton), initializing once in a thread-safe way.

    Returns:
        Client: Shared Supabase client instance

    Raises:
        ValueError: If Supabase is not configured or the client cannot be created
    """
    global _client
    if _client is not None:
        return _client
    with _lock:
        if _client is not None:
            return _client
        settings = get_settings()
        if not settings.supabase_url or not settings.supabase_key:
            raise ValueError("Supabase is not configured (SUPABASE_URL / SUPABASE_KEY)")
        try:
            _client = create_client(settings.supabase_url, settings.supabase_key)
            return _client
        except Exception as e:
            raise ValueError(f"Failed to create Supabase client: {str(e)}") from e
