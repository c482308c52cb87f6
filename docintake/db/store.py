"""Document store selection.

Routers talk to a ``DocumentStore``; which backend sits behind it is decided
once from configuration: Supabase when configured, otherwise an in-process
store.
"""

import logging
import threading
from typing import Optional, Protocol

from supabase import Client

from docintake.config import get_settings
from docintake.db.documents import (
    create_document,
    delete_document,
    get_document,
    get_document_statistics,
    list_documents,
)
from docintake.db.memory_store import InMemoryDocumentStore
from docintake.db.supabase_client import get_supabase_client
from docintake.models.document import (
    DocumentFilters,
    DocumentPage,
    DocumentRecord,
    DocumentStatistics,
)

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    backend: str

    async def save(self, record: DocumentRecord) -> DocumentRecord: ...

    async def list(self, filters: DocumentFilters, page: int = 1, limit: int = 50) -> DocumentPage: ...

    async def get(self, document_id: str) -> Optional[DocumentRecord]: ...

    async def delete(self, document_id: str) -> bool: ...

    async def statistics(self) -> DocumentStatistics: ...


class SupabaseDocumentStore:
    """DocumentStore backed by a Supabase table."""

    backend = "supabase"

    def __init__(self, client: Client, table: str) -> None:
        self.client = client
        self.table = table

    async def save(self, record: DocumentRecord) -> DocumentRecord:
        return await create_document(self.client, self.table, record)

    async def list(self, filters: DocumentFilters, page: int = 1, limit: int = 50) -> DocumentPage:
        return await list_documents(self.client, self.table, filters, page=page, limit=limit)

    async def get(self, document_id: str) -> Optional[DocumentRecord]:
        return await get_document(self.client, self.table, document_id)

    async def delete(self, document_id: str) -> bool:
        return await delete_document(self.client, self.table, document_id)

    async def statistics(self) -> DocumentStatistics:
        return await get_document_statistics(self.client, self.table)


_store: Optional[DocumentStore] = None
_lock = threading.Lock()


def get_document_store() -> DocumentStore:
    """Return the process-wide document store, creating it on first use."""
    global _store
    if _store is not None:
        return _store
    with _lock:
        if _store is not None:
            return _store
        settings = get_settings()
        if settings.supabase_enabled:
            _store = SupabaseDocumentStore(get_supabase_client(), settings.supabase_table)
        else:
            _store = InMemoryDocumentStore()
        logger.info("Document store backend: %s", _store.backend)
        return _store


def reset_document_store() -> None:
    """Forget the current store so the next call re-reads configuration."""
    global _store
    with _lock:
        _store = None
