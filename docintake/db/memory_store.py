"""In-process document store used when Supabase is not configured.

Records live for the lifetime of the process only.
"""

import math
import threading
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from docintake.models.document import (
    DocumentFilters,
    DocumentPage,
    DocumentRecord,
    DocumentStatistics,
    Pagination,
)


class InMemoryDocumentStore:
    """Thread-safe dictionary-backed document store."""

    backend = "memory"

    def __init__(self, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)) -> None:
        self._records: Dict[str, DocumentRecord] = {}
        self._lock = threading.Lock()
        self._clock = clock

    async def save(self, record: DocumentRecord) -> DocumentRecord:
        with self._lock:
            self._records[record.id] = record
        return record

    async def list(
        self,
        filters: DocumentFilters,
        page: int = 1,
        limit: int = 50,
    ) -> DocumentPage:
        if page < 1:
            raise ValueError("Page must be a positive number")
        if limit < 1 or limit > 100:
            raise ValueError("Limit must be between 1 and 100")

        with self._lock:
            records = list(self._records.values())

        if filters.category is not None:
            records = [r for r in records if r.category == filters.category]
        if filters.priority is not None:
            records = [r for r in records if r.priority == filters.priority]
        if filters.status is not None:
            records = [r for r in records if r.status == filters.status]

        records.sort(key=lambda r: r.uploaded_at, reverse=True)
        total = len(records)
        offset = (page - 1) * limit

        return DocumentPage(
            documents=records[offset:offset + limit],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                pages=math.ceil(total / limit) if total else 0,
            ),
        )

    async def get(self, document_id: str) -> Optional[DocumentRecord]:
        with self._lock:
            return self._records.get(document_id)

    async def delete(self, document_id: str) -> bool:
        with self._lock:
            return self._records.pop(document_id, None) is not None

    async def statistics(self) -> DocumentStatistics:
        with self._lock:
            records = list(self._records.values())

        cutoff = self._clock() - timedelta(hours=24)
        return DocumentStatistics(
            total=len(records),
            by_category=dict(Counter(r.category.value for r in records)),
            by_priority=dict(Counter(r.priority.value for r in records)),
            recent_uploads=sum(1 for r in records if r.uploaded_at >= cutoff),
        )
