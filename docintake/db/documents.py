"""Database functions for managing document records in Supabase.

This module provides CRUD operations for processed documents, including
insertion, filtered listing, retrieval, deletion and aggregate statistics.
The supabase client is synchronous, so every call runs in a worker thread.
"""

import asyncio
import math
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from supabase import Client

from docintake.models.document import (
    DocumentFilters,
    DocumentPage,
    DocumentRecord,
    DocumentStatistics,
    Pagination,
)


def _to_row(record: DocumentRecord) -> Dict[str, Any]:
    row = record.model_dump(mode="json")
    row["metadata"] = row.get("metadata") or {}
    return row


def _from_row(row: Dict[str, Any]) -> DocumentRecord:
    # The metadata column defaults to an empty JSON object
    if not row.get("metadata"):
        row = {**row, "metadata": None}
    return DocumentRecord.model_validate(row)


async def create_document(client: Client, table: str, record: DocumentRecord) -> DocumentRecord:
    """Insert a processed document record.

    Args:
        client: Supabase client instance
        table: Documents table name
        record: Fully populated document record

    Returns:
        DocumentRecord: The record as stored

    Raises:
        RuntimeError: If database insertion fails
    """
    row = _to_row(record)
    try:
        response = await asyncio.to_thread(
            lambda: client.table(table).insert(row).execute()
        )
    except Exception as e:
        raise RuntimeError(f"Failed to insert document: {str(e)}") from e

    if not response.data or len(response.data) == 0:
        raise RuntimeError("Failed to insert document: insert returned no data")
    return _from_row(response.data[0])


async def list_documents(
    client: Client,
    table: str,
    filters: DocumentFilters,
    page: int = 1,
    limit: int = 50,
) -> DocumentPage:
    """List documents, newest first, with optional filters and pagination.

    Args:
        client: Supabase client instance
        table: Documents table name
        filters: Optional category/priority/status filters
        page: 1-based page number
        limit: Page size (1-100)

    Returns:
        DocumentPage with records and pagination metadata

    Raises:
        ValueError: If page or limit are out of range
        RuntimeError: If the query fails
    """
    if page < 1:
        raise ValueError("Page must be a positive number")
    if limit < 1 or limit > 100:
        raise ValueError("Limit must be between 1 and 100")

    offset = (page - 1) * limit

    def _query() -> Any:
        query = client.table(table).select("*", count="exact")
        if filters.category is not None:
            query = query.eq("category", filters.category.value)
        if filters.priority is not None:
            query = query.eq("priority", filters.priority.value)
        if filters.status is not None:
            query = query.eq("status", filters.status.value)
        return query.order("uploaded_at", desc=True).range(offset, offset + limit - 1).execute()

    try:
        response = await asyncio.to_thread(_query)
    except Exception as e:
        raise RuntimeError(f"Failed to list documents: {str(e)}") from e

    rows = response.data or []
    total = response.count if response.count is not None else len(rows)
    return DocumentPage(
        documents=[_from_row(row) for row in rows],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            pages=math.ceil(total / limit) if total else 0,
        ),
    )


async def get_document(client: Client, table: str, document_id: str) -> Optional[DocumentRecord]:
    """Retrieve a document record by id, or None when it does not exist."""
    try:
        response = await asyncio.to_thread(
            lambda: client.table(table).select("*").eq("id", document_id).limit(1).execute()
        )
    except Exception as e:
        raise RuntimeError(f"Failed to retrieve document: {str(e)}") from e

    if not response.data:
        return None
    return _from_row(response.data[0])


async def delete_document(client: Client, table: str, document_id: str) -> bool:
    """Delete a document record; returns False when nothing was deleted."""
    try:
        response = await asyncio.to_thread(
            lambda: client.table(table).delete().eq("id", document_id).execute()
        )
    except Exception as e:
        raise RuntimeError(f"Failed to delete document: {str(e)}") from e

    return bool(response.data)


async def get_document_statistics(client: Client, table: str) -> DocumentStatistics:
    """Aggregate document counts by category and priority.

    Only the category, priority and uploaded_at columns are fetched; the
    aggregation happens in Python.
    """
    try:
        response = await asyncio.to_thread(
            lambda: client.table(table).select("category, priority, uploaded_at").execute()
        )
    except Exception as e:
        raise RuntimeError(f"Failed to compute statistics: {str(e)}") from e

    rows = response.data or []
    cutoff = datetime.now(timezone.utc) - timedelta(hours=24)

    recent = 0
    for row in rows:
        uploaded_at = row.get("uploaded_at")
        if not uploaded_at:
            continue
        try:
            timestamp = datetime.fromisoformat(str(uploaded_at).replace("Z", "+00:00"))
        except ValueError:
            continue
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        if timestamp >= cutoff:
            recent += 1

    return DocumentStatistics(
        total=len(rows),
        by_category=dict(Counter(row["category"] for row in rows if row.get("category"))),
        by_priority=dict(Counter(row["priority"] for row in rows if row.get("priority"))),
        recent_uploads=recent,
    )
