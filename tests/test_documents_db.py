"""Tests for Supabase-backed document persistence."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from docintake.db.documents import (
    create_document,
    delete_document,
    get_document,
    get_document_statistics,
    list_documents,
)
from docintake.models.classification import CategoryLabel, PriorityLabel
from docintake.models.document import DocumentFilters, DocumentRecord, ProcessingMetadata

TABLE = "documents"
DOCUMENT_ID = "3f2b8c1e-6a4d-4f7e-9b2a-1c5d8e7f6a90"


def make_record(**overrides) -> DocumentRecord:
    data = {
        "id": DOCUMENT_ID,
        "filename": "invoice.pdf",
        "original_name": "invoice.pdf",
        "category": CategoryLabel.FINANCE,
        "priority": PriorityLabel.HIGH,
        "analysis": "An invoice document.",
        "extracted_text": "Invoice text",
        "file_path": f"uploads/{DOCUMENT_ID}.pdf",
        "file_size": 1234,
        "mime_type": "application/pdf",
        "file_hash": "a" * 64,
        "metadata": ProcessingMetadata(ai_model="gemini-3-flash-preview", classification_path="ai"),
    }
    data.update(overrides)
    return DocumentRecord(**data)


@pytest.fixture
def mock_supabase():
    """Mock Supabase client with a chainable query builder."""
    client = MagicMock()
    query = MagicMock()
    client.table.return_value = query
    for method in ("select", "insert", "delete", "eq", "order", "range", "limit"):
        getattr(query, method).return_value = query
    return client, query


@pytest.mark.asyncio
async def test_create_document_success(mock_supabase):
    client, query = mock_supabase
    record = make_record()
    query.execute.return_value = MagicMock(data=[record.model_dump(mode="json")])

    stored = await create_document(client, TABLE, record)

    assert stored == record
    client.table.assert_called_with(TABLE)
    inserted = query.insert.call_args.args[0]
    assert inserted["category"] == "Finance"
    assert inserted["metadata"]["classification_path"] == "ai"


@pytest.mark.asyncio
async def test_create_document_without_metadata_round_trips(mock_supabase):
    client, query = mock_supabase
    record = make_record(metadata=None)
    row = record.model_dump(mode="json")
    row["metadata"] = {}
    query.execute.return_value = MagicMock(data=[row])

    stored = await create_document(client, TABLE, record)

    assert stored.metadata is None


@pytest.mark.asyncio
async def test_create_document_empty_response(mock_supabase):
    client, query = mock_supabase
    query.execute.return_value = MagicMock(data=[])

    with pytest.raises(RuntimeError, match="insert returned no data"):
        await create_document(client, TABLE, make_record())


@pytest.mark.asyncio
async def test_create_document_database_error(mock_supabase):
    client, query = mock_supabase
    query.execute.side_effect = Exception("connection reset")

    with pytest.raises(RuntimeError, match="Failed to insert document: connection reset"):
        await create_document(client, TABLE, make_record())


@pytest.mark.asyncio
async def test_list_documents_with_filters(mock_supabase):
    client, query = mock_supabase
    query.execute.return_value = MagicMock(data=[make_record().model_dump(mode="json")], count=51)

    page = await list_documents(
        client,
        TABLE,
        DocumentFilters(category=CategoryLabel.FINANCE, priority=PriorityLabel.HIGH),
        page=2,
        limit=25,
    )

    query.eq.assert_any_call("category", "Finance")
    query.eq.assert_any_call("priority", "High")
    query.order.assert_called_once_with("uploaded_at", desc=True)
    query.range.assert_called_once_with(25, 49)
    assert page.pagination.total == 51
    assert page.pagination.pages == 3
    assert len(page.documents) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (1, 101)])
async def test_list_documents_invalid_pagination(mock_supabase, page, limit):
    client, _ = mock_supabase

    with pytest.raises(ValueError):
        await list_documents(client, TABLE, DocumentFilters(), page=page, limit=limit)


@pytest.mark.asyncio
async def test_get_document_not_found(mock_supabase):
    client, query = mock_supabase
    query.execute.return_value = MagicMock(data=[])

    assert await get_document(client, TABLE, DOCUMENT_ID) is None
    query.eq.assert_called_once_with("id", DOCUMENT_ID)


@pytest.mark.asyncio
async def test_delete_document(mock_supabase):
    client, query = mock_supabase
    query.execute.return_value = MagicMock(data=[{"id": DOCUMENT_ID}])

    assert await delete_document(client, TABLE, DOCUMENT_ID) is True


@pytest.mark.asyncio
async def test_get_document_statistics(mock_supabase):
    client, query = mock_supabase
    now = datetime.now(timezone.utc)
    query.execute.return_value = MagicMock(data=[
        {"category": "Finance", "priority": "High", "uploaded_at": now.isoformat()},
        {"category": "Finance", "priority": "Low", "uploaded_at": (now - timedelta(hours=2)).isoformat()},
        {"category": "HR", "priority": "Low", "uploaded_at": (now - timedelta(days=3)).isoformat()},
    ])

    stats = await get_document_statistics(client, TABLE)

    assert stats.total == 3
    assert stats.by_category == {"Finance": 2, "HR": 1}
    assert stats.by_priority == {"High": 1, "Low": 2}
    assert stats.recent_uploads == 2
