"""Tests for document intake API endpoints."""

import json
import logging
import uuid
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from docintake.config import get_settings
from docintake.db.memory_store import InMemoryDocumentStore
from docintake.db.store import get_document_store
from docintake.main import app
from docintake.middleware.rate_limit import get_limiter
from docintake.models.classification import AIClassification, CategoryLabel, PriorityLabel

INVOICE_TEXT = b"URGENT: please process this invoice payment immediately for the Finance department."


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Reset the rate limiters before each test."""
    get_limiter().reset()
    app.state.request_window.reset()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch) -> Path:
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path))
    monkeypatch.delenv("NOTIFICATION_WEBHOOK_URL", raising=False)
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


@pytest.fixture
def client(store, upload_dir) -> TestClient:
    """Create FastAPI test client backed by an in-memory store."""
    app.dependency_overrides[get_document_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def mock_ai():
    """Stub the Gemini adapter with a fixed Other/Low answer."""
    with patch("docintake.services.document_classifier.classify_with_ai") as mock_classify:
        mock_classify.return_value = AIClassification(
            category=CategoryLabel.OTHER,
            priority=PriorityLabel.LOW,
            summary="An invoice document.",
        )
        yield mock_classify


@pytest.fixture
def mock_magic():
    with patch("docintake.services.file_validator.magic.from_buffer") as mock_from_buffer:
        mock_from_buffer.return_value = "text/plain"
        yield mock_from_buffer


@pytest.fixture
def mock_notify():
    with patch("docintake.routers.documents.notify_document_processed", new_callable=AsyncMock) as mock:
        mock.return_value = True
        yield mock


def upload(client: TestClient, content: bytes = INVOICE_TEXT, filename: str = "inv_2024.txt"):
    return client.post("/api/process-file", files={"document": (filename, content, "text/plain")})


# Process File Tests


def test_process_file_classifies_and_stores(client, store, upload_dir, mock_ai, mock_magic, mock_notify):
    response = upload(client)

    assert response.status_code == 201
    assert response.headers["X-Document-Category"] == "Finance"
    assert response.headers["X-Document-Priority"] == "High"

    body = response.json()
    assert body["success"] is True
    document = body["document"]
    assert document["category"] == "Finance"
    assert document["priority"] == "High"
    assert document["analysis"] == "An invoice document."
    assert document["extracted_text"] == INVOICE_TEXT.decode()
    assert document["size"] == len(INVOICE_TEXT)
    assert uuid.UUID(document["id"]).version == 4

    stored = store._records[document["id"]]
    assert stored.metadata.classification_path == "ai"
    assert Path(stored.file_path).parent == upload_dir
    assert Path(stored.file_path).read_bytes() == INVOICE_TEXT
    mock_notify.assert_awaited_once()


def test_process_file_short_text_uses_filename(client, store, mock_ai, mock_magic, mock_notify):
    response = upload(client, b"Sign here.", "urgent_budget.txt")

    assert response.status_code == 201
    document = response.json()["document"]
    assert document["category"] == "Finance"
    assert document["priority"] == "High"
    mock_ai.assert_not_called()
    assert store._records[document["id"]].metadata.classification_path == "filename"
    assert store._records[document["id"]].metadata.ai_model is None


def test_process_file_sanitizes_filename(client, mock_ai, mock_magic, mock_notify):
    response = upload(client, filename="../Q1 report (draft).txt")

    assert response.json()["document"]["filename"] == "Q1_report_draft_.txt"


def test_process_file_bad_extension(client, mock_magic):
    response = upload(client, b"MZ", "tool.exe")

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "Invalid file extension" in body["error"]["message"]
    assert body["error"]["status_code"] == 400
    assert "timestamp" in body["error"]


def test_process_file_missing_field(client):
    response = client.post("/api/process-file", files={"file": ("a.txt", b"x", "text/plain")})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_process_file_store_failure(client, store, upload_dir, mock_ai, mock_magic, mock_notify):
    failing_store = MagicMock()
    failing_store.save = AsyncMock(side_effect=RuntimeError("Failed to insert document: down"))
    app.dependency_overrides[get_document_store] = lambda: failing_store

    response = upload(client)

    assert response.status_code == 500
    assert response.json()["error"]["message"] == "Failed to store document"
    assert list(upload_dir.iterdir()) == []
    mock_notify.assert_not_called()


def test_process_file_rate_limited(client, mock_magic):
    for _ in range(5):
        assert upload(client, b"MZ", "tool.exe").status_code == 400

    response = upload(client, b"MZ", "tool.exe")

    assert response.status_code == 429
    assert "Retry-After" in response.headers


# Classify Tests


def test_classify_text(client, mock_ai):
    response = client.post(
        "/api/classify",
        json={"text": INVOICE_TEXT.decode(), "filename": "inv_2024.pdf"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "category": "Finance",
        "priority": "High",
        "analysis": "An invoice document.",
    }


def test_classify_requires_text(client):
    response = client.post("/api/classify", json={"filename": "x.pdf"})

    assert response.status_code == 400


# Listing and Retrieval Tests


@pytest.fixture
def uploaded(client, mock_ai, mock_magic, mock_notify) -> dict:
    return upload(client).json()["document"]


def test_list_documents(client, uploaded):
    response = client.get("/api/documents")

    assert response.status_code == 200
    body = response.json()
    assert [d["id"] for d in body["documents"]] == [uploaded["id"]]
    assert body["pagination"] == {"page": 1, "limit": 50, "total": 1, "pages": 1}


def test_list_documents_filters(client, uploaded):
    assert client.get("/api/documents?category=finance&priority=High").json()["pagination"]["total"] == 1
    assert client.get("/api/documents?category=HR").json()["pagination"]["total"] == 0
    assert client.get("/api/documents?status=completed").json()["pagination"]["total"] == 1


@pytest.mark.parametrize(
    "query",
    ["category=Marketing", "priority=Extreme", "status=archived", "page=0", "limit=101", "limit=abc"],
)
def test_list_documents_invalid_query(client, query):
    response = client.get(f"/api/documents?{query}")

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_get_document(client, uploaded):
    response = client.get(f"/api/documents/{uploaded['id']}")

    assert response.status_code == 200
    assert response.json()["document"]["id"] == uploaded["id"]


@pytest.mark.parametrize(
    "document_id",
    ["not-a-uuid", "123", "3f2b8c1e-6a4d-1f7e-9b2a-1c5d8e7f6a90"],
)
def test_get_document_invalid_id(client, document_id):
    response = client.get(f"/api/documents/{document_id}")

    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Invalid document ID format"


def test_get_document_not_found(client):
    response = client.get(f"/api/documents/{uuid.uuid4()}")

    assert response.status_code == 404


# Download and Delete Tests


def test_download_document(client, uploaded):
    response = client.get(f"/api/download/{uploaded['id']}")

    assert response.status_code == 200
    assert response.content == INVOICE_TEXT
    assert "attachment" in response.headers["content-disposition"]
    assert uploaded["filename"] in response.headers["content-disposition"]


def test_download_missing_file(client, store, uploaded):
    Path(store._records[uploaded["id"]].file_path).unlink()

    response = client.get(f"/api/download/{uploaded['id']}")

    assert response.status_code == 404


def test_delete_document(client, store, uploaded):
    file_path = Path(store._records[uploaded["id"]].file_path)

    response = client.delete(f"/api/delete/{uploaded['id']}")

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert not file_path.exists()
    assert client.get(f"/api/documents/{uploaded['id']}").status_code == 404


def test_delete_unknown_document(client):
    assert client.delete(f"/api/delete/{uuid.uuid4()}").status_code == 404


# Statistics Tests


def test_statistics(client, uploaded):
    response = client.get("/api/statistics")

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "total": 1,
        "by_category": {"Finance": 1},
        "by_priority": {"High": 1},
        "recent_uploads": 1,
    }


def test_statistics_store_error(upload_dir):
    failing_store = MagicMock()
    failing_store.statistics = AsyncMock(side_effect=RuntimeError("Failed to compute statistics: down"))
    app.dependency_overrides[get_document_store] = lambda: failing_store
    try:
        response = TestClient(app).get("/api/statistics")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["error"]["message"] == "Failed to compute statistics"


def test_delete_writes_audit_line(client, uploaded, caplog):
    caplog.set_level(logging.INFO, logger="docintake.audit")

    client.delete(f"/api/delete/{uploaded['id']}")

    audit_lines = [json.loads(r.getMessage()) for r in caplog.records if r.name == "docintake.audit"]
    assert audit_lines[-1]["action"] == "delete"
    assert audit_lines[-1]["resource"] == uploaded["id"]
