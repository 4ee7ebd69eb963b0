import json

import pytest
from fastapi.testclient import TestClient

from docvault.ai.summarizer import AIClient
from docvault.api.dependencies import ServiceContainer, get_container
from docvault.api.main import app
from docvault.core.config import Settings
from docvault.core.database import InMemoryDocumentStore
from docvault.processing.extractor import TextExtractor
from docvault.services.content import ContentService
from docvault.services.groups import GroupService, GroupSuggester
from docvault.storage.blob import ObjectStorageClient
from docvault.workflows.processing import DocumentProcessor
from docvault.workflows.retry import RetryCoordinator
from tests.stubs import SleepRecorder, StubLLM

MODEL_REPLY = json.dumps({"summary": "A greeting.", "markdown": "# Hello\n\nworld"})


@pytest.fixture
def container(tmp_path):
    config = Settings(
        STORAGE_BACKEND="local",
        LOCAL_STORAGE_PATH=tmp_path / "blobs",
        ALLOWED_EXTENSIONS=".pdf,.doc,.docx,.txt",
        MAX_UPLOAD_BYTES=1024,
    )
    store = InMemoryDocumentStore()
    storage = ObjectStorageClient(config)
    llm = StubLLM(text=MODEL_REPLY, model="stub-model")
    extractor = TextExtractor()
    ai_client = AIClient(llm)
    processor = DocumentProcessor(store, storage, extractor, ai_client)
    return ServiceContainer(
        settings=config,
        store=store,
        storage=storage,
        llm=llm,
        extractor=extractor,
        ai_client=ai_client,
        processor=processor,
        retry=RetryCoordinator(store, processor, sleep=SleepRecorder()),
        content=ContentService(store, storage, extractor, ai_client),
        groups=GroupService(store),
        suggester=GroupSuggester(llm, store),
    )


@pytest.fixture
def client(container):
    app.dependency_overrides[get_container] = lambda: container
    yield TestClient(app)
    app.dependency_overrides.clear()


def _upload(client, name="notes.txt", content=b"Hello world"):
    return client.post("/api/documents", files={"file": (name, content, "text/plain")})


def test_upload_processes_document_in_background(client):
    response = _upload(client)

    assert response.status_code == 201
    body = response.json()
    assert body["document"]["status"] == "UPLOADED"
    assert body["cost_estimate"] is None

    document = client.get(f"/api/documents/{body['document']['id']}").json()
    assert document["status"] == "READY"
    assert document["summary"] == "A greeting."
    assert document["markdown"] == "# Hello\n\nworld"
    assert document["ai_model"] == "stub-model"
    assert document["groups"] == []


def test_upload_rejects_unsupported_extension(client):
    response = _upload(client, name="tool.exe")
    assert response.status_code == 422
    assert response.json()["code"] == "INVALID_FILE_TYPE"


def test_upload_rejects_oversized_file(client):
    response = _upload(client, content=b"x" * 2048)
    assert response.status_code == 422
    assert response.json()["code"] == "FILE_TOO_LARGE"


def test_unknown_document_is_404(client):
    response = client.get("/api/documents/does-not-exist")
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_list_filters_by_status(client):
    _upload(client)

    assert len(client.get("/api/documents", params={"status": "READY"}).json()) == 1
    assert client.get("/api/documents", params={"status": "FAILED"}).json() == []
    assert len(client.get("/api/documents", params={"search": "notes"}).json()) == 1


def test_edit_and_regenerate_content(client, container):
    document_id = _upload(client).json()["document"]["id"]

    edited = client.patch(f"/api/documents/{document_id}/content", json={"summary": "My summary"})
    assert edited.status_code == 200
    assert edited.json()["summary_source"] == "user_modified"
    assert edited.json()["markdown_source"] == "ai_generated"

    assert client.patch(f"/api/documents/{document_id}/content", json={}).status_code == 422

    container.llm.text = json.dumps({"summary": "Regenerated.", "markdown": "# Regenerated"})
    regenerated = client.post(f"/api/documents/{document_id}/regenerate", json={"type": "markdown"}).json()
    assert regenerated["markdown"] == "# Regenerated"
    assert regenerated["summary"] == "My summary"
    assert regenerated["summary_source"] == "user_modified"


def test_signed_url(client):
    document_id = _upload(client).json()["document"]["id"]

    response = client.get(f"/api/documents/{document_id}/url", params={"ttl_seconds": 120})

    assert response.status_code == 200
    assert response.json()["url"].startswith("file://")
    assert response.json()["expires_in"] == 120


def test_retry_failure_reports_retry_failed(client, container):
    document = _upload(client).json()["document"]
    (container.settings.LOCAL_STORAGE_PATH / document["storage_path"]).unlink()

    response = client.post(f"/api/documents/{document['id']}/retry")

    assert response.status_code == 500
    assert response.json()["code"] == "RETRY_FAILED"
    assert client.get(f"/api/documents/{document['id']}").json()["status"] == "FAILED"
    assert container.retry._sleep.delays == [2.0, 4.0]


def test_retry_success_returns_document(client):
    document_id = _upload(client).json()["document"]["id"]

    response = client.post(f"/api/documents/{document_id}/retry")

    assert response.status_code == 200
    assert response.json()["status"] == "READY"


def test_delete_document(client):
    document_id = _upload(client).json()["document"]["id"]

    assert client.delete(f"/api/documents/{document_id}").status_code == 204
    assert client.get(f"/api/documents/{document_id}").status_code == 404
    assert client.delete(f"/api/documents/{document_id}").status_code == 404


def test_group_lifecycle(client):
    first = _upload(client, name="a.txt").json()["document"]["id"]
    second = _upload(client, name="b.txt").json()["document"]["id"]

    group = client.post("/api/groups", json={"name": "Greetings"}).json()
    assert group["type"] == "MANUAL"

    added = client.post(f"/api/groups/{group['id']}/documents", json={"document_ids": [first, second]})
    assert {doc["id"] for doc in added.json()} == {first, second}
    assert [g["id"] for g in client.get(f"/api/documents/{first}").json()["groups"]] == [group["id"]]

    assert client.delete(f"/api/groups/{group['id']}/documents/{first}").status_code == 204
    assert [doc["id"] for doc in client.get(f"/api/groups/{group['id']}/documents").json()] == [second]

    missing = client.post(f"/api/groups/{group['id']}/documents", json={"document_ids": ["ghost"]})
    assert missing.status_code == 404

    assert client.delete(f"/api/groups/{group['id']}").status_code == 204
    assert client.get("/api/groups").json() == []


def test_suggest_and_accept_groups(client, container):
    first = _upload(client, name="a.txt").json()["document"]["id"]
    second = _upload(client, name="b.txt").json()["document"]["id"]
    container.llm.text = json.dumps(
        [
            {
                "group": {"name": "Greetings", "description": "Hello notes"},
                "document_ids": [first, second],
                "confidence": 0.8,
                "reason": "Both say hello",
            }
        ]
    )

    suggestions = client.post("/api/groups/suggest").json()
    assert len(suggestions) == 1
    assert suggestions[0]["group"]["type"] == "AI_SUGGESTED"
    assert client.get("/api/groups").json() == []

    accepted = client.post("/api/groups/suggest/accept", json=suggestions[0])
    assert accepted.status_code == 201
    assert accepted.json()["type"] == "AI_SUGGESTED"
    assert [g["id"] for g in client.get("/api/groups", params={"type": "AI_SUGGESTED"}).json()] == [
        accepted.json()["id"]
    ]
    assert client.get("/api/groups", params={"type": "MANUAL"}).json() == []


def test_accept_stale_suggestion_returns_404_without_group(client):
    document_id = _upload(client).json()["document"]["id"]
    suggestion = {
        "group": {"name": "Stale", "description": "Member was deleted"},
        "document_ids": [document_id, "deleted-doc"],
        "confidence": 0.9,
        "reason": "Suggested before the delete",
    }

    assert client.post("/api/groups/suggest/accept", json=suggestion).status_code == 404
    assert client.get("/api/groups").json() == []


def test_get_unknown_document_returns_404(client):
    assert client.get("/api/documents/ghost").status_code == 404


def test_health_and_metrics(client):
    _upload(client)

    assert client.get("/health").json()["status"] == "ok"
    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "docvault_processing_total" in metrics.text
    assert "docvault_http_requests_total" in metrics.text
