import contextlib

import pytest
from fastapi.testclient import TestClient

from doc_chat_server.api.dependencies import get_workspace
from doc_chat_server.chat.dispatcher import ChatTurnState
from doc_chat_server.documents.store import DocumentStoreError
from doc_chat_server.main import create_app
from tests.conftest import FakeLLM


def make_client(workspace):
    app = create_app()
    app.dependency_overrides[get_workspace] = lambda: workspace

    # Replace the real lifespan so no model server is contacted
    @contextlib.asynccontextmanager
    async def mock_lifespan(app):
        await workspace.start()
        yield

    app.router.lifespan_context = mock_lifespan
    return TestClient(app)


@pytest.fixture
def workspace(make_workspace):
    return make_workspace(llm=FakeLLM(reply="The launch is on Friday."))


@pytest.fixture
def client(workspace):
    with make_client(workspace) as c:
        yield c


def upload(client, *files):
    return client.post("/documents", files=[("files", f) for f in files])


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {
        "status": "ok",
        "llm_status": "loaded",
        "rehydration": "complete",
        "knowledge_present": False,
        "documents": 0,
        "error": None,
    }


def test_upload_and_list(client):
    resp = upload(
        client,
        ("notes.txt", b"The launch is on Friday.", "text/plain"),
        ("image.png", b"\x89PNG", "image/png"),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert [d["name"] for d in body["documents"]] == ["notes.txt"]
    assert body["rejected"][0]["filename"] == "image.png"
    assert body["inserted_chunks"] == 1
    assert body["failed_chunks"] == []

    doc_id = body["documents"][0]["id"]
    listing = client.get("/documents").json()
    assert listing["selected_document_id"] == doc_id
    assert listing["documents"] == [{"id": doc_id, "name": "notes.txt", "size": 24}]

    detail = client.get(f"/documents/{doc_id}").json()
    assert detail["content"] == "The launch is on Friday."

    assert client.get("/health").json()["knowledge_present"] is True


def test_index_stats(client):
    upload(client, ("a.txt", b"alpha", "text/plain"))
    stats = client.get("/documents/index/stats").json()
    assert stats["available"] is True
    assert stats["total_vectors"] == 1
    assert stats["total_documents"] == 1


def test_select_and_delete(client):
    ids = [
        upload(client, (name, b"some text", "text/plain")).json()["documents"][0]["id"]
        for name in ("a.txt", "b.txt")
    ]

    resp = client.post(f"/documents/{ids[1]}/select")
    assert resp.json() == {"status": "selected", "count": None}
    assert client.get("/documents").json()["selected_document_id"] == ids[1]

    resp = client.delete(f"/documents/{ids[1]}")
    assert resp.json() == {"status": "deleted", "count": 1}
    assert client.get("/documents").json()["selected_document_id"] is None


def test_unknown_document_is_404(client):
    assert client.get("/documents/missing").status_code == 404
    assert client.delete("/documents/missing").status_code == 404
    resp = client.post("/documents/missing/select")
    assert resp.status_code == 404
    assert resp.json()["error"] == "document_not_found"


def test_storage_failure_is_reported(client, workspace, monkeypatch):
    def broken_add(documents):
        raise DocumentStoreError("Failed to write document list: PermissionError")

    monkeypatch.setattr(workspace.store, "add", broken_add)

    resp = upload(client, ("a.txt", b"content", "text/plain"))

    assert resp.status_code == 500
    assert resp.json() == {
        "error": "storage_error",
        "detail": "Failed to write document list: PermissionError",
    }
    assert client.get("/documents").json()["documents"] == []


def test_chat_round_trip(client):
    resp = client.post("/chat", json={"message": "When is the launch?"})
    assert resp.status_code == 200
    messages = resp.json()["messages"]
    assert [m["role"] for m in messages] == ["user", "assistant"]
    assert messages[1]["content"] == "The launch is on Friday."

    history = client.get("/chat/history").json()
    assert history["session_id"] == "default"
    assert len(history["messages"]) == 2

    resp = client.delete("/chat/history")
    assert resp.json() == {"status": "cleared", "count": 2}
    assert client.get("/chat/history").json()["messages"] == []


def test_chat_rejects_empty_message(client):
    assert client.post("/chat", json={"message": ""}).status_code == 422


def test_chat_while_turn_in_progress(client, workspace):
    workspace.dispatcher._state = ChatTurnState.STREAMING
    resp = client.post("/chat", json={"message": "hi"})
    assert resp.status_code == 409
    assert resp.json()["error"] == "turn_in_progress"


def test_search(client):
    upload(
        client,
        ("fruit.txt", b"apples apples apples", "text/plain"),
        ("space.txt", b"rockets fly high", "text/plain"),
    )

    resp = client.post("/search", json={"query": "apples", "k": 1})
    assert resp.status_code == 200
    results = resp.json()
    assert len(results) == 1
    assert results[0]["file_name"] == "fruit.txt"
    assert results[0]["chunk_index"] == 0


def test_search_without_documents(client):
    assert client.post("/search", json={"query": "anything"}).json() == []


def test_not_ready_returns_503(make_workspace):
    llm = FakeLLM(available=False)
    workspace = make_workspace(llm=llm)

    with make_client(workspace) as client:
        health = client.get("/health").json()
        assert health["llm_status"] == "not-loaded"
        assert health["rehydration"] == "waiting-for-capabilities"

        resp = client.post("/chat", json={"message": "hi"})
        assert resp.status_code == 503
        assert resp.json()["error"] == "not_ready"

        resp = upload(client, ("a.txt", b"x", "text/plain"))
        assert resp.status_code == 503

        llm.available = True
        reloaded = client.post("/health/reload").json()
        assert reloaded["llm_status"] == "loaded"
        assert reloaded["rehydration"] == "complete"
