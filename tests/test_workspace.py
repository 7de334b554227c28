import asyncio

import pytest

from doc_chat_server.chat.dispatcher import FALLBACK_MESSAGE
from doc_chat_server.documents.sample import SAMPLE_DOCUMENT_ID
from doc_chat_server.documents.store import DocumentNotFoundError, DocumentStoreError
from doc_chat_server.documents.uploads import UploadedFile
from doc_chat_server.runtime.capabilities import CapabilityNotReadyError, LLMStatus
from doc_chat_server.runtime.rehydration import RehydrationState
from tests.conftest import FakeEmbedder, FakeLLM, make_document


def txt(name, content):
    return UploadedFile(name, "text/plain", content.encode("utf-8"))


# ---------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_start_seeds_and_selects_sample(make_workspace):
    ws = make_workspace(seed_sample_document=True)

    assert await ws.start() is RehydrationState.COMPLETE
    assert ws.selected_document_id == SAMPLE_DOCUMENT_ID
    assert ws.capabilities.status is LLMStatus.LOADED
    assert ws.coordinator.knowledge_present


@pytest.mark.asyncio
async def test_failed_start_can_be_retried(make_workspace):
    llm = FakeLLM(available=False)
    ws = make_workspace(llm=llm)

    assert await ws.start() is RehydrationState.WAITING_FOR_CAPABILITIES
    assert ws.capabilities.status is LLMStatus.NOT_LOADED
    assert "unavailable" in ws.capabilities.error

    llm.available = True
    assert await ws.initialize_capabilities() is RehydrationState.COMPLETE
    assert ws.coordinator.agent is not None


@pytest.mark.asyncio
async def test_reload_during_startup_keeps_rehydrated_index(make_workspace, store):
    store.add([make_document("doc-1", "stored notes")])
    llm = FakeLLM(delay=0.05)
    ws = make_workspace(llm=llm)

    await asyncio.gather(ws.start(), ws.initialize_capabilities())

    assert llm.checks == 1
    assert ws.capabilities.index.get_stats()["chunks_per_document"] == {"doc-1": 1}
    assert ws.coordinator.knowledge_present
    assert ws.coordinator.knowledge.index is ws.capabilities.index
    assert ws.coordinator.agent.knowledge is ws.coordinator.knowledge


@pytest.mark.asyncio
async def test_upload_before_rehydration_is_indexed_once(make_workspace, store):
    store.add([make_document("doc-1", "stored notes")])
    ws = make_workspace()
    ws.store.load()
    await ws.capabilities.initialize()
    await ws.coordinator.bind_agent(ws.capabilities.llm)

    report = await ws.upload([txt("early.txt", "uploaded before the replay")])
    early_id = report.documents[0].id

    assert await ws.rehydration.run(ws.capabilities) is RehydrationState.COMPLETE

    assert ws.capabilities.index.get_stats()["chunks_per_document"] == {
        "doc-1": 1,
        early_id: 1,
    }
    assert ws.coordinator.knowledge_present


@pytest.mark.asyncio
async def test_dimension_mismatch_fails_initialisation(make_workspace):
    ws = make_workspace(embedder=FakeEmbedder(dimension=8))

    await ws.start()

    assert ws.capabilities.is_ready is False
    assert "8-d vectors" in ws.capabilities.error


# ---------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_upload_indexes_accepted_files(make_workspace):
    ws = make_workspace()
    await ws.start()
    assert ws.coordinator.knowledge_present is False

    report = await ws.upload([
        txt("notes.txt", "The launch is on Friday."),
        UploadedFile("image.png", "image/png", b"\x89PNG"),
    ])

    assert [d.name for d in report.documents] == ["notes.txt"]
    assert [r.filename for r in report.rejected] == ["image.png"]
    assert report.inserted_chunks == 1
    assert report.failures == []

    doc_id = report.documents[0].id
    assert doc_id in ws.store
    assert ws.selected_document_id == doc_id
    assert ws.coordinator.knowledge_present

    hits = await ws.search("launch Friday", 3)
    assert hits[0].chunk.file_id == doc_id


@pytest.mark.asyncio
async def test_upload_reports_chunk_failures(make_workspace):
    ws = make_workspace(embedder=FakeEmbedder(fail_on={"poison"}))
    await ws.start()

    report = await ws.upload([txt("a.txt", "fine\n\n" + "x" * 600 + "\n\npoison")])

    assert report.inserted_chunks == 2
    assert [(f.chunk_index, f.cause.split(":")[0]) for f in report.failures] == [
        (2, "EmbeddingError")
    ]
    assert len(ws.store) == 1


@pytest.mark.asyncio
async def test_upload_requires_ready_services(make_workspace):
    ws = make_workspace(llm=FakeLLM(available=False))
    await ws.start()

    with pytest.raises(CapabilityNotReadyError):
        await ws.upload([txt("a.txt", "x")])
    assert len(ws.store) == 0


@pytest.mark.asyncio
async def test_unpersisted_upload_is_not_retrievable(make_workspace, monkeypatch):
    ws = make_workspace()
    await ws.start()

    def broken_add(documents):
        raise DocumentStoreError("Failed to write document list: PermissionError")

    monkeypatch.setattr(ws.store, "add", broken_add)

    with pytest.raises(DocumentStoreError):
        await ws.upload([txt("a.txt", "content")])

    assert len(ws.capabilities.index) == 0
    assert ws.coordinator.knowledge_present is False


@pytest.mark.asyncio
async def test_delete_removes_records(make_workspace):
    ws = make_workspace()
    await ws.start()
    report = await ws.upload([txt("a.txt", "alpha"), txt("b.txt", "beta")])
    first = report.documents[0].id

    removed, records = await ws.delete_document(first)

    assert removed.name == "a.txt"
    assert records == 1
    assert ws.selected_document_id is None
    assert first not in ws.store
    assert ws.index_stats()["total_documents"] == 1
    assert all(h.chunk.file_id != first for h in await ws.search("alpha", 5))

    await ws.delete_document(report.documents[1].id)
    assert ws.coordinator.knowledge_present is False
    assert await ws.search("beta", 5) == []


@pytest.mark.asyncio
async def test_select_unknown_document(make_workspace):
    ws = make_workspace()
    with pytest.raises(DocumentNotFoundError):
        ws.select_document("missing")


def test_index_stats_before_initialisation(make_workspace):
    stats = make_workspace().index_stats()
    assert stats["available"] is False
    assert stats["total_vectors"] == 0


# ---------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_send_message_records_both_messages(make_workspace):
    llm = FakeLLM(reply="Friday.")
    ws = make_workspace(llm=llm)
    await ws.start()
    await ws.upload([txt("notes.txt", "The launch is on Friday.")])

    user, reply = await ws.send_message("default", "When is the launch?")

    assert (user.role, user.content) == ("user", "When is the launch?")
    assert (reply.role, reply.content) == ("assistant", "Friday.")
    assert ws.sessions.get_history("default") == [user, reply]
    assert ws.capabilities.status is LLMStatus.LOADED

    sent = llm.requests[-1]
    assert sent[0]["role"] == "system"
    assert "The launch is on Friday." in sent[0]["content"]


@pytest.mark.asyncio
async def test_send_message_without_knowledge_skips_retrieval(make_workspace):
    llm = FakeLLM()
    ws = make_workspace(llm=llm)
    await ws.start()

    await ws.send_message("default", "hello")

    assert llm.requests[-1] == [{"role": "user", "content": "hello"}]


@pytest.mark.asyncio
async def test_history_is_sent_with_next_turn(make_workspace):
    llm = FakeLLM(reply="ok")
    ws = make_workspace(llm=llm)
    await ws.start()

    await ws.send_message("s1", "first")
    await ws.send_message("s1", "second")

    assert [m["content"] for m in llm.requests[-1]] == ["first", "ok", "second"]


@pytest.mark.asyncio
async def test_generation_failure_gives_fallback(make_workspace):
    ws = make_workspace(llm=FakeLLM(reply="partial answer", fail_after=1))
    await ws.start()

    _, reply = await ws.send_message("default", "hi")

    assert reply.content == FALLBACK_MESSAGE
    assert len(ws.sessions.get_history("default")) == 2
    assert ws.capabilities.status is LLMStatus.LOADED


@pytest.mark.asyncio
async def test_send_message_before_ready(make_workspace):
    ws = make_workspace(llm=FakeLLM(available=False))
    await ws.start()

    with pytest.raises(CapabilityNotReadyError):
        await ws.send_message("default", "hi")
    assert ws.sessions.get_history("default") == []
