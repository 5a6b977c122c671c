"""Unit tests for model resolution and chat preparation/streaming."""
import asyncio
import json
import threading
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ragchat.errors import RetrievalError
from ragchat.schemas import ChatBody
from ragchat.services import model_service
from ragchat.services.chat_service import PreparedChat, _stream_openai, prepare_chat, stream_chat_response
from ragchat.services.ingestion_service import ingest_document
from ragchat.services.settings_service import update_settings


def collect(agen):
    async def run():
        return [item async for item in agen]

    return asyncio.run(run())


def parse_events(chunks):
    return [json.loads(c[len("data: "):]) for c in chunks]


async def fake_stream(model_name, messages):
    for delta in ["Zebras ", "are ", "striped."]:
        yield delta


async def broken_stream(model_name, messages):
    yield "Partial"
    raise ConnectionError("model went away")


@pytest.mark.unit
class TestModelService:
    """Test cases for model resolution and listing."""

    @pytest.mark.parametrize(
        "model_string,expected",
        [
            ("openai:gpt-4o-mini", ("openai", "gpt-4o-mini")),
            ("ollama:qwen2.5:7b", ("ollama", "qwen2.5:7b")),
            (None, ("ollama", "qwen2.5:3b")),
            ("", ("ollama", "qwen2.5:3b")),
            ("anthropic:some-model", ("ollama", "qwen2.5:3b")),
            ("ollama:", ("ollama", "qwen2.5:3b")),
        ],
    )
    def test_resolve_model(self, model_string, expected):
        assert model_service.resolve_model(model_string) == expected

    def test_available_models(self):
        tags = [{"name": "qwen2.5:3b"}, {"model": "llama3.2:latest"}]
        with patch.object(model_service, "list_ollama_models", AsyncMock(return_value=tags)), \
                patch.object(model_service.settings, "OPENAI_API_KEY", "sk-test"):
            models = asyncio.run(model_service.get_available_models())

        assert models == {"openai": ["gpt-4o-mini"], "ollama": ["qwen2.5:3b", "llama3.2:latest"]}

    def test_available_models_without_openai_key(self):
        with patch.object(model_service, "list_ollama_models", AsyncMock(return_value=[])):
            models = asyncio.run(model_service.get_available_models())

        assert models == {"openai": [], "ollama": []}


@pytest.mark.unit
class TestPrepareChat:
    """Test cases for prepare_chat."""

    def test_plain_chat(self, db_session, embedder):
        body = ChatBody(model="ollama:qwen2.5:3b", messages=[{"role": "user", "content": "Hi"}])

        prepared = prepare_chat(db_session, embedder, body)

        assert (prepared.provider, prepared.model_name) == ("ollama", "qwen2.5:3b")
        assert prepared.messages == [{"role": "user", "content": "Hi"}]
        assert prepared.sources == []

    def test_stored_system_message(self, db_session, embedder):
        update_settings(db_session, "ada", "Be brief.")
        body = ChatBody(messages=[{"role": "user", "content": "Hi"}])

        prepared = prepare_chat(db_session, embedder, body)

        assert prepared.messages[0] == {"role": "system", "content": "Be brief."}

    def test_request_system_message_wins(self, db_session, embedder):
        update_settings(db_session, "ada", "Be brief.")
        body = ChatBody.model_validate({
            "messages": [{"role": "user", "content": "Hi"}],
            "settingsSystemMessage": "Answer in French.",
        })

        prepared = prepare_chat(db_session, embedder, body)

        assert prepared.messages[0] == {"role": "system", "content": "Answer in French."}

    def test_rag_mode_augments_last_question(self, db_session, embedder, options):
        ingest_document(db_session, embedder, "zebras.txt", b"The zebra is a striped animal.", options)
        body = ChatBody.model_validate({
            "ragMode": True,
            "messages": [
                {"role": "user", "content": "Hello"},
                {"role": "assistant", "content": "Hi, how can I help?"},
                {"role": "user", "content": "What is a zebra?"},
            ],
        })

        prepared = prepare_chat(db_session, embedder, body)

        assert prepared.messages[0]["content"] == "Hello"
        last = prepared.messages[-1]["content"]
        assert "Question : What is a zebra?" in last
        assert "(zebras.txt) The zebra is a striped animal." in last
        assert [s["name"] for s in prepared.sources] == ["zebras.txt"]

    def test_rag_mode_without_documents_keeps_question(self, db_session, embedder):
        body = ChatBody(rag_mode=True, messages=[{"role": "user", "content": "What is a zebra?"}])

        prepared = prepare_chat(db_session, embedder, body)

        assert prepared.messages == [{"role": "user", "content": "What is a zebra?"}]
        assert prepared.sources == []

    def test_rag_mode_retrieval_failure(self, db_session, failing_embedder):
        body = ChatBody(rag_mode=True, messages=[{"role": "user", "content": "What is a zebra?"}])

        with pytest.raises(RetrievalError):
            prepare_chat(db_session, failing_embedder, body)


@pytest.mark.unit
class TestStreamChatResponse:
    """Test cases for the SSE stream."""

    SOURCES = [{"name": "zebras.txt", "distance": 0.1, "preview": "The zebra"}]

    def test_event_sequence(self):
        prepared = PreparedChat("ollama", "qwen2.5:3b", [{"role": "user", "content": "Hi"}], self.SOURCES)

        with patch("ragchat.services.chat_service._stream_ollama", fake_stream):
            chunks = collect(stream_chat_response(prepared))

        assert all(c.startswith("data: ") and c.endswith("\n\n") for c in chunks)
        events = parse_events(chunks)
        assert [e["type"] for e in events] == ["meta", "delta", "delta", "delta", "final", "done"]
        assert events[0]["sources"] == self.SOURCES
        final = events[4]
        assert final["text"] == "Zebras are striped."
        assert final["grounded"] is True
        assert (final["model_provider"], final["model_name"]) == ("ollama", "qwen2.5:3b")

    def test_openai_provider(self):
        prepared = PreparedChat("openai", "gpt-4o-mini", [{"role": "user", "content": "Hi"}], [])

        with patch("ragchat.services.chat_service._stream_openai", fake_stream):
            events = parse_events(collect(stream_chat_response(prepared)))

        assert events[-2]["grounded"] is False
        assert events[-2]["model_provider"] == "openai"

    def test_openai_stream_runs_off_the_event_loop(self):
        threads = {}

        def chunk(content):
            return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])

        def fake_chunks():
            threads["iterate"] = threading.get_ident()
            yield from [chunk("Zebras "), chunk(None), chunk("are striped.")]

        def fake_create(**kwargs):
            threads["create"] = threading.get_ident()
            assert kwargs["stream"] is True
            return fake_chunks()

        client = MagicMock()
        client.chat.completions.create.side_effect = fake_create

        async def run():
            threads["loop"] = threading.get_ident()
            return [d async for d in _stream_openai("gpt-4o-mini", [{"role": "user", "content": "Hi"}])]

        with patch("ragchat.services.chat_service.get_openai_client", return_value=client):
            deltas = asyncio.run(run())

        assert deltas == ["Zebras ", "are striped."]
        assert threads["create"] != threads["loop"]
        assert threads["iterate"] != threads["loop"]

    def test_model_failure_reported_in_band(self):
        prepared = PreparedChat("ollama", "qwen2.5:3b", [{"role": "user", "content": "Hi"}], [])

        with patch("ragchat.services.chat_service._stream_ollama", broken_stream):
            events = parse_events(collect(stream_chat_response(prepared)))

        assert [e["type"] for e in events] == ["meta", "delta", "error", "done"]
