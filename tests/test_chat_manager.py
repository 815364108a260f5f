"""
Tests del Chat Manager con un cliente de OpenAI simulado.
"""

from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError

from app.core.v1.chat_manager import ChatManager
from app.core.v1.exceptions import CompletionException, CompletionNotConfiguredException


class FakeResponsesClient:
    """Doble de ``AsyncOpenAI`` para ``responses.create``."""

    def __init__(self, text="SRS is a surgery.", events=None, error=None):
        self.text = text
        self.events = events or []
        self.error = error
        self.requests = []
        self.responses = SimpleNamespace(create=self._create)

    async def _create(self, stream=False, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        if stream:
            return self._stream()
        return SimpleNamespace(output_text=self.text, usage=None)

    async def _stream(self):
        for event in self.events:
            yield event


def _delta(text):
    return SimpleNamespace(type="response.output_text.delta", delta=text)


def _manager(client, monkeypatch) -> ChatManager:
    manager = ChatManager(client=client)
    # Character count keeps the tests independent of tiktoken downloads
    monkeypatch.setattr(
        manager,
        "_calculate_token_count",
        lambda instructions, messages: sum(len(m["content"]) for m in messages)
    )
    return manager


class TestChatManager:
    """Tests de las llamadas al servicio de completado."""

    async def test_request_contains_history_and_question(self, monkeypatch):
        """La pregunta va al final, después del historial."""
        client = FakeResponsesClient()
        manager = _manager(client, monkeypatch)
        history = [
            {"role": "user", "content": "What is SRS?"},
            {"role": "assistant", "content": "SRS is ..."},
        ]

        answer = await manager.get_chat_response("How long is recovery?", history, language="en")

        assert answer == "SRS is a surgery."
        request = client.requests[0]
        assert request["input"][-1] == {"role": "user", "content": "How long is recovery?"}
        assert request["input"][:2] == history
        assert "English" in request["instructions"]

    async def test_file_search_tool(self, monkeypatch):
        """Con vector store configurado se agrega la herramienta file_search."""
        client = FakeResponsesClient()
        manager = _manager(client, monkeypatch)
        manager.vector_store_id = "vs_hospital"

        await manager.get_chat_response("What is SRS?")

        tool = client.requests[0]["tools"][0]
        assert tool["type"] == "file_search"
        assert tool["vector_store_ids"] == ["vs_hospital"]

    async def test_history_is_truncated_to_fit(self, monkeypatch):
        """Los mensajes más antiguos se descartan si no cabe el contexto."""
        client = FakeResponsesClient()
        manager = _manager(client, monkeypatch)
        manager.context_window_size = 25
        history = [{"role": "user", "content": "x" * 10} for _ in range(5)]

        await manager.get_chat_response("question", history)

        sent = client.requests[0]["input"]
        assert sent[-1]["content"] == "question"
        assert sum(len(m["content"]) for m in sent) <= 25

    async def test_stream_yields_deltas(self, monkeypatch):
        """El streaming entrega solo los fragmentos de texto."""
        events = [_delta("Wansiri "), SimpleNamespace(type="response.in_progress"), _delta("Hospital")]
        manager = _manager(FakeResponsesClient(events=events), monkeypatch)

        parts = [part async for part in manager.stream_chat_response("hi")]

        assert parts == ["Wansiri ", "Hospital"]

    @pytest.mark.edge_case
    async def test_not_configured(self):
        """Sin API key el completado falla con un error específico."""
        manager = ChatManager(client=None)

        with pytest.raises(CompletionNotConfiguredException):
            await manager.get_chat_response("What is SRS?")

    @pytest.mark.edge_case
    async def test_service_error(self, monkeypatch):
        """Un error del servicio se convierte en CompletionException."""
        error = APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/responses"))
        manager = _manager(FakeResponsesClient(error=error), monkeypatch)

        with pytest.raises(CompletionException):
            await manager.get_chat_response("What is SRS?")

    @pytest.mark.edge_case
    async def test_empty_answer(self, monkeypatch):
        """Una respuesta vacía se trata como fallo."""
        manager = _manager(FakeResponsesClient(text=""), monkeypatch)

        with pytest.raises(CompletionException):
            await manager.get_chat_response("What is SRS?")

    @pytest.mark.edge_case
    async def test_stream_failed_event(self, monkeypatch):
        """Un evento response.failed interrumpe el streaming con error."""
        events = [_delta("partial"), SimpleNamespace(type="response.failed")]
        manager = _manager(FakeResponsesClient(events=events), monkeypatch)

        with pytest.raises(CompletionException):
            async for _ in manager.stream_chat_response("hi"):
                pass
