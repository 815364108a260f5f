"""
Tests del flujo de chat: orquestador y endpoints /api/v1/chat.
"""

import json

import pytest

from app.core.v1.chat_processor import ChatProcessor, generate_session_id
from app.core.v1.exceptions import CompletionException
from app.core.v1.session_manager import MessageRole, SessionManager


def _sse_events(body: str):
    return [
        json.loads(line[len("data: "):])
        for line in body.splitlines()
        if line.startswith("data: ")
    ]


class TestChatProcessor:
    """Tests del orquestador de chat."""

    @pytest.fixture
    def processor(self, memory_store, fake_chat_manager, keyword_recommender):
        return ChatProcessor(memory_store, fake_chat_manager, keyword_recommender)

    async def test_new_session_id_is_issued(self, processor):
        """Sin sessionId se genera uno nuevo."""
        result = await processor.respond("What is SRS?")

        assert result["sessionId"].startswith("session_")
        assert result["response"] == "Answer 1: What is SRS?"

    async def test_turn_does_not_see_itself_as_history(self, processor, fake_chat_manager):
        """El historial se lee antes de llamar al modelo."""
        first = await processor.respond("What is SRS?")
        await processor.respond("How long is recovery?", session_id=first["sessionId"])

        assert fake_chat_manager.calls[0]["history"] == []
        assert fake_chat_manager.calls[1]["history"] == [
            {"role": "user", "content": "What is SRS?"},
            {"role": "assistant", "content": "Answer 1: What is SRS?"},
        ]

    async def test_user_turn_precedes_model_turn(self, processor, memory_store):
        """Cada respuesta guarda el turno del usuario y luego el del modelo."""
        result = await processor.respond("What is SRS?")

        history = await memory_store.history(result["sessionId"])
        assert [m.role for m in history] == [MessageRole.USER, MessageRole.MODEL]

    async def test_media_is_attached_and_stored(self, processor, memory_store):
        """Los medios recomendados se devuelven y se guardan con el turno del modelo."""
        result = await processor.respond("hospital recommendation")

        assert result["videos"][0]["url"] == "https://youtu.be/a6mrb-A0W9U"
        history = await memory_store.history(result["sessionId"])
        assert history[1].media_count == len(result["images"]) + len(result["videos"])

    async def test_language_is_detected(self, processor, fake_chat_manager):
        """El idioma se detecta a partir del mensaje."""
        result = await processor.respond("ราคาเท่าไหร่")

        assert result["detectedLanguage"] == "th"
        assert fake_chat_manager.calls[0]["language"] == "th"

    async def test_manual_language_selection(self, processor, fake_chat_manager):
        """En modo manual se responde en el idioma seleccionado."""
        result = await processor.respond("ราคาเท่าไหร่", selected_language="en", mode="manual")

        assert result["detectedLanguage"] == "th"
        assert result["language"] == "en"
        assert fake_chat_manager.calls[0]["language"] == "en"

    @pytest.mark.edge_case
    async def test_completion_failure_stores_nothing(self, processor, fake_chat_manager, memory_store):
        """Si el modelo falla se propaga el error con el sessionId y no se guarda nada."""
        fake_chat_manager.fail = True

        with pytest.raises(CompletionException) as exc_info:
            await processor.respond("What is SRS?", session_id="session-fail")

        assert exc_info.value.session_id == "session-fail"
        assert await memory_store.history("session-fail") == []

    @pytest.mark.edge_case
    async def test_enrichment_failure_is_not_fatal(self, memory_store, fake_chat_manager, keyword_recommender, monkeypatch):
        """Un fallo del recomendador no impide la respuesta."""
        async def broken(*args, **kwargs):
            raise RuntimeError("catalog unavailable")

        monkeypatch.setattr(keyword_recommender, "enrich_response", broken)
        processor = ChatProcessor(memory_store, fake_chat_manager, keyword_recommender)

        result = await processor.respond("hospital recommendation")

        assert result["images"] == [] and result["videos"] == []
        assert len(await memory_store.history(result["sessionId"])) == 2

    @pytest.mark.edge_case
    async def test_persistence_failure_is_not_fatal(self, fake_persistence, fake_chat_manager, keyword_recommender):
        """Si MongoDB no guarda los turnos el usuario igual recibe la respuesta."""
        fake_persistence.failing_inserts = 100
        store = SessionManager(persistence=fake_persistence)
        processor = ChatProcessor(store, fake_chat_manager, keyword_recommender)

        result = await processor.respond("What is SRS?")

        assert result["response"] == "Answer 1: What is SRS?"
        assert fake_persistence.messages == []

    async def test_stream_events(self, processor, memory_store):
        """El flujo emite session, content y complete, y guarda ambos turnos."""
        events = [event async for event in processor.respond_stream("hospital recommendation")]

        assert events[0]["type"] == "session"
        assert "".join(e["content"] for e in events if e["type"] == "content") == "Wansiri Hospital answer"
        assert events[-1]["type"] == "complete"
        assert events[-1]["videos"]

        history = await memory_store.history(events[0]["sessionId"])
        assert [m.content for m in history] == ["hospital recommendation", "Wansiri Hospital answer"]

    @pytest.mark.edge_case
    async def test_stream_error_event(self, processor, fake_chat_manager, memory_store):
        """Un fallo del modelo en streaming termina con un evento de error."""
        fake_chat_manager.fail = True

        events = [event async for event in processor.respond_stream("What is SRS?", session_id="s-err")]

        assert [e["type"] for e in events] == ["session", "error"]
        assert events[-1]["sessionId"] == "s-err"
        assert await memory_store.history("s-err") == []

    def test_generated_ids_are_unique(self):
        """Los ids generados no se repiten."""
        assert len({generate_session_id() for _ in range(100)}) == 100


class TestChatEndpoint:
    """Tests del endpoint POST /api/v1/chat."""

    def test_two_turn_conversation(self, app_client):
        """Dos mensajes en la misma sesión dejan 4 mensajes en orden."""
        first = app_client.post("/api/v1/chat", json={"message": "What is SRS?", "sessionId": None})
        assert first.status_code == 200
        session_id = first.json()["sessionId"]
        assert session_id

        second = app_client.post(
            "/api/v1/chat",
            json={"message": "How long is recovery?", "sessionId": session_id}
        )
        assert second.status_code == 200
        assert second.json()["sessionId"] == session_id

        history = app_client.get(f"/api/v1/sessions/{session_id}/history").json()
        assert history["total"] == 4
        assert [(m["role"], m["content"]) for m in history["messages"]] == [
            ("user", "What is SRS?"),
            ("model", "Answer 1: What is SRS?"),
            ("user", "How long is recovery?"),
            ("model", "Answer 2: How long is recovery?"),
        ]

    def test_response_shape(self, app_client):
        """La respuesta incluye texto, sesión, imágenes y videos."""
        response = app_client.post("/api/v1/chat", json={"message": "introduce hospital"})

        data = response.json()
        assert set(data) >= {"response", "sessionId", "images", "videos"}
        assert data["videos"][0]["title"]
        assert data["images"][0]["url"]

    @pytest.mark.edge_case
    def test_missing_message(self, app_client):
        """Sin message se responde 400 MESSAGE_REQUIRED."""
        response = app_client.post("/api/v1/chat", json={"sessionId": "abc"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "MESSAGE_REQUIRED"

    @pytest.mark.edge_case
    def test_blank_message(self, app_client):
        """Un message vacío o con espacios también se rechaza."""
        for message in ("", "   "):
            response = app_client.post("/api/v1/chat", json={"message": message})
            assert response.status_code == 400
            assert response.json()["error_code"] == "MESSAGE_REQUIRED"

    @pytest.mark.edge_case
    def test_invalid_session_id(self, app_client):
        """Un sessionId con caracteres no permitidos se rechaza con 400."""
        response = app_client.post("/api/v1/chat", json={"message": "hi", "sessionId": "bad id!"})

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    @pytest.mark.edge_case
    def test_completion_failure_returns_chat_error(self, app_client, fake_chat_manager):
        """Un fallo del modelo devuelve 502 CHAT_ERROR con el sessionId."""
        fake_chat_manager.fail = True

        response = app_client.post("/api/v1/chat", json={"message": "What is SRS?", "sessionId": "s-502"})

        assert response.status_code == 502
        data = response.json()
        assert data["error_code"] == "CHAT_ERROR"
        assert data["sessionId"] == "s-502"

        history = app_client.get("/api/v1/sessions/s-502/history").json()
        assert history["total"] == 0

    @pytest.mark.edge_case
    def test_missing_api_key_returns_chat_error(self, app_client, fake_chat_manager):
        """Sin API key configurada el chat responde el mismo 502 CHAT_ERROR."""
        fake_chat_manager.not_configured = True

        response = app_client.post("/api/v1/chat", json={"message": "What is SRS?", "sessionId": "s-nokey"})

        assert response.status_code == 502
        assert response.json()["error_code"] == "CHAT_ERROR"
        assert response.json()["sessionId"] == "s-nokey"

    def test_stream_endpoint(self, app_client):
        """El endpoint de streaming devuelve eventos SSE."""
        response = app_client.post("/api/v1/chat/stream", json={"message": "What is SRS?"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = _sse_events(response.text)
        assert events[0]["type"] == "session"
        assert events[-1]["type"] == "complete"

    def test_config_endpoint(self, app_client):
        """La configuración del chat es de solo lectura y refleja los ajustes."""
        data = app_client.get("/api/v1/chat/config").json()

        assert data["endpoint"] == "/api/v1/chat"
        assert isinstance(data["temperature"], float)
        assert isinstance(data["streaming"], bool)

    def test_languages_endpoint(self, app_client):
        """Se listan los idiomas soportados."""
        data = app_client.get("/api/v1/chat/languages").json()

        codes = [language["code"] for language in data["languages"]]
        assert codes[:4] == ["th", "en", "ko", "zh"]
        assert data["default"] == "th"
