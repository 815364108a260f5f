"""
Configuración de pytest y fixtures para los tests del chatbot de Wansiri.

Los servicios externos (MongoDB y OpenAI) se reemplazan por dobles de prueba,
ningún test accede a la red.
"""

import os

# Antes de importar la aplicación: sin credenciales reales ni MongoDB
os.environ["OPENAI_API_KEY"] = ""
os.environ["OPENAI_VECTOR_STORE_ID"] = ""
os.environ["MONGODB_ENABLED"] = "false"
os.environ["MIRROR_RETRY_DELAY"] = "0"

import asyncio
import itertools
from datetime import datetime, timedelta
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from app.core.v1.exceptions import (
    CompletionException,
    CompletionNotConfiguredException,
    DatabaseException
)
from app.core.v1.recommendation_manager import RecommendationManager
from app.core.v1.session_manager import SessionManager


class FakePersistence:
    """
    Doble en memoria de ``MongoDBManager``.

    ``failing`` simula una caída total; ``failing_inserts`` hace fallar esa
    cantidad de inserciones de mensajes; ``insert_delays`` retrasa cada
    inserción para forzar intercalado entre tareas concurrentes.
    """

    def __init__(self):
        self.sessions: List[Dict[str, Any]] = []
        self.messages: List[Dict[str, Any]] = []
        self.failing = False
        self.failing_inserts = 0
        self.insert_delays = None
        self.insert_attempts = 0
        self.events: List[str] = []
        self.closed = False
        self._clock = itertools.count()

    def _check(self):
        if self.failing:
            raise DatabaseException("MongoDB unreachable")

    def _now(self) -> datetime:
        # Monotonic fake clock so ordering by created_at is stable
        return datetime(2024, 1, 1) + timedelta(microseconds=next(self._clock))

    async def connect(self):
        self._check()

    async def close(self):
        self.closed = True

    async def ping(self) -> bool:
        return not self.failing

    async def find_active_session(self, session_key: str) -> Optional[Dict[str, Any]]:
        self._check()
        for row in self.sessions:
            if row["session_key"] == session_key and row["is_active"]:
                return row
        return None

    async def create_session(self, session_key: str, preferred_language: str, metadata=None):
        self._check()
        existing = await self.find_active_session(session_key)
        if existing is not None:
            return existing
        now = self._now()
        row = {
            "_id": ObjectId(),
            "session_key": session_key,
            "created_at": now,
            "last_active_at": now,
            "is_active": True,
            "preferred_language": preferred_language,
            "metadata": metadata or {},
        }
        self.sessions.append(row)
        return row

    async def touch_session(self, row_id):
        self._check()
        for row in self.sessions:
            if row["_id"] == row_id:
                row["last_active_at"] = self._now()

    async def get_messages(self, row_id) -> List[Dict[str, Any]]:
        self._check()
        return [dict(m) for m in self.messages if m["session_id"] == row_id]

    async def insert_message(self, row_id, message: Dict[str, Any]) -> str:
        self.insert_attempts += 1
        if self.insert_delays:
            await asyncio.sleep(next(self.insert_delays))
        self._check()
        if self.failing_inserts > 0:
            self.failing_inserts -= 1
            raise DatabaseException("insert failed")
        row = dict(message, session_id=row_id, _id=ObjectId())
        self.messages.append(row)
        self.events.append(f"insert:{message['content']}")
        return str(row["_id"])

    async def deactivate_session(self, session_key: str) -> int:
        self._check()
        self.events.append(f"deactivate:{session_key}")
        count = 0
        for row in self.sessions:
            if row["session_key"] == session_key and row["is_active"]:
                row["is_active"] = False
                count += 1
        return count

    async def list_active_sessions(self) -> List[Dict[str, Any]]:
        self._check()
        return [
            {
                "session_key": row["session_key"],
                "created_at": row["created_at"],
                "message_count": sum(1 for m in self.messages if m["session_id"] == row["_id"]),
            }
            for row in self.sessions
            if row["is_active"]
        ]

    async def count_active_sessions(self) -> int:
        self._check()
        return sum(1 for row in self.sessions if row["is_active"])

    async def count_messages(self) -> int:
        self._check()
        return len(self.messages)


class FakeChatManager:
    """Doble de ``ChatManager`` que registra las llamadas recibidas."""

    is_configured = True

    def __init__(self, fail: bool = False, not_configured: bool = False):
        self.fail = fail
        self.not_configured = not_configured
        self.calls: List[Dict[str, Any]] = []

    def _record(self, user_question, conversation_history, language):
        self.calls.append({
            "question": user_question,
            "history": list(conversation_history or []),
            "language": language,
        })
        if self.not_configured:
            raise CompletionNotConfiguredException("OpenAI API key is not configured")
        if self.fail:
            raise CompletionException("quota exceeded")

    async def get_chat_response(self, user_question, conversation_history=None, language="th"):
        self._record(user_question, conversation_history, language)
        return f"Answer {len(self.calls)}: {user_question}"

    async def stream_chat_response(self, user_question, conversation_history=None, language="th"):
        self._record(user_question, conversation_history, language)
        for piece in ("Wansiri ", "Hospital ", "answer"):
            yield piece


class FakeClassifierClient:
    """Doble mínimo de ``AsyncOpenAI`` para ``chat.completions.create``."""

    def __init__(self, answer: str = "none", error: Optional[Exception] = None):
        self.answer = answer
        self.error = error
        self.prompts: List[str] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs):
        self.prompts.append(kwargs["messages"][0]["content"])
        if self.error is not None:
            raise self.error
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=self.answer))]
        )


@pytest.fixture
def fake_persistence():
    """Persistencia simulada, disponible por defecto."""
    return FakePersistence()


@pytest.fixture
def memory_store():
    """Session Manager sin persistencia."""
    return SessionManager()


@pytest.fixture
def persistent_store(fake_persistence):
    """Session Manager respaldado por la persistencia simulada."""
    return SessionManager(persistence=fake_persistence)


@pytest.fixture(params=["memory", "persistent"])
def any_store(request, fake_persistence):
    """Ejecuta el test contra ambos caminos de almacenamiento."""
    if request.param == "memory":
        return SessionManager()
    return SessionManager(persistence=fake_persistence)


@pytest.fixture
def keyword_recommender():
    """Recomendador que solo usa coincidencia por palabras clave."""
    return RecommendationManager(use_hosted_model=False)


@pytest.fixture
def fake_chat_manager():
    return FakeChatManager()


@pytest.fixture
def app_client(fake_chat_manager, keyword_recommender):
    """
    Cliente HTTP de la aplicación con dependencias simuladas.

    Cada test recibe un Session Manager en memoria nuevo.
    """
    from main import app
    from app.apis.v1.dependencies import get_chat_manager, get_recommendation_manager

    app.dependency_overrides[get_chat_manager] = lambda: fake_chat_manager
    app.dependency_overrides[get_recommendation_manager] = lambda: keyword_recommender

    with TestClient(app) as client:
        app.state.session_manager = SessionManager()
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def admin_token(app_client):
    """Token de administrador válido."""
    response = app_client.post(
        "/api/v1/admin/login",
        json={"username": "admin", "password": "wansiri2024"}
    )
    assert response.status_code == 200
    return response.json()["access_token"]


@pytest.fixture
def classifier_client():
    """Fábrica de clientes de clasificación simulados."""
    return FakeClassifierClient
