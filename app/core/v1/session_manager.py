"""Session Manager for chat conversation memory.

Conversation state lives behind :class:`SessionManager`. When a persistence
adapter is injected every operation tries MongoDB first and degrades to the
process-wide in-memory map for that call only; without one the manager is a
pure in-memory store.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from app.core.v1.decorators import async_retry
from app.core.v1.exceptions import DatabaseException, RuntimeException
from app.core.v1.log_manager import LogManager
from app.core.v1.mongodb_manager import MongoDBManager
from app.settings.v1.general import SETTINGS


class MessageRole(str, Enum):
    """Roles a message can have inside a session."""

    USER = "user"
    MODEL = "model"


# Stored rows use "assistant" for model turns
STORED_ROLES = {MessageRole.USER: "user", MessageRole.MODEL: "assistant"}
ROLES_FROM_STORAGE = {"user": MessageRole.USER, "assistant": MessageRole.MODEL, "model": MessageRole.MODEL}


class StoreSource(str, Enum):
    """Where a Session Store result came from."""

    PERSISTENT = "persistent"
    DEGRADED = "degraded"  # persistence configured but failing, memory used instead
    MEMORY = "memory"


@dataclass(frozen=True)
class Message:
    """A single immutable turn of a conversation."""

    role: MessageRole
    content: str
    timestamp: datetime
    media: Optional[List[Dict[str, Any]]] = None
    media_count: Optional[int] = None
    language: Optional[str] = None


@dataclass
class Session:
    """A conversation keyed by an opaque session identifier."""

    id: str
    messages: List[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    last_activity: datetime = field(default_factory=datetime.now)
    storage_id: Any = field(default=None, repr=False)


@dataclass
class _SessionLock:
    """Lock for one session id and the number of tasks holding or awaiting it."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


@dataclass(frozen=True)
class StoreResult:
    """A Session Store value tagged with the path that produced it."""

    value: Any
    source: StoreSource

    @property
    def degraded(self) -> bool:
        return self.source is StoreSource.DEGRADED


class SessionManager:
    """
    Owns conversation state keyed by session id.

    Appends for one session id are serialized with a per-session lock, so
    concurrent requests on the same session cannot lose each other's messages.
    """

    def __init__(
        self,
        persistence: Optional[MongoDBManager] = None,
        default_language: Optional[str] = None
    ):
        """Initialize Session Manager.

        Args:
            persistence: MongoDB adapter; None keeps everything in memory.
            default_language: Language recorded on newly created session rows.
        """
        self.logger = LogManager(__name__)
        self.persistence = persistence
        self.default_language = default_language or SETTINGS.DEFAULT_LANGUAGE

        self._sessions: Dict[str, Session] = {}
        self._locks: Dict[str, _SessionLock] = {}
        # Messages whose MongoDB insert was dropped, merged into later reads
        self._unmirrored: Dict[str, List[Message]] = {}
        self.last_source: Optional[StoreSource] = None

        self.logger.info(
            "Session Manager initialized",
            storage="mongodb" if self.persistence_enabled else "memory"
        )

    @property
    def persistence_enabled(self) -> bool:
        return self.persistence is not None

    @asynccontextmanager
    async def _session_lock(self, session_id: str):
        """Serialize writers of one session; the entry is dropped once unused."""
        entry = self._locks.get(session_id)
        if entry is None:
            entry = self._locks[session_id] = _SessionLock()

        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0 and self._locks.get(session_id) is entry:
                del self._locks[session_id]

    def _record(self, value: Any, source: StoreSource) -> StoreResult:
        self.last_source = source
        return StoreResult(value=value, source=source)

    def _fallback_source(self) -> StoreSource:
        return StoreSource.DEGRADED if self.persistence_enabled else StoreSource.MEMORY

    # ------------------------------------------------------------------
    # get-or-create
    # ------------------------------------------------------------------

    async def get_or_create_result(self, session_id: str) -> StoreResult:
        """
        Load the session for ``session_id`` or create it on first reference.

        Returns:
            StoreResult: The session and the storage path that served it.
        """
        if self.persistence_enabled:
            try:
                session = await self._load_persistent(session_id)
                return self._record(session, StoreSource.PERSISTENT)
            except DatabaseException as err:
                self.logger.warning(
                    "MongoDB unavailable, falling back to memory",
                    session_id=session_id,
                    error=str(err)
                )

        return self._record(self._load_memory(session_id), self._fallback_source())

    async def get_or_create(self, session_id: str) -> Session:
        """Get or lazily create a session; never raises for storage faults."""
        result = await self.get_or_create_result(session_id)
        return result.value

    async def _load_persistent(self, session_id: str) -> Session:
        row = await self.persistence.find_active_session(session_id)

        if row is None:
            row = await self.persistence.create_session(
                session_key=session_id,
                preferred_language=self.default_language
            )
            self.logger.info("Created new persistent session", session_id=session_id)
            return Session(
                id=session_id,
                created_at=row["created_at"],
                storage_id=row["_id"]
            )

        rows = await self.persistence.get_messages(row["_id"])
        await self.persistence.touch_session(row["_id"])

        messages = [self._message_from_row(r) for r in rows]
        pending = self._unmirrored.get(session_id)
        if pending:
            messages = sorted(messages + pending, key=lambda m: m.timestamp)

        return Session(
            id=session_id,
            messages=messages,
            created_at=row["created_at"],
            last_activity=datetime.now(),
            storage_id=row["_id"]
        )

    def _load_memory(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)

        if session is None:
            session = Session(id=session_id)
            self._sessions[session_id] = session
            self.logger.info("Created new in-memory session", session_id=session_id)
        else:
            session.last_activity = datetime.now()

        return session

    @staticmethod
    def _message_from_row(row: Dict[str, Any]) -> Message:
        return Message(
            role=ROLES_FROM_STORAGE.get(row.get("role"), MessageRole.USER),
            content=row.get("content", ""),
            timestamp=row.get("created_at") or datetime.now(),
            media=row.get("available_images"),
            media_count=row.get("image_count"),
            language=row.get("language")
        )

    # ------------------------------------------------------------------
    # append
    # ------------------------------------------------------------------

    async def append(
        self,
        session_id: str,
        role: MessageRole,
        content: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> StoreResult:
        """
        Append a message to a session.

        Args:
            session_id: Session identifier.
            role: ``MessageRole.USER`` or ``MessageRole.MODEL``.
            content: Message text.
            metadata: Optional ``language``, ``response_time_ms``, ``cache_hit``,
                ``source``, ``media`` and ``media_count``.

        Returns:
            StoreResult: The appended message and where the session was served from.
        """
        metadata = metadata or {}
        role = MessageRole(role)

        async with self._session_lock(session_id):
            result = await self.get_or_create_result(session_id)
            session = result.value

            message = Message(
                role=role,
                content=content,
                timestamp=datetime.now(),
                media=metadata.get("media"),
                media_count=metadata.get("media_count"),
                language=metadata.get("language")
            )
            session.messages.append(message)
            session.last_activity = message.timestamp

            if result.source is StoreSource.PERSISTENT:
                try:
                    await self._mirror_message(session.storage_id, message, metadata)
                except RuntimeException as err:
                    self._unmirrored.setdefault(session_id, []).append(message)
                    self.logger.error(
                        "Message could not be mirrored to MongoDB, keeping it in memory only",
                        session_id=session_id,
                        role=role.value,
                        error=str(err)
                    )

        self.logger.info(
            f"Added {role.value} message",
            session_id=session_id,
            total=len(session.messages),
            storage=result.source.value
        )
        return StoreResult(value=message, source=result.source)

    @async_retry(exceptions=(DatabaseException,))
    async def _mirror_message(self, storage_id: Any, message: Message, metadata: Dict[str, Any]):
        await self.persistence.insert_message(storage_id, {
            "role": STORED_ROLES[message.role],
            "content": message.content,
            "created_at": message.timestamp,
            "language": message.language,
            "response_time_ms": metadata.get("response_time_ms"),
            "cache_hit": bool(metadata.get("cache_hit", False)),
            "source": metadata.get("source", "api"),
            "available_images": message.media,
            "image_count": message.media_count or 0,
        })

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    async def history(self, session_id: str) -> List[Message]:
        """Return a copy of the session's messages in arrival order."""
        session = await self.get_or_create(session_id)
        return list(session.messages)

    async def formatted_history(self, session_id: str) -> List[Dict[str, str]]:
        """Return the history as ``{role, content}`` items for the completion API."""
        return [
            {"role": STORED_ROLES[message.role], "content": message.content}
            for message in await self.history(session_id)
        ]

    # ------------------------------------------------------------------
    # clear / list / stats
    # ------------------------------------------------------------------

    async def clear(self, session_id: str):
        """
        Forget a session.

        The in-memory entry is always removed. With persistence the row is
        only marked inactive so its messages remain for auditing. Waits for
        appends already in progress on the same session.
        """
        async with self._session_lock(session_id):
            self._sessions.pop(session_id, None)
            self._unmirrored.pop(session_id, None)

            if self.persistence_enabled:
                try:
                    await self.persistence.deactivate_session(session_id)
                    self.logger.info("Session deactivated in MongoDB", session_id=session_id)
                except DatabaseException as err:
                    self.logger.error(
                        "Failed to deactivate session in MongoDB",
                        session_id=session_id,
                        error=str(err)
                    )

        self.logger.info("Session cleared", session_id=session_id)

    async def clear_all(self) -> int:
        """Clear every listed session and return how many were cleared."""
        sessions = await self.list_sessions()
        ids = {s["id"] for s in sessions} | set(self._sessions) | set(self._unmirrored)
        for session_id in ids:
            await self.clear(session_id)
        return len(ids)

    async def list_sessions(self) -> List[Dict[str, Any]]:
        """List active sessions with their message counts."""
        if self.persistence_enabled:
            try:
                rows = await self.persistence.list_active_sessions()
                self.last_source = StoreSource.PERSISTENT
                return [
                    {
                        "id": row["session_key"],
                        "message_count": row.get("message_count", 0),
                        "created_at": row.get("created_at"),
                    }
                    for row in rows
                ]
            except DatabaseException as err:
                self.logger.warning("Listing sessions from memory", error=str(err))

        self.last_source = self._fallback_source()
        return [
            {
                "id": session_id,
                "message_count": len(session.messages),
                "created_at": session.created_at,
            }
            for session_id, session in self._sessions.items()
        ]

    async def stats(self) -> Dict[str, int]:
        """Aggregate session and message counts."""
        if self.persistence_enabled:
            try:
                session_count = await self.persistence.count_active_sessions()
                message_count = await self.persistence.count_messages()
                self.last_source = StoreSource.PERSISTENT
                return {"session_count": session_count, "message_count": message_count}
            except DatabaseException as err:
                self.logger.warning("Computing session stats from memory", error=str(err))

        self.last_source = self._fallback_source()
        return {
            "session_count": len(self._sessions),
            "message_count": sum(len(s.messages) for s in self._sessions.values()),
        }
