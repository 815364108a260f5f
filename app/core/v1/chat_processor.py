"""Chat Processor for orchestrating the complete chat workflow."""

import secrets
import time
from typing import Dict, Any, Optional, AsyncGenerator

from app.core.v1.chat_manager import ChatManager
from app.core.v1.recommendation_manager import RecommendationManager
from app.core.v1.session_manager import SessionManager, MessageRole
from app.core.v1.language_manager import resolve_language
from app.core.v1.validators import SessionValidator
from app.core.v1.exceptions import CompletionException
from app.core.v1.log_manager import LogManager
from app.settings.v1.general import SETTINGS


def generate_session_id() -> str:
    """Server-issued session id: ``session_<epoch ms>_<random>``."""
    return f"session_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


class ChatProcessor:
    """
    Chat Processor for orchestrating the complete chat workflow.

    Per request: load history, call the completion service, enrich the answer
    with media, then append the user turn followed by the model turn. History
    is read before the call, so a turn never sees its own question as history.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        chat_manager: ChatManager,
        recommendation_manager: RecommendationManager
    ):
        """Initialize Chat Processor."""
        self.logger = LogManager(__name__)

        self.session_manager = session_manager
        self.chat_manager = chat_manager
        self.recommendation_manager = recommendation_manager

        self.logger.info("Chat Processor initialized successfully")

    def prepare_session_id(self, session_id: Optional[str]) -> str:
        """Validate a client session id or issue a new one."""
        if session_id:
            return SessionValidator.validate_session_id(session_id)
        return generate_session_id()

    async def _enrich(self, answer: str, message: str) -> Dict[str, Any]:
        try:
            return await self.recommendation_manager.enrich_response(
                answer,
                message,
                max_videos=SETTINGS.MAX_MEDIA_PER_CATEGORY,
                max_images=SETTINGS.MAX_IMAGES_PER_CATEGORY
            )
        except Exception as err:
            self.logger.error("Media enrichment failed, answering without media", error=str(err))
            return {"response": answer, "images": [], "videos": []}

    async def _persist_turns(
        self,
        session_id: str,
        message: str,
        answer: str,
        enriched: Dict[str, Any],
        languages: Dict[str, str],
        elapsed_ms: int,
        source: str
    ):
        media = enriched["images"] + enriched["videos"]
        try:
            await self.session_manager.append(
                session_id,
                MessageRole.USER,
                message,
                {"language": languages["detected"], "source": source}
            )
            await self.session_manager.append(
                session_id,
                MessageRole.MODEL,
                answer,
                {
                    "language": languages["target"],
                    "source": source,
                    "response_time_ms": elapsed_ms,
                    "cache_hit": False,
                    "media": media or None,
                    "media_count": len(media),
                }
            )
        except Exception as err:
            # The user still gets the answer
            self.logger.error("Failed to store chat turns", session_id=session_id, error=str(err))

    async def respond(
        self,
        message: str,
        session_id: Optional[str] = None,
        selected_language: Optional[str] = None,
        mode: str = "auto"
    ) -> Dict[str, Any]:
        """
        Answer a chat message.

        Args:
            message: User message
            session_id: Existing session id; a new one is issued when absent
            selected_language: Language chosen in the client
            mode: ``"auto"`` or ``"manual"`` language selection

        Returns:
            Dict with ``response``, ``sessionId``, ``images``, ``videos``,
            ``detectedLanguage`` and ``language``

        Raises:
            CompletionException: If the completion service fails; carries the
                session id and nothing is stored for the turn
        """
        session_id = self.prepare_session_id(session_id)
        languages = resolve_language(message, selected_language, mode)
        started = time.monotonic()

        self.logger.info(
            "Processing chat message",
            session_id=session_id,
            message_length=len(message),
            language=languages["target"]
        )

        history = await self.session_manager.formatted_history(session_id)

        try:
            answer = await self.chat_manager.get_chat_response(
                user_question=message,
                conversation_history=history,
                language=languages["target"]
            )
        except CompletionException as err:
            self.logger.error("Chat completion failed", session_id=session_id, error=err.message)
            err.session_id = session_id
            raise

        elapsed_ms = int((time.monotonic() - started) * 1000)
        enriched = await self._enrich(answer, message)

        await self._persist_turns(session_id, message, answer, enriched, languages, elapsed_ms, "api")

        self.logger.info(
            "Chat message answered",
            session_id=session_id,
            response_time_ms=elapsed_ms,
            images=len(enriched["images"]),
            videos=len(enriched["videos"])
        )

        return {
            "response": enriched["response"],
            "sessionId": session_id,
            "images": enriched["images"],
            "videos": enriched["videos"],
            "detectedLanguage": languages["detected"],
            "language": languages["target"],
        }

    async def respond_stream(
        self,
        message: str,
        session_id: Optional[str] = None,
        selected_language: Optional[str] = None,
        mode: str = "auto"
    ) -> AsyncGenerator[Dict[str, Any], None]:
        """
        Answer a chat message as a stream of events.

        Yields dicts with a ``type`` of ``session`` (first), ``content``
        (answer pieces), then ``complete`` with the media, or ``error``.
        Turns are stored only after the whole answer has streamed.
        """
        session_id = self.prepare_session_id(session_id)
        languages = resolve_language(message, selected_language, mode)
        started = time.monotonic()

        yield {"type": "session", "sessionId": session_id, "language": languages["target"]}

        history = await self.session_manager.formatted_history(session_id)

        parts = []
        try:
            async for chunk in self.chat_manager.stream_chat_response(
                user_question=message,
                conversation_history=history,
                language=languages["target"]
            ):
                parts.append(chunk)
                yield {"type": "content", "content": chunk}
        except CompletionException as err:
            self.logger.error("Chat streaming failed", session_id=session_id, error=err.message)
            yield {"type": "error", "error": err.message, "sessionId": session_id}
            return

        answer = "".join(parts)
        elapsed_ms = int((time.monotonic() - started) * 1000)
        enriched = await self._enrich(answer, message)

        await self._persist_turns(session_id, message, answer, enriched, languages, elapsed_ms, "stream")

        yield {
            "type": "complete",
            "sessionId": session_id,
            "images": enriched["images"],
            "videos": enriched["videos"],
            "detectedLanguage": languages["detected"],
            "language": languages["target"],
            "responseTimeMs": elapsed_ms,
        }
