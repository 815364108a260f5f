"""Chat API router with plain and streaming responses."""

import json
from datetime import datetime
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from app.apis.v1.dependencies import get_chat_processor
from app.apis.v1.types_in import ChatRequestData
from app.apis.v1.types_out import (
    ChatResponse,
    ChatConfigResponse,
    LanguagesResponse
)
from app.core.v1.chat_processor import ChatProcessor
from app.core.v1.language_manager import list_languages
from app.core.v1.log_manager import LogManager
from app.settings.v1.settings import SETTINGS

# Initialize router
router = APIRouter()

logger = LogManager(__name__)


@router.post("", response_model=ChatResponse)
async def chat(
    data: ChatRequestData,
    chat_processor: ChatProcessor = Depends(get_chat_processor)
):
    """
    Answer a question about the hospital.

    Omit ``sessionId`` to start a new conversation; the issued id is returned
    and should be sent with follow-up messages. A completion failure returns
    502 ``CHAT_ERROR`` with the ``sessionId``.
    """
    logger.info(
        "Processing chat request",
        session_id=data.sessionId,
        message_length=len(data.message)
    )

    result = await chat_processor.respond(
        message=data.message,
        session_id=data.sessionId,
        selected_language=data.selectedLanguage,
        mode=data.mode
    )
    return ChatResponse(**result)


@router.post("/stream")
async def chat_stream(
    data: ChatRequestData,
    chat_processor: ChatProcessor = Depends(get_chat_processor)
):
    """
    Answer a question as Server-Sent Events.

    Events carry a JSON ``type`` of ``session``, ``content``, ``complete`` or
    ``error``.
    """
    # Validates the session id before the stream starts
    session_id = chat_processor.prepare_session_id(data.sessionId)

    async def generate_streaming_response():
        """Generate streaming response in SSE format."""
        try:
            async for event in chat_processor.respond_stream(
                message=data.message,
                session_id=session_id,
                selected_language=data.selectedLanguage,
                mode=data.mode
            ):
                yield f"data: {json.dumps(event, ensure_ascii=False)}\n\n"
        except Exception as err:
            logger.error(f"Unexpected error in chat stream: {err}", session_id=session_id)
            error_data = {
                "type": "error",
                "error": "Unexpected error while generating the answer",
                "sessionId": session_id,
                "timestamp": datetime.now().isoformat()
            }
            yield f"data: {json.dumps(error_data)}\n\n"

    return StreamingResponse(
        generate_streaming_response(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"
        }
    )


@router.get("/config", response_model=ChatConfigResponse)
async def chat_config():
    """Read-only chat configuration for clients."""
    return ChatConfigResponse(
        endpoint="/api/v1/chat",
        stream_endpoint="/api/v1/chat/stream",
        model=SETTINGS.OPENAI.CHAT_MODEL,
        temperature=SETTINGS.OPENAI.TEMPERATURE,
        max_tokens=SETTINGS.OPENAI.MAX_TOKENS,
        streaming=SETTINGS.OPENAI.STREAMING
    )


@router.get("/languages", response_model=LanguagesResponse)
async def languages():
    """Supported languages with their greetings."""
    return LanguagesResponse(
        languages=list_languages(),
        default=SETTINGS.GENERAL.DEFAULT_LANGUAGE
    )
