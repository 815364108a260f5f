"""Shared FastAPI dependencies for the v1 routers."""

from functools import lru_cache

from fastapi import Depends, Request

from app.core.v1.chat_manager import ChatManager
from app.core.v1.chat_processor import ChatProcessor
from app.core.v1.document_store_manager import DocumentStoreManager
from app.core.v1.recommendation_manager import RecommendationManager
from app.core.v1.session_manager import SessionManager


@lru_cache
def get_chat_manager() -> ChatManager:
    return ChatManager()


@lru_cache
def get_recommendation_manager() -> RecommendationManager:
    return RecommendationManager()


@lru_cache
def get_document_store_manager() -> DocumentStoreManager:
    return DocumentStoreManager()


def get_session_manager(request: Request) -> SessionManager:
    """Process-wide Session Manager, swapped to MongoDB at startup when enabled."""
    return request.app.state.session_manager


def get_chat_processor(
    session_manager: SessionManager = Depends(get_session_manager),
    chat_manager: ChatManager = Depends(get_chat_manager),
    recommendation_manager: RecommendationManager = Depends(get_recommendation_manager)
) -> ChatProcessor:
    return ChatProcessor(session_manager, chat_manager, recommendation_manager)
