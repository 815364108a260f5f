"""Output types for the chatbot API."""

from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime


class ImageRef(BaseModel):
    """Image attached to an answer."""

    url: str = Field(description="Image URL")
    caption: Optional[str] = Field(default=None, description="Image caption")


class VideoRef(BaseModel):
    """Video attached to an answer."""

    url: str = Field(description="Video URL")
    title: Optional[str] = Field(default=None, description="Video title")


class ChatResponse(BaseModel):
    """Response schema for a chat message."""

    response: str = Field(
        description="Assistant answer"
    )

    sessionId: str = Field(
        description="Session ID to reuse for follow-up messages"
    )

    images: List[ImageRef] = Field(
        default_factory=list,
        description="Images related to the question"
    )

    videos: List[VideoRef] = Field(
        default_factory=list,
        description="Videos related to the question"
    )

    detectedLanguage: Optional[str] = Field(
        default=None,
        description="Language detected in the question"
    )

    language: Optional[str] = Field(
        default=None,
        description="Language of the answer"
    )


class MessageResponse(BaseModel):
    """A stored message."""

    role: str = Field(description="'user' or 'model'")
    content: str = Field(description="Message text")
    timestamp: datetime = Field(description="Creation time")
    media: Optional[List[dict]] = Field(default=None, description="Media attached to the message")
    media_count: Optional[int] = Field(default=None, description="Number of attached media items")
    language: Optional[str] = Field(default=None, description="Message language")


class SessionHistoryResponse(BaseModel):
    """Response schema for a session's history."""

    session_id: str = Field(description="Session ID")
    messages: List[MessageResponse] = Field(description="Messages in arrival order")
    total: int = Field(description="Number of messages")


class SessionSummary(BaseModel):
    """Active session summary."""

    id: str = Field(description="Session ID")
    message_count: int = Field(description="Number of messages in the session")
    created_at: Optional[datetime] = Field(default=None, description="Creation time")


class StatsResponse(BaseModel):
    """Aggregate session statistics."""

    session_count: int = Field(description="Active sessions")
    message_count: int = Field(description="Stored messages")


class SessionListResponse(BaseModel):
    """Response schema for listing sessions."""

    stats: StatsResponse = Field(description="Aggregate counts")
    sessions: List[SessionSummary] = Field(description="Active sessions")
    storage: str = Field(description="'persistent', 'degraded' or 'memory'")


class SessionDeleteResponse(BaseModel):
    """Response schema for clearing sessions."""

    success: bool = Field(description="Whether the operation completed")
    cleared: int = Field(description="Number of sessions cleared")
    message: str = Field(description="Human readable result")


class ChatConfigResponse(BaseModel):
    """Read-only chat configuration for clients."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    endpoint: str = Field(description="Chat endpoint path")
    stream_endpoint: str = Field(description="Streaming chat endpoint path")
    model: str = Field(description="Completion model name")
    temperature: float = Field(description="Sampling temperature")
    max_tokens: int = Field(description="Maximum answer tokens")
    streaming: bool = Field(description="Whether clients should prefer streaming")


class LanguageInfo(BaseModel):
    """Supported language."""

    code: str
    name: str
    native_name: str
    flag: str
    greeting: str


class LanguagesResponse(BaseModel):
    """Supported languages."""

    languages: List[LanguageInfo]
    default: str


class AdminLoginResponse(BaseModel):
    """Admin access token."""

    access_token: str = Field(description="Bearer token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(description="Lifetime in seconds")


class DocumentInfo(BaseModel):
    """A document in the file-search store."""

    id: str = Field(description="Store file ID")
    filename: Optional[str] = Field(default=None, description="Original file name")
    status: Optional[str] = Field(default=None, description="Indexing status")
    size_bytes: Optional[int] = Field(default=None, description="Size in bytes")
    created_at: Optional[str] = Field(default=None, description="Upload time")


class DocumentUploadResponse(BaseModel):
    """Response schema for document upload."""

    success: bool = True
    message: str = "File uploaded successfully"
    document: DocumentInfo


class DocumentListResponse(BaseModel):
    """Response schema for listing documents."""

    documents: List[DocumentInfo]
    total: int


class DocumentDeleteResponse(BaseModel):
    """Response schema for deleting a document."""

    success: bool
    file_id: str
    message: str


class ErrorResponse(BaseModel):
    """Error body returned by the exception handlers."""

    error_code: str = Field(description="Machine readable error code")
    error_message: str = Field(description="Human readable error")
    timestamp: str = Field(description="Error time")
    sessionId: Optional[str] = Field(default=None, description="Session of a failed chat request")
