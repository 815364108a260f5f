"""Input validation models for the chatbot API."""

from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator


class ChatRequestData(BaseModel):
    """Validation model for a chat message."""

    message: str = Field(
        min_length=1,
        max_length=2000,
        description="User's question"
    )

    sessionId: Optional[str] = Field(
        default=None,
        max_length=128,
        description="Existing session ID; a new one is issued when omitted"
    )

    selectedLanguage: Optional[Literal["th", "en", "ko", "zh", "ja"]] = Field(
        default=None,
        description="Language chosen in the client"
    )

    mode: Literal["auto", "manual"] = Field(
        default="auto",
        description="'manual' answers in selectedLanguage, 'auto' in the detected language"
    )

    @field_validator('message')
    @classmethod
    def validate_message(cls, v):
        """Validate message content."""
        if not v or not v.strip():
            raise ValueError("Message cannot be empty")
        return v.strip()

    @field_validator('sessionId')
    @classmethod
    def validate_session_id(cls, v):
        """Treat blank session IDs as absent."""
        if v is None or not v.strip():
            return None
        return v.strip()


class AdminLoginData(BaseModel):
    """Validation model for admin login."""

    username: str = Field(
        min_length=1,
        max_length=100,
        description="Admin username"
    )

    password: str = Field(
        min_length=1,
        max_length=200,
        description="Admin password"
    )
