"""OpenAI configuration settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OpenAISettings(BaseSettings):
    """OpenAI configuration settings."""

    # OpenAI Configuration
    OPENAI_API_KEY: str = Field(
        default="", description="OpenAI API key (empty disables hosted calls)"
    )
    OPENAI_BASE_URL: str = Field(
        default="", description="Optional OpenAI-compatible base URL"
    )

    # File search
    OPENAI_VECTOR_STORE_ID: str = Field(
        default="", description="Vector store backing the hospital documents"
    )
    FILE_SEARCH_MAX_RESULTS: int = Field(
        default=8, description="Maximum chunks returned by file search"
    )

    # Models Configuration
    CHAT_MODEL: str = Field(
        default="gpt-4o-mini", description="Chat completion model name"
    )
    CLASSIFICATION_MODEL: str = Field(
        default="gpt-4o-mini", description="Model used to classify media categories"
    )

    # Model Parameters
    MAX_TOKENS: int = Field(
        default=2048, description="Maximum tokens per response"
    )
    TEMPERATURE: float = Field(
        default=0.7, description="Model temperature (0.0 to 2.0)"
    )
    STREAMING: bool = Field(
        default=True, description="Whether clients should prefer the streaming endpoint"
    )

    # Chat Configuration
    MAX_CONVERSATION_HISTORY: int = Field(
        default=20, description="Maximum history messages sent as context"
    )
    CONTEXT_WINDOW_SIZE: int = Field(
        default=32000, description="Context window size in tokens"
    )

    model_config = SettingsConfigDict(env_file="app/env/v1/openai.env")
