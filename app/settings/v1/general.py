"""General configuration settings."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class GeneralSettings(BaseSettings):
    """General application settings."""
    
    # Application configuration
    APP_NAME: str = Field(
        default="Wansiri Hospital Chatbot API",
        description="Application name"
    )
    
    APP_VERSION: str = Field(
        default="1.0.0",
        description="Application version"
    )
    
    DEBUG: bool = Field(
        default=False,
        description="Debug mode"
    )
    
    PRODUCTION: bool = Field(
        default=False,
        description="Production mode"
    )
    
    # MongoDB configuration
    MONGODB_ENABLED: bool = Field(
        default=False,
        description="Persist sessions and messages in MongoDB (in-memory only when disabled)"
    )
    
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URL"
    )
    
    MONGODB_DATABASE: str = Field(
        default="wansiri_chatbot",
        description="MongoDB database name"
    )
    
    MONGODB_COLLECTION_SESSIONS: str = Field(
        default="sessions",
        description="MongoDB sessions collection name"
    )
    
    MONGODB_COLLECTION_MESSAGES: str = Field(
        default="messages",
        description="MongoDB messages collection name"
    )
    
    MONGODB_TIMEOUT_MS: int = Field(
        default=3000,
        description="MongoDB server selection timeout in milliseconds"
    )
    
    # Logging configuration
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )
    
    LOG_FORMAT: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format"
    )
    
    # Upload limits for the file-search store
    MAX_FILE_SIZE: int = Field(
        default=10 * 1024 * 1024,  # 10MB
        description="Maximum upload size in bytes"
    )
    
    ALLOWED_FILE_EXTENSIONS: list = Field(
        default=["pdf", "txt", "md"],
        description="Allowed document extensions"
    )
    
    # Write-behind mirroring of messages to MongoDB
    MIRROR_RETRIES: int = Field(
        default=2,
        description="Retries for mirroring a message to MongoDB before it is dropped"
    )
    
    MIRROR_RETRY_DELAY: float = Field(
        default=0.2,
        description="Seconds between mirroring retries"
    )
    
    # Chat content
    DEFAULT_LANGUAGE: str = Field(
        default="th",
        description="Language stored for new sessions"
    )
    
    MAX_MEDIA_PER_CATEGORY: int = Field(
        default=2,
        description="Maximum videos attached per detected category"
    )
    
    MAX_IMAGES_PER_CATEGORY: int = Field(
        default=3,
        description="Maximum images attached per detected category"
    )
    
    MEDIA_CATALOG_PATH: Optional[str] = Field(
        default=None,
        description="Optional JSON file with extra media catalog entries"
    )
    
    # CORS configuration
    CORS_ORIGINS: list = Field(
        default=["http://localhost:3000", "http://localhost:8080", "http://localhost:5173"],
        description="CORS allowed origins"
    )
    
    # Admin gate
    ADMIN_USERNAME: str = Field(
        default="admin",
        description="Admin portal username"
    )
    
    ADMIN_PASSWORD: str = Field(
        default="wansiri2024",
        description="Admin portal password"
    )
    
    # JWT configuration
    JWT_SECRET_KEY: str = Field(
        default="wansiri-development-secret-key-2024",
        description="JWT secret key"
    )
    
    JWT_ALGORITHM: str = Field(
        default="HS256",
        description="JWT algorithm"
    )
    
    JWT_EXPIRATION_TIME: int = Field(
        default=3600,  # 1 hour
        description="JWT expiration time in seconds"
    )
    
    class Config:
        env_file = "app/env/v1/general.env"
        case_sensitive = True


# Create settings instance
SETTINGS = GeneralSettings()
