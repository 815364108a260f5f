"""Main FastAPI application for the Wansiri Hospital Chatbot API."""

import uvicorn
from fastapi import Depends, FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
from datetime import datetime
import time

from app import TITLE, DESCRIPTION, VERSION, CONTACT, TAGS_METADATA
from app.apis.v1.admin_router import router as admin_router
from app.apis.v1.chat_router import router as chat_router
from app.apis.v1.sessions_router import router as sessions_router
from app.apis.v1.dependencies import get_chat_manager
from app.core.v1.chat_manager import ChatManager
from app.core.v1.log_manager import LogManager
from app.core.v1.mongodb_manager import MongoDBManager
from app.core.v1.session_manager import SessionManager
from app.core.v1.exceptions import (
    UnauthorizedException,
    ValidationException,
    DatabaseException,
    CompletionException,
    DocumentStoreException
)
from app.settings.v1.settings import SETTINGS


# Initialize logger
logger = LogManager(__name__)


def _timestamp() -> str:
    return datetime.now().isoformat()


def _error(status_code: int, error_code: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": error_code,
            "error_message": message,
            "timestamp": _timestamp(),
            **extra
        }
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info(f"Starting {SETTINGS.GENERAL.APP_NAME}")
    logger.info(f"Environment: {'Production' if SETTINGS.GENERAL.PRODUCTION else 'Development'}")
    logger.info(f"Version: {VERSION}")

    mongodb_manager = None
    if SETTINGS.GENERAL.MONGODB_ENABLED:
        mongodb_manager = MongoDBManager()
        try:
            await mongodb_manager.connect()
        except DatabaseException as err:
            # Each session call still tries MongoDB first and falls back per call
            logger.error(f"MongoDB unavailable at startup, serving from memory until it recovers: {err.message}")
        app.state.session_manager = SessionManager(persistence=mongodb_manager)
    else:
        logger.info("MongoDB disabled, using in-memory sessions")

    yield

    # Shutdown
    if mongodb_manager is not None:
        await mongodb_manager.close()
    logger.info(f"Shutting down {SETTINGS.GENERAL.APP_NAME}")


# Create FastAPI application
app = FastAPI(
    title=TITLE,
    description=DESCRIPTION,
    version=VERSION,
    contact=CONTACT,
    openapi_tags=TAGS_METADATA,
    lifespan=lifespan,
    docs_url="/docs" if not SETTINGS.GENERAL.PRODUCTION else None,
    redoc_url="/redoc" if not SETTINGS.GENERAL.PRODUCTION else None
)

# In-memory until startup connects MongoDB
app.state.session_manager = SessionManager()

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=SETTINGS.GENERAL.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


# Custom exception handlers
@app.exception_handler(UnauthorizedException)
async def unauthorized_exception_handler(request: Request, exc: UnauthorizedException):
    """Handle unauthorized exceptions."""
    logger.warning(f"Unauthorized access attempt: {exc.message}")
    return _error(401, "UNAUTHORIZED", exc.message)


@app.exception_handler(ValidationException)
async def validation_exception_handler(request: Request, exc: ValidationException):
    """Handle validation exceptions."""
    logger.warning(f"Validation error: {exc.message}")
    return _error(400, "VALIDATION_ERROR", exc.message)


@app.exception_handler(DatabaseException)
async def database_exception_handler(request: Request, exc: DatabaseException):
    """Handle database exceptions."""
    logger.error(f"Database error: {exc.message}")
    return _error(503, "DATABASE_ERROR", "Database service temporarily unavailable")


@app.exception_handler(DocumentStoreException)
async def document_store_exception_handler(request: Request, exc: DocumentStoreException):
    """Handle file-search store exceptions."""
    logger.error(f"Document store error: {exc.message}")
    return _error(503, "DOCUMENT_STORE_ERROR", exc.message)


@app.exception_handler(CompletionException)
async def completion_exception_handler(request: Request, exc: CompletionException):
    """Chat answer failed; the client shows an error bubble for this turn."""
    logger.error(f"Completion failed: {exc.message}", session_id=exc.session_id)
    return _error(
        502,
        "CHAT_ERROR",
        "Sorry, the assistant could not answer right now. Please try again.",
        sessionId=exc.session_id
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions."""
    logger.warning(f"HTTP exception: {exc.status_code} - {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": f"HTTP_{exc.status_code}",
            "error_message": exc.detail,
            "timestamp": _timestamp()
        },
        headers=exc.headers
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle RequestValidationError with a dedicated code for a missing message."""
    logger.warning(
        "Request validation error occurred",
        path=request.url.path,
        method=request.method
    )

    # Check if it's a message validation error
    for error in exc.errors():
        loc = error.get('loc', ())
        if len(loc) > 1 and loc[0] == 'body' and loc[1] == 'message':
            if error.get('type') in ('missing', 'string_too_short', 'value_error', 'string_type'):
                return _error(400, "MESSAGE_REQUIRED", "Message is required")

    # Default validation error handling
    return JSONResponse(
        status_code=422,
        content={
            "error_code": "VALIDATION_ERROR",
            "error_message": "Request validation failed",
            "details": [
                {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
                for e in exc.errors()
            ],
            "timestamp": _timestamp()
        }
    )


# Middleware for request logging
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    start_time = time.time()

    logger.log_request(method=request.method, path=request.url.path)

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.log_response(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration=process_time
    )

    return response


# Include routers
app.include_router(chat_router, prefix="/api/v1/chat", tags=["chat"])
app.include_router(sessions_router, prefix="/api/v1/sessions", tags=["sessions"])
app.include_router(admin_router, prefix="/api/v1/admin", tags=["admin"])


# Root endpoint
@app.get("/", tags=["health"])
async def root():
    """Root endpoint with basic API information."""
    return {
        "message": SETTINGS.GENERAL.APP_NAME,
        "version": VERSION,
        "status": "healthy",
        "timestamp": _timestamp(),
        "docs_url": "/docs" if not SETTINGS.GENERAL.PRODUCTION else None,
        "api_version": "v1"
    }


# Health check endpoint
@app.get("/health", tags=["health"])
async def health_check(request: Request):
    """Basic health check endpoint."""
    session_manager = request.app.state.session_manager
    return {
        "status": "healthy",
        "timestamp": _timestamp(),
        "version": VERSION,
        "database": "mongodb" if session_manager.persistence_enabled else "memory",
        "environment": "production" if SETTINGS.GENERAL.PRODUCTION else "development"
    }


@app.get("/health/detailed", tags=["health"])
async def detailed_health_check(request: Request, chat_manager: ChatManager = Depends(get_chat_manager)):
    """Health check with storage status and session statistics."""
    session_manager = request.app.state.session_manager

    database = {"type": "memory", "reachable": None}
    if session_manager.persistence_enabled:
        database = {"type": "mongodb", "reachable": await session_manager.persistence.ping()}

    stats = await session_manager.stats()

    return {
        "status": "healthy" if database["reachable"] is not False else "degraded",
        "timestamp": _timestamp(),
        "version": VERSION,
        "database": database,
        "sessions": {**stats, "storage": session_manager.last_source.value},
        "model": {
            "name": SETTINGS.OPENAI.CHAT_MODEL,
            "configured": chat_manager.is_configured,
            "file_search": bool(SETTINGS.OPENAI.OPENAI_VECTOR_STORE_ID)
        }
    }


# Run the application
if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=not SETTINGS.GENERAL.PRODUCTION,
        log_level=SETTINGS.GENERAL.LOG_LEVEL.lower(),
        access_log=True
    )
