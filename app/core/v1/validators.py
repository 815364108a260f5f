"""Validation utilities for API endpoints."""

import os
import re
from typing import Optional

from app.core.v1.exceptions import (
    ValidationException,
    InvalidSessionIdException,
    FileValidationException
)
from app.settings.v1.general import SETTINGS


SESSION_ID_PATTERN = re.compile(r'^[A-Za-z0-9_.:-]+$')
SESSION_ID_MAX_LENGTH = 128

FILE_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')


class SessionValidator:
    """Validator for session-related operations."""

    @staticmethod
    def validate_session_id(session_id: str) -> str:
        """
        Validate an opaque session id.

        Client-generated ids are accepted as long as they are short and use
        only letters, digits, ``_``, ``-``, ``.`` and ``:``.

        Args:
            session_id: Session ID to validate

        Returns:
            str: Validated session ID (stripped)

        Raises:
            InvalidSessionIdException: If session ID format is invalid
        """
        if not isinstance(session_id, str):
            raise InvalidSessionIdException("Session ID must be a string")

        session_id = session_id.strip()

        if not session_id:
            raise InvalidSessionIdException("Session ID cannot be empty or only whitespace")

        if len(session_id) > SESSION_ID_MAX_LENGTH:
            raise InvalidSessionIdException(
                f"Session ID cannot exceed {SESSION_ID_MAX_LENGTH} characters"
            )

        if not SESSION_ID_PATTERN.match(session_id):
            raise InvalidSessionIdException(
                f"Invalid session ID format: '{session_id}'. "
                f"Only letters, digits, '_', '-', '.' and ':' are allowed"
            )

        return session_id


class FileValidator:
    """Validator for documents uploaded to the file-search store."""

    @staticmethod
    def validate_upload(filename: Optional[str], size: int) -> str:
        """
        Validate an uploaded document's name and size.

        Args:
            filename: Original file name
            size: File size in bytes

        Returns:
            str: Lower-case file extension without the dot

        Raises:
            FileValidationException: If the type or size is not allowed
        """
        if not filename or not filename.strip():
            raise FileValidationException("File name is required")

        extension = os.path.splitext(filename.strip())[1].lower().lstrip(".")
        allowed = [ext.lower() for ext in SETTINGS.ALLOWED_FILE_EXTENSIONS]

        if extension not in allowed:
            raise FileValidationException(
                f"Only {', '.join(e.upper() for e in allowed)} files are allowed"
            )

        if size <= 0:
            raise FileValidationException("File is empty")

        if size > SETTINGS.MAX_FILE_SIZE:
            raise FileValidationException(
                f"File too large: {size} bytes (max {SETTINGS.MAX_FILE_SIZE // (1024 * 1024)}MB)"
            )

        return extension

    @staticmethod
    def validate_file_id(file_id: str) -> str:
        """Validate a document store file id."""
        file_id = (file_id or "").strip()

        if not file_id or len(file_id) > 128 or not FILE_ID_PATTERN.match(file_id):
            raise ValidationException(f"Invalid file ID: '{file_id}'")

        return file_id
