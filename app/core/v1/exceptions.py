"""Custom Exceptions for application."""


class BaseException(Exception):
    """Custom Base Exception."""

    def __init__(self, message: str):
        """Instance Custom Base Exception.

        Args:
            message (str): Message detail exception.
        """
        self.message = message
        super().__init__(self.message)


class UnauthorizedException(BaseException):
    """Expected Unauthorized Exception."""

    pass


class RuntimeException(BaseException):
    """RuntimeException Exception."""

    pass


class DatabaseException(BaseException):
    """Database related exception."""

    pass


class ValidationException(BaseException):
    """Validation related exception."""

    pass


class InvalidSessionIdException(ValidationException):
    """Session identifier is empty, too long or has invalid characters."""

    pass


class FileValidationException(ValidationException):
    """Uploaded file has a disallowed type or size."""

    pass


class ChatException(BaseException):
    """Chat and conversation related exception."""

    pass


class CompletionException(ChatException):
    """The hosted completion service failed to answer."""

    def __init__(self, message: str, session_id: str = None):
        super().__init__(message)
        self.session_id = session_id


class CompletionNotConfiguredException(CompletionException):
    """No credential is configured for the hosted completion service."""

    pass


class ClassificationException(BaseException):
    """The hosted classification call failed or returned nothing usable."""

    pass


class DocumentStoreException(BaseException):
    """File-search document store related exception."""

    pass
