"""Document Store Manager for the hosted file-search knowledge base."""

from datetime import datetime, timezone
from typing import Dict, Any, List, Optional

from openai import AsyncOpenAI, NotFoundError, OpenAIError

from app.core.v1.decorators import log_execution_time
from app.core.v1.exceptions import DocumentStoreException
from app.core.v1.log_manager import LogManager
from app.core.v1.validators import FileValidator
from app.settings.v1.openai import OpenAISettings


class DocumentStoreManager:
    """
    Manages the hospital documents held in an OpenAI vector store.

    Uploaded files are indexed for the ``file_search`` tool used by
    :class:`ChatManager`.
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None, vector_store_id: Optional[str] = None):
        """Initialize Document Store Manager."""
        self.logger = LogManager(__name__)

        openai_settings = OpenAISettings()

        if client is None and openai_settings.OPENAI_API_KEY:
            client = AsyncOpenAI(
                api_key=openai_settings.OPENAI_API_KEY,
                base_url=openai_settings.OPENAI_BASE_URL or None
            )
        self.client = client
        self.vector_store_id = vector_store_id or openai_settings.OPENAI_VECTOR_STORE_ID

    def _ensure_configured(self):
        if self.client is None or not self.vector_store_id:
            raise DocumentStoreException("Document store is not configured")

    @staticmethod
    def _timestamp(value: Optional[int]) -> Optional[str]:
        if not value:
            return None
        return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()

    @log_execution_time
    async def upload_document(self, filename: str, content: bytes) -> Dict[str, Any]:
        """
        Validate and upload a document, waiting until it is indexed.

        Args:
            filename: Original file name (PDF, TXT or MD)
            content: File bytes

        Returns:
            Dict[str, Any]: Stored document description

        Raises:
            FileValidationException: If the type or size is not allowed
            DocumentStoreException: If the upload fails
        """
        FileValidator.validate_upload(filename, len(content))
        self._ensure_configured()

        try:
            stored = await self.client.vector_stores.files.upload_and_poll(
                vector_store_id=self.vector_store_id,
                file=(filename, content)
            )
        except OpenAIError as err:
            self.logger.error("Document upload failed", filename=filename, error=str(err))
            raise DocumentStoreException(f"Failed to upload file: {err}") from err

        if stored.status == "failed":
            reason = stored.last_error.message if stored.last_error else "unknown error"
            raise DocumentStoreException(f"Indexing failed for {filename}: {reason}")

        self.logger.info("Document uploaded", filename=filename, file_id=stored.id, status=stored.status)

        return {
            "id": stored.id,
            "filename": filename,
            "status": stored.status,
            "size_bytes": len(content),
            "created_at": self._timestamp(stored.created_at)
        }

    async def list_documents(self) -> List[Dict[str, Any]]:
        """
        List documents in the vector store.

        Raises:
            DocumentStoreException: If listing fails
        """
        self._ensure_configured()

        documents = []
        try:
            async for stored in self.client.vector_stores.files.list(vector_store_id=self.vector_store_id):
                documents.append({
                    "id": stored.id,
                    "filename": await self._filename(stored.id),
                    "status": stored.status,
                    "size_bytes": stored.usage_bytes,
                    "created_at": self._timestamp(stored.created_at)
                })
        except OpenAIError as err:
            self.logger.error("Listing documents failed", error=str(err))
            raise DocumentStoreException(f"Failed to list files: {err}") from err

        self.logger.info(f"Listed {len(documents)} documents")
        return documents

    async def _filename(self, file_id: str) -> Optional[str]:
        try:
            return (await self.client.files.retrieve(file_id)).filename
        except NotFoundError:
            return None

    async def delete_document(self, file_id: str) -> bool:
        """
        Remove a document from the vector store and delete the file.

        Returns:
            bool: False if the document did not exist

        Raises:
            DocumentStoreException: If deletion fails
        """
        file_id = FileValidator.validate_file_id(file_id)
        self._ensure_configured()

        try:
            await self.client.vector_stores.files.delete(file_id, vector_store_id=self.vector_store_id)
        except NotFoundError:
            self.logger.warning("Document not found in store", file_id=file_id)
            return False
        except OpenAIError as err:
            self.logger.error("Document removal failed", file_id=file_id, error=str(err))
            raise DocumentStoreException(f"Failed to delete file: {err}") from err

        try:
            await self.client.files.delete(file_id)
        except OpenAIError as err:
            # Already detached from the store, the orphaned file is harmless
            self.logger.warning("Could not delete underlying file", file_id=file_id, error=str(err))

        self.logger.info("Document deleted", file_id=file_id)
        return True
