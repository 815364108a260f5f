"""Admin API router for the hospital knowledge base documents."""

from typing import Any, Dict

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from app.apis.v1.dependencies import get_document_store_manager
from app.apis.v1.types_in import AdminLoginData
from app.apis.v1.types_out import (
    AdminLoginResponse,
    DocumentDeleteResponse,
    DocumentInfo,
    DocumentListResponse,
    DocumentUploadResponse
)
from app.core.v1.auth import auth_manager, get_current_admin
from app.core.v1.document_store_manager import DocumentStoreManager
from app.core.v1.log_manager import LogManager
from app.core.v1.validators import FileValidator
from app.settings.v1.general import SETTINGS

# Initialize router
router = APIRouter()

logger = LogManager(__name__)


@router.post("/login", response_model=AdminLoginResponse)
async def login(data: AdminLoginData):
    """Exchange the admin credential for a bearer token."""
    return AdminLoginResponse(**auth_manager.login(data.username, data.password))


@router.post("/upload", response_model=DocumentUploadResponse)
async def upload_document(
    file: UploadFile = File(..., description="PDF, TXT or MD file (max 10MB)"),
    admin: Dict[str, Any] = Depends(get_current_admin),
    store: DocumentStoreManager = Depends(get_document_store_manager)
):
    """Upload a document to the file-search store."""
    if file.size is not None:
        # Reject by declared size before buffering the body
        FileValidator.validate_upload(file.filename, file.size)

    content = await file.read(SETTINGS.MAX_FILE_SIZE + 1)

    logger.info(
        "Admin uploading document",
        admin=admin["username"],
        filename=file.filename,
        size=len(content)
    )

    document = await store.upload_document(file.filename, content)
    return DocumentUploadResponse(document=DocumentInfo(**document))


@router.get("/files", response_model=DocumentListResponse)
async def list_documents(
    admin: Dict[str, Any] = Depends(get_current_admin),
    store: DocumentStoreManager = Depends(get_document_store_manager)
):
    """List documents in the file-search store."""
    documents = await store.list_documents()
    return DocumentListResponse(
        documents=[DocumentInfo(**d) for d in documents],
        total=len(documents)
    )


@router.delete("/files/{file_id}", response_model=DocumentDeleteResponse)
async def delete_document(
    file_id: str,
    admin: Dict[str, Any] = Depends(get_current_admin),
    store: DocumentStoreManager = Depends(get_document_store_manager)
):
    """Delete a document from the file-search store."""
    deleted = await store.delete_document(file_id)

    if not deleted:
        raise HTTPException(status_code=404, detail=f"Document not found: {file_id}")

    logger.info("Admin deleted document", admin=admin["username"], file_id=file_id)
    return DocumentDeleteResponse(success=True, file_id=file_id, message="File deleted successfully")
