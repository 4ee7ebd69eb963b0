"""FastAPI routes for uploading, reading and reprocessing documents."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Query, UploadFile, status
from pydantic import BaseModel, Field

from docvault.api.dependencies import ServiceContainer, get_container
from docvault.core.exceptions import ApplicationError, DatastoreError, StorageError, ValidationError
from docvault.models import ContentField, Document, DocumentStatus, Group
from docvault.utils.cost import estimate_processing_cost

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


# Request Models


class ContentUpdateRequest(BaseModel):
    """Fields omitted from the body are left untouched; an empty string clears the field."""

    summary: Optional[str] = None
    markdown: Optional[str] = None


class RegenerateRequest(BaseModel):
    type: ContentField = Field(..., description="Which content field to regenerate")


# Response Models


class UploadResponse(BaseModel):
    document: Document
    cost_estimate: Optional[Dict[str, Any]] = None


class DocumentDetail(Document):
    groups: List[Group] = Field(default_factory=list)


class SignedUrlResponse(BaseModel):
    url: str
    expires_at: datetime
    expires_in: int


# Routes


@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    container: ServiceContainer = Depends(get_container),
) -> UploadResponse:
    """Store the file, create an UPLOADED row and schedule processing."""

    config = container.settings
    filename = os.path.basename(file.filename or "").strip()
    if not filename:
        raise ValidationError("Filename is required", code="INVALID_FILENAME")

    extension = os.path.splitext(filename)[1].lower()
    if extension not in config.ALLOWED_EXTENSIONS:
        raise ValidationError(
            f"Unsupported file type {extension or '(none)'}. Allowed: {', '.join(config.ALLOWED_EXTENSIONS)}",
            code="INVALID_FILE_TYPE",
        )

    content = await file.read()
    if not content:
        raise ValidationError("Uploaded file is empty", code="MISSING_FILE")
    if len(content) > config.MAX_UPLOAD_BYTES:
        raise ValidationError(
            f"File exceeds maximum size of {config.MAX_UPLOAD_BYTES} bytes", code="FILE_TOO_LARGE"
        )

    path = await container.storage.upload(content, filename, file.content_type or "application/octet-stream")
    document = Document(name=filename, storage_path=path, status=DocumentStatus.UPLOADED)
    try:
        document = await container.store.insert_document(document)
    except DatastoreError as exc:
        logger.error("Failed to insert document row for %s: %s", filename, exc)
        try:
            await container.storage.delete(path)
        except StorageError:
            logger.exception("Failed to clean up orphaned file %s", path)
        raise ApplicationError(
            "Failed to create document record",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code="DB_INSERT_FAILED",
        ) from exc

    background_tasks.add_task(container.processor.process_in_background, document.id)
    logger.info("Uploaded %s as %s; processing scheduled", filename, document.id)

    estimate = estimate_processing_cost(len(content), filename)
    return UploadResponse(
        document=document,
        cost_estimate=estimate.to_dict() if estimate.is_large_document else None,
    )


@router.get("", response_model=List[Document])
async def list_documents(
    status_filter: Optional[DocumentStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=200),
    container: ServiceContainer = Depends(get_container),
) -> List[Document]:
    return await container.store.list_documents(status=status_filter, search=search)


@router.get("/{document_id}", response_model=DocumentDetail)
async def get_document(document_id: str, container: ServiceContainer = Depends(get_container)) -> DocumentDetail:
    document = await container.content.get_document(document_id)
    groups = await container.groups.groups_for_document(document_id)
    return DocumentDetail(**document.model_dump(), groups=groups)


@router.get("/{document_id}/url", response_model=SignedUrlResponse)
async def get_document_url(
    document_id: str,
    ttl_seconds: Optional[int] = Query(None, ge=1, le=7 * 24 * 3600),
    container: ServiceContainer = Depends(get_container),
) -> SignedUrlResponse:
    document = await container.content.get_document(document_id)
    signed = await container.storage.signed_url(document.storage_path, ttl_seconds)
    return SignedUrlResponse(url=signed.url, expires_at=signed.expires_at, expires_in=signed.expires_in)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(document_id: str, container: ServiceContainer = Depends(get_container)) -> None:
    await container.content.delete_document(document_id)


@router.patch("/{document_id}/content", response_model=Document)
async def update_content(
    document_id: str,
    request: ContentUpdateRequest,
    container: ServiceContainer = Depends(get_container),
) -> Document:
    provided = request.model_dump(include=request.model_fields_set)
    return await container.content.update_content(document_id, **provided)


@router.post("/{document_id}/regenerate", response_model=Document)
async def regenerate_content(
    document_id: str,
    request: RegenerateRequest,
    container: ServiceContainer = Depends(get_container),
) -> Document:
    return await container.content.regenerate(document_id, request.type)


@router.post("/{document_id}/retry", response_model=Document)
async def retry_document(document_id: str, container: ServiceContainer = Depends(get_container)) -> Document:
    await container.content.get_document(document_id)
    document = await container.retry.retry(document_id)
    if document is None:
        raise ApplicationError(
            "Failed to retry document processing",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code="RETRY_FAILED",
        )
    return document
