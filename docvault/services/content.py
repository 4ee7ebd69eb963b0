"""User-facing content operations: edits, targeted regeneration and deletion."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

from docvault.ai.summarizer import AIClient
from docvault.core.database import DocumentStore
from docvault.core.exceptions import ConflictError, NotFoundError, StorageError, ValidationError
from docvault.models import ContentField, ContentSource, Document
from docvault.processing.extractor import TextExtractor
from docvault.storage.blob import ObjectStorageClient

logger = logging.getLogger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


class ContentService:
    def __init__(
        self,
        store: DocumentStore,
        storage: ObjectStorageClient,
        extractor: TextExtractor,
        ai_client: AIClient,
    ) -> None:
        self.store = store
        self.storage = storage
        self.extractor = extractor
        self.ai_client = ai_client

    async def get_document(self, document_id: str) -> Document:
        document = await self.store.get_document(document_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found")
        return document

    async def update_content(
        self,
        document_id: str,
        *,
        summary: Union[Optional[str], _Unset] = UNSET,
        markdown: Union[Optional[str], _Unset] = UNSET,
    ) -> Document:
        """Apply user edits. Each provided field is marked as user-modified."""

        if summary is UNSET and markdown is UNSET:
            raise ValidationError("At least one of summary or markdown must be provided")

        await self.get_document(document_id)

        fields: Dict[str, Any] = {}
        if summary is not UNSET:
            fields["summary"] = summary or None
            fields["summary_source"] = ContentSource.USER_MODIFIED
        if markdown is not UNSET:
            fields["markdown"] = markdown or None
            fields["markdown_source"] = ContentSource.USER_MODIFIED

        await self.store.update_document(document_id, fields)
        logger.info("Updated %s for document %s", ", ".join(sorted(fields)), document_id)
        return await self.get_document(document_id)

    async def regenerate(self, document_id: str, field: ContentField) -> Document:
        """Regenerate one content field from the stored file, leaving the other untouched."""

        document = await self.get_document(document_id)
        if not document.is_ready:
            raise ConflictError(
                f"Document must be READY to regenerate content (current status: {document.status.value})"
            )

        content = await self.storage.download(document.storage_path)
        text = await self.extractor.extract(content, document.name)
        if not text or not text.strip():
            raise ValidationError("No text content could be extracted from the document")

        result = await self.ai_client.summarize(text, document.name)
        value = result.summary if field == ContentField.SUMMARY else result.markdown

        await self.store.update_document(
            document_id,
            {field.value: value, field.source_field: ContentSource.AI_GENERATED},
        )
        logger.info("Regenerated %s for document %s (model=%s)", field.value, document_id, result.model)
        return await self.get_document(document_id)

    async def delete_document(self, document_id: str) -> None:
        document = await self.get_document(document_id)

        try:
            await self.storage.delete(document.storage_path)
        except StorageError as exc:
            logger.error("Failed to delete file %s for document %s: %s", document.storage_path, document_id, exc)

        await self.store.delete_document(document_id)
        logger.info("Deleted document %s", document_id)
