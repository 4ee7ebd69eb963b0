"""Processing pass that drives a document from UPLOADED to READY or FAILED."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from docvault.ai.summarizer import AIClient
from docvault.core.database import DocumentStore
from docvault.core.exceptions import ProcessingError
from docvault.models import ContentSource, Document, DocumentStatus, can_transition
from docvault.processing.extractor import TextExtractor
from docvault.storage.blob import ObjectStorageClient
from docvault.utils.cost import estimate_processing_cost, exceeds_safe_threshold
from docvault.utils.monitoring import record_processing_outcome, record_stage_failure

logger = logging.getLogger(__name__)


@contextmanager
def _stage(name: str) -> Iterator[None]:
    """Re-raise any failure inside the block as a `ProcessingError` tagged with `name`."""

    try:
        yield
    except ProcessingError:
        raise
    except Exception as exc:
        raise ProcessingError(name, str(exc) or exc.__class__.__name__) from exc


class DocumentProcessor:
    """
    Run one end-to-end processing pass for a stored document.

    A pass is strictly sequential:
    1. Mark the document PROCESSING
    2. Download the file from the blob store
    3. Extract text
    4. Summarize through the AI client
    5. Persist READY with the generated content

    `process` never raises. A failure at any stage is logged and recorded as
    FAILED on a best-effort basis; the caller only sees ``None``.
    """

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

    async def process(self, document_id: str) -> Optional[Document]:
        if not document_id or not document_id.strip():
            logger.warning("Processing requested without a document id")
            return None

        request_id = f"process-{uuid.uuid4().hex[:12]}"

        try:
            document = await self.store.get_document(document_id)
        except Exception:
            logger.exception("[%s] Failed to load document %s", request_id, document_id)
            return None
        if document is None:
            logger.warning("[%s] Document %s not found; nothing to process", request_id, document_id)
            return None

        logger.info("[%s] Starting processing for %s (%s)", request_id, document.name, document_id)
        try:
            result = await self._run(request_id, document)
        except Exception as exc:
            if not isinstance(exc, ProcessingError):
                logger.exception("[%s] Unexpected error while processing %s", request_id, document_id)
                exc = ProcessingError("unexpected", str(exc) or exc.__class__.__name__)
            logger.error("[%s] Processing failed at stage %s for %s: %s", request_id, exc.stage, document_id, exc.message)
            record_stage_failure(exc.stage)
            record_processing_outcome("failed")
            await self._mark_failed(request_id, document_id, exc)
            return None

        record_processing_outcome("ready")
        logger.info("[%s] Document %s is READY (model=%s)", request_id, document_id, result.ai_model)
        return result

    async def process_in_background(self, document_id: str) -> None:
        """Entry point for fire-and-forget scheduling after an upload."""

        result = await self.process(document_id)
        if result is None:
            logger.warning("Background processing did not complete for %s", document_id)

    async def _run(self, request_id: str, document: Document) -> Document:
        document_id = document.id

        if not can_transition(document.status, DocumentStatus.PROCESSING):
            logger.warning(
                "[%s] Document %s is %s; processing anyway", request_id, document_id, document.status.value
            )

        with _stage("status_update"):
            await self.store.update_document(document_id, {"status": DocumentStatus.PROCESSING})

        with _stage("download"):
            content = await self.storage.download(document.storage_path)
        logger.info("[%s] Downloaded %s bytes from %s", request_id, len(content), document.storage_path)
        self._log_cost(request_id, len(content), document.name)

        with _stage("extraction"):
            text = await self.extractor.extract(content, document.name)
        if not text or not text.strip():
            raise ProcessingError("extraction", "No text content extracted from document")
        logger.info("[%s] Extracted %s characters", request_id, len(text))

        with _stage("ai"):
            summary = await self.ai_client.summarize(text, document.name)
        if summary.is_fallback:
            logger.warning("[%s] AI summarization fell back for %s", request_id, document_id)

        fields: Dict[str, Any] = {
            "status": DocumentStatus.READY,
            "summary": summary.summary,
            "markdown": summary.markdown,
            "ai_model": summary.model,
            "summary_source": ContentSource.AI_GENERATED,
            "markdown_source": ContentSource.AI_GENERATED,
        }
        with _stage("persist"):
            await self.store.update_document(document_id, fields)

        try:
            refreshed = await self.store.get_document(document_id)
        except Exception:
            logger.warning("[%s] Verification read failed for %s", request_id, document_id, exc_info=True)
            refreshed = None
        return refreshed or document.model_copy(update=fields)

    async def _mark_failed(self, request_id: str, document_id: str, cause: ProcessingError) -> None:
        try:
            await self.store.update_document(document_id, {"status": DocumentStatus.FAILED})
        except Exception as exc:
            logger.critical(
                "[%s] Could not record FAILED status for %s after %s failure (%s): %s",
                request_id,
                document_id,
                cause.stage,
                cause.message,
                exc,
                exc_info=True,
            )

    @staticmethod
    def _log_cost(request_id: str, size: int, filename: str) -> None:
        estimate = estimate_processing_cost(size, filename)
        if estimate.is_large_document:
            logger.info(
                "[%s] Large document %s: ~%s pages (%s). %s",
                request_id,
                filename,
                estimate.estimated_pages,
                estimate.complexity,
                estimate.processing_message,
            )
        if exceeds_safe_threshold(size):
            logger.warning("[%s] %s exceeds the safe processing threshold (%s bytes)", request_id, filename, size)
