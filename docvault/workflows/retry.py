"""Bounded retry with exponential backoff around the document processor."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from docvault.core.config import Settings
from docvault.core.database import DocumentStore
from docvault.models import Document, DocumentStatus
from docvault.utils.monitoring import record_retry_attempt
from docvault.workflows.processing import DocumentProcessor

logger = logging.getLogger(__name__)

RESET_FIELDS: Dict[str, Any] = {
    "status": DocumentStatus.UPLOADED,
    "summary": None,
    "markdown": None,
    "ai_model": None,
}


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt ceiling and backoff schedule for one retry burst."""

    maximum_attempts: int = 3
    initial_interval: float = 2.0
    backoff_coefficient: float = 2.0

    @classmethod
    def from_settings(cls, config: Settings) -> "RetryPolicy":
        return cls(
            maximum_attempts=config.RETRY_MAX_ATTEMPTS,
            initial_interval=config.RETRY_BASE_DELAY_SECONDS,
            backoff_coefficient=config.RETRY_BACKOFF_COEFFICIENT,
        )

    def delay_for(self, attempt: int) -> float:
        return self.initial_interval * self.backoff_coefficient ** (attempt - 1)


class RetryCoordinator:
    """Reset a document and re-run processing until it succeeds or attempts run out.

    The ceiling applies to one `retry` call only; callers may start another burst.
    """

    def __init__(
        self,
        store: DocumentStore,
        processor: DocumentProcessor,
        policy: Optional[RetryPolicy] = None,
        *,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ) -> None:
        self.store = store
        self.processor = processor
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def retry(self, document_id: str) -> Optional[Document]:
        attempts = self.policy.maximum_attempts
        for attempt in range(1, attempts + 1):
            record_retry_attempt()
            logger.info("Retry attempt %s/%s for document %s", attempt, attempts, document_id)
            try:
                await self.store.update_document(document_id, RESET_FIELDS)
                result = await self.processor.process(document_id)
            except Exception:
                logger.exception("Retry attempt %s for document %s raised", attempt, document_id)
                result = None

            if result is not None:
                logger.info("Document %s processed on attempt %s", document_id, attempt)
                return result

            if attempt < attempts:
                delay = self.policy.delay_for(attempt)
                logger.warning("Attempt %s for document %s failed; retrying in %.1fs", attempt, document_id, delay)
                sleep = self._sleep or asyncio.sleep
                await sleep(delay)

        logger.error("Document %s still failing after %s attempts", document_id, attempts)
        return None
