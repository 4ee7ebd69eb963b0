"""Process-wide service wiring for the HTTP layer."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Request

from docvault.ai.llm import LLMClient
from docvault.ai.summarizer import AIClient
from docvault.core.config import Settings
from docvault.core.database import DocumentStore, MongoDocumentStore, build_document_store
from docvault.core.exceptions import ServiceUnavailableError
from docvault.processing.extractor import TextExtractor
from docvault.services.content import ContentService
from docvault.services.groups import GroupService, GroupSuggester
from docvault.storage.blob import ObjectStorageClient
from docvault.workflows.processing import DocumentProcessor
from docvault.workflows.retry import RetryCoordinator, RetryPolicy

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Collaborators constructed once at startup and shared for the process lifetime."""

    settings: Settings
    store: DocumentStore
    storage: ObjectStorageClient
    llm: LLMClient
    extractor: TextExtractor
    ai_client: AIClient
    processor: DocumentProcessor
    retry: RetryCoordinator
    content: ContentService
    groups: GroupService
    suggester: GroupSuggester

    @classmethod
    def build(cls, config: Settings) -> "ServiceContainer":
        store = build_document_store(config)
        storage = ObjectStorageClient(config)
        llm = LLMClient.from_settings(config)
        extractor = TextExtractor()
        ai_client = AIClient(llm, max_content_chars=config.MAX_CONTENT_CHARS)
        processor = DocumentProcessor(store, storage, extractor, ai_client)
        return cls(
            settings=config,
            store=store,
            storage=storage,
            llm=llm,
            extractor=extractor,
            ai_client=ai_client,
            processor=processor,
            retry=RetryCoordinator(store, processor, RetryPolicy.from_settings(config)),
            content=ContentService(store, storage, extractor, ai_client),
            groups=GroupService(store),
            suggester=GroupSuggester(llm, store, min_confidence=config.GROUP_SUGGESTION_MIN_CONFIDENCE),
        )

    async def startup(self) -> None:
        if isinstance(self.store, MongoDocumentStore):
            await self.store.initialize()
        logger.info("Services ready (datastore=%s, storage=%s)", self.settings.DATASTORE_BACKEND, self.storage.backend)

    async def shutdown(self) -> None:
        if isinstance(self.store, MongoDocumentStore):
            await self.store.close()


async def get_container(request: Request) -> ServiceContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise ServiceUnavailableError("Services are not initialized")
    return container
