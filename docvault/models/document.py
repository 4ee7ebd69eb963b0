"""Document data model definitions."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentStatus(str, Enum):
    """Position of a document in the processing lifecycle."""

    UPLOADED = "UPLOADED"
    PROCESSING = "PROCESSING"
    READY = "READY"
    FAILED = "FAILED"


class ContentSource(str, Enum):
    AI_GENERATED = "ai_generated"
    USER_MODIFIED = "user_modified"


class ContentField(str, Enum):
    SUMMARY = "summary"
    MARKDOWN = "markdown"

    @property
    def source_field(self) -> str:
        return f"{self.value}_source"


_TRANSITIONS: Dict[DocumentStatus, FrozenSet[DocumentStatus]] = {
    DocumentStatus.UPLOADED: frozenset({DocumentStatus.PROCESSING}),
    DocumentStatus.PROCESSING: frozenset({DocumentStatus.READY, DocumentStatus.FAILED}),
    DocumentStatus.READY: frozenset({DocumentStatus.UPLOADED}),
    DocumentStatus.FAILED: frozenset({DocumentStatus.UPLOADED}),
}


def can_transition(current: DocumentStatus, target: DocumentStatus) -> bool:
    """Return whether `current -> target` is an edge of the processing state machine."""

    return target in _TRANSITIONS.get(current, frozenset())


class Document(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    storage_path: str
    status: DocumentStatus = DocumentStatus.UPLOADED
    summary: Optional[str] = None
    markdown: Optional[str] = None
    ai_model: Optional[str] = None
    summary_source: ContentSource = ContentSource.AI_GENERATED
    markdown_source: ContentSource = ContentSource.AI_GENERATED
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def is_ready(self) -> bool:
        return self.status == DocumentStatus.READY
