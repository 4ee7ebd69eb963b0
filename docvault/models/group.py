"""Group and membership data models."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, Field

from docvault.models.document import utcnow


class GroupType(str, Enum):
    MANUAL = "MANUAL"
    AI_SUGGESTED = "AI_SUGGESTED"
    SMART = "SMART"


class Group(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    type: GroupType = GroupType.MANUAL
    created_at: datetime = Field(default_factory=utcnow)


class DocumentGroup(BaseModel):
    document_id: str
    group_id: str
    created_at: datetime = Field(default_factory=utcnow)


class SuggestedGroup(BaseModel):
    name: str
    description: str = ""
    type: GroupType = GroupType.AI_SUGGESTED


class GroupSuggestion(BaseModel):
    """A grouping proposed by the language model; never applied without user approval."""

    group: SuggestedGroup
    document_ids: List[str] = Field(default_factory=list)
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    reason: str = ""
