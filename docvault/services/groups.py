"""Document groups and AI-assisted grouping suggestions."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from docvault.ai.llm import LLMClient
from docvault.ai.parsing import fenced_json_value, first_json_value
from docvault.core.database import DocumentStore
from docvault.core.exceptions import NotFoundError, ValidationError
from docvault.models import Document, DocumentStatus, Group, GroupSuggestion, GroupType

logger = logging.getLogger(__name__)

MIN_SUGGESTION_DOCUMENTS = 2

SUGGESTION_PROMPT = """Analyze these documents and suggest logical groupings based on their content and summaries.

Documents:
{documents}

For each suggested group, provide:
1. A descriptive group name
2. A brief description explaining why these documents belong together
3. The document IDs that should be in this group
4. A confidence score (0-1) indicating how confident you are in this grouping

Respond with ONLY valid JSON array in this format:
[
  {{
    "group": {{
      "name": "Group Name",
      "description": "Why these documents are grouped",
      "type": "AI_SUGGESTED"
    }},
    "document_ids": ["id1", "id2"],
    "confidence": 0.85,
    "reason": "Brief explanation of grouping logic"
  }}
]

Only suggest groups with confidence >= {min_confidence}. Return an empty array if no good groupings are found."""


class GroupService:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def create_group(self, name: str, group_type: GroupType = GroupType.MANUAL) -> Group:
        if not name or not name.strip():
            raise ValidationError("Group name is required")
        group = await self.store.insert_group(Group(name=name.strip(), type=group_type))
        logger.info("Created %s group %s (%s)", group.type.value, group.name, group.id)
        return group

    async def list_groups(self, group_type: Optional[GroupType] = None) -> List[Group]:
        groups = await self.store.list_groups()
        if group_type is None:
            return groups
        return [group for group in groups if group.type == group_type]

    async def get_group(self, group_id: str) -> Group:
        group = await self.store.get_group(group_id)
        if group is None:
            raise NotFoundError(f"Group {group_id} not found")
        return group

    async def delete_group(self, group_id: str) -> None:
        if not await self.store.delete_group(group_id):
            raise NotFoundError(f"Group {group_id} not found")
        logger.info("Deleted group %s", group_id)

    async def add_documents(self, group_id: str, document_ids: Iterable[str]) -> List[Document]:
        await self.get_group(group_id)
        ids = await self._existing_document_ids(document_ids)

        for doc_id in ids:
            await self.store.add_membership(doc_id, group_id)
        logger.info("Added %s documents to group %s", len(ids), group_id)
        return await self.store.list_group_documents(group_id)

    async def remove_document(self, group_id: str, document_id: str) -> None:
        if not await self.store.remove_membership(document_id, group_id):
            raise NotFoundError(f"Document {document_id} is not in group {group_id}")

    async def list_group_documents(self, group_id: str) -> List[Document]:
        await self.get_group(group_id)
        return await self.store.list_group_documents(group_id)

    async def groups_for_document(self, document_id: str) -> List[Group]:
        if await self.store.get_document(document_id) is None:
            raise NotFoundError(f"Document {document_id} not found")
        return await self.store.list_document_groups(document_id)

    async def accept_suggestion(self, suggestion: GroupSuggestion) -> Group:
        """Create the suggested group and its memberships once the user approves it."""

        ids = await self._existing_document_ids(suggestion.document_ids)
        group = await self.create_group(suggestion.group.name, GroupType.AI_SUGGESTED)
        await self.add_documents(group.id, ids)
        return group

    async def _existing_document_ids(self, document_ids: Iterable[str]) -> List[str]:
        ids = list(dict.fromkeys(document_ids))
        if not ids:
            raise ValidationError("At least one document id is required")

        missing = [doc_id for doc_id in ids if await self.store.get_document(doc_id) is None]
        if missing:
            raise NotFoundError(f"Documents not found: {', '.join(missing)}")
        return ids


class GroupSuggester:
    """Ask the language model to propose groupings of READY documents.

    Suggestions are only returned, never applied. Any failure yields ``[]``.
    """

    def __init__(self, llm: LLMClient, store: DocumentStore, *, min_confidence: float = 0.6) -> None:
        self.llm = llm
        self.store = store
        self.min_confidence = min_confidence

    async def suggest(self) -> List[GroupSuggestion]:
        try:
            documents = [doc for doc in await self.store.list_documents(status=DocumentStatus.READY) if doc.summary]
            if len(documents) < MIN_SUGGESTION_DOCUMENTS:
                logger.info("Need at least %s summarized documents to suggest groups", MIN_SUGGESTION_DOCUMENTS)
                return []

            prompt = SUGGESTION_PROMPT.format(documents=self._describe(documents), min_confidence=self.min_confidence)
            response = await self.llm.complete(prompt)
            suggestions = self._parse(response.text, {doc.id for doc in documents})
        except Exception:
            logger.exception("Group suggestion failed")
            return []

        logger.info("Generated %s group suggestions", len(suggestions))
        return suggestions

    @staticmethod
    def _describe(documents: Sequence[Document]) -> str:
        return "\n\n---\n\n".join(f"Document ID: {doc.id}\nName: {doc.name}\nSummary: {doc.summary}" for doc in documents)

    def _parse(self, text: str, known_ids: set[str]) -> List[GroupSuggestion]:
        payload = fenced_json_value(text or "", "[")
        if payload is None:
            payload = first_json_value(text or "", "[")
        if payload is None:
            logger.warning("No JSON array found in group suggestion response")
            return []

        suggestions: List[GroupSuggestion] = []
        for raw in payload:
            if not isinstance(raw, dict) or not isinstance(raw.get("group"), dict):
                continue
            raw = {**raw, "group": {**raw["group"], "type": GroupType.AI_SUGGESTED.value}}
            try:
                suggestion = GroupSuggestion.model_validate(raw)
            except PydanticValidationError as exc:
                logger.debug("Discarding malformed suggestion: %s", exc)
                continue

            document_ids = [doc_id for doc_id in dict.fromkeys(suggestion.document_ids) if doc_id in known_ids]
            if not suggestion.group.name.strip():
                continue
            if len(document_ids) < MIN_SUGGESTION_DOCUMENTS or suggestion.confidence < self.min_confidence:
                continue

            suggestions.append(suggestion.model_copy(update={"document_ids": document_ids}))
        return suggestions
