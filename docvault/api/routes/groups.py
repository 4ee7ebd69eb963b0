"""FastAPI routes for document groups and AI grouping suggestions."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from docvault.api.dependencies import ServiceContainer, get_container
from docvault.models import Document, Group, GroupSuggestion, GroupType

router = APIRouter(prefix="/groups", tags=["groups"])


class CreateGroupRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    type: GroupType = GroupType.MANUAL


class AddDocumentsRequest(BaseModel):
    document_ids: List[str] = Field(..., min_length=1)


@router.post("", response_model=Group, status_code=status.HTTP_201_CREATED)
async def create_group(request: CreateGroupRequest, container: ServiceContainer = Depends(get_container)) -> Group:
    return await container.groups.create_group(request.name, request.type)


@router.get("", response_model=List[Group])
async def list_groups(
    group_type: Optional[GroupType] = Query(None, alias="type"),
    container: ServiceContainer = Depends(get_container),
) -> List[Group]:
    return await container.groups.list_groups(group_type)


@router.post("/suggest", response_model=List[GroupSuggestion])
async def suggest_groups(container: ServiceContainer = Depends(get_container)) -> List[GroupSuggestion]:
    """Propose groupings for review. Nothing is created until a suggestion is accepted."""

    return await container.suggester.suggest()


@router.post("/suggest/accept", response_model=Group, status_code=status.HTTP_201_CREATED)
async def accept_suggestion(
    suggestion: GroupSuggestion, container: ServiceContainer = Depends(get_container)
) -> Group:
    return await container.groups.accept_suggestion(suggestion)


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(group_id: str, container: ServiceContainer = Depends(get_container)) -> None:
    await container.groups.delete_group(group_id)


@router.get("/{group_id}/documents", response_model=List[Document])
async def list_group_documents(group_id: str, container: ServiceContainer = Depends(get_container)) -> List[Document]:
    return await container.groups.list_group_documents(group_id)


@router.post("/{group_id}/documents", response_model=List[Document])
async def add_documents(
    group_id: str,
    request: AddDocumentsRequest,
    container: ServiceContainer = Depends(get_container),
) -> List[Document]:
    return await container.groups.add_documents(group_id, request.document_ids)


@router.delete("/{group_id}/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_document(
    group_id: str, document_id: str, container: ServiceContainer = Depends(get_container)
) -> None:
    await container.groups.remove_document(group_id, document_id)
