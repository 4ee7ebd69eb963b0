"""Datastore layer for documents, groups and memberships."""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Protocol

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from docvault.core.config import Settings
from docvault.core.exceptions import DatastoreError
from docvault.models import Document, DocumentGroup, DocumentStatus, Group

logger = logging.getLogger(__name__)

DOCUMENT_FIELDS = frozenset(Document.model_fields) - {"id"}


class DocumentStore(Protocol):
    """Persistence capability consumed by the processing core and the services."""

    async def get_document(self, document_id: str) -> Optional[Document]:
        ...

    async def insert_document(self, document: Document) -> Document:
        ...

    async def update_document(self, document_id: str, fields: Mapping[str, Any]) -> None:
        ...

    async def delete_document(self, document_id: str) -> bool:
        ...

    async def list_documents(
        self, *, status: Optional[DocumentStatus] = None, search: Optional[str] = None
    ) -> List[Document]:
        ...

    async def insert_group(self, group: Group) -> Group:
        ...

    async def get_group(self, group_id: str) -> Optional[Group]:
        ...

    async def list_groups(self) -> List[Group]:
        ...

    async def delete_group(self, group_id: str) -> bool:
        ...

    async def add_membership(self, document_id: str, group_id: str) -> DocumentGroup:
        ...

    async def remove_membership(self, document_id: str, group_id: str) -> bool:
        ...

    async def list_group_documents(self, group_id: str) -> List[Document]:
        ...

    async def list_document_groups(self, document_id: str) -> List[Group]:
        ...


def _validate_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    unknown = set(fields) - DOCUMENT_FIELDS
    if unknown:
        raise DatastoreError("Unknown document fields", details={"fields": sorted(unknown)})
    return dict(fields)


def _encode(values: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value.value if isinstance(value, Enum) else value for key, value in values.items()}


class InMemoryDocumentStore:
    """Dict-backed store used for local development and tests."""

    def __init__(self) -> None:
        self._documents: Dict[str, Document] = {}
        self._groups: Dict[str, Group] = {}
        self._memberships: Dict[tuple[str, str], DocumentGroup] = {}

    async def get_document(self, document_id: str) -> Optional[Document]:
        document = self._documents.get(document_id)
        return document.model_copy() if document else None

    async def insert_document(self, document: Document) -> Document:
        if document.id in self._documents:
            raise DatastoreError("Document already exists", details={"document_id": document.id})
        self._documents[document.id] = document.model_copy()
        return document.model_copy()

    async def update_document(self, document_id: str, fields: Mapping[str, Any]) -> None:
        updates = _validate_fields(fields)
        current = self._documents.get(document_id)
        if current is None:
            raise DatastoreError("Document not found", details={"document_id": document_id})
        self._documents[document_id] = Document.model_validate({**current.model_dump(), **updates})

    async def delete_document(self, document_id: str) -> bool:
        removed = self._documents.pop(document_id, None)
        for key in [key for key in self._memberships if key[0] == document_id]:
            del self._memberships[key]
        return removed is not None

    async def list_documents(
        self, *, status: Optional[DocumentStatus] = None, search: Optional[str] = None
    ) -> List[Document]:
        needle = (search or "").strip().lower()
        results = []
        for document in self._documents.values():
            if status is not None and document.status != status:
                continue
            if needle and needle not in document.name.lower() and needle not in (document.summary or "").lower():
                continue
            results.append(document.model_copy())
        return sorted(results, key=lambda doc: doc.created_at, reverse=True)

    async def insert_group(self, group: Group) -> Group:
        self._groups[group.id] = group.model_copy()
        return group.model_copy()

    async def get_group(self, group_id: str) -> Optional[Group]:
        group = self._groups.get(group_id)
        return group.model_copy() if group else None

    async def list_groups(self) -> List[Group]:
        return sorted((g.model_copy() for g in self._groups.values()), key=lambda g: g.created_at, reverse=True)

    async def delete_group(self, group_id: str) -> bool:
        removed = self._groups.pop(group_id, None)
        for key in [key for key in self._memberships if key[1] == group_id]:
            del self._memberships[key]
        return removed is not None

    async def add_membership(self, document_id: str, group_id: str) -> DocumentGroup:
        key = (document_id, group_id)
        if key not in self._memberships:
            self._memberships[key] = DocumentGroup(document_id=document_id, group_id=group_id)
        return self._memberships[key].model_copy()

    async def remove_membership(self, document_id: str, group_id: str) -> bool:
        return self._memberships.pop((document_id, group_id), None) is not None

    async def list_group_documents(self, group_id: str) -> List[Document]:
        return [
            self._documents[doc_id].model_copy()
            for doc_id, gid in self._memberships
            if gid == group_id and doc_id in self._documents
        ]

    async def list_document_groups(self, document_id: str) -> List[Group]:
        return [
            self._groups[gid].model_copy()
            for doc_id, gid in self._memberships
            if doc_id == document_id and gid in self._groups
        ]


class MongoDocumentStore:
    """MongoDB-backed store using the async Motor driver."""

    def __init__(self, url: str, database: str) -> None:
        self._url = url
        self._database_name = database
        self.client: Optional[AsyncIOMotorClient] = None

    async def initialize(self) -> None:
        logger.info("Initializing MongoDB document store")
        self.client = AsyncIOMotorClient(self._url)
        db = self.db
        await db["document_groups"].create_index([("document_id", 1), ("group_id", 1)], unique=True)
        await db["documents"].create_index([("status", 1)])
        await db["documents"].create_index([("created_at", -1)])
        logger.info("MongoDB document store initialized")

    async def close(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None

    @property
    def db(self) -> AsyncIOMotorDatabase:
        if self.client is None:
            raise DatastoreError("MongoDB client not initialized")
        return self.client[self._database_name]

    @staticmethod
    def _decode_document(raw: Mapping[str, Any]) -> Document:
        payload = dict(raw)
        payload["id"] = str(payload.pop("_id"))
        return Document.model_validate(payload)

    @staticmethod
    def _decode_group(raw: Mapping[str, Any]) -> Group:
        payload = dict(raw)
        payload["id"] = str(payload.pop("_id"))
        return Group.model_validate(payload)

    async def get_document(self, document_id: str) -> Optional[Document]:
        try:
            raw = await self.db["documents"].find_one({"_id": document_id})
        except PyMongoError as exc:
            raise DatastoreError(f"Document lookup failed: {exc}", details={"document_id": document_id}) from exc
        return self._decode_document(raw) if raw else None

    async def insert_document(self, document: Document) -> Document:
        record = _encode(document.model_dump(exclude={"id"}))
        record["_id"] = document.id
        try:
            await self.db["documents"].insert_one(record)
        except PyMongoError as exc:
            raise DatastoreError(f"Document insert failed: {exc}", details={"document_id": document.id}) from exc
        return document

    async def update_document(self, document_id: str, fields: Mapping[str, Any]) -> None:
        updates = _encode(_validate_fields(fields))
        try:
            result = await self.db["documents"].update_one({"_id": document_id}, {"$set": updates})
        except PyMongoError as exc:
            raise DatastoreError(f"Document update failed: {exc}", details={"document_id": document_id}) from exc
        if result.matched_count == 0:
            raise DatastoreError("Document not found", details={"document_id": document_id})

    async def delete_document(self, document_id: str) -> bool:
        try:
            result = await self.db["documents"].delete_one({"_id": document_id})
            await self.db["document_groups"].delete_many({"document_id": document_id})
        except PyMongoError as exc:
            raise DatastoreError(f"Document delete failed: {exc}", details={"document_id": document_id}) from exc
        return result.deleted_count > 0

    async def list_documents(
        self, *, status: Optional[DocumentStatus] = None, search: Optional[str] = None
    ) -> List[Document]:
        query: Dict[str, Any] = {}
        if status is not None:
            query["status"] = status.value
        if search and search.strip():
            pattern = re.escape(search.strip())
            query["$or"] = [
                {"name": {"$regex": pattern, "$options": "i"}},
                {"summary": {"$regex": pattern, "$options": "i"}},
            ]
        try:
            cursor = self.db["documents"].find(query).sort("created_at", -1)
            return [self._decode_document(raw) async for raw in cursor]
        except PyMongoError as exc:
            raise DatastoreError(f"Document listing failed: {exc}") from exc

    async def insert_group(self, group: Group) -> Group:
        record = _encode(group.model_dump(exclude={"id"}))
        record["_id"] = group.id
        try:
            await self.db["groups"].insert_one(record)
        except PyMongoError as exc:
            raise DatastoreError(f"Group insert failed: {exc}", details={"group_id": group.id}) from exc
        return group

    async def get_group(self, group_id: str) -> Optional[Group]:
        try:
            raw = await self.db["groups"].find_one({"_id": group_id})
        except PyMongoError as exc:
            raise DatastoreError(f"Group lookup failed: {exc}", details={"group_id": group_id}) from exc
        return self._decode_group(raw) if raw else None

    async def list_groups(self) -> List[Group]:
        try:
            cursor = self.db["groups"].find({}).sort("created_at", -1)
            return [self._decode_group(raw) async for raw in cursor]
        except PyMongoError as exc:
            raise DatastoreError(f"Group listing failed: {exc}") from exc

    async def delete_group(self, group_id: str) -> bool:
        try:
            result = await self.db["groups"].delete_one({"_id": group_id})
            await self.db["document_groups"].delete_many({"group_id": group_id})
        except PyMongoError as exc:
            raise DatastoreError(f"Group delete failed: {exc}", details={"group_id": group_id}) from exc
        return result.deleted_count > 0

    async def add_membership(self, document_id: str, group_id: str) -> DocumentGroup:
        membership = DocumentGroup(document_id=document_id, group_id=group_id)
        try:
            await self.db["document_groups"].insert_one(membership.model_dump())
        except DuplicateKeyError:
            logger.debug("Membership %s/%s already exists", document_id, group_id)
        except PyMongoError as exc:
            raise DatastoreError(
                f"Membership insert failed: {exc}", details={"document_id": document_id, "group_id": group_id}
            ) from exc
        return membership

    async def remove_membership(self, document_id: str, group_id: str) -> bool:
        try:
            result = await self.db["document_groups"].delete_one({"document_id": document_id, "group_id": group_id})
        except PyMongoError as exc:
            raise DatastoreError(
                f"Membership delete failed: {exc}", details={"document_id": document_id, "group_id": group_id}
            ) from exc
        return result.deleted_count > 0

    async def list_group_documents(self, group_id: str) -> List[Document]:
        try:
            ids = [row["document_id"] async for row in self.db["document_groups"].find({"group_id": group_id})]
            if not ids:
                return []
            cursor = self.db["documents"].find({"_id": {"$in": ids}})
            return [self._decode_document(raw) async for raw in cursor]
        except PyMongoError as exc:
            raise DatastoreError(f"Group member listing failed: {exc}", details={"group_id": group_id}) from exc

    async def list_document_groups(self, document_id: str) -> List[Group]:
        try:
            ids = [row["group_id"] async for row in self.db["document_groups"].find({"document_id": document_id})]
            if not ids:
                return []
            cursor = self.db["groups"].find({"_id": {"$in": ids}})
            return [self._decode_group(raw) async for raw in cursor]
        except PyMongoError as exc:
            raise DatastoreError(
                f"Document group listing failed: {exc}", details={"document_id": document_id}
            ) from exc


def build_document_store(config: Settings) -> DocumentStore:
    """Instantiate the datastore selected by `DATASTORE_BACKEND`."""

    if config.DATASTORE_BACKEND == "mongodb":
        return MongoDocumentStore(str(config.MONGODB_URL), config.MONGODB_DATABASE)
    return InMemoryDocumentStore()
