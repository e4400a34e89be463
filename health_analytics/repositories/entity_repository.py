"""
Document store repository shared by all entity kinds.

One instance per kind, built from its EntityKind entry. Repositories hold no
state between calls beyond the collection handle; every error is raised to the
caller and nothing is retried here.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from bson import ObjectId
from pydantic import TypeAdapter, ValidationError
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from health_analytics.exceptions import (
    AlreadyExists,
    Cancelled,
    DecodeFailure,
    InvalidFilter,
    InvalidIdentity,
    NotFound,
    StoreUnavailable,
)
from health_analytics.infrastructure.observability.logging import get_logger
from health_analytics.models.domain.entity_kinds import EntityKind
from health_analytics.models.domain.health_domain import HealthRecordBase, TaggedPayload

logger = get_logger(__name__)

RecordT = TypeVar("RecordT", bound=HealthRecordBase)


@asynccontextmanager
async def store_call(
    kind: EntityKind, operation: str, timeout: float | None = None
) -> AsyncGenerator[None, None]:
    """
    Run a block of store I/O under an optional deadline and map driver errors.

    Usage:
        async with store_call(kind, "create", timeout):
            await collection.insert_one(document)
    """
    try:
        async with asyncio.timeout(timeout):
            yield
    except TimeoutError as e:
        logger.warning(
            "Document store call abandoned at deadline",
            collection=kind.collection,
            operation=operation,
            timeout=timeout,
        )
        raise Cancelled(
            f"{operation} on {kind.collection} exceeded {timeout}s deadline", operation=operation
        ) from e
    except DuplicateKeyError as e:
        raise AlreadyExists(f"{kind.name} already exists", operation=operation) from e
    except PyMongoError as e:
        logger.error(
            "Document store call failed",
            collection=kind.collection,
            operation=operation,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise StoreUnavailable(
            f"Failed to {operation} {kind.name}: {e}", operation=operation
        ) from e


class EntityRepository(Generic[RecordT]):
    """Create/get/update/delete/list against one entity collection."""

    def __init__(self, database: AsyncDatabase, kind: EntityKind):
        self.kind = kind
        self._collection = database[kind.collection]

    # =================================================================
    # OPERATIONS
    # =================================================================

    async def create(self, record: RecordT, *, timeout: float | None = None) -> str:
        """
        Insert a new record and return its id.

        A caller-supplied id is stored verbatim; creating the same id twice
        raises AlreadyExists and leaves the first record untouched.
        """
        object_id = self._object_id(record.id) if record.id else ObjectId()
        now = datetime.now(UTC)

        document = {"_id": object_id, **self._to_document(record)}
        document["created_at"] = now
        document["updated_at"] = now

        async with store_call(self.kind, "create", timeout):
            await self._collection.insert_one(document)

        logger.info(
            "Record created",
            kind=self.kind.name,
            record_id=str(object_id),
            user_id=record.user_id,
        )
        return str(object_id)

    async def get(self, record_id: str, *, timeout: float | None = None) -> RecordT:
        if not self._is_valid_id(record_id):
            raise NotFound(f"{self.kind.name} not found", operation="get")

        async with store_call(self.kind, "get", timeout):
            document = await self._collection.find_one({"_id": ObjectId(record_id)})

        if document is None:
            raise NotFound(f"{self.kind.name} not found", operation="get")
        return self._from_document(document)

    async def update(self, record: RecordT, *, timeout: float | None = None) -> None:
        """
        Merge the non-empty fields of ``record`` into the stored document.

        Fields that are None, empty strings or empty lists are left as stored,
        so an update can never clear a field.
        """
        object_id = self._object_id(record.id)

        changes = self._changed_fields(record)
        changes["updated_at"] = datetime.now(UTC)

        async with store_call(self.kind, "update", timeout):
            result = await self._collection.update_one({"_id": object_id}, {"$set": changes})

        if result.matched_count == 0:
            raise NotFound(f"{self.kind.name} not found", operation="update")

        logger.info(
            "Record updated",
            kind=self.kind.name,
            record_id=record.id,
            fields=sorted(key for key in changes if key != "updated_at"),
        )

    async def delete(self, record_id: str, *, timeout: float | None = None) -> None:
        if not self._is_valid_id(record_id):
            raise NotFound(f"{self.kind.name} not found", operation="delete")

        async with store_call(self.kind, "delete", timeout):
            result = await self._collection.delete_one({"_id": ObjectId(record_id)})

        if result.deleted_count == 0:
            raise NotFound(f"{self.kind.name} not found", operation="delete")

        logger.info("Record deleted", kind=self.kind.name, record_id=record_id)

    async def list(
        self, filters: Mapping[str, Any] | None = None, *, timeout: float | None = None
    ) -> list[RecordT]:
        """
        Return records matching every given equality filter.

        None or empty-string values mean "no constraint". Order is whatever
        the store returns.
        """
        return await self.query(self.build_filter(filters or {}), timeout=timeout)

    async def query(
        self, filter_document: dict[str, Any], *, timeout: float | None = None
    ) -> list[RecordT]:
        """Return decoded records for a raw store filter."""
        async with store_call(self.kind, "list", timeout):
            cursor = self._collection.find(filter_document)
            try:
                documents = [document async for document in cursor]
            finally:
                await cursor.close()

        return [self._from_document(document) for document in documents]

    # =================================================================
    # CONVERSION
    # =================================================================

    def build_filter(self, filters: Mapping[str, Any]) -> dict[str, Any]:
        query: dict[str, Any] = {}
        model_fields = self.kind.record_model.model_fields

        for field, value in filters.items():
            if field not in self.kind.filter_fields:
                raise InvalidFilter(
                    f"Cannot filter {self.kind.name} by '{field}'. "
                    f"Allowed fields: {', '.join(self.kind.filter_fields)}",
                    operation="list",
                )
            if value is None or value == "":
                continue
            try:
                query[field] = TypeAdapter(model_fields[field].annotation).validate_python(value)
            except ValidationError as e:
                raise InvalidFilter(
                    f"Invalid value for filter '{field}': {value!r}", operation="list"
                ) from e

        return query

    def _to_document(self, record: RecordT) -> dict[str, Any]:
        document = {field: getattr(record, field) for field in self.kind.fields}
        payload_field = self.kind.payload_field
        if payload_field and document.get(payload_field) is not None:
            document[payload_field] = document[payload_field].to_storage()
        return document

    def _changed_fields(self, record: RecordT) -> dict[str, Any]:
        return {
            field: value
            for field, value in self._to_document(record).items()
            if value is not None and value != "" and value != []
        }

    def _from_document(self, document: Mapping[str, Any]) -> RecordT:
        data: dict[str, Any] = {"id": str(document["_id"])}

        for field in (*self.kind.fields, "created_at", "updated_at"):
            value = document.get(field)
            if value is None:
                continue
            if field == self.kind.payload_field and isinstance(value, str):
                value = TaggedPayload.from_storage(value)
            data[field] = value

        try:
            return self.kind.record_model.model_validate(data)
        except ValidationError as e:
            raise DecodeFailure(
                f"Stored {self.kind.name} {data['id']} is malformed: {e}", operation="read"
            ) from e

    @staticmethod
    def _is_valid_id(record_id: str | None) -> bool:
        return isinstance(record_id, str) and ObjectId.is_valid(record_id)

    def _object_id(self, record_id: str | None) -> ObjectId:
        if not self._is_valid_id(record_id):
            raise InvalidIdentity(
                f"Invalid {self.kind.name} ID: {record_id!r}", operation="parse_id"
            )
        return ObjectId(record_id)
