"""Cosmos DB employee record store."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from azure.core.exceptions import AzureError
from azure.cosmos import PartitionKey
from azure.cosmos.aio import CosmosClient
from azure.cosmos.exceptions import CosmosResourceNotFoundError

from app.core.config import Settings
from app.core.exceptions import NotFoundError, StorageError
from app.models.employee import AttachmentRef, EmployeeCreate, EmployeeRecord, EmployeeUpdate
from app.services.attachment_store import AttachmentStore, InlineAttachmentStore, build_attachment_store

logger = logging.getLogger(__name__)

_ORDER_BY = "ORDER BY c.created_at ASC, c.id ASC"

# Multi-property ORDER BY needs a matching composite index.
INDEXING_POLICY: dict[str, Any] = {
    "indexingMode": "consistent",
    "includedPaths": [{"path": "/*"}],
    "excludedPaths": [{"path": "/attachment/*"}],
    "compositeIndexes": [
        [
            {"path": "/created_at", "order": "ascending"},
            {"path": "/id", "order": "ascending"},
        ]
    ],
}


def merge_operations(changes: EmployeeUpdate, attachment: AttachmentRef | None = None) -> list[dict[str, Any]]:
    """Build patch ``set`` operations for the explicitly supplied fields only.

    Fields missing from ``changes.model_fields_set`` produce no operation, so the
    stored values are left as they are. The attachment is replaced only when a
    new one is given.
    """
    operations: list[dict[str, Any]] = []
    values = changes.model_dump(include=changes.model_fields_set)
    for field in EmployeeUpdate.model_fields:
        if field not in values:
            continue
        value = values[field]
        if field == "dob":
            value = value.isoformat()
        operations.append({"op": "set", "path": f"/{field}", "value": value})

    if attachment is not None:
        operations.append({"op": "set", "path": "/attachment", "value": attachment.to_document()})
    return operations


class EmployeeService:
    def __init__(self) -> None:
        self.client: CosmosClient | None = None
        self.container: Any = None
        self.attachments: AttachmentStore = InlineAttachmentStore()
        self.initialized: bool = False

    async def initialize(self, settings: Settings) -> None:
        if self.initialized:
            return

        self.attachments = build_attachment_store(settings)
        self.attachments.initialize()

        endpoint = settings.COSMOS_DB_ENDPOINT
        key = settings.COSMOS_DB_KEY
        database_name = settings.COSMOS_DB_DATABASE
        container_name = settings.COSMOS_DB_EMPLOYEES_CONTAINER

        if not endpoint or not key:
            logger.warning("Cosmos DB credentials missing - service not initialized")
            return

        self.client = CosmosClient(endpoint, key)
        db = await self.client.create_database_if_not_exists(database_name)
        self.container = await db.create_container_if_not_exists(
            id=container_name,
            partition_key=PartitionKey(path="/id"),
            indexing_policy=INDEXING_POLICY,
        )
        self.initialized = True
        logger.info(
            "EmployeeService initialized (container=%s, attachments=%s)",
            container_name,
            self.attachments.mode,
        )

    async def close(self) -> None:
        if self.client:
            await self.client.close()
        self.client = None
        self.container = None
        self.initialized = False

    def ensure_ready(self) -> None:
        """Raise StorageError before any upload is written for a backend that is not connected."""
        self._require_container()

    def _require_container(self) -> Any:
        if not self.container:
            raise StorageError("Employee store is not initialized")
        return self.container

    async def create(self, fields: EmployeeCreate, attachment: AttachmentRef | None = None) -> EmployeeRecord:
        container = self._require_container()
        record = EmployeeRecord(
            id=uuid.uuid4().hex,
            attachment=attachment,
            created_at=datetime.now(timezone.utc),
            **fields.model_dump(),
        )

        try:
            saved = await container.create_item(body=record.to_document())
        except AzureError as e:
            logger.error("Failed to create employee %s: %s", record.id, e)
            if attachment is not None:
                await self.attachments.release(attachment)
            raise StorageError(f"Failed to create employee: {e}") from e

        logger.info("Created employee %s", record.id)
        return EmployeeRecord.from_document(saved)

    async def get(self, employee_id: str) -> EmployeeRecord:
        container = self._require_container()
        try:
            doc = await container.read_item(item=employee_id, partition_key=employee_id)
        except CosmosResourceNotFoundError as e:
            raise NotFoundError(employee_id) from e
        except AzureError as e:
            raise StorageError(f"Failed to read employee {employee_id}: {e}") from e
        return EmployeeRecord.from_document(doc)

    async def update(
        self,
        employee_id: str,
        changes: EmployeeUpdate,
        attachment: AttachmentRef | None = None,
    ) -> EmployeeRecord:
        container = self._require_container()
        operations = merge_operations(changes, attachment)
        if not operations:
            return await self.get(employee_id)

        try:
            doc = await container.patch_item(
                item=employee_id,
                partition_key=employee_id,
                patch_operations=operations,
            )
        except CosmosResourceNotFoundError as e:
            if attachment is not None:
                await self.attachments.release(attachment)
            raise NotFoundError(employee_id) from e
        except AzureError as e:
            logger.error("Failed to update employee %s: %s", employee_id, e)
            if attachment is not None:
                await self.attachments.release(attachment)
            raise StorageError(f"Failed to update employee {employee_id}: {e}") from e

        logger.info("Updated employee %s (%s)", employee_id, ", ".join(op["path"] for op in operations))
        return EmployeeRecord.from_document(doc)

    async def delete(self, employee_id: str) -> None:
        existing = await self.get(employee_id)
        container = self._require_container()
        try:
            await container.delete_item(item=employee_id, partition_key=employee_id)
        except CosmosResourceNotFoundError as e:
            raise NotFoundError(employee_id) from e
        except AzureError as e:
            raise StorageError(f"Failed to delete employee {employee_id}: {e}") from e

        if existing.attachment is not None:
            await self.attachments.release(existing.attachment)
        logger.info("Deleted employee %s", employee_id)

    async def count(self) -> int:
        container = self._require_container()
        try:
            async for total in container.query_items(
                query="SELECT VALUE COUNT(1) FROM c",
                enable_cross_partition_query=True,
            ):
                return int(total)
        except AzureError as e:
            raise StorageError(f"Failed to count employees: {e}") from e
        return 0

    async def list_documents(self, offset: int = 0, limit: int | None = None) -> list[EmployeeRecord]:
        container = self._require_container()

        query = f"SELECT * FROM c {_ORDER_BY}"
        params: list[dict[str, Any]] = []
        if limit is not None:
            query += " OFFSET @offset LIMIT @limit"
            params = [
                {"name": "@offset", "value": offset},
                {"name": "@limit", "value": limit},
            ]

        results: list[EmployeeRecord] = []
        try:
            async for item in container.query_items(
                query=query,
                parameters=params,
                enable_cross_partition_query=True,
            ):
                results.append(EmployeeRecord.from_document(item))
        except AzureError as e:
            raise StorageError(f"Failed to list employees: {e}") from e
        return results

    async def check_connection(self) -> bool:
        if not self.container:
            return False
        try:
            await self.count()
            return True
        except Exception:
            logger.exception("Cosmos DB connection check failed")
            return False


employee_service = EmployeeService()
