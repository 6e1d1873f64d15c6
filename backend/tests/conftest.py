from __future__ import annotations

import copy
from typing import Any

import pytest
from azure.cosmos.exceptions import CosmosResourceExistsError, CosmosResourceNotFoundError
from httpx import ASGITransport, AsyncClient
from starlette.testclient import TestClient

from app.main import app
from app.services.attachment_store import ExternalAttachmentStore, InlineAttachmentStore
from app.services.employee_service import EmployeeService, employee_service

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00"


class FakeCosmosContainer:
    """In-memory stand-in for an azure.cosmos.aio ContainerProxy."""

    def __init__(self) -> None:
        self.items: dict[str, dict[str, Any]] = {}
        self.queries: list[tuple[str, list[dict[str, Any]]]] = []

    async def create_item(self, body: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
        if body["id"] in self.items:
            raise CosmosResourceExistsError(status_code=409, message="Entity with the specified id already exists")
        self.items[body["id"]] = copy.deepcopy(body)
        return copy.deepcopy(body)

    async def read_item(self, item: str, partition_key: str, **kwargs: Any) -> dict[str, Any]:
        if item not in self.items:
            raise CosmosResourceNotFoundError(status_code=404, message="Entity with the specified id does not exist")
        return copy.deepcopy(self.items[item])

    async def patch_item(
        self,
        item: str,
        partition_key: str,
        patch_operations: list[dict[str, Any]],
        **kwargs: Any,
    ) -> dict[str, Any]:
        if item not in self.items:
            raise CosmosResourceNotFoundError(status_code=404, message="Entity with the specified id does not exist")
        doc = self.items[item]
        for operation in patch_operations:
            assert operation["op"] == "set"
            doc[operation["path"].lstrip("/")] = copy.deepcopy(operation["value"])
        return copy.deepcopy(doc)

    async def delete_item(self, item: str, partition_key: str, **kwargs: Any) -> None:
        if item not in self.items:
            raise CosmosResourceNotFoundError(status_code=404, message="Entity with the specified id does not exist")
        del self.items[item]

    def query_items(self, query: str, parameters: list[dict[str, Any]] | None = None, **kwargs: Any):
        self.queries.append((query, parameters or []))
        return self._run_query(query, {p["name"]: p["value"] for p in parameters or []})

    async def _run_query(self, query: str, params: dict[str, Any]):
        if "COUNT(1)" in query:
            yield len(self.items)
            return

        docs = sorted(self.items.values(), key=lambda d: (d["created_at"], d["id"]))
        if "@limit" in params:
            offset = params.get("@offset", 0)
            docs = docs[offset : offset + params["@limit"]]
        for doc in docs:
            yield copy.deepcopy(doc)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fake_container():
    return FakeCosmosContainer()


@pytest.fixture
def service(fake_container):
    svc = EmployeeService()
    svc.container = fake_container
    svc.initialized = True
    return svc


@pytest.fixture
def external_store(tmp_path):
    store = ExternalAttachmentStore(tmp_path / "uploads", "/uploads")
    store.initialize()
    return store


@pytest.fixture
def external_service(service, external_store):
    service.attachments = external_store
    return service


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def employee_client(fake_container):
    with TestClient(app) as c:
        employee_service.container = fake_container
        employee_service.attachments = InlineAttachmentStore()
        employee_service.initialized = True
        yield c


@pytest.fixture
def external_client(fake_container, external_store):
    with TestClient(app) as c:
        employee_service.container = fake_container
        employee_service.attachments = external_store
        employee_service.initialized = True
        yield c
