"""Limit and page listings over the employee store."""

from __future__ import annotations

import math

from pydantic import BaseModel, computed_field

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.models.employee import EmployeeRecord
from app.services.employee_service import EmployeeService, employee_service


def total_pages(total_records: int, limit: int) -> int:
    return math.ceil(total_records / limit)


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


class EmployeePageResult(BaseModel):
    records: list[EmployeeRecord]
    total_records: int
    current_page: int
    limit: int

    @computed_field
    @property
    def total_pages(self) -> int:
        return total_pages(self.total_records, self.limit)


class EmployeeQueryEngine:
    def __init__(self, service: EmployeeService, default_page_size: int = 10) -> None:
        self.service = service
        self.default_page_size = default_page_size

    async def list_employees(
        self,
        page: int | None = None,
        limit: int | None = None,
    ) -> list[EmployeeRecord] | EmployeePageResult:
        """Page mode when ``page`` is given, limit mode otherwise.

        Without either parameter every record is returned in insertion order.
        """
        if limit is not None and limit < 1:
            raise ValidationError("limit", "must be at least 1")

        if page is None:
            return await self.service.list_documents(limit=limit)

        if page < 1:
            raise ValidationError("page", "must be at least 1")

        size = limit or self.default_page_size
        total = await self.service.count()
        records: list[EmployeeRecord] = []
        if page_offset(page, size) < total:
            records = await self.service.list_documents(offset=page_offset(page, size), limit=size)
        return EmployeePageResult(records=records, total_records=total, current_page=page, limit=size)


query_engine = EmployeeQueryEngine(employee_service, settings.DEFAULT_PAGE_SIZE)
