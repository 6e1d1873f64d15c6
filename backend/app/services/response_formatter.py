"""Renders stored employees into the shape returned to clients."""

from __future__ import annotations

import base64

from app.models.employee import EmployeePage, EmployeeRecord, EmployeeResponse
from app.services.attachment_store import AttachmentStore
from app.services.query_engine import EmployeePageResult


def render_image(record: EmployeeRecord, store: AttachmentStore) -> tuple[str | None, str | None]:
    """Inline bytes become a data URI; external attachments are returned as their locator."""
    if record.attachment is None:
        return None, None

    payload, content_type = store.resolve(record.attachment)
    if isinstance(payload, bytes):
        encoded = base64.b64encode(payload).decode("ascii")
        return f"data:{content_type};base64,{encoded}", content_type
    return payload, content_type


def format_employee(record: EmployeeRecord, store: AttachmentStore) -> EmployeeResponse:
    image, content_type = render_image(record, store)
    return EmployeeResponse(
        id=record.id,
        title=record.title,
        name=record.name,
        designation=record.designation,
        dob=record.dob,
        address=record.address,
        image=image,
        content_type=content_type,
        created_at=record.created_at,
    )


def format_page(result: EmployeePageResult, store: AttachmentStore) -> EmployeePage:
    return EmployeePage(
        total_records=result.total_records,
        total_pages=result.total_pages,
        current_page=result.current_page,
        employees=[format_employee(record, store) for record in result.records],
    )
