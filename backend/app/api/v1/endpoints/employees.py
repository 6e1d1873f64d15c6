from __future__ import annotations

import logging

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile, status

from app.core.config import settings
from app.core.exceptions import (
    AttachmentTypeError,
    EmployeeRecordError,
    NotFoundError,
    ValidationError,
)
from app.models.employee import AttachmentRef, EmployeePage, EmployeeResponse, ImageUpload
from app.services.employee_service import employee_service
from app.services.query_engine import EmployeePageResult, query_engine
from app.services.request_validator import validate_create, validate_update
from app.services.response_formatter import format_employee, format_page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/employees", tags=["employees"])

EMPLOYEE_FIELDS = ("title", "name", "designation", "dob", "address")


def _http_error(err: EmployeeRecordError, action: str) -> HTTPException:
    if isinstance(err, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err))
    if isinstance(err, AttachmentTypeError):
        return HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(err))
    if isinstance(err, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(err))
    logger.exception("Failed to %s", action)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Error {action}",
    )


async def _read_upload(image: UploadFile | None) -> ImageUpload | None:
    if image is None or not image.filename:
        return None
    return ImageUpload(
        data=await image.read(),
        content_type=image.content_type,
        filename=image.filename,
    )


async def _store_upload(upload: ImageUpload | None) -> AttachmentRef | None:
    if upload is None:
        return None
    employee_service.ensure_ready()
    return await employee_service.attachments.store(upload.data, upload.content_type, upload.filename)


@router.post("", response_model=EmployeeResponse, status_code=status.HTTP_201_CREATED)
async def create_employee(
    title: str | None = Form(None),
    name: str | None = Form(None),
    designation: str | None = Form(None),
    dob: str | None = Form(None),
    address: str | None = Form(None),
    image: UploadFile | None = File(None),
):
    fields = {"title": title, "name": name, "designation": designation, "dob": dob, "address": address}
    try:
        upload = await _read_upload(image)
        employee = validate_create(
            fields,
            upload,
            attachment_required=employee_service.attachments.requires_attachment,
            max_size=settings.MAX_IMAGE_SIZE,
        )
        attachment = await _store_upload(upload)
        record = await employee_service.create(employee, attachment)
    except EmployeeRecordError as err:
        raise _http_error(err, "creating employee") from err

    return format_employee(record, employee_service.attachments)


@router.get("", response_model=list[EmployeeResponse] | EmployeePage)
async def list_employees(
    page: int | None = None,
    limit: int | None = None,
):
    try:
        result = await query_engine.list_employees(page=page, limit=limit)
    except EmployeeRecordError as err:
        raise _http_error(err, "fetching employees") from err

    if isinstance(result, EmployeePageResult):
        return format_page(result, employee_service.attachments)
    return [format_employee(record, employee_service.attachments) for record in result]


@router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(employee_id: str):
    try:
        record = await employee_service.get(employee_id)
    except EmployeeRecordError as err:
        raise _http_error(err, "fetching employee") from err

    return format_employee(record, employee_service.attachments)


@router.put("/{employee_id}", response_model=EmployeeResponse)
async def update_employee(
    employee_id: str,
    request: Request,
    image: UploadFile | None = File(None),
):
    # Read the raw form so a field sent as "" counts as supplied rather than omitted.
    form = await request.form()
    fields = {key: form.get(key) for key in EMPLOYEE_FIELDS if isinstance(form.get(key), str)}
    try:
        upload = await _read_upload(image)
        changes = validate_update(fields, upload, max_size=settings.MAX_IMAGE_SIZE)
        attachment = await _store_upload(upload)
        record = await employee_service.update(employee_id, changes, attachment)
    except EmployeeRecordError as err:
        raise _http_error(err, "updating employee") from err

    return format_employee(record, employee_service.attachments)


@router.delete("/{employee_id}")
async def delete_employee(employee_id: str):
    try:
        await employee_service.delete(employee_id)
    except EmployeeRecordError as err:
        raise _http_error(err, "deleting employee") from err

    return {"message": f"Employee with ID {employee_id} deleted"}
