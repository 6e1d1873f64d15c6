"""Checks submitted employee form data before anything is persisted."""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import ValidationError
from app.models.employee import EmployeeCreate, EmployeeUpdate, ImageUpload

IMAGE_FIELD = "image"


def _first_error(err: PydanticValidationError) -> ValidationError:
    first = err.errors()[0]
    field = str(first["loc"][0]) if first.get("loc") else "request"
    if first.get("type") == "missing":
        return ValidationError(field, "field is required")
    message = first.get("msg", "invalid value").removeprefix("Value error, ")
    return ValidationError(field, message)


def _check_upload(upload: ImageUpload | None, *, required: bool, max_size: int) -> None:
    if upload is None:
        if required:
            raise ValidationError(IMAGE_FIELD, "image file is required")
        return
    if not upload.data:
        raise ValidationError(IMAGE_FIELD, "uploaded file is empty")
    if len(upload.data) > max_size:
        raise ValidationError(IMAGE_FIELD, f"file too large: {len(upload.data)} bytes (max {max_size})")


def _supplied(fields: Mapping[str, str | None]) -> dict[str, str]:
    return {key: value for key, value in fields.items() if value is not None}


def validate_create(
    fields: Mapping[str, str | None],
    upload: ImageUpload | None,
    *,
    attachment_required: bool,
    max_size: int,
) -> EmployeeCreate:
    try:
        employee = EmployeeCreate.model_validate(_supplied(fields))
    except PydanticValidationError as err:
        raise _first_error(err) from err

    _check_upload(upload, required=attachment_required, max_size=max_size)
    return employee


def validate_update(
    fields: Mapping[str, str | None],
    upload: ImageUpload | None,
    *,
    max_size: int,
) -> EmployeeUpdate:
    """Validate only the supplied fields. Absent (``None``) fields stay out of ``model_fields_set``."""
    try:
        changes = EmployeeUpdate.model_validate(_supplied(fields))
    except PydanticValidationError as err:
        raise _first_error(err) from err

    _check_upload(upload, required=False, max_size=max_size)
    return changes
