"""Error taxonomy shared by the employee record services."""

from __future__ import annotations


class EmployeeRecordError(Exception):
    pass


class ValidationError(EmployeeRecordError):
    """A submitted field is missing or invalid."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class AttachmentTypeError(EmployeeRecordError):
    """The uploaded file is not an image."""


class NotFoundError(EmployeeRecordError):
    def __init__(self, employee_id: str) -> None:
        super().__init__(f"Employee with ID {employee_id} not found")
        self.employee_id = employee_id


class StorageError(EmployeeRecordError):
    """The backend or the attachment sink failed to persist or fetch data."""
