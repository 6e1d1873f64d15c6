"""Employee record models stored in Cosmos DB."""

from __future__ import annotations

import base64
from datetime import date, datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator

NonEmptyText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def parse_dob(value: Any) -> Any:
    """Accept ``YYYY-MM-DD`` or an ISO datetime and return the calendar date."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        raise ValueError("date of birth is required")
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise ValueError(f"invalid calendar date '{text}'") from None


class EmployeeCreate(BaseModel):
    """Fields required to create an employee."""

    title: NonEmptyText
    name: NonEmptyText
    designation: NonEmptyText
    dob: date
    address: NonEmptyText

    @field_validator("dob", mode="before")
    @classmethod
    def _parse_dob(cls, value: Any) -> Any:
        return parse_dob(value)


class EmployeeUpdate(BaseModel):
    """Partial update. Only fields in ``model_fields_set`` are applied."""

    title: NonEmptyText | None = None
    name: NonEmptyText | None = None
    designation: NonEmptyText | None = None
    dob: date | None = None
    address: NonEmptyText | None = None

    @field_validator("dob", mode="before")
    @classmethod
    def _parse_dob(cls, value: Any) -> Any:
        return parse_dob(value)


class ImageUpload(BaseModel):
    """Raw file received with a request."""

    data: bytes
    content_type: str | None = None
    filename: str | None = None


class AttachmentRef(BaseModel):
    kind: Literal["inline", "external"]
    content_type: str
    data: bytes | None = None
    locator: str | None = None

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {"kind": self.kind, "content_type": self.content_type}
        if self.kind == "inline":
            doc["data"] = base64.b64encode(self.data or b"").decode("ascii")
        else:
            doc["locator"] = self.locator
        return doc

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> AttachmentRef:
        if doc.get("kind") == "inline":
            return cls(
                kind="inline",
                content_type=doc.get("content_type") or DEFAULT_CONTENT_TYPE,
                data=base64.b64decode(doc.get("data") or ""),
            )
        return cls(
            kind="external",
            content_type=doc.get("content_type") or "",
            locator=doc.get("locator"),
        )


class EmployeeRecord(BaseModel):
    """Persisted employee, as held in the container."""

    id: str
    title: str
    name: str
    designation: str
    dob: date
    address: str
    attachment: AttachmentRef | None = None
    created_at: datetime

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "name": self.name,
            "designation": self.designation,
            "dob": self.dob.isoformat(),
            "address": self.address,
            "attachment": self.attachment.to_document() if self.attachment else None,
            "created_at": self.created_at.isoformat(timespec="microseconds"),
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> EmployeeRecord:
        attachment = doc.get("attachment")
        return cls(
            id=doc["id"],
            title=doc["title"],
            name=doc["name"],
            designation=doc["designation"],
            dob=doc["dob"],
            address=doc["address"],
            attachment=AttachmentRef.from_document(attachment) if attachment else None,
            created_at=doc["created_at"],
        )


class EmployeeResponse(BaseModel):
    """Employee as returned to clients, with the image rendered for display."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    name: str
    designation: str
    dob: date
    address: str
    image: str | None = None
    content_type: str | None = Field(default=None, alias="contentType")
    created_at: datetime = Field(alias="createdAt")


class EmployeePage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_records: int = Field(alias="totalRecords")
    total_pages: int = Field(alias="totalPages")
    current_page: int = Field(alias="currentPage")
    employees: list[EmployeeResponse]
