"""Employee image storage: inline in the record, or in an external upload directory."""

from __future__ import annotations

import asyncio
import logging
import os
import re
import tempfile
import time
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

from app.core.config import Settings
from app.core.exceptions import AttachmentTypeError, StorageError
from app.models.employee import DEFAULT_CONTENT_TYPE, AttachmentRef

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: str | None) -> str:
    name = Path(filename or "").name
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._")
    return name or "upload"


class AttachmentStore(ABC):
    mode: str = ""
    requires_attachment: bool = False

    def initialize(self) -> None:
        return None

    @abstractmethod
    async def store(self, data: bytes, content_type: str | None, filename: str | None = None) -> AttachmentRef:
        """Persist the bytes and return a reference that can be saved on the record."""

    def resolve(self, ref: AttachmentRef) -> tuple[bytes | str, str]:
        if ref.kind == "inline":
            return ref.data or b"", ref.content_type
        return ref.locator or "", ref.content_type

    async def release(self, ref: AttachmentRef) -> None:
        return None

    def check(self) -> bool:
        return True


class InlineAttachmentStore(AttachmentStore):
    """Keeps the image bytes on the record itself."""

    mode = "inline"
    requires_attachment = True

    async def store(self, data: bytes, content_type: str | None, filename: str | None = None) -> AttachmentRef:
        return AttachmentRef(kind="inline", data=data, content_type=content_type or DEFAULT_CONTENT_TYPE)


class ExternalAttachmentStore(AttachmentStore):
    """Writes images to ``upload_dir`` and keeps only a URL locator on the record.

    Files are named ``<time_ns>-<random>-<original name>`` so concurrent uploads
    of the same file never collide, and are written through a temporary file
    that is renamed into place once complete.
    """

    mode = "external"
    requires_attachment = False

    def __init__(self, upload_dir: str | Path, url_prefix: str = "/uploads") -> None:
        self.upload_dir = Path(upload_dir)
        self.url_prefix = "/" + url_prefix.strip("/")

    def initialize(self) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        logger.info("ExternalAttachmentStore initialized (dir=%s)", self.upload_dir)

    async def store(self, data: bytes, content_type: str | None, filename: str | None = None) -> AttachmentRef:
        if not content_type or not content_type.startswith("image/"):
            raise AttachmentTypeError(f"Only image files are allowed, got {content_type or 'unknown type'}")

        stored_name = f"{time.time_ns()}-{uuid.uuid4().hex[:8]}-{safe_filename(filename)}"
        try:
            await asyncio.to_thread(self._write, stored_name, data)
        except OSError as e:
            logger.error("Failed to write attachment %s: %s", stored_name, e)
            raise StorageError(f"Failed to store attachment: {e}") from e

        return AttachmentRef(
            kind="external",
            locator=f"{self.url_prefix}/{stored_name}",
            content_type=content_type,
        )

    async def release(self, ref: AttachmentRef) -> None:
        if ref.kind != "external" or not ref.locator:
            return
        path = self.path_for(ref.locator)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as e:
            logger.warning("Failed to remove attachment %s: %s", path, e)

    def path_for(self, locator: str) -> Path:
        return self.upload_dir / Path(locator).name

    def check(self) -> bool:
        return self.upload_dir.is_dir() and os.access(self.upload_dir, os.W_OK)

    def _write(self, stored_name: str, data: bytes) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self.upload_dir, prefix=".partial-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_path, self.upload_dir / stored_name)
        except OSError:
            Path(tmp_path).unlink(missing_ok=True)
            raise


def build_attachment_store(settings: Settings) -> AttachmentStore:
    if settings.ATTACHMENT_MODE == "external":
        return ExternalAttachmentStore(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)
    return InlineAttachmentStore()
