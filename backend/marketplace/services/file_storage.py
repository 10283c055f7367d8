# backend/marketplace/services/file_storage.py
"""
Attachment storage collaborator.

Booking creation only needs ``store`` (returning an opaque reference) and
``delete`` for cleanup when the booking cannot be created.
"""

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from ..core.config import settings
from ..core.enums import AttachmentKind
from ..core.exceptions import ValidationException
from ..core.ulid_helper import generate_ulid

logger = logging.getLogger(__name__)

_KIND_BY_EXTENSION = {
    "jpg": AttachmentKind.IMAGE,
    "jpeg": AttachmentKind.IMAGE,
    "png": AttachmentKind.IMAGE,
    "webp": AttachmentKind.IMAGE,
    "mp4": AttachmentKind.VIDEO,
    "mov": AttachmentKind.VIDEO,
    "mp3": AttachmentKind.AUDIO,
    "wav": AttachmentKind.AUDIO,
    "m4a": AttachmentKind.AUDIO,
}


@dataclass(frozen=True)
class AttachmentUpload:
    filename: str
    content_type: Optional[str]
    data: bytes


@dataclass(frozen=True)
class StoredAttachment:
    file_url: str
    original_filename: str
    content_type: Optional[str]
    kind: AttachmentKind


class FileStorage(Protocol):
    def store(self, filename: str, content_type: Optional[str], data: bytes) -> str:
        ...

    def delete(self, reference: str) -> None:
        ...


def file_extension(filename: str) -> str:
    return Path(filename or "").suffix.lower().lstrip(".")


def attachment_kind(filename: str) -> AttachmentKind:
    try:
        return _KIND_BY_EXTENSION[file_extension(filename)]
    except KeyError:
        raise ValidationException(
            f"Unsupported attachment type: {filename}", code="ATTACHMENT_TYPE_NOT_ALLOWED"
        ) from None


def validate_attachment_uploads(uploads: Sequence[AttachmentUpload]) -> None:
    """Count, total size and extension limits for booking attachments."""
    if len(uploads) > settings.max_attachments:
        raise ValidationException(
            f"You can upload a maximum of {settings.max_attachments} attachments.",
            code="TOO_MANY_ATTACHMENTS",
            details={"max": settings.max_attachments, "received": len(uploads)},
        )

    total = sum(len(upload.data) for upload in uploads)
    if total > settings.max_attachment_total_bytes:
        raise ValidationException(
            "Total attachment size cannot exceed "
            f"{settings.max_attachment_total_bytes // (1024 * 1024)} MB.",
            code="ATTACHMENTS_TOO_LARGE",
            details={"max_bytes": settings.max_attachment_total_bytes, "received_bytes": total},
        )

    allowed = set(settings.allowed_attachment_extensions)
    for upload in uploads:
        if file_extension(upload.filename) not in allowed:
            raise ValidationException(
                f"Unsupported attachment type: {upload.filename}",
                code="ATTACHMENT_TYPE_NOT_ALLOWED",
                details={"allowed": sorted(allowed)},
            )


class LocalFileStorage:
    """Writes files under ``settings.upload_dir``; references are relative paths."""

    def __init__(self, base_dir: Optional[str] = None, folder: str = "bookings"):
        self.base_dir = Path(base_dir or settings.upload_dir)
        self.folder = folder

    def store(self, filename: str, content_type: Optional[str], data: bytes) -> str:
        extension = file_extension(filename)
        reference = f"{self.folder}/{generate_ulid()}" + (f".{extension}" if extension else "")
        target = self.base_dir / reference
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.debug("Stored attachment %s (%d bytes)", reference, len(data))
        return reference

    def delete(self, reference: str) -> None:
        (self.base_dir / reference).unlink(missing_ok=True)


class NullFileStorage:
    """No-op storage used when uploads are disabled; references are synthetic."""

    def store(self, filename: str, content_type: Optional[str], data: bytes) -> str:
        return f"null://{generate_ulid()}.{file_extension(filename)}"

    def delete(self, reference: str) -> None:
        return None


def store_attachments(storage: FileStorage, uploads: Sequence[AttachmentUpload]) -> List[StoredAttachment]:
    """Store every upload or none of them."""
    stored: List[StoredAttachment] = []
    try:
        for upload in uploads:
            reference = storage.store(upload.filename, upload.content_type, upload.data)
            stored.append(
                StoredAttachment(
                    file_url=reference,
                    original_filename=upload.filename,
                    content_type=upload.content_type,
                    kind=attachment_kind(upload.filename),
                )
            )
    except Exception:
        delete_attachments(storage, stored)
        raise
    return stored


def delete_attachments(storage: FileStorage, stored: Sequence[StoredAttachment]) -> None:
    for item in stored:
        try:
            storage.delete(item.file_url)
        except OSError as e:
            logger.warning("Could not delete orphaned attachment %s: %s", item.file_url, e)
