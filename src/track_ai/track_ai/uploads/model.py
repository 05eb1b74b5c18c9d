from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import UploadStatus


@dataclass(frozen=True)
class Upload:
    upload_id: int
    user_id: int
    project_external_id: str
    title: str
    client_request_id: str
    status: UploadStatus = UploadStatus.PENDING
    project_id: Optional[int] = None
    # Joined from the owning project; False when there is none.
    project_closed: bool = False

    remarks: Optional[str] = None
    document_type: Optional[str] = None
    tags: tuple[str, ...] = field(default_factory=tuple)
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    original_filename: Optional[str] = None
    mime_type: Optional[str] = None
    size_bytes: Optional[int] = None
    local_path: Optional[str] = None

    entry_id: Optional[str] = None
    remote_file_id: Optional[str] = None
    last_error: Optional[str] = None

    locked_at: Optional[datetime] = None
    locked_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    def is_pending(self) -> bool:
        return self.status == UploadStatus.PENDING

    def is_deleted(self) -> bool:
        return self.status == UploadStatus.DELETED or self.deleted_at is not None

    def is_locked(self) -> bool:
        return self.locked_at is not None

    def is_editable(self) -> bool:
        return not self.is_locked() and not self.is_deleted() and not self.project_closed

    def is_deletable(self) -> bool:
        return self.is_editable()

    def is_retryable(self) -> bool:
        return self.status == UploadStatus.FAILED and not self.is_locked()

    def to_dict(self) -> dict:
        return {
            "id": self.upload_id,
            "project_external_id": self.project_external_id,
            "title": self.title,
            "remarks": self.remarks,
            "document_type": self.document_type,
            "tags": list(self.tags),
            "status": self.status.value,
            "client_request_id": self.client_request_id,
            "entry_id": self.entry_id,
            "remote_file_id": self.remote_file_id,
            "mime_type": self.mime_type,
            "size_bytes": self.size_bytes,
            "last_error": self.last_error,
            "is_locked": self.is_locked(),
            "locked_reason": self.locked_reason,
            "is_editable": self.is_editable(),
            "is_retryable": self.is_retryable(),
            "created_at": self.created_at.isoformat(sep=" ") if self.created_at else None,
        }
