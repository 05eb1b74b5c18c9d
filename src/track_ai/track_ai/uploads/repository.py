from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import UploadStatus
from .model import Upload


class UploadRepository(Protocol):
    def get_by_id(self, upload_id: int) -> Optional[Upload]:
        raise NotImplementedError

    def get_by_client_request_id(self, client_request_id: str) -> Optional[Upload]:
        raise NotImplementedError

    def list_for_project(
        self,
        project_external_id: str,
        *,
        status: Optional[UploadStatus] = None,
        tag: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Sequence[Upload]:
        """Non-deleted uploads of a project, newest first."""
        raise NotImplementedError

    def create(
        self,
        *,
        user_id: int,
        project_id: Optional[int],
        project_external_id: str,
        title: str,
        client_request_id: str,
        remarks: Optional[str],
        document_type: Optional[str],
        tags: Sequence[str],
        latitude: Optional[float],
        longitude: Optional[float],
        created_at: datetime,
    ) -> Upload:
        """May raise ConflictError when `client_request_id` already exists."""
        raise NotImplementedError

    def update_metadata(
        self,
        upload_id: int,
        *,
        title: str,
        remarks: Optional[str],
        document_type: Optional[str],
        tags: Sequence[str],
    ) -> Upload:
        raise NotImplementedError

    def update_file(
        self,
        upload_id: int,
        *,
        original_filename: str,
        mime_type: Optional[str],
        size_bytes: int,
        local_path: Optional[str],
    ) -> Upload:
        raise NotImplementedError

    def set_status(self, upload_id: int, status: UploadStatus, *, last_error: Optional[str] = None) -> Upload:
        """Also overwrites `last_error` (None clears it)."""
        raise NotImplementedError

    def mark_uploaded(self, upload_id: int, *, entry_id: Optional[str], remote_file_id: str) -> Upload:
        raise NotImplementedError

    def lock(self, upload_id: int, *, locked_at: datetime, reason: str) -> Upload:
        raise NotImplementedError

    def soft_delete(self, upload_id: int, *, deleted_at: datetime) -> None:
        raise NotImplementedError

    def hard_delete(self, upload_id: int) -> None:
        raise NotImplementedError
