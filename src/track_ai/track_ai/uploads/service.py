from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from werkzeug.datastructures import FileStorage

from ..audit import audit_log
from ..common.datetime_utils import now_local
from ..common.files import file_mime, file_name, file_size
from ..common.idempotency import generate_idempotency_key
from ..common.validators import optional_text, require_non_empty
from ..core.enums import UploadStatus
from ..core.exceptions import AuthorizationError, ConfigError, ConflictError, NotFoundError, ValidationError
from ..projects.repository import ProjectRepository
from ..saras.client import SarasClient
from ..saras.exceptions import CREATE_PROCESS_ENDPOINT, SarasApiError, SarasUploadFailed, SarasValidationError
from .model import Upload
from .repository import UploadRepository
from .storage import LocalFileStorage

logger = logging.getLogger(__name__)


class UploadService:
    """Upload lifecycle: pending -> uploading -> uploaded | failed, plus retry, lock and delete.

    Raw bytes are staged locally before any remote call. Remote sync is two
    steps (file to storage, then a process entry pointing at the file id);
    any Saras error along the way leaves the record `failed` with the staged
    file intact for a later retry.
    """

    def __init__(
        self,
        uploads: UploadRepository,
        projects: ProjectRepository,
        saras: SarasClient,
        storage: LocalFileStorage,
        *,
        sub_project_id: Optional[str],
        default_contract_id: Optional[str] = None,
        clock: Callable = now_local,
    ):
        self._uploads = uploads
        self._projects = projects
        self._saras = saras
        self._storage = storage
        self._sub_project_id = sub_project_id
        self._default_contract_id = default_contract_id
        self._clock = clock

    def get_upload(self, upload_id: int, user_id: int) -> Upload:
        upload = self._uploads.get_by_id(upload_id)
        if upload is None or upload.is_deleted():
            raise NotFoundError(f"Upload {upload_id} not found")
        if upload.user_id != user_id:
            raise AuthorizationError("You do not own this upload")
        return upload

    def list_uploads(
        self,
        project_external_id: str,
        *,
        status: Optional[str] = None,
        tag: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[Upload]:
        try:
            status_filter = UploadStatus(status) if status else None
        except ValueError:
            raise ValidationError(f"Unknown upload status: {status}")
        return list(
            self._uploads.list_for_project(
                project_external_id,
                status=status_filter,
                tag=optional_text(tag),
                search=optional_text(search),
            )
        )

    def create_upload_record(
        self,
        user_id: int,
        project_external_id: str,
        *,
        title: str,
        client_request_id: str,
        document_type: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        remarks: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> Upload:
        """Enqueue an upload locally. No remote call happens here."""

        title = require_non_empty(title, "title")
        client_request_id = require_non_empty(client_request_id, "client_request_id")
        if self._uploads.get_by_client_request_id(client_request_id) is not None:
            raise ConflictError(f"Upload with client_request_id {client_request_id!r} already exists")

        project = self._projects.get_by_external_id(project_external_id)
        upload = self._uploads.create(
            user_id=user_id,
            project_id=project.project_id if project else None,
            project_external_id=project_external_id,
            title=title,
            client_request_id=client_request_id,
            remarks=optional_text(remarks),
            document_type=optional_text(document_type),
            tags=list(tags or []),
            latitude=latitude,
            longitude=longitude,
            created_at=self._clock(),
        )
        audit_log(
            user_id,
            "upload_enqueued",
            project_external_id,
            upload_id=upload.upload_id,
            client_request_id=client_request_id,
            title=title,
            document_type=upload.document_type,
        )
        return upload

    def update_metadata(
        self,
        upload: Upload,
        user_id: int,
        *,
        title: Optional[str] = None,
        remarks: Optional[str] = None,
        document_type: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
    ) -> Upload:
        self._ensure_owner(upload, user_id)
        if not upload.is_editable():
            raise AuthorizationError("This upload can no longer be edited")

        updated = self._uploads.update_metadata(
            upload.upload_id,
            title=require_non_empty(title, "title") if title is not None else upload.title,
            remarks=optional_text(remarks) if remarks is not None else upload.remarks,
            document_type=optional_text(document_type) if document_type is not None else upload.document_type,
            tags=list(tags) if tags is not None else list(upload.tags),
        )
        audit_log(
            user_id,
            "upload_metadata_updated",
            upload.project_external_id,
            upload_id=upload.upload_id,
            old={"title": upload.title, "remarks": upload.remarks, "document_type": upload.document_type, "tags": list(upload.tags)},
            new={"title": updated.title, "remarks": updated.remarks, "document_type": updated.document_type, "tags": list(updated.tags)},
        )
        return updated

    def delete_upload(self, upload: Upload, user_id: int, reason: Optional[str] = None) -> bool:
        """Hard delete while still pending (nothing exists remotely), soft delete otherwise."""

        self._ensure_owner(upload, user_id)
        if not upload.is_deletable():
            raise AuthorizationError("This upload can no longer be deleted")

        was_pending = upload.is_pending()
        audit_log(
            user_id,
            "upload_deleted",
            upload.project_external_id,
            upload_id=upload.upload_id,
            was_pending=was_pending,
            reason=reason,
        )
        if was_pending:
            self._uploads.hard_delete(upload.upload_id)
        else:
            self._uploads.soft_delete(upload.upload_id, deleted_at=self._clock())
        return True

    def retry_upload(self, upload: Upload, user_id: int) -> Upload:
        self._ensure_owner(upload, user_id)
        if not upload.is_retryable():
            raise AuthorizationError("Only failed, unlocked uploads can be retried")

        updated = self._uploads.set_status(upload.upload_id, UploadStatus.PENDING, last_error=None)
        audit_log(user_id, "upload_retry", upload.project_external_id, upload_id=upload.upload_id)
        return updated

    def lock_upload(self, upload: Upload, user_id: Optional[int], reason: str) -> Upload:
        """Lock is permanent; there is no unlock."""

        if upload.is_locked():
            return upload
        locked = self._uploads.lock(upload.upload_id, locked_at=self._clock(), reason=require_non_empty(reason, "reason"))
        audit_log(user_id, "upload_locked", upload.project_external_id, upload_id=upload.upload_id, reason=reason)
        return locked

    def get_local_file(self, upload: Upload) -> str:
        if not self._storage.exists(upload.local_path):
            raise NotFoundError("File not found")
        return str(upload.local_path)

    def upload_file_to_remote(
        self,
        upload: Upload,
        file: Optional[FileStorage] = None,
        *,
        latitude: float = 0,
        longitude: float = 0,
        ip_address: Optional[str] = None,
    ) -> Upload:
        """Two-step remote sync. Without `file`, the previously staged file is re-sent.

        Saras failures are recorded on the record (`failed` + `last_error`), not raised.
        """

        if upload.is_locked() or upload.is_deleted():
            raise AuthorizationError("This upload can no longer be synced")
        if upload.status == UploadStatus.UPLOADED:
            return upload

        if file is not None:
            upload = self._uploads.update_file(
                upload.upload_id,
                original_filename=file_name(file),
                mime_type=file_mime(file),
                size_bytes=file_size(file),
                local_path=upload.local_path,
            )
            local_path = self._storage.stage(
                project_external_id=upload.project_external_id,
                upload_id=upload.upload_id,
                file=file,
            )
            upload = self._uploads.update_file(
                upload.upload_id,
                original_filename=upload.original_filename or file_name(file),
                mime_type=upload.mime_type,
                size_bytes=upload.size_bytes or 0,
                local_path=local_path,
            )
        else:
            file = self._storage.open_staged(upload.local_path or "", mime_type=upload.mime_type)
            if file is None:
                raise ValidationError("No file attached to this upload")

        sub_project_id = self._require_sub_project()
        upload = self._uploads.set_status(upload.upload_id, UploadStatus.UPLOADING)

        if upload.client_request_id:
            idempotency_key = upload.client_request_id
        else:
            idempotency_key = generate_idempotency_key(
                "upload", "sync", upload.user_id, upload.project_external_id, now=self._clock()
            )

        try:
            file_response = self._saras.upload_files([file])
            remote_file_id = file_response.first_file_id
            if not file_response.success or not remote_file_id:
                raise SarasUploadFailed(
                    file_response.message or "File upload returned no file ID",
                    context={"upload_id": upload.upload_id},
                )

            now = self._clock()
            process = self._saras.create_process(
                sub_project_id,
                {
                    "file": remote_file_id,
                    "contractId": upload.project_external_id or self._default_contract_id,
                    "name": upload.title,
                    "documentType": upload.document_type,
                    "tags": list(upload.tags),
                    "remarks": upload.remarks,
                    "ipAddress": ip_address,
                    "geoLocation": f"{latitude},{longitude}",
                    "date": now.date().isoformat(),
                    "time": now.strftime("%H:%M:%S"),
                },
                idempotency_key,
            )
            if not process.success:
                raise SarasValidationError(
                    CREATE_PROCESS_ENDPOINT,
                    process.message or "Failed to create process entry",
                )
        except SarasApiError as e:
            logger.warning("Upload %s sync failed: %s", upload.upload_id, e.to_log_context())
            failed = self._uploads.set_status(upload.upload_id, UploadStatus.FAILED, last_error=e.message)
            audit_log(
                upload.user_id,
                "upload_failed",
                upload.project_external_id,
                upload_id=upload.upload_id,
                error=e.message,
                error_type=e.type.value,
            )
            return failed
        except Exception as e:
            # Unexpected errors still leave the record retryable, then propagate.
            logger.exception("Upload %s sync crashed", upload.upload_id)
            self._uploads.set_status(upload.upload_id, UploadStatus.FAILED, last_error=str(e) or type(e).__name__)
            raise

        synced = self._uploads.mark_uploaded(upload.upload_id, entry_id=process.entry_id, remote_file_id=remote_file_id)
        audit_log(
            upload.user_id,
            "upload_synced",
            upload.project_external_id,
            upload_id=upload.upload_id,
            entry_id=process.entry_id,
            file_id=remote_file_id,
            idempotency_key=idempotency_key,
            file_name=synced.original_filename,
            file_size=synced.size_bytes,
        )
        return synced

    def _require_sub_project(self) -> str:
        if not self._sub_project_id:
            raise ConfigError("Saras trackdata subproject id is not configured")
        return self._sub_project_id

    @staticmethod
    def _ensure_owner(upload: Upload, user_id: int) -> None:
        if upload.user_id != user_id:
            raise AuthorizationError("You do not own this upload")
