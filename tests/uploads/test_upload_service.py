from __future__ import annotations

import io
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional

import pytest
import requests
from werkzeug.datastructures import FileStorage

from track_ai.core.enums import UploadStatus
from track_ai.core.exceptions import AuthorizationError, ConflictError, NotFoundError
from track_ai.projects.model import Project
from track_ai.saras.dto import FileUploadResponse, ProcessResponse
from track_ai.saras.exceptions import SarasUnavailable
from track_ai.saras.live_client import SarasLiveClient
from track_ai.uploads.model import Upload
from track_ai.uploads.service import UploadService
from track_ai.uploads.storage import LocalFileStorage

NOW = datetime(2026, 3, 2, 10, 30, 0)


class InMemoryUploads:
    def __init__(self, projects: "InMemoryProjects"):
        self.rows: dict[int, Upload] = {}
        self._projects = projects
        self._next_id = 1

    def _with_project(self, upload: Upload) -> Upload:
        project = self._projects.by_id.get(upload.project_id) if upload.project_id else None
        return replace(upload, project_closed=bool(project and project.is_closed()))

    def get_by_id(self, upload_id):
        row = self.rows.get(upload_id)
        return self._with_project(row) if row else None

    def get_by_client_request_id(self, client_request_id):
        for row in self.rows.values():
            if row.client_request_id == client_request_id:
                return self._with_project(row)
        return None

    def list_for_project(self, project_external_id, *, status=None, tag=None, search=None):
        rows = [r for r in self.rows.values() if r.project_external_id == project_external_id and r.deleted_at is None]
        if status is not None:
            rows = [r for r in rows if r.status == status]
        if tag:
            rows = [r for r in rows if tag in r.tags]
        if search:
            rows = [r for r in rows if search in r.title or search in (r.remarks or "")]
        return [self._with_project(r) for r in rows]

    def create(self, *, user_id, project_id, project_external_id, title, client_request_id, remarks,
               document_type, tags, latitude, longitude, created_at):
        if self.get_by_client_request_id(client_request_id):
            raise ConflictError("duplicate")
        upload = Upload(
            upload_id=self._next_id,
            user_id=user_id,
            project_id=project_id,
            project_external_id=project_external_id,
            title=title,
            client_request_id=client_request_id,
            remarks=remarks,
            document_type=document_type,
            tags=tuple(tags),
            latitude=latitude,
            longitude=longitude,
            created_at=created_at,
        )
        self.rows[upload.upload_id] = upload
        self._next_id += 1
        return self.get_by_id(upload.upload_id)

    def _update(self, upload_id, **changes):
        self.rows[upload_id] = replace(self.rows[upload_id], **changes)
        return self.get_by_id(upload_id)

    def update_metadata(self, upload_id, *, title, remarks, document_type, tags):
        return self._update(upload_id, title=title, remarks=remarks, document_type=document_type, tags=tuple(tags))

    def update_file(self, upload_id, *, original_filename, mime_type, size_bytes, local_path):
        return self._update(
            upload_id, original_filename=original_filename, mime_type=mime_type, size_bytes=size_bytes, local_path=local_path
        )

    def set_status(self, upload_id, status, *, last_error=None):
        return self._update(upload_id, status=status, last_error=last_error)

    def mark_uploaded(self, upload_id, *, entry_id, remote_file_id):
        return self._update(
            upload_id, status=UploadStatus.UPLOADED, entry_id=entry_id, remote_file_id=remote_file_id, last_error=None
        )

    def lock(self, upload_id, *, locked_at, reason):
        return self._update(upload_id, locked_at=locked_at, locked_reason=reason)

    def soft_delete(self, upload_id, *, deleted_at):
        self._update(upload_id, status=UploadStatus.DELETED, deleted_at=deleted_at)

    def hard_delete(self, upload_id):
        del self.rows[upload_id]


class InMemoryProjects:
    def __init__(self, *projects: Project):
        self.by_id = {p.project_id: p for p in projects}

    def get_by_external_id(self, external_id):
        return next((p for p in self.by_id.values() if p.external_id == external_id), None)


class FakeSaras:
    def __init__(self):
        self.upload_error: Optional[Exception] = None
        self.upload_response = FileUploadResponse(success=True, file_ids=("file-uuid-1",))
        self.process_response = ProcessResponse(success=True, entry_id="entry-9")
        self.uploaded_names: list[str] = []
        self.process_calls: list[tuple[str, dict, Optional[str]]] = []

    def upload_files(self, files):
        self.uploaded_names.extend(f.filename for f in files)
        if self.upload_error is not None:
            raise self.upload_error
        return self.upload_response

    def create_process(self, sub_project_id, fields, idempotency_key=None):
        self.process_calls.append((sub_project_id, dict(fields), idempotency_key))
        return self.process_response


def _file(data: bytes = b"%PDF-1.4 report", name: str = "report.pdf") -> FileStorage:
    return FileStorage(stream=io.BytesIO(data), filename=name, content_type="application/pdf")


@pytest.fixture
def projects():
    return InMemoryProjects(
        Project(project_id=1, external_id="PROJ-1", name="Road"),
        Project(project_id=2, external_id="PROJ-CLOSED", name="Old bridge", status="closed"),
    )


@pytest.fixture
def uploads(projects):
    return InMemoryUploads(projects)


@pytest.fixture
def saras():
    return FakeSaras()


@pytest.fixture
def service(uploads, projects, saras, tmp_path):
    return UploadService(
        uploads,
        projects,
        saras,
        LocalFileStorage(tmp_path),
        sub_project_id="sub-trackdata",
        clock=lambda: NOW,
    )


def _create(service, crid="abc", project="PROJ-1", user_id=5):
    return service.create_upload_record(
        user_id, project, title="Daily photo", client_request_id=crid, document_type="photo", tags=["site"]
    )


def test_create_upload_record_is_local_and_pending(service, saras):
    upload = _create(service)

    assert upload.status == UploadStatus.PENDING
    assert upload.project_id == 1
    assert upload.entry_id is None and upload.remote_file_id is None
    assert saras.process_calls == [] and saras.uploaded_names == []


def test_unknown_project_is_allowed_without_project_reference(service):
    upload = _create(service, project="PROJ-UNKNOWN")

    assert upload.project_id is None
    assert upload.is_editable()


def test_duplicate_client_request_id_is_rejected(service):
    _create(service, crid="abc")

    with pytest.raises(ConflictError):
        _create(service, crid="abc")


def test_successful_two_step_sync(service, saras):
    upload = _create(service)

    synced = service.upload_file_to_remote(upload, _file(), latitude=14.5, longitude=121.0, ip_address="10.1.1.1")

    assert synced.status == UploadStatus.UPLOADED
    assert synced.entry_id == "entry-9"
    assert synced.remote_file_id == "file-uuid-1"
    assert synced.mime_type == "application/pdf"
    assert synced.size_bytes == len(b"%PDF-1.4 report")
    sub_project_id, fields, key = saras.process_calls[0]
    assert sub_project_id == "sub-trackdata"
    assert fields["file"] == "file-uuid-1"
    assert fields["name"] == "Daily photo"
    assert fields["tags"] == ["site"]
    assert fields["geoLocation"] == "14.5,121.0"
    assert key == "abc"


def test_remote_failure_marks_failed_and_keeps_staged_file(service, saras):
    upload = _create(service, crid="abc")
    saras.upload_error = SarasUnavailable("/process/knowledges/createStorage", "Connection failed")

    failed = service.upload_file_to_remote(upload, _file())

    assert failed.status == UploadStatus.FAILED
    assert failed.last_error == "Connection failed"
    assert failed.mime_type == "application/pdf"
    assert Path(service.get_local_file(failed)).read_bytes() == b"%PDF-1.4 report"
    assert saras.process_calls == []

    retried = service.retry_upload(failed, 5)
    assert retried.status == UploadStatus.PENDING
    assert retried.last_error is None


def test_retry_resends_the_staged_file(service, saras):
    upload = _create(service)
    saras.upload_error = SarasUnavailable("/process/knowledges/createStorage")
    failed = service.upload_file_to_remote(upload, _file(name="site.pdf"))
    pending = service.retry_upload(failed, 5)

    saras.upload_error = None
    synced = service.upload_file_to_remote(pending)

    assert synced.status == UploadStatus.UPLOADED
    assert saras.uploaded_names == ["site.pdf", "site.pdf"]


def test_upload_without_file_id_fails_before_process_creation(service, saras):
    upload = _create(service)
    saras.upload_response = FileUploadResponse(success=True, file_ids=())

    failed = service.upload_file_to_remote(upload, _file())

    assert failed.status == UploadStatus.FAILED
    assert failed.last_error == "File upload returned no file ID"
    assert saras.process_calls == []


def test_rejected_process_creation_marks_failed(service, saras):
    upload = _create(service)
    saras.process_response = ProcessResponse.failure("contract not found")

    failed = service.upload_file_to_remote(upload, _file())

    assert failed.status == UploadStatus.FAILED
    assert failed.last_error == "contract not found"
    assert failed.remote_file_id is None


def test_pending_upload_is_hard_deleted(service, uploads):
    upload = _create(service)

    service.delete_upload(upload, 5)

    assert upload.upload_id not in uploads.rows


def test_uploaded_upload_is_soft_deleted(service, uploads):
    upload = service.upload_file_to_remote(_create(service), _file())

    service.delete_upload(upload, 5, reason="duplicate photo")

    row = uploads.get_by_id(upload.upload_id)
    assert row.status == UploadStatus.DELETED
    assert row.deleted_at == NOW
    with pytest.raises(NotFoundError):
        service.get_upload(upload.upload_id, 5)


def test_lock_vetoes_edit_delete_and_retry(service, saras):
    upload = _create(service)
    saras.upload_error = SarasUnavailable("/process/knowledges/createStorage")
    failed = service.upload_file_to_remote(upload, _file())

    locked = service.lock_upload(failed, 5, "submitted to auditor")

    assert locked.is_locked() and not locked.is_retryable()
    with pytest.raises(AuthorizationError):
        service.update_metadata(locked, 5, title="New")
    with pytest.raises(AuthorizationError):
        service.delete_upload(locked, 5)
    with pytest.raises(AuthorizationError):
        service.retry_upload(locked, 5)


def test_retry_requires_failed_status(service):
    upload = _create(service)

    with pytest.raises(AuthorizationError):
        service.retry_upload(upload, 5)


def test_closed_project_blocks_edits(service):
    upload = _create(service, project="PROJ-CLOSED")

    assert not upload.is_editable()
    with pytest.raises(AuthorizationError):
        service.update_metadata(upload, 5, title="New title")


def test_only_owner_may_mutate(service):
    upload = _create(service, user_id=5)

    with pytest.raises(AuthorizationError):
        service.delete_upload(upload, 6)
    with pytest.raises(AuthorizationError):
        service.get_upload(upload.upload_id, 6)


def test_update_metadata_keeps_unspecified_fields(service):
    upload = _create(service)

    updated = service.update_metadata(upload, 5, remarks="north wall", tags=["site", "wall"])

    assert updated.title == "Daily photo"
    assert updated.remarks == "north wall"
    assert updated.tags == ("site", "wall")


def test_list_uploads_filters(service):
    _create(service, crid="a")
    second = service.create_upload_record(5, "PROJ-1", title="Rebar check", client_request_id="b", tags=["qa"])

    assert [u.upload_id for u in service.list_uploads("PROJ-1", tag="qa")] == [second.upload_id]
    assert [u.upload_id for u in service.list_uploads("PROJ-1", search="Rebar")] == [second.upload_id]
    assert len(service.list_uploads("PROJ-1", status="pending")) == 2


def test_preview_without_staged_file_is_not_found(service):
    upload = _create(service)

    with pytest.raises(NotFoundError):
        service.get_local_file(upload)


class DroppingSession:
    def request(self, method, url, **kwargs):
        raise requests.exceptions.ChunkedEncodingError("connection broken mid-body")


class StaticTokens:
    def get_access_token(self):
        return "tok"

    def invalidate_token(self):
        pass

    def has_cached_token(self):
        return True


def test_broken_transfer_marks_failed_and_stays_retryable(uploads, projects, tmp_path):
    live = SarasLiveClient(
        StaticTokens(), base_url="https://saras.example/api", timeout=5, session=DroppingSession(), sleep=lambda _: None
    )
    service = UploadService(uploads, projects, live, LocalFileStorage(tmp_path), sub_project_id="sub-trackdata", clock=lambda: NOW)
    upload = _create(service)

    failed = service.upload_file_to_remote(upload, _file())

    assert failed.status == UploadStatus.FAILED
    assert "connection broken mid-body" in failed.last_error
    assert failed.is_retryable()


def test_unexpected_error_is_recorded_then_raised(service, saras, uploads):
    upload = _create(service)
    saras.upload_error = RuntimeError("disk gone")

    with pytest.raises(RuntimeError):
        service.upload_file_to_remote(upload, _file())

    stored = uploads.get_by_id(upload.upload_id)
    assert stored.status == UploadStatus.FAILED
    assert stored.last_error == "disk gone"
    assert stored.is_retryable()
