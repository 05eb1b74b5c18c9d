from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

from werkzeug.datastructures import FileStorage

from .dto import FileUploadResponse, ProcessResponse, ProjectsResponse, UserDetails, WorkflowResponse


class SarasClient(Protocol):
    """Contract shared by the stub and live Saras clients.

    Every method may raise `SarasApiError` (see `saras.exceptions`).
    """

    def is_stub_mode(self) -> bool:
        raise NotImplementedError

    def get_user_details(self) -> UserDetails:
        raise NotImplementedError

    def get_projects_for_user(self, page: int = 1, per_page: int = 10) -> ProjectsResponse:
        """One page of projects; callers loop while `current_page <= total_pages`."""

        raise NotImplementedError

    def create_process(
        self,
        sub_project_id: str,
        fields: Mapping[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> ProcessResponse:
        """Create a process entry. `idempotency_key` is sent as the `Idempotency-Key` header."""

        raise NotImplementedError

    def upload_files(self, files: Sequence[FileStorage]) -> FileUploadResponse:
        raise NotImplementedError

    def execute_workflow(
        self,
        workflow_id: Optional[str] = None,
        other_details: Optional[Mapping[str, Any]] = None,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> WorkflowResponse:
        raise NotImplementedError


def validate_create_process(sub_project_id: str, fields: Mapping[str, Any]) -> None:
    """Argument checks shared by both clients so callers see identical behaviour."""

    if not sub_project_id or not str(sub_project_id).strip():
        raise ValueError("sub_project_id is required")
    if not isinstance(fields, Mapping):
        raise TypeError("fields must be a mapping")


def validate_upload_files(files: Sequence[FileStorage]) -> None:
    if not files:
        raise ValueError("at least one file is required")


def validate_execute_workflow(workflow_id: Optional[str]) -> str:
    if not workflow_id or not str(workflow_id).strip():
        raise ValueError("workflow_id is required (argument or SARAS workflow_id setting)")
    return str(workflow_id)
