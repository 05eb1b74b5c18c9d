from __future__ import annotations

import hashlib
import itertools
import math
import uuid
from typing import Any, Callable, Mapping, Optional, Sequence

from werkzeug.datastructures import FileStorage

from ..common.datetime_utils import now_local
from ..common.files import file_mime, file_name, file_size
from .client import validate_create_process, validate_execute_workflow, validate_upload_files
from .dto import FileUploadResponse, ProcessResponse, ProjectsResponse, UserDetails, WorkflowResponse

STUB_PROJECTS: tuple[dict[str, Any], ...] = (
    {
        "external_id": "PROJ-2024-001",
        "contract_id": "CONTRACT-R3-2024-0156",
        "name": "Rehabilitation of National Road Section - Bulacan",
        "description": "Rehabilitation and improvement of 5.2km national road section.",
        "status": "active",
        "location": "Bulacan, Region III",
        "start_date": "2024-01-15",
        "end_date": "2024-12-31",
    },
    {
        "external_id": "PROJ-2024-002",
        "contract_id": "CONTRACT-R3-2024-0189",
        "name": "Bridge Construction - Pampanga River",
        "description": "Construction of new 120-meter bridge crossing Pampanga River.",
        "status": "active",
        "location": "Pampanga, Region III",
        "start_date": "2024-03-01",
        "end_date": "2025-06-30",
    },
    {
        "external_id": "PROJ-2024-003",
        "contract_id": "CONTRACT-R3-2024-0201",
        "name": "Flood Control Project - Nueva Ecija",
        "description": "Implementation of flood mitigation infrastructure.",
        "status": "active",
        "location": "Nueva Ecija, Region III",
        "start_date": "2024-02-01",
        "end_date": "2024-11-30",
    },
)



class SarasStubClient:
    """No-network client returning canned data in the same shapes as the live API.

    Never needs a token. Used for local development and while the live
    integration is switched off.
    """

    def __init__(self, *, default_workflow_id: Optional[str] = None, clock: Callable = now_local):
        self._default_workflow_id = default_workflow_id
        self._clock = clock
        self._sequence = itertools.count(1)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._sequence):012d}"

    @staticmethod
    def _keyed_id(prefix: str, *parts: str) -> str:
        # Same idempotency key, same entry: mirrors upstream de-duplication.
        digest = hashlib.sha256(":".join(parts).encode("utf-8")).hexdigest()
        return f"{prefix}_{digest[:12]}"

    def is_stub_mode(self) -> bool:
        return True

    def get_user_details(self) -> UserDetails:
        return UserDetails.from_dict(
            {
                "user_id": "stub_user_engineer",
                "username": "engineer_stub",
                "name": "Juan Dela Cruz",
                "email": "engineer@dpwh.gov.ph",
                "role": "engineer",
                "department": "DPWH Region III",
                "region": "Central Luzon",
            }
        )

    def get_projects_for_user(self, page: int = 1, per_page: int = 10) -> ProjectsResponse:
        if page < 1 or per_page < 1:
            raise ValueError("page and per_page must be positive")

        total = len(STUB_PROJECTS)
        offset = (page - 1) * per_page
        return ProjectsResponse.from_dict(
            {
                "success": True,
                "data": list(STUB_PROJECTS[offset : offset + per_page]),
                "page": page,
                "totalPages": max(1, math.ceil(total / per_page)),
                "totalCount": total,
            }
        )

    def create_process(
        self,
        sub_project_id: str,
        fields: Mapping[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> ProcessResponse:
        validate_create_process(sub_project_id, fields)
        if idempotency_key:
            entry_id = self._keyed_id("entry", str(sub_project_id), idempotency_key)
            process_id = self._keyed_id("process", str(sub_project_id), idempotency_key)
        else:
            entry_id = self._next_id("entry")
            process_id = self._next_id("process")
        return ProcessResponse.from_dict(
            {
                "success": True,
                "id": entry_id,
                "entryId": entry_id,
                "processId": process_id,
                "message": "Process created successfully (stub)",
                "createdAt": self._clock().isoformat(),
            }
        )

    def upload_files(self, files: Sequence[FileStorage]) -> FileUploadResponse:
        validate_upload_files(files)
        return FileUploadResponse.from_dict(
            {
                "success": True,
                "files": [
                    {
                        "id": str(uuid.uuid5(uuid.NAMESPACE_URL, f"saras-stub:{next(self._sequence)}:{file_name(f)}")),
                        "name": file_name(f),
                        "size": file_size(f),
                        "mimeType": file_mime(f),
                    }
                    for f in files
                ],
                "message": "Files uploaded successfully (stub)",
            }
        )

    def execute_workflow(
        self,
        workflow_id: Optional[str] = None,
        other_details: Optional[Mapping[str, Any]] = None,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> WorkflowResponse:
        workflow_id = validate_execute_workflow(workflow_id or self._default_workflow_id)
        return WorkflowResponse.from_dict(
            {
                "success": True,
                "workflowId": workflow_id,
                "executionId": self._next_id("exec"),
                "status": "completed",
                "result": {
                    "analysis": "AI analysis completed successfully (stub)",
                    "confidence": 0.95,
                    "tags": ["construction", "progress", "site"],
                },
                "message": "Workflow executed successfully (stub)",
            }
        )
