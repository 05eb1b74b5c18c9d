"""Response envelopes for the Saras API.

Upstream JSON differs between the live API (nested objects, camelCase) and the
stub/legacy shape (flat, snake_case). Each `from_dict` absorbs that difference
so nothing above this module sees raw upstream payloads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence


def _first(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def _str_or_none(value: Any) -> Optional[str]:
    return None if value is None else str(value)


@dataclass(frozen=True)
class LoginResponse:
    access_token: Optional[str]
    expires_in: int
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, default_expires_in: int) -> "LoginResponse":
        # Saras answers with access_token/expires_in; older builds used token/expiresIn.
        return cls(
            access_token=_str_or_none(_first(data, "access_token", "token")),
            expires_in=int(_first(data, "expires_in", "expiresIn", default=default_expires_in)),
            message=data.get("message"),
        )


@dataclass(frozen=True)
class UserDetails:
    user_id: str
    username: Optional[str]
    name: str
    email: Optional[str]
    role: str
    department: Optional[str] = None
    region: Optional[str] = None
    tenant_id: Optional[str] = None
    tenant_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UserDetails":
        tenant = data.get("tenantId")
        tenant = tenant if isinstance(tenant, Mapping) else {}
        return cls(
            user_id=str(_first(data, "id", "user_id", default="")),
            username=_first(data, "username", "email"),
            name=data.get("name") or "Unknown",
            email=data.get("email"),
            role=data.get("role") or "engineer",
            department=data.get("department"),
            region=data.get("region") or tenant.get("name"),
            tenant_id=_str_or_none(tenant.get("id")),
            tenant_name=tenant.get("name"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "department": self.department,
            "region": self.region,
        }


@dataclass(frozen=True)
class ProjectDTO:
    external_id: str
    contract_id: str
    name: str
    description: Optional[str] = None
    status: str = "active"
    location: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    tenant_id: Optional[str] = None
    tenant_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProjectDTO":
        meta = data.get("projectMeta")
        if isinstance(meta, Mapping):
            tenant = data.get("tenantId")
            tenant = tenant if isinstance(tenant, Mapping) else {}
            return cls(
                external_id=str(data.get("id") or ""),
                contract_id=str(_first(meta, "projectId", default=data.get("id") or "")),
                name=meta.get("name") or "Unknown Project",
                description=meta.get("description"),
                status=meta.get("status") or "active",
                location=meta.get("location"),
                start_date=data.get("createdTs"),
                end_date=None,
                tenant_id=_str_or_none(tenant.get("id")),
                tenant_name=tenant.get("name"),
            )

        return cls(
            external_id=str(_first(data, "external_id", "id", default="")),
            contract_id=str(_first(data, "contract_id", "id", default="")),
            name=data.get("name") or "Unknown Project",
            description=data.get("description"),
            status=data.get("status") or "active",
            location=data.get("location"),
            start_date=_first(data, "start_date", "createdTs"),
            end_date=data.get("end_date"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "external_id": self.external_id,
            "contract_id": self.contract_id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "location": self.location,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "tenant_id": self.tenant_id,
            "tenant_name": self.tenant_name,
        }


@dataclass(frozen=True)
class ProjectsResponse:
    success: bool
    projects: Sequence[ProjectDTO]
    current_page: int
    total_pages: int
    total_count: int
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProjectsResponse":
        items = _first(data, "data", "projects", default=[]) or []
        meta = data.get("meta")
        meta = meta if isinstance(meta, Mapping) else {}
        # Live responses put pagination in `meta` and send the numbers as strings.
        return cls(
            success=bool(data.get("success", True)),
            projects=tuple(ProjectDTO.from_dict(p) for p in items),
            current_page=int(_first(meta, "page", default=_first(data, "page", "currentPage", "current_page", default=1))),
            total_pages=int(_first(meta, "totalPages", default=_first(data, "totalPages", "total_pages", default=1))),
            total_count=int(
                _first(meta, "totalCount", default=_first(data, "totalCount", "total_count", "total", default=len(items)))
            ),
            message=data.get("message"),
        )


@dataclass(frozen=True)
class ProcessResponse:
    """Result of `createProcess`. Also used as the envelope for local failures."""

    success: bool
    entry_id: Optional[str] = None
    process_id: Optional[str] = None
    message: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProcessResponse":
        process = data.get("process")
        if isinstance(process, Mapping) and process.get("id"):
            process_id = str(process["id"])
            return cls(
                success=True,
                entry_id=process_id,
                process_id=process_id,
                message=data.get("message") or "Process created successfully",
                created_at=process.get("createdTs"),
            )

        entry_id = _first(data, "entryId", "entry_id", "id")
        success = data.get("success")
        if success is None:
            success = entry_id is not None
        return cls(
            success=bool(success),
            entry_id=_str_or_none(entry_id),
            process_id=_str_or_none(_first(data, "processId", "process_id", "id")),
            message=data.get("message"),
            created_at=_first(data, "createdAt", "created_at"),
        )

    @classmethod
    def failure(cls, message: str) -> "ProcessResponse":
        return cls(success=False, entry_id=None, message=message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "entry_id": self.entry_id,
            "process_id": self.process_id,
            "message": self.message,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class FileUploadResponse:
    success: bool
    file_ids: Sequence[str] = ()
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "FileUploadResponse":
        # createStorage may answer with a bare array, a single file object, or a wrapper.
        if isinstance(data, list):
            files, success, message = data, None, None
        else:
            data = data or {}
            if data.get("id") is not None and "files" not in data:
                files = [data]
            else:
                files = _first(data, "files", "data", default=[]) or []
                if isinstance(files, Mapping):
                    files = [files]
            success, message = data.get("success"), data.get("message")

        file_ids = tuple(
            str(fid)
            for fid in (_first(f, "id", "fileId", "file_id") for f in files if isinstance(f, Mapping))
            if fid
        )
        return cls(
            success=bool(success) if success is not None else bool(file_ids),
            file_ids=file_ids,
            message=message,
        )

    @property
    def first_file_id(self) -> Optional[str]:
        return self.file_ids[0] if self.file_ids else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "file_ids": list(self.file_ids),
            "file_id": self.first_file_id,
            "message": self.message,
        }


@dataclass(frozen=True)
class WorkflowResponse:
    """Acknowledgement of `executeWorkflow`; analysis itself completes asynchronously upstream."""

    success: bool
    workflow_id: str
    execution_id: Optional[str] = None
    status: str = "completed"
    result: Mapping[str, Any] = field(default_factory=dict)
    message: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WorkflowResponse":
        return cls(
            success=bool(data.get("success", True)),
            workflow_id=str(_first(data, "workflowId", "workflow_id", default="")),
            execution_id=_str_or_none(_first(data, "executionId", "execution_id", "id")),
            status=data.get("status") or "completed",
            result=_first(data, "result", "data", default={}) or {},
            message=data.get("message"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "workflow_id": self.workflow_id,
            "execution_id": self.execution_id,
            "status": self.status,
            "result": dict(self.result),
            "message": self.message,
        }


@dataclass(frozen=True)
class AiWorkflowResponse:
    """What the progress feature reports back for AI analysis requests."""

    success: bool
    workflow_id: Optional[str]
    status: str = "pending"
    results: Optional[Mapping[str, Any]] = None
    message: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "workflow_id": self.workflow_id,
            "status": self.status,
            "results": dict(self.results) if self.results is not None else None,
            "message": self.message,
        }
