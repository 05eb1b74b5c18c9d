from __future__ import annotations

import logging
import secrets
from typing import Any, Callable, Optional, Sequence

from werkzeug.datastructures import FileStorage

from ..audit import audit_log
from ..common.datetime_utils import now_local
from ..common.idempotency import generate_idempotency_key
from ..core.constants import LOCAL_ENTRY_PREFIX
from ..core.exceptions import ConfigError
from ..saras.client import SarasClient
from ..saras.dto import AiWorkflowResponse, FileUploadResponse, ProcessResponse
from ..saras.exceptions import SarasApiError

logger = logging.getLogger(__name__)

DISABLED_MESSAGE = "AI workflow is not available (Saras sync pending)"


class ProgressService:
    """Progress reports, photos and AI analysis.

    Sync to Saras is behind two flags: the global integration switch and the
    progress switch. With either off, submissions are acknowledged locally
    with a `local_` id and never reach Saras.
    """

    def __init__(
        self,
        saras: SarasClient,
        *,
        sub_project_id: Optional[str],
        default_contract_id: Optional[str] = None,
        integration_enabled: bool = True,
        progress_enabled: bool = False,
        clock: Callable = now_local,
    ):
        self._saras = saras
        self._sub_project_id = sub_project_id
        self._default_contract_id = default_contract_id
        self._integration_enabled = bool(integration_enabled)
        self._progress_enabled = bool(progress_enabled)
        self._clock = clock

    def is_sync_enabled(self) -> bool:
        return self._integration_enabled and self._progress_enabled

    def submit_progress(
        self,
        user_id: int,
        contract_id: str,
        checklist_items: Sequence[Any],
        remarks: Optional[str] = None,
        latitude: float = 0,
        longitude: float = 0,
        ip_address: Optional[str] = None,
        client_request_id: Optional[str] = None,
    ) -> ProcessResponse:
        if client_request_id:
            idempotency_key = client_request_id
        else:
            idempotency_key = generate_idempotency_key("progress", "submit", user_id, contract_id, now=self._clock())

        if not self.is_sync_enabled():
            audit_log(
                user_id,
                "progress_submit_local",
                contract_id,
                idempotency_key=idempotency_key,
                checklist_count=len(checklist_items),
                saras_sync=False,
            )
            return ProcessResponse(
                success=True,
                entry_id=f"{LOCAL_ENTRY_PREFIX}{secrets.token_hex(6)}",
                message="Progress saved locally (Saras sync pending)",
            )

        if not self._sub_project_id:
            raise ConfigError("Saras progress subproject id is not configured")

        now = self._clock()
        try:
            response = self._saras.create_process(
                self._sub_project_id,
                {
                    "userId": user_id,
                    "contractId": contract_id or self._default_contract_id,
                    "checklistItems": list(checklist_items),
                    "remarks": remarks,
                    "geoLocation": f"{latitude},{longitude}",
                    "ipAddress": ip_address,
                    "date": now.date().isoformat(),
                    "time": now.strftime("%H:%M:%S"),
                },
                idempotency_key,
            )
        except SarasApiError as e:
            logger.warning("Progress sync failed user=%s contract=%s: %s", user_id, contract_id, e.to_log_context())
            return ProcessResponse.failure(e.message)

        if response.success:
            audit_log(
                user_id,
                "progress_submit",
                contract_id,
                entry_id=response.entry_id,
                idempotency_key=idempotency_key,
                checklist_count=len(checklist_items),
            )
        return response

    def upload_progress_photo(
        self,
        user_id: int,
        contract_id: str,
        entry_id: str,
        file: FileStorage,
        photo_type: str,
    ) -> FileUploadResponse:
        if not self.is_sync_enabled():
            return FileUploadResponse(
                success=True,
                file_ids=(f"{LOCAL_ENTRY_PREFIX}{secrets.token_hex(8)}",),
                message="Photo saved locally (Saras sync pending)",
            )

        try:
            response = self._saras.upload_files([file])
        except SarasApiError as e:
            logger.warning("Progress photo upload failed user=%s entry=%s: %s", user_id, entry_id, e.to_log_context())
            return FileUploadResponse(success=False, file_ids=(), message=e.message)

        if response.success:
            audit_log(
                user_id,
                "progress_photo_upload",
                contract_id,
                entry_id=entry_id,
                file_id=response.first_file_id,
                photo_type=photo_type,
            )
        return response

    def run_ai_analysis(self, user_id: int, contract_id: str, entry_id: str) -> AiWorkflowResponse:
        if not self.is_sync_enabled():
            return AiWorkflowResponse(success=False, workflow_id=None, status="disabled", message=DISABLED_MESSAGE)

        try:
            workflow = self._saras.execute_workflow(other_details={"entryId": entry_id, "contractId": contract_id})
        except SarasApiError as e:
            logger.warning("AI workflow failed user=%s entry=%s: %s", user_id, entry_id, e.to_log_context())
            return AiWorkflowResponse(success=False, workflow_id=None, status="failed", message=e.message)

        audit_log(
            user_id,
            "progress_ai_analysis",
            contract_id,
            entry_id=entry_id,
            workflow_id=workflow.workflow_id,
            execution_id=workflow.execution_id,
        )
        return AiWorkflowResponse(
            success=workflow.success,
            workflow_id=workflow.workflow_id or None,
            status=workflow.status,
            results=workflow.result,
            message=workflow.message,
        )

    def get_ai_status(self, workflow_id: str) -> AiWorkflowResponse:
        if not self.is_sync_enabled():
            return AiWorkflowResponse(success=False, workflow_id=workflow_id, status="disabled", message=DISABLED_MESSAGE)

        # Saras exposes no status endpoint for workflow executions yet.
        return AiWorkflowResponse(
            success=False,
            workflow_id=workflow_id,
            status="not_implemented",
            message="AI workflow status API not yet implemented",
        )
