from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Callable, Mapping, Optional, Sequence

import requests
from werkzeug.datastructures import FileStorage

from ..common.files import file_bytes, file_mime, file_name
from ..core.constants import DEFAULT_PLUGIN_NAME, DEFAULT_RETRY_ATTEMPTS, DEFAULT_RETRY_DELAY_MS
from .client import validate_create_process, validate_execute_workflow, validate_upload_files
from .dto import FileUploadResponse, ProcessResponse, ProjectsResponse, UserDetails, WorkflowResponse
from .exceptions import (
    CREATE_PROCESS_ENDPOINT,
    STORAGE_ENDPOINT,
    SarasApiError,
    SarasAuthFailed,
    SarasTimeout,
    SarasUnavailable,
    SarasValidationError,
)
from .token_manager import TokenManager

logger = logging.getLogger(__name__)

USER_DETAILS_ENDPOINT = "/users/getUserDetails"
PROJECTS_ENDPOINT = "/process/projects/getProjectsForUser"
EXECUTE_WORKFLOW_ENDPOINT = "/process/workflows/executeWorkflow"


class SarasLiveClient:
    """HTTP client for the Saras API.

    Every call fetches a bearer token first. A 401/403 answer invalidates the
    token before `SarasAuthFailed` is raised, so the following call logs in
    again. POST calls are retried on connection failures and 5xx answers only;
    GET calls and 4xx answers are never retried.
    """

    def __init__(
        self,
        token_manager: TokenManager,
        *,
        base_url: str,
        timeout: float,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS,
        plugin_name: str = DEFAULT_PLUGIN_NAME,
        default_workflow_id: Optional[str] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._tokens = token_manager
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._retry_attempts = max(1, int(retry_attempts))
        self._retry_delay = max(0, int(retry_delay_ms)) / 1000.0
        self._plugin_name = plugin_name
        self._default_workflow_id = default_workflow_id
        self._session = session or requests.Session()
        self._sleep = sleep

    def is_stub_mode(self) -> bool:
        return False

    def get_user_details(self) -> UserDetails:
        data = self._request("GET", USER_DETAILS_ENDPOINT)
        return UserDetails.from_dict(data or {})

    def get_projects_for_user(self, page: int = 1, per_page: int = 10) -> ProjectsResponse:
        if page < 1 or per_page < 1:
            raise ValueError("page and per_page must be positive")
        data = self._request("GET", PROJECTS_ENDPOINT, params={"page": page, "perPageCount": per_page})
        return ProjectsResponse.from_dict(data or {})

    def create_process(
        self,
        sub_project_id: str,
        fields: Mapping[str, Any],
        idempotency_key: Optional[str] = None,
    ) -> ProcessResponse:
        validate_create_process(sub_project_id, fields)
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else {}
        data = self._request(
            "POST",
            CREATE_PROCESS_ENDPOINT,
            json={"subProjectId": sub_project_id, "fields": dict(fields)},
            headers=headers,
            idempotency_key=idempotency_key,
        )
        return ProcessResponse.from_dict(data or {})

    def upload_files(self, files: Sequence[FileStorage]) -> FileUploadResponse:
        validate_upload_files(files)
        # Saras expects the repeated multipart field `files[]`; the whole file is buffered.
        multipart = [("files[]", (file_name(f), file_bytes(f), file_mime(f) or "application/octet-stream")) for f in files]
        data = self._request(
            "POST",
            STORAGE_ENDPOINT,
            params={"pluginName": self._plugin_name},
            files=multipart,
        )
        return FileUploadResponse.from_dict(data)

    def execute_workflow(
        self,
        workflow_id: Optional[str] = None,
        other_details: Optional[Mapping[str, Any]] = None,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> WorkflowResponse:
        workflow_id = validate_execute_workflow(workflow_id or self._default_workflow_id)

        data = self._request(
            "POST",
            EXECUTE_WORKFLOW_ENDPOINT,
            json={
                "workflowId": workflow_id,
                "otherDetails": dict(other_details or {}),
                "payload": dict(payload or {}),
            },
        )
        merged = dict(data) if isinstance(data, Mapping) else {}
        merged["workflowId"] = workflow_id
        return WorkflowResponse.from_dict(merged)

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Optional[Mapping[str, Any]] = None,
        files: Optional[list] = None,
        headers: Optional[Mapping[str, str]] = None,
        idempotency_key: Optional[str] = None,
    ) -> Any:
        request_id = str(uuid.uuid4())
        logger.info(
            "Saras API: %s %s request_id=%s idempotency_key=%s",
            method,
            endpoint,
            request_id,
            idempotency_key,
        )

        token = self._tokens.get_access_token()
        merged_headers = {"Accept": "application/json", "Authorization": f"Bearer {token}"}
        merged_headers.update(headers or {})

        attempts = self._retry_attempts if method.upper() != "GET" else 1
        for attempt in range(1, attempts + 1):
            try:
                resp = self._session.request(
                    method,
                    self._base_url + endpoint,
                    params=params,
                    json=json,
                    files=files,
                    headers=merged_headers,
                    timeout=self._timeout,
                )
            except requests.Timeout as e:
                logger.error("Saras API: timeout request_id=%s endpoint=%s", request_id, endpoint)
                raise SarasTimeout(endpoint) from e
            except requests.ConnectionError as e:
                if attempt < attempts:
                    logger.warning(
                        "Saras API: connection failed, retrying request_id=%s endpoint=%s attempt=%s",
                        request_id,
                        endpoint,
                        attempt,
                    )
                    self._sleep(self._retry_delay)
                    continue
                logger.error("Saras API: connection failed request_id=%s endpoint=%s error=%s", request_id, endpoint, e)
                raise SarasUnavailable(endpoint, "Connection failed") from e
            except requests.RequestException as e:
                logger.error("Saras API: request failed request_id=%s endpoint=%s error=%s", request_id, endpoint, e)
                raise SarasUnavailable(endpoint, str(e) or "Request failed") from e

            logger.info("Saras API: response request_id=%s endpoint=%s status=%s", request_id, endpoint, resp.status_code)

            if resp.status_code >= 500 and attempt < attempts:
                self._sleep(self._retry_delay)
                continue
            if not resp.ok:
                self._raise_for_response(resp, endpoint, request_id)
            return _json_body(resp)

        raise AssertionError("unreachable")  # pragma: no cover

    def _raise_for_response(self, resp: requests.Response, endpoint: str, request_id: str) -> None:
        status = resp.status_code
        data = _json_body(resp)
        data = data if isinstance(data, Mapping) else {}
        message = data.get("message") or data.get("error") or f"Request failed with status {status}"

        logger.error(
            "Saras API: error response request_id=%s endpoint=%s status=%s message=%s",
            request_id,
            endpoint,
            status,
            message,
        )

        if status in (401, 403):
            self._tokens.invalidate_token()
            raise SarasAuthFailed(message, endpoint=endpoint, status_code=status)
        if status == 422:
            raise SarasValidationError(endpoint, message, data.get("errors"))
        if status >= 500:
            raise SarasUnavailable(endpoint, message, status_code=status)
        raise SarasApiError(message, endpoint=endpoint, status_code=status)


def _json_body(resp: requests.Response) -> Any:
    if not resp.content:
        return {}
    try:
        return resp.json()
    except ValueError:
        return {}
