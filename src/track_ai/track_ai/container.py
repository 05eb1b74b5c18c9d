from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask import has_request_context, session

from .attendance.auto_checkout import AutoCheckoutJob
from .attendance.mysql_attendance_repository import MySQLAttendanceSessionRepository
from .attendance.service import AttendanceService
from .attendance.session_engine import AttendanceSessionEngine
from .core.constants import (
    DEFAULT_PLUGIN_NAME,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_SARAS_TIMEOUT_SECONDS,
    DEFAULT_TOKEN_CACHE_KEY,
)
from .core.enums import SarasMode, TokenStrategy
from .core.exceptions import ConfigError
from .database.connection import DBConfig, DatabaseConnection
from .progress.service import ProgressService
from .projects.mysql_project_repository import MySQLProjectRepository
from .projects.service import ProjectService
from .saras.client import SarasClient
from .saras.live_client import SarasLiveClient
from .saras.status import SarasStatusService
from .saras.stub_client import SarasStubClient
from .saras.token_cache import MySQLTokenCache
from .saras.token_manager import ServiceAccountTokenManager, TokenManager, UserTokenManager
from .uploads.mysql_upload_repository import MySQLUploadRepository
from .uploads.service import UploadService
from .uploads.storage import LocalFileStorage
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import SarasAuthenticator


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    users_repo: MySQLUserRepository
    projects_repo: MySQLProjectRepository
    attendance_repo: MySQLAttendanceSessionRepository
    uploads_repo: MySQLUploadRepository

    saras_client: SarasClient
    token_manager: Optional[TokenManager]

    authenticator: SarasAuthenticator
    session_engine: AttendanceSessionEngine
    attendance_service: AttendanceService
    auto_checkout_job: AutoCheckoutJob
    upload_service: UploadService
    progress_service: ProgressService
    project_service: ProjectService
    saras_status_service: SarasStatusService


def _session_user_id() -> Optional[int]:
    if not has_request_context():
        return None
    user_id = session.get("user_id")
    return int(user_id) if user_id is not None else None


def build_saras_client(saras_config: dict, *, conn: DatabaseConnection, users_repo: MySQLUserRepository):
    """Returns (client, token_manager); the token manager is None in stub mode."""

    mode = SarasMode(saras_config.get("mode", "stub"))
    if mode == SarasMode.STUB:
        return SarasStubClient(default_workflow_id=saras_config.get("workflow_id")), None

    base_url = saras_config.get("base_url")
    if not base_url:
        raise ConfigError("SARAS_BASE_URL is required in live mode")
    timeout = int(saras_config.get("timeout", DEFAULT_SARAS_TIMEOUT_SECONDS))

    strategy = TokenStrategy(saras_config.get("token_strategy", "service_account"))
    if strategy == TokenStrategy.PER_USER:
        token_manager: TokenManager = UserTokenManager(users_repo, _session_user_id)
    else:
        token_manager = ServiceAccountTokenManager(
            MySQLTokenCache(conn),
            base_url=base_url,
            client_id=str(saras_config.get("username", "")),
            client_secret=str(saras_config.get("password", "")),
            cache_key=saras_config.get("token_cache_key") or DEFAULT_TOKEN_CACHE_KEY,
            timeout=timeout,
        )

    client = SarasLiveClient(
        token_manager,
        base_url=base_url,
        timeout=timeout,
        retry_attempts=int(saras_config.get("retry_attempts", DEFAULT_RETRY_ATTEMPTS)),
        retry_delay_ms=int(saras_config.get("retry_delay_ms", DEFAULT_RETRY_DELAY_MS)),
        plugin_name=saras_config.get("plugin_name") or DEFAULT_PLUGIN_NAME,
        default_workflow_id=saras_config.get("workflow_id"),
    )
    return client, token_manager


def build_container(*, db_config: dict, saras_config: dict, uploads_dir: str) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
    )
    conn = DatabaseConnection.get_instance(config)

    users_repo = MySQLUserRepository(conn)
    projects_repo = MySQLProjectRepository(conn)
    attendance_repo = MySQLAttendanceSessionRepository(conn)
    uploads_repo = MySQLUploadRepository(conn)

    saras_client, token_manager = build_saras_client(saras_config, conn=conn, users_repo=users_repo)
    mode = SarasMode(saras_config.get("mode", "stub"))
    subprojects = saras_config.get("subproject_ids") or {}
    flags = saras_config.get("feature_flags") or {}
    default_contract_id = saras_config.get("default_contract_id")

    authenticator = SarasAuthenticator(
        users_repo,
        mode=mode,
        base_url=saras_config.get("base_url") or "",
        timeout=int(saras_config.get("timeout", DEFAULT_SARAS_TIMEOUT_SECONDS)),
    )
    session_engine = AttendanceSessionEngine(attendance_repo)
    attendance_service = AttendanceService(
        saras_client,
        session_engine,
        sub_project_id=subprojects.get("attendance"),
        default_contract_id=default_contract_id,
    )
    upload_service = UploadService(
        uploads_repo,
        projects_repo,
        saras_client,
        LocalFileStorage(uploads_dir),
        sub_project_id=subprojects.get("trackdata"),
        default_contract_id=default_contract_id,
    )
    progress_service = ProgressService(
        saras_client,
        # no dedicated progress subproject yet on most tenants
        sub_project_id=subprojects.get("progress") or subprojects.get("trackdata"),
        default_contract_id=default_contract_id,
        integration_enabled=bool(flags.get("enabled", True)),
        progress_enabled=bool(flags.get("progress_enabled", False)),
    )
    project_service = ProjectService(projects_repo, saras_client)
    saras_status_service = SarasStatusService(
        token_manager,
        mode=mode,
        enabled=bool(flags.get("enabled", True)),
    )

    return Container(
        conn=conn,
        users_repo=users_repo,
        projects_repo=projects_repo,
        attendance_repo=attendance_repo,
        uploads_repo=uploads_repo,
        saras_client=saras_client,
        token_manager=token_manager,
        authenticator=authenticator,
        session_engine=session_engine,
        attendance_service=attendance_service,
        auto_checkout_job=AutoCheckoutJob(session_engine),
        upload_service=upload_service,
        progress_service=progress_service,
        project_service=project_service,
        saras_status_service=saras_status_service,
    )
