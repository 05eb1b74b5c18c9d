from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..audit import audit_log
from ..common.datetime_utils import now_local
from ..core.constants import PROJECT_SYNC_PAGE_SIZE
from ..saras.client import SarasClient
from ..saras.exceptions import SarasApiError
from .model import Project
from .repository import ProjectRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectSyncResult:
    success: bool
    projects: list[Project] = field(default_factory=list)
    message: Optional[str] = None


class ProjectService:
    """Use case: refresh the local project cache from Saras."""

    def __init__(
        self,
        projects: ProjectRepository,
        saras: SarasClient,
        *,
        page_size: int = PROJECT_SYNC_PAGE_SIZE,
        clock: Callable = now_local,
    ):
        self._projects = projects
        self._saras = saras
        self._page_size = int(page_size)
        self._clock = clock

    def list_projects(self) -> list[Project]:
        return list(self._projects.list_all())

    def sync_from_saras(self, user_id: Optional[int]) -> ProjectSyncResult:
        synced: list[Project] = []
        page = 1
        try:
            while True:
                response = self._saras.get_projects_for_user(page, self._page_size)
                for remote in response.projects:
                    if not remote.external_id:
                        continue
                    synced.append(
                        self._projects.upsert(
                            external_id=remote.external_id,
                            name=remote.name,
                            description=remote.description,
                            status=remote.status,
                            cached_at=self._clock(),
                        )
                    )
                page += 1
                if page > response.total_pages:
                    break
        except SarasApiError as e:
            logger.warning("Project sync failed: %s", e.to_log_context())
            return ProjectSyncResult(success=False, projects=[], message=f"Failed to sync projects: {e.message}")

        audit_log(user_id, "projects_sync", synced_count=len(synced))
        return ProjectSyncResult(success=True, projects=synced, message=f"{len(synced)} projects synced successfully")
