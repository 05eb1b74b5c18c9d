from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import Project


class ProjectRepository(Protocol):
    def get_by_id(self, project_id: int) -> Optional[Project]:
        raise NotImplementedError

    def get_by_external_id(self, external_id: str) -> Optional[Project]:
        raise NotImplementedError

    def list_all(self) -> Sequence[Project]:
        raise NotImplementedError

    def upsert(
        self,
        *,
        external_id: str,
        name: str,
        description: Optional[str],
        status: str,
        cached_at: datetime,
    ) -> Project:
        raise NotImplementedError
