from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Project
from .repository import ProjectRepository


def _to_project(row: dict[str, Any]) -> Project:
    return Project(
        project_id=int(row["project_id"]),
        external_id=row["external_id"],
        name=row["name"],
        description=row.get("description"),
        status=row.get("status") or "active",
        cached_at=row.get("cached_at"),
    )


class MySQLProjectRepository(ProjectRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, project_id: int) -> Optional[Project]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT project_id, external_id, name, description, status, cached_at FROM projects WHERE project_id=%s",
                (project_id,),
            )
            row = fetchone(cur)
            return _to_project(row) if row else None

    def get_by_external_id(self, external_id: str) -> Optional[Project]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT project_id, external_id, name, description, status, cached_at FROM projects WHERE external_id=%s",
                (external_id,),
            )
            row = fetchone(cur)
            return _to_project(row) if row else None

    def list_all(self) -> Sequence[Project]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT project_id, external_id, name, description, status, cached_at FROM projects ORDER BY name")
            return [_to_project(r) for r in fetchall(cur)]

    def upsert(
        self,
        *,
        external_id: str,
        name: str,
        description: Optional[str],
        status: str,
        cached_at: datetime,
    ) -> Project:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO projects(external_id, name, description, status, cached_at)
                VALUES(%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    name=VALUES(name), description=VALUES(description),
                    status=VALUES(status), cached_at=VALUES(cached_at)
                """,
                (external_id, name, description, status, cached_at),
            )
        project = self.get_by_external_id(external_id)
        if project is None:
            raise RuntimeError(f"Project upsert failed for {external_id!r}")
        return project
