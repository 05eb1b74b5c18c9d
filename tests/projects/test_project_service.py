from __future__ import annotations

from datetime import datetime

from track_ai.projects.model import Project
from track_ai.projects.service import ProjectService
from track_ai.saras.dto import ProjectDTO, ProjectsResponse
from track_ai.saras.exceptions import SarasAuthFailed


class InMemoryProjects:
    def __init__(self):
        self.rows: dict[str, Project] = {}

    def get_by_id(self, project_id):
        return next((p for p in self.rows.values() if p.project_id == project_id), None)

    def get_by_external_id(self, external_id):
        return self.rows.get(external_id)

    def list_all(self):
        return list(self.rows.values())

    def upsert(self, *, external_id, name, description, status, cached_at):
        existing = self.rows.get(external_id)
        project_id = existing.project_id if existing else len(self.rows) + 1
        project = Project(project_id, external_id, name, description, status, cached_at)
        self.rows[external_id] = project
        return project


class PagedSaras:
    def __init__(self, pages, fail_on_page=None):
        self.pages = pages
        self.fail_on_page = fail_on_page
        self.calls: list[tuple[int, int]] = []

    def get_projects_for_user(self, page=1, per_page=10):
        self.calls.append((page, per_page))
        if page == self.fail_on_page:
            raise SarasAuthFailed("token expired")
        return ProjectsResponse(
            success=True,
            projects=tuple(self.pages[page - 1]),
            current_page=page,
            total_pages=len(self.pages),
            total_count=sum(len(p) for p in self.pages),
        )


def _clock():
    return datetime(2026, 3, 2, 8, 0)


def test_sync_walks_every_page():
    projects = InMemoryProjects()
    saras = PagedSaras(
        [
            [ProjectDTO("P-1", "P-1", "Road"), ProjectDTO("P-2", "P-2", "Bridge")],
            [ProjectDTO("P-3", "P-3", "Dike", status="closed")],
        ]
    )

    result = ProjectService(projects, saras, page_size=2, clock=_clock).sync_from_saras(1)

    assert result.success
    assert saras.calls == [(1, 2), (2, 2)]
    assert [p.external_id for p in result.projects] == ["P-1", "P-2", "P-3"]
    assert projects.get_by_external_id("P-3").is_closed()
    assert result.message == "3 projects synced successfully"


def test_sync_updates_existing_projects_and_skips_blank_ids():
    projects = InMemoryProjects()
    projects.upsert(external_id="P-1", name="Old", description=None, status="active", cached_at=_clock())
    saras = PagedSaras([[ProjectDTO("P-1", "P-1", "New name"), ProjectDTO("", "", "Ghost")]])

    result = ProjectService(projects, saras, clock=_clock).sync_from_saras(1)

    assert len(result.projects) == 1
    assert projects.get_by_external_id("P-1").name == "New name"
    assert len(projects.list_all()) == 1


def test_sync_failure_reports_message():
    saras = PagedSaras([[ProjectDTO("P-1", "P-1", "Road")], []], fail_on_page=2)

    result = ProjectService(InMemoryProjects(), saras, clock=_clock).sync_from_saras(1)

    assert not result.success
    assert result.projects == []
    assert result.message == "Failed to sync projects: token expired"
