from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import current_user_id, login_required
from ..container import Container


def _project_dict(p) -> dict:
    return {
        "id": p.project_id,
        "external_id": p.external_id,
        "contract_id": p.contract_id,
        "name": p.name,
        "description": p.description,
        "status": p.status,
        "cached_at": p.cached_at.isoformat(sep=" ") if p.cached_at else None,
    }


def register(app: Flask, container: Container) -> None:
    @app.route("/app/projects", methods=["GET"], endpoint="projects_index")
    @login_required
    def projects_index():
        return jsonify({"projects": [_project_dict(p) for p in container.project_service.list_projects()]})

    @app.route("/app/projects/sync", methods=["POST"], endpoint="projects_sync")
    @login_required
    def projects_sync():
        result = container.project_service.sync_from_saras(current_user_id())
        return jsonify(
            {
                "success": result.success,
                "message": result.message,
                "projects": [_project_dict(p) for p in result.projects],
            }
        )
