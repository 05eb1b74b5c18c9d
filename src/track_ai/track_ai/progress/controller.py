from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.validators import optional_text, require_coordinate, require_non_empty
from ..common.web import client_request_id, current_user_id, error_response, login_required, payload
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    service = container.progress_service

    @app.route("/app/progress", methods=["POST"], endpoint="progress_submit")
    @login_required
    def progress_submit():
        data = payload()
        try:
            items = data.get("checklist_items") or []
            if not isinstance(items, list):
                raise ValidationError("checklist_items must be a list")
            response = service.submit_progress(
                current_user_id(),
                require_non_empty(data.get("contract_id", ""), "contract_id"),
                items,
                remarks=optional_text(data.get("remarks")),
                latitude=require_coordinate(data.get("latitude", 0), "latitude", limit=90),
                longitude=require_coordinate(data.get("longitude", 0), "longitude", limit=180),
                ip_address=request.remote_addr,
                client_request_id=client_request_id(data),
            )
        except ValidationError as e:
            return error_response(e)
        return jsonify(response.to_dict())

    @app.route("/app/progress/photo", methods=["POST"], endpoint="progress_photo")
    @login_required
    def progress_photo():
        data = payload()
        file = request.files.get("photo")
        try:
            if file is None:
                raise ValidationError("photo is required")
            response = service.upload_progress_photo(
                current_user_id(),
                require_non_empty(data.get("contract_id", ""), "contract_id"),
                require_non_empty(data.get("entry_id", ""), "entry_id"),
                file,
                data.get("photo_type") or "progress",
            )
        except ValidationError as e:
            return error_response(e)
        return jsonify(response.to_dict())

    @app.route("/app/progress/run-ai", methods=["POST"], endpoint="progress_run_ai")
    @login_required
    def progress_run_ai():
        data = payload()
        try:
            response = service.run_ai_analysis(
                current_user_id(),
                require_non_empty(data.get("contract_id", ""), "contract_id"),
                require_non_empty(data.get("entry_id", ""), "entry_id"),
            )
        except ValidationError as e:
            return error_response(e)
        return jsonify(response.to_dict())

    @app.route("/app/progress/ai-status/<workflow_id>", methods=["GET"], endpoint="progress_ai_status")
    @login_required
    def progress_ai_status(workflow_id: str):
        return jsonify(service.get_ai_status(workflow_id).to_dict())
