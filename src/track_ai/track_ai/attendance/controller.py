from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.validators import optional_text, require_latitude, require_longitude, require_non_empty
from ..common.web import client_request_id, current_user_id, error_response, login_required, payload
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    @app.route("/app/attendance/status", methods=["GET"], endpoint="attendance_status")
    @login_required
    def attendance_status():
        try:
            contract_id = require_non_empty(request.args.get("contract_id", ""), "contract_id")
        except ValidationError as e:
            return error_response(e)

        view = container.session_engine.get_status(current_user_id(), contract_id)
        return jsonify(
            {
                "attendance_status": view.status.value,
                "session": view.session.to_dict() if view.session else None,
                "auto_closed_session": view.auto_closed_session.to_dict() if view.auto_closed_session else None,
            }
        )

    @app.route("/app/attendance/check-in", methods=["POST"], endpoint="attendance_check_in")
    @login_required
    def attendance_check_in():
        data = payload()
        try:
            result = container.attendance_service.check_in(
                current_user_id(),
                require_non_empty(data.get("contract_id", ""), "contract_id"),
                require_latitude(data.get("latitude")),
                require_longitude(data.get("longitude")),
                remarks=optional_text(data.get("remarks")),
                ip_address=request.remote_addr,
                client_request_id=client_request_id(data),
            )
        except ValidationError as e:
            return error_response(e)
        return jsonify(result.to_dict())

    @app.route("/app/attendance/check-out", methods=["POST"], endpoint="attendance_check_out")
    @login_required
    def attendance_check_out():
        data = payload()
        try:
            result = container.attendance_service.check_out(
                current_user_id(),
                require_non_empty(data.get("contract_id", ""), "contract_id"),
                require_latitude(data.get("latitude")),
                require_longitude(data.get("longitude")),
                remarks=optional_text(data.get("remarks")),
                ip_address=request.remote_addr,
                client_request_id=client_request_id(data),
            )
        except ValidationError as e:
            return error_response(e)
        return jsonify(result.to_dict())
