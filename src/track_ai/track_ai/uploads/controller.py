from __future__ import annotations

from typing import Any, Optional

from flask import Flask, jsonify, request, send_file

from ..common.validators import optional_text, require_coordinate
from ..common.web import client_request_id, current_user_id, error_response, login_required, payload
from ..container import Container
from ..core.enums import UploadStatus
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


def _tags(value: Any) -> Optional[list[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        return [t.strip() for t in value.split(",") if t.strip()]
    return [str(t) for t in value]


def _coordinate(data: dict, name: str, limit: float) -> Optional[float]:
    value = data.get(name)
    if value in (None, ""):
        return None
    return require_coordinate(value, name, limit=limit)


def register(app: Flask, container: Container) -> None:
    service = container.upload_service

    @app.route("/app/projects/<external_id>/uploads", methods=["GET"], endpoint="uploads_index")
    @login_required
    def uploads_index(external_id: str):
        try:
            uploads = service.list_uploads(
                external_id,
                status=request.args.get("status"),
                tag=request.args.get("tag"),
                search=request.args.get("search"),
            )
        except ValidationError as e:
            return error_response(e)
        return jsonify({"uploads": [u.to_dict() for u in uploads]})

    @app.route("/app/projects/<external_id>/uploads", methods=["POST"], endpoint="uploads_store")
    @login_required
    def uploads_store(external_id: str):
        data = payload()
        try:
            upload = service.create_upload_record(
                current_user_id(),
                external_id,
                title=data.get("title", ""),
                client_request_id=client_request_id(data) or "",
                document_type=data.get("document_type"),
                tags=_tags(data.get("tags")),
                remarks=data.get("remarks"),
                latitude=_coordinate(data, "latitude", 90),
                longitude=_coordinate(data, "longitude", 180),
            )
        except (ValidationError, ConflictError) as e:
            return error_response(e)
        return jsonify({"success": True, "upload": upload.to_dict()}), 201

    @app.route("/app/uploads/<int:upload_id>", methods=["PATCH"], endpoint="uploads_update")
    @login_required
    def uploads_update(upload_id: int):
        data = payload()
        try:
            upload = service.get_upload(upload_id, current_user_id())
            upload = service.update_metadata(
                upload,
                current_user_id(),
                title=data.get("title"),
                remarks=data.get("remarks"),
                document_type=data.get("document_type"),
                tags=_tags(data.get("tags")),
            )
        except (ValidationError, NotFoundError, AuthorizationError) as e:
            return error_response(e)
        return jsonify({"success": True, "upload": upload.to_dict()})

    @app.route("/app/uploads/<int:upload_id>", methods=["DELETE"], endpoint="uploads_destroy")
    @login_required
    def uploads_destroy(upload_id: int):
        data = payload()
        try:
            upload = service.get_upload(upload_id, current_user_id())
            service.delete_upload(upload, current_user_id(), reason=optional_text(data.get("reason")))
        except (NotFoundError, AuthorizationError) as e:
            return error_response(e)
        return jsonify({"success": True})

    @app.route("/app/uploads/<int:upload_id>/retry", methods=["POST"], endpoint="uploads_retry")
    @login_required
    def uploads_retry(upload_id: int):
        try:
            upload = service.get_upload(upload_id, current_user_id())
            upload = service.retry_upload(upload, current_user_id())
        except (NotFoundError, AuthorizationError) as e:
            return error_response(e)
        return jsonify({"success": True, "upload": upload.to_dict()})

    @app.route("/app/uploads/<int:upload_id>/file", methods=["POST"], endpoint="uploads_file")
    @login_required
    def uploads_file(upload_id: int):
        data = payload()
        file = request.files.get("file")
        try:
            upload = service.get_upload(upload_id, current_user_id())
            upload = service.upload_file_to_remote(
                upload,
                file,
                latitude=_coordinate(data, "latitude", 90) or 0,
                longitude=_coordinate(data, "longitude", 180) or 0,
                ip_address=request.remote_addr,
            )
        except (ValidationError, NotFoundError, AuthorizationError) as e:
            return error_response(e)
        return jsonify({"success": upload.status == UploadStatus.UPLOADED, "upload": upload.to_dict()})

    @app.route("/app/uploads/<int:upload_id>/preview", methods=["GET"], endpoint="uploads_preview")
    @login_required
    def uploads_preview(upload_id: int):
        try:
            upload = service.get_upload(upload_id, current_user_id())
            path = service.get_local_file(upload)
        except (NotFoundError, AuthorizationError) as e:
            return error_response(e)
        return send_file(path, mimetype=upload.mime_type, download_name=upload.original_filename)
