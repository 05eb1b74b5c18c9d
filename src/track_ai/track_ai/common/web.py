from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Optional

from flask import jsonify, request, session

from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, 422),
    (NotFoundError, 404),
    (AuthorizationError, 403),
    (AuthenticationError, 401),
    (ConflictError, 409),
)


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"success": False, "message": "Please log in to continue"}), 401
        return view(*args, **kwargs)

    return wrapper


def current_user_id() -> int:
    return int(session["user_id"])


def payload() -> dict[str, Any]:
    """JSON body, or form fields for multipart requests."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def client_request_id(data: dict[str, Any]) -> Optional[str]:
    value = data.get("client_request_id") or request.headers.get("Idempotency-Key")
    return str(value) if value else None


def error_response(e: Exception):
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(e, error_type):
            return jsonify({"success": False, "message": str(e)}), status
    raise e
