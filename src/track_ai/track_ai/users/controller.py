from __future__ import annotations

from flask import Flask, jsonify, session

from ..common.web import current_user_id, error_response, login_required, payload
from ..container import Container
from ..core.exceptions import AuthenticationError, ValidationError


def register(app: Flask, container: Container) -> None:
    @app.route("/login", methods=["POST"], endpoint="login")
    def login():
        data = payload()
        try:
            s_user = container.authenticator.authenticate(data.get("email", ""), data.get("password", ""))
        except (AuthenticationError, ValidationError) as e:
            return error_response(e)

        session.clear()
        session["user_id"] = s_user.user_id
        session["name"] = s_user.name
        session["username"] = s_user.username
        return jsonify({"success": True, "user": {"id": s_user.user_id, "name": s_user.name, "username": s_user.username}})

    @app.route("/logout", methods=["POST"], endpoint="logout")
    @login_required
    def logout():
        container.authenticator.logout(current_user_id())
        session.clear()
        return jsonify({"success": True})
