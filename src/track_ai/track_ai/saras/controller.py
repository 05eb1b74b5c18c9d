from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import login_required
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/app/saras/status", methods=["GET"], endpoint="saras_status")
    @login_required
    def saras_status():
        return jsonify(container.saras_status_service.status().to_dict())

    @app.route("/app/saras/health", methods=["GET"], endpoint="saras_health")
    @login_required
    def saras_health():
        health = container.saras_status_service.health_check()
        return jsonify(health.to_dict()), 200 if health.healthy else 503
