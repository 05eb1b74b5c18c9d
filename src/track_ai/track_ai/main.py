from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from .config import get_settings_module
from .database.bootstrap import apply_schema, list_tables

from .container import build_container
from .attendance.controller import register as register_attendance
from .progress.controller import register as register_progress
from .projects.controller import register as register_projects
from .saras.controller import register as register_saras
from .uploads.controller import register as register_uploads
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[3] / "database" / "schema.sql"


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    saras_config = getattr(settings, "SARAS")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["AUTO_CHECKOUT_TIME"] = getattr(settings, "AUTO_CHECKOUT_TIME", "22:00")

    logging.basicConfig(
        level=logging.DEBUG if app.config["DEBUG"] else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(
        "settings=%s db=%s@%s:%s/%s saras_mode=%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
        saras_config.get("mode"),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config, schema_path=SCHEMA_PATH)
        logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))

    container = build_container(
        db_config=db_config,
        saras_config=saras_config,
        uploads_dir=getattr(settings, "UPLOADS_DIR"),
    )
    app.extensions["track_ai.container"] = container

    register_users(app, container)
    register_attendance(app, container)
    register_uploads(app, container)
    register_progress(app, container)
    register_projects(app, container)
    register_saras(app, container)

    return app
