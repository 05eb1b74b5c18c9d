import os

from .saras import saras_settings

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "track_ai_test"),
}

SARAS = saras_settings(mode_default="stub")

UPLOADS_DIR = os.getenv("UPLOADS_DIR", "/tmp/track_ai_test_uploads")

AUTO_CHECKOUT_TIME = "22:00"

DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
