import os

from .saras import saras_settings

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "track_ai"),
}

SARAS = saras_settings(mode_default="stub")

# Local staging area for upload bytes (preview + retry)
UPLOADS_DIR = os.getenv("UPLOADS_DIR", "storage/uploads")

AUTO_CHECKOUT_TIME = os.getenv("AUTO_CHECKOUT_TIME", "22:00")

DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
