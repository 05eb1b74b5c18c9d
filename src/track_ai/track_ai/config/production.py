import os

from .saras import saras_settings

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "track_ai"),
}

SARAS = saras_settings(mode_default="live")

UPLOADS_DIR = os.getenv("UPLOADS_DIR", "/var/lib/track_ai/uploads")

AUTO_CHECKOUT_TIME = os.getenv("AUTO_CHECKOUT_TIME", "22:00")

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
