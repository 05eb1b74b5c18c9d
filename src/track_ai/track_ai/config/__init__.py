import os


def get_settings_module() -> str:
    # APP_ENV picks the settings module; anything unrecognised means development.
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "track_ai.config.production"

    if env in {"test", "testing"}:
        return "track_ai.config.testing"

    return "track_ai.config.development"
