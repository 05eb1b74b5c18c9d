"""Saras integration settings shared by every environment.

Each settings module builds its `SARAS` mapping from here so the env variable
names live in one place.
"""

import os


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def saras_settings(*, mode_default: str = "stub") -> dict:
    return {
        "mode": os.getenv("SARAS_MODE", mode_default).lower(),
        "base_url": os.getenv("SARAS_BASE_URL", "").rstrip("/"),
        "username": os.getenv("SARAS_USERNAME", ""),
        "password": os.getenv("SARAS_PASSWORD", ""),
        "timeout": int(os.getenv("SARAS_TIMEOUT", "30")),
        "token_cache_key": os.getenv("SARAS_TOKEN_CACHE_KEY", "saras:token"),
        "token_strategy": os.getenv("SARAS_TOKEN_STRATEGY", "service_account").lower(),
        "retry_attempts": int(os.getenv("SARAS_RETRY_ATTEMPTS", "2")),
        "retry_delay_ms": int(os.getenv("SARAS_RETRY_DELAY_MS", "500")),
        "plugin_name": os.getenv("SARAS_PLUGIN_NAME", "knowledgeRepo"),
        "workflow_id": os.getenv("SARAS_WORKFLOW_ID") or None,
        "default_contract_id": os.getenv("SARAS_DEFAULT_CONTRACT_ID") or None,
        "subproject_ids": {
            "attendance": os.getenv("SARAS_SUBPROJECT_ATTENDANCE") or None,
            "trackdata": os.getenv("SARAS_SUBPROJECT_TRACKDATA") or None,
            "progress": os.getenv("SARAS_SUBPROJECT_PROGRESS") or None,
        },
        "feature_flags": {
            "enabled": _flag("SARAS_ENABLED", "1"),
            "progress_enabled": _flag("SARAS_PROGRESS_ENABLED", "0"),
        },
    }
