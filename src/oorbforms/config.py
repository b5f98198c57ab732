from __future__ import annotations

import os
from pathlib import Path
from typing import Any

DEFAULT_CORS_ORIGINS = (
    "http://localhost:5173",
    "https://oorb-forms.vercel.app",
    "https://forms.oorbtech.com",
)
DEFAULT_MAX_BODY_BYTES = 10 * 1024 * 1024
DEFAULT_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _list_env(name: str, default: tuple[str, ...]) -> list[str]:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip().rstrip("/") for item in value.split(",") if item.strip()]


class Settings:
    def __init__(self, **overrides: Any) -> None:
        self.storage_backend = os.getenv("STORAGE_BACKEND", "json").lower()
        self.json_path = Path(os.getenv("JSON_PATH", "./data/oorbforms.json"))
        self.sqlite_path = Path(os.getenv("SQLITE_PATH", "./data/oorbforms.db"))
        self.secret_key = os.getenv("SECRET_KEY", "change-me-in-production")
        self.jwt_algorithm = os.getenv("JWT_ALGORITHM", "HS256")
        self.access_token_expire_minutes = _int_env(
            "ACCESS_TOKEN_EXPIRE_MINUTES", DEFAULT_TOKEN_EXPIRE_MINUTES
        )
        self.cors_origins = _list_env("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
        self.max_body_bytes = _int_env("MAX_BODY_BYTES", DEFAULT_MAX_BODY_BYTES)
        self.log_level = os.getenv("LOG_LEVEL", "info").lower()
        self.host = os.getenv("HOST", "0.0.0.0")
        self.port = _int_env("PORT", 5000)

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise TypeError(f"Unknown setting: {key}")
            if key in {"json_path", "sqlite_path"}:
                value = Path(value)
            setattr(self, key, value)


def ensure_dirs(settings: Settings) -> None:
    if settings.storage_backend == "sqlite":
        settings.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
    else:
        settings.json_path.parent.mkdir(parents=True, exist_ok=True)
