from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path


def _load_local_env_file() -> None:
    """Loads variables from .env if present, without overriding exported ones."""
    env_path = Path('.env')
    if not env_path.exists():
        return

    for raw_line in env_path.read_text(encoding='utf-8').splitlines():
        line = raw_line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        key, value = line.split('=', 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        os.environ.setdefault(key, value)


_load_local_env_file()

_DEV_JWT_SECRET = "dev-only-marketplace-secret-change-me-0123456789"


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    debug: bool
    db_backend: str
    database_url: str | None
    jwt_secret: str = _DEV_JWT_SECRET
    token_ttl_days: int = 30
    upload_dir: str = "uploads/submissions"
    max_upload_bytes: int = 50 * 1024 * 1024
    admin_email: str | None = None
    admin_password: str | None = None


def load_settings() -> Settings:
    return Settings(
        app_name=os.getenv("APP_NAME", "project-marketplace"),
        app_version=os.getenv("APP_VERSION", "0.1.0"),
        debug=os.getenv("APP_DEBUG", "false").lower() in {"1", "true", "yes"},
        db_backend=os.getenv("DB_BACKEND", "memory"),
        database_url=os.getenv("DATABASE_URL"),
        jwt_secret=os.getenv("JWT_SECRET", _DEV_JWT_SECRET),
        token_ttl_days=int(os.getenv("TOKEN_TTL_DAYS", "30")),
        upload_dir=os.getenv("UPLOAD_DIR", "uploads/submissions"),
        max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES", str(50 * 1024 * 1024))),
        admin_email=os.getenv("ADMIN_EMAIL"),
        admin_password=os.getenv("ADMIN_PASSWORD"),
    )
