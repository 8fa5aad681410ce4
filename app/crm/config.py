import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    store_backend: str
    store_quota_bytes: int
    notifications_max: int
    entity_path_template: str
    context_idle_seconds: int


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).")


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///crm.db"),
        store_backend=_getenv("STORE_BACKEND", "sql"),
        # Browsers give local storage roughly 5MB per origin.
        store_quota_bytes=_getenv_int("STORE_QUOTA_BYTES", 5 * 1024 * 1024),
        notifications_max=_getenv_int("NOTIFICATIONS_MAX", 0),
        entity_path_template=_getenv("ENTITY_PATH_TEMPLATE", "/customers/{id}"),
        context_idle_seconds=_getenv_int("CONTEXT_IDLE_SECONDS", 30 * 60),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "STORE_BACKEND": s.store_backend,
        "STORE_QUOTA_BYTES": s.store_quota_bytes,
        "NOTIFICATIONS_MAX": s.notifications_max,
        "ENTITY_PATH_TEMPLATE": s.entity_path_template,
        "CONTEXT_IDLE_SECONDS": s.context_idle_seconds,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,
    }
