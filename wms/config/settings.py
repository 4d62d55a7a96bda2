from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    # ── Application ──────────────────────────────────────────────
    app_name: str = "Pam Pam WMS"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"
    api_version: str = "v1"

    # ── Remote store ─────────────────────────────────────────────
    mongodb_uri: Optional[str] = None
    database_name: str = "wms_db"
    server_selection_timeout_ms: int = 5000

    # ── Sessions / Security ──────────────────────────────────────
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440  # 24 hours
    reset_token_expire_minutes: int = 30

    # ── Local admin provisioning (disabled unless configured) ────
    bootstrap_admin_enabled: bool = False
    bootstrap_admin_username: str = "admin"
    bootstrap_admin_email: str = "admin@localhost"
    bootstrap_admin_password_hash: Optional[str] = None

    # ── Realtime ─────────────────────────────────────────────────
    realtime_tables: list[str] = ["products"]

    # ── Local preferences ────────────────────────────────────────
    preferences_path: str = ".wms_preferences.json"

    # ── CORS ─────────────────────────────────────────────────────
    cors_allowed_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]
    cors_allow_credentials: bool = True
    cors_allowed_methods: list[str] = ["*"]
    cors_allowed_headers: list[str] = ["*"]

    class Config:
        env_file = ".env.local"
        extra = "ignore"


# ── Module-level singleton ──────────────────────────────────────
settings = Settings()
