# camfleet/config.py
"""
Application configuration using Pydantic-Settings.
All settings can be overridden via environment variables or .env file.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # ── Database ──────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite:///./camfleet.db"

    # ── Network ───────────────────────────────────────────────────────────
    BACKEND_IP: str = "127.0.0.1"
    BACKEND_PORT: int = 8080

    # ── Security ──────────────────────────────────────────────────────────
    API_KEY: Optional[str] = None   # Set in .env to enable auth on API endpoints
    ADMIN_PASSWORD: str = "CHANGE_ME"   # Shared dashboard password, not a security boundary
    SESSION_SECRET_KEY: str = "CHANGE_ME_SESSION_SECRET"   # Signs the session cookie
    SESSION_COOKIE: str = "camfleet_session"

    # ── Layout image storage ──────────────────────────────────────────────
    STORAGE_BACKEND: str = "local"          # local | http
    STORAGE_DIR: str = "layout_images"
    STORAGE_PUBLIC_BASE_URL: str = "http://127.0.0.1:8080/media"
    STORAGE_API_URL: Optional[str] = None   # Object storage REST endpoint (http backend)
    STORAGE_API_KEY: Optional[str] = None
    STORAGE_TIMEOUT_SECONDS: int = 30
    LAYOUT_BUCKET: str = "layouts"

    # ── Realtime ──────────────────────────────────────────────────────────
    @property
    def WATCHED_TABLES(self) -> list:
        return ["divisions", "devices", "channels", "layouts", "channel_logs"]

    # ── Report ────────────────────────────────────────────────────────────
    REPORT_SIGNATURE: str = "Atenciosamente,\nSESMT do Grupo Açotubo"

    # ── Logging ───────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
