"""ADLENS — Central Configuration via Pydantic Settings."""

import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Meta Insights API ──
    meta_access_token: str = ""
    meta_ad_account_id: str = ""
    meta_api_version: str = "v19.0"
    meta_base_url: str = "https://graph.facebook.com"
    meta_page_limit: int = 1000
    meta_max_pages: int = 50  # Per chunk; a longer cursor chain is an error
    meta_chunk_days: int = 30  # Max days per insights request
    meta_rate_limit_retries: int = 3  # Only HTTP 429 is retried

    # ── Spreadsheet Store (web app endpoint) ──
    store_url: str = ""
    store_sheet_title: str = "Dashboard Data"
    store_timeout: float = 30.0

    # ── Database (session state) ──
    database_url: str = ""

    # ── App ──
    log_level: str = "INFO"
    scheduler_enabled: bool = False
    sync_hour: int = 3  # Daily reload + sync at 3 AM
    default_window_days: int = 7

    @property
    def effective_database_url(self) -> str:
        """Return the configured URL if set, otherwise fall back to SQLite."""
        if self.database_url:
            return self.database_url
        # Vercel has a read-only filesystem; use /tmp for SQLite
        if os.environ.get("VERCEL"):
            return "sqlite:////tmp/adlens.db"
        return "sqlite:///./adlens.db"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
