# reconciler/config.py

from typing import Literal

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "Statement Reconciler"
    app_env: str = "development"
    debug: bool = True
    frontend_url: str = "http://localhost:3000"
    log_level: str = "info"

    # Storage
    storage_backend: Literal["memory", "supabase"] = "memory"
    supabase_url: str = ""
    supabase_service_role_key: str = ""

    # Statement import
    max_upload_mb: int = 50
    max_spreadsheet_rows: int = 50000
    day_first: bool = False  # slash dates read as MM/DD unless set

    # Matching config
    auto_match_threshold: int = 70
    amount_tolerance_percent: float = 1.0
    date_tolerance_days: int = 3
    max_suggestions: int = 5
    match_credits: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
