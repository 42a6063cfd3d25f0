from __future__ import annotations

from typing import Literal, Optional

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    SUPABASE_URL: Optional[AnyUrl] = None
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    APP_ENV: str = "local"
    # "memory" keeps everything in-process; tokens are then taken as user IDs
    DATA_BACKEND: Literal["supabase", "memory"] = "supabase"
    DASHBOARD_TOP_TAGS: int = Field(default=5, ge=1)
    DASHBOARD_RECENT_LIMIT: int = Field(default=5, ge=1)
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"],
    )

    def validate_backend(self) -> list[str]:
        errors: list[str] = []
        if self.DATA_BACKEND == "supabase":
            if not self.SUPABASE_URL:
                errors.append("SUPABASE_URL is required")
            if not self.SUPABASE_SERVICE_ROLE_KEY:
                errors.append("SUPABASE_SERVICE_ROLE_KEY is required")
        return errors


settings = Settings()
