from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    APP_ENV: str = "local"

    # Static read-only bundle: assets/recipes/<folderId>/<relativePath>
    STATIC_BUNDLE_BASE_URL: Optional[str] = None
    STATIC_BUNDLE_DIR: Optional[str] = None
    STATIC_BUNDLE_TIMEOUT_SECONDS: float = 10.0

    # Editable blob store
    FILE_STORE_BACKEND: Literal["memory", "local", "r2"] = "memory"
    FILE_STORE_DIR: str = ".recipe-store"
    R2_ACCOUNT_ID: Optional[str] = None
    R2_ACCESS_KEY_ID: Optional[str] = None
    R2_SECRET_ACCESS_KEY: Optional[str] = None
    R2_BUCKET_NAME: Optional[str] = None

    # Known record id -> static folder mismatches
    FOLDER_ID_OVERRIDES: dict[str, str] = Field(
        default_factory=lambda: {"autoâ€‘close-stagnant-cases": "auto_close-stagnant-cases"},
    )

    EXPORT_COMPRESSION_LEVEL: int = Field(default=6, ge=0, le=9)

    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:4200"],
    )


settings = Settings()


def get_settings() -> Settings:
    return settings
