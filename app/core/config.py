# app/core/config.py
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    ENV: str = Field("development", validation_alias="MF_ENV")
    LOG_LEVEL: str = Field("INFO", validation_alias="MF_LOG_LEVEL")

    # External analysis service
    ANTHROPIC_API_KEY: Optional[str] = Field(None, validation_alias="ANTHROPIC_API_KEY")
    ANALYSIS_MODEL: str = Field(
        "claude-sonnet-4-5-20250929",
        validation_alias="MF_ANALYSIS_MODEL",
    )
    ANALYSIS_TEMPERATURE: float = Field(0.2, ge=0, le=1, validation_alias="MF_ANALYSIS_TEMPERATURE")
    ANALYSIS_MAX_TOKENS: int = Field(2048, gt=0, validation_alias="MF_ANALYSIS_MAX_TOKENS")
    ANALYSIS_TIMEOUT_SECONDS: float = Field(120.0, gt=0, validation_alias="MF_ANALYSIS_TIMEOUT_SECONDS")

    # Media handling
    VIDEO_FRAME_COUNT: int = Field(3, gt=0, validation_alias="MF_VIDEO_FRAME_COUNT")
    JPEG_QUALITY: int = Field(70, ge=1, le=95, validation_alias="MF_JPEG_QUALITY")
    SEEK_TIMEOUT_SECONDS: float = Field(10.0, gt=0, validation_alias="MF_SEEK_TIMEOUT_SECONDS")
    MAX_UPLOAD_BYTES: int = Field(20 * 1024 * 1024, gt=0, validation_alias="MF_MAX_UPLOAD_BYTES")
    MAX_SCAN_FRAMES: int = Field(16, gt=0, validation_alias="MF_MAX_SCAN_FRAMES")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
