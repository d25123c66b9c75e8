from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the slide rendering service."""

    model_config = SettingsConfigDict(
        env_prefix="DECKRENDER_",
        env_file=".env",
        extra="ignore",
    )

    # =============================================================================
    # SERVER
    # =============================================================================
    host: str = "0.0.0.0"
    port: int = 9000
    log_level: str = "INFO"
    max_body_bytes: int = Field(default=50 * 1024 * 1024, gt=0)

    # =============================================================================
    # RENDERING
    # =============================================================================
    max_concurrency: int = Field(default=4, ge=1)
    device_scale_factor: float = Field(default=2.0, gt=0)
    browser_headless: bool = True
    browser_args: List[str] = Field(default_factory=lambda: ["--disable-dev-shm-usage"])
    auto_install_browser: bool = True
    navigation_timeout_ms: Optional[int] = Field(default=None, ge=0)

    # =============================================================================
    # DOCUMENT
    # =============================================================================
    slide_width_in: float = Field(default=10.0, gt=0)
    slide_height_in: float = Field(default=5.625, gt=0)
    output_filename: str = "report.pptx"
    document_title: str = "Generated Presentation"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
