"""
Configuration Management for Spendeka

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here and loaded once per process.
The Settings object is frozen: nothing reads the environment after startup,
and every client receives its settings by injection.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini generation backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    api_key: str = Field(
        ...,
        min_length=1,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_output_tokens: int = Field(
        default=1024,
        ge=64,
        le=8192,
        description="Maximum tokens in response"
    )
    # None means wait indefinitely
    request_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Per-request timeout for the generation backend"
    )
    max_attempts: int = Field(
        default=1,
        ge=1,
        le=5,
        description="Attempts per generation call (1 = no retries)"
    )


class OcrSettings(BaseSettings):
    """Tesseract OCR engine configuration."""

    model_config = SettingsConfigDict(
        env_prefix="OCR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    languages: str = Field(
        default="vie+eng",
        description="Tesseract languages (combined Vietnamese + English)"
    )
    tesseract_cmd: Optional[str] = Field(
        default=None,
        description="Path to the tesseract binary if it is not on PATH"
    )
    # 0 means no timeout
    timeout_seconds: float = Field(
        default=0,
        ge=0,
        description="OCR timeout in seconds"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    default_language: str = Field(
        default="eng",
        description="Language used when a request sends none or an unknown one"
    )

    # Upload handling
    max_bill_image_size_bytes: int = Field(
        default=5 * 1024 * 1024,
        ge=1,
        description="Hard size limit for bill images"
    )
    upload_dir: str = Field(
        default="tmp",
        description="Directory for temporary uploaded assets"
    )

    @field_validator('default_language')
    @classmethod
    def validate_default_language(cls, v: str) -> str:
        """Only the two supported locales may be the default."""
        v = v.strip().lower()
        if v not in {"vie", "eng"}:
            raise ValueError(f"Unsupported default language: {v}. Allowed: vie, eng")
        return v

    @property
    def upload_path(self) -> Path:
        """Upload directory as a Path (created on demand)."""
        path = Path(self.upload_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings. Sub-settings are read once, when the
    container is built, so a missing credential fails at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    ocr: OcrSettings = Field(default_factory=OcrSettings)
    app: AppSettings = Field(default_factory=AppSettings)


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    for name, factory in (
        ("gemini", GeminiSettings),
        ("ocr", OcrSettings),
        ("app", AppSettings),
    ):
        try:
            factory()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
