"""Configuration package."""

from spendeka.config.settings import (
    AppSettings,
    GeminiSettings,
    OcrSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "OcrSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
