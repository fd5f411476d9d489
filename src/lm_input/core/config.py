"""Centralized configuration management for lm-input.

This module provides a single source of truth for configuration values,
using pydantic-settings for environment variable loading and validation.

Configuration Sections:
    - ImageConfig: Reference image loading, caching and default resizing
    - SessionConfig: Chat session defaults (system prompt, cancel marker)

Environment Variable Prefixes:
    - IMAGE_*: Image settings
    - SESSION_*: Chat session settings

Usage:
    from lm_input.core.config import Settings

    settings = Settings.get_settings()
    timeout = settings.image.http_timeout
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lm_input.domain.user_input import Processing

DEFAULT_SYSTEM_PROMPT = (
    "You are Pranam, a medical assistant created by Indian Health-Tech company "
    "Apna Vaidya to guide users on their healthcare journey and to answer questions "
    "regarding their healthcare concerns. If asked a non-medical question, politely "
    "explain that you can only answer health-related questions. When asked for advice, "
    "ask for user details like name, age, gender, and symptoms. If the user is not "
    "willing to provide details, politely explain that you need the details to provide "
    "accurate advice. Tailor all responses to the user's age, gender, and health history "
    "and to an Indian context. Do not be too verbose. Make responses concise but informative."
)


class ImageConfig(BaseSettings):
    """Image loading configuration.

    Attributes:
        http_timeout: Timeout in seconds for fetching ``http(s)://`` images.
        max_size_bytes: Largest remote image accepted, in bytes.
        cache_max_size: Number of loaded reference images kept in memory.
            0 disables caching.
        cache_ttl_seconds: Lifetime of a cached image.
        default_resize_width: Width used by processors when a request does
            not ask for a resize. Must be set together with the height.
        default_resize_height: Height counterpart of ``default_resize_width``.
    """

    model_config = SettingsConfigDict(
        env_prefix="IMAGE_",
        case_sensitive=False,
        extra="ignore",
    )

    http_timeout: float = Field(
        default=30.0, ge=0.1, le=600.0, description="Remote image fetch timeout (seconds)"
    )
    max_size_bytes: int = Field(
        default=20 * 1024 * 1024,  # 20MB
        ge=1024,
        le=512 * 1024 * 1024,
        description="Max remote image size in bytes",
    )
    cache_max_size: int = Field(
        default=64, ge=0, le=10000, description="Max cached reference images"
    )
    cache_ttl_seconds: float = Field(
        default=600.0, ge=1.0, le=86400.0, description="Cache TTL (seconds)"
    )
    default_resize_width: int | None = Field(
        default=None, ge=1, description="Default resize width (pixels)"
    )
    default_resize_height: int | None = Field(
        default=None, ge=1, description="Default resize height (pixels)"
    )

    @model_validator(mode="after")
    def validate_default_resize(self) -> ImageConfig:
        """Require both default resize dimensions or neither."""
        if (self.default_resize_width is None) != (self.default_resize_height is None):
            msg = "default_resize_width and default_resize_height must be set together"
            raise ValueError(msg)
        return self

    @property
    def default_processing(self) -> Processing | None:
        """Processing directive built from the default resize, if any."""
        if self.default_resize_width is None or self.default_resize_height is None:
            return None
        return Processing(resize=(self.default_resize_width, self.default_resize_height))


class SessionConfig(BaseSettings):
    """Chat session configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SESSION_",
        case_sensitive=False,
        extra="ignore",
    )

    system_prompt: str = Field(
        default=DEFAULT_SYSTEM_PROMPT, description="System message seeding new transcripts"
    )
    cancelled_marker: str = Field(
        default="\n[Cancelled]", description="Text appended to a cancelled reply"
    )


class Settings(BaseSettings):
    """Root settings class containing all configuration sections.

    Configuration is loaded from:
        1. Environment variables (with appropriate prefixes)
        2. .env file (if present in the working directory)
        3. Default values (if not set)

    Attributes:
        image: Image loading configuration.
        session: Chat session configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    image: ImageConfig = Field(default_factory=ImageConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)

    @classmethod
    @lru_cache(maxsize=1)
    def get_settings(cls) -> Settings:
        """Get cached settings instance.

        Environment variable changes after the first call require
        ``Settings.get_settings.cache_clear()`` to take effect.
        """
        return cls()


__all__ = [
    "DEFAULT_SYSTEM_PROMPT",
    "ImageConfig",
    "SessionConfig",
    "Settings",
]
