"""Core helpers for lm-input."""

from lm_input.core.config import ImageConfig, SessionConfig, Settings

__all__ = ["ImageConfig", "SessionConfig", "Settings"]
