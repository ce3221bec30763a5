"""Exceptions raised by flexilemma."""

from __future__ import annotations

from typing import Optional


class FlexilemmaError(Exception):
    """Base class for all flexilemma errors."""


class ConfigurationError(FlexilemmaError, ValueError):
    """Raised when a setting, strategy name or required property is invalid."""


class ModelLoadError(FlexilemmaError, OSError):
    """Raised when a model artifact cannot be read or deserialized."""

    def __init__(self, message: str, *, language: Optional[str] = None, source: Optional[str] = None):
        self.language = language
        self.source = source
        details = []
        if language:
            details.append(f"language={language!r}")
        if source:
            details.append(f"source={source!r}")
        if details:
            message = f"{message} ({', '.join(details)})"
        super().__init__(message)
