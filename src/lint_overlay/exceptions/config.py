"""Configuration exceptions: project paths and settings."""

from pathlib import Path
from typing import Any

from .base import LintOverlayError


class ConfigurationError(LintOverlayError):
    """Settings could not be loaded; the CLI exits with status 2."""

    pass


class InvalidPathError(ConfigurationError):
    """The project root is missing or is not a directory."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid path: {path}", details={"reason": reason})


class InvalidConfigError(ConfigurationError):
    """A setting has a value outside its accepted range."""

    def __init__(self, key: str, value: Any, reason: str):
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"{key}={value!r} {reason}", details={"key": key})
