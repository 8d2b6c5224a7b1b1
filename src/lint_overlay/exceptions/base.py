"""Base exception for lint-overlay."""

from typing import Mapping, Optional


class LintOverlayError(Exception):
    """Base exception for all lint-overlay errors.

    The string form is what ends up in a Global diagnostic: short details
    follow the message as ``(key=value, ...)``; multi-line details such as
    captured stderr are appended below it.
    """

    def __init__(self, message: str, details: Optional[Mapping[str, object]] = None):
        super().__init__(message)
        self.message = message
        self.details = {key: str(value) for key, value in (details or {}).items()}

    def __str__(self) -> str:
        inline = [f"{k}={v}" for k, v in self.details.items() if "\n" not in v]
        blocks = [v for v in self.details.values() if "\n" in v]
        text = f"{self.message} ({', '.join(inline)})" if inline else self.message
        return "\n".join([text, *blocks])
