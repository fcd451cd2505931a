"""Exception hierarchy for biathlon_core."""

from __future__ import annotations


class BiathlonError(Exception):
    """Base exception for all biathlon_core errors."""


class ConfigurationError(BiathlonError):
    """Missing, unreadable or invalid race configuration."""


class MalformedEvent(BiathlonError, ValueError):
    """An event line that cannot be decoded or applied to the ledger."""

    def __init__(self, message: str, *, line: str | None = None) -> None:
        self.line = line
        if line is not None:
            message = f"{message}, event: {line}"
        super().__init__(message)
