"""
Failure description — what travels on the failure track of a Result.

An ErrorCode says which kind of thing went wrong, the message says what,
and the optional exception keeps the original cause around for diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique
from typing import Optional


@unique
class ErrorCode(Enum):
    """Error categories used across the fedsfm client."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Missing or blank input, rejected before any I/O."""

    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    """Login failed: bad credentials, TLS handshake, malformed auth response."""

    AUTHORIZATION_ERROR = "AUTHORIZATION_ERROR"
    """Operation attempted without an access token."""

    NOT_FOUND = "NOT_FOUND"
    """Nothing published for the requested list."""

    CERTIFICATE_ERROR = "CERTIFICATE_ERROR"
    """Client certificate could not be located, read, or extracted."""

    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    """Transport failure, unexpected HTTP status, or unparseable response."""

    FILE_SYSTEM_ERROR = "FILE_SYSTEM_ERROR"
    """Downloaded payload could not be written to disk."""

    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    """Anything not classified above."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor: code, message, optional cause, timestamp.

    >>> desc = FailureDescription(ErrorCode.NOT_FOUND, "No catalog published")
    >>> desc.code
    <ErrorCode.NOT_FOUND: 'NOT_FOUND'>
    """

    code: ErrorCode
    message: str
    exception: Optional[BaseException] = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"
