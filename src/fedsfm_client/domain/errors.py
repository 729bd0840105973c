"""
Exception taxonomy for the fedsfm client.

Adapters raise these internally and convert them to Result failures at
their public boundary, so each class carries the railway ErrorCode it maps
to. The original exception stays available as FailureDescription.exception.
"""

from __future__ import annotations

from railway import ErrorCode


class FedsfmError(Exception):
    """Base class. `cause` becomes __cause__ when the error is not raised."""

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    @property
    def message(self) -> str:
        return str(self)


class InvalidArgumentError(FedsfmError):
    """A required input was empty after trimming."""

    code = ErrorCode.VALIDATION_ERROR


class CertificateError(FedsfmError):
    code = ErrorCode.CERTIFICATE_ERROR


class CertificateNotFoundError(CertificateError):
    """No configured source and no OS store yielded a certificate."""


class CertificateExtractionError(CertificateError):
    """The PFX bundle could not be converted to PEM certificate + key."""


class FileReadError(CertificateError):
    """An explicitly configured certificate or key file could not be read."""


class AuthenticationError(FedsfmError):
    """Login failed. Carries the HTTP status and raw body when there was one."""

    code = ErrorCode.AUTHENTICATION_ERROR

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.status_code = status_code
        self.response_body = response_body


class NotAuthorizedError(FedsfmError):
    """A catalog or download operation was attempted without an access token."""

    code = ErrorCode.AUTHORIZATION_ERROR
