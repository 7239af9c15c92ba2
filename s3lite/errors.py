# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Exception hierarchy for s3lite.

Every public operation either returns a domain value or raises exactly
one ``S3Error`` subclass.  The ``code`` attribute carries a stable
identifier: the class name for locally detected failures, or AWS's own
error code for responses the server rejected.
"""

from __future__ import annotations


class S3Error(Exception):
    """Base exception for all s3lite errors.

    Attributes:
        code: Error code (class default or AWS error code).
        message: Human-readable message.
        cause: Lower-level exception that triggered this error, if any.
    """

    default_code = "S3Error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class AuthError(S3Error):
    """Credentials are missing or invalid (detected before any request)."""

    default_code = "AuthError"


class SigningError(S3Error):
    """Building the canonical request, string to sign or key failed."""

    default_code = "SigningError"


class TransportError(S3Error):
    """The HTTP exchange did not complete."""

    default_code = "TransportError"


class ParseError(S3Error):
    """A 2xx response body did not have the expected shape."""

    default_code = "ParseError"


class ConfigError(S3Error):
    """Client configuration is missing or malformed."""

    default_code = "ConfigError"


class AmazonS3Error(S3Error):
    """S3 answered with a non-2xx status.

    Attributes:
        status_code: HTTP status code of the response.
        request_id: ``x-amz-request-id`` / ``<RequestId>`` when available.
        resource: ``<Resource>`` element when available.
    """

    default_code = "AmazonS3Error"

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        code: str | None = None,
        request_id: str | None = None,
        resource: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, code=code, cause=cause)
        self.status_code = status_code
        self.request_id = request_id
        self.resource = resource

    def __str__(self) -> str:
        return f"{self.code} (HTTP {self.status_code}): {self.message}"
