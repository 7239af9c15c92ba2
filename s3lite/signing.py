# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""AWS Signature Version 4 request signing for S3.

Provides pure functions for each step of the SigV4 chain:

- Canonical request (URI, query string, headers, signed headers)
- String to sign
- Signing key derivation (HMAC-SHA256 chain)
- Authorization header composition

``sign_request`` runs the whole chain over a ``RequestDescriptor`` and
attaches ``x-amz-date``, ``x-amz-content-sha256`` and ``Authorization``.
Nothing is cached: a signing key is derived per call and discarded.

No boto3/botocore dependency; uses only stdlib.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

from s3lite.credentials import Credentials
from s3lite.errors import SigningError
from s3lite.models import Headers, RequestDescriptor


logger = logging.getLogger(__name__)

ALGORITHM = "AWS4-HMAC-SHA256"

_AWS_UNRESERVED = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~"
)

_AMZ_DATE_FORMAT = "%Y%m%dT%H%M%SZ"
_AMZ_DATE_RE = re.compile(r"^\d{8}T\d{6}Z$")

_SUPPORTED_METHODS = frozenset({"GET", "PUT", "DELETE"})

_WHITESPACE_RE = re.compile(r"\s+")


# ---------------------------------------------------------------------------
# URI encoding (AWS-specific RFC 3986 subset)
# ---------------------------------------------------------------------------


def _uri_encode(value: str, *, encode_slash: bool = True) -> str:
    """URI-encode a value using AWS's specific rules.

    - Unreserved characters are not encoded: A-Z, a-z, 0-9, -, _, ., ~
    - Every other character is UTF-8 encoded and each byte written as
      %XX (uppercase hex)
    - Forward slashes (/) are optionally preserved

    Args:
        value: String to encode.
        encode_slash: If True, encode '/'; if False, preserve '/'.

    Returns:
        URI-encoded string.
    """
    safe = _AWS_UNRESERVED if encode_slash else _AWS_UNRESERVED | {"/"}
    return "".join(
        ch if ch in safe else "".join(f"%{b:02X}" for b in ch.encode("utf-8"))
        for ch in value
    )


# ---------------------------------------------------------------------------
# Canonical request construction
# ---------------------------------------------------------------------------


def canonical_uri(path: str) -> str:
    """Build the canonical URI from a raw (unencoded) request path.

    S3 uses single encoding and no path normalization: double slashes
    and ``.``/``..`` segments are preserved, each segment is encoded once.

    Args:
        path: Request path as the caller wrote it, e.g. ``/bucket/my key``.

    Returns:
        URI-encoded canonical path.
    """
    if not path:
        return "/"
    return _uri_encode(path, encode_slash=False)


def canonical_query_string(params: Mapping[str, str]) -> str:
    """Build the canonical query string.

    Names and values are encoded independently, then sorted by encoded
    name (and value).  A parameter whose value is ``""`` renders as
    ``name=``.

    Args:
        params: Query parameters by name.

    Returns:
        Canonical query string (sorted, encoded), ``""`` when empty.
    """
    encoded = [(_uri_encode(k), _uri_encode(v)) for k, v in params.items()]
    encoded.sort()
    return "&".join(f"{k}={v}" for k, v in encoded)


def _canonical_header_value(value: str) -> str:
    """Trim a header value and collapse runs of whitespace to one space."""
    return _WHITESPACE_RE.sub(" ", value.strip())


def canonical_headers_string(headers: Headers) -> str:
    """Build the canonical headers string.

    Args:
        headers: Request headers.

    Returns:
        Canonical headers string (each line: "name:value" + newline).
    """
    lines = [
        f"{name}:{_canonical_header_value(value)}\n"
        for name, value in sorted(headers.lower_items())
    ]
    return "".join(lines)


def signed_headers_string(headers: Headers) -> str:
    """Sorted, lower-cased header names joined with ``;``."""
    return ";".join(sorted(name for name, _ in headers.lower_items()))


class CanonicalRequest:
    """Canonical request text together with its derived values."""

    __slots__ = ("text", "signed_headers", "hash")

    def __init__(self, text: str, signed_headers: str) -> None:
        self.text = text
        self.signed_headers = signed_headers
        self.hash = hashlib.sha256(text.encode("utf-8")).hexdigest()


def build_canonical_request(request: RequestDescriptor) -> CanonicalRequest:
    """Build the canonical request for a descriptor.

    Every header in ``request.headers`` is signed.

    Args:
        request: Request to canonicalize.  ``Authorization`` must not be
            present.

    Returns:
        CanonicalRequest with text, signed headers and SHA-256 hash.
    """
    signed_headers = signed_headers_string(request.headers)
    text = "\n".join(
        [
            request.method,
            canonical_uri(request.uri),
            canonical_query_string(request.query_params),
            canonical_headers_string(request.headers),
            signed_headers,
            request.payload_hash,
        ]
    )
    return CanonicalRequest(text, signed_headers)


# ---------------------------------------------------------------------------
# String to sign
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CredentialScope:
    """SigV4 credential scope ``date/region/service/aws4_request``."""

    date: str
    region: str
    service: str

    def __str__(self) -> str:
        return f"{self.date}/{self.region}/{self.service}/aws4_request"


def build_string_to_sign(
    timestamp: str, scope: CredentialScope, canonical_request_hash: str
) -> str:
    """Build the SigV4 string to sign.

    Args:
        timestamp: ISO8601 basic timestamp, identical to ``x-amz-date``.
        scope: Credential scope.
        canonical_request_hash: Hex SHA-256 of the canonical request.

    Returns:
        String to sign.
    """
    return "\n".join([ALGORITHM, timestamp, str(scope), canonical_request_hash])


# ---------------------------------------------------------------------------
# Signing key and signature
# ---------------------------------------------------------------------------


def _hmac_sha256(key: bytes, msg: str | bytes) -> bytes:
    """HMAC-SHA256 helper."""
    if isinstance(msg, str):
        msg = msg.encode("utf-8")
    return hmac.new(key, msg, hashlib.sha256).digest()


def derive_signing_key(
    secret_key: str, date: str, region: str, service: str
) -> bytes:
    """Derive the SigV4 signing key.

    Args:
        secret_key: AWS secret access key.
        date: Date string (YYYYMMDD).
        region: AWS region.
        service: AWS service name.

    Returns:
        Derived 32-byte signing key.
    """
    key = ("AWS4" + secret_key).encode("utf-8")
    for part in (date, region, service, "aws4_request"):
        key = _hmac_sha256(key, part)
    return key


def compute_signature(signing_key: bytes, string_to_sign: str) -> str:
    """Hex-encoded HMAC-SHA256 of the string to sign."""
    return hmac.new(
        signing_key, string_to_sign.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def authorization_header(
    access_key_id: str,
    scope: CredentialScope,
    signed_headers: str,
    signing_key: bytes,
    string_to_sign: str,
) -> str:
    """Compose the ``Authorization`` header value.

    Args:
        access_key_id: AWS access key ID.
        scope: Credential scope used in the string to sign.
        signed_headers: Semicolon-separated signed header names.
        signing_key: Derived signing key.
        string_to_sign: The string to sign.

    Returns:
        Full ``Authorization`` header value.
    """
    signature = compute_signature(signing_key, string_to_sign)
    return (
        f"{ALGORITHM} "
        f"Credential={access_key_id}/{scope}, "
        f"SignedHeaders={signed_headers}, "
        f"Signature={signature}"
    )


# ---------------------------------------------------------------------------
# Request signing orchestration
# ---------------------------------------------------------------------------


def format_amz_date(when: datetime) -> str:
    """Format a datetime as an ``x-amz-date`` timestamp (UTC)."""
    if when.tzinfo is not None:
        when = when.astimezone(UTC)
    return when.strftime(_AMZ_DATE_FORMAT)


class SigningResult:
    """Result of signing a request."""

    __slots__ = (
        "authorization",
        "signature",
        "timestamp",
        "scope",
        "canonical_request",
        "string_to_sign",
    )

    def __init__(
        self,
        authorization: str,
        signature: str,
        timestamp: str,
        scope: CredentialScope,
        canonical_request: str,
        string_to_sign: str,
    ) -> None:
        self.authorization = authorization
        self.signature = signature
        self.timestamp = timestamp
        self.scope = scope
        self.canonical_request = canonical_request
        self.string_to_sign = string_to_sign


def _check_request(request: RequestDescriptor) -> None:
    """Reject descriptors the signer cannot produce a valid signature for."""
    if request.method not in _SUPPORTED_METHODS:
        raise SigningError(f"Unsupported HTTP method: {request.method!r}")
    if "host" not in request.headers:
        raise SigningError("Request has no host header")
    if request.uri and not request.uri.startswith("/"):
        raise SigningError(f"Request path must be absolute: {request.uri!r}")
    for name, value in request.headers.items():
        if "\r" in value or "\n" in value:
            raise SigningError(f"Header {name!r} contains a line break")
        if not value.isascii():
            raise SigningError(f"Header {name!r} has a non-ASCII value")


def sign_request(
    request: RequestDescriptor,
    credentials: Credentials,
    timestamp: datetime | str | None = None,
) -> SigningResult:
    """Sign a request in place with SigV4.

    Sets ``x-amz-date`` (replacing any earlier value), sets
    ``x-amz-content-sha256`` from ``payload_hash`` when absent, then sets
    ``Authorization``.  The same timestamp string is used for the header,
    the string to sign and the scope date.

    Args:
        request: Request to sign.  Mutated: signing headers are added.
        credentials: Credentials to sign with.
        timestamp: Request time.  A ``datetime`` or an ``x-amz-date``
            string; defaults to the current UTC time.

    Returns:
        SigningResult describing the signature.

    Raises:
        SigningError: If any step of the chain fails.
    """
    if timestamp is None:
        timestamp = datetime.now(UTC)
    amz_date = (
        format_amz_date(timestamp)
        if isinstance(timestamp, datetime)
        else timestamp
    )
    if not _AMZ_DATE_RE.match(amz_date):
        raise SigningError(f"Malformed x-amz-date timestamp: {amz_date!r}")
    if not credentials.region:
        raise SigningError("Signing region is empty")
    if not credentials.service_name:
        raise SigningError("Signing service is empty")
    _check_request(request)

    headers = request.headers
    headers.pop("authorization", None)
    headers["x-amz-date"] = amz_date
    content_sha256 = headers.setdefault(
        "x-amz-content-sha256", request.payload_hash
    )
    if content_sha256 != request.payload_hash:
        raise SigningError(
            "x-amz-content-sha256 header does not match the payload hash"
        )

    scope = CredentialScope(
        date=amz_date[:8],
        region=credentials.region,
        service=credentials.service_name,
    )
    try:
        creq = build_canonical_request(request)
        string_to_sign = build_string_to_sign(amz_date, scope, creq.hash)
        signing_key = derive_signing_key(
            credentials.secret_access_key,
            scope.date,
            scope.region,
            scope.service,
        )
        auth = authorization_header(
            credentials.access_key_id,
            scope,
            creq.signed_headers,
            signing_key,
            string_to_sign,
        )
    except UnicodeEncodeError as e:
        raise SigningError(
            f"Cannot encode request for signing: {e}", cause=e
        ) from e

    logger.debug("Canonical request:\n%s", creq.text)
    logger.debug("String to sign:\n%s", string_to_sign)

    headers["Authorization"] = auth
    return SigningResult(
        authorization=auth,
        signature=auth.rsplit("Signature=", 1)[1],
        timestamp=amz_date,
        scope=scope,
        canonical_request=creq.text,
        string_to_sign=string_to_sign,
    )


# ---------------------------------------------------------------------------
# Clock skew detection
# ---------------------------------------------------------------------------


def check_clock_skew(
    amz_date: str, server_date: datetime | None = None
) -> tuple[bool, int]:
    """Check if x-amz-date differs significantly from a reference time.

    Args:
        amz_date: ISO8601 timestamp from x-amz-date header.
        server_date: Reference time (e.g. the response ``Date`` header).
            Defaults to the local system time.

    Returns:
        Tuple of (is_skewed, drift_minutes). is_skewed is True if
        drift exceeds 5 minutes.
    """
    try:
        request_time = datetime.strptime(amz_date, _AMZ_DATE_FORMAT).replace(
            tzinfo=UTC
        )
    except (ValueError, TypeError):
        return False, 0
    now = server_date or datetime.now(UTC)
    drift = abs((now - request_time).total_seconds())
    drift_minutes = int(drift / 60)
    return drift_minutes > 5, drift_minutes
