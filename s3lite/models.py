# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Request and result types.

Provides the request descriptor handed to the signer, the case-insensitive
header mapping it carries, per-operation option structures, and the
domain records produced from successful responses.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable, Iterator, Mapping, MutableMapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


#: Payload hash sentinel for bodies that are not hashed.
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"


def payload_sha256(body: bytes) -> str:
    """Hex-encoded SHA-256 of a request body."""
    return hashlib.sha256(body).hexdigest()


# ---------------------------------------------------------------------------
# Headers
# ---------------------------------------------------------------------------


class Headers(MutableMapping[str, str]):
    """Ordered header mapping with case-insensitive names.

    Lookups, assignment and deletion ignore case.  Assigning to a name
    that already exists under a different spelling replaces the value and
    keeps the original spelling.  Iteration yields names as first given,
    in insertion order.
    """

    def __init__(
        self,
        headers: Mapping[str, str] | Iterable[tuple[str, str]] | None = None,
    ) -> None:
        self._store: dict[str, tuple[str, str]] = {}
        if headers is not None:
            self.update(headers)

    def __getitem__(self, name: str) -> str:
        return self._store[name.lower()][1]

    def __setitem__(self, name: str, value: str) -> None:
        lower = name.lower()
        existing = self._store.get(lower)
        self._store[lower] = (existing[0] if existing else name, value)

    def __delitem__(self, name: str) -> None:
        del self._store[name.lower()]

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._store

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"

    def lower_items(self) -> list[tuple[str, str]]:
        """Return ``(lower-cased name, value)`` pairs in insertion order."""
        return [(lower, value) for lower, (_, value) in self._store.items()]

    def copy(self) -> Headers:
        """Return a shallow copy."""
        return Headers(self.items())


# ---------------------------------------------------------------------------
# Request descriptor
# ---------------------------------------------------------------------------


@dataclass
class RequestDescriptor:
    """Everything the signer needs to know about an outgoing request.

    ``host`` and ``x-amz-content-sha256`` must be present in ``headers``
    before signing; the signer adds ``x-amz-date`` and ``Authorization``.

    Attributes:
        method: HTTP method (GET, PUT or DELETE).
        uri: Absolute request path without query string.
        query_params: Query parameters by name.  An empty-string value is
            sent as ``name=``; absent parameters are simply not in the map.
        headers: Request headers.
        payload_hash: Hex SHA-256 of ``body`` or ``UNSIGNED-PAYLOAD``.
        body: Raw request body.
    """

    method: str
    uri: str
    query_params: dict[str, str] = field(default_factory=dict)
    headers: Headers = field(default_factory=Headers)
    payload_hash: str = UNSIGNED_PAYLOAD
    body: bytes = b""

    def __post_init__(self) -> None:
        if not isinstance(self.headers, Headers):
            self.headers = Headers(self.headers)

    @classmethod
    def for_payload(
        cls,
        method: str,
        uri: str,
        *,
        host: str,
        body: bytes = b"",
        query_params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        sign_payload: bool = True,
    ) -> RequestDescriptor:
        """Build a descriptor with ``host`` and payload hash headers filled.

        Args:
            method: HTTP method.
            uri: Absolute request path.
            host: Value for the ``host`` header.
            body: Request body.
            query_params: Query parameters.
            headers: Extra request headers.
            sign_payload: Hash the body; when False the payload hash is
                ``UNSIGNED-PAYLOAD``.

        Returns:
            A descriptor ready for signing.
        """
        payload_hash = (
            payload_sha256(body) if sign_payload else UNSIGNED_PAYLOAD
        )
        all_headers = Headers(headers or {})
        all_headers["host"] = host
        all_headers["x-amz-content-sha256"] = payload_hash
        return cls(
            method=method,
            uri=uri,
            query_params=dict(query_params or {}),
            headers=all_headers,
            payload_hash=payload_hash,
            body=body,
        )


# ---------------------------------------------------------------------------
# Operation options
# ---------------------------------------------------------------------------


class CannedACL(Enum):
    """Canned ACL names accepted in the ``x-amz-acl`` header."""

    PRIVATE = "private"
    PUBLIC_READ = "public-read"
    PUBLIC_READ_WRITE = "public-read-write"
    AUTHENTICATED_READ = "authenticated-read"
    AWS_EXEC_READ = "aws-exec-read"
    BUCKET_OWNER_READ = "bucket-owner-read"
    BUCKET_OWNER_FULL_CONTROL = "bucket-owner-full-control"
    LOG_DELIVERY_WRITE = "log-delivery-write"


class OperationKind(Enum):
    """Operation whose response is being mapped."""

    LIST_BUCKETS = "list-buckets"
    CREATE_BUCKET = "create-bucket"
    DELETE_BUCKET = "delete-bucket"
    LIST_OBJECTS = "list-objects"
    GET_OBJECT = "get-object"
    CREATE_OBJECT = "create-object"
    DELETE_OBJECT = "delete-object"


@dataclass(frozen=True)
class ListObjectsOptions:
    """Optional ListObjectsV2 parameters.

    Each field maps to exactly one query parameter and is omitted from
    the request when None.

    Attributes:
        delimiter: Groups keys sharing a prefix up to the delimiter
            (``delimiter``).
        encoding_type: Key encoding in the response, ``url``
            (``encoding-type``).
        max_keys: Caps the number of keys returned (``max-keys``).
        prefix: Only keys starting with this prefix (``prefix``).
        start_after: Start listing after this key (``start-after``).
        fetch_owner: Include owner metadata (``fetch-owner``).
        continuation_token: Pagination cursor (``continuation-token``).
    """

    delimiter: str | None = None
    encoding_type: str | None = None
    max_keys: int | None = None
    prefix: str | None = None
    start_after: str | None = None
    fetch_owner: bool | None = None
    continuation_token: str | None = None

    def to_query_params(self) -> dict[str, str]:
        """Render as ListObjectsV2 query parameters, ``list-type=2`` first."""
        params = {"list-type": "2"}
        if self.delimiter is not None:
            params["delimiter"] = self.delimiter
        if self.encoding_type is not None:
            params["encoding-type"] = self.encoding_type
        if self.max_keys is not None:
            params["max-keys"] = str(self.max_keys)
        if self.prefix is not None:
            params["prefix"] = self.prefix
        if self.start_after is not None:
            params["start-after"] = self.start_after
        if self.fetch_owner is not None:
            params["fetch-owner"] = "true" if self.fetch_owner else "false"
        if self.continuation_token is not None:
            params["continuation-token"] = self.continuation_token
        return params


# ---------------------------------------------------------------------------
# Domain results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Bucket:
    """A bucket from ListBuckets."""

    name: str
    creation_date: datetime


@dataclass(frozen=True)
class Owner:
    """Object or bucket owner."""

    id: str
    display_name: str | None = None


@dataclass(frozen=True)
class S3Object:
    """An object from ListObjectsV2 or GetObject.

    Attributes:
        key: Object key.
        last_modified: Last modification time (timezone-aware).
        etag: Entity tag, including the surrounding quotes S3 returns.
        size: Size in bytes.
        storage_class: Storage class (``STANDARD`` when not reported).
        owner: Owner, when requested with ``fetch_owner``.
        content: Object body (GetObject only).
        content_type: ``Content-Type`` (GetObject only).
        metadata: ``x-amz-meta-*`` user metadata, prefix stripped.
    """

    key: str
    last_modified: datetime
    etag: str
    size: int
    storage_class: str = "STANDARD"
    owner: Owner | None = None
    content: bytes | None = field(default=None, repr=False)
    content_type: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Status:
    """Outcome of a create or delete operation."""

    success: bool
    message: str
