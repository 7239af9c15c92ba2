# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""S3 bucket and object operations.

``S3Client`` validates credentials once at construction and then, per
operation, builds a ``RequestDescriptor``, signs it, sends it through the
transport and maps the response.  The path and query string placed on
the wire are exactly the canonical forms that were signed.

Addressing:

- AWS endpoints use virtual-hosted style (``bucket.s3.region.amazonaws.com``)
  except for bucket names containing dots, which use path style.
- A custom ``endpoint_url`` (MinIO, LocalStack, ...) always uses path
  style (``endpoint/bucket/key``).
"""

from __future__ import annotations

import logging
import re
import urllib.parse
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from types import TracebackType
from typing import Any
from xml.sax.saxutils import escape

from s3lite.config import ClientConfig
from s3lite.credentials import (
    DEFAULT_REGION,
    REGION_RE,
    Credentials,
    validate_credentials,
)
from s3lite.errors import AmazonS3Error
from s3lite.logging import SecretFilter
from s3lite.models import (
    Bucket,
    CannedACL,
    ListObjectsOptions,
    OperationKind,
    RequestDescriptor,
    S3Object,
    Status,
)
from s3lite.responses import map_response
from s3lite.signing import (
    canonical_query_string,
    canonical_uri,
    check_clock_skew,
    sign_request,
)
from s3lite.transport import HttpxTransport, Transport, TransportResponse


logger = logging.getLogger(__name__)

S3_XML_NAMESPACE = "http://s3.amazonaws.com/doc/2006-03-01/"

_AWS_SERVICE_HOST = "s3.amazonaws.com"

_BUCKET_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$")


def validate_bucket_name(bucket: str) -> None:
    """Check a bucket name against S3 naming rules.

    Raises:
        ValueError: If the name is not a valid bucket name.
    """
    if not _BUCKET_NAME_RE.match(bucket) or ".." in bucket:
        raise ValueError(f"Invalid bucket name: {bucket!r}")


def _validate_key(key: str) -> None:
    if not key:
        raise ValueError("Object key must not be empty")
    # URL parsers collapse dot segments, which would change the signed path
    if any(segment in (".", "..") for segment in key.split("/")):
        raise ValueError(f"Object key has a . or .. path segment: {key!r}")


def _acl_value(acl: CannedACL | str) -> str:
    return acl.value if isinstance(acl, CannedACL) else acl


def create_bucket_configuration(region: str) -> bytes:
    """XML body for CreateBucket outside ``us-east-1``."""
    return (
        f'<CreateBucketConfiguration xmlns="{S3_XML_NAMESPACE}">'
        f"<LocationConstraint>{escape(region)}</LocationConstraint>"
        f"</CreateBucketConfiguration>"
    ).encode()


class S3Client:
    """Client for S3 bucket and object CRUD.

    Example:
        with S3Client("AKIA...", "secret", region="eu-west-1") as s3:
            s3.create_object("my-bucket", "hello.txt", b"hello")
            obj = s3.get_object("my-bucket", "hello.txt")
    """

    def __init__(
        self,
        access_key_id: str,
        secret_access_key: str,
        region: str | None = None,
        *,
        endpoint_url: str | None = None,
        transport: Transport | None = None,
        sign_payload: bool = True,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            access_key_id: AWS access key ID.
            secret_access_key: AWS secret access key.
            region: AWS region; defaults to ``us-east-1``.
            endpoint_url: Base URL of an S3-compatible server.
            transport: Transport to send requests through.  Defaults to
                an ``HttpxTransport`` owned (and closed) by this client.
            sign_payload: Hash request bodies instead of sending
                ``UNSIGNED-PAYLOAD``.
            clock: Returns the signing time; defaults to the UTC now.

        Raises:
            AuthError: If either key is empty.
            ValueError: If the region is not a valid region name.
        """
        self.credentials = Credentials.create(
            access_key_id, secret_access_key, region
        )
        if not REGION_RE.match(self.region):
            raise ValueError(f"Invalid region: {self.region!r}")
        SecretFilter.register_secret(secret_access_key)

        self._sign_payload = sign_payload
        self._clock = clock or (lambda: datetime.now(UTC))
        self._owns_transport = transport is None
        self._transport: Transport = transport or HttpxTransport()

        if endpoint_url:
            parsed = urllib.parse.urlsplit(endpoint_url)
            self._scheme = parsed.scheme
            self._service_host = parsed.netloc
            self._path_style = True
        else:
            self._scheme = "https"
            self._service_host = (
                _AWS_SERVICE_HOST
                if self.region == DEFAULT_REGION
                else f"s3.{self.region}.amazonaws.com"
            )
            self._path_style = False

        logger.debug(
            "S3 client ready (region=%s, host=%s, path_style=%s)",
            self.region,
            self._service_host,
            self._path_style,
        )

    @classmethod
    def from_config(
        cls, config: ClientConfig, *, transport: Transport | None = None
    ) -> S3Client:
        """Build a client from a ``ClientConfig``.

        Raises:
            AuthError: If either key is empty.
        """
        validate_credentials(config.access_key_id, config.secret_access_key)
        owns_transport = transport is None
        if transport is None:
            transport = HttpxTransport(
                timeout=config.timeout,
                verify=config.verify_tls,
                proxy=config.proxy,
            )
        client = cls(
            config.access_key_id,
            config.secret_access_key,
            config.region,
            endpoint_url=config.endpoint_url,
            transport=transport,
            sign_payload=config.sign_payload,
        )
        client._owns_transport = owns_transport
        return client

    @property
    def region(self) -> str:
        """Region requests are signed for."""
        return self.credentials.region

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    def close(self) -> None:
        """Close the transport if this client owns it."""
        if self._owns_transport:
            self._transport.close()

    def __enter__(self) -> S3Client:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -----------------------------------------------------------------------
    # Operations
    # -----------------------------------------------------------------------

    def list_buckets(self) -> list[Bucket]:
        """List all buckets owned by the authenticated sender.

        Returns:
            Buckets in the order S3 returned them.
        """
        buckets = self._execute(OperationKind.LIST_BUCKETS, "GET")
        logger.info("Listed %d buckets", len(buckets))
        return buckets

    def create_bucket(
        self, bucket: str, acl: CannedACL | str | None = None
    ) -> Status:
        """Create a bucket in the client's region.

        Args:
            bucket: Bucket name.
            acl: Canned ACL for the new bucket.

        Returns:
            Status of the operation.
        """
        validate_bucket_name(bucket)
        headers: dict[str, str] = {}
        if acl is not None:
            headers["x-amz-acl"] = _acl_value(acl)
        body = b""
        if self.region != DEFAULT_REGION:
            body = create_bucket_configuration(self.region)
            headers["Content-Type"] = "application/xml"
        status = self._execute(
            OperationKind.CREATE_BUCKET,
            "PUT",
            bucket=bucket,
            headers=headers,
            body=body,
        )
        logger.info("Created bucket %s", bucket)
        return status

    def delete_bucket(self, bucket: str) -> Status:
        """Delete an empty bucket.

        Returns:
            Status of the operation.
        """
        validate_bucket_name(bucket)
        status = self._execute(
            OperationKind.DELETE_BUCKET, "DELETE", bucket=bucket
        )
        logger.info("Deleted bucket %s", bucket)
        return status

    def list_objects(
        self,
        bucket: str,
        options: ListObjectsOptions | None = None,
        **kwargs: Any,
    ) -> list[S3Object]:
        """List objects in a bucket (ListObjectsV2, one page).

        Options are given either as a ``ListObjectsOptions`` or as keyword
        arguments with the same names (``prefix=``, ``max_keys=``, ...).

        Args:
            bucket: Bucket name.
            options: Listing options.
            **kwargs: ``ListObjectsOptions`` fields.

        Returns:
            Objects in the order S3 returned them.

        Raises:
            ValueError: If both ``options`` and keyword arguments are given.
        """
        validate_bucket_name(bucket)
        if options is not None and kwargs:
            raise ValueError("Pass either options or keyword arguments")
        if options is None:
            options = ListObjectsOptions(**kwargs)
        objects = self._execute(
            OperationKind.LIST_OBJECTS,
            "GET",
            bucket=bucket,
            query=options.to_query_params(),
        )
        logger.info("Listed %d objects in %s", len(objects), bucket)
        return objects

    def get_object(
        self,
        bucket: str,
        key: str,
        headers: Mapping[str, str] | None = None,
    ) -> S3Object:
        """Download an object.

        Args:
            bucket: Bucket name.
            key: Object key.
            headers: Extra request headers (``Range``, ``If-None-Match``...).

        Returns:
            S3Object with ``content`` set.
        """
        validate_bucket_name(bucket)
        _validate_key(key)
        obj = self._execute(
            OperationKind.GET_OBJECT,
            "GET",
            bucket=bucket,
            key=key,
            headers=headers,
        )
        logger.info("Downloaded %s/%s (%d bytes)", bucket, key, obj.size)
        return obj

    def create_object(
        self,
        bucket: str,
        key: str,
        payload: bytes | str,
        acl: CannedACL | str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Status:
        """Upload an object in a single PUT.

        Args:
            bucket: Bucket name.
            key: Object key.
            payload: Object content; ``str`` is encoded as UTF-8.
            acl: Canned ACL for the object.
            headers: Extra request headers (``Content-Type``,
                ``x-amz-meta-*``, ``x-amz-storage-class``...).

        Returns:
            Status of the operation.
        """
        validate_bucket_name(bucket)
        _validate_key(key)
        body = payload.encode("utf-8") if isinstance(payload, str) else payload
        all_headers = dict(headers or {})
        if acl is not None:
            all_headers["x-amz-acl"] = _acl_value(acl)
        status = self._execute(
            OperationKind.CREATE_OBJECT,
            "PUT",
            bucket=bucket,
            key=key,
            headers=all_headers,
            body=body,
        )
        logger.info("Uploaded %s/%s (%d bytes)", bucket, key, len(body))
        return status

    def delete_object(
        self, bucket: str, key: str, version_id: str | None = None
    ) -> Status:
        """Delete an object (or one version of it).

        Returns:
            Status of the operation.
        """
        validate_bucket_name(bucket)
        _validate_key(key)
        query = {"versionId": version_id} if version_id is not None else {}
        status = self._execute(
            OperationKind.DELETE_OBJECT,
            "DELETE",
            bucket=bucket,
            key=key,
            query=query,
        )
        logger.info("Deleted %s/%s", bucket, key)
        return status

    # -----------------------------------------------------------------------
    # Request plumbing
    # -----------------------------------------------------------------------

    def _address(self, bucket: str | None, key: str | None) -> tuple[str, str]:
        """Return ``(host, path)`` for a bucket/key pair."""
        if bucket is None:
            return self._service_host, "/"
        if self._path_style or "." in bucket:
            path = f"/{bucket}/{key}" if key else f"/{bucket}"
            return self._service_host, path
        return f"{bucket}.{self._service_host}", f"/{key or ''}"

    def build_request(
        self,
        method: str,
        *,
        bucket: str | None = None,
        key: str | None = None,
        query: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
    ) -> RequestDescriptor:
        """Build an unsigned request descriptor for an operation."""
        host, path = self._address(bucket, key)
        return RequestDescriptor.for_payload(
            method,
            path,
            host=host,
            body=body,
            query_params=query,
            headers=headers,
            sign_payload=self._sign_payload,
        )

    def _url(self, request: RequestDescriptor) -> str:
        url = (
            f"{self._scheme}://{request.headers['host']}"
            f"{canonical_uri(request.uri)}"
        )
        query = canonical_query_string(request.query_params)
        return f"{url}?{query}" if query else url

    def _execute(
        self,
        kind: OperationKind,
        method: str,
        *,
        bucket: str | None = None,
        key: str | None = None,
        query: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
    ) -> Any:
        """Sign, send and map one request.

        Raises:
            SigningError: If the request cannot be signed.
            TransportError: If the request cannot be sent.
            AmazonS3Error: If S3 rejects the request.
            ParseError: If the response does not match the operation.
        """
        request = self.build_request(
            method,
            bucket=bucket,
            key=key,
            query=query,
            headers=headers,
            body=body,
        )
        result = sign_request(request, self.credentials, self._clock())
        url = self._url(request)
        logger.debug("%s %s", method, url)

        response = self._transport.send(
            method, url, request.headers, request.body
        )
        try:
            return map_response(
                kind,
                response.status_code,
                response.headers,
                response.body,
                key=key,
            )
        except AmazonS3Error as e:
            self._log_failure(e, response, result.timestamp)
            raise

    def _log_failure(
        self,
        error: AmazonS3Error,
        response: TransportResponse,
        amz_date: str,
    ) -> None:
        logger.warning(
            "S3 request failed: %s (request id %s)", error, error.request_id
        )
        if error.code != "RequestTimeTooSkewed":
            return
        server_date = None
        date_header = response.headers.get("date")
        if date_header:
            try:
                server_date = parsedate_to_datetime(date_header)
                if server_date.tzinfo is None:
                    server_date = server_date.replace(tzinfo=UTC)
            except (TypeError, ValueError):
                server_date = None
        skewed, minutes = check_clock_skew(amz_date, server_date)
        if skewed:
            logger.warning(
                "Local clock differs from S3 by about %d minutes; "
                "synchronize the system clock",
                minutes,
            )
