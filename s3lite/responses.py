# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Mapping of S3 HTTP responses to domain results and errors.

Successful (2xx) responses are parsed into ``Bucket``, ``S3Object`` or
``Status`` records according to the operation.  Anything else becomes an
``AmazonS3Error`` carrying AWS's error code and message when the body is
the standard ``<Error>`` document.

S3 documents may or may not declare the
``http://s3.amazonaws.com/doc/2006-03-01/`` namespace; element lookups
ignore namespaces.
"""

from __future__ import annotations

import logging
import urllib.parse
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from datetime import datetime
from email.utils import parsedate_to_datetime

from s3lite.errors import AmazonS3Error, ParseError
from s3lite.models import Bucket, OperationKind, Owner, S3Object, Status


logger = logging.getLogger(__name__)

#: Error code used when the response body is not an ``<Error>`` document.
GENERIC_ERROR_CODE = "AmazonS3Error"

_META_PREFIX = "x-amz-meta-"

_STATUS_MESSAGES = {
    OperationKind.CREATE_BUCKET: "Bucket created",
    OperationKind.DELETE_BUCKET: "Bucket deleted",
    OperationKind.CREATE_OBJECT: "Object created",
    OperationKind.DELETE_OBJECT: "Object deleted",
}


# ---------------------------------------------------------------------------
# XML helpers
# ---------------------------------------------------------------------------


def _local_name(tag: str) -> str:
    """Strip a ``{namespace}`` prefix from an element tag."""
    return tag.rsplit("}", 1)[-1]


def _parse_xml(body: bytes, expected_root: str) -> ET.Element:
    """Parse an XML body and check the root element name.

    Raises:
        ParseError: If the body is not XML or has a different root.
    """
    if not body:
        raise ParseError(f"Empty response body, expected <{expected_root}>")
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise ParseError(f"Malformed XML response: {e}", cause=e) from e
    if _local_name(root.tag) != expected_root:
        raise ParseError(
            f"Unexpected root element <{_local_name(root.tag)}>, "
            f"expected <{expected_root}>"
        )
    return root


def _children(element: ET.Element, name: str) -> list[ET.Element]:
    """Direct children with the given local name, in document order."""
    return [child for child in element if _local_name(child.tag) == name]


def _child(element: ET.Element, name: str) -> ET.Element | None:
    found = _children(element, name)
    return found[0] if found else None


def _optional_text(element: ET.Element, name: str) -> str | None:
    child = _child(element, name)
    if child is None:
        return None
    return child.text or ""


def _required_text(element: ET.Element, name: str) -> str:
    """Text of a required child element.

    Raises:
        ParseError: If the element is absent.
    """
    text = _optional_text(element, name)
    if text is None:
        raise ParseError(f"Missing <{name}> in <{_local_name(element.tag)}>")
    return text


def _parse_iso_timestamp(value: str, field: str) -> datetime:
    """Parse an S3 XML timestamp such as ``2009-10-12T17:50:30.000Z``."""
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError as e:
        raise ParseError(
            f"Invalid {field} timestamp: {value!r}", cause=e
        ) from e


def _parse_http_date(value: str, field: str) -> datetime:
    """Parse an HTTP date header such as ``Wed, 12 Oct 2009 17:50:00 GMT``."""
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Invalid {field} date: {value!r}", cause=e) from e


def _parse_size(value: str, field: str) -> int:
    try:
        size = int(value)
    except ValueError as e:
        raise ParseError(f"Invalid {field}: {value!r}", cause=e) from e
    if size < 0:
        raise ParseError(f"Invalid {field}: {value!r}")
    return size


def _header(headers: Mapping[str, str], name: str) -> str | None:
    """Case-insensitive header lookup over any mapping."""
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


# ---------------------------------------------------------------------------
# Successful responses
# ---------------------------------------------------------------------------


def parse_list_buckets(body: bytes) -> list[Bucket]:
    """Parse a ``ListAllMyBucketsResult`` document.

    Args:
        body: Response body.

    Returns:
        Buckets in document order.

    Raises:
        ParseError: If required elements are missing or malformed.
    """
    root = _parse_xml(body, "ListAllMyBucketsResult")
    buckets: list[Bucket] = []
    container = _child(root, "Buckets")
    if container is None:
        return buckets
    for element in _children(container, "Bucket"):
        buckets.append(
            Bucket(
                name=_required_text(element, "Name"),
                creation_date=_parse_iso_timestamp(
                    _required_text(element, "CreationDate"), "CreationDate"
                ),
            )
        )
    return buckets


def _parse_owner(element: ET.Element) -> Owner | None:
    owner = _child(element, "Owner")
    if owner is None:
        return None
    return Owner(
        id=_optional_text(owner, "ID") or "",
        display_name=_optional_text(owner, "DisplayName"),
    )


def parse_list_objects(body: bytes) -> list[S3Object]:
    """Parse a ListObjectsV2 ``ListBucketResult`` document.

    Keys are URL-decoded when the response declares
    ``<EncodingType>url</EncodingType>``.

    Args:
        body: Response body.

    Returns:
        Objects in document order.

    Raises:
        ParseError: If required elements are missing or malformed.
    """
    root = _parse_xml(body, "ListBucketResult")
    url_encoded = (_optional_text(root, "EncodingType") or "").lower() == "url"

    objects: list[S3Object] = []
    for element in _children(root, "Contents"):
        key = _required_text(element, "Key")
        if url_encoded:
            key = urllib.parse.unquote_plus(key)
        objects.append(
            S3Object(
                key=key,
                last_modified=_parse_iso_timestamp(
                    _required_text(element, "LastModified"), "LastModified"
                ),
                etag=_required_text(element, "ETag"),
                size=_parse_size(_required_text(element, "Size"), "Size"),
                storage_class=_optional_text(element, "StorageClass")
                or "STANDARD",
                owner=_parse_owner(element),
            )
        )
    return objects


def parse_get_object(
    key: str, headers: Mapping[str, str], body: bytes
) -> S3Object:
    """Build an ``S3Object`` from a GetObject response.

    Args:
        key: Requested object key.
        headers: Response headers.
        body: Object content.

    Returns:
        S3Object including content, content type and user metadata.

    Raises:
        ParseError: If ``ETag`` or ``Last-Modified`` is missing or
            malformed.
    """
    etag = _header(headers, "etag")
    if etag is None:
        raise ParseError("Missing ETag header in GetObject response")
    last_modified = _header(headers, "last-modified")
    if last_modified is None:
        raise ParseError("Missing Last-Modified header in GetObject response")

    content_length = _header(headers, "content-length")
    size = (
        _parse_size(content_length, "Content-Length")
        if content_length is not None
        else len(body)
    )
    metadata = {
        name.lower()[len(_META_PREFIX) :]: value
        for name, value in headers.items()
        if name.lower().startswith(_META_PREFIX)
    }
    return S3Object(
        key=key,
        last_modified=_parse_http_date(last_modified, "Last-Modified"),
        etag=etag,
        size=size,
        storage_class=_header(headers, "x-amz-storage-class") or "STANDARD",
        content=body,
        content_type=_header(headers, "content-type"),
        metadata=metadata,
    )


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


def map_error(
    status_code: int,
    body: bytes,
    headers: Mapping[str, str] | None = None,
) -> AmazonS3Error:
    """Convert a non-2xx response into an ``AmazonS3Error``.

    Parses AWS's ``<Error><Code/><Message/></Error>`` document.  Bodies
    that are empty, not XML, truncated or lack ``<Code>`` yield a generic
    error instead; this function never raises.

    Args:
        status_code: HTTP status code.
        body: Raw response body.
        headers: Response headers (for ``x-amz-request-id``).

    Returns:
        The error to raise.
    """
    request_id = _header(headers, "x-amz-request-id") if headers else None
    generic = AmazonS3Error(
        f"request failed with status {status_code}",
        status_code=status_code,
        code=GENERIC_ERROR_CODE,
        request_id=request_id,
    )
    if not body:
        return generic
    try:
        root = ET.fromstring(body)
    except ET.ParseError:
        logger.debug("Error response body is not XML (status %d)", status_code)
        return generic
    if _local_name(root.tag) != "Error":
        return generic
    code = _optional_text(root, "Code")
    if not code:
        return generic
    return AmazonS3Error(
        _optional_text(root, "Message") or generic.message,
        status_code=status_code,
        code=code,
        request_id=_optional_text(root, "RequestId") or request_id,
        resource=_optional_text(root, "Resource"),
    )


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def map_response(
    kind: OperationKind,
    status_code: int,
    headers: Mapping[str, str],
    body: bytes,
    *,
    key: str | None = None,
) -> list[Bucket] | list[S3Object] | S3Object | Status:
    """Map a response to the domain result for an operation.

    Args:
        kind: Operation that produced the response.
        status_code: HTTP status code.
        headers: Response headers.
        body: Response body.
        key: Object key (GetObject only).

    Returns:
        The domain result for ``kind``.

    Raises:
        AmazonS3Error: If the status is not 2xx.
        ParseError: If a 2xx body does not match the operation.
    """
    if not 200 <= status_code < 300:
        raise map_error(status_code, body, headers)

    if kind is OperationKind.LIST_BUCKETS:
        return parse_list_buckets(body)
    if kind is OperationKind.LIST_OBJECTS:
        return parse_list_objects(body)
    if kind is OperationKind.GET_OBJECT:
        if key is None:
            raise ValueError("key is required for GetObject responses")
        return parse_get_object(key, headers, body)
    return Status(success=True, message=_STATUS_MESSAGES[kind])
