# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""HTTP transport used by the S3 client.

The client depends only on the ``Transport`` protocol: send a fully
signed request and get back status, headers and body.  ``HttpxTransport``
is the default implementation on top of ``httpx.Client``; it owns the
connection pool and applies timeouts, proxy and TLS settings.

Redirects are never followed: a redirected S3 request would have to be
re-signed for the new host, so 3xx responses are surfaced as errors.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import TracebackType
from typing import Protocol

import httpx

from s3lite.errors import TransportError


logger = logging.getLogger(__name__)

#: Default request timeout in seconds.
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class TransportResponse:
    """Raw HTTP response handed back to the client.

    Attributes:
        status_code: HTTP status code.
        headers: Response headers (lower-cased names).
        body: Response body.
    """

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""


class Transport(Protocol):
    """Capability to send one HTTP request."""

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes,
    ) -> TransportResponse:
        """Send a request and return the complete response.

        Raises:
            TransportError: If the exchange does not complete.
        """
        ...

    def close(self) -> None:
        """Release any resources held by the transport."""
        ...


class HttpxTransport:
    """``Transport`` backed by a long-lived ``httpx.Client``."""

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        verify: bool = True,
        proxy: str | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            timeout: Connect/read/write timeout in seconds.
            verify: Verify TLS certificates.
            proxy: Proxy URL, e.g. ``http://proxy:3128``.
            client: Pre-built client (tests inject one with a
                ``MockTransport``).  Other options are ignored when given.
        """
        self._client = client or httpx.Client(
            timeout=timeout,
            verify=verify,
            proxy=proxy,
            headers={"Accept-Encoding": "identity"},
            follow_redirects=False,
        )

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes,
    ) -> TransportResponse:
        """Send a request.

        Args:
            method: HTTP method.
            url: Absolute URL with the already-encoded path and query.
            headers: Request headers, including the signature.
            body: Request body.

        Returns:
            TransportResponse with the full body read.  The body is the
            raw payload as sent by the server, still carrying any
            ``Content-Encoding``.

        Raises:
            TransportError: On connection errors, timeouts or protocol
                errors.
        """
        try:
            request = self._client.build_request(
                method,
                url,
                headers=dict(headers),
                content=body or None,
            )
            response = self._client.send(request, stream=True)
            try:
                # Raw bytes; httpx would otherwise undo Content-Encoding
                content = b"".join(response.iter_raw())
            finally:
                response.close()
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timed out: {e}", cause=e) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request failed: {e}", cause=e) from e

        logger.debug(
            "%s %s -> %d (%d bytes)",
            method,
            url,
            response.status_code,
            len(content),
        )
        return TransportResponse(
            status_code=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
            body=content,
        )

    def close(self) -> None:
        """Close the underlying connection pool."""
        self._client.close()

    def __enter__(self) -> HttpxTransport:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
