# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Shared pytest fixtures used across multiple test modules."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

import pytest

from s3lite.client import S3Client
from s3lite.config import reset_dotenv_state
from s3lite.logging import SecretFilter
from s3lite.transport import TransportResponse
from tests.vectors import ACCESS_KEY_ID, SECRET_ACCESS_KEY


#: Fixed signing time matching the AWS example vectors.
FIXED_NOW = datetime(2013, 5, 24, 0, 0, 0, tzinfo=UTC)


@dataclass
class SentRequest:
    """A request captured by ``RecordingTransport``."""

    method: str
    url: str
    headers: dict[str, str]
    body: bytes


@dataclass
class RecordingTransport:
    """Transport that records requests and replays canned responses.

    Responses are returned in order; when the queue is empty an empty
    200 response is returned.
    """

    responses: list[TransportResponse] = field(default_factory=list)
    sent: list[SentRequest] = field(default_factory=list)
    closed: bool = False

    def queue(
        self,
        status_code: int = 200,
        body: bytes = b"",
        headers: dict[str, str] | None = None,
    ) -> None:
        self.responses.append(
            TransportResponse(status_code, dict(headers or {}), body)
        )

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes,
    ) -> TransportResponse:
        self.sent.append(SentRequest(method, url, dict(headers), body))
        if self.responses:
            return self.responses.pop(0)
        return TransportResponse(200)

    def close(self) -> None:
        self.closed = True

    @property
    def last(self) -> SentRequest:
        return self.sent[-1]


@pytest.fixture(autouse=True)
def _clean_global_state() -> Iterator[None]:
    """Reset class-level secrets and dotenv state around every test."""
    SecretFilter.clear_secrets()
    reset_dotenv_state()
    yield
    SecretFilter.clear_secrets()
    reset_dotenv_state()


@pytest.fixture
def transport() -> RecordingTransport:
    """Create an empty recording transport."""
    return RecordingTransport()


@pytest.fixture
def client(transport: RecordingTransport) -> S3Client:
    """Create a us-east-1 client signing at a fixed time."""
    return S3Client(
        ACCESS_KEY_ID,
        SECRET_ACCESS_KEY,
        transport=transport,
        clock=lambda: FIXED_NOW,
    )
