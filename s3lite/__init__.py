# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Minimal Amazon S3 client.

Provides signed access to S3 bucket and object operations:
- SigV4 request signing (signing)
- Response and error mapping (responses)
- Bucket/object CRUD over a pluggable HTTP transport (S3Client)
- Configuration loading (ClientConfig)
"""

from s3lite.client import S3Client
from s3lite.config import ClientConfig
from s3lite.credentials import Credentials, validate_credentials
from s3lite.errors import (
    AmazonS3Error,
    AuthError,
    ConfigError,
    ParseError,
    S3Error,
    SigningError,
    TransportError,
)
from s3lite.models import (
    UNSIGNED_PAYLOAD,
    Bucket,
    CannedACL,
    Headers,
    ListObjectsOptions,
    OperationKind,
    Owner,
    RequestDescriptor,
    S3Object,
    Status,
)
from s3lite.responses import map_error, map_response
from s3lite.signing import sign_request
from s3lite.transport import HttpxTransport, Transport, TransportResponse


__all__ = [
    # client
    "S3Client",
    # config
    "ClientConfig",
    # credentials
    "Credentials",
    "validate_credentials",
    # errors
    "AmazonS3Error",
    "AuthError",
    "ConfigError",
    "ParseError",
    "S3Error",
    "SigningError",
    "TransportError",
    # models
    "UNSIGNED_PAYLOAD",
    "Bucket",
    "CannedACL",
    "Headers",
    "ListObjectsOptions",
    "OperationKind",
    "Owner",
    "RequestDescriptor",
    "S3Object",
    "Status",
    # responses
    "map_error",
    "map_response",
    # signing
    "sign_request",
    # transport
    "HttpxTransport",
    "Transport",
    "TransportResponse",
]
