# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""AWS credentials and the pre-flight credential check."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from s3lite.errors import AuthError


#: Region used when none is configured.
DEFAULT_REGION = "us-east-1"

#: SigV4 service name for S3.
S3_SERVICE = "s3"

#: Shape of an AWS region name, e.g. ``eu-west-1``.
REGION_RE = re.compile(r"^[a-z0-9-]+$")


def validate_credentials(
    access_key_id: str | None, secret_access_key: str | None
) -> None:
    """Reject empty credentials before any crypto or network work.

    Args:
        access_key_id: AWS access key ID.
        secret_access_key: AWS secret access key.

    Raises:
        AuthError: If either value is empty.
    """
    if not access_key_id and not secret_access_key:
        raise AuthError("Access key ID and secret access key are empty")
    if not access_key_id:
        raise AuthError("Access key ID is empty")
    if not secret_access_key:
        raise AuthError("Secret access key is empty")


@dataclass(frozen=True)
class Credentials:
    """Immutable credential set used for signing.

    Attributes:
        access_key_id: AWS access key ID.
        secret_access_key: AWS secret access key.  Hidden from ``repr``.
        region: Signing region.
        service_name: Signing service, always ``s3`` for this client.
    """

    access_key_id: str
    secret_access_key: str = field(repr=False)
    region: str = DEFAULT_REGION
    service_name: str = S3_SERVICE

    @classmethod
    def create(
        cls,
        access_key_id: str,
        secret_access_key: str,
        region: str | None = None,
    ) -> Credentials:
        """Validate and build credentials, defaulting the region.

        Raises:
            AuthError: If either key is empty.
        """
        validate_credentials(access_key_id, secret_access_key)
        return cls(
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            region=region or DEFAULT_REGION,
        )
