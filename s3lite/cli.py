# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""``s3lite`` command-line interface.

Usage:
    s3lite [--config PATH] [--debug] buckets
    s3lite mb BUCKET [--acl ACL]
    s3lite rb BUCKET
    s3lite ls BUCKET [--prefix P] [--delimiter D] [--max-keys N]
                     [--start-after KEY]
    s3lite get BUCKET KEY [--output FILE]
    s3lite put BUCKET KEY FILE [--acl ACL] [--content-type TYPE]
    s3lite rm BUCKET KEY [--version-id ID]

Without ``--config`` the default config file is used when it exists,
otherwise credentials come from the AWS environment variables.
"""

import argparse
import logging
import sys
from pathlib import Path

from s3lite.client import S3Client
from s3lite.config import ClientConfig, get_config_path
from s3lite.errors import AuthError, ConfigError, S3Error
from s3lite.logging import configure_logging
from s3lite.models import CannedACL


logger = logging.getLogger(__name__)

_ACL_CHOICES = [acl.value for acl in CannedACL]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="s3lite",
        description="Minimal Amazon S3 client",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging (canonical requests, strings to sign)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help=(
            "Path to s3lite.yaml config file"
            " (default: ~/.config/s3lite/s3lite.yaml)"
        ),
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("buckets", help="List buckets")

    mb = sub.add_parser("mb", help="Create a bucket")
    mb.add_argument("bucket")
    mb.add_argument("--acl", choices=_ACL_CHOICES)

    rb = sub.add_parser("rb", help="Delete an empty bucket")
    rb.add_argument("bucket")

    ls = sub.add_parser("ls", help="List objects in a bucket")
    ls.add_argument("bucket")
    ls.add_argument("--prefix")
    ls.add_argument("--delimiter")
    ls.add_argument("--max-keys", type=int)
    ls.add_argument("--start-after")

    get = sub.add_parser("get", help="Download an object")
    get.add_argument("bucket")
    get.add_argument("key")
    get.add_argument(
        "--output",
        type=Path,
        metavar="FILE",
        help="Write content to FILE instead of stdout",
    )

    put = sub.add_parser("put", help="Upload a file as an object")
    put.add_argument("bucket")
    put.add_argument("key")
    put.add_argument("file", type=Path)
    put.add_argument("--acl", choices=_ACL_CHOICES)
    put.add_argument("--content-type")

    rm = sub.add_parser("rm", help="Delete an object")
    rm.add_argument("bucket")
    rm.add_argument("key")
    rm.add_argument("--version-id")

    return parser


def _load_config(config_path: Path | None) -> ClientConfig:
    """Load config from a file, or from the environment as a fallback."""
    if config_path is not None or get_config_path().exists():
        return ClientConfig.from_yaml(config_path=config_path)
    return ClientConfig.from_env()


def _run(client: S3Client, args: argparse.Namespace) -> None:
    """Execute one subcommand, printing results to stdout."""
    if args.command == "buckets":
        for bucket in client.list_buckets():
            print(f"{bucket.creation_date.isoformat()}  {bucket.name}")
    elif args.command == "mb":
        print(client.create_bucket(args.bucket, acl=args.acl).message)
    elif args.command == "rb":
        print(client.delete_bucket(args.bucket).message)
    elif args.command == "ls":
        objects = client.list_objects(
            args.bucket,
            prefix=args.prefix,
            delimiter=args.delimiter,
            max_keys=args.max_keys,
            start_after=args.start_after,
        )
        for obj in objects:
            print(
                f"{obj.last_modified.isoformat()}  {obj.size:>12}  {obj.key}"
            )
    elif args.command == "get":
        obj = client.get_object(args.bucket, args.key)
        content = obj.content or b""
        if args.output is not None:
            args.output.write_bytes(content)
            print(f"Wrote {len(content)} bytes to {args.output}")
        else:
            sys.stdout.buffer.write(content)
            sys.stdout.flush()
    elif args.command == "put":
        headers = {}
        if args.content_type:
            headers["Content-Type"] = args.content_type
        status = client.create_object(
            args.bucket,
            args.key,
            args.file.read_bytes(),
            acl=args.acl,
            headers=headers,
        )
        print(status.message)
    elif args.command == "rm":
        status = client.delete_object(
            args.bucket, args.key, version_id=args.version_id
        )
        print(status.message)


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Args:
        argv: Command-line arguments. If None, uses sys.argv[1:].

    Returns:
        Exit code (0=success, 1=config error, 2=S3 error).
    """
    args = _build_parser().parse_args(argv)

    configure_logging(
        level=logging.DEBUG if args.debug else logging.WARNING,
        add_secret_filter=True,
    )

    try:
        config = _load_config(args.config)
        client = S3Client.from_config(config)
    except (ConfigError, AuthError) as e:
        logger.critical("Configuration error: %s", e)
        return 1

    with client:
        try:
            _run(client, args)
        except S3Error as e:
            logger.error("%s", e)
            return 2
        except (ValueError, OSError) as e:
            logger.error("%s", e)
            return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
