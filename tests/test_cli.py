# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for s3lite/cli.py."""

from collections.abc import Iterator
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from s3lite.cli import main
from s3lite.client import S3Client
from tests.vectors import (
    ACCESS_KEY_ID,
    LIST_BUCKETS_XML,
    LIST_OBJECTS_XML,
    NO_SUCH_BUCKET_XML,
    SECRET_ACCESS_KEY,
)


@pytest.fixture(autouse=True)
def _no_logging_setup() -> Iterator[None]:
    """Keep main() from replacing pytest's log handlers."""
    with patch("s3lite.cli.configure_logging"):
        yield


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "s3lite.yaml"
    path.write_text(
        f"access_key_id: {ACCESS_KEY_ID}\n"
        f"secret_access_key: {SECRET_ACCESS_KEY}\n"
        "region: us-east-1\n"
    )
    return path


@pytest.fixture
def wired(transport: Any) -> Iterator[Any]:
    """Route clients built by main() through the recording transport."""
    original = S3Client.from_config

    def build(config: Any) -> S3Client:
        return original(config, transport=transport)

    with patch.object(S3Client, "from_config", side_effect=build):
        yield transport


def _run(config_file: Path, *args: str) -> int:
    return main(["--config", str(config_file), *args])


class TestConfigErrors:
    """Configuration problems exit with status 1."""

    def test_missing_config_file(self, tmp_path: Path) -> None:
        """An explicit missing config file is a config error."""
        assert main(["--config", str(tmp_path / "nope.yaml"), "buckets"]) == 1

    def test_empty_credentials(self, tmp_path: Path) -> None:
        """Empty keys in the config are rejected before any request."""
        path = tmp_path / "s3lite.yaml"
        path.write_text("access_key_id: ''\nsecret_access_key: ''\n")
        assert main(["--config", str(path), "buckets"]) == 1

    def test_environment_fallback(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        wired: Any,
    ) -> None:
        """Without a config file, AWS environment variables are used."""
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", ACCESS_KEY_ID)
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", SECRET_ACCESS_KEY)
        monkeypatch.delenv("AWS_REGION", raising=False)
        monkeypatch.delenv("AWS_DEFAULT_REGION", raising=False)
        monkeypatch.delenv("S3LITE_ENDPOINT_URL", raising=False)
        monkeypatch.chdir(tmp_path)
        wired.queue(200, LIST_BUCKETS_XML)
        with patch(
            "s3lite.cli.get_config_path",
            return_value=tmp_path / "missing.yaml",
        ):
            assert main(["buckets"]) == 0
        assert wired.last.url == "https://s3.amazonaws.com/"

    def test_usage_error(self) -> None:
        """A missing subcommand is an argparse usage error."""
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2


class TestCommands:
    """Subcommands call the matching client operation."""

    def test_buckets(
        self,
        config_file: Path,
        wired: Any,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """buckets prints one line per bucket in order."""
        wired.queue(200, LIST_BUCKETS_XML)
        assert _run(config_file, "buckets") == 0
        lines = capsys.readouterr().out.splitlines()
        assert [line.split()[-1] for line in lines] == [
            "zebra-bucket",
            "alpha-bucket",
        ]

    def test_mb_with_acl(
        self,
        config_file: Path,
        wired: Any,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """mb creates a bucket with the requested ACL."""
        assert _run(config_file, "mb", "new-bucket", "--acl", "private") == 0
        assert wired.last.method == "PUT"
        assert wired.last.headers["x-amz-acl"] == "private"
        assert "Bucket created" in capsys.readouterr().out

    def test_rb(self, config_file: Path, wired: Any) -> None:
        """rb deletes a bucket."""
        wired.queue(204)
        assert _run(config_file, "rb", "old-bucket") == 0
        assert wired.last.method == "DELETE"
        assert wired.last.url == "https://old-bucket.s3.amazonaws.com/"

    def test_ls_options(
        self,
        config_file: Path,
        wired: Any,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """ls forwards listing options as query parameters."""
        wired.queue(200, LIST_OBJECTS_XML)
        code = _run(
            config_file,
            "ls",
            "examplebucket",
            "--prefix",
            "photos/",
            "--start-after",
            "photos/2006/A",
            "--max-keys",
            "10",
        )
        assert code == 0
        assert wired.last.url.endswith(
            "?list-type=2&max-keys=10&prefix=photos%2F"
            "&start-after=photos%2F2006%2FA"
        )
        out = capsys.readouterr().out
        assert "photos/2006/February/sample.jpg" in out
        assert "142863" in out

    def test_get_to_file(
        self, config_file: Path, wired: Any, tmp_path: Path
    ) -> None:
        """get --output writes the object content to a file."""
        wired.queue(
            200,
            b"file content",
            {
                "etag": '"e"',
                "last-modified": "Fri, 24 May 2013 00:00:00 GMT",
            },
        )
        output = tmp_path / "out.txt"
        code = _run(
            config_file,
            "get",
            "examplebucket",
            "k.txt",
            "--output",
            str(output),
        )
        assert code == 0
        assert output.read_bytes() == b"file content"

    def test_get_to_stdout(
        self,
        config_file: Path,
        wired: Any,
        capsysbinary: pytest.CaptureFixture[bytes],
    ) -> None:
        """get without --output writes raw bytes to stdout."""
        wired.queue(
            200,
            b"\x00\x01binary",
            {
                "etag": '"e"',
                "last-modified": "Fri, 24 May 2013 00:00:00 GMT",
            },
        )
        assert _run(config_file, "get", "examplebucket", "k.bin") == 0
        assert capsysbinary.readouterr().out == b"\x00\x01binary"

    def test_put(
        self, config_file: Path, wired: Any, tmp_path: Path
    ) -> None:
        """put uploads the file with content type and ACL."""
        source = tmp_path / "upload.txt"
        source.write_bytes(b"hello")
        code = _run(
            config_file,
            "put",
            "examplebucket",
            "docs/upload.txt",
            str(source),
            "--content-type",
            "text/plain",
            "--acl",
            "public-read",
        )
        assert code == 0
        sent = wired.last
        assert sent.url == (
            "https://examplebucket.s3.amazonaws.com/docs/upload.txt"
        )
        assert sent.body == b"hello"
        assert sent.headers["Content-Type"] == "text/plain"
        assert sent.headers["x-amz-acl"] == "public-read"

    def test_rm_version(self, config_file: Path, wired: Any) -> None:
        """rm passes the version id."""
        assert (
            _run(config_file, "rm", "examplebucket", "k", "--version-id", "v1")
            == 0
        )
        assert wired.last.url.endswith("/k?versionId=v1")


class TestFailures:
    """Operation failures exit with status 2."""

    def test_s3_error(self, config_file: Path, wired: Any) -> None:
        """An AWS error response exits with 2."""
        wired.queue(404, NO_SUCH_BUCKET_XML)
        assert _run(config_file, "rb", "missing-bucket") == 2

    def test_invalid_bucket_name(self, config_file: Path, wired: Any) -> None:
        """Invalid bucket names exit with 2 and send nothing."""
        assert _run(config_file, "rb", "Bad_Bucket") == 2
        assert wired.sent == []

    def test_missing_upload_file(
        self, config_file: Path, wired: Any, tmp_path: Path
    ) -> None:
        """An unreadable source file exits with 2."""
        code = _run(
            config_file, "put", "examplebucket", "k", str(tmp_path / "nope")
        )
        assert code == 2
        assert wired.sent == []
