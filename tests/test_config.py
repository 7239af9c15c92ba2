# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Tests for s3lite/config.py."""

from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from s3lite.config import (
    ClientConfig,
    _coerce_bool,
    _EnvVar,
    _make_loader,
    _resolve,
    get_config_path,
    load_dotenv_once,
)
from s3lite.errors import ConfigError


_AWS_ENV = (
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_REGION",
    "AWS_DEFAULT_REGION",
    "S3LITE_ENDPOINT_URL",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Remove AWS variables and keep .env discovery away from real files."""
    for name in _AWS_ENV:
        # setenv first so values loaded from .env files are undone
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


def _write(path: Path, text: str) -> Path:
    path.write_text(text)
    return path


class TestCoerceBool:
    """Tests for _coerce_bool."""

    @pytest.mark.parametrize("value", [True, "true", "1", "YES", " on "])
    def test_truthy(self, value: object) -> None:
        """Truthy spellings become True."""
        assert _coerce_bool(value) is True

    @pytest.mark.parametrize("value", [False, "false", "0", "No", "off"])
    def test_falsy(self, value: object) -> None:
        """Falsy spellings become False."""
        assert _coerce_bool(value) is False

    def test_invalid(self) -> None:
        """Anything else is a ConfigError."""
        with pytest.raises(ConfigError, match="bool"):
            _coerce_bool("maybe")


class TestResolve:
    """Tests for _resolve."""

    def test_literal(self) -> None:
        """Literal values pass through."""
        assert _resolve("abc", str, name="x") == "abc"

    def test_coerces_numbers(self) -> None:
        """Numeric strings are coerced."""
        assert _resolve("2.5", float, name="timeout") == 2.5

    def test_env_var(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """!env placeholders read the environment."""
        monkeypatch.setenv("S3LITE_TEST_VAR", "from-env")
        assert _resolve(_EnvVar("S3LITE_TEST_VAR"), str, name="x") == (
            "from-env"
        )

    def test_unset_env_var_uses_default(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An unset variable falls back to the default."""
        monkeypatch.delenv("S3LITE_UNSET", raising=False)
        assert (
            _resolve(_EnvVar("S3LITE_UNSET"), str, name="x", default=None)
            is None
        )

    def test_unset_env_var_required(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A required value from an unset variable names the variable."""
        monkeypatch.delenv("S3LITE_UNSET", raising=False)
        with pytest.raises(ConfigError, match="S3LITE_UNSET"):
            _resolve(_EnvVar("S3LITE_UNSET"), str, name="access_key_id")

    def test_missing_required(self) -> None:
        """A missing required value names the field."""
        with pytest.raises(ConfigError, match="access_key_id"):
            _resolve(None, str, name="access_key_id")

    def test_bad_number(self) -> None:
        """Uncoercible values raise ConfigError with the cause."""
        with pytest.raises(ConfigError, match="timeout") as exc_info:
            _resolve("soon", float, name="timeout")
        assert isinstance(exc_info.value.cause, ValueError)


def test_env_tag_loader() -> None:
    """The YAML loader turns !env into placeholders."""
    data = yaml.load("key: !env MY_VAR\n", Loader=_make_loader())
    assert isinstance(data["key"], _EnvVar)
    assert data["key"].var_name == "MY_VAR"


class TestClientConfigFromYaml:
    """Tests for ClientConfig.from_yaml."""

    def test_full_file(self, clean_env: None, tmp_path: Path) -> None:
        """All fields are read and coerced."""
        path = _write(
            tmp_path / "s3lite.yaml",
            "access_key_id: AKIDEXAMPLE\n"
            "secret_access_key: s3cr3t\n"
            "region: eu-west-1\n"
            "endpoint_url: http://localhost:9000\n"
            "timeout: 5\n"
            "verify_tls: 'false'\n"
            "proxy: http://proxy:3128\n"
            "sign_payload: no\n",
        )
        config = ClientConfig.from_yaml(path)
        assert config == ClientConfig(
            access_key_id="AKIDEXAMPLE",
            secret_access_key="s3cr3t",
            region="eu-west-1",
            endpoint_url="http://localhost:9000",
            timeout=5.0,
            verify_tls=False,
            proxy="http://proxy:3128",
            sign_payload=False,
        )

    def test_defaults(self, clean_env: None, tmp_path: Path) -> None:
        """Optional fields take their defaults."""
        path = _write(
            tmp_path / "s3lite.yaml",
            "access_key_id: AKID\nsecret_access_key: secret\n",
        )
        config = ClientConfig.from_yaml(path)
        assert config.region == "us-east-1"
        assert config.endpoint_url is None
        assert config.timeout == 30.0
        assert config.verify_tls is True
        assert config.sign_payload is True

    def test_env_tags(
        self,
        clean_env: None,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """!env values come from the environment."""
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIDENV")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "secretenv")
        path = _write(
            tmp_path / "s3lite.yaml",
            "access_key_id: !env AWS_ACCESS_KEY_ID\n"
            "secret_access_key: !env AWS_SECRET_ACCESS_KEY\n",
        )
        config = ClientConfig.from_yaml(path)
        assert config.access_key_id == "AKIDENV"
        assert config.secret_access_key == "secretenv"

    def test_dotenv_file_loaded(
        self, clean_env: None, tmp_path: Path
    ) -> None:
        """A .env in the working directory feeds !env tags."""
        _write(
            tmp_path / ".env",
            "AWS_ACCESS_KEY_ID=AKIDDOTENV\nAWS_SECRET_ACCESS_KEY=dotenv\n",
        )
        path = _write(
            tmp_path / "s3lite.yaml",
            "access_key_id: !env AWS_ACCESS_KEY_ID\n"
            "secret_access_key: !env AWS_SECRET_ACCESS_KEY\n",
        )
        config = ClientConfig.from_yaml(path)
        assert config.access_key_id == "AKIDDOTENV"

    def test_missing_file(self, clean_env: None, tmp_path: Path) -> None:
        """A missing file is a ConfigError."""
        with pytest.raises(ConfigError, match="not found"):
            ClientConfig.from_yaml(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, clean_env: None, tmp_path: Path) -> None:
        """Unparseable YAML is a ConfigError."""
        path = _write(tmp_path / "s3lite.yaml", "key: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            ClientConfig.from_yaml(path)

    def test_not_a_mapping(self, clean_env: None, tmp_path: Path) -> None:
        """A top-level list is rejected."""
        path = _write(tmp_path / "s3lite.yaml", "- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            ClientConfig.from_yaml(path)

    def test_missing_secret(self, clean_env: None, tmp_path: Path) -> None:
        """The secret key is required."""
        path = _write(tmp_path / "s3lite.yaml", "access_key_id: AKID\n")
        with pytest.raises(ConfigError, match="secret_access_key"):
            ClientConfig.from_yaml(path)

    def test_default_path(self, clean_env: None, tmp_path: Path) -> None:
        """Without a path the XDG location is used."""
        with patch(
            "s3lite.config.get_config_path",
            return_value=tmp_path / "missing.yaml",
        ):
            with pytest.raises(ConfigError, match="missing.yaml"):
                ClientConfig.from_yaml()


class TestClientConfigValidation:
    """Tests for ClientConfig.__post_init__."""

    def test_non_positive_timeout(self) -> None:
        """Timeouts must be positive."""
        with pytest.raises(ConfigError, match="timeout"):
            ClientConfig("a", "b", timeout=0)

    def test_invalid_region(self) -> None:
        """Regions must look like AWS region names."""
        with pytest.raises(ConfigError, match="region"):
            ClientConfig("a", "b", region="eu west")

    def test_endpoint_scheme(self) -> None:
        """Endpoints need an http(s) scheme."""
        with pytest.raises(ConfigError, match="endpoint_url"):
            ClientConfig("a", "b", endpoint_url="localhost:9000")

    def test_secret_hidden_from_repr(self) -> None:
        """repr does not show the secret key."""
        assert "topsecret" not in repr(ClientConfig("a", "topsecret"))


class TestClientConfigFromEnv:
    """Tests for ClientConfig.from_env."""

    def test_reads_aws_variables(
        self, clean_env: None, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Standard AWS variables populate the config."""
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKID")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "secret")
        monkeypatch.setenv("AWS_DEFAULT_REGION", "ap-south-1")
        monkeypatch.setenv("S3LITE_ENDPOINT_URL", "https://minio.local")
        config = ClientConfig.from_env()
        assert config.access_key_id == "AKID"
        assert config.region == "ap-south-1"
        assert config.endpoint_url == "https://minio.local"

    def test_aws_region_wins(
        self, clean_env: None, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """AWS_REGION takes precedence over AWS_DEFAULT_REGION."""
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKID")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "secret")
        monkeypatch.setenv("AWS_REGION", "eu-central-1")
        monkeypatch.setenv("AWS_DEFAULT_REGION", "ap-south-1")
        assert ClientConfig.from_env().region == "eu-central-1"

    def test_defaults(
        self, clean_env: None, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Region and endpoint fall back to defaults."""
        monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKID")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "secret")
        config = ClientConfig.from_env()
        assert config.region == "us-east-1"
        assert config.endpoint_url is None

    def test_missing_keys(self, clean_env: None) -> None:
        """Unset key variables are a ConfigError."""
        with pytest.raises(ConfigError, match="AWS_ACCESS_KEY_ID"):
            ClientConfig.from_env()


class TestPaths:
    """Tests for XDG path helpers."""

    def test_config_path_under_xdg(
        self, clean_env: None, tmp_path: Path
    ) -> None:
        """The config file lives under the s3lite XDG directory."""
        path = get_config_path()
        assert path.name == "s3lite.yaml"
        assert path.parent.name == "s3lite"

    def test_load_dotenv_once(
        self, clean_env: None, tmp_path: Path
    ) -> None:
        """The .env file is only read on the first call."""
        _write(tmp_path / ".env", "S3LITE_DOTENV_PROBE=1\n")
        with patch("s3lite.config.load_dotenv") as mock_load:
            load_dotenv_once()
            load_dotenv_once()
        mock_load.assert_called_once_with(tmp_path / ".env")
