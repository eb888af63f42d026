"""Tests for s3console configuration loading."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from s3console.config import ConsoleConfig, StoreConfig, load_config

EXAMPLE_CONFIG = Path(__file__).resolve().parent.parent / "s3console.example.yaml"


def _write(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "s3console.yaml"
    path.write_text(yaml.dump(data))
    return path


class TestLoadConfig:
    """Tests for load_config()."""

    def test_load_example_config(self):
        """Loading the example config file populates all sections."""
        config = load_config(EXAMPLE_CONFIG)
        assert config.server.port == 8500
        assert config.server.log_format == "text"
        assert config.auth.mode == "service"
        assert config.auth.console_id == "console"
        assert config.store.region == "cfs_default"
        assert config.store.force_path_style is True
        assert config.store.delete_wait_delay == 1
        assert config.store.delete_wait_attempts == 20
        assert config.store.strict_delete_confirmation is False
        assert config.observability.metrics is True

    def test_load_empty_config(self, tmp_path):
        """An empty YAML file yields the defaults everywhere."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        config = load_config(path)
        assert config == ConsoleConfig()
        assert config.store.list_max_keys == 1000
        assert config.store.delimiter == "/"
        assert config.store.presign_expires == 3600

    def test_custom_server(self, tmp_path):
        config = load_config(_write(tmp_path, {"server": {"port": 9100, "host": "127.0.0.1"}}))
        assert config.server.port == 9100
        assert config.server.host == "127.0.0.1"

    def test_nested_static_credentials(self, tmp_path):
        """auth.static.access_key/secret_key are flattened."""
        path = _write(
            tmp_path,
            {"auth": {"mode": "static", "static": {"access_key": "ak", "secret_key": "sk"}}},
        )
        config = load_config(path)
        assert config.auth.mode == "static"
        assert config.auth.static_access_key == "ak"
        assert config.auth.static_secret_key == "sk"

    def test_nested_delete_wait(self, tmp_path):
        """store.delete_wait.{delay,attempts,strict} are flattened."""
        path = _write(
            tmp_path,
            {"store": {"delete_wait": {"delay": 2, "attempts": 5, "strict": True}}},
        )
        config = load_config(path)
        assert config.store.delete_wait_delay == 2
        assert config.store.delete_wait_attempts == 5
        assert config.store.strict_delete_confirmation is True

    def test_partial_delete_wait_keeps_defaults(self, tmp_path):
        config = load_config(_write(tmp_path, {"store": {"delete_wait": {"attempts": 3}}}))
        assert config.store.delete_wait_delay == 1
        assert config.store.delete_wait_attempts == 3

    def test_unknown_auth_mode_rejected(self, tmp_path):
        with pytest.raises(ValidationError):
            load_config(_write(tmp_path, {"auth": {"mode": "ldap"}}))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")


class TestStoreEndpoint:
    """Tests for the store endpoint scheme and use_tls agreement."""

    def test_bare_endpoint_gets_http(self):
        assert StoreConfig(endpoint="store:80").endpoint == "http://store:80"

    def test_bare_endpoint_gets_https_with_tls(self):
        assert StoreConfig(endpoint="store:443", use_tls=True).endpoint == "https://store:443"

    def test_matching_scheme_kept(self):
        assert StoreConfig(endpoint="HTTPS://store", use_tls=True).endpoint == "HTTPS://store"

    @pytest.mark.parametrize(
        "endpoint, use_tls",
        [("http://store:80", True), ("https://store:443", False)],
    )
    def test_mismatched_scheme_rejected(self, tmp_path, endpoint, use_tls):
        path = _write(tmp_path, {"store": {"endpoint": endpoint, "use_tls": use_tls}})
        with pytest.raises(ValidationError):
            load_config(path)

    def test_empty_endpoint_left_to_sdk(self):
        assert StoreConfig(endpoint="", use_tls=True).endpoint == ""
