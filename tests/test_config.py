"""Tests for backplane configuration loading."""

from __future__ import annotations

import json
import pathlib

import pytest

from backplane_broker.config.backplane import (
    DEFAULT_SESSION_DIR,
    config_provider,
    default_config_path,
    load_backplane_configuration,
)
from backplane_broker.errors import ConfigError
from conftest import BACKPLANE_URL, INITIAL_ARN, PROXY_URL


@pytest.fixture
def config_file(tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "url": BACKPLANE_URL,
        "proxy-url": PROXY_URL,
        "assume-initial-arn": INITIAL_ARN,
    }))
    return path


class TestLoadConfiguration:
    def test_reads_json(self, config_file: pathlib.Path) -> None:
        cfg = load_backplane_configuration(config_file)
        assert cfg.url == BACKPLANE_URL
        assert cfg.proxy_url == PROXY_URL
        assert cfg.assume_initial_arn == INITIAL_ARN
        assert cfg.session_dir == DEFAULT_SESSION_DIR

    def test_reads_yaml(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(f"url: {BACKPLANE_URL}\nsession-dir: ~/sessions\n")

        cfg = load_backplane_configuration(path)

        assert cfg.url == BACKPLANE_URL
        assert cfg.proxy_url == ""
        assert cfg.session_dir == pathlib.Path.home() / "sessions"

    def test_url_env_overrides_file(self, config_file: pathlib.Path, monkeypatch) -> None:
        monkeypatch.setenv("BACKPLANE_URL", "https://other.example.com")
        assert load_backplane_configuration(config_file).url == "https://other.example.com"

    def test_https_proxy_fills_missing_proxy(self, tmp_path: pathlib.Path, monkeypatch) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"url": BACKPLANE_URL}))
        monkeypatch.setenv("HTTPS_PROXY", "http://env-proxy:8080")

        assert load_backplane_configuration(path).proxy_url == "http://env-proxy:8080"

    def test_file_proxy_wins_over_env(self, config_file: pathlib.Path, monkeypatch) -> None:
        monkeypatch.setenv("HTTPS_PROXY", "http://env-proxy:8080")
        assert load_backplane_configuration(config_file).proxy_url == PROXY_URL

    def test_missing_file_uses_env(self, tmp_path: pathlib.Path, monkeypatch) -> None:
        monkeypatch.setenv("BACKPLANE_URL", BACKPLANE_URL)
        cfg = load_backplane_configuration(tmp_path / "absent.json")
        assert cfg.url == BACKPLANE_URL
        assert cfg.assume_initial_arn == ""

    def test_missing_url_raises(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ConfigError, match="no backplane URL"):
            load_backplane_configuration(tmp_path / "absent.json")

    def test_invalid_yaml_raises(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("url: [unterminated\n")
        with pytest.raises(ConfigError, match="cannot read backplane config"):
            load_backplane_configuration(path)

    def test_non_mapping_raises(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError, match="must be a mapping"):
            load_backplane_configuration(path)


class TestConfigPath:
    def test_env_path(self, tmp_path: pathlib.Path, monkeypatch) -> None:
        monkeypatch.setenv("BACKPLANE_CONFIG", str(tmp_path / "bp.json"))
        assert default_config_path() == tmp_path / "bp.json"

    def test_provider_rereads_file(self, config_file: pathlib.Path) -> None:
        provider = config_provider(config_file)
        assert provider().url == BACKPLANE_URL

        config_file.write_text(json.dumps({"url": "https://changed.example.com"}))
        assert provider().url == "https://changed.example.com"
