"""Unit tests for Settings (goforge.config).

Tests cover:
- Defaults
- Field validation (port range, log level)
- Loading from a JSON file
- from_env with primary and fallback variable names
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from goforge.config import DEFAULT_MANIFEST_PATH, Settings


class TestDefaults:
    @pytest.mark.unit
    def test_defaults(self):
        settings = Settings()
        assert settings.manifest_path == DEFAULT_MANIFEST_PATH
        assert settings.host == "0.0.0.0"
        assert settings.port == 8080
        assert settings.log_level == "INFO"
        assert settings.log_json is False
        assert settings.rate_limit_enabled is True
        assert settings.rate_limit == "60/minute"
        assert settings.staging_prefix == "gen-"

    @pytest.mark.unit
    def test_bundled_manifest_exists(self):
        assert DEFAULT_MANIFEST_PATH.is_file()


class TestValidation:
    @pytest.mark.unit
    @pytest.mark.parametrize("port", [0, 65536, -1])
    def test_port_range(self, port):
        with pytest.raises(ValidationError):
            Settings(port=port)

    @pytest.mark.unit
    def test_log_level_normalised(self):
        assert Settings(log_level=" debug ").log_level == "DEBUG"

    @pytest.mark.unit
    def test_unknown_log_level(self):
        with pytest.raises(ValidationError, match="unknown log level"):
            Settings(log_level="chatty")

    @pytest.mark.unit
    def test_empty_staging_prefix(self):
        with pytest.raises(ValidationError):
            Settings(staging_prefix="")


class TestLoad:
    @pytest.mark.unit
    def test_load_file(self, tmp_path: Path):
        path = tmp_path / "settings.json"
        path.write_text(
            json.dumps({"port": 9000, "log_json": True, "rate_limit": "5/second"}),
            encoding="utf-8",
        )
        settings = Settings.load(path)
        assert settings.port == 9000
        assert settings.log_json is True
        assert settings.rate_limit == "5/second"
        assert settings.manifest_path == DEFAULT_MANIFEST_PATH

    @pytest.mark.unit
    def test_load_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            Settings.load(tmp_path / "absent.json")

    @pytest.mark.unit
    def test_load_invalid_values(self, tmp_path: Path):
        path = tmp_path / "settings.json"
        path.write_text('{"port": 0}', encoding="utf-8")
        with pytest.raises(ValidationError):
            Settings.load(path)


class TestFromEnv:
    @pytest.mark.unit
    def test_empty_environment(self):
        with patch.dict(os.environ, {}, clear=True):
            assert Settings.from_env() == Settings()

    @pytest.mark.unit
    def test_primary_names(self, tmp_path: Path):
        env = {
            "GOFORGE_MANIFEST_PATH": str(tmp_path / "m.json"),
            "GOFORGE_HOST": "127.0.0.1",
            "GOFORGE_PORT": "9001",
            "GOFORGE_LOG_LEVEL": "warning",
            "GOFORGE_LOG_JSON": "yes",
            "GOFORGE_RATE_LIMIT": "10/second",
            "GOFORGE_RATE_LIMIT_ENABLED": "false",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env()
        assert settings.manifest_path == tmp_path / "m.json"
        assert settings.host == "127.0.0.1"
        assert settings.port == 9001
        assert settings.log_level == "WARNING"
        assert settings.log_json is True
        assert settings.rate_limit == "10/second"
        assert settings.rate_limit_enabled is False

    @pytest.mark.unit
    def test_fallback_names(self):
        env = {"PORT": "7000", "LOG_LEVEL": "error", "MANIFEST_PATH": "/etc/goforge.json"}
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env()
        assert settings.port == 7000
        assert settings.log_level == "ERROR"
        assert settings.manifest_path == Path("/etc/goforge.json")

    @pytest.mark.unit
    def test_primary_wins_over_fallback(self):
        with patch.dict(os.environ, {"GOFORGE_PORT": "9100", "PORT": "7000"}, clear=True):
            assert Settings.from_env().port == 9100
