"""Tests for MediaConfig loading."""

import json
from datetime import timedelta

import pytest
from pydantic import ValidationError

from presigned_media.config import MediaConfig, _flatten_secrets_mapping


@pytest.fixture(autouse=True)
def clear_media_env(monkeypatch):
    import os

    for key in list(os.environ):
        if key.startswith("MEDIA_"):
            monkeypatch.delenv(key)


def test_defaults():
    config = MediaConfig()

    assert config.max_attempts == 3
    assert config.min_attempt_interval == timedelta(seconds=2)
    assert config.lead_time == timedelta(hours=1)
    assert config.fallback_validity == timedelta(days=7)
    assert config.refresh_path == "/api/v1/files/refresh-url"
    assert config.auth_token is None


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("MEDIA_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("MEDIA_API_BASE_URL", "https://api.example.test/")

    config = MediaConfig()

    assert config.max_attempts == 5
    assert config.api_base_url == "https://api.example.test"


def test_max_attempts_must_be_positive():
    with pytest.raises(ValidationError):
        MediaConfig(max_attempts=0)


def test_flatten_secrets():
    assert _flatten_secrets_mapping({"auth": {"token": "t"}, "log_level": "DEBUG"}) == {
        "auth_token": "t",
        "log_level": "DEBUG",
    }


def test_from_json_file_layers(tmp_path, monkeypatch):
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps({"api_base_url": "https://json.example.test", "lead_time_seconds": 600, "max_attempts": 4})
    )
    secrets_path = tmp_path / "secrets.yml"
    secrets_path.write_text("auth:\n  token: from-secrets\napi:\n  base_url: https://secrets.example.test\n")
    monkeypatch.setenv("MEDIA_MAX_ATTEMPTS", "7")

    config = MediaConfig.from_json_file(str(config_path), str(secrets_path))

    assert config.api_base_url == "https://secrets.example.test"
    assert config.auth_token == "from-secrets"
    assert config.lead_time == timedelta(minutes=10)
    assert config.max_attempts == 7


def test_from_json_file_missing_files(tmp_path):
    config = MediaConfig.from_json_file(str(tmp_path / "nope.json"), str(tmp_path / "nope.yml"))
    assert config.max_attempts == 3
