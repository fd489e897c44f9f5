"""Tests for configuration precedence and the settings file."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from dmgkit.config import AppConfig
from dmgkit.settings import UserSettings, load_user_settings
from dmgkit.volume_icon import DEFAULT_TEMPLATE


def test_defaults():
    config = AppConfig.from_env()
    assert config.template_path == DEFAULT_TEMPLATE
    assert config.workers is None
    assert config.compose is True
    assert config.identity is None


def test_environment_overrides_settings(monkeypatch):
    monkeypatch.setenv("DMGKIT_WORKERS", "3")
    monkeypatch.setenv("DMGKIT_COMPOSE", "off")
    monkeypatch.setenv("DMGKIT_TEMPLATE", "/tmp/drive.icns")
    stored = UserSettings(workers=8, compose=True, identity="Stored")

    with patch("dmgkit.config.load_user_settings", return_value=stored):
        config = AppConfig.from_env()

    assert config.workers == 3
    assert config.compose is False
    assert config.template_path == Path("/tmp/drive.icns")
    assert config.identity == "Stored"


def test_arguments_override_environment(monkeypatch):
    monkeypatch.setenv("DMGKIT_WORKERS", "3")
    monkeypatch.setenv("DMGKIT_IDENTITY", "Env")
    config = AppConfig.from_env(workers=1, compose=False, identity="Arg")
    assert config.workers == 1
    assert config.compose is False
    assert config.identity == "Arg"


@pytest.mark.parametrize(
    "name,value",
    [("DMGKIT_WORKERS", "many"), ("DMGKIT_WORKERS", "0"), ("DMGKIT_COMPOSE", "maybe")],
)
def test_invalid_environment(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        AppConfig.from_env()


def test_settings_file_is_loaded(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"workers": 2, "compose": False, "identity": "Jane"}), encoding="utf-8")
    assert load_user_settings(path) == UserSettings(workers=2, compose=False, identity="Jane")


def test_settings_missing_or_invalid(tmp_path):
    assert load_user_settings(tmp_path / "missing.json") == UserSettings()
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    assert load_user_settings(broken) == UserSettings()
    listing = tmp_path / "list.json"
    listing.write_text("[1, 2]", encoding="utf-8")
    assert load_user_settings(listing) == UserSettings()


def test_settings_coercion():
    settings = UserSettings.from_dict({"workers": "4", "compose": "no", "template_path": "  "})
    assert settings.workers == 4
    assert settings.compose is False
    assert settings.template_path is None
