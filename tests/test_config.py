import json
import sys

import pytest
from pydantic import ValidationError

from ssrbridge.config import ClientConfig, WorkerSettings, load_client_config
from ssrbridge.config.loader import camel_to_snake, convert_keys


def test_worker_settings_defaults(monkeypatch):
    for name in ("SSRBRIDGE_ENV", "SSRBRIDGE_DEBUG", "SSRBRIDGE_PRELOAD", "SSRBRIDGE_LOG_LEVEL", "SSRBRIDGE_LOG_FILE"):
        monkeypatch.delenv(name, raising=False)
    settings = WorkerSettings()
    assert settings.env == "development"
    assert settings.production is False
    assert settings.debug is False
    assert settings.preload is True
    assert settings.log_level == "INFO"
    assert settings.log_file is None


def test_worker_settings_from_environment(monkeypatch):
    monkeypatch.setenv("SSRBRIDGE_ENV", "production")
    monkeypatch.setenv("SSRBRIDGE_DEBUG", "1")
    monkeypatch.setenv("SSRBRIDGE_PRELOAD", "false")
    monkeypatch.setenv("SSRBRIDGE_LOG_LEVEL", "debug")
    settings = WorkerSettings()
    assert settings.production is True
    assert settings.debug is True
    assert settings.preload is False
    assert settings.log_level == "debug"


def test_worker_settings_rejects_unknown_env(monkeypatch):
    monkeypatch.setenv("SSRBRIDGE_ENV", "staging")
    with pytest.raises(ValidationError):
        WorkerSettings()


def test_client_config_command_and_env():
    config = ClientConfig(bundle_path="dist/ssr.py", production=True, env={"EXTRA": "1"})
    assert config.python == sys.executable
    assert config.worker_command() == [sys.executable, "-m", "ssrbridge.worker", "dist/ssr.py"]
    env = config.worker_env({"PATH": "/bin", "SSRBRIDGE_ENV": "development"})
    assert env["PATH"] == "/bin"
    assert env["EXTRA"] == "1"
    assert env["SSRBRIDGE_ENV"] == "production"
    assert env["SSRBRIDGE_DEBUG"] == "0"
    assert env["PYTHONUNBUFFERED"] == "1"


def test_client_config_rejects_non_positive_timeout():
    with pytest.raises(ValidationError):
        ClientConfig(bundle_path="x.py", timeout_seconds=0)


def test_camel_to_snake():
    assert camel_to_snake("bundlePath") == "bundle_path"
    assert camel_to_snake("timeoutSeconds") == "timeout_seconds"
    assert camel_to_snake("cwd") == "cwd"


def test_convert_keys_leaves_env_values_alone():
    converted = convert_keys({"bundlePath": "a.py", "env": {"NODE_ENV": "x", "someVar": "y"}})
    assert converted == {"bundle_path": "a.py", "env": {"NODE_ENV": "x", "someVar": "y"}}


def test_load_client_config_camel_case(tmp_path):
    path = tmp_path / "client.json"
    path.write_text(json.dumps({"bundlePath": "build/ssr.py", "timeoutSeconds": 5, "production": True}), encoding="utf-8")
    config = load_client_config(path)
    assert config.bundle_path == "build/ssr.py"
    assert config.timeout_seconds == 5
    assert config.production is True


@pytest.mark.parametrize("content", ["{not json", "[]", json.dumps({"timeoutSeconds": 3})])
def test_load_client_config_invalid(tmp_path, content):
    path = tmp_path / "client.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ValueError) as exc:
        load_client_config(path)
    assert str(path) in str(exc.value)
