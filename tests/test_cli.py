"""Tests for the command-line launcher and settings."""

import pytest

from dirserve import __main__ as cli
from dirserve.config import Settings, get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # main() writes os.environ directly; setenv first so teardown restores it
    for name in cli.ENV_OVERRIDES.values():
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_flags_override_settings(data_root, monkeypatch):
    calls = {}
    monkeypatch.setattr(cli.uvicorn, "run", lambda app, **kwargs: calls.update(app=app, **kwargs))

    cli.main([str(data_root), "--port", "8080", "--base-url", "http://files.local", "--log-level", "DEBUG"])

    assert calls["app"] == "dirserve.main:app"
    assert calls["port"] == 8080
    assert calls["log_level"] == "debug"
    settings = get_settings()
    assert settings.get_data_root() == data_root
    assert settings.base_url == "http://files.local"


def test_missing_data_dir_exits(tmp_path, monkeypatch):
    monkeypatch.setattr(cli.uvicorn, "run", lambda *args, **kwargs: pytest.fail("server started"))
    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(tmp_path / "missing")])
    assert excinfo.value.code == 1


def test_data_root_must_be_directory(data_root):
    with pytest.raises(ValueError):
        Settings(data_dir=str(data_root / "a.txt")).get_data_root()
