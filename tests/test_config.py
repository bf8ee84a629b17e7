from pathlib import Path

import pytest

import clip_config
from clip_config import Config

ENV_VARS = (
    "MCM_DATA_DIR",
    "MCM_MAX_UNPINNED",
    "MCM_POLL_INTERVAL_MS",
    "MCM_FEEDBACK_MS",
    "MCM_PASTE_DELAY_MS",
    "MCM_HOTKEYS",
    "MCM_LOG_LEVEL",
    "MCM_SMOKE_TEST",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.setenv("APPDATA", str(tmp_path))
    config = Config()
    assert config.data_dir == tmp_path / "MintClipboard"
    assert config.history_key == "clipboardHistory"
    assert config.max_unpinned == 50
    assert config.poll_interval_ms == 500
    assert config.feedback_ms == 2000
    assert config.paste_delay_ms == 100
    assert config.hotkeys == ("ctrl+shift+v", "windows+v")
    assert config.log_level == "INFO"
    assert config.smoke_test is False


def test_xdg_fallback(monkeypatch, tmp_path):
    monkeypatch.delenv("APPDATA", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    assert clip_config.default_data_dir() == tmp_path / "MintClipboard"


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("MCM_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("MCM_MAX_UNPINNED", "10")
    monkeypatch.setenv("MCM_POLL_INTERVAL_MS", "250")
    monkeypatch.setenv("MCM_HOTKEYS", "ctrl+shift+v, windows+v")
    monkeypatch.setenv("MCM_LOG_LEVEL", "debug")
    monkeypatch.setenv("MCM_SMOKE_TEST", "1")
    config = Config()
    assert config.data_dir == Path(tmp_path / "data")
    assert config.max_unpinned == 10
    assert config.poll_interval_ms == 250
    assert config.hotkeys == ("ctrl+shift+v", "windows+v")
    assert config.log_level == "DEBUG"
    assert config.smoke_test is True


@pytest.mark.parametrize("raw", ["abc", "0", "-5"])
def test_invalid_integers_fall_back(monkeypatch, caplog, raw):
    monkeypatch.setenv("MCM_MAX_UNPINNED", raw)
    assert Config().max_unpinned == 50
    assert "MCM_MAX_UNPINNED" in caplog.text


def test_blank_hotkeys_fall_back(monkeypatch):
    monkeypatch.setenv("MCM_HOTKEYS", " , ")
    assert Config().hotkeys == ("ctrl+shift+v", "windows+v")
