"""Configuration for Mint Clipboard."""
import logging
import os
from pathlib import Path
from typing import Tuple

logger = logging.getLogger(__name__)

APP_NAME = "MintClipboard"
HISTORY_KEY = "clipboardHistory"

MAX_UNPINNED = 50
POLL_INTERVAL_MS = 500
FEEDBACK_MS = 2000
PASTE_DELAY_MS = 100
PREVIEW_MAX_CHARS = 150
MAX_CLIPBOARD_TEXT_BYTES = 500 * 1024  # 500KB
SMOKE_TEST_AUTOQUIT_MS = 800
DEFAULT_HOTKEYS = ("ctrl+shift+v", "windows+v")

PANEL_WIDTH = 360
PANEL_HEIGHT = 480


def default_data_dir() -> Path:
    base = os.getenv("APPDATA") or os.getenv("XDG_CONFIG_HOME") or os.path.join(os.path.expanduser("~"), ".config")
    return Path(base) / APP_NAME


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer, using %d", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring %s=%r: must be positive, using %d", name, raw, default)
        return default
    return value


def _hotkeys_env(name: str) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return DEFAULT_HOTKEYS
    keys = tuple(k.strip() for k in raw.split(",") if k.strip())
    return keys or DEFAULT_HOTKEYS


class Config:
    """Application configuration, read from the environment."""

    def __init__(self):
        self.data_dir: Path = Path(os.getenv("MCM_DATA_DIR") or default_data_dir())
        self.history_key: str = HISTORY_KEY
        self.max_unpinned: int = _int_env("MCM_MAX_UNPINNED", MAX_UNPINNED)
        self.poll_interval_ms: int = _int_env("MCM_POLL_INTERVAL_MS", POLL_INTERVAL_MS)
        self.feedback_ms: int = _int_env("MCM_FEEDBACK_MS", FEEDBACK_MS)
        self.paste_delay_ms: int = _int_env("MCM_PASTE_DELAY_MS", PASTE_DELAY_MS)
        self.preview_max_chars: int = PREVIEW_MAX_CHARS
        self.max_text_bytes: int = MAX_CLIPBOARD_TEXT_BYTES
        self.hotkeys: Tuple[str, ...] = _hotkeys_env("MCM_HOTKEYS")
        self.log_level: str = (os.getenv("MCM_LOG_LEVEL") or "INFO").upper()
        self.smoke_test: bool = os.getenv("MCM_SMOKE_TEST") == "1"
