"""Host capabilities backed by Qt and the keyboard library."""
import logging
import shutil
import subprocess
from typing import Callable, Iterable, List, Optional, Set

import keyboard
from PySide6 import QtCore, QtGui

from clip_config import PASTE_DELAY_MS
from clip_errors import CapabilityUnavailable
from clip_history import make_data_url, parse_data_url

logger = logging.getLogger(__name__)


class QtClipboard:
    """Reads and writes the system clipboard through ``QClipboard``."""

    def __init__(self, clipboard: QtGui.QClipboard):
        self._clipboard = clipboard

    def _mime_data(self) -> Optional[QtCore.QMimeData]:
        md = self._clipboard.mimeData(mode=QtGui.QClipboard.Mode.Clipboard)
        if md is None:
            raise CapabilityUnavailable("clipboard contents are not readable")
        return md

    def read_text(self) -> Optional[str]:
        md = self._mime_data()
        if not md.hasText():
            return None
        return md.text()

    def read_image(self) -> Optional[str]:
        md = self._mime_data()
        if not md.hasImage():
            return None
        image = self._clipboard.image(mode=QtGui.QClipboard.Mode.Clipboard)
        if image.isNull():
            return None
        data = QtCore.QByteArray()
        buf = QtCore.QBuffer(data)
        buf.open(QtCore.QIODevice.OpenModeFlag.WriteOnly)
        ok = image.save(buf, "PNG")
        buf.close()
        if not ok:
            raise CapabilityUnavailable("clipboard image could not be encoded as PNG")
        return make_data_url(bytes(data.data()), "image/png")

    def write_text(self, text: str) -> None:
        self._clipboard.setText(text, mode=QtGui.QClipboard.Mode.Clipboard)

    def write_image(self, data_url: str) -> None:
        try:
            _mime, raw = parse_data_url(data_url)
        except ValueError as e:
            raise CapabilityUnavailable(f"cannot decode stored image: {e}")
        image = QtGui.QImage()
        if not image.loadFromData(raw):
            raise CapabilityUnavailable("stored image data is not a readable image")
        self._clipboard.setImage(image, mode=QtGui.QClipboard.Mode.Clipboard)


class KeyboardPaster:
    """Sends Ctrl+V to whatever window has focus once the panel is gone.

    Tries the keyboard library first and falls back to xdotool/ydotool.
    ``simulate_paste`` reports False once every backend has failed, until a
    fallback tool shows up on PATH again.
    """

    FALLBACK_TOOLS = ("xdotool", "ydotool")

    def __init__(self, delay_ms: int = PASTE_DELAY_MS, schedule: Optional[Callable[[int, Callable[[], None]], None]] = None):
        self.delay_ms = delay_ms
        self._schedule = schedule or QtCore.QTimer.singleShot
        self._available = True

    def simulate_paste(self) -> bool:
        if not self._available and not self._fallback_tools():
            return False
        # Give the panel time to hide so focus returns to the previous app.
        self._schedule(self.delay_ms, self.send)
        return True

    def _fallback_tools(self) -> List[str]:
        return [exe for exe in (shutil.which(tool) for tool in self.FALLBACK_TOOLS) if exe]

    def send(self) -> bool:
        try:
            keyboard.send("ctrl+v")
            self._available = True
            return True
        except Exception as e:
            logger.debug("keyboard.send failed: %s", e)

        for exe in self._fallback_tools():
            try:
                subprocess.Popen(
                    [exe, "key", "ctrl+v"],
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
                self._available = True
                return True
            except OSError as e:
                logger.debug("%s failed: %s", exe, e)

        if self._available:
            logger.warning("Auto-paste not available - install xdotool or ydotool, or run with keyboard access")
        self._available = False
        return False


class GlobalHotkeyManager:
    def __init__(self) -> None:
        self._registered: Set[str] = set()

    def register_toggle(self, callback: Callable[[], None], combos: Iterable[str]) -> List[Exception]:
        errors: List[Exception] = []
        for combo in combos:
            try:
                keyboard.add_hotkey(combo, callback)
                self._registered.add(combo)
                logger.info("Registered global hotkey %s", combo)
            except Exception as e:
                logger.warning("Failed to register global hotkey %s: %s", combo, e)
                errors.append(e)
        return errors

    @property
    def registered(self) -> List[str]:
        return sorted(self._registered)

    def shutdown(self) -> None:
        if not self._registered:
            return
        try:
            keyboard.unhook_all_hotkeys()
        except Exception as e:
            logger.debug("Failed to unhook hotkeys: %s", e)
        self._registered.clear()
