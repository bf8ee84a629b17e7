"""Fixed-interval clipboard polling."""
import logging
from typing import Optional, Set

from clip_config import MAX_CLIPBOARD_TEXT_BYTES
from clip_errors import CapabilityUnavailable, PersistenceError
from clip_history import EntryKind, HistoryStore

logger = logging.getLogger(__name__)


class ClipboardPoller:
    """Turns changes of the OS clipboard into history entries.

    ``poll()`` is one step of the loop; the caller owns the timer.
    """

    def __init__(self, clipboard, store: HistoryStore, max_text_bytes: int = MAX_CLIPBOARD_TEXT_BYTES):
        self.clipboard = clipboard
        self.store = store
        self.max_text_bytes = max_text_bytes
        self._last_text: Optional[str] = None
        self._last_image: Optional[str] = None
        self._reported: Set[str] = set()

    def remember(self, content: str, kind: EntryKind = EntryKind.TEXT) -> None:
        """Treat ``content`` as already seen, so writing it back is not recorded."""
        if kind == EntryKind.IMAGE:
            self._last_image = content
        else:
            self._last_text = content

    def poll(self) -> None:
        text = self._read("text", self.clipboard.read_text)
        if text is not None and self._is_new_text(text):
            self._last_text = text
            self._record(text, EntryKind.TEXT)

        image = self._read("image", self.clipboard.read_image)
        if image and image != self._last_image:
            self._last_image = image
            self._record(image, EntryKind.IMAGE)

    def _is_new_text(self, text: str) -> bool:
        if not text.strip() or text == self._last_text:
            return False
        if len(text.encode("utf-8", errors="ignore")) > self.max_text_bytes:
            return False
        return True

    def _read(self, what: str, reader) -> Optional[str]:
        try:
            return reader()
        except CapabilityUnavailable as e:
            if what not in self._reported:
                self._reported.add(what)
                logger.warning("Clipboard %s unavailable, skipping: %s", what, e)
            return None

    def _record(self, content: str, kind: EntryKind) -> None:
        try:
            self.store.add(content, kind)
        except PersistenceError as e:
            logger.error("Could not record clipboard %s: %s", kind.value, e)
