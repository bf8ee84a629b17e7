"""Panel controller: renders the history and routes user gestures."""
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, Sequence

from clip_config import FEEDBACK_MS, PREVIEW_MAX_CHARS
from clip_errors import CapabilityUnavailable, PersistenceError
from clip_history import (
    ClipboardEntry,
    EntryKind,
    HistoryChanged,
    HistoryCleared,
    HistoryStore,
    Message,
    RefreshRequested,
)

logger = logging.getLogger(__name__)

COPY_FAILED = "Failed to copy!"
SAVE_FAILED = "Could not save history"


class ClipboardCapability(Protocol):
    def read_text(self) -> Optional[str]: ...

    def read_image(self) -> Optional[str]: ...

    def write_text(self, text: str) -> None: ...

    def write_image(self, data_url: str) -> None: ...


class PasteSimulationCapability(Protocol):
    def simulate_paste(self) -> bool: ...


class PanelVisibilityCapability(Protocol):
    def show(self) -> None: ...

    def hide(self) -> None: ...

    def isVisible(self) -> bool: ...


class PanelView(Protocol):
    def render(self, model: "PanelModel") -> None: ...

    def show_feedback(self, message: str, error: bool, duration_ms: int) -> None: ...


@dataclass(frozen=True)
class EntryRow:
    id: int
    kind: EntryKind
    preview: str
    created_at: str
    pinned: bool
    image: Optional[str] = None


@dataclass(frozen=True)
class PanelModel:
    pinned: List[EntryRow] = field(default_factory=list)
    recent: List[EntryRow] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.pinned and not self.recent


def preview_text(text: str, max_chars: int = PREVIEW_MAX_CHARS) -> str:
    if len(text) > max_chars:
        return text[:max_chars] + "..."
    return text


def build_model(entries: Sequence[ClipboardEntry], max_chars: int = PREVIEW_MAX_CHARS) -> PanelModel:
    pinned: List[EntryRow] = []
    recent: List[EntryRow] = []
    for it in entries:
        if it.kind == EntryKind.IMAGE:
            row = EntryRow(it.id, it.kind, "[image]", it.created_at, it.pinned, image=it.content)
        else:
            row = EntryRow(it.id, it.kind, preview_text(it.content, max_chars), it.created_at, it.pinned)
        (pinned if it.pinned else recent).append(row)
    return PanelModel(pinned=pinned, recent=recent)


class PanelController:
    """
    Keeps the panel in sync with the history store.

    Every render is a full redraw from a list of entries, so the controller
    holds no state beyond the last list it drew (needed to resolve clicks).
    """

    def __init__(
        self,
        store: HistoryStore,
        clipboard: ClipboardCapability,
        paster: PasteSimulationCapability,
        visibility: PanelVisibilityCapability,
        view: PanelView,
        remember: Optional[Callable[[str, EntryKind], None]] = None,
        preview_max_chars: int = PREVIEW_MAX_CHARS,
        feedback_ms: int = FEEDBACK_MS,
    ):
        self.store = store
        self.clipboard = clipboard
        self.paster = paster
        self.visibility = visibility
        self.view = view
        self.remember = remember
        self.preview_max_chars = preview_max_chars
        self.feedback_ms = feedback_ms
        self._entries: List[ClipboardEntry] = []
        self._unsubscribe = store.channel.subscribe(self.on_message)

    def close(self) -> None:
        self._unsubscribe()

    # -------- rendering --------
    def render(self, entries: Sequence[ClipboardEntry]) -> PanelModel:
        self._entries = list(entries)
        model = build_model(self._entries, self.preview_max_chars)
        self.view.render(model)
        return model

    def refresh(self) -> PanelModel:
        return self.render(self.store.get_all())

    def on_message(self, message: Message) -> None:
        if isinstance(message, HistoryChanged):
            self.render(message.entries)
        elif isinstance(message, HistoryCleared):
            self.render([])
        elif isinstance(message, RefreshRequested):
            self.refresh()

    # -------- gestures --------
    def copy(self, entry_id: int) -> bool:
        entry = next((it for it in self._entries if it.id == entry_id), None)
        if entry is None:
            return False
        try:
            if entry.kind == EntryKind.IMAGE:
                self.clipboard.write_image(entry.content)
            else:
                self.clipboard.write_text(entry.content)
        except CapabilityUnavailable as e:
            logger.warning("Failed to copy entry %d: %s", entry.id, e)
            self.view.show_feedback(COPY_FAILED, True, self.feedback_ms)
            return False

        if self.remember is not None:
            self.remember(entry.content, entry.kind)
        self.visibility.hide()
        if not self.paster.simulate_paste():
            logger.info("Auto-paste unavailable; entry %d left on the clipboard", entry.id)
        message = "Image pasted!" if entry.kind == EntryKind.IMAGE else "Text pasted!"
        self.view.show_feedback(message, False, self.feedback_ms)
        return True

    def toggle_pin(self, entry_id: int) -> None:
        self._apply(lambda: self.store.toggle_pin(entry_id))

    def delete(self, entry_id: int) -> None:
        self._apply(lambda: self.store.remove(entry_id))

    def clear_all(self) -> None:
        self._apply(self.store.clear)

    def dismiss(self) -> None:
        self.visibility.hide()

    def _apply(self, operation: Callable[[], List[ClipboardEntry]]) -> None:
        try:
            entries = operation()
        except PersistenceError:
            self.view.show_feedback(SAVE_FAILED, True, self.feedback_ms)
            return
        self.render(entries)
