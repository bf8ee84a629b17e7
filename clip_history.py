"""Clipboard history: entries, change channel, persistence and the store."""
import base64
import binascii
import enum
import json
import logging
import math
import os
import time
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Set, Tuple, Union

from clip_config import HISTORY_KEY, MAX_UNPINNED
from clip_errors import MalformedDataError, PersistenceError

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class EntryKind(str, enum.Enum):
    TEXT = "text"
    IMAGE = "image"


def make_data_url(raw: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(raw).decode('ascii')}"


def parse_data_url(data_url: str) -> Tuple[str, bytes]:
    """Split a ``data:<mime>;base64,<payload>`` URL into (mime, bytes)."""
    header, sep, payload = data_url.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError("not a base64 data URL")
    mime = header[len("data:"):-len(";base64")] or "application/octet-stream"
    try:
        return mime, base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"invalid base64 payload: {e}") from e


@dataclass(frozen=True)
class ClipboardEntry:
    id: int
    content: str  # text, or a data: URL for images
    kind: EntryKind = EntryKind.TEXT
    created_at: str = ""
    pinned: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "type": self.kind.value,
            "timestamp": self.created_at,
            "pinned": self.pinned,
        }

    @classmethod
    def from_dict(cls, row: Any) -> "ClipboardEntry":
        if not isinstance(row, dict):
            raise MalformedDataError(f"history entry is not an object: {row!r}")
        item_id = row.get("id")
        if isinstance(item_id, bool) or not isinstance(item_id, (int, float)) or not math.isfinite(item_id):
            raise MalformedDataError(f"history entry has invalid id: {item_id!r}")
        content = row.get("content")
        if not isinstance(content, str) or not content:
            raise MalformedDataError(f"history entry {item_id} has no content")
        try:
            kind = EntryKind(row.get("type", row.get("kind", EntryKind.TEXT.value)))
        except ValueError as e:
            raise MalformedDataError(f"history entry {item_id} has unknown type", e)
        created_at = row.get("timestamp", row.get("createdAt", ""))
        pinned = row.get("pinned", False)
        if not isinstance(pinned, bool):
            raise MalformedDataError(f"history entry {item_id} has invalid pinned flag: {pinned!r}")
        return cls(
            id=int(item_id),
            content=content,
            kind=kind,
            created_at=str(created_at or ""),
            pinned=pinned,
        )


# -------- change notifications --------

@dataclass(frozen=True)
class HistoryChanged:
    entries: List[ClipboardEntry]


@dataclass(frozen=True)
class HistoryCleared:
    pass


@dataclass(frozen=True)
class RefreshRequested:
    pass


Message = Union[HistoryChanged, HistoryCleared, RefreshRequested]
Listener = Callable[[Message], None]


class ChangeChannel:
    """One-directional push of history messages to subscribers."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, message: Message) -> None:
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception:
                logger.exception("History listener %r failed on %s", listener, type(message).__name__)


# -------- persistence --------

class PersistenceCapability(Protocol):
    def load(self, key: str, default: Any = None) -> Any: ...

    def save(self, key: str, value: Any) -> None: ...


class JsonFilePersistence:
    """Key/value store keeping one JSON file per key inside a directory."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def load(self, key: str, default: Any = None) -> Any:
        path = self.path_for(key)
        if not path.exists():
            return default
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError are both ValueErrors
            raise MalformedDataError(f"{path} is not valid JSON", e)
        except OSError as e:
            raise PersistenceError(f"Failed to read {path}", e)

    def save(self, key: str, value: Any) -> None:
        path = self.path_for(key)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            payload = json.dumps(value, ensure_ascii=False, indent=2)
            os.makedirs(self.directory, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Failed to serialize {key}", e)
        except OSError as e:
            raise PersistenceError(f"Failed to write {path}", e)


# -------- the store --------

class HistoryStore:
    """
    Ordered clipboard history, most recent first.

    Content is unique across the list. Unpinned entries are capped at
    ``max_unpinned``; pinned entries are never trimmed. Every mutation is
    persisted before it is applied in memory, then published on ``channel``.
    """

    def __init__(
        self,
        persistence: PersistenceCapability,
        key: str = HISTORY_KEY,
        max_unpinned: int = MAX_UNPINNED,
        channel: Optional[ChangeChannel] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.persistence = persistence
        self.key = key
        self.max_unpinned = max_unpinned
        self.channel = channel or ChangeChannel()
        self._clock = clock
        self._entries: List[ClipboardEntry] = self._load()
        self._last_id = max((it.id for it in self._entries), default=0)

    def _load(self) -> List[ClipboardEntry]:
        try:
            data = self.persistence.load(self.key, [])
            if not isinstance(data, list):
                raise MalformedDataError(f"{self.key} is not a list")
            entries = [ClipboardEntry.from_dict(row) for row in data]
        except MalformedDataError as e:
            logger.warning("Discarding unreadable clipboard history: %s", e)
            return []
        return self._trim(self._dedupe(entries))

    @staticmethod
    def _dedupe(items: List[ClipboardEntry]) -> List[ClipboardEntry]:
        # Earlier entries are newer, so the first occurrence wins.
        seen_ids: Set[int] = set()
        seen_content: Set[str] = set()
        kept: List[ClipboardEntry] = []
        for it in items:
            if it.id in seen_ids or it.content in seen_content:
                continue
            seen_ids.add(it.id)
            seen_content.add(it.content)
            kept.append(it)
        return kept

    def _next_id(self) -> int:
        self._last_id = max(int(self._clock() * 1000), self._last_id + 1)
        return self._last_id

    def _trim(self, items: List[ClipboardEntry]) -> List[ClipboardEntry]:
        kept: List[ClipboardEntry] = []
        unpinned = 0
        for it in items:
            if not it.pinned:
                unpinned += 1
                if unpinned > self.max_unpinned:
                    continue
            kept.append(it)
        return kept

    def _commit(self, items: List[ClipboardEntry]) -> List[ClipboardEntry]:
        try:
            self.persistence.save(self.key, [it.to_dict() for it in items])
        except PersistenceError:
            logger.error("Failed to persist clipboard history", exc_info=True)
            raise
        self._entries = items
        return self.get_all()

    def get_all(self) -> List[ClipboardEntry]:
        return list(self._entries)

    def add(self, content: str, kind: EntryKind = EntryKind.TEXT) -> List[ClipboardEntry]:
        if not content or (kind == EntryKind.TEXT and not content.strip()):
            raise ValueError("cannot add empty clipboard content")
        created = datetime.fromtimestamp(self._clock()).strftime(TIMESTAMP_FORMAT)
        entry = ClipboardEntry(id=self._next_id(), content=content, kind=EntryKind(kind), created_at=created)
        # Most recent wins: a duplicate loses its old id, timestamp and pin.
        items = [entry] + [it for it in self._entries if it.content != content]
        result = self._commit(self._trim(items))
        logger.debug("Recorded %s entry %d (%d total)", entry.kind.value, entry.id, len(result))
        self.channel.publish(HistoryChanged(result))
        return result

    def remove(self, entry_id: int) -> List[ClipboardEntry]:
        result = self._commit([it for it in self._entries if it.id != entry_id])
        self.channel.publish(HistoryChanged(result))
        return result

    def toggle_pin(self, entry_id: int) -> List[ClipboardEntry]:
        items = [replace(it, pinned=not it.pinned) if it.id == entry_id else it for it in self._entries]
        result = self._commit(items)
        self.channel.publish(HistoryChanged(result))
        return result

    def clear(self) -> List[ClipboardEntry]:
        result = self._commit([])
        logger.info("Clipboard history cleared")
        self.channel.publish(HistoryCleared())
        return result

    def export_text(self) -> str:
        lines: List[str] = []
        for it in self._entries:
            pin = "[pinned] " if it.pinned else ""
            header = f"{pin}{it.created_at}".strip()
            if header:
                lines.append(header)
            lines.append("[image]" if it.kind == EntryKind.IMAGE else it.content)
            lines.append("-" * 40)
        return "\n".join(lines).rstrip() + "\n"
