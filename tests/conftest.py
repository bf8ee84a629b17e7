import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest

# Add the project root to the path for imports
root_path = Path(__file__).parent.parent
sys.path.insert(0, str(root_path))

# Qt tests run without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from clip_errors import CapabilityUnavailable, PersistenceError  # noqa: E402
from clip_history import ChangeChannel, HistoryStore  # noqa: E402


class MemoryPersistence:
    """In-memory stand-in for JsonFilePersistence."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, Any] = dict(data or {})
        self.saves = 0
        self.fail_saves = False

    def load(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def save(self, key: str, value: Any) -> None:
        if self.fail_saves:
            raise PersistenceError("disk full")
        self.saves += 1
        self.data[key] = value


class FakeClipboard:
    def __init__(self) -> None:
        self.text: Optional[str] = None
        self.image: Optional[str] = None
        self.written: List[Tuple[str, str]] = []
        self.unavailable = False

    def read_text(self) -> Optional[str]:
        if self.unavailable:
            raise CapabilityUnavailable("no display")
        return self.text

    def read_image(self) -> Optional[str]:
        if self.unavailable:
            raise CapabilityUnavailable("no display")
        return self.image

    def write_text(self, text: str) -> None:
        if self.unavailable:
            raise CapabilityUnavailable("no display")
        self.written.append(("text", text))
        self.text = text

    def write_image(self, data_url: str) -> None:
        if self.unavailable:
            raise CapabilityUnavailable("no display")
        self.written.append(("image", data_url))
        self.image = data_url


class FakePaster:
    def __init__(self, works: bool = True) -> None:
        self.works = works
        self.calls = 0

    def simulate_paste(self) -> bool:
        self.calls += 1
        return self.works


class FakePanel:
    """Records what the controller asks the panel to do."""

    def __init__(self) -> None:
        self.visible = True
        self.models: List[Any] = []
        self.feedback: List[Tuple[str, bool, int]] = []

    def show(self) -> None:
        self.visible = True

    def hide(self) -> None:
        self.visible = False

    def isVisible(self) -> bool:
        return self.visible

    def render(self, model) -> None:
        self.models.append(model)

    def show_feedback(self, message: str, error: bool, duration_ms: int) -> None:
        self.feedback.append((message, error, duration_ms))

    @property
    def last(self):
        return self.models[-1]


class StepClock:
    """Clock that advances one millisecond per call."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        self.now += 0.001
        return self.now


@pytest.fixture
def persistence() -> MemoryPersistence:
    return MemoryPersistence()


@pytest.fixture
def store(persistence) -> HistoryStore:
    return HistoryStore(persistence, channel=ChangeChannel(), clock=StepClock())


@pytest.fixture
def clipboard() -> FakeClipboard:
    return FakeClipboard()


@pytest.fixture
def paster() -> FakePaster:
    return FakePaster()


@pytest.fixture
def panel() -> FakePanel:
    return FakePanel()
