import logging
import os
import sys
from typing import List, Optional

from PySide6 import QtCore, QtGui, QtWidgets

from clip_config import PANEL_HEIGHT, PANEL_WIDTH, SMOKE_TEST_AUTOQUIT_MS, Config
from clip_errors import PersistenceError
from clip_history import ChangeChannel, HistoryStore, JsonFilePersistence, RefreshRequested, parse_data_url
from clip_monitor import ClipboardPoller
from clip_panel import EntryRow, PanelController, PanelModel
from clip_platform import GlobalHotkeyManager, KeyboardPaster, QtClipboard

logger = logging.getLogger(__name__)

THUMBNAIL_SIZE = QtCore.QSize(300, 120)


def apply_dark_theme() -> None:
    QtWidgets.QApplication.setStyle("Fusion")
    pal = QtGui.QPalette()
    pal.setColor(QtGui.QPalette.ColorRole.Window, QtGui.QColor(30, 30, 30))
    pal.setColor(QtGui.QPalette.ColorRole.WindowText, QtGui.QColor(230, 230, 230))
    pal.setColor(QtGui.QPalette.ColorRole.Base, QtGui.QColor(20, 20, 20))
    pal.setColor(QtGui.QPalette.ColorRole.AlternateBase, QtGui.QColor(30, 30, 30))
    pal.setColor(QtGui.QPalette.ColorRole.ToolTipBase, QtGui.QColor(230, 230, 230))
    pal.setColor(QtGui.QPalette.ColorRole.ToolTipText, QtGui.QColor(230, 230, 230))
    pal.setColor(QtGui.QPalette.ColorRole.Text, QtGui.QColor(230, 230, 230))
    pal.setColor(QtGui.QPalette.ColorRole.Button, QtGui.QColor(45, 45, 45))
    pal.setColor(QtGui.QPalette.ColorRole.ButtonText, QtGui.QColor(230, 230, 230))
    pal.setColor(QtGui.QPalette.ColorRole.BrightText, QtGui.QColor(255, 0, 0))
    pal.setColor(QtGui.QPalette.ColorRole.Highlight, QtGui.QColor(135, 207, 62))
    pal.setColor(QtGui.QPalette.ColorRole.HighlightedText, QtGui.QColor(0, 0, 0))
    QtWidgets.QApplication.setPalette(pal)


class EntryWidget(QtWidgets.QFrame):
    # ids are millisecond timestamps, too wide for a C++ int
    clicked = QtCore.Signal(object)
    pin_clicked = QtCore.Signal(object)
    delete_clicked = QtCore.Signal(object)

    def __init__(self, row: EntryRow, parent: Optional[QtWidgets.QWidget] = None):
        super().__init__(parent)
        self.row = row
        self.setFrameShape(QtWidgets.QFrame.Shape.StyledPanel)
        self.setCursor(QtCore.Qt.CursorShape.PointingHandCursor)

        layout = QtWidgets.QHBoxLayout(self)
        layout.setContentsMargins(8, 6, 6, 6)
        layout.setSpacing(6)

        body = QtWidgets.QVBoxLayout()
        body.setSpacing(2)
        layout.addLayout(body, 1)

        preview = QtWidgets.QLabel()
        preview.setWordWrap(True)
        preview.setTextFormat(QtCore.Qt.TextFormat.PlainText)
        pixmap = self._thumbnail(row.image) if row.image else None
        if pixmap is not None:
            preview.setPixmap(pixmap)
        else:
            preview.setText(row.preview)
        body.addWidget(preview)

        when = QtWidgets.QLabel(row.created_at)
        pal = when.palette()
        pal.setColor(QtGui.QPalette.ColorRole.WindowText, QtGui.QColor("#888"))
        when.setPalette(pal)
        body.addWidget(when)

        pin_btn = QtWidgets.QToolButton()
        pin_btn.setText("★" if row.pinned else "☆")
        pin_btn.setToolTip("Unpin" if row.pinned else "Pin")
        pin_btn.clicked.connect(lambda: self.pin_clicked.emit(self.row.id))
        layout.addWidget(pin_btn, 0, QtCore.Qt.AlignmentFlag.AlignTop)

        delete_btn = QtWidgets.QToolButton()
        delete_btn.setText("✕")
        delete_btn.setToolTip("Delete")
        delete_btn.clicked.connect(lambda: self.delete_clicked.emit(self.row.id))
        layout.addWidget(delete_btn, 0, QtCore.Qt.AlignmentFlag.AlignTop)

    @staticmethod
    def _thumbnail(data_url: str) -> Optional[QtGui.QPixmap]:
        try:
            _mime, raw = parse_data_url(data_url)
        except ValueError:
            return None
        pixmap = QtGui.QPixmap()
        if not pixmap.loadFromData(raw):
            return None
        return pixmap.scaled(
            THUMBNAIL_SIZE,
            QtCore.Qt.AspectRatioMode.KeepAspectRatio,
            QtCore.Qt.TransformationMode.SmoothTransformation,
        )

    def mouseReleaseEvent(self, event: QtGui.QMouseEvent) -> None:
        if event.button() == QtCore.Qt.MouseButton.LeftButton and self.rect().contains(event.position().toPoint()):
            self.clicked.emit(self.row.id)
        super().mouseReleaseEvent(event)


class PanelWindow(QtWidgets.QWidget):
    def __init__(self) -> None:
        super().__init__()
        self._controller: Optional[PanelController] = None
        self.setWindowTitle("Mint Clipboard")
        self.setWindowFlags(
            QtCore.Qt.WindowType.FramelessWindowHint
            | QtCore.Qt.WindowType.Tool
            | QtCore.Qt.WindowType.WindowStaysOnTopHint
        )
        self.resize(PANEL_WIDTH, PANEL_HEIGHT)

        self._feedback_timer = QtCore.QTimer(self)
        self._feedback_timer.setSingleShot(True)

        self._build_ui()

    def _build_ui(self) -> None:
        root = QtWidgets.QVBoxLayout(self)
        root.setContentsMargins(10, 10, 10, 10)
        root.setSpacing(8)

        header = QtWidgets.QHBoxLayout()
        root.addLayout(header)

        title = QtWidgets.QLabel("Clipboard")
        f = title.font()
        f.setBold(True)
        title.setFont(f)
        header.addWidget(title, 1)

        self.clear_btn = QtWidgets.QPushButton("Clear All")
        header.addWidget(self.clear_btn)
        self.close_btn = QtWidgets.QPushButton("Close")
        header.addWidget(self.close_btn)

        scroll = QtWidgets.QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QtWidgets.QFrame.Shape.NoFrame)
        root.addWidget(scroll, 1)

        content = QtWidgets.QWidget()
        scroll.setWidget(content)
        body = QtWidgets.QVBoxLayout(content)
        body.setContentsMargins(0, 0, 0, 0)
        body.setSpacing(6)

        self.empty_label = QtWidgets.QLabel("Clipboard history is empty.\nCopy something to get started.")
        self.empty_label.setAlignment(QtCore.Qt.AlignmentFlag.AlignCenter)
        body.addWidget(self.empty_label, 1)

        self.pinned_section, self.pinned_items = self._section("Pinned", body)
        self.recent_section, self.recent_items = self._section("Recent", body)
        body.addStretch(1)

        self.feedback_label = QtWidgets.QLabel()
        self.feedback_label.setAlignment(QtCore.Qt.AlignmentFlag.AlignCenter)
        self.feedback_label.hide()
        root.addWidget(self.feedback_label)
        self._feedback_timer.timeout.connect(self.feedback_label.hide)

    @staticmethod
    def _section(label: str, parent: QtWidgets.QVBoxLayout):
        section = QtWidgets.QWidget()
        layout = QtWidgets.QVBoxLayout(section)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(4)
        heading = QtWidgets.QLabel(label.upper())
        f = heading.font()
        f.setBold(True)
        f.setPointSizeF(f.pointSizeF() * 0.85)
        heading.setFont(f)
        layout.addWidget(heading)
        items = QtWidgets.QVBoxLayout()
        items.setSpacing(4)
        layout.addLayout(items)
        parent.addWidget(section)
        return section, items

    def bind(self, controller: PanelController) -> None:
        self._controller = controller
        self.clear_btn.clicked.connect(controller.clear_all)
        self.close_btn.clicked.connect(controller.dismiss)

    # -------- PanelView --------
    def render(self, model: PanelModel) -> None:
        self.empty_label.setVisible(model.empty)
        self._fill(self.pinned_section, self.pinned_items, model.pinned)
        self._fill(self.recent_section, self.recent_items, model.recent)

    def _fill(self, section: QtWidgets.QWidget, layout: QtWidgets.QVBoxLayout, rows: List[EntryRow]) -> None:
        while layout.count():
            item = layout.takeAt(0)
            widget = item.widget()
            if widget is not None:
                widget.deleteLater()
        for row in rows:
            widget = EntryWidget(row)
            if self._controller is not None:
                widget.clicked.connect(self._controller.copy)
                widget.pin_clicked.connect(self._controller.toggle_pin)
                widget.delete_clicked.connect(self._controller.delete)
            layout.addWidget(widget)
        section.setVisible(bool(rows))

    def show_feedback(self, message: str, error: bool, duration_ms: int) -> None:
        color = "#e06c75" if error else "#87cf3e"
        self.feedback_label.setStyleSheet(f"color: {color}; font-weight: bold;")
        self.feedback_label.setText(message)
        self.feedback_label.show()
        self._feedback_timer.start(duration_ms)

    # -------- events --------
    def keyPressEvent(self, event: QtGui.QKeyEvent) -> None:
        if event.key() == QtCore.Qt.Key.Key_Escape and self._controller is not None:
            self._controller.dismiss()
            return
        super().keyPressEvent(event)

    def changeEvent(self, event: QtCore.QEvent) -> None:
        # Hide when focus moves to another window.
        if event.type() == QtCore.QEvent.Type.ActivationChange and self.isVisible() and not self.isActiveWindow():
            self.hide()
        super().changeEvent(event)


class ClipboardApp(QtCore.QObject):
    # keyboard callbacks are not on the Qt thread
    toggle_requested = QtCore.Signal()

    def __init__(self, app: QtWidgets.QApplication, config: Config, store: HistoryStore):
        super().__init__()
        self._app = app
        self.config = config
        self.store = store
        self._hotkeys = GlobalHotkeyManager()
        self._tray: Optional[QtWidgets.QSystemTrayIcon] = None

        self.clipboard = QtClipboard(app.clipboard())
        self.poller = ClipboardPoller(self.clipboard, store, config.max_text_bytes)
        self.window = PanelWindow()
        self.controller = PanelController(
            store,
            self.clipboard,
            KeyboardPaster(config.paste_delay_ms),
            self.window,
            self.window,
            remember=self.poller.remember,
            preview_max_chars=config.preview_max_chars,
            feedback_ms=config.feedback_ms,
        )
        self.window.bind(self.controller)
        self.controller.refresh()

        self._poll_timer = QtCore.QTimer(self)
        self._poll_timer.setInterval(config.poll_interval_ms)
        self._poll_timer.timeout.connect(self.poller.poll)
        self._poll_timer.start()

        self.toggle_requested.connect(self.toggle_panel, QtCore.Qt.ConnectionType.QueuedConnection)
        self._app.aboutToQuit.connect(self._on_about_to_quit)
        if not config.smoke_test:
            self._setup_hotkeys()
            self._setup_tray()

    def _setup_hotkeys(self) -> None:
        errors = self._hotkeys.register_toggle(self.toggle_requested.emit, self.config.hotkeys)
        if errors and not self._hotkeys.registered:
            logger.warning("No global hotkey available; use the tray icon to open the panel")

    def _setup_tray(self) -> None:
        if not QtWidgets.QSystemTrayIcon.isSystemTrayAvailable():
            logger.info("No system tray available, running without tray icon")
            return

        icon = self.window.style().standardIcon(QtWidgets.QStyle.StandardPixmap.SP_FileDialogDetailedView)
        self._tray = QtWidgets.QSystemTrayIcon(icon, self)
        self._tray.setToolTip("Mint Clipboard")

        menu = QtWidgets.QMenu()
        menu.addAction("Show Clipboard").triggered.connect(self.show_panel)
        menu.addAction("Clear History").triggered.connect(self.clear_history)
        menu.addAction("Export history → .txt").triggered.connect(self.export_history)
        menu.addSeparator()
        menu.addAction("Quit").triggered.connect(self._app.quit)

        self._menu = menu
        self._tray.setContextMenu(menu)
        self._tray.activated.connect(self._on_tray_activated)
        self._tray.show()

    def _on_tray_activated(self, reason: QtWidgets.QSystemTrayIcon.ActivationReason) -> None:
        if reason == QtWidgets.QSystemTrayIcon.ActivationReason.Trigger:
            self.show_panel()

    # -------- visibility --------
    def toggle_panel(self) -> None:
        if self.window.isVisible():
            self.window.hide()
        else:
            self.show_panel()

    def show_panel(self) -> None:
        pos = QtGui.QCursor.pos()
        screen = QtGui.QGuiApplication.screenAt(pos) or QtGui.QGuiApplication.primaryScreen()
        area = screen.availableGeometry()
        x = pos.x() - PANEL_WIDTH // 2
        y = pos.y() - 100
        x = max(area.left() + 10, min(x, area.right() - PANEL_WIDTH - 10))
        y = max(area.top() + 10, min(y, area.bottom() - PANEL_HEIGHT - 10))
        self.window.move(x, y)
        self.window.show()
        self.window.raise_()
        self.window.activateWindow()
        self.store.channel.publish(RefreshRequested())

    # -------- tray actions --------
    def clear_history(self) -> None:
        try:
            self.store.clear()
        except PersistenceError as e:
            self._notify("Clear failed", str(e))

    def export_history(self) -> None:
        default_name = os.path.join(os.path.expanduser("~"), "clipboard_history.txt")
        path, _ = QtWidgets.QFileDialog.getSaveFileName(None, "Export history", default_name, "Text files (*.txt)")
        if not path:
            return
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(self.store.export_text())
            logger.info("Exported clipboard history to %s", path)
        except OSError as e:
            logger.error("Export to %s failed: %s", path, e)
            self._notify("Export failed", str(e))

    def _notify(self, title: str, message: str) -> None:
        if self._tray is not None:
            self._tray.showMessage(title, message, QtWidgets.QSystemTrayIcon.MessageIcon.Warning, 4000)
        else:
            QtWidgets.QMessageBox.warning(None, title, message)

    def _on_about_to_quit(self) -> None:
        self._poll_timer.stop()
        self._hotkeys.shutdown()
        self.controller.close()


def main() -> int:
    config = Config()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = QtWidgets.QApplication(sys.argv)
    app.setQuitOnLastWindowClosed(False)
    apply_dark_theme()

    persistence = JsonFilePersistence(config.data_dir)
    try:
        store = HistoryStore(persistence, config.history_key, config.max_unpinned, ChangeChannel())
    except PersistenceError as e:
        logger.error("Cannot open clipboard history in %s: %s", config.data_dir, e)
        QtWidgets.QMessageBox.critical(None, "Mint Clipboard", f"Cannot open clipboard history.\n\n{e}")
        return 1
    logger.info("Loaded %d clipboard entries from %s", len(store.get_all()), persistence.path_for(config.history_key))

    clip_app = ClipboardApp(app, config, store)
    if config.smoke_test:
        clip_app.show_panel()
        QtCore.QTimer.singleShot(SMOKE_TEST_AUTOQUIT_MS, app.quit)
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
