"""Common UI widgets for the flow builder.

Provides the sidebar components and the log/validation displays used by
the main window.
"""

from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QColor, QPalette
from PySide6.QtWidgets import (
    QFormLayout,
    QFrame,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QPlainTextEdit,
    QPushButton,
    QTextEdit,
    QVBoxLayout,
    QWidget,
)

from flowbuilder.core.catalog import CATEGORIES, description_for
from flowbuilder.core.logging import LogEntry, LogLevel


class WarningBanner(QFrame):
    """A dismissible banner listing validation findings.

    Yellow for warnings, red for blocking errors.
    """

    dismissed = Signal()

    _COLORS = {
        "warning": (QColor(255, 243, 205), QColor(133, 100, 4)),
        "error": (QColor(248, 215, 218), QColor(114, 28, 36)),
    }

    def __init__(
        self,
        message: str = "",
        dismissible: bool = True,
        parent: Optional[QWidget] = None,
    ) -> None:
        """Initialize the banner.

        Args:
            message: Initial message
            dismissible: Whether to show close button
            parent: Parent widget
        """
        super().__init__(parent)

        self.setAutoFillBackground(True)
        self.setFrameStyle(QFrame.Shape.StyledPanel)
        self._set_severity("warning")

        layout = QHBoxLayout(self)
        layout.setContentsMargins(12, 8, 12, 8)

        self._label = QLabel(message)
        self._label.setWordWrap(True)
        layout.addWidget(self._label, 1)

        if dismissible:
            close_btn = QPushButton("×")
            close_btn.setFixedSize(24, 24)
            close_btn.setFlat(True)
            close_btn.clicked.connect(self._on_dismiss)
            layout.addWidget(close_btn)

    def _set_severity(self, severity: str) -> None:
        background, text = self._COLORS[severity]
        palette = self.palette()
        palette.setColor(QPalette.ColorRole.Window, background)
        palette.setColor(QPalette.ColorRole.WindowText, text)
        self.setPalette(palette)

    def _on_dismiss(self) -> None:
        """Handle dismiss button click."""
        self.hide()
        self.dismissed.emit()

    def show_message(self, message: str, severity: str = "warning") -> None:
        """Show the banner with ``message``.

        Args:
            message: Text to display
            severity: ``warning`` or ``error``
        """
        self._set_severity(severity)
        self._label.setText(message)
        self.show()


class LogView(QPlainTextEdit):
    """Log viewer following the logger's circular buffer."""

    _LEVEL_COLORS = {
        LogLevel.WARNING: "#b45309",
        LogLevel.ERROR: "#b91c1c",
    }

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setReadOnly(True)
        self.setMaximumBlockCount(200)
        self.setLineWrapMode(QPlainTextEdit.LineWrapMode.WidgetWidth)
        self.setStyleSheet(
            "font-family: Consolas, Monaco, monospace; font-size: 11px;"
        )

    def add_entry(self, entry: LogEntry) -> None:
        """Add a log entry."""
        color = self._LEVEL_COLORS.get(entry.level)
        if color:
            self.appendHtml(f'<span style="color: {color};">{_escape(entry.format())}</span>')
        else:
            self.appendPlainText(entry.format())

    def set_entries(self, entries: list[LogEntry]) -> None:
        """Set all log entries."""
        self.clear()
        for entry in entries:
            self.add_entry(entry)


def _escape(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


class FlowDetailsPanel(QGroupBox):
    """Flow name and description editor."""

    details_changed = Signal(str, str)  # name, description

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__("Flow Details", parent)

        layout = QFormLayout(self)

        self._name = QLineEdit()
        self._name.setPlaceholderText("Flow name")
        self._name.editingFinished.connect(self._emit)
        layout.addRow("Name:", self._name)

        self._description = QTextEdit()
        self._description.setAcceptRichText(False)
        self._description.setMaximumHeight(70)
        self._description.setPlaceholderText("What does this flow do?")
        layout.addRow("Description:", self._description)

        apply_btn = QPushButton("Apply")
        apply_btn.clicked.connect(self._emit)
        layout.addRow(apply_btn)

    def _emit(self) -> None:
        self.details_changed.emit(self._name.text(), self._description.toPlainText())

    def set_details(self, name: str, description: str) -> None:
        """Show ``name``/``description`` without re-emitting."""
        if self._name.text() != name:
            self._name.setText(name)
        if self._description.toPlainText() != description:
            self._description.setPlainText(description)


class SelectorEditor(QGroupBox):
    """Named element selectors shared by the flow's actions.

    A selector is only added when both name and value are filled in.
    """

    selector_added = Signal(str, str)  # name, value
    selector_removed = Signal(str)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__("Selectors", parent)

        layout = QVBoxLayout(self)

        row = QHBoxLayout()
        self._name = QLineEdit()
        self._name.setPlaceholderText("Name")
        row.addWidget(self._name)
        self._value = QLineEdit()
        self._value.setPlaceholderText("Selector value")
        row.addWidget(self._value, 1)
        add_btn = QPushButton("Add")
        add_btn.clicked.connect(self._on_add)
        row.addWidget(add_btn)
        layout.addLayout(row)

        self._list = QListWidget()
        self._list.setMaximumHeight(110)
        layout.addWidget(self._list)

        remove_btn = QPushButton("Remove Selected")
        remove_btn.clicked.connect(self._on_remove)
        layout.addWidget(remove_btn)

    def _on_add(self) -> None:
        name, value = self._name.text().strip(), self._value.text().strip()
        if not name or not value:
            return
        self.selector_added.emit(name, value)
        self._name.clear()
        self._value.clear()

    def _on_remove(self) -> None:
        item = self._list.currentItem()
        if item is not None:
            self.selector_removed.emit(item.data(Qt.ItemDataRole.UserRole))

    def set_selectors(self, selectors: dict[str, str]) -> None:
        """Replace the listed selectors."""
        self._list.clear()
        for name, value in selectors.items():
            item = QListWidgetItem(f"{name}: {value}")
            item.setData(Qt.ItemDataRole.UserRole, name)
            self._list.addItem(item)


class ActionPalette(QGroupBox):
    """Action types grouped by category; double-click adds one."""

    action_requested = Signal(str)  # action type
    area_requested = Signal()

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__("Actions", parent)

        layout = QVBoxLayout(self)

        area_btn = QPushButton("+ Checkpoint Area")
        area_btn.clicked.connect(self.area_requested.emit)
        layout.addWidget(area_btn)

        self._list = QListWidget()
        for category in CATEGORIES:
            header = QListWidgetItem(category.name)
            header.setFlags(Qt.ItemFlag.NoItemFlags)
            header.setForeground(QColor(category.color))
            self._list.addItem(header)
            for action_type in category.actions:
                item = QListWidgetItem(f"    {action_type}")
                item.setData(Qt.ItemDataRole.UserRole, action_type)
                item.setToolTip(description_for(action_type))
                self._list.addItem(item)
        self._list.itemDoubleClicked.connect(self._on_item_activated)
        layout.addWidget(self._list, 1)

    def _on_item_activated(self, item: QListWidgetItem) -> None:
        action_type = item.data(Qt.ItemDataRole.UserRole)
        if action_type:
            self.action_requested.emit(action_type)
