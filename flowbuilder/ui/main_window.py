"""Main window for the flow builder.

Combines all UI components into the main application window:
- Sidebar with flow details, selectors and the action palette
- Graph canvas
- Toolbar (Validate / Export / Import / Auto Layout / Delete)
- Validation banner and log panel
"""

from typing import Any, Optional

from PySide6.QtCore import Qt, Signal, Slot
from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QFileDialog,
    QInputDialog,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QSplitter,
    QToolBar,
    QVBoxLayout,
    QWidget,
)

from flowbuilder.core.logging import LogBuffer, LogEntry, get_logger
from flowbuilder.core.model import GraphState, Node
from flowbuilder.core.validation import ValidationResult

from .canvas import FlowCanvas
from .node_config_dialog import NodeConfigDialog
from .widgets import ActionPalette, FlowDetailsPanel, LogView, SelectorEditor, WarningBanner


class MainWindow(QMainWindow):
    """Main application window.

    Contains:
    - Sidebar (left): flow details, selectors, action palette
    - Canvas (center) with validation banner
    - Log panel (bottom)
    """

    # Requests for the controller
    validate_requested = Signal()
    export_requested = Signal(str)  # file path
    import_requested = Signal(str)  # file path
    layout_requested = Signal()
    delete_requested = Signal(str)  # node id

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        self.setWindowTitle("Flow Builder")
        self.setMinimumSize(1100, 720)

        self._logger = get_logger()
        self._suggested_filename = "flow.json"

        self._setup_ui()
        self._setup_toolbar()
        self._connect_signals()

    def _setup_ui(self) -> None:
        """Setup the main UI layout."""
        splitter = QSplitter(Qt.Orientation.Horizontal)

        # Left: sidebar
        sidebar = QWidget()
        sidebar_layout = QVBoxLayout(sidebar)
        self._details = FlowDetailsPanel()
        sidebar_layout.addWidget(self._details)
        self._selectors = SelectorEditor()
        sidebar_layout.addWidget(self._selectors)
        self._palette = ActionPalette()
        sidebar_layout.addWidget(self._palette, 1)
        splitter.addWidget(sidebar)

        # Right: banner, canvas and log
        right = QWidget()
        right_layout = QVBoxLayout(right)
        right_layout.setContentsMargins(0, 0, 0, 0)

        self._banner = WarningBanner(dismissible=True)
        self._banner.hide()
        right_layout.addWidget(self._banner)

        vertical = QSplitter(Qt.Orientation.Vertical)
        self._canvas = FlowCanvas()
        vertical.addWidget(self._canvas)
        self._log_view = LogView()
        vertical.addWidget(self._log_view)
        vertical.setSizes([560, 140])
        right_layout.addWidget(vertical, 1)

        splitter.addWidget(right)
        splitter.setSizes([300, 800])

        self.setCentralWidget(splitter)

    def _setup_toolbar(self) -> None:
        toolbar = QToolBar("Flow")
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        validate = QAction("Validate", self)
        validate.triggered.connect(self.validate_requested.emit)
        toolbar.addAction(validate)

        export = QAction("Export", self)
        export.setShortcut(QKeySequence.StandardKey.Save)
        export.triggered.connect(self._on_export)
        toolbar.addAction(export)

        import_action = QAction("Import", self)
        import_action.setShortcut(QKeySequence.StandardKey.Open)
        import_action.triggered.connect(self._on_import)
        toolbar.addAction(import_action)

        toolbar.addSeparator()

        auto_layout = QAction("Auto Layout", self)
        auto_layout.triggered.connect(self.layout_requested.emit)
        toolbar.addAction(auto_layout)

        delete = QAction("Delete", self)
        delete.triggered.connect(self._on_delete)
        toolbar.addAction(delete)

    def _connect_signals(self) -> None:
        """Connect UI signals."""
        self._canvas.delete_requested.connect(self.delete_requested.emit)
        self.set_log_buffer(self._logger.buffer)

    # Component access for the controller

    @property
    def canvas(self) -> FlowCanvas:
        return self._canvas

    @property
    def palette_panel(self) -> ActionPalette:
        return self._palette

    @property
    def details_panel(self) -> FlowDetailsPanel:
        return self._details

    @property
    def selector_editor(self) -> SelectorEditor:
        return self._selectors

    # Toolbar handlers

    def _on_export(self) -> None:
        path, _ = QFileDialog.getSaveFileName(
            self, "Export Flow", self._suggested_filename, "Flow JSON (*.json)"
        )
        if path:
            self.export_requested.emit(path)

    def _on_import(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Import Flow", "", "Flow JSON (*.json)")
        if path:
            self.import_requested.emit(path)

    def _on_delete(self) -> None:
        node_id = self._canvas.selected_id
        if node_id:
            self.delete_requested.emit(node_id)

    # Updates from the editor

    @Slot(object)
    def show_state(self, state: GraphState) -> None:
        """Refresh every view of the graph."""
        self._canvas.set_state(state)
        self._details.set_details(state.name, state.description)
        self._selectors.set_selectors(state.selectors)

    def set_suggested_filename(self, filename: str) -> None:
        self._suggested_filename = filename

    @Slot(object)
    def show_validation(self, result: ValidationResult) -> None:
        """Show validation findings in the banner."""
        if not result.valid:
            self._banner.show_message("\n".join(result.errors), "error")
        elif result.warnings:
            self._banner.show_message("\n".join(w.message for w in result.warnings), "warning")
        else:
            self._banner.hide()
            QMessageBox.information(self, "Validation", "The flow is ready to export.")

    # Dialogs

    def ask_area_name(self, current: str) -> Optional[str]:
        """Prompt for a new area name; None if cancelled."""
        name, ok = QInputDialog.getText(
            self, "Rename Checkpoint", "Checkpoint name:", QLineEdit.EchoMode.Normal, current
        )
        return name if ok else None

    def edit_action_config(self, node: Node, selectors: dict[str, str]) -> Optional[dict[str, Any]]:
        """Open the config dialog; None if cancelled."""
        dialog = NodeConfigDialog(node, selectors, self)
        if dialog.exec() == NodeConfigDialog.DialogCode.Accepted:
            return dialog.config()
        return None

    def show_error_dialog(self, title: str, message: str) -> None:
        """Show error dialog.

        Args:
            title: Dialog title
            message: Error message
        """
        QMessageBox.critical(self, title, message)

    # Log

    def set_log_buffer(self, buffer: LogBuffer) -> None:
        """Display existing entries and follow new ones."""
        self._log_view.set_entries(buffer.get_all())
        buffer.add_listener(self._add_log_entry)

    def _add_log_entry(self, entry: LogEntry) -> None:
        self._log_view.add_entry(entry)
