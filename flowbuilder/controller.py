"""Application controller that wires UI to the flow editor.

Handles all signal connections between MainWindow and FlowEditor,
plus error reporting for rejected operations.
"""

from pathlib import Path
from typing import Callable, Optional

from PySide6.QtCore import QObject, Slot
from PySide6.QtWidgets import QApplication

from flowbuilder.core.catalog import CONDITIONAL_HANDLES, is_conditional
from flowbuilder.core.editor import FlowEditor
from flowbuilder.core.logging import get_logger
from flowbuilder.core.model import Node, Position
from flowbuilder.core.store import GraphError
from flowbuilder.core.validation import ValidationResult
from flowbuilder.ui.main_window import MainWindow

# Where palette and area-button additions land, staggered per drop
_DROP_ORIGIN = (450.0, 80.0)
_DROP_STEP = 30.0


class ApplicationController(QObject):
    """Controller that connects UI to the flow editor.

    Responsibilities:
    - Wire signals between MainWindow and FlowEditor
    - Provide per-node callbacks (settings, rename)
    - Report rejected operations in error dialogs
    """

    def __init__(
        self,
        window: MainWindow,
        parent: Optional[QObject] = None,
    ) -> None:
        """Initialize the controller.

        Args:
            window: Main application window
            parent: Parent QObject
        """
        super().__init__(parent)

        self._window = window
        self._editor = FlowEditor(self)
        self._logger = get_logger()
        self._drops = 0

        self._editor.set_callback_factory(self._node_callbacks)
        self._connect_signals()
        self._on_graph_changed("init")

    @property
    def editor(self) -> FlowEditor:
        return self._editor

    def _connect_signals(self) -> None:
        """Connect all signals between window and editor."""
        canvas = self._window.canvas

        # Window -> Controller -> Editor
        self._window.validate_requested.connect(self._editor.validate)
        self._window.export_requested.connect(self._on_export_requested)
        self._window.import_requested.connect(self._on_import_requested)
        self._window.layout_requested.connect(self._on_layout_requested)
        self._window.delete_requested.connect(self._on_delete_requested)
        self._window.palette_panel.action_requested.connect(self._on_add_action)
        self._window.palette_panel.area_requested.connect(self._on_add_area)
        self._window.details_panel.details_changed.connect(self._on_details_changed)
        self._window.selector_editor.selector_added.connect(self._on_selector_added)
        self._window.selector_editor.selector_removed.connect(self._on_selector_removed)

        canvas.drag_started.connect(self._on_drag_started)
        canvas.drag_moved.connect(self._on_drag_moved)
        canvas.drag_finished.connect(self._on_drag_finished)
        canvas.connect_requested.connect(self._on_connect_requested)
        canvas.rename_requested.connect(self._on_rename_requested)
        canvas.configure_requested.connect(self._on_configure_requested)

        # Editor -> Controller -> Window
        self._editor.graph_changed.connect(self._on_graph_changed)
        self._editor.validation_finished.connect(self._on_validation_finished)
        self._editor.import_failed.connect(self._on_import_failed)
        self._editor.drop_target_changed.connect(canvas.set_drop_highlight)

    def _run(self, title: str, operation: Callable[[], object]) -> bool:
        """Run an editor operation, reporting a rejection in a dialog."""
        try:
            operation()
        except GraphError as e:
            self._logger.warning(f"{title}: {e}")
            self._window.show_error_dialog(title, str(e))
            return False
        return True

    def _next_drop_position(self) -> Position:
        offset = (self._drops % 10) * _DROP_STEP
        self._drops += 1
        return Position(_DROP_ORIGIN[0] + offset, _DROP_ORIGIN[1] + offset)

    # Node callbacks

    def _node_callbacks(self, node: Node) -> dict[str, Callable[[], None]]:
        node_id = node.id
        if node.is_action:
            return {"open_settings": lambda: self._configure(node_id)}
        if node.is_area:
            return {"start_rename": lambda: self._rename(node_id)}
        return {}

    def _configure(self, node_id: str) -> None:
        node = self._editor.state.node(node_id)
        if node is None:
            return
        config = self._window.edit_action_config(node, dict(self._editor.state.selectors))
        if config is not None:
            self._run("Configuration rejected", lambda: self._editor.update_action_config(node_id, config))

    def _rename(self, node_id: str) -> None:
        node = self._editor.state.node(node_id)
        if node is None:
            return
        if not self._run("Rename failed", lambda: self._editor.set_area_editing(node_id, True)):
            return
        name = self._window.ask_area_name(node.name)
        if name is None:
            self._run("Rename failed", lambda: self._editor.set_area_editing(node_id, False))
            return
        if not self._run("Rename failed", lambda: self._editor.rename_area(node_id, name)):
            self._run("Rename failed", lambda: self._editor.set_area_editing(node_id, False))

    # Canvas handlers

    @Slot(str)
    def _on_rename_requested(self, node_id: str) -> None:
        callback = self._editor.callbacks.get(node_id, "start_rename")
        if callback is not None:
            callback()

    @Slot(str)
    def _on_configure_requested(self, node_id: str) -> None:
        callback = self._editor.callbacks.get(node_id, "open_settings")
        if callback is not None:
            callback()

    @Slot(str)
    def _on_drag_started(self, node_id: str) -> None:
        self._run("Drag rejected", lambda: self._editor.begin_drag(node_id))

    @Slot(str, object)
    def _on_drag_moved(self, node_id: str, position: Position) -> None:
        if self._editor.store.dragging_id != node_id:
            return
        try:
            self._editor.drag_node(node_id, position)
        except GraphError as e:
            self._logger.warning(f"Drag update rejected: {e}")

    @Slot()
    def _on_drag_finished(self) -> None:
        if self._editor.store.is_dragging:
            self._run("Drop failed", self._editor.end_drag)

    @Slot(str, str)
    def _on_connect_requested(self, source: str, target: str) -> None:
        node = self._editor.state.node(source)
        handle = None
        if node is not None and is_conditional(node.action_type):
            used = {e.source_handle for e in self._editor.state.edges if e.source == source}
            free = [h for h in CONDITIONAL_HANDLES if h not in used]
            handle = free[0] if free else CONDITIONAL_HANDLES[0]
        self._run("Connection rejected", lambda: self._editor.connect_nodes(source, target, handle))

    # Window handlers

    @Slot(str)
    def _on_add_action(self, action_type: str) -> None:
        position = self._next_drop_position()
        self._run("Add failed", lambda: self._editor.add_action(action_type, position))

    @Slot()
    def _on_add_area(self) -> None:
        position = self._next_drop_position()
        self._run("Add failed", lambda: self._editor.add_area(position))

    @Slot(str)
    def _on_delete_requested(self, node_id: str) -> None:
        self._run("Delete failed", lambda: self._editor.delete_node(node_id))

    @Slot(str, str)
    def _on_details_changed(self, name: str, description: str) -> None:
        state = self._editor.state
        if (name, description) != (state.name, state.description):
            self._run("Update failed", lambda: self._editor.set_flow_details(name, description))

    @Slot(str, str)
    def _on_selector_added(self, name: str, value: str) -> None:
        self._run("Selector rejected", lambda: self._editor.add_selector(name, value))

    @Slot(str)
    def _on_selector_removed(self, name: str) -> None:
        self._run("Selector removal failed", lambda: self._editor.remove_selector(name))

    @Slot()
    def _on_layout_requested(self) -> None:
        self._run("Auto layout failed", self._editor.run_layout)

    @Slot(str)
    def _on_export_requested(self, path: str) -> None:
        """Write the exported document to ``path``."""
        try:
            Path(path).write_text(self._editor.export_json(), encoding="utf-8")
        except OSError as e:
            self._logger.error(f"Export failed: {e}")
            self._window.show_error_dialog("Export failed", str(e))
            return
        self._logger.info(f"Exported flow to {path}")

    @Slot(str)
    def _on_import_requested(self, path: str) -> None:
        """Load a document from ``path`` and replace the graph."""
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            self._logger.error(f"Import failed: {e}")
            self._window.show_error_dialog("Import failed", str(e))
            return
        self._run("Import failed", lambda: self._editor.import_document(text))

    # Editor handlers

    @Slot(str)
    def _on_graph_changed(self, operation: str) -> None:
        self._window.show_state(self._editor.state)
        self._window.set_suggested_filename(self._editor.suggested_filename())

    @Slot(object)
    def _on_validation_finished(self, result: ValidationResult) -> None:
        self._window.show_validation(result)

    @Slot(str)
    def _on_import_failed(self, message: str) -> None:
        self._window.show_error_dialog("Import failed", message)


def create_application() -> tuple[QApplication, MainWindow, ApplicationController]:
    """Create and wire up the complete application.

    Returns:
        Tuple of (QApplication, MainWindow, ApplicationController)
    """
    import sys

    from flowbuilder import __version__

    app = QApplication(sys.argv)
    app.setApplicationName("Flow Builder")
    app.setApplicationVersion(__version__)
    app.setOrganizationName("Flow Builder")

    window = MainWindow()
    controller = ApplicationController(window)

    return app, window, controller
