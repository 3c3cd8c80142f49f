"""Editor facade.

``FlowEditor`` is the single entry point the UI talks to: it owns the
graph store and the callback side table, forwards store commits as Qt
signals, and exposes compile/export/import/layout/validate.
"""

from typing import Any, Mapping, Optional, Union

from PySide6.QtCore import QObject, Signal

from .compiler import compile_checkpoints
from .logging import Logger, get_logger
from .model import Checkpoint, Edge, FlowDefinition, GraphState, Node, NodeKind, Position
from .serializer import (
    CallbackFactory,
    CallbackRegistry,
    ImportFormatError,
    dumps,
    export_document,
    export_flow,
    import_flow,
    suggested_filename,
)
from .store import GraphStore
from .validation import ValidationResult, validate_graph

# Operations after which node callbacks are rebuilt
_STRUCTURAL_OPS = frozenset({"add_node", "delete_node", "import", "replace"})


class FlowEditor(QObject):
    """Visual flow editor core.

    Signals:
        graph_changed(str): A store operation committed
        layout_applied(): Auto-layout replaced all positions
        validation_finished(object): ``ValidationResult`` of ``validate``
        import_failed(str): A document was rejected
        drop_target_changed(object): Area id highlighted during a drag, or None
    """

    graph_changed = Signal(str)
    layout_applied = Signal()
    validation_finished = Signal(object)
    import_failed = Signal(str)
    drop_target_changed = Signal(object)

    def __init__(
        self,
        parent: Optional[QObject] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        """Initialize the editor with an empty flow."""
        super().__init__(parent)

        self._logger = logger or get_logger()
        self._store = GraphStore(logger=self._logger)
        self._callbacks = CallbackRegistry()
        self._drop_target: Optional[str] = None

        self._store.add_listener(self._on_store_changed)

    @property
    def store(self) -> GraphStore:
        return self._store

    @property
    def state(self) -> GraphState:
        """Current graph (read-only view)."""
        return self._store.state

    @property
    def callbacks(self) -> CallbackRegistry:
        return self._callbacks

    def set_callback_factory(self, factory: Optional[CallbackFactory]) -> None:
        """Install the factory producing per-node UI callbacks."""
        self._callbacks.set_factory(factory)
        self._callbacks.bind(self._store.state.nodes)

    def _on_store_changed(self, operation: str) -> None:
        if operation in _STRUCTURAL_OPS:
            self._callbacks.bind(self._store.state.nodes)
        self.graph_changed.emit(operation)

    # ─── Mutations ────────────────────────────────────────────────────────

    def add_action(self, action_type: str, position: Position, config: Optional[Mapping[str, Any]] = None) -> Node:
        """Drop a new action from the palette."""
        return self._store.add_node(
            NodeKind.ACTION, position, {"action_type": action_type, "config": config or {}}
        )

    def add_area(self, position: Position, name: Optional[str] = None) -> Node:
        """Add a new checkpoint area."""
        return self._store.add_node(NodeKind.AREA, position, {"name": name} if name else None)

    def move_node(self, node_id: str, position: Position) -> None:
        self._store.move_node(node_id, position)

    def delete_node(self, node_id: str) -> None:
        self._store.delete_node(node_id)

    def connect_nodes(self, source: str, target: str, handle: Optional[str] = None) -> Edge:
        return self._store.add_edge(source, target, handle)

    def delete_edge(self, edge_id: str) -> None:
        self._store.delete_edge(edge_id)

    def update_action_config(self, node_id: str, config: Mapping[str, Any]) -> None:
        self._store.update_action_config(node_id, config)

    def rename_area(self, node_id: str, name: str) -> None:
        self._store.rename_area(node_id, name)

    def set_area_editing(self, node_id: str, editing: bool) -> None:
        self._store.set_area_editing(node_id, editing)

    def set_flow_details(self, name: str, description: str = "") -> None:
        self._store.set_flow_details(name, description)

    def add_selector(self, name: str, value: str) -> None:
        self._store.add_selector(name, value)

    def remove_selector(self, name: str) -> None:
        self._store.remove_selector(name)

    # ─── Drag ─────────────────────────────────────────────────────────────

    def begin_drag(self, node_id: str) -> None:
        self._store.begin_drag(node_id)

    def drag_node(self, node_id: str, position: Position) -> Optional[str]:
        """Move the dragged node and update the highlighted drop target."""
        target = self._store.drag_node(node_id, position)
        self._set_drop_target(target)
        return target

    def end_drag(self) -> Optional[str]:
        """Drop the dragged node; areas are resized once."""
        owner = self._store.end_drag()
        self._set_drop_target(None)
        return owner

    def _set_drop_target(self, area_id: Optional[str]) -> None:
        if area_id != self._drop_target:
            self._drop_target = area_id
            self.drop_target_changed.emit(area_id)

    # ─── Algorithms ───────────────────────────────────────────────────────

    def compile(self) -> list[Checkpoint]:
        """Compile the current graph into checkpoints."""
        state = self._store.state
        return compile_checkpoints(state.nodes, state.edges)

    def validate(self) -> ValidationResult:
        """Validate the current graph and announce the result."""
        result = validate_graph(self._store.state)
        if result.valid:
            self._logger.info(f"Validation passed ({len(result.warnings)} warning(s))")
        else:
            for message in result.errors:
                self._logger.warning(message)
        self.validation_finished.emit(result)
        return result

    def run_layout(self) -> None:
        """Auto-arrange the whole graph.

        Raises:
            OperationInProgressError: If a drag is in progress
        """
        self._store.apply_layout()
        self.layout_applied.emit()

    def export(self) -> FlowDefinition:
        return export_flow(self._store.state)

    def export_document(self) -> dict[str, Any]:
        return export_document(self._store.state)

    def export_json(self) -> str:
        return dumps(self._store.state)

    def suggested_filename(self) -> str:
        return suggested_filename(self._store.state)

    def import_document(self, document: Union[str, bytes, Mapping[str, Any]]) -> bool:
        """Replace the whole graph with an imported document.

        Args:
            document: JSON text or parsed mapping

        Returns:
            True if imported; False if the document was rejected (the
            current graph is kept and ``import_failed`` is emitted)
        """
        try:
            state = import_flow(document)
        except ImportFormatError as e:
            self._logger.error(f"Import failed: {e}")
            self.import_failed.emit(str(e))
            return False

        self._store.replace(state, "import")
        return True
