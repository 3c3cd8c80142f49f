"""Graph store.

Owns the canonical ``GraphState`` and every mutation of it. Each
operation builds a modified copy, checks it, then commits it in one
assignment, so a rejected call leaves the store exactly as it was.
Listeners are notified after every commit with the operation name.
"""

import re
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Optional, Union

from .catalog import CONDITIONAL_HANDLES, color_for, description_for, is_conditional
from .containment import candidate_area, members_of
from .layout import run_layout
from .logging import Logger, get_logger
from .model import Edge, GraphState, Node, NodeKind, Position
from .sizing import resync_areas

Listener = Callable[[str], None]

_COUNTER_SUFFIX = re.compile(r"_(\d+)$")


class GraphError(Exception):
    """Base error for rejected graph operations."""

    pass


class NotFoundError(GraphError):
    """Raised when an operation names a node or edge that does not exist."""

    pass


class TerminalNodeError(GraphError):
    """Raised when an operation would add or remove a start/end node."""

    pass


class EdgeConflictError(GraphError):
    """Raised when an edge would break the connection rules."""

    pass


class OperationInProgressError(GraphError):
    """Raised on reentrant mutation, or layout/replace during a drag."""

    pass


def edge_id(source: str, target: str, handle: Optional[str] = None) -> str:
    """Build the id of an edge."""
    base = f"e-{source}-{target}"
    return f"{base}-{handle}" if handle else base


class GraphStore:
    """Single owner of the editor graph.

    Operations are synchronous and non-reentrant: calling a mutation
    from a listener (or anything else running inside another mutation)
    raises ``OperationInProgressError``.
    """

    def __init__(
        self,
        state: Optional[GraphState] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        """Initialize the store.

        Args:
            state: Initial state (defaults to the two terminal nodes)
            logger: Logger instance (uses global if None)
        """
        self._state = state.copy() if state is not None else GraphState.initial()
        self._logger = logger or get_logger()
        self._listeners: list[Listener] = []
        self._busy = False

        # Drag in progress: dragged node id and, for areas, carried members
        self._drag_id: Optional[str] = None
        self._drag_members: list[str] = []

        self._counter = self._next_counter(self._state)

    # ─── Read access ──────────────────────────────────────────────────────

    @property
    def state(self) -> GraphState:
        """Current state. Treat as read-only; use ``snapshot`` to keep it."""
        return self._state

    @property
    def is_dragging(self) -> bool:
        return self._drag_id is not None

    @property
    def dragging_id(self) -> Optional[str]:
        return self._drag_id

    def snapshot(self) -> GraphState:
        """Return an independent copy of the current state."""
        return self._state.copy()

    def node(self, node_id: str) -> Node:
        """Look up a node, raising ``NotFoundError`` if absent."""
        node = self._state.node(node_id)
        if node is None:
            raise NotFoundError(f"Node '{node_id}' does not exist")
        return node

    def edge(self, edge_id: str) -> Edge:
        """Look up an edge, raising ``NotFoundError`` if absent."""
        edge = self._state.edge(edge_id)
        if edge is None:
            raise NotFoundError(f"Edge '{edge_id}' does not exist")
        return edge

    # ─── Listeners ────────────────────────────────────────────────────────

    def add_listener(self, listener: Listener) -> None:
        """Register a callback invoked with the operation name after each commit."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ─── Internals ────────────────────────────────────────────────────────

    @staticmethod
    def _next_counter(state: GraphState) -> int:
        highest = 0
        for node in state.nodes:
            match = _COUNTER_SUFFIX.search(node.id)
            if match:
                highest = max(highest, int(match.group(1)))
        return highest + 1

    def _new_id(self, prefix: str, state: GraphState) -> str:
        while True:
            candidate = f"{prefix}_{self._counter}"
            self._counter += 1
            if state.node(candidate) is None:
                return candidate

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        if self._busy:
            raise OperationInProgressError(
                f"Cannot run '{name}' while another graph operation is running"
            )
        self._busy = True
        try:
            with self._logger.operation(name):
                yield
        finally:
            self._busy = False

    def _commit(self, name: str, state: GraphState) -> None:
        """Swap in ``state`` and notify listeners (still inside the operation)."""
        self._state = state
        self._logger.graph_changed(name, len(state.nodes), len(state.edges))
        for listener in list(self._listeners):
            listener(name)

    @staticmethod
    def _find(state: GraphState, node_id: str) -> Node:
        node = state.node(node_id)
        if node is None:
            raise NotFoundError(f"Node '{node_id}' does not exist")
        return node

    @staticmethod
    def _resynced(state: GraphState) -> GraphState:
        state.nodes = resync_areas(state.nodes)
        return state

    # ─── Node operations ──────────────────────────────────────────────────

    def add_node(
        self,
        kind: Union[NodeKind, str],
        position: Position,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> Node:
        """Add an action or area node.

        Args:
            kind: ``NodeKind.ACTION`` or ``NodeKind.AREA`` (or wire name)
            position: Top-left corner
            payload: For actions ``action_type`` (required), ``config``,
                ``label``; for areas ``name``

        Returns:
            The committed node

        Raises:
            TerminalNodeError: If ``kind`` is start or end
            GraphError: If an action has no action type
        """
        kind = NodeKind(kind)
        payload = dict(payload or {})

        with self._operation("add_node"):
            if kind.is_terminal:
                raise TerminalNodeError("Start and end nodes cannot be added")

            state = self._state.copy()
            if kind == NodeKind.ACTION:
                action_type = payload.get("action_type")
                if not action_type:
                    raise GraphError("Action nodes need an action type")
                node = Node(
                    id=self._new_id(action_type, state),
                    kind=kind,
                    position=position,
                    action_type=action_type,
                    label=payload.get("label") or action_type,
                    description=payload.get("description") or description_for(action_type),
                    color=color_for(action_type),
                    config=dict(payload.get("config") or {}),
                )
            else:
                node_id = self._new_id("area", state)
                node = Node(
                    id=node_id,
                    kind=kind,
                    position=position,
                    name=payload.get("name") or f"Checkpoint {len(state.areas) + 1}",
                )

            state.nodes.append(node)
            self._commit("add_node", self._resynced(state))
            self._logger.info(f"Added {kind.value} '{node.id}'")
            return self._find(self._state, node.id)

    def move_node(self, node_id: str, position: Position) -> None:
        """Move a node; moving an area carries its current members along."""
        with self._operation("move_node"):
            state = self._state.copy()
            self._place(state, node_id, position, self._carried(state, node_id))
            self._commit("move_node", self._resynced(state))

    def delete_node(self, node_id: str) -> None:
        """Delete a node and every edge touching it.

        Raises:
            NotFoundError: If the node does not exist
            TerminalNodeError: If the node is start or end
        """
        with self._operation("delete_node"):
            state = self._state.copy()
            node = self._find(state, node_id)
            if node.is_terminal:
                raise TerminalNodeError(f"'{node_id}' is a terminal node and cannot be deleted")
            if self._drag_id == node_id:
                raise OperationInProgressError(f"'{node_id}' is being dragged")

            state.nodes = [n for n in state.nodes if n.id != node_id]
            removed = [e for e in state.edges if e.touches(node_id)]
            state.edges = [e for e in state.edges if not e.touches(node_id)]
            self._commit("delete_node", self._resynced(state))
            self._logger.info(f"Deleted '{node_id}' and {len(removed)} edge(s)")

    def update_action_config(self, node_id: str, config: Mapping[str, Any]) -> None:
        """Replace the configuration of an action node."""
        with self._operation("update_action_config"):
            state = self._state.copy()
            node = self._find(state, node_id)
            if not node.is_action:
                raise GraphError(f"'{node_id}' is not an action node")
            node.config = dict(config)
            self._commit("update_action_config", state)

    def rename_area(self, node_id: str, name: str) -> None:
        """Rename an area and leave inline-edit mode."""
        with self._operation("rename_area"):
            state = self._state.copy()
            node = self._find(state, node_id)
            if not node.is_area:
                raise GraphError(f"'{node_id}' is not a checkpoint area")
            name = name.strip()
            if not name:
                raise GraphError("Area name must not be empty")
            node.name = name
            node.is_editing = False
            self._commit("rename_area", state)

    def set_area_editing(self, node_id: str, editing: bool) -> None:
        """Toggle inline title editing of an area."""
        with self._operation("set_area_editing"):
            state = self._state.copy()
            node = self._find(state, node_id)
            if not node.is_area:
                raise GraphError(f"'{node_id}' is not a checkpoint area")
            node.is_editing = editing
            self._commit("set_area_editing", state)

    # ─── Edge operations ──────────────────────────────────────────────────

    def add_edge(self, source: str, target: str, handle: Optional[str] = None) -> Edge:
        """Connect two nodes.

        Idempotent: an existing ``(source, target, handle)`` edge is
        returned unchanged.

        Raises:
            NotFoundError: If either endpoint does not exist
            EdgeConflictError: On self-loops, edges out of end or into
                start, wrong handles, or a second edge on one conditional
                handle
        """
        with self._operation("add_edge"):
            state = self._state.copy()
            src = self._find(state, source)
            dst = self._find(state, target)

            for existing in state.edges:
                if existing.key == (source, target, handle):
                    return existing

            if source == target:
                raise EdgeConflictError(f"'{source}' cannot connect to itself")
            if src.kind == NodeKind.END:
                raise EdgeConflictError("The end node has no outgoing connections")
            if dst.kind == NodeKind.START:
                raise EdgeConflictError("The start node has no incoming connections")

            if is_conditional(src.action_type):
                if handle not in CONDITIONAL_HANDLES:
                    raise EdgeConflictError(
                        f"'{source}' is conditional; use one of {', '.join(CONDITIONAL_HANDLES)}"
                    )
                for existing in state.edges:
                    if existing.source == source and existing.source_handle == handle:
                        raise EdgeConflictError(
                            f"Handle '{handle}' of '{source}' is already connected"
                        )
            elif handle is not None:
                raise EdgeConflictError(f"'{source}' has no '{handle}' handle")

            edge = Edge(
                id=edge_id(source, target, handle),
                source=source,
                target=target,
                source_handle=handle,
            )
            state.edges.append(edge)
            self._commit("add_edge", state)
            return edge

    def delete_edge(self, edge_id: str) -> None:
        with self._operation("delete_edge"):
            state = self._state.copy()
            if state.edge(edge_id) is None:
                raise NotFoundError(f"Edge '{edge_id}' does not exist")
            state.edges = [e for e in state.edges if e.id != edge_id]
            self._commit("delete_edge", state)

    # ─── Flow details ─────────────────────────────────────────────────────

    def set_flow_details(self, name: str, description: str = "") -> None:
        """Set flow name and description."""
        with self._operation("set_flow_details"):
            state = self._state.copy()
            state.name = name
            state.description = description
            self._commit("set_flow_details", state)

    def add_selector(self, name: str, value: str) -> None:
        """Add or overwrite a named selector; both fields are required."""
        with self._operation("add_selector"):
            name, value = name.strip(), value.strip()
            if not name or not value:
                raise GraphError("Selector name and value are both required")
            state = self._state.copy()
            state.selectors[name] = value
            self._commit("add_selector", state)

    def remove_selector(self, name: str) -> None:
        with self._operation("remove_selector"):
            state = self._state.copy()
            if name not in state.selectors:
                raise NotFoundError(f"Selector '{name}' does not exist")
            del state.selectors[name]
            self._commit("remove_selector", state)

    # ─── Drag protocol ────────────────────────────────────────────────────

    def begin_drag(self, node_id: str) -> None:
        """Start dragging a node.

        Raises:
            NotFoundError: If the node does not exist
            OperationInProgressError: If another drag is in progress
        """
        with self._operation("begin_drag"):
            if self._drag_id is not None:
                raise OperationInProgressError(f"'{self._drag_id}' is already being dragged")
            self._find(self._state, node_id)
            self._drag_members = self._carried(self._state, node_id)
            self._drag_id = node_id

    def drag_node(self, node_id: str, position: Position) -> Optional[str]:
        """Move the dragged node without resizing any area.

        Returns:
            Id of the area an action would land in if dropped now, else None
        """
        with self._operation("drag_node"):
            if self._drag_id != node_id:
                raise GraphError(f"'{node_id}' is not being dragged")
            state = self._state.copy()
            node = self._place(state, node_id, position, self._drag_members)
            self._commit("drag_node", state)

            if not node.is_action:
                return None
            area = candidate_area(node, state.areas)
            return area.id if area is not None else None

    def end_drag(self) -> Optional[str]:
        """Finish the drag and resize areas once.

        Returns:
            Id of the area now owning the dropped action, else None
        """
        with self._operation("end_drag"):
            if self._drag_id is None:
                raise GraphError("No drag in progress")
            node_id = self._drag_id
            self._drag_id = None
            self._drag_members = []

            state = self._resynced(self._state.copy())
            self._commit("end_drag", state)

            node = state.node(node_id)
            if node is None or not node.is_action:
                return None
            area = candidate_area(node, state.areas)
            return area.id if area is not None else None

    def cancel_drag(self) -> None:
        """Abandon a drag, keeping the current positions."""
        if self._drag_id is not None:
            self.end_drag()

    @staticmethod
    def _carried(state: GraphState, node_id: str) -> list[str]:
        node = state.node(node_id)
        if node is None or not node.is_area:
            return []
        return sorted(members_of(node, state.actions))

    def _place(
        self,
        state: GraphState,
        node_id: str,
        position: Position,
        carried: list[str],
    ) -> Node:
        node = self._find(state, node_id)
        dx = position.x - node.position.x
        dy = position.y - node.position.y
        node.position = position
        for member_id in carried:
            member = state.node(member_id)
            if member is not None:
                member.position = member.position.offset(dx, dy)
        return node

    # ─── Whole-state operations ───────────────────────────────────────────

    def replace(self, state: GraphState, operation: str = "replace") -> None:
        """Atomically swap in a complete new state.

        Raises:
            OperationInProgressError: If a drag is in progress
        """
        with self._operation(operation):
            if self._drag_id is not None:
                raise OperationInProgressError("Cannot replace the graph during a drag")
            new_state = state.copy()
            self._counter = max(self._counter, self._next_counter(new_state))
            self._commit(operation, new_state)

    def apply_layout(self) -> None:
        """Run auto-layout and commit the new positions in one step."""
        with self._operation("apply_layout"):
            if self._drag_id is not None:
                raise OperationInProgressError("Cannot run auto-layout during a drag")
            state = self._state.copy()
            state.nodes = run_layout(self._state)
            self._commit("apply_layout", state)
