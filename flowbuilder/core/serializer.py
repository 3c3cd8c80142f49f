"""Export and import of flow documents.

Export strips transient fields (callbacks, inline-edit flags), embeds
the full visual layout and the compiled checkpoints. Import rebuilds a
complete ``GraphState`` from either a document with a visual layout or
a legacy checkpoints-only document; it never mutates the live store, so
a malformed document leaves the editor untouched.
"""

import json
import math
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import ValidationError

from .catalog import color_for, description_for
from .compiler import checkpoint_groups, compile_checkpoints
from .constants import (
    AREA_MIN_H,
    AREA_MIN_W,
    END_NODE_ID,
    LEGACY_START_Y,
    LEGACY_STEP_Y,
    LEGACY_X,
    START_NODE_ID,
)
from .document import (
    EdgeModel,
    FlowDefinitionModel,
    FlowEnvelope,
    NodeModel,
    PositionModel,
    VisualLayoutModel,
)
from .logging import get_logger
from .model import (
    Edge,
    FlowDefinition,
    GraphState,
    Node,
    NodeKind,
    Position,
    make_terminal,
    slugify,
)
from .sizing import resync_areas

NodeCallbacks = dict[str, Callable[[], None]]
CallbackFactory = Callable[[Node], NodeCallbacks]


class ImportFormatError(Exception):
    """Raised when a document cannot be parsed into a flow."""

    pass


class CallbackRegistry:
    """Side table of interactive callbacks keyed by node id.

    Callbacks (open settings, start rename, ...) belong to the UI and are
    never part of a node record, so they cannot leak into a document.
    The table is rebuilt from a factory after every load.
    """

    def __init__(self, factory: Optional[CallbackFactory] = None) -> None:
        self._factory = factory
        self._table: dict[str, NodeCallbacks] = {}

    def set_factory(self, factory: Optional[CallbackFactory]) -> None:
        """Replace the factory used by ``bind``."""
        self._factory = factory

    def bind(self, nodes: list[Node]) -> None:
        """Discard every callback and attach fresh ones to ``nodes``."""
        self._table = {}
        if self._factory is None:
            return
        for node in nodes:
            self._table[node.id] = self._factory(node)

    def attach(self, node: Node) -> None:
        """Attach fresh callbacks to a single new node."""
        if self._factory is not None:
            self._table[node.id] = self._factory(node)

    def detach(self, node_id: str) -> None:
        self._table.pop(node_id, None)

    def get(self, node_id: str, name: str) -> Optional[Callable[[], None]]:
        """Look up one callback of a node."""
        return self._table.get(node_id, {}).get(name)

    def callbacks_for(self, node_id: str) -> NodeCallbacks:
        return dict(self._table.get(node_id, {}))

    def __len__(self) -> int:
        return len(self._table)


# ─── Export ───────────────────────────────────────────────────────────────────


def node_data(node: Node) -> dict[str, Any]:
    """Persisted payload of a node (data fields only)."""
    if node.kind == NodeKind.ACTION:
        return {
            "label": node.label,
            "actionType": node.action_type,
            "description": node.description,
            "color": node.color,
            "config": json.loads(json.dumps(node.config)),
        }
    if node.kind == NodeKind.AREA:
        return {
            "label": node.name,
            "width": node.width,
            "height": node.height,
            "actionCount": node.action_count,
        }
    return {"label": node.label}


def node_to_model(node: Node) -> NodeModel:
    return NodeModel(
        id=node.id,
        type=node.kind.value,
        position=PositionModel(x=node.position.x, y=node.position.y),
        data=node_data(node),
    )


def edge_to_model(edge: Edge) -> EdgeModel:
    return EdgeModel(
        id=edge.id,
        source=edge.source,
        target=edge.target,
        sourceHandle=edge.source_handle,
        targetHandle=edge.target_handle,
        type=edge.edge_type,
    )


def export_flow(state: GraphState) -> FlowDefinition:
    """Build the flow definition of ``state``.

    Never validates: any store state can be exported.
    """
    nodes = [node.copy() for node in state.nodes]
    for node in nodes:
        node.is_editing = False

    return FlowDefinition(
        flow_id=slugify(state.name),
        name=state.name,
        description=state.description,
        selectors=dict(state.selectors),
        checkpoints=compile_checkpoints(nodes, state.edges),
        checkpoint_groups=checkpoint_groups(nodes),
        nodes=nodes,
        edges=list(state.edges),
    )


def flow_to_model(flow: FlowDefinition) -> FlowDefinitionModel:
    return FlowDefinitionModel.model_validate({
        "flowId": flow.flow_id,
        "name": flow.name,
        "description": flow.description,
        "selectors": flow.selectors,
        "checkpointGroups": flow.checkpoint_groups,
        "checkpoints": [
            {
                "id": cp.id,
                "name": cp.name,
                "type": cp.type,
                "timeout": cp.timeout,
                "critical": cp.critical,
                "description": cp.description,
                "dependencies": cp.dependencies,
                "actions": cp.actions,
            }
            for cp in flow.checkpoints
        ],
        "visualLayout": VisualLayoutModel(
            nodes=[node_to_model(n) for n in flow.nodes],
            edges=[edge_to_model(e) for e in flow.edges],
        ),
    })


def export_document(state: GraphState) -> dict[str, Any]:
    """Export ``state`` as a JSON-ready envelope dict."""
    envelope = FlowEnvelope(flowDefinition=flow_to_model(export_flow(state)))
    return envelope.model_dump(mode="json")


def dumps(state: GraphState, indent: int = 2) -> str:
    """Export ``state`` as a JSON string."""
    return json.dumps(export_document(state), indent=indent, ensure_ascii=False)


def suggested_filename(state: GraphState) -> str:
    """File name offered when saving an export."""
    return f"{slugify(state.name) or 'flow'}.json"


# ─── Import ───────────────────────────────────────────────────────────────────


def _parse(document: Union[str, bytes, Mapping[str, Any]]) -> FlowDefinitionModel:
    """Parse raw input into a flow definition model."""
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ImportFormatError(f"Document is not valid JSON: {e}") from e

    if not isinstance(document, Mapping):
        raise ImportFormatError("Document must be a JSON object")

    try:
        if "flowDefinition" in document:
            return FlowEnvelope.model_validate(document).flowDefinition
        return FlowDefinitionModel.model_validate(document)
    except ValidationError as e:
        raise ImportFormatError(f"Document does not match the flow format: {e}") from e


_TERMINAL_IDS = {NodeKind.START: START_NODE_ID, NodeKind.END: END_NODE_ID}


def _check_terminal_id(node_id: str, kind: NodeKind) -> None:
    """Terminal records must carry their fixed id, and nothing else may."""
    expected = _TERMINAL_IDS.get(kind)
    if expected is not None and node_id != expected:
        raise ImportFormatError(f"{kind.value} must have id '{expected}', not '{node_id}'")
    if expected is None and node_id in _TERMINAL_IDS.values():
        raise ImportFormatError(f"Id '{node_id}' is reserved for a terminal node")


def _number(model: NodeModel, key: str, default: float) -> float:
    value = model.data.get(key)
    if not value:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ImportFormatError(f"Node '{model.id}' has a non-numeric {key}: {value!r}") from e
    if not math.isfinite(number):
        raise ImportFormatError(f"Node '{model.id}' has a non-finite {key}: {value!r}")
    return number


def model_to_node(model: NodeModel) -> Node:
    """Rebuild a node from its persisted record."""
    kind = NodeKind(model.type)
    data = model.data
    position = Position(model.position.x, model.position.y)

    _check_terminal_id(model.id, kind)

    if kind == NodeKind.ACTION:
        action_type = data.get("actionType") or data.get("label") or ""
        if not isinstance(action_type, str):
            raise ImportFormatError(f"Node '{model.id}' has a non-text action type")
        config = data.get("config") or {}
        if not isinstance(config, dict):
            raise ImportFormatError(f"Node '{model.id}' has a non-object config")
        return Node(
            id=model.id,
            kind=kind,
            position=position,
            action_type=action_type,
            label=str(data.get("label") or action_type),
            description=str(data.get("description") or description_for(action_type)),
            color=data.get("color") or color_for(action_type),
            config=config,
        )

    if kind == NodeKind.AREA:
        return Node(
            id=model.id,
            kind=kind,
            position=position,
            name=str(data.get("label") or data.get("name") or ""),
            width=_number(model, "width", AREA_MIN_W),
            height=_number(model, "height", AREA_MIN_H),
            action_count=int(_number(model, "actionCount", 0)),
        )

    terminal = make_terminal(kind)
    terminal.id = model.id
    terminal.position = position
    return terminal


def _from_visual_layout(layout: VisualLayoutModel) -> GraphState:
    """Reconstruct nodes and edges verbatim from the visual layout."""

    nodes: list[Node] = []
    seen: set[str] = set()
    for record in layout.nodes:
        if record.id in seen:
            raise ImportFormatError(f"Duplicate node id '{record.id}'")
        seen.add(record.id)
        nodes.append(model_to_node(record))

    # Terminal ids are fixed; a document missing one gets it re-seeded
    if START_NODE_ID not in seen:
        nodes.insert(0, make_terminal(NodeKind.START))
        seen.add(START_NODE_ID)
    if END_NODE_ID not in seen:
        nodes.append(make_terminal(NodeKind.END))
        seen.add(END_NODE_ID)

    edges: list[Edge] = []
    for record in layout.edges:
        if record.source not in seen or record.target not in seen:
            raise ImportFormatError(
                f"Edge '{record.id}' references a missing node "
                f"({record.source} -> {record.target})"
            )
        edges.append(
            Edge(
                id=record.id,
                source=record.source,
                target=record.target,
                source_handle=record.sourceHandle,
                target_handle=record.targetHandle,
                edge_type=record.type,
            )
        )

    return GraphState(nodes=resync_areas(nodes), edges=edges)


def _from_checkpoints(flow: FlowDefinitionModel) -> GraphState:
    """Rebuild a legacy document: one action per row between start and end.

    Original positions and area grouping are not recoverable.
    """
    start = make_terminal(NodeKind.START)
    start.position = Position(LEGACY_X, LEGACY_START_Y)
    nodes: list[Node] = [start]
    edges: list[Edge] = []
    previous = start.id
    y = LEGACY_START_Y

    for checkpoint in flow.checkpoints:
        for action in checkpoint.actions:
            y += LEGACY_STEP_Y
            node_id = f"{action.type}_{len(nodes)}"
            nodes.append(
                Node(
                    id=node_id,
                    kind=NodeKind.ACTION,
                    position=Position(LEGACY_X, y),
                    action_type=action.type,
                    label=action.type,
                    description=action.description or description_for(action.type),
                    color=color_for(action.type),
                    config=action.params,
                )
            )
            edges.append(Edge(id=f"e-{previous}-{node_id}", source=previous, target=node_id))
            previous = node_id

    end = make_terminal(NodeKind.END)
    end.position = Position(LEGACY_X, y + LEGACY_STEP_Y)
    nodes.append(end)
    edges.append(Edge(id=f"e-{previous}-{end.id}", source=previous, target=end.id))

    return GraphState(nodes=nodes, edges=edges)


def import_flow(
    document: Union[str, bytes, Mapping[str, Any]],
    callbacks: Optional[CallbackRegistry] = None,
) -> GraphState:
    """Rebuild a complete graph state from a document.

    Args:
        document: JSON text or parsed mapping; envelope or bare definition
        callbacks: Registry to re-bind once the state is built

    Returns:
        The reconstructed GraphState

    Raises:
        ImportFormatError: If the document is malformed
    """
    logger = get_logger()
    flow = _parse(document)

    if flow.visualLayout is not None:
        state = _from_visual_layout(flow.visualLayout)
    else:
        logger.warning("Document has no visual layout; positions are rebuilt")
        state = _from_checkpoints(flow)

    state.name = flow.name
    state.description = flow.description
    state.selectors = dict(flow.selectors)

    if callbacks is not None:
        callbacks.bind(state.nodes)

    logger.info(
        f"Imported flow '{flow.name}'",
        node_count=len(state.nodes),
        edge_count=len(state.edges),
    )
    return state
