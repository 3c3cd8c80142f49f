"""Core data models for the flow editor.

Defines the in-memory graph (nodes, edges, flow metadata) and the
compiled artifacts (checkpoints, flow definition). Checkpoint-area
membership is deliberately absent: it is derived from geometry by
``containment``.
"""

import copy
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .constants import (
    AREA_MIN_H,
    AREA_MIN_W,
    CHECKPOINT_TIMEOUT_MS,
    CHECKPOINT_TYPE,
    DEFAULT_FLOW_NAME,
    END_NODE_ID,
    END_POSITION,
    START_NODE_ID,
    START_POSITION,
)


class NodeKind(Enum):
    """Node kinds, valued by their wire type name."""

    START = "startNode"
    END = "endNode"
    ACTION = "actionNode"
    AREA = "checkpointArea"

    @property
    def is_terminal(self) -> bool:
        return self in (NodeKind.START, NodeKind.END)


@dataclass(frozen=True)
class Position:
    """Top-left corner of a node in canvas coordinates.

    Attributes:
        x: Horizontal coordinate (may be negative)
        y: Vertical coordinate (may be negative)
    """

    x: float
    y: float

    def as_tuple(self) -> tuple[float, float]:
        """Return as (x, y) tuple."""
        return (self.x, self.y)

    def offset(self, dx: float, dy: float) -> "Position":
        """Return a copy translated by (dx, dy)."""
        return Position(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class Size:
    """Width and height of a node footprint."""

    width: float
    height: float


@dataclass(frozen=True)
class Bounds:
    """An axis-aligned rectangle in canvas coordinates.

    Attributes:
        x: Left edge
        y: Top edge
        width: Horizontal extent
        height: Vertical extent
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        """Right edge X coordinate."""
        return self.x + self.width

    @property
    def bottom(self) -> float:
        """Bottom edge Y coordinate."""
        return self.y + self.height

    def contains_point(self, x: float, y: float) -> bool:
        """Check if (x, y) lies inside, edges included."""
        return self.x <= x <= self.right and self.y <= y <= self.bottom


@dataclass
class Node:
    """A graph node.

    Only the fields relevant to ``kind`` are meaningful: actions use
    ``action_type``/``label``/``description``/``color``/``config``,
    areas use ``name``/``width``/``height``/``action_count``/``is_editing``.

    Attributes:
        id: Unique node id
        kind: Terminal, action or area
        position: Top-left corner
    """

    id: str
    kind: NodeKind
    position: Position
    # Action payload
    action_type: Optional[str] = None
    label: str = ""
    description: str = ""
    color: Optional[str] = None
    config: dict[str, Any] = field(default_factory=dict)
    # Area payload
    name: str = ""
    width: float = AREA_MIN_W
    height: float = AREA_MIN_H
    action_count: int = 0
    is_editing: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.kind.is_terminal

    @property
    def is_action(self) -> bool:
        return self.kind == NodeKind.ACTION

    @property
    def is_area(self) -> bool:
        return self.kind == NodeKind.AREA

    @property
    def bounds(self) -> Bounds:
        """Area rectangle (meaningful for area nodes only)."""
        return Bounds(self.position.x, self.position.y, self.width, self.height)

    def copy(self) -> "Node":
        """Return an independent copy (config is deep-copied)."""
        clone = copy.copy(self)
        clone.config = copy.deepcopy(self.config)
        return clone


@dataclass(frozen=True)
class Edge:
    """A directed edge.

    ``source_handle`` is ``"true"``/``"false"`` on conditional actions and
    ``None`` on the single unlabeled handle of every other node.
    """

    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    edge_type: str = "smoothstep"

    @property
    def key(self) -> tuple[str, str, Optional[str]]:
        """Identity used for idempotent insertion."""
        return (self.source, self.target, self.source_handle)

    def touches(self, node_id: str) -> bool:
        """Check if either endpoint is ``node_id``."""
        return self.source == node_id or self.target == node_id


def make_terminal(kind: NodeKind) -> Node:
    """Create the start or end marker at its default position."""
    if kind == NodeKind.START:
        return Node(id=START_NODE_ID, kind=kind, position=Position(*START_POSITION), label="Start")
    if kind == NodeKind.END:
        return Node(id=END_NODE_ID, kind=kind, position=Position(*END_POSITION), label="End")
    raise ValueError(f"Not a terminal kind: {kind}")


@dataclass
class GraphState:
    """Complete editor state: graph plus flow metadata.

    ``nodes`` is kept in creation order; that order breaks ties in
    checkpoint action ordering and lays out unassigned actions.
    """

    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    name: str = DEFAULT_FLOW_NAME
    description: str = ""
    selectors: dict[str, str] = field(default_factory=dict)

    @classmethod
    def initial(cls) -> "GraphState":
        """Empty graph seeded with the two terminal nodes."""
        return cls(nodes=[make_terminal(NodeKind.START), make_terminal(NodeKind.END)])

    def copy(self) -> "GraphState":
        """Return an independent copy."""
        return GraphState(
            nodes=[node.copy() for node in self.nodes],
            edges=list(self.edges),
            name=self.name,
            description=self.description,
            selectors=dict(self.selectors),
        )

    def node(self, node_id: str) -> Optional[Node]:
        """Look up a node by id."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def edge(self, edge_id: str) -> Optional[Edge]:
        """Look up an edge by id."""
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None

    @property
    def actions(self) -> list[Node]:
        return [n for n in self.nodes if n.is_action]

    @property
    def areas(self) -> list[Node]:
        return [n for n in self.nodes if n.is_area]


@dataclass
class Checkpoint:
    """One compiled checkpoint.

    Attributes:
        id: Checkpoint id (``step-<n>``)
        name: Area name, or ``default``
        dependencies: Ids of checkpoints that must run first
        actions: Flattened ``{type, description, **config}`` dicts
    """

    id: str
    name: str
    dependencies: list[str] = field(default_factory=list)
    actions: list[dict[str, Any]] = field(default_factory=list)
    description: str = ""
    timeout: int = CHECKPOINT_TIMEOUT_MS
    critical: bool = False
    type: str = CHECKPOINT_TYPE


@dataclass
class FlowDefinition:
    """The exported artifact: visual layout plus compiled checkpoints."""

    flow_id: str
    name: str
    description: str
    selectors: dict[str, str]
    checkpoints: list[Checkpoint]
    checkpoint_groups: dict[str, str]
    nodes: list[Node]
    edges: list[Edge]


def slugify(name: str) -> str:
    """Lower-case a flow name and replace every whitespace run with a dash.

    Leading and trailing whitespace become dashes too; the name is not
    trimmed.
    """
    return re.sub(r"\s+", "-", name.lower())
