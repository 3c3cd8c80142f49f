"""Core flow-editing engine.

This package provides the core functionality for the flow builder:
- Data models (Node, Edge, GraphState, Checkpoint, etc.)
- Graph store with atomic, non-reentrant mutations
- Geometric checkpoint-area containment and area sizing
- Two-phase auto-layout
- Checkpoint compilation, validation, export and import
- Logging with circular buffer
"""

from .constants import (
    AREA_HEADER_HEIGHT,
    AREA_MIN_H,
    AREA_MIN_W,
    AREA_PADDING,
    CONTAINMENT_TOLERANCE,
    DEFAULT_GROUP_NAME,
    END_NODE_ID,
    LOG_BUFFER_SIZE,
    NODE_FOOTPRINT_H,
    NODE_FOOTPRINT_W,
    START_NODE_ID,
    LayoutOptions,
)
from .model import (
    Bounds,
    Checkpoint,
    Edge,
    FlowDefinition,
    GraphState,
    Node,
    NodeKind,
    Position,
    Size,
)
from .serializer import ImportFormatError
from .store import (
    EdgeConflictError,
    GraphError,
    GraphStore,
    NotFoundError,
    OperationInProgressError,
    TerminalNodeError,
)
from .validation import ReasonKind, ValidationReason, ValidationResult

__all__ = [
    # Constants
    "START_NODE_ID",
    "END_NODE_ID",
    "CONTAINMENT_TOLERANCE",
    "AREA_HEADER_HEIGHT",
    "AREA_PADDING",
    "AREA_MIN_W",
    "AREA_MIN_H",
    "NODE_FOOTPRINT_W",
    "NODE_FOOTPRINT_H",
    "DEFAULT_GROUP_NAME",
    "LOG_BUFFER_SIZE",
    "LayoutOptions",
    # Models
    "NodeKind",
    "Position",
    "Size",
    "Bounds",
    "Node",
    "Edge",
    "GraphState",
    "Checkpoint",
    "FlowDefinition",
    # Store and errors
    "GraphStore",
    "GraphError",
    "NotFoundError",
    "TerminalNodeError",
    "EdgeConflictError",
    "OperationInProgressError",
    "ImportFormatError",
    # Validation
    "ReasonKind",
    "ValidationReason",
    "ValidationResult",
]
