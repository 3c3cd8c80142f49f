"""Global constants for the flow editor core."""

from dataclasses import dataclass
from typing import Final

# Terminal nodes
START_NODE_ID: Final[str] = "start"
"""Fixed id of the start marker"""

END_NODE_ID: Final[str] = "end"
"""Fixed id of the end marker"""

START_POSITION: Final[tuple[float, float]] = (250.0, 0.0)
END_POSITION: Final[tuple[float, float]] = (250.0, 400.0)

# Containment
CONTAINMENT_TOLERANCE: Final[float] = 10.0
"""Slack around an area when testing whether an action is inside"""

AREA_HEADER_HEIGHT: Final[float] = 80.0
"""Title bar height, excluded from the drop zone"""

# Area sizing
NODE_FOOTPRINT_W: Final[float] = 180.0
NODE_FOOTPRINT_H: Final[float] = 70.0

AREA_PADDING: Final[float] = 60.0
"""Padding between area border and its members"""

AREA_MIN_W: Final[float] = 300.0
AREA_MIN_H: Final[float] = 200.0

AREA_LAYOUT_MIN_W: Final[float] = 400.0
"""Minimum area width after auto-layout"""

AREA_LAYOUT_MIN_H: Final[float] = 300.0
"""Minimum area height after auto-layout"""

TERMINAL_W: Final[float] = 120.0
TERMINAL_H: Final[float] = 50.0

# Layout spacing
OUTER_NODE_SEP: Final[float] = 80.0
OUTER_RANK_SEP: Final[float] = 100.0
INNER_NODE_SEP: Final[float] = 40.0
INNER_RANK_SEP: Final[float] = 50.0

OVERFLOW_GAP: Final[float] = 120.0
"""Horizontal gap between the laid-out graph and unassigned actions"""

OVERFLOW_COLUMNS: Final[int] = 2
"""Columns of the unassigned-action grid"""

CROSSING_PASSES_MAX: Final[int] = 24
"""Upper bound on barycenter sweeps"""

# Checkpoint compilation
DEFAULT_GROUP_NAME: Final[str] = "default"
"""Implicit checkpoint collecting actions outside every area"""

CHECKPOINT_TIMEOUT_MS: Final[int] = 30000
CHECKPOINT_TYPE: Final[str] = "interactive"

# Export envelope
FLOW_TYPE: Final[str] = "custom"
FLOW_VERSION: Final[str] = "1.0.0"
FLOW_AUTHOR: Final[str] = "workflow-builder"
FLOW_TAGS: Final[tuple[str, ...]] = ("visual-builder",)
DEFAULT_FLOW_NAME: Final[str] = "New Flow"

# Legacy import stacking
LEGACY_X: Final[float] = 250.0
LEGACY_START_Y: Final[float] = 0.0
LEGACY_STEP_Y: Final[float] = 100.0

# UI constants
LOG_BUFFER_SIZE: Final[int] = 200
"""Maximum entries kept in the log ring buffer"""


@dataclass(frozen=True)
class LayoutOptions:
    """Spacing used by one layered layout pass.

    Attributes:
        node_sep: Gap between neighbouring nodes of the same rank
        rank_sep: Gap between consecutive ranks
    """

    node_sep: float = OUTER_NODE_SEP
    rank_sep: float = OUTER_RANK_SEP


OUTER_LAYOUT: Final[LayoutOptions] = LayoutOptions(OUTER_NODE_SEP, OUTER_RANK_SEP)
INNER_LAYOUT: Final[LayoutOptions] = LayoutOptions(INNER_NODE_SEP, INNER_RANK_SEP)
