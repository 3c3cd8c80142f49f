"""Checkpoint-area sizing.

An area's width and height are never typed by the user: they are derived
from the action nodes it contains. This module computes that size and
resynchronizes every area of a node list.
"""

from typing import Optional, Sequence

import numpy as np

from .constants import (
    AREA_HEADER_HEIGHT,
    AREA_MIN_H,
    AREA_MIN_W,
    AREA_PADDING,
    NODE_FOOTPRINT_H,
    NODE_FOOTPRINT_W,
)
from .containment import assign_members
from .model import Node, Size

_RESYNC_PASSES_MAX = 5


def required_bounds(
    area: Node,
    members: Sequence[Node],
    min_width: float = AREA_MIN_W,
    min_height: float = AREA_MIN_H,
) -> Size:
    """Compute the size an area needs to hold its members.

    The member bounding box (positions plus the per-node footprint) is
    padded on every side and a header band is reserved at the top. The
    result is also large enough, measured from the area's own origin, to
    keep the right and bottom edges of every member inside.

    Args:
        area: The checkpoint-area node
        members: Action nodes inside the area
        min_width: Minimum width (kept for empty areas)
        min_height: Minimum height

    Returns:
        Required Size, never smaller than the minimum
    """
    if not members:
        return Size(min_width, min_height)

    coords = np.array([m.position.as_tuple() for m in members], dtype=float)
    min_x, min_y = coords.min(axis=0)
    max_x, max_y = coords.max(axis=0)

    span_w = (max_x - min_x) + NODE_FOOTPRINT_W
    span_h = (max_y - min_y) + NODE_FOOTPRINT_H

    width = max(
        span_w + 2 * AREA_PADDING,
        max_x + NODE_FOOTPRINT_W + AREA_PADDING - area.position.x,
    )
    height = max(
        AREA_HEADER_HEIGHT + span_h + 2 * AREA_PADDING,
        max_y + NODE_FOOTPRINT_H + AREA_PADDING - area.position.y,
    )

    return Size(
        width=float(max(min_width, width)),
        height=float(max(min_height, height)),
    )


def resync_areas(
    nodes: Sequence[Node],
    min_width: float = AREA_MIN_W,
    min_height: float = AREA_MIN_H,
) -> list[Node]:
    """Recompute size and action count of every area.

    Growing an area can capture further actions, so sizing is repeated
    until membership stops changing (bounded number of passes).

    Args:
        nodes: Current node list (not modified)
        min_width: Minimum area width
        min_height: Minimum area height

    Returns:
        New node list; areas are replaced by resized copies
    """
    result = [n.copy() for n in nodes]
    by_id = {n.id: n for n in result}
    previous: Optional[dict[str, list[str]]] = None

    for _ in range(_RESYNC_PASSES_MAX):
        membership = assign_members(result)
        if membership == previous:
            break
        previous = membership

        for area_id, member_ids in membership.items():
            area = by_id[area_id]
            area.action_count = len(member_ids)
            size = required_bounds(
                area, [by_id[m] for m in member_ids], min_width, min_height
            )
            area.width = size.width
            area.height = size.height

    return result
