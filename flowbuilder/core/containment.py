"""Geometric containment of action nodes inside checkpoint areas.

Membership is never stored; it is recomputed from node positions and
area bounds every time it is needed, so it always reflects the canvas.

An action is inside an area iff its position satisfies:

    area.x - tol <= x <= area.x + area.width + tol
    area.y + header - tol <= y <= area.y + area.height + tol
"""

from typing import Iterable, Optional, Sequence

import numpy as np

from .constants import AREA_HEADER_HEIGHT, CONTAINMENT_TOLERANCE
from .model import Node


def drop_zone(
    area: Node,
    tolerance: float = CONTAINMENT_TOLERANCE,
    header_height: float = AREA_HEADER_HEIGHT,
) -> tuple[float, float, float, float]:
    """Return (left, top, right, bottom) of the area's drop zone."""
    return (
        area.position.x - tolerance,
        area.position.y + header_height - tolerance,
        area.position.x + area.width + tolerance,
        area.position.y + area.height + tolerance,
    )


def is_inside(
    action: Node,
    area: Node,
    tolerance: float = CONTAINMENT_TOLERANCE,
    header_height: float = AREA_HEADER_HEIGHT,
) -> bool:
    """Check if an action node lies inside an area's drop zone.

    Args:
        action: Action node (its top-left position is tested)
        area: Checkpoint-area node
        tolerance: Slack around the area bounds
        header_height: Title bar height excluded from the zone

    Returns:
        True if the action position falls within the zone (edges included)
    """
    left, top, right, bottom = drop_zone(area, tolerance, header_height)
    x, y = action.position.x, action.position.y
    return left <= x <= right and top <= y <= bottom


def create_membership_mask(area: Node, actions: Sequence[Node]) -> np.ndarray:
    """Create a boolean mask over ``actions`` for one area.

    The mask is True for actions inside the area's drop zone.

    Args:
        area: Checkpoint-area node
        actions: Action nodes, in the order the mask should follow

    Returns:
        Boolean array of shape (len(actions),)
    """
    if not actions:
        return np.zeros(0, dtype=bool)

    coords = np.array([a.position.as_tuple() for a in actions], dtype=float)
    left, top, right, bottom = drop_zone(area)

    xs = coords[:, 0]
    ys = coords[:, 1]
    return (xs >= left) & (xs <= right) & (ys >= top) & (ys <= bottom)


def members_of(area: Node, all_actions: Iterable[Node]) -> set[str]:
    """Return ids of every action node inside ``area``.

    Non-action nodes in ``all_actions`` are ignored.
    """
    actions = [n for n in all_actions if n.is_action]
    mask = create_membership_mask(area, actions)
    return {a.id for a, inside in zip(actions, mask) if inside}


def area_order(areas: Iterable[Node]) -> list[Node]:
    """Sort areas into checkpoint order: by name, then by id."""
    return sorted(areas, key=lambda a: (a.name, a.id))


def assign_members(nodes: Sequence[Node]) -> dict[str, list[str]]:
    """Give each action node to at most one area.

    An action inside several overlapping areas belongs to the first of
    them in checkpoint order. Member lists keep creation order.

    Returns:
        Mapping of area id to its member action ids (every area present)
    """
    actions = [n for n in nodes if n.is_action]
    claimed = np.zeros(len(actions), dtype=bool)
    result: dict[str, list[str]] = {}

    for area in area_order(n for n in nodes if n.is_area):
        mask = create_membership_mask(area, actions) & ~claimed
        claimed |= mask
        result[area.id] = [a.id for a, inside in zip(actions, mask) if inside]

    return result


def membership_map(nodes: Sequence[Node]) -> dict[str, str]:
    """Map each contained action id to its owning area id."""
    return {
        action_id: area_id
        for area_id, members in assign_members(nodes).items()
        for action_id in members
    }


def unassigned_actions(nodes: Sequence[Node]) -> list[Node]:
    """Action nodes claimed by no area, in creation order."""
    owned = membership_map(nodes)
    return [n for n in nodes if n.is_action and n.id not in owned]


def candidate_area(action: Node, areas: Iterable[Node]) -> Optional[Node]:
    """Area that would receive ``action`` if dropped now (drag highlight)."""
    for area in area_order(areas):
        if is_inside(action, area):
            return area
    return None
