"""Tests for geometric checkpoint-area containment.

Verifies that:
- The drop zone honours the tolerance and excludes the header band
- Membership is recomputed purely from geometry
- Overlapping areas never share an action
"""

import numpy as np
import pytest

from flowbuilder.core.containment import (
    area_order,
    assign_members,
    candidate_area,
    create_membership_mask,
    drop_zone,
    is_inside,
    members_of,
    membership_map,
    unassigned_actions,
)
from flowbuilder.core.model import Node, NodeKind, Position, make_terminal


def make_area(node_id: str, x: float, y: float, name: str = "", w: float = 300, h: float = 200) -> Node:
    return Node(id=node_id, kind=NodeKind.AREA, position=Position(x, y), name=name or node_id, width=w, height=h)


def make_action(node_id: str, x: float, y: float) -> Node:
    return Node(id=node_id, kind=NodeKind.ACTION, position=Position(x, y), action_type="click")


class TestDropZone:
    """Test the containment predicate."""

    @pytest.fixture
    def area(self) -> Node:
        return make_area("area_1", 0, 0)

    def test_zone_bounds(self, area: Node) -> None:
        """Zone extends by the tolerance and starts below the header."""
        assert drop_zone(area) == (-10.0, 70.0, 310.0, 210.0)

    def test_action_in_body_is_inside(self, area: Node) -> None:
        """An action in the area body is contained."""
        assert is_inside(make_action("a", 50, 100), area)

    def test_header_band_is_excluded(self, area: Node) -> None:
        """An action over the title bar is not contained."""
        assert not is_inside(make_action("a", 50, 60), area)

    def test_zone_edges_are_inclusive(self, area: Node) -> None:
        """Points exactly on the zone border are contained."""
        assert is_inside(make_action("a", -10, 70), area)
        assert is_inside(make_action("a", 310, 210), area)

    def test_just_outside_tolerance(self, area: Node) -> None:
        """Points past the tolerance are not contained."""
        assert not is_inside(make_action("a", -10.5, 100), area)
        assert not is_inside(make_action("a", 310.5, 100), area)
        assert not is_inside(make_action("a", 50, 211), area)

    def test_custom_tolerance_and_header(self, area: Node) -> None:
        """Tolerance and header height are parameters."""
        action = make_action("a", 50, 20)
        assert not is_inside(action, area)
        assert is_inside(action, area, tolerance=0, header_height=0)


class TestMembershipMask:
    """Test the vectorized membership mask."""

    def test_mask_is_boolean_per_action(self) -> None:
        """Mask has one boolean per action."""
        area = make_area("area_1", 0, 0)
        actions = [make_action("a", 50, 100), make_action("b", 500, 100)]
        mask = create_membership_mask(area, actions)
        assert mask.dtype == bool
        assert mask.shape == (2,)
        assert mask[0] is np.True_
        assert mask[1] is np.False_

    def test_empty_action_list(self) -> None:
        """No actions gives an empty mask."""
        assert create_membership_mask(make_area("area_1", 0, 0), []).shape == (0,)

    def test_members_of_ignores_other_kinds(self) -> None:
        """Terminals and areas inside the zone are not members."""
        area = make_area("area_1", 200, 0)
        nodes = [make_terminal(NodeKind.START), make_action("a", 250, 100), make_area("area_2", 250, 100)]
        assert members_of(area, nodes) == {"a"}


class TestAssignMembers:
    """Test exclusive assignment across areas."""

    def test_overlap_goes_to_first_area_by_name(self) -> None:
        """An action inside two areas belongs to the first in name order."""
        zeta = make_area("area_1", 0, 0, name="Zeta")
        alpha = make_area("area_2", 100, 0, name="Alpha")
        action = make_action("a", 150, 100)

        membership = assign_members([zeta, alpha, action])

        assert membership == {"area_2": ["a"], "area_1": []}

    def test_every_area_is_listed(self) -> None:
        """Empty areas map to an empty list."""
        assert assign_members([make_area("area_1", 0, 0)]) == {"area_1": []}

    def test_members_keep_creation_order(self) -> None:
        """Member ids follow node order, not position."""
        area = make_area("area_1", 0, 0, h=400)
        nodes = [area, make_action("b", 50, 300), make_action("a", 50, 100)]
        assert assign_members(nodes)["area_1"] == ["b", "a"]

    def test_membership_follows_geometry(self) -> None:
        """Moving an action out of an area changes membership immediately."""
        area = make_area("area_1", 0, 0)
        action = make_action("a", 50, 100)
        assert membership_map([area, action]) == {"a": "area_1"}

        action.position = Position(800, 100)
        assert membership_map([area, action]) == {}
        assert [n.id for n in unassigned_actions([area, action])] == ["a"]

    def test_area_order_breaks_name_ties_by_id(self) -> None:
        """Areas with equal names are ordered by id."""
        areas = [make_area("area_9", 0, 0, name="Same"), make_area("area_3", 0, 0, name="Same")]
        assert [a.id for a in area_order(areas)] == ["area_3", "area_9"]


class TestCandidateArea:
    """Test the drag-time drop target lookup."""

    def test_candidate_inside(self) -> None:
        """The containing area is the candidate."""
        area = make_area("area_1", 0, 0)
        assert candidate_area(make_action("a", 50, 100), [area]) is area

    def test_no_candidate_outside(self) -> None:
        """No area contains the action."""
        assert candidate_area(make_action("a", 900, 900), [make_area("area_1", 0, 0)]) is None
