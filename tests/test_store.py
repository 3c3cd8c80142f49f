"""Tests for the graph store.

Verifies that:
- Operations are atomic and reject unknown ids without side effects
- Terminal nodes cannot be added or deleted
- Edge rules (idempotence, self-loops, conditional handles) hold
- Areas are resized after add/move/delete but not during drag ticks
- Mutations are non-reentrant
"""

import pytest

from flowbuilder.core.logging import LogBuffer, Logger
from flowbuilder.core.model import GraphState, Node, NodeKind, Position
from flowbuilder.core.store import (
    EdgeConflictError,
    GraphError,
    GraphStore,
    NotFoundError,
    OperationInProgressError,
    TerminalNodeError,
    edge_id,
)


@pytest.fixture
def store() -> GraphStore:
    return GraphStore(logger=Logger(LogBuffer()))


def add_action(store: GraphStore, action_type: str, x: float, y: float, **config) -> Node:
    return store.add_node(NodeKind.ACTION, Position(x, y), {"action_type": action_type, "config": config})


def add_area(store: GraphStore, x: float, y: float, name: str = "Main") -> Node:
    return store.add_node(NodeKind.AREA, Position(x, y), {"name": name})


class TestInitialState:
    """Test the freshly created store."""

    def test_seeded_with_terminals(self, store: GraphStore) -> None:
        """start and end exist at their default positions."""
        start, end = store.node("start"), store.node("end")
        assert start.kind == NodeKind.START
        assert end.kind == NodeKind.END
        assert start.position == Position(250.0, 0.0)
        assert end.position == Position(250.0, 400.0)
        assert store.state.edges == []


class TestAddNode:
    """Test add_node."""

    def test_action_ids_and_catalog_fields(self, store: GraphStore) -> None:
        """Action ids are <type>_<n>; colour and description come from the catalog."""
        node = add_action(store, "click", 600, 100)
        assert node.id == "click_1"
        assert node.label == "click"
        assert node.color == "#3b82f6"
        assert node.description == "Click at specific coordinates"

    def test_counter_is_shared_and_monotonic(self, store: GraphStore) -> None:
        """Ids never repeat, even after deletion."""
        first = add_action(store, "wait", 600, 100)
        area = add_area(store, 900, 900)
        store.delete_node(first.id)
        second = add_action(store, "wait", 600, 100)
        assert (first.id, area.id, second.id) == ("wait_1", "area_2", "wait_3")

    def test_terminal_kinds_refused(self, store: GraphStore) -> None:
        """start/end cannot be added."""
        before = store.snapshot()
        with pytest.raises(TerminalNodeError):
            store.add_node(NodeKind.START, Position(0, 0))
        assert store.state == before

    def test_action_without_type_refused(self, store: GraphStore) -> None:
        """An action needs an action type."""
        with pytest.raises(GraphError):
            store.add_node(NodeKind.ACTION, Position(0, 0), {})

    def test_wire_kind_name_accepted(self, store: GraphStore) -> None:
        """Kinds may be given by wire name."""
        node = store.add_node("checkpointArea", Position(0, 0))
        assert node.is_area
        assert node.name == "Checkpoint 1"

    def test_adding_inside_area_resizes_it(self, store: GraphStore) -> None:
        """Area count and size follow a new member."""
        area = add_area(store, 0, 0)
        add_action(store, "wait", 50, 100)
        synced = store.node(area.id)
        assert synced.action_count == 1
        assert synced.height == 270.0


class TestMoveAndDelete:
    """Test move_node and delete_node."""

    def test_move_unknown_id(self, store: GraphStore) -> None:
        """Unknown id: NotFoundError, store unchanged."""
        before = store.snapshot()
        with pytest.raises(NotFoundError):
            store.move_node("nope", Position(1, 1))
        assert store.state == before

    def test_move_out_of_area(self, store: GraphStore) -> None:
        """Moving an action out shrinks its former area."""
        area = add_area(store, 0, 0)
        action = add_action(store, "wait", 50, 100)
        store.move_node(action.id, Position(900, 900))
        assert store.node(area.id).action_count == 0
        assert store.node(area.id).height == 200.0

    def test_moving_area_carries_members(self, store: GraphStore) -> None:
        """Members keep their offset inside a moved area."""
        area = add_area(store, 0, 0)
        action = add_action(store, "wait", 50, 100)
        store.move_node(area.id, Position(500, 500))
        assert store.node(action.id).position == Position(550.0, 600.0)
        assert store.node(area.id).action_count == 1

    def test_delete_terminal_refused(self, store: GraphStore) -> None:
        """start and end cannot be deleted."""
        with pytest.raises(TerminalNodeError):
            store.delete_node("start")
        with pytest.raises(TerminalNodeError):
            store.delete_node("end")
        assert store.node("start") is not None

    def test_delete_cascades_to_edges(self, store: GraphStore) -> None:
        """Incident edges go with the node; others stay."""
        a = add_action(store, "wait", 600, 100)
        b = add_action(store, "wait", 600, 300)
        store.add_edge("start", a.id)
        store.add_edge(a.id, b.id)
        store.add_edge(b.id, "end")

        store.delete_node(a.id)

        assert [e.id for e in store.state.edges] == [f"e-{b.id}-end"]

    def test_delete_unknown_id(self, store: GraphStore) -> None:
        with pytest.raises(NotFoundError):
            store.delete_node("missing")


class TestEdges:
    """Test add_edge and delete_edge."""

    def test_edge_id_format(self) -> None:
        assert edge_id("a", "b") == "e-a-b"
        assert edge_id("a", "b", "true") == "e-a-b-true"

    def test_add_edge_idempotent(self, store: GraphStore) -> None:
        """The same triple returns the existing edge."""
        a = add_action(store, "wait", 600, 100)
        first = store.add_edge("start", a.id)
        second = store.add_edge("start", a.id)
        assert first == second
        assert len(store.state.edges) == 1

    def test_unknown_endpoint(self, store: GraphStore) -> None:
        with pytest.raises(NotFoundError):
            store.add_edge("start", "ghost")
        assert store.state.edges == []

    def test_self_loop_refused(self, store: GraphStore) -> None:
        a = add_action(store, "wait", 600, 100)
        with pytest.raises(EdgeConflictError):
            store.add_edge(a.id, a.id)

    def test_terminal_directions(self, store: GraphStore) -> None:
        """Nothing leaves end and nothing enters start."""
        a = add_action(store, "wait", 600, 100)
        with pytest.raises(EdgeConflictError):
            store.add_edge("end", a.id)
        with pytest.raises(EdgeConflictError):
            store.add_edge(a.id, "start")

    def test_conditional_handles(self, store: GraphStore) -> None:
        """Each conditional handle takes at most one edge."""
        check = add_action(store, "ifExists", 600, 100)
        yes = add_action(store, "wait", 500, 300)
        no = add_action(store, "wait", 800, 300)

        edge = store.add_edge(check.id, yes.id, "true")
        store.add_edge(check.id, no.id, "false")

        assert edge.id == f"e-{check.id}-{yes.id}-true"
        with pytest.raises(EdgeConflictError):
            store.add_edge(check.id, no.id, "true")
        assert len(store.state.edges) == 2

    def test_conditional_needs_handle(self, store: GraphStore) -> None:
        check = add_action(store, "loop", 600, 100)
        with pytest.raises(EdgeConflictError):
            store.add_edge(check.id, "end")

    def test_plain_node_has_no_handles(self, store: GraphStore) -> None:
        a = add_action(store, "wait", 600, 100)
        with pytest.raises(EdgeConflictError):
            store.add_edge(a.id, "end", "true")

    def test_delete_edge(self, store: GraphStore) -> None:
        a = add_action(store, "wait", 600, 100)
        edge = store.add_edge("start", a.id)
        store.delete_edge(edge.id)
        assert store.state.edges == []
        with pytest.raises(NotFoundError):
            store.delete_edge(edge.id)


class TestNodeDetails:
    """Test config, rename and flow details."""

    def test_update_action_config(self, store: GraphStore) -> None:
        a = add_action(store, "wait", 600, 100)
        store.update_action_config(a.id, {"duration": 500})
        assert store.node(a.id).config == {"duration": 500}

    def test_update_config_of_area_refused(self, store: GraphStore) -> None:
        area = add_area(store, 0, 0)
        with pytest.raises(GraphError):
            store.update_action_config(area.id, {"x": 1})

    def test_rename_area(self, store: GraphStore) -> None:
        """Rename trims the name and ends inline editing."""
        area = add_area(store, 0, 0)
        store.set_area_editing(area.id, True)
        store.rename_area(area.id, "  Checkout  ")
        node = store.node(area.id)
        assert node.name == "Checkout"
        assert not node.is_editing

    def test_rename_to_blank_refused(self, store: GraphStore) -> None:
        area = add_area(store, 0, 0, "Keep")
        with pytest.raises(GraphError):
            store.rename_area(area.id, "   ")
        assert store.node(area.id).name == "Keep"

    def test_flow_details_and_selectors(self, store: GraphStore) -> None:
        store.set_flow_details("Checkout Flow", "Buys things")
        store.add_selector("loginButton", "~login")
        assert (store.state.name, store.state.description) == ("Checkout Flow", "Buys things")
        assert store.state.selectors == {"loginButton": "~login"}

        store.remove_selector("loginButton")
        assert store.state.selectors == {}

    def test_selector_needs_name_and_value(self, store: GraphStore) -> None:
        with pytest.raises(GraphError):
            store.add_selector("name", "")
        with pytest.raises(NotFoundError):
            store.remove_selector("absent")


class TestDrag:
    """Test the drag protocol."""

    def test_drag_reports_candidate_without_resizing(self, store: GraphStore) -> None:
        """Ticks highlight the target; sizing waits for the drop."""
        area = add_area(store, 0, 0)
        action = add_action(store, "wait", 900, 900)

        store.begin_drag(action.id)
        target = store.drag_node(action.id, Position(50, 150))

        assert target == area.id
        assert store.node(area.id).action_count == 0
        assert store.node(area.id).height == 200.0

        owner = store.end_drag()

        assert owner == area.id
        assert store.node(area.id).action_count == 1
        assert store.node(area.id).height > 200.0
        assert not store.is_dragging

    def test_drag_outside_areas(self, store: GraphStore) -> None:
        add_area(store, 0, 0)
        action = add_action(store, "wait", 900, 900)
        store.begin_drag(action.id)
        assert store.drag_node(action.id, Position(1200, 900)) is None
        assert store.end_drag() is None

    def test_second_drag_refused(self, store: GraphStore) -> None:
        a = add_action(store, "wait", 600, 100)
        store.begin_drag(a.id)
        with pytest.raises(OperationInProgressError):
            store.begin_drag("start")

    def test_drag_other_node_refused(self, store: GraphStore) -> None:
        a = add_action(store, "wait", 600, 100)
        store.begin_drag(a.id)
        with pytest.raises(GraphError):
            store.drag_node("start", Position(0, 0))

    def test_layout_and_replace_refused_during_drag(self, store: GraphStore) -> None:
        a = add_action(store, "wait", 600, 100)
        store.begin_drag(a.id)
        with pytest.raises(OperationInProgressError):
            store.apply_layout()
        with pytest.raises(OperationInProgressError):
            store.replace(GraphState.initial())
        store.end_drag()
        store.apply_layout()

    def test_end_without_drag(self, store: GraphStore) -> None:
        with pytest.raises(GraphError):
            store.end_drag()


class TestListenersAndReentrancy:
    """Test change notification and the reentrancy guard."""

    def test_listener_receives_operation(self, store: GraphStore) -> None:
        seen: list[str] = []
        store.add_listener(seen.append)
        a = add_action(store, "wait", 600, 100)
        store.add_edge("start", a.id)
        assert seen == ["add_node", "add_edge"]

    def test_no_notification_on_failure(self, store: GraphStore) -> None:
        seen: list[str] = []
        store.add_listener(seen.append)
        with pytest.raises(NotFoundError):
            store.move_node("ghost", Position(0, 0))
        assert seen == []

    def test_mutation_from_listener_refused(self, store: GraphStore) -> None:
        """A listener cannot start another operation."""
        def reenter(operation: str) -> None:
            store.set_flow_details("Nested")

        store.add_listener(reenter)
        with pytest.raises(OperationInProgressError):
            add_action(store, "wait", 600, 100)

        store.remove_listener(reenter)
        store.set_flow_details("After")
        assert store.state.name == "After"


class TestReplace:
    """Test whole-state replacement."""

    def test_replace_swaps_state(self, store: GraphStore) -> None:
        state = GraphState.initial()
        state.name = "Imported"
        store.replace(state)
        assert store.state.name == "Imported"
        assert store.state is not state

    def test_counter_continues_after_imported_ids(self, store: GraphStore) -> None:
        """New ids never collide with replaced ones."""
        state = GraphState.initial()
        state.nodes.append(Node(id="click_7", kind=NodeKind.ACTION, position=Position(0, 0), action_type="click"))
        store.replace(state)
        assert add_action(store, "type", 600, 100).id == "type_8"

    def test_apply_layout_keeps_edges(self, store: GraphStore) -> None:
        a = add_action(store, "wait", 600, 100)
        store.add_edge("start", a.id)
        edges = list(store.state.edges)
        store.apply_layout()
        assert store.state.edges == edges
