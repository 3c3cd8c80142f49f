"""Tests for flow export and import.

Verifies that:
- Export writes the envelope, visual layout and compiled checkpoints
- Export then import reproduces the graph
- Legacy documents are stacked vertically between start and end
- Malformed documents raise ImportFormatError
"""

import json

import pytest

from flowbuilder.core.logging import LogBuffer, Logger
from flowbuilder.core.model import NodeKind, Position
from flowbuilder.core.serializer import (
    CallbackRegistry,
    ImportFormatError,
    dumps,
    export_document,
    export_flow,
    import_flow,
    suggested_filename,
)
from flowbuilder.core.store import GraphStore


@pytest.fixture
def store() -> GraphStore:
    """A small flow: one area holding two actions, plus a loose branch."""
    store = GraphStore(logger=Logger(LogBuffer()))
    store.set_flow_details("My Test Flow", "Logs in and checks")
    store.add_selector("loginButton", "~login")

    area = store.add_node(NodeKind.AREA, Position(0, 100), {"name": "Login"})
    typed = store.add_node(
        NodeKind.ACTION, Position(50, 200), {"action_type": "type", "config": {"text": "hello"}}
    )
    clicked = store.add_node(
        NodeKind.ACTION,
        Position(50, 320),
        {"action_type": "click", "config": {"coordinates": {"x": 10, "y": 20}}},
    )
    check = store.add_node(
        NodeKind.ACTION, Position(900, 300), {"action_type": "ifExists", "config": {"selector": "loginButton"}}
    )
    store.add_edge("start", typed.id)
    store.add_edge(typed.id, clicked.id)
    store.add_edge(clicked.id, check.id)
    store.add_edge(check.id, "end", "true")
    store.set_area_editing(area.id, True)
    return store


def comparable(state) -> dict:
    """Fields that must survive a round trip."""
    return {
        "name": state.name,
        "description": state.description,
        "selectors": state.selectors,
        "nodes": [
            (n.id, n.kind, n.position, n.action_type, n.config, n.name, n.width, n.height, n.action_count)
            for n in state.nodes
        ],
        "edges": state.edges,
    }


class TestExport:
    """Test export_flow and export_document."""

    def test_envelope(self, store: GraphStore) -> None:
        """The definition is wrapped for upload."""
        document = export_document(store.state)

        assert document["userId"] == "workflow-builder"
        assert document["overwrite"] is False
        definition = document["flowDefinition"]
        assert definition["flowId"] == "my-test-flow"
        assert definition["name"] == "My Test Flow"
        assert definition["type"] == "custom"
        assert definition["version"] == "1.0.0"
        assert definition["author"] == "workflow-builder"
        assert definition["tags"] == ["visual-builder"]
        assert definition["selectors"] == {"loginButton": "~login"}
        assert definition["options"]["maxRuns"] == 1
        assert definition["options"]["infinite"] is False

    def test_checkpoints_are_compiled(self, store: GraphStore) -> None:
        """Area members first, loose actions in default."""
        checkpoints = export_document(store.state)["flowDefinition"]["checkpoints"]

        assert [c["name"] for c in checkpoints] == ["Login", "default"]
        assert checkpoints[1]["dependencies"] == ["step-1"]
        assert checkpoints[0]["actions"][0] == {
            "type": "type",
            "description": "Type text in element or active field",
            "text": "hello",
        }
        assert checkpoints[0]["timeout"] == 30000
        assert checkpoints[0]["type"] == "interactive"

    def test_visual_layout(self, store: GraphStore) -> None:
        """Nodes and edges are written with wire names."""
        layout = export_document(store.state)["flowDefinition"]["visualLayout"]

        types = {n["id"]: n["type"] for n in layout["nodes"]}
        assert types["start"] == "startNode"
        assert types["end"] == "endNode"
        assert types["area_1"] == "checkpointArea"
        assert types["type_2"] == "actionNode"

        branch = next(e for e in layout["edges"] if e["source"] == "ifExists_4")
        assert branch["sourceHandle"] == "true"
        assert branch["type"] == "smoothstep"

    def test_transient_fields_dropped(self, store: GraphStore) -> None:
        """Inline-edit flags are not persisted."""
        text = dumps(store.state)
        assert "isEditing" not in text
        assert "is_editing" not in text

    def test_checkpoint_groups(self, store: GraphStore) -> None:
        groups = export_document(store.state)["flowDefinition"]["checkpointGroups"]
        assert groups == {"type_2": "area_1", "click_3": "area_1"}

    def test_export_never_validates(self) -> None:
        """An empty flow still exports."""
        store = GraphStore(logger=Logger(LogBuffer()))
        flow = export_flow(store.state)
        assert flow.checkpoints == []
        assert len(flow.nodes) == 2

    def test_suggested_filename(self, store: GraphStore) -> None:
        assert suggested_filename(store.state) == "my-test-flow.json"

    def test_flow_id_keeps_outer_whitespace(self) -> None:
        """Leading and trailing spaces turn into dashes like inner ones."""
        store = GraphStore(logger=Logger(LogBuffer()))
        store.set_flow_details(" Daily  Login ")
        assert export_document(store.state)["flowDefinition"]["flowId"] == "-daily-login-"


class TestRoundTrip:
    """Test export followed by import."""

    def test_document_round_trip(self, store: GraphStore) -> None:
        """Every node, edge and flow detail comes back."""
        restored = import_flow(export_document(store.state))
        assert comparable(restored) == comparable(store.state)

    def test_json_round_trip(self, store: GraphStore) -> None:
        """Same through JSON text."""
        restored = import_flow(dumps(store.state))
        assert comparable(restored) == comparable(store.state)

    def test_bare_definition_accepted(self, store: GraphStore) -> None:
        """A definition without the envelope imports too."""
        definition = export_document(store.state)["flowDefinition"]
        restored = import_flow(json.dumps(definition).encode("utf-8"))
        assert comparable(restored) == comparable(store.state)

    def test_editing_flag_reset(self, store: GraphStore) -> None:
        restored = import_flow(export_document(store.state))
        assert not restored.node("area_1").is_editing

    def test_callbacks_rebound(self, store: GraphStore) -> None:
        """Fresh callbacks are attached to every imported node."""
        seen: list[str] = []
        registry = CallbackRegistry(lambda node: {"open": lambda: seen.append(node.id)})

        restored = import_flow(export_document(store.state), registry)

        assert len(registry) == len(restored.nodes)
        registry.get("type_2", "open")()
        assert seen == ["type_2"]


class TestLegacyImport:
    """Test documents carrying checkpoints only."""

    @pytest.fixture
    def legacy(self) -> dict:
        return {
            "name": "Legacy",
            "checkpoints": [
                {
                    "id": "a",
                    "name": "first",
                    "actions": [
                        {"type": "openApp", "description": "", "bundleId": "com.example"},
                        {"type": "wait", "duration": 1000},
                    ],
                },
                {"id": "b", "name": "second", "actions": [{"type": "click", "coordinates": {"x": 1, "y": 2}}]},
            ],
        }

    def test_actions_stacked(self, legacy: dict) -> None:
        """One action per row at x=250, 100 apart, between start and end."""
        state = import_flow(legacy)

        assert [n.position for n in state.nodes] == [
            Position(250, 0), Position(250, 100), Position(250, 200), Position(250, 300), Position(250, 400)
        ]
        assert [n.kind for n in state.nodes] == [
            NodeKind.START, NodeKind.ACTION, NodeKind.ACTION, NodeKind.ACTION, NodeKind.END
        ]
        assert state.areas == []

    def test_chain_edges(self, legacy: dict) -> None:
        """Edges chain start through every action to end."""
        state = import_flow(legacy)
        ids = [n.id for n in state.nodes]
        assert [(e.source, e.target) for e in state.edges] == list(zip(ids, ids[1:]))

    def test_params_become_config(self, legacy: dict) -> None:
        """Extra action fields are restored as config."""
        state = import_flow(legacy)
        assert state.actions[0].config == {"bundleId": "com.example"}
        assert state.actions[2].config == {"coordinates": {"x": 1, "y": 2}}
        assert state.actions[0].description == "Open application by bundle ID"

    def test_empty_legacy(self) -> None:
        """No actions: start connected straight to end."""
        state = import_flow({"name": "Empty", "checkpoints": []})
        assert [(e.source, e.target) for e in state.edges] == [("start", "end")]


class TestMalformedImport:
    """Test rejection of malformed documents."""

    def test_invalid_json(self) -> None:
        with pytest.raises(ImportFormatError):
            import_flow("{not json")

    def test_not_an_object(self) -> None:
        with pytest.raises(ImportFormatError):
            import_flow("[1, 2, 3]")

    def test_missing_required_keys(self) -> None:
        with pytest.raises(ImportFormatError):
            import_flow({"checkpoints": []})
        with pytest.raises(ImportFormatError):
            import_flow({"name": "No checkpoints"})

    def test_unknown_node_type(self) -> None:
        document = {
            "name": "Bad",
            "checkpoints": [],
            "visualLayout": {"nodes": [{"id": "x", "type": "mystery", "position": {"x": 0, "y": 0}}]},
        }
        with pytest.raises(ImportFormatError):
            import_flow(document)

    def test_edge_to_missing_node(self) -> None:
        document = {
            "name": "Bad",
            "checkpoints": [],
            "visualLayout": {
                "nodes": [],
                "edges": [{"id": "e", "source": "start", "target": "ghost"}],
            },
        }
        with pytest.raises(ImportFormatError):
            import_flow(document)

    def test_duplicate_node_id(self) -> None:
        node = {"id": "start", "type": "startNode", "position": {"x": 0, "y": 0}}
        document = {"name": "Bad", "checkpoints": [], "visualLayout": {"nodes": [node, node]}}
        with pytest.raises(ImportFormatError):
            import_flow(document)

    def test_missing_terminals_reseeded(self) -> None:
        """A layout without start/end gets them back."""
        document = {"name": "Bare", "checkpoints": [], "visualLayout": {"nodes": []}}
        state = import_flow(document)
        assert [n.id for n in state.nodes] == ["start", "end"]

    @pytest.mark.parametrize(
        "data",
        [{"width": "wide"}, {"height": [1, 2]}, {"actionCount": "many"}, {"width": "inf"}],
    )
    def test_non_numeric_area_size(self, data: dict) -> None:
        """Bad area dimensions are a format error, not a crash."""
        area = {"id": "area_1", "type": "checkpointArea", "position": {"x": 0, "y": 0}, "data": data}
        document = {"name": "Bad", "checkpoints": [], "visualLayout": {"nodes": [area], "edges": []}}
        with pytest.raises(ImportFormatError):
            import_flow(document)

    def test_non_text_action_type(self) -> None:
        action = {"id": "a_1", "type": "actionNode", "position": {"x": 0, "y": 0}, "data": {"actionType": 5}}
        document = {"name": "Bad", "checkpoints": [], "visualLayout": {"nodes": [action]}}
        with pytest.raises(ImportFormatError):
            import_flow(document)

    def test_terminal_with_wrong_id(self) -> None:
        """A start record must use the fixed start id."""
        start = {"id": "begin", "type": "startNode", "position": {"x": 0, "y": 0}}
        document = {"name": "Bad", "checkpoints": [], "visualLayout": {"nodes": [start]}}
        with pytest.raises(ImportFormatError):
            import_flow(document)

    def test_reserved_id_on_action(self) -> None:
        """An action may not take the end node's id."""
        action = {"id": "end", "type": "actionNode", "position": {"x": 0, "y": 0}, "data": {"actionType": "wait"}}
        document = {"name": "Bad", "checkpoints": [], "visualLayout": {"nodes": [action]}}
        with pytest.raises(ImportFormatError):
            import_flow(document)

    def test_exactly_one_of_each_terminal(self, store: GraphStore) -> None:
        """A valid import keeps one start and one end."""
        state = import_flow(export_document(store.state))
        assert [n.id for n in state.nodes if n.kind == NodeKind.START] == ["start"]
        assert [n.id for n in state.nodes if n.kind == NodeKind.END] == ["end"]
