import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from knotwork.errors import DuplicateEdge, DuplicateNode, InvalidReference, SelfLoopEdge, UnknownEdge, UnknownNode
from knotwork.graph_model import GraphChangeKind, GraphModel


FLOW = {
    "nodes": [
        {"id": "req", "type": "httpRequest", "data": {"method": "get", "endpoint": "{{baseUrl}}/users"},
         "position": {"x": 0, "y": 0}},
        {"id": "resp", "type": "response", "data": {"label": "Response"}, "position": {"x": 200, "y": 0}},
        {"id": "dbg", "type": "debug", "data": {}, "position": {"x": 200, "y": 120}},
    ],
    "edges": [
        {"id": "e1", "source": "req", "target": "resp", "sourceHandle": "success"},
        {"id": "e2", "source": "req", "target": "dbg", "sourceHandle": "failure"},
    ],
}


class TestGraphModel:

    def setup_method(self):
        self.graph = GraphModel.from_flow(FLOW)
        self.changes = []
        self.graph.subscribe(self.changes.append)

    def test_loads_nodes_and_edges_in_declaration_order(self):
        assert self.graph.node_ids() == ["req", "resp", "dbg"]
        assert [e.id for e in self.graph.edges] == ["e1", "e2"]
        assert [e.id for e in self.graph.outgoing_edges("req")] == ["e1", "e2"]
        assert [e.id for e in self.graph.incoming_edges("dbg")] == ["e2"]

    def test_duplicate_node_rejected(self):
        with pytest.raises(DuplicateNode):
            self.graph.add_node({"id": "req", "type": "debug"})

    def test_unknown_node_type_rejected(self):
        with pytest.raises(ValueError):
            self.graph.add_node({"id": "x", "type": "teleport"})

    def test_edge_to_missing_node_rejected(self):
        with pytest.raises(InvalidReference) as exc:
            self.graph.add_edge({"id": "e3", "source": "req", "target": "ghost"})
        assert exc.value.missing == ["ghost"]
        assert self.graph.get_edge("e3") is None

    def test_self_loop_rejected(self):
        with pytest.raises(SelfLoopEdge):
            self.graph.add_edge({"id": "e3", "source": "req", "target": "req", "sourceHandle": "success"})

    def test_duplicate_edge_rejected(self):
        with pytest.raises(DuplicateEdge):
            self.graph.add_edge({"id": "e1", "source": "req", "target": "dbg"})

    def test_remove_node_cascades_to_edges(self):
        self.graph.remove_node("req")
        assert self.graph.edges == []
        kinds = [c.kind for c in self.changes]
        assert kinds == [GraphChangeKind.EDGE_REMOVED, GraphChangeKind.EDGE_REMOVED, GraphChangeKind.NODE_REMOVED]

    def test_remove_unknown_raises(self):
        with pytest.raises(UnknownNode):
            self.graph.remove_node("ghost")
        with pytest.raises(UnknownEdge):
            self.graph.remove_edge("ghost")

    def test_update_node_data_replaces_wholesale(self):
        before = self.graph.get_node("resp")
        new_data = {"status": 200}
        self.graph.update_node_data("resp", new_data)
        new_data["status"] = 500

        after = self.graph.get_node("resp")
        assert after.data == {"status": 200}
        assert after.id == before.id and after.type == before.type
        assert after.position == before.position
        assert before.data == {"label": "Response"}
        assert self.changes[-1].kind == GraphChangeKind.NODE_DATA_UPDATED
        assert self.changes[-1].node_id == "resp"

    def test_snapshot_is_detached(self):
        snapshot = self.graph.snapshot()
        self.graph.update_node_data("req", {"method": "POST"})
        assert snapshot.nodes[0].data["method"] == "get"

    def test_set_edges_animated_only_notifies_on_change(self):
        self.graph.set_edges_animated(["e1"], True)
        self.graph.set_edges_animated(["e1", "missing"], True)
        assert self.graph.get_edge("e1").animated is True
        assert [c.kind for c in self.changes] == [GraphChangeKind.EDGE_UPDATED]

    def test_set_draggable_locks_every_node(self):
        self.graph.set_draggable(False)
        assert all(not n.draggable for n in self.graph.nodes)

    def test_failing_listener_does_not_block_others(self):
        def broken(change):
            raise RuntimeError("boom")

        seen = []
        self.graph.subscribe(broken)
        self.graph.subscribe(seen.append)
        self.graph.update_node_data("dbg", {"input": 1})
        assert len(seen) == 1

    def test_unsubscribe(self):
        seen = []
        unsubscribe = self.graph.subscribe(seen.append)
        unsubscribe()
        self.graph.clear()
        assert seen == []
        assert len(self.graph) == 0

    def test_load_is_all_or_nothing(self):
        broken = {"nodes": [{"id": "a", "type": "debug"}], "edges": [{"id": "x", "source": "a", "target": "b"}]}
        with pytest.raises(InvalidReference):
            self.graph.load(broken)
        assert self.graph.node_ids() == ["req", "resp", "dbg"]

    def test_to_dict_uses_wire_keys(self):
        wire = self.graph.to_dict()
        assert wire["edges"][0]["sourceHandle"] == "success"
        assert wire["nodes"][0]["position"] == {"x": 0.0, "y": 0.0}

    def test_typed_payload(self):
        payload = self.graph.get_node("req").payload()
        assert payload.method == "GET"
        assert payload.endpoint == "{{baseUrl}}/users"

    def test_payload_models_per_type(self):
        self.graph.add_node({"id": "loop", "type": "loop", "data": {"items": [1, 2]}})
        self.graph.add_node({"id": "cap", "type": "capture", "data": {"path": "data.id", "variable": "userId"}})
        self.graph.add_node({"id": "note", "type": "comment", "data": {"text": "free form"}})

        assert self.graph.get_node("loop").payload().items == [1, 2]
        assert self.graph.get_node("cap").payload().variable == "userId"
        assert self.graph.get_node("note").payload().text == "free form"
        assert self.graph.get_node("resp").payload().status is None
