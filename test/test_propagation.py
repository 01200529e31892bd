import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from knotwork.execution.propagation import PropagationEngine
from knotwork.graph_model import GraphModel
from knotwork.models import ExecutionResult
from knotwork.node_system import register_transfer_rule, unregister_transfer_rule


def request_flow():
    return GraphModel.from_flow({
        "nodes": [
            {"id": "req", "type": "httpRequest", "data": {"method": "GET", "endpoint": "https://api.test/ping"}},
            {"id": "resp", "type": "response", "data": {}},
            {"id": "dbg", "type": "debug", "data": {}},
        ],
        "edges": [
            {"id": "ok", "source": "req", "target": "resp", "sourceHandle": "success"},
            {"id": "ko", "source": "req", "target": "dbg", "sourceHandle": "failure"},
        ],
    })


class TestRequestPropagation:

    def setup_method(self):
        self.engine = PropagationEngine()
        self.graph = request_flow()

    def test_success_fills_response_node(self):
        results = {"req": ExecutionResult(node_id="req", status="success",
                                          output={"status": 200, "data": {"msg": "ok"}})}
        report = self.engine.propagate(self.graph, results)

        assert self.graph.get_node("resp").data == {"status": 200, "response": {"msg": "ok"}}
        assert self.graph.get_node("dbg").data == {}
        assert report.active_edge_ids == ["ok"]
        assert report.skipped_edge_ids == ["ko"]

    def test_error_leaves_response_untouched_and_feeds_debug(self):
        results = {"req": ExecutionResult(node_id="req", status="error", error="HTTP 503")}
        report = self.engine.propagate(self.graph, results)

        assert self.graph.get_node("resp").data == {}
        assert self.graph.get_node("dbg").data == {"input": {"error": "HTTP 503"}}
        assert report.active_edge_ids == ["ko"]

    def test_debug_target_unwraps_request_body(self):
        graph = GraphModel.from_flow({
            "nodes": [
                {"id": "req", "type": "httpRequest", "data": {}},
                {"id": "show", "type": "display", "data": {"label": "Body"}},
            ],
            "edges": [{"id": "e", "source": "req", "target": "show", "sourceHandle": "success"}],
        })
        results = {"req": ExecutionResult(node_id="req", status="success", output={"status": 200, "data": [1, 2]})}
        self.engine.propagate(graph, results)
        assert graph.get_node("show").data == {"label": "Body", "input": [1, 2]}

    def test_propagation_is_idempotent(self):
        results = {"req": ExecutionResult(node_id="req", status="success",
                                          output={"status": 201, "data": {"id": 7}})}
        self.engine.propagate(self.graph, results)
        first = self.graph.to_dict()
        self.engine.propagate(self.graph, results)
        assert self.graph.to_dict() == first

    def test_absent_source_propagates_nothing(self):
        report = self.engine.propagate(self.graph, {})
        assert report.active_edge_ids == []
        assert report.transfers == []
        assert self.graph.get_node("resp").data == {}

    def test_other_node_data_preserved(self):
        self.graph.update_node_data("resp", {"label": "Keep me", "status": 0})
        results = {"req": ExecutionResult(node_id="req", status="success", output={"status": 200, "data": "x"})}
        self.engine.propagate(self.graph, results)
        assert self.graph.get_node("resp").data == {"label": "Keep me", "status": 200, "response": "x"}


class TestConflictsAndRules:

    def setup_method(self):
        self.engine = PropagationEngine()
        self.graph = GraphModel.from_flow({
            "nodes": [
                {"id": "a", "type": "capture", "data": {}},
                {"id": "b", "type": "mapper", "data": {}},
                {"id": "sink", "type": "tabulize", "data": {}},
            ],
            "edges": [
                {"id": "from-a", "source": "a", "target": "sink"},
                {"id": "from-b", "source": "b", "target": "sink"},
            ],
        })

    def test_last_declared_edge_wins(self):
        results = {
            "a": ExecutionResult(node_id="a", status="success", output="first"),
            "b": ExecutionResult(node_id="b", status="success", output="second"),
        }
        report = self.engine.propagate(self.graph, results)

        assert self.graph.get_node("sink").data == {"input": "second"}
        assert len(report.conflicts) == 1
        conflict = report.conflicts[0]
        assert conflict.target_id == "sink"
        assert conflict.field == "input"
        assert conflict.previous_edge == "from-a"
        assert conflict.overwritten_by_edge == "from-b"

    def test_pair_without_rule_moves_nothing(self):
        graph = GraphModel.from_flow({
            "nodes": [{"id": "a", "type": "capture", "data": {}}, {"id": "m", "type": "mapper", "data": {"k": 1}}],
            "edges": [{"id": "e", "source": "a", "target": "m"}],
        })
        report = self.engine.propagate(graph, {"a": ExecutionResult(node_id="a", status="success", output=5)})
        assert report.active_edge_ids == ["e"]
        assert report.transfers == []
        assert graph.get_node("m").data == {"k": 1}

    def test_registered_rule_is_applied(self):
        graph = GraphModel.from_flow({
            "nodes": [{"id": "a", "type": "capture", "data": {}}, {"id": "m", "type": "mapper", "data": {}}],
            "edges": [{"id": "e", "source": "a", "target": "m"}],
        })
        register_transfer_rule("capture", "mapper", lambda payload, data: {"source": payload})
        try:
            self.engine.propagate(graph, {"a": ExecutionResult(node_id="a", status="success", output=5)})
        finally:
            unregister_transfer_rule("capture", "mapper")
        assert graph.get_node("m").data == {"source": 5}


class TestLoopPropagation:

    def test_items_then_done(self):
        graph = GraphModel.from_flow({
            "nodes": [
                {"id": "loop", "type": "loop", "data": {"items": [1, 2, 3]}},
                {"id": "each", "type": "debug", "data": {}},
                {"id": "after", "type": "display", "data": {}},
            ],
            "edges": [
                {"id": "i", "source": "loop", "target": "each", "sourceHandle": "item"},
                {"id": "d", "source": "loop", "target": "after", "sourceHandle": "done"},
            ],
        })
        results = {"loop": ExecutionResult(node_id="loop", status="success", output={"items": [1, 2, 3]})}
        report = PropagationEngine().propagate(graph, results)

        assert graph.get_node("each").data == {"input": {"index": 2, "item": 3, "data": 3}}
        assert graph.get_node("after").data == {"input": {"status": "done", "count": 3, "data": [1, 2, 3]}}
        assert [t.edge_id for t in report.transfers] == ["i", "i", "i", "d"]
        assert len(report.conflicts) == 2
