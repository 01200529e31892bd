import json
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from knotwork.errors import FlowStoreError
from knotwork.graph_model import GraphModel
from knotwork.storage import JsonEnvironmentStore, RequestTemplateStore, list_flows, load_flow, save_flow
from knotwork.storage.flow_store import load_graph


FLOW = {
    "nodes": [
        {"id": "start", "type": "start", "data": {"label": "Start"}, "position": {"x": 10, "y": 20}},
        {"id": "req", "type": "httpRequest",
         "data": {"method": "GET", "endpoint": "https://api.test", "headers": {"Authorization": "Bearer x"}},
         "position": {"x": 200, "y": 20}, "draggable": False},
        {"id": "cond", "type": "condition", "data": {"condition": "equal", "targetValue": "200"},
         "position": {"x": 400, "y": 20}},
    ],
    "edges": [
        {"id": "e1", "source": "start", "target": "req"},
        {"id": "e2", "source": "req", "target": "cond", "sourceHandle": "success", "animated": True,
         "style": {"stroke": "#0f0"}},
    ],
}


class TestFlowStore:

    def test_round_trip_is_isomorphic(self, tmp_path):
        graph = GraphModel.from_flow(FLOW)
        path = save_flow(tmp_path / "flows" / "orders.json", graph)

        loaded = load_flow(path)
        assert {n.id: (n.type, n.data, n.draggable) for n in loaded.nodes} == \
               {n.id: (n.type, n.data, n.draggable) for n in graph.nodes}
        assert {(e.source, e.target, e.sourceHandle) for e in loaded.edges} == \
               {(e.source, e.target, e.sourceHandle) for e in graph.edges}
        assert loaded.edges[1].style == {"stroke": "#0f0"}

    def test_file_is_pretty_json(self, tmp_path):
        path = save_flow(tmp_path / "f.json", FLOW)
        text = path.read_text(encoding="utf-8")
        assert text.startswith("{\n")
        assert json.loads(text)["nodes"][0]["id"] == "start"

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{ nope", encoding="utf-8")
        with pytest.raises(FlowStoreError) as exc:
            load_flow(path)
        assert "invalid JSON" in str(exc.value)

    def test_invalid_flow_raises(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"nodes": [{"id": "x", "type": "warp"}]}), encoding="utf-8")
        with pytest.raises(FlowStoreError):
            load_flow(path)

    def test_dangling_edge_raises_on_load_graph(self, tmp_path):
        path = tmp_path / "dangling.json"
        path.write_text(json.dumps({
            "nodes": [{"id": "a", "type": "debug"}],
            "edges": [{"id": "e", "source": "a", "target": "b"}],
        }), encoding="utf-8")
        load_flow(path)
        with pytest.raises(FlowStoreError):
            load_graph(path)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FlowStoreError):
            load_flow(tmp_path / "nope.json")

    def test_list_flows(self, tmp_path):
        (tmp_path / "b.json").write_text("{}", encoding="utf-8")
        (tmp_path / "a.json").write_text("{}", encoding="utf-8")
        (tmp_path / "notes.txt").write_text("", encoding="utf-8")
        found = list_flows([tmp_path, tmp_path / "missing"])
        assert [p.name for p in found] == ["a.json", "b.json"]


class TestJsonEnvironmentStore:

    def test_missing_file_is_empty(self, tmp_path):
        assert JsonEnvironmentStore(tmp_path / "env.json").read() == {}

    @pytest.mark.asyncio
    async def test_save_and_load(self, tmp_path):
        store = JsonEnvironmentStore(tmp_path / "nested" / "env.json")
        await store.save_environment({"baseUrl": "https://api.test", "token": "abc"})
        assert await JsonEnvironmentStore(tmp_path / "nested" / "env.json").load_environment() == {
            "baseUrl": "https://api.test", "token": "abc"
        }
        assert store.env() == {"baseUrl": "https://api.test", "token": "abc"}

    def test_values_are_strings(self, tmp_path):
        path = tmp_path / "env.json"
        path.write_text(json.dumps({"port": 8080}), encoding="utf-8")
        assert JsonEnvironmentStore(path).read() == {"port": "8080"}

    def test_non_object_rejected(self, tmp_path):
        path = tmp_path / "env.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(FlowStoreError):
            JsonEnvironmentStore(path).read()


class TestRequestTemplateStore:

    def test_missing_file_is_empty(self, tmp_path):
        assert RequestTemplateStore(tmp_path / "requests.json").load_templates() == []

    def test_save_replaces_by_id(self, tmp_path):
        store = RequestTemplateStore(tmp_path / "requests.json")
        store.save_template({"id": "t1", "name": "Users", "method": "GET", "endpoint": "{{baseUrl}}/users"})
        store.save_template({"id": "t2", "name": "Health", "endpoint": "/health"})
        store.save_template({"id": "t1", "name": "Users v2", "method": "POST", "endpoint": "{{baseUrl}}/users",
                             "body": {"name": "{{name}}"}})

        templates = RequestTemplateStore(tmp_path / "requests.json").load_templates()
        assert [t.id for t in templates] == ["t1", "t2"]
        assert templates[0].name == "Users v2"
        assert templates[0].node_data() == {
            "name": "Users v2", "method": "POST", "endpoint": "{{baseUrl}}/users", "body": {"name": "{{name}}"}
        }

    def test_invalid_document_rejected(self, tmp_path):
        path = tmp_path / "requests.json"
        path.write_text(json.dumps({"id": "t1"}), encoding="utf-8")
        with pytest.raises(FlowStoreError):
            RequestTemplateStore(path).load_templates()
