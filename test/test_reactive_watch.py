import asyncio
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from knotwork.events import CallbackEmitter, EmitterRegistry, FlowEventType
from knotwork.execution.coordinator import ExecutionCoordinator
from knotwork.execution.reactive_watch import ReactiveWatchLayer, WatchState
from knotwork.execution.variables import VariableStore
from knotwork.graph_model import GraphModel


def watched_flow():
    return GraphModel.from_flow({
        "nodes": [
            {"id": "cond", "type": "condition", "data": {"condition": "equal", "targetValue": "ready"}},
            {"id": "req", "type": "httpRequest",
             "data": {"method": "POST", "endpoint": "{{baseUrl}}/orders", "body": {"user": "{{userId}}", "tag": "{{unknown}}"}}},
            {"id": "done", "type": "debug", "data": {}},
            {"id": "oops", "type": "debug", "data": {}},
        ],
        "edges": [
            {"id": "watch", "source": "cond", "target": "req", "sourceHandle": "true"},
            {"id": "s", "source": "req", "target": "done", "sourceHandle": "success"},
            {"id": "f", "source": "req", "target": "oops", "sourceHandle": "failure"},
        ],
    })


class FakeRunner:
    """In-memory NodeRunner recording every node it is asked to run."""

    def __init__(self, reply=None, error=None, gate=None):
        self.reply = reply if reply is not None else {"status": "success", "output": {"status": 201, "data": {"ok": True}}}
        self.error = error
        self.gate = gate
        self.calls = []

    async def execute_node(self, node, env):
        self.calls.append((node, env))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.reply


class TestReactiveWatchLayer:

    def setup_method(self):
        self.graph = watched_flow()
        self.events = []
        self.emitters = EmitterRegistry().register(CallbackEmitter().add_sync_callback(self.events.append))
        self.variables = VariableStore({"userId": 42})

    def layer(self, runner):
        layer = ReactiveWatchLayer(
            self.graph, runner,
            environment={"baseUrl": "https://api.test"},
            variables=self.variables,
            emitters=self.emitters,
        )
        layer.start()
        return layer

    def set_condition_input(self, value, **extra):
        data = dict(self.graph.get_node("cond").data)
        data.update({"input": value}, **extra)
        self.graph.update_node_data("cond", data)

    @pytest.mark.asyncio
    async def test_rising_edge_triggers_exactly_once(self):
        runner = FakeRunner()
        layer = self.layer(runner)
        assert layer.observed("req") is False

        self.set_condition_input("ready")
        await layer.drain()
        assert len(runner.calls) == 1

        # Still true: no new trigger
        self.set_condition_input("ready", label="renamed")
        await layer.drain()
        assert len(runner.calls) == 1

        # Falls then rises again: a second trigger
        self.set_condition_input("waiting")
        self.set_condition_input("ready")
        await layer.drain()
        assert len(runner.calls) == 2

    @pytest.mark.asyncio
    async def test_templates_rendered_with_environment_and_variables(self):
        runner = FakeRunner()
        layer = self.layer(runner)
        self.set_condition_input("ready")
        await layer.drain()

        node, env = runner.calls[0]
        assert env == {"baseUrl": "https://api.test"}
        assert node["id"] == "req"
        assert node["data"]["endpoint"] == "https://api.test/orders"
        assert node["data"]["body"]["user"] == "42"
        assert node["data"]["body"]["tag"] == "{{ unknown }}"
        # The stored node keeps its templates
        assert self.graph.get_node("req").data["endpoint"] == "{{baseUrl}}/orders"

    @pytest.mark.asyncio
    async def test_result_written_back_and_edges_animated(self):
        layer = self.layer(FakeRunner())
        self.set_condition_input("ready")
        await layer.drain()

        data = self.graph.get_node("req").data
        assert data["lastResponse"] == {"success": True, "status": 201, "data": {"ok": True}}
        assert data["executionResult"]["status"] == "success"
        assert self.graph.get_edge("s").animated is True
        assert self.graph.get_edge("f").animated is False
        assert layer.state_of("req") == WatchState.IDLE
        types = [e.event_type for e in self.events]
        assert types == [FlowEventType.REACTIVE_TRIGGER, FlowEventType.REACTIVE_RESULT]

    @pytest.mark.asyncio
    async def test_false_handle_does_not_trigger(self):
        runner = FakeRunner()
        self.graph.remove_edge("watch")
        self.graph.add_edge({"id": "watch", "source": "cond", "target": "req", "sourceHandle": "false"})
        layer = self.layer(runner)
        self.set_condition_input("ready")
        await layer.drain()
        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_rising_edge_while_executing_is_ignored(self):
        gate = asyncio.Event()
        runner = FakeRunner(gate=gate)
        layer = self.layer(runner)

        self.set_condition_input("ready")
        await asyncio.sleep(0)
        assert layer.state_of("req") == WatchState.EXECUTING

        self.set_condition_input("waiting")
        self.set_condition_input("ready")
        gate.set()
        await layer.drain()

        assert len(runner.calls) == 1
        assert layer.observed("req") is True
        assert layer.state_of("req") == WatchState.IDLE

    @pytest.mark.asyncio
    async def test_runner_error_stays_on_triggering_node(self):
        self.graph.add_node({"id": "cond2", "type": "condition", "data": {"istrue": False}})
        self.graph.add_node({"id": "req2", "type": "httpRequest", "data": {"endpoint": "https://b.test"}})
        self.graph.add_edge({"id": "watch2", "source": "cond2", "target": "req2", "sourceHandle": "true"})

        class SelectiveRunner(FakeRunner):
            async def execute_node(self, node, env):
                self.calls.append((node, env))
                if node["id"] == "req":
                    raise ConnectionError("refused")
                return self.reply

        runner = SelectiveRunner()
        layer = self.layer(runner)
        self.set_condition_input("ready")
        self.graph.update_node_data("cond2", {"istrue": True})
        await layer.drain()

        failed = self.graph.get_node("req").data
        assert failed["executionResult"]["status"] == "error"
        assert failed["lastResponse"] == {"success": False, "status": 500, "error": "refused"}
        assert self.graph.get_edge("f").animated is True

        ok = self.graph.get_node("req2").data
        assert ok["executionResult"]["status"] == "success"
        assert FlowEventType.REACTIVE_ERROR in [e.event_type for e in self.events]

    @pytest.mark.asyncio
    async def test_stop_unsubscribes(self):
        runner = FakeRunner()
        layer = self.layer(runner)
        layer.stop()
        self.set_condition_input("ready")
        await layer.drain()
        assert runner.calls == []
        assert not layer.active

    @pytest.mark.asyncio
    async def test_new_incoming_edge_is_watched(self):
        runner = FakeRunner()
        self.graph.remove_edge("watch")
        self.set_condition_input("ready")
        layer = self.layer(runner)
        assert runner.calls == []

        self.graph.add_edge({"id": "watch", "source": "cond", "target": "req", "sourceHandle": "true"})
        await layer.drain()
        assert len(runner.calls) == 1

    def test_rising_edge_without_event_loop_stays_pending(self):
        runner = FakeRunner()
        self.set_condition_input("ready")
        layer = self.layer(runner)
        assert layer.observed("req") is False
        assert layer.state_of("req") == WatchState.IDLE

        async def touch_condition():
            self.set_condition_input("ready", label="touched")
            await layer.drain()

        asyncio.run(touch_condition())
        assert len(runner.calls) == 1
        assert layer.observed("req") is True

    @pytest.mark.asyncio
    async def test_condition_stamped_by_batch_run_triggers(self):
        class StampingExecutor:
            async def execute_flow(self, flow, env):
                return {"results": {"cond": {"status": "success", "output": {"result": True}}}, "variables": {}}

        runner = FakeRunner()
        layer = self.layer(runner)
        assert layer.observed("req") is False

        coordinator = ExecutionCoordinator(StampingExecutor(), variables=self.variables)
        response = await coordinator.run(self.graph, {})
        await layer.drain()

        assert response.result_for("cond").succeeded
        assert "watch" in coordinator.last_report.active_edge_ids
        assert len(runner.calls) == 1
        assert self.graph.get_node("req").data["lastResponse"]["success"] is True

    @pytest.mark.asyncio
    async def test_stamped_failed_condition_does_not_trigger(self):
        runner = FakeRunner()
        layer = self.layer(runner)
        data = {**self.graph.get_node("cond").data, "input": "ready",
                "executionResult": {"node_id": "cond", "status": "error", "error": "bad operand"}}
        self.graph.update_node_data("cond", data)
        await layer.drain()
        assert runner.calls == []
