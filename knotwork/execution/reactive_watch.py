"""
ReactiveWatchLayer - node-local executions outside the batch protocol.

Every node whose type declares a reactive predicate watches the source of
its first incoming edge. When the predicate rises from false (or unset) to
true, the node is executed once through the NodeRunner. The result is
written back on the node through the GraphModel; the layer never talks to
the ExecutionCoordinator.

Per-node state machine:

    IDLE --rising edge--> EXECUTING --completion--> IDLE

A rising edge observed while EXECUTING is dropped, but the observed value
is recorded, so the predicate has to fall and rise again to trigger anew.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Set, Union

from knotwork.backend.base import NodeRunner
from knotwork.events import EmitterRegistry, FlowEvent, FlowEventSeverity, FlowEventType
from knotwork.execution.handle_router import activations
from knotwork.execution.variables import VariableStore
from knotwork.graph_model import GraphChange, GraphChangeKind, GraphModel
from knotwork.models.factory.Nodes import payload_model_for
from knotwork.models.model_execution_result import ExecutionResult, ModelExecutionStatus
from knotwork.node_system import get_node_spec
from knotwork.util.template_parser import render_fields

logger = logging.getLogger(__name__)

EnvironmentSource = Union[Mapping[str, str], Callable[[], Mapping[str, str]]]


class WatchState(Enum):
    IDLE = "idle"
    EXECUTING = "executing"


class ReactiveWatchLayer:
    """
    Example:
        layer = ReactiveWatchLayer(graph, runner, environment=env_store.env)
        layer.start()
        graph.update_node_data("cond", {..., "istrue": True})  # request node fires
        await layer.drain()
    """

    def __init__(
        self,
        graph: GraphModel,
        runner: NodeRunner,
        environment: Optional[EnvironmentSource] = None,
        variables: Optional[VariableStore] = None,
        emitters: Optional[EmitterRegistry] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.graph = graph
        self.runner = runner
        self.variables = variables if variables is not None else VariableStore()
        self.emitters = emitters if emitters is not None else EmitterRegistry()
        self._environment = environment if environment is not None else {}
        self._loop = loop
        self._states: Dict[str, WatchState] = {}
        self._observed: Dict[str, bool] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._unsubscribe: Optional[Callable[[], None]] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self.graph.subscribe(self._on_change)
        for node in self.graph.nodes:
            self._evaluate(node.id)

    def stop(self) -> None:
        """Stop watching. Executions already in flight still complete."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def drain(self) -> None:
        """Wait until no reactive execution is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def state_of(self, node_id: str) -> WatchState:
        return self._states.get(node_id, WatchState.IDLE)

    def observed(self, node_id: str) -> Optional[bool]:
        """Last predicate value seen for ``node_id`` (None before the first evaluation)."""
        return self._observed.get(node_id)

    # ------------------------------------------------------------------
    # Change handling
    # ------------------------------------------------------------------

    def _watchers_of(self, source_id: str) -> list[str]:
        watchers = []
        for node in self.graph.nodes:
            if not get_node_spec(node.type).REACTIVE:
                continue
            incoming = self.graph.incoming_edges(node.id)
            if incoming and incoming[0].source == source_id:
                watchers.append(node.id)
        return watchers

    def _on_change(self, change: GraphChange) -> None:
        kind = change.kind
        if kind in (GraphChangeKind.NODE_DATA_UPDATED, GraphChangeKind.NODE_UPDATED):
            affected = self._watchers_of(change.node_id)
        elif kind in (GraphChangeKind.EDGE_ADDED, GraphChangeKind.EDGE_REMOVED, GraphChangeKind.EDGE_UPDATED):
            affected = [change.target] if change.target else []
        elif kind == GraphChangeKind.NODE_ADDED:
            affected = [change.node_id]
        elif kind == GraphChangeKind.NODE_REMOVED:
            self._forget(change.node_id)
            affected = []
        else:
            # CLEARED / LOADED: start over from the new graph
            for node_id in list(self._observed):
                if not self.graph.has_node(node_id):
                    self._forget(node_id)
            affected = self.graph.node_ids()

        for node_id in affected:
            self._evaluate(node_id)

    def _forget(self, node_id: str) -> None:
        self._observed.pop(node_id, None)
        self._states.pop(node_id, None)

    def _predicate(self, node_id: str) -> bool:
        node = self.graph.get_node(node_id)
        incoming = self.graph.incoming_edges(node_id)
        if node is None or not incoming:
            return False
        edge = incoming[0]
        source = self.graph.get_node(edge.source)
        if source is None:
            return False
        return get_node_spec(node.type).reactive_predicate(edge, source)

    def _evaluate(self, node_id: str) -> None:
        node = self.graph.get_node(node_id)
        if node is None or not get_node_spec(node.type).REACTIVE:
            return

        value = self._predicate(node_id)
        previous = self._observed.get(node_id, False)
        if not value or previous:
            self._observed[node_id] = value
            return

        if self.state_of(node_id) == WatchState.EXECUTING:
            self._observed[node_id] = True
            logger.info("Node %s: trigger ignored, an execution is already in flight", node_id)
            return
        # An unscheduled rising edge stays pending for the next evaluation
        self._observed[node_id] = self._trigger(node_id)

    def _trigger(self, node_id: str) -> bool:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = self._loop
        if loop is None or loop.is_closed():
            logger.warning("Node %s: predicate rose but no event loop is available to execute it", node_id)
            return False

        logger.info("Node %s: reactive trigger", node_id)
        self._states[node_id] = WatchState.EXECUTING
        task = loop.create_task(self._execute(node_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _current_environment(self) -> Dict[str, str]:
        source = self._environment
        env = source() if callable(source) else source
        return dict(env or {})

    def _render(self, node_id: str, env: Dict[str, str]) -> Dict[str, Any]:
        node = self.graph.require_node(node_id)
        params = {**env, **self.variables.snapshot()}
        fields = getattr(payload_model_for(node.type), 'TEMPLATED_FIELDS', ())
        node_dict = node.model_dump(mode='json')
        node_dict['data'] = render_fields(node.data, fields, params)
        return node_dict

    async def _run_node(self, node_id: str, env: Dict[str, str]) -> ExecutionResult:
        node_dict = self._render(node_id, env)
        raw = await self.runner.execute_node(node_dict, env)
        if isinstance(raw, ExecutionResult):
            return raw
        if isinstance(raw, dict):
            return ExecutionResult.model_validate({**raw, 'node_id': raw.get('node_id') or node_id})
        raise TypeError(f"Runner returned {type(raw).__name__}, expected an execution result")

    async def _execute(self, node_id: str) -> None:
        await self.emitters.emit(FlowEvent(event_type=FlowEventType.REACTIVE_TRIGGER, node_id=node_id))
        env = self._current_environment()
        try:
            result = await self._run_node(node_id, env)
        except Exception as e:
            logger.error("Node %s: reactive execution failed: %s", node_id, e)
            result = ExecutionResult(node_id=node_id, status=ModelExecutionStatus.ERROR, error=str(e))
            await self.emitters.emit(FlowEvent(
                event_type=FlowEventType.REACTIVE_ERROR,
                severity=FlowEventSeverity.ERROR,
                node_id=node_id,
                payload={'error': str(e)},
            ))
        else:
            await self.emitters.emit(FlowEvent(
                event_type=FlowEventType.REACTIVE_RESULT,
                severity=FlowEventSeverity.INFO if result.succeeded else FlowEventSeverity.WARN,
                node_id=node_id,
                payload={'status': result.status, **({'error': result.error} if result.error else {})},
            ))

        try:
            self._apply(node_id, result)
        finally:
            if self.graph.has_node(node_id):
                self._states[node_id] = WatchState.IDLE
            else:
                self._forget(node_id)

    def _apply(self, node_id: str, result: ExecutionResult) -> None:
        node = self.graph.get_node(node_id)
        if node is None:
            logger.debug("Node %s removed during its reactive execution; result dropped", node_id)
            return
        spec = get_node_spec(node.type)
        self.graph.update_node_data(node_id, {**node.data, **spec.reactive_annotation(result)})

        node = self.graph.require_node(node_id)
        active, inactive = [], []
        for edge in self.graph.outgoing_edges(node_id):
            (active if activations(edge, node, result) else inactive).append(edge.id)
        self.graph.set_edges_animated(inactive, False)
        self.graph.set_edges_animated(active, True)
