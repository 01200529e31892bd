"""
ExecutionCoordinator - drives one batch run of the whole graph.

A run snapshots the graph, submits it to the FlowExecutor, validates the
reply and then, in order: stamps results on nodes, replaces the variables,
propagates along active edges, animates them and publishes the outcome.
A failed round trip leaves the graph and the variables untouched.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Dict, List, Mapping, Optional

from pydantic import ValidationError

from knotwork.backend.base import FlowExecutor
from knotwork.errors import ExecutionFailed, RunInProgress
from knotwork.events import EmitterRegistry, FlowEvent, FlowEventSeverity, FlowEventType, RunOutcome
from knotwork.execution.propagation import PropagationEngine, PropagationReport
from knotwork.execution.variables import VariableStore
from knotwork.graph_model import GraphModel
from knotwork.models.model_execution_result import ExecutionResponse
from knotwork.util.telemetry import timed_call

logger = logging.getLogger(__name__)


class ExecutionCoordinator:
    """
    Batch run driver.

    Only one run may be in flight per coordinator; a second call to
    ``run`` raises RunInProgress instead of queueing.

    Example:
        coordinator = ExecutionCoordinator(FlowBackendClient(url))
        response = await coordinator.run(graph, environment)
        print(coordinator.last_outcome.message)
    """

    def __init__(
        self,
        executor: FlowExecutor,
        variables: Optional[VariableStore] = None,
        emitters: Optional[EmitterRegistry] = None,
        engine: Optional[PropagationEngine] = None,
        debug: bool = False,
    ):
        self.executor = executor
        self.variables = variables if variables is not None else VariableStore()
        self.emitters = emitters if emitters is not None else EmitterRegistry()
        self.engine = engine or PropagationEngine()
        self.debug = debug
        self.last_response: Optional[ExecutionResponse] = None
        self.last_report: Optional[PropagationReport] = None
        self.last_outcome: Optional[RunOutcome] = None
        self._current_run: Optional[str] = None

    @property
    def running(self) -> bool:
        return self._current_run is not None

    def clear_variables(self) -> None:
        self.variables.clear()

    async def _emit(self, event_type: FlowEventType, run_id: str, severity=FlowEventSeverity.INFO, **kwargs) -> None:
        await self.emitters.emit(FlowEvent(event_type=event_type, severity=severity, run_id=run_id, **kwargs))

    async def run(self, graph: GraphModel, environment: Mapping[str, str]) -> ExecutionResponse:
        if self._current_run is not None:
            logger.warning("Run rejected: run %s is still in flight", self._current_run)
            await self._emit(
                FlowEventType.RUN_REJECTED, self._current_run, FlowEventSeverity.WARN,
                payload={'message': 'A batch run is already in progress'}
            )
            raise RunInProgress(self._current_run)

        # Claimed before the first await so a concurrent call sees it
        run_id = uuid.uuid4().hex
        self._current_run = run_id
        try:
            return await self._run(run_id, graph, environment)
        finally:
            self._current_run = None

    async def _run(self, run_id: str, graph: GraphModel, environment: Mapping[str, str]) -> ExecutionResponse:
        start_time = time.monotonic()
        snapshot = graph.snapshot()
        submitted_ids = [n.id for n in snapshot.nodes]
        logger.info("Run %s: submitting %d node(s), %d edge(s)", run_id, len(snapshot.nodes), len(snapshot.edges))
        await self._emit(
            FlowEventType.RUN_START, run_id,
            payload={'nodes': len(snapshot.nodes), 'edges': len(snapshot.edges)}
        )

        try:
            response = await self._submit(snapshot, dict(environment))
            self._check_keys(response, submitted_ids)
        except ExecutionFailed as e:
            logger.error("Run %s failed: %s", run_id, e.reason)
            await self._emit(
                FlowEventType.RUN_FAILED, run_id, FlowEventSeverity.ERROR,
                payload={'error': e.reason}
            )
            raise

        await self._stamp(run_id, graph, response)
        self.variables.replace(response.variables)
        report = self.engine.propagate(graph, response.results)
        self._animate(graph, response, report)
        await self._emit_propagation(run_id, report)

        duration_ms = (time.monotonic() - start_time) * 1000
        outcome = RunOutcome.from_response(run_id, response, submitted_ids, duration_ms)
        self.last_response = response
        self.last_report = report
        self.last_outcome = outcome

        if outcome.all_succeeded:
            logger.info("Run %s: %s", run_id, outcome.message)
        else:
            logger.warning("Run %s: %s", run_id, outcome.message)
        await self._emit(
            FlowEventType.RUN_END, run_id,
            FlowEventSeverity.INFO if outcome.all_succeeded else FlowEventSeverity.WARN,
            payload={**outcome.to_dict(), 'propagation': report.to_dict()}
        )
        return response

    @timed_call
    async def _submit(self, snapshot, environment: Dict[str, str]) -> ExecutionResponse:
        try:
            raw = await self.executor.execute_flow(snapshot, environment)
        except ExecutionFailed:
            raise
        except Exception as e:
            raise ExecutionFailed(f"Executor unreachable: {e}", e) from e

        if isinstance(raw, ExecutionResponse):
            return raw
        try:
            return ExecutionResponse.model_validate(raw)
        except ValidationError as e:
            raise ExecutionFailed(f"Malformed execution response: {e}", e) from e

    @staticmethod
    def _check_keys(response: ExecutionResponse, submitted_ids: List[str]) -> None:
        unknown = sorted(set(response.results) - set(submitted_ids))
        if unknown:
            raise ExecutionFailed(
                f"Malformed execution response: results for nodes that were not submitted: {unknown}"
            )

    async def _stamp(self, run_id: str, graph: GraphModel, response: ExecutionResponse) -> None:
        for node_id, result in response.results.items():
            node = graph.get_node(node_id)
            if node is None:
                # Removed while the run was in flight
                logger.debug("Run %s: node %s no longer exists; not stamped", run_id, node_id)
                continue
            graph.update_node_data(node_id, {**node.data, 'executionResult': result.to_data()})
            await self._emit(
                FlowEventType.NODE_STAMPED, run_id,
                FlowEventSeverity.ERROR if result.status == 'error' else FlowEventSeverity.DEBUG,
                node_id=node_id,
                payload={'status': result.status, **({'error': result.error} if result.error else {})}
            )

    @staticmethod
    def _animate(graph: GraphModel, response: ExecutionResponse, report: PropagationReport) -> None:
        active = set(report.active_edge_ids)
        executed = set(response.results)
        inactive = [e.id for e in graph.edges if e.source in executed and e.id not in active]
        graph.set_edges_animated(inactive, False)
        graph.set_edges_animated(report.active_edge_ids, True)

    async def _emit_propagation(self, run_id: str, report: PropagationReport) -> None:
        for transfer in report.transfers:
            await self._emit(
                FlowEventType.EDGE_PROPAGATED, run_id, FlowEventSeverity.DEBUG,
                node_id=transfer.target_id, edge_id=transfer.edge_id,
                payload={'fields': sorted(transfer.fields)}
            )
        for conflict in report.conflicts:
            await self._emit(
                FlowEventType.TRANSFER_CONFLICT, run_id, FlowEventSeverity.WARN,
                node_id=conflict.target_id, edge_id=conflict.overwritten_by_edge,
                payload={
                    'field': conflict.field,
                    'previous_edge': conflict.previous_edge,
                    'message': f"field '{conflict.field}' overwritten",
                }
            )
