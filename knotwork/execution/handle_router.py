"""
HandleRouter - decides which outgoing edges of an executed node are active.

Routing is a pure function of (edge, executed node, result). The node type
dispatch table supplies the per-type rule; the router only adds the cases
shared by every type: missing node, missing result, undeclared handle.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from knotwork.models.factory import EdgeNodeModel, NodeModel
from knotwork.models.model_execution_result import ExecutionResult
from knotwork.node_system import get_node_spec

logger = logging.getLogger(__name__)


def activations(
    edge: EdgeNodeModel,
    executed_node: Optional[NodeModel],
    result: Optional[ExecutionResult],
) -> List[Any]:
    """
    Payloads to deliver across ``edge``, one per firing.

    An empty list means the edge is inactive. Loop ``item`` edges may fire
    several times; every other edge fires at most once.
    """
    if executed_node is None or result is None:
        return []
    spec = get_node_spec(executed_node.type)
    if not spec.declares_handle(edge.handle):
        logger.debug(
            "Edge %s: handle %r is not declared by %s; inert",
            edge.id, edge.handle, executed_node.type
        )
        return []
    return spec.activations(edge, executed_node, result)


def is_active(
    edge: EdgeNodeModel,
    executed_node: Optional[NodeModel],
    result: Optional[ExecutionResult],
) -> bool:
    return bool(activations(edge, executed_node, result))


def active_handles(node: NodeModel, result: Optional[ExecutionResult]) -> List[Optional[str]]:
    """Declared handles of ``node`` that ``result`` activates, in declaration order."""
    if result is None:
        return []
    spec = get_node_spec(node.type)
    handles = spec.OUTPUT_HANDLES or (None,)
    active = []
    for handle in handles:
        synthetic_edge = EdgeNodeModel(id=f"{node.id}:{handle}", source=node.id, target=node.id, sourceHandle=handle)
        if spec.activations(synthetic_edge, node, result):
            active.append(handle)
    return active


class HandleRouter:
    """
    Stateless router bound to a results mapping.

    Example:
        router = HandleRouter(response.results)
        for edge in graph.outgoing_edges(node_id):
            if router.is_active(edge, graph.get_node(node_id)):
                ...
    """

    def __init__(self, results: Optional[Mapping[str, ExecutionResult]] = None):
        self._results: Dict[str, ExecutionResult] = dict(results or {})

    def result_for(self, node_id: str) -> Optional[ExecutionResult]:
        return self._results.get(node_id)

    def activations(self, edge: EdgeNodeModel, executed_node: Optional[NodeModel]) -> List[Any]:
        result = self._results.get(edge.source)
        return activations(edge, executed_node, result)

    def is_active(self, edge: EdgeNodeModel, executed_node: Optional[NodeModel]) -> bool:
        return bool(self.activations(edge, executed_node))
