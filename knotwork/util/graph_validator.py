"""
Graph Validator - pre-run checks for flow graphs.

Findings are plain dicts ``{type, severity, error_message, ...}``. Nothing
here raises: the GraphModel already rejects what cannot be represented,
and the validator reports what can be represented but will not route.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Union

import networkx as nx

from knotwork.graph_model import GraphModel
from knotwork.models.factory import EdgeNodeModel, FlowModel, NodeModel
from knotwork.models.factory.Nodes import ModelFlowTypesModel
from knotwork.node_system import get_node_spec

logger = logging.getLogger(__name__)

GraphLike = Union[GraphModel, FlowModel]

# Node types whose every declared handle is expected to lead somewhere
BRANCH_TYPES = (ModelFlowTypesModel.CONDITION, ModelFlowTypesModel.HTTP_REQUEST)


def _parts(graph: GraphLike) -> tuple[List[NodeModel], List[EdgeNodeModel]]:
    return list(graph.nodes), list(graph.edges)


def build_digraph(nodes: Iterable[NodeModel], edges: Iterable[EdgeNodeModel]) -> nx.DiGraph:
    """Directed graph of node ids, edges in declaration order."""
    digraph = nx.DiGraph()
    for node in nodes:
        digraph.add_node(node.id, type=node.type)
    for edge in edges:
        if edge.source in digraph and edge.target in digraph:
            digraph.add_edge(edge.source, edge.target, id=edge.id)
    return digraph


def validate_edge_connectivity(
    nodes: List[NodeModel],
    edges: List[EdgeNodeModel]
) -> List[Dict[str, Any]]:
    """
    Checks:
    1. Source and target nodes exist
    2. No duplicate edges
    3. No self-loops
    """
    errors = []
    node_ids = {n.id for n in nodes}
    seen_edges = set()

    for edge in edges:
        if edge.source not in node_ids:
            errors.append({
                "type": "InvalidEdgeSource",
                "severity": "error",
                "edge_id": edge.id,
                "error_message": f"Edge references non-existent source node: '{edge.source}'",
                "source": edge.source,
                "target": edge.target
            })

        if edge.target not in node_ids:
            errors.append({
                "type": "InvalidEdgeTarget",
                "severity": "error",
                "edge_id": edge.id,
                "error_message": f"Edge references non-existent target node: '{edge.target}'",
                "source": edge.source,
                "target": edge.target
            })

        if edge.source == edge.target:
            errors.append({
                "type": "SelfLoopEdge",
                "severity": "error",
                "edge_id": edge.id,
                "error_message": f"Edge creates a self-loop on node: '{edge.source}'",
                "node_id": edge.source
            })

        edge_key = (edge.source, edge.target, edge.handle, edge.targetHandle)
        if edge_key in seen_edges:
            errors.append({
                "type": "DuplicateEdge",
                "severity": "warning",
                "edge_id": edge.id,
                "error_message": (
                    f"Duplicate edge: {edge.source}.{edge.handle} -> "
                    f"{edge.target}.{edge.targetHandle}"
                ),
                "source": edge.source,
                "target": edge.target,
                "sourceHandle": edge.sourceHandle,
                "targetHandle": edge.targetHandle
            })
        seen_edges.add(edge_key)

    return errors


def validate_handles(
    nodes: List[NodeModel],
    edges: List[EdgeNodeModel]
) -> List[Dict[str, Any]]:
    """
    Checks:
    1. Every edge leaves a handle its source type declares (otherwise it never fires)
    2. Branch nodes have an outgoing edge for each declared handle
    """
    errors = []
    by_id = {n.id: n for n in nodes}

    for edge in edges:
        source = by_id.get(edge.source)
        if source is None:
            continue
        spec = get_node_spec(source.type)
        if not spec.declares_handle(edge.handle):
            errors.append({
                "type": "InertHandle",
                "severity": "warning",
                "edge_id": edge.id,
                "node_id": source.id,
                "error_message": (
                    f"Edge '{edge.id}' leaves handle {edge.handle!r} which '{source.type}' "
                    "does not declare; it will never be active"
                ),
                "declared_handles": list(spec.OUTPUT_HANDLES),
                "suggestion": (
                    f"Use one of {list(spec.OUTPUT_HANDLES)} as sourceHandle"
                    if spec.OUTPUT_HANDLES else "Remove the sourceHandle from the edge"
                )
            })

    for node in nodes:
        if node.type not in BRANCH_TYPES:
            continue
        declared = get_node_spec(node.type).OUTPUT_HANDLES
        edge_handles = {e.handle for e in edges if e.source == node.id}
        if not edge_handles:
            continue
        missing = [h for h in declared if h not in edge_handles]
        if missing:
            errors.append({
                "type": "MissingBranchEdge",
                "severity": "info",
                "node_id": node.id,
                "error_message": (
                    f"'{node.type}' node '{node.id}' has no outgoing edge for: {missing}"
                ),
                "declared_handles": list(declared),
                "actual_handles": sorted(h for h in edge_handles if h is not None),
                "missing_handles": missing
            })

    return errors


def validate_cycles(
    nodes: List[NodeModel],
    edges: List[EdgeNodeModel]
) -> List[Dict[str, Any]]:
    """Cycles are errors, except those passing through a loop node (iteration back-edges)."""
    errors = []
    types = {n.id: n.type for n in nodes}
    digraph = build_digraph(nodes, edges)

    for cycle in nx.simple_cycles(digraph):
        through_loop = any(types.get(node_id) == ModelFlowTypesModel.LOOP for node_id in cycle)
        errors.append({
            "type": "LoopCycle" if through_loop else "Cycle",
            "severity": "info" if through_loop else "error",
            "nodes": list(cycle),
            "error_message": (
                f"Cycle {' -> '.join(cycle + [cycle[0]])}"
                + (" passes through a loop node" if through_loop else " has no loop node")
            )
        })
    return errors


def execution_order(graph: GraphLike) -> List[str]:
    """
    Node ids in topological order. Cyclic graphs fall back to
    declaration order.
    """
    nodes, edges = _parts(graph)
    digraph = build_digraph(nodes, edges)
    declared = {n.id: i for i, n in enumerate(nodes)}
    try:
        return list(nx.lexicographical_topological_sort(digraph, key=lambda nid: declared[nid]))
    except nx.NetworkXUnfeasible:
        logger.debug("Graph has cycles; using declaration order")
        return [n.id for n in nodes]


def run_all_validations(graph: GraphLike) -> List[Dict[str, Any]]:
    """
    Run all graph validations.

    Args:
        graph: A GraphModel or FlowModel

    Returns:
        Combined list of all findings
    """
    nodes, edges = _parts(graph)
    errors = []
    errors.extend(validate_edge_connectivity(nodes, edges))
    errors.extend(validate_handles(nodes, edges))
    errors.extend(validate_cycles(nodes, edges))
    for error in errors:
        logger.debug("Validation %s [%s]: %s", error["type"], error["severity"], error["error_message"])
    return errors


def has_errors(findings: List[Dict[str, Any]]) -> bool:
    return any(f.get("severity") == "error" for f in findings)
