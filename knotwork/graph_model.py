"""
GraphModel - canonical in-memory flow graph.

Holds nodes and edges in declaration order and publishes a GraphChange
to every subscriber after each mutation. Listeners must re-derive what
they need from the model; node data is only ever replaced wholesale.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from knotwork.errors import (
    DuplicateEdge,
    DuplicateNode,
    InvalidReference,
    SelfLoopEdge,
    UnknownEdge,
    UnknownNode,
)
from knotwork.models.factory import EdgeNodeModel, FlowModel, NodeModel

logger = logging.getLogger(__name__)


class GraphChangeKind(Enum):
    NODE_ADDED = "node_added"
    NODE_REMOVED = "node_removed"
    NODE_DATA_UPDATED = "node_data_updated"
    NODE_UPDATED = "node_updated"
    EDGE_ADDED = "edge_added"
    EDGE_REMOVED = "edge_removed"
    EDGE_UPDATED = "edge_updated"
    CLEARED = "cleared"
    LOADED = "loaded"


@dataclass(frozen=True)
class GraphChange:
    kind: GraphChangeKind
    node_id: Optional[str] = None
    edge_id: Optional[str] = None
    # Endpoints of an added/removed edge, so listeners can react after removal
    source: Optional[str] = None
    target: Optional[str] = None


GraphListener = Callable[[GraphChange], None]


class GraphModel:
    """
    Nodes, edges and handles of one flow.

    Mutations:
      - add_node / remove_node (cascades to incident edges)
      - add_edge (rejects missing endpoints and self-loops) / remove_edge
      - update_node_data (total replacement of ``data``)

    Handle correctness is not validated here; that happens at
    propagation time.
    """

    def __init__(
        self,
        nodes: Optional[Iterable[NodeModel | dict]] = None,
        edges: Optional[Iterable[EdgeNodeModel | dict]] = None,
    ):
        self._nodes: Dict[str, NodeModel] = {}
        self._edges: Dict[str, EdgeNodeModel] = {}
        self._listeners: List[GraphListener] = []
        for node in nodes or []:
            self.add_node(node)
        for edge in edges or []:
            self.add_edge(edge)

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, listener: GraphListener) -> Callable[[], None]:
        """Register a change listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, change: GraphChange) -> None:
        logger.debug("Graph change: %s node=%s edge=%s", change.kind.value, change.node_id, change.edge_id)
        # Copy: listeners may (un)subscribe while being notified
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("Graph listener %r failed on %s", listener, change.kind.value)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> List[NodeModel]:
        return list(self._nodes.values())

    @property
    def edges(self) -> List[EdgeNodeModel]:
        """Edges in declaration order."""
        return list(self._edges.values())

    def node_ids(self) -> List[str]:
        return list(self._nodes.keys())

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> Optional[NodeModel]:
        return self._nodes.get(node_id)

    def require_node(self, node_id: str) -> NodeModel:
        node = self._nodes.get(node_id)
        if node is None:
            raise UnknownNode(node_id)
        return node

    def get_edge(self, edge_id: str) -> Optional[EdgeNodeModel]:
        return self._edges.get(edge_id)

    def incoming_edges(self, node_id: str) -> List[EdgeNodeModel]:
        return [e for e in self._edges.values() if e.target == node_id]

    def outgoing_edges(self, node_id: str) -> List[EdgeNodeModel]:
        return [e for e in self._edges.values() if e.source == node_id]

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    # ------------------------------------------------------------------
    # Node mutations
    # ------------------------------------------------------------------

    def add_node(self, node: NodeModel | dict) -> NodeModel:
        if isinstance(node, dict):
            node = NodeModel.model_validate(node)
        if node.id in self._nodes:
            raise DuplicateNode(node.id)
        self._nodes[node.id] = node
        self._notify(GraphChange(GraphChangeKind.NODE_ADDED, node_id=node.id))
        return node

    def remove_node(self, node_id: str) -> NodeModel:
        node = self.require_node(node_id)
        for edge in [e for e in self._edges.values() if node_id in (e.source, e.target)]:
            self.remove_edge(edge.id)
        del self._nodes[node_id]
        self._notify(GraphChange(GraphChangeKind.NODE_REMOVED, node_id=node_id))
        return node

    def update_node_data(self, node_id: str, new_data: Dict[str, Any]) -> NodeModel:
        """
        Replace ``data`` of a node wholesale.

        id, type, position and draggable are preserved. The new dict is
        copied so later changes by the caller are not visible here.
        """
        node = self.require_node(node_id)
        updated = node.with_data(new_data)
        self._nodes[node_id] = updated
        self._notify(GraphChange(GraphChangeKind.NODE_DATA_UPDATED, node_id=node_id))
        return updated

    def set_draggable(self, draggable: bool) -> None:
        """Lock (False) or unlock (True) every node in the flow."""
        for node_id, node in list(self._nodes.items()):
            if node.draggable == draggable:
                continue
            self._nodes[node_id] = node.model_copy(update={'draggable': draggable})
            self._notify(GraphChange(GraphChangeKind.NODE_UPDATED, node_id=node_id))

    # ------------------------------------------------------------------
    # Edge mutations
    # ------------------------------------------------------------------

    def add_edge(self, edge: EdgeNodeModel | dict) -> EdgeNodeModel:
        if isinstance(edge, dict):
            edge = EdgeNodeModel.model_validate(edge)
        if edge.id in self._edges:
            raise DuplicateEdge(edge.id)
        missing = [nid for nid in (edge.source, edge.target) if nid not in self._nodes]
        if missing:
            raise InvalidReference(edge.id, missing)
        if edge.source == edge.target:
            raise SelfLoopEdge(edge.id, edge.source)
        self._edges[edge.id] = edge
        self._notify(GraphChange(
            GraphChangeKind.EDGE_ADDED, edge_id=edge.id, source=edge.source, target=edge.target
        ))
        return edge

    def remove_edge(self, edge_id: str) -> EdgeNodeModel:
        edge = self._edges.pop(edge_id, None)
        if edge is None:
            raise UnknownEdge(edge_id)
        self._notify(GraphChange(
            GraphChangeKind.EDGE_REMOVED, edge_id=edge_id, source=edge.source, target=edge.target
        ))
        return edge

    def set_edges_animated(self, edge_ids: Iterable[str], animated: bool) -> None:
        """Set the transient ``animated`` flag on the given edges."""
        for edge_id in edge_ids:
            edge = self._edges.get(edge_id)
            if edge is None or edge.animated == animated:
                continue
            self._edges[edge_id] = edge.model_copy(update={'animated': animated})
            self._notify(GraphChange(
                GraphChangeKind.EDGE_UPDATED, edge_id=edge_id, source=edge.source, target=edge.target
            ))

    # ------------------------------------------------------------------
    # Whole-graph operations
    # ------------------------------------------------------------------

    def clear(self) -> None:
        self._nodes.clear()
        self._edges.clear()
        self._notify(GraphChange(GraphChangeKind.CLEARED))

    def load(self, flow: FlowModel | dict) -> None:
        """Replace the whole graph with ``flow``; validated before anything changes."""
        staged = GraphModel.from_flow(flow)
        self._nodes = staged._nodes
        self._edges = staged._edges
        self._notify(GraphChange(GraphChangeKind.LOADED))

    def snapshot(self) -> FlowModel:
        """Deep copy of the current graph, detached from later mutations."""
        return FlowModel(
            nodes=[n.model_copy(deep=True) for n in self._nodes.values()],
            edges=[e.model_copy(deep=True) for e in self._edges.values()],
        )

    def to_flow(self) -> FlowModel:
        return self.snapshot()

    def to_dict(self) -> Dict[str, Any]:
        return self.snapshot().to_wire()

    @classmethod
    def from_flow(cls, flow: FlowModel | dict) -> "GraphModel":
        if isinstance(flow, dict):
            flow = FlowModel.model_validate(flow)
        return cls(nodes=flow.nodes, edges=flow.edges)
