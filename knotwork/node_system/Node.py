import abc
import logging
from typing import Any, Dict, List, Optional

from knotwork.models.factory import EdgeNodeModel, NodeModel
from knotwork.models.model_execution_result import ExecutionResult

logger = logging.getLogger(__name__)


class Node(abc.ABC):
    """
    Behaviour attached to one node type.

    A node type declares:
      - its output handles (empty means a single unnamed output),
      - how a result activates an outgoing edge (source side),
      - how it accepts data arriving over an active edge (target side),
      - an optional reactive predicate over its upstream neighbour.

    Instances are stateless and shared by every node of the type.
    """
    OUTPUT_HANDLES: tuple[str, ...] = ()
    REACTIVE: bool = False

    def __init__(self, node_type: str):
        self.node_type = node_type

    def declares_handle(self, handle: Optional[str]) -> bool:
        """True if ``handle`` names an output of this type. None is the unnamed output."""
        if not self.OUTPUT_HANDLES:
            return handle is None
        return handle in self.OUTPUT_HANDLES

    def activations(self, edge: EdgeNodeModel, node: NodeModel, result: ExecutionResult) -> List[Any]:
        """
        Payloads delivered across ``edge`` for ``result``, one per firing.
        An empty list means the edge is inactive.
        """
        if not self.declares_handle(edge.handle):
            return []
        if result.succeeded:
            return [result.output]
        return []

    def accept(self, source_type: str, payload: Any, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Fields to replace in this node's data when ``payload`` arrives from a
        ``source_type`` node, or None when the pair has no transfer rule.
        """
        return None

    def reactive_predicate(self, edge: EdgeNodeModel, source: NodeModel) -> bool:
        """Whether the upstream ``source`` (reached via ``edge``) asks this node to execute."""
        return False

    def reactive_annotation(self, result: ExecutionResult) -> Dict[str, Any]:
        """Fields written on the node after a reactive execution."""
        return {'executionResult': result.to_data()}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.node_type!r})"


class NodeSingleOutput(Node):
    """Any node type with a single unnamed output and no built-in transfer."""
    pass
