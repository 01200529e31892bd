import logging
from typing import Any, List, Optional

from knotwork.models.factory import EdgeNodeModel, NodeModel
from knotwork.models.model_execution_result import ExecutionResult
from knotwork.node_system.Node import Node

logger = logging.getLogger(__name__)


class NodeLoop(Node):
    """
    Loop node: ``item`` fires once per element, ``done`` once after exhaustion.

    The backend iterates; the core reads one of three result shapes:
      - ``{"items": [...]}``: the whole iteration in one result. ``item``
        fires per element in order, then ``done`` carries the array.
      - ``{"index": i, "item": x}``: a single step. Only ``item`` fires.
      - ``{"status": "done", "index": n}``: the exhaustion step. Only ``done``
        fires, counting ``n`` iterations when no ``data`` array is given.
    """
    OUTPUT_HANDLE_ITEM = 'item'
    OUTPUT_HANDLE_BODY = 'body'  # legacy name of 'item'
    OUTPUT_HANDLE_DONE = 'done'
    OUTPUT_HANDLES = (OUTPUT_HANDLE_ITEM, OUTPUT_HANDLE_BODY, OUTPUT_HANDLE_DONE)

    @staticmethod
    def item_payload(index: int, item: Any) -> dict:
        return {'index': index, 'item': item, 'data': item}

    @staticmethod
    def done_payload(items: List[Any], count: Optional[int] = None) -> dict:
        return {'status': 'done', 'count': len(items) if count is None else count, 'data': items}

    def activations(self, edge: EdgeNodeModel, node: NodeModel, result: ExecutionResult) -> List[Any]:
        if not self.declares_handle(edge.handle) or not result.succeeded:
            return []
        output = result.output if isinstance(result.output, dict) else {}
        is_item_edge = edge.handle in (self.OUTPUT_HANDLE_ITEM, self.OUTPUT_HANDLE_BODY)

        items = output.get('items')
        if items is None and isinstance(result.output, list):
            items = result.output
        if isinstance(items, list):
            if is_item_edge:
                return [self.item_payload(i, item) for i, item in enumerate(items)]
            return [self.done_payload(items)]

        if output.get('status') == 'done':
            if is_item_edge:
                return []
            data = output.get('data')
            if isinstance(data, list):
                return [self.done_payload(data)]
            index = output.get('index')
            return [self.done_payload([], index if isinstance(index, int) else 0)]

        if 'item' in output:
            if not is_item_edge:
                return []
            return [self.item_payload(output.get('index', 0), output['item'])]

        logger.warning("Loop %s returned an output with no items; nothing fires", node.id)
        return []
