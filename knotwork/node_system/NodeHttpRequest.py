import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from knotwork.models.factory import EdgeNodeModel, NodeModel
from knotwork.models.factory.Nodes import ModelFlowTypesModel
from knotwork.models.model_execution_result import ExecutionResult
from knotwork.node_system.Node import Node
from knotwork.node_system.NodeCondition import NodeCondition

logger = logging.getLogger(__name__)


class NodeHttpRequest(Node):
    """
    HTTP request node: exactly one of ``success`` / ``failure`` fires per execution.

    Also reactive: when its upstream neighbour is a condition node whose
    boolean turns true and the connecting edge leaves the ``true`` handle,
    the node asks to be executed on its own.
    """
    OUTPUT_HANDLE_SUCCESS = 'success'
    OUTPUT_HANDLE_FAILURE = 'failure'
    OUTPUT_HANDLES = (OUTPUT_HANDLE_SUCCESS, OUTPUT_HANDLE_FAILURE)
    REACTIVE = True

    def activations(self, edge: EdgeNodeModel, node: NodeModel, result: ExecutionResult) -> List[Any]:
        handle = edge.handle
        if handle == self.OUTPUT_HANDLE_SUCCESS and result.succeeded:
            return [result.output]
        if handle == self.OUTPUT_HANDLE_FAILURE and not result.succeeded:
            if result.output is None:
                return [{'error': result.error}]
            return [result.output]
        return []

    def reactive_predicate(self, edge: EdgeNodeModel, source: NodeModel) -> bool:
        if source.type != ModelFlowTypesModel.CONDITION:
            return False
        if edge.handle != 'true':
            return False
        condition = NodeCondition(ModelFlowTypesModel.CONDITION)
        return condition.outcome(source, self.stamped_result(source)) is True

    @staticmethod
    def stamped_result(source: NodeModel) -> Optional[ExecutionResult]:
        """The ``executionResult`` a batch run stamped on ``source``, if any."""
        stamped = source.data.get('executionResult')
        if not isinstance(stamped, dict):
            return None
        try:
            return ExecutionResult.model_validate({'node_id': source.id, **stamped})
        except ValidationError as e:
            logger.debug("Node %s carries an unreadable executionResult: %s", source.id, e)
            return None

    def reactive_annotation(self, result: ExecutionResult) -> Dict[str, Any]:
        return {
            'lastResponse': self.last_response_from(result),
            'executionResult': result.to_data(),
        }

    @staticmethod
    def last_response_from(result: ExecutionResult) -> Dict[str, Any]:
        """``lastResponse`` annotation shaped like the request node displays it."""
        output = result.output if isinstance(result.output, dict) else {}
        response: Dict[str, Any] = {
            'success': result.succeeded,
            'status': output.get('status', 200 if result.succeeded else 500),
        }
        if 'data' in output:
            response['data'] = output['data']
        elif result.output is not None and not isinstance(result.output, dict):
            response['data'] = result.output
        if result.error:
            response['error'] = result.error
        return response
