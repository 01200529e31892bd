from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from knotwork.models.factory import EdgeNodeModel, NodeModel
from knotwork.models.factory.Nodes import ConditionNodeModel
from knotwork.models.model_execution_result import ExecutionResult
from knotwork.node_system.Node import Node

logger = logging.getLogger(__name__)


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == '')


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True)


def evaluate_condition(data: Dict[str, Any]) -> Optional[bool]:
    """
    Compute a condition node's boolean from its data.

    Returns None (indeterminate) when either operand is missing. Two
    numeric operands are compared as numbers, anything else by text.
    An explicit ``istrue`` flag wins over the comparison.
    """
    try:
        payload = ConditionNodeModel.model_validate(data or {})
    except ValidationError as e:
        logger.warning("Condition data is invalid, treating as indeterminate: %s", e)
        return None

    if payload.istrue is not None:
        return payload.istrue

    left, right = payload.input, payload.targetValue
    if _is_missing(left) or _is_missing(right):
        return None

    operator = payload.condition
    left_num, right_num = _as_number(left), _as_number(right)
    numeric = left_num is not None and right_num is not None
    left_text, right_text = _as_text(left), _as_text(right)

    if operator == 'equal':
        return left_num == right_num if numeric else left_text == right_text
    if operator == 'notEqual':
        return left_num != right_num if numeric else left_text != right_text
    if operator == 'greaterThan':
        return left_num > right_num if numeric else left_text > right_text
    if operator == 'lessThan':
        return left_num < right_num if numeric else left_text < right_text
    if operator == 'contains':
        return right_text in left_text

    logger.warning("Unknown condition operator '%s'; evaluating to false", operator)
    return False


class NodeCondition(Node):
    """Branching node: ``true`` fires when the comparison holds, ``false`` otherwise."""
    OUTPUT_HANDLE_TRUE = 'true'
    OUTPUT_HANDLE_FALSE = 'false'
    OUTPUT_HANDLES = (OUTPUT_HANDLE_TRUE, OUTPUT_HANDLE_FALSE)

    def outcome(self, node: NodeModel, result: Optional[ExecutionResult]) -> Optional[bool]:
        """
        The boolean for this execution. A boolean ``result`` in the backend
        output wins; otherwise the node's own data is evaluated.
        """
        if result is not None:
            if not result.succeeded:
                return None
            if isinstance(result.output, dict) and isinstance(result.output.get('result'), bool):
                return result.output['result']
        return evaluate_condition(node.data)

    def activations(self, edge: EdgeNodeModel, node: NodeModel, result: ExecutionResult) -> List[Any]:
        if not self.declares_handle(edge.handle):
            return []
        outcome = self.outcome(node, result)
        if outcome is None:
            logger.debug("Condition %s is indeterminate; no branch fires", node.id)
            return []
        selected = self.OUTPUT_HANDLE_TRUE if outcome else self.OUTPUT_HANDLE_FALSE
        if edge.handle != selected:
            return []
        return [result.output]
