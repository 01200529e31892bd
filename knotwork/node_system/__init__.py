"""
Node type dispatch table.

Maps every node type to the Node instance that knows its handle set,
its edge activation rule, its transfer rule as a target and its reactive
predicate. Extra transfer rules for (source type, target type) pairs are
registered with ``register_transfer_rule``.
"""

import logging
from typing import Any, Callable, Dict, Optional, Tuple

from knotwork.models.factory.Nodes import ModelFlowTypesModel
from knotwork.node_system.Node import Node, NodeSingleOutput
from knotwork.node_system.NodeCondition import NodeCondition, evaluate_condition
from knotwork.node_system.NodeDisplay import NodeDisplay, NodeResponse
from knotwork.node_system.NodeHttpRequest import NodeHttpRequest
from knotwork.node_system.NodeLoop import NodeLoop

logger = logging.getLogger(__name__)

WILDCARD = '*'

TransferRule = Callable[[Any, Dict[str, Any]], Optional[Dict[str, Any]]]

_node_map: Dict[str, type[Node]] = {
    ModelFlowTypesModel.HTTP_REQUEST: NodeHttpRequest,
    ModelFlowTypesModel.CONDITION: NodeCondition,
    ModelFlowTypesModel.LOOP: NodeLoop,
    ModelFlowTypesModel.RESPONSE: NodeResponse,
    ModelFlowTypesModel.DISPLAY: NodeDisplay,
    ModelFlowTypesModel.TABULIZE: NodeDisplay,
    ModelFlowTypesModel.DEBUG: NodeDisplay,
}

_instances: Dict[str, Node] = {}
_transfer_rules: Dict[Tuple[str, str], TransferRule] = {}


def get_node_spec(node_type: str) -> Node:
    """Node behaviour for ``node_type``; unknown types get a single unnamed output."""
    spec = _instances.get(node_type)
    if spec is None:
        constructor = _node_map.get(node_type, NodeSingleOutput)
        spec = constructor(node_type)
        _instances[node_type] = spec
    return spec


def register_transfer_rule(source_type: str, target_type: str, rule: TransferRule) -> None:
    """
    Register ``rule(payload, target_data) -> fields | None`` for a type pair.
    Either side may be ``'*'``. Registered rules take precedence over the
    target type's built-in rule.
    """
    logger.debug("Registering transfer rule %s -> %s", source_type, target_type)
    _transfer_rules[(source_type, target_type)] = rule


def unregister_transfer_rule(source_type: str, target_type: str) -> None:
    _transfer_rules.pop((source_type, target_type), None)


def resolve_transfer(
    source_type: str,
    target_type: str,
    payload: Any,
    target_data: Dict[str, Any],
) -> Optional[Dict[str, Any]]:
    """Fields the target receives for ``payload``, or None when no rule covers the pair."""
    for key in ((source_type, target_type), (source_type, WILDCARD), (WILDCARD, target_type)):
        rule = _transfer_rules.get(key)
        if rule is not None:
            return rule(payload, target_data)
    return get_node_spec(target_type).accept(source_type, payload, target_data)


__all__ = [
    "Node",
    "NodeSingleOutput",
    "NodeCondition",
    "NodeDisplay",
    "NodeResponse",
    "NodeHttpRequest",
    "NodeLoop",
    "evaluate_condition",
    "get_node_spec",
    "register_transfer_rule",
    "unregister_transfer_rule",
    "resolve_transfer",
    "WILDCARD",
]
