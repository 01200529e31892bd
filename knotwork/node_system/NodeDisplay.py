from typing import Any, Dict, Optional

from knotwork.models.factory.Nodes import ModelFlowTypesModel
from knotwork.node_system.Node import Node


def _field(value: Any, key: str) -> Any:
    return value.get(key) if isinstance(value, dict) else None


class NodeDisplay(Node):
    """
    Display sinks (display, tabulize, debug): whatever arrives lands in ``input``.

    Output of an HTTP request is unwrapped to its ``data`` body when present.
    """

    def accept(self, source_type: str, payload: Any, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if source_type == ModelFlowTypesModel.HTTP_REQUEST and isinstance(payload, dict) and 'data' in payload:
            return {'input': payload['data']}
        return {'input': payload}


class NodeResponse(Node):
    """Response viewer: only understands an HTTP request's output envelope."""

    def accept(self, source_type: str, payload: Any, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if source_type != ModelFlowTypesModel.HTTP_REQUEST:
            return None
        return {
            'status': _field(payload, 'status'),
            'response': _field(payload, 'data'),
        }
