import copy
from typing import Any, Dict, List, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator

from knotwork.models.factory.EdgeNodeModel import EdgeNodeModel
from knotwork.models.factory.Nodes import BaseNodeModel, ModelFlowType, payload_model_for

NODE_TYPES = frozenset(get_args(ModelFlowType))


class PositionModel(BaseModel):
    x: float = 0
    y: float = 0


class NodeModel(BaseModel):
    """
    A typed unit of work in the flow graph.

    ``data`` is the type-specific payload kept in its wire form; use
    ``payload()`` for the typed view. ``data`` is only ever replaced
    wholesale (see GraphModel.update_node_data).
    """
    model_config = ConfigDict(extra='allow')

    id: str
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)
    position: PositionModel = Field(default_factory=PositionModel)
    draggable: bool = True

    @field_validator('type')
    @classmethod
    def validate_type(cls, v: str) -> str:
        if v not in NODE_TYPES:
            raise ValueError(
                f"Unsupported node type: '{v}'. Available types: {sorted(NODE_TYPES)}"
            )
        return v

    @field_validator('data', mode='before')
    @classmethod
    def default_data(cls, v):
        return {} if v is None else v

    def payload(self) -> BaseNodeModel:
        """Typed payload for this node's type."""
        return payload_model_for(self.type).model_validate(self.data)

    def with_data(self, data: Dict[str, Any]) -> "NodeModel":
        """Copy of this node with ``data`` replaced wholesale."""
        return self.model_copy(update={'data': copy.deepcopy(data)})


class FlowModel(BaseModel):
    """
    Serialized flow graph: ``{nodes: [...], edges: [...]}``.

    This is both the persistence format and the payload submitted
    to the execution backend.
    """
    model_config = ConfigDict(extra='ignore')

    nodes: List[NodeModel] = Field(default_factory=list)
    edges: List[EdgeNodeModel] = Field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode='json')
