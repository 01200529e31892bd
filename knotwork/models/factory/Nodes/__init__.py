from knotwork.models.factory.Nodes.BaseNodeModel import (
    BaseNodeModel,
    ModelFlowType,
    ModelFlowTypesModel,
)
from knotwork.models.factory.Nodes.HttpRequestNodeModel import HttpRequestNodeModel
from knotwork.models.factory.Nodes.ConditionNodeModel import ConditionNodeModel
from knotwork.models.factory.Nodes.LoopNodeModel import LoopNodeModel
from knotwork.models.factory.Nodes.CaptureNodeModel import CaptureNodeModel, CounterNodeModel
from knotwork.models.factory.Nodes.DisplayNodeModel import DisplayNodeModel, ResponseNodeModel

__all__ = [
    "BaseNodeModel",
    "ModelFlowType",
    "ModelFlowTypesModel",
    "HttpRequestNodeModel",
    "ConditionNodeModel",
    "LoopNodeModel",
    "CaptureNodeModel",
    "CounterNodeModel",
    "DisplayNodeModel",
    "ResponseNodeModel",
    "PAYLOAD_MODELS",
    "payload_model_for",
]

# Typed payload per node type; types without a dedicated model use BaseNodeModel
PAYLOAD_MODELS: dict[str, type[BaseNodeModel]] = {
    ModelFlowTypesModel.HTTP_REQUEST: HttpRequestNodeModel,
    ModelFlowTypesModel.RESPONSE: ResponseNodeModel,
    ModelFlowTypesModel.CONDITION: ConditionNodeModel,
    ModelFlowTypesModel.LOOP: LoopNodeModel,
    ModelFlowTypesModel.CAPTURE: CaptureNodeModel,
    ModelFlowTypesModel.COUNTER: CounterNodeModel,
    ModelFlowTypesModel.DISPLAY: DisplayNodeModel,
    ModelFlowTypesModel.TABULIZE: DisplayNodeModel,
    ModelFlowTypesModel.DEBUG: DisplayNodeModel,
}


def payload_model_for(node_type: str) -> type[BaseNodeModel]:
    return PAYLOAD_MODELS.get(node_type, BaseNodeModel)
