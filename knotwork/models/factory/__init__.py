from knotwork.models.factory.EdgeNodeModel import EdgeNodeModel
from knotwork.models.factory.FlowModel import FlowModel, NodeModel, PositionModel, NODE_TYPES

__all__ = ["EdgeNodeModel", "FlowModel", "NodeModel", "PositionModel", "NODE_TYPES"]
