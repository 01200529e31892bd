from knotwork.models.model_execution_result import (
    ExecutionResult,
    ExecutionResponse,
    ExecutionStatus,
    ModelExecutionStatus,
)
from knotwork.models.factory import EdgeNodeModel, FlowModel, NodeModel

__all__ = [
    "ExecutionResult",
    "ExecutionResponse",
    "ExecutionStatus",
    "ModelExecutionStatus",
    "EdgeNodeModel",
    "FlowModel",
    "NodeModel",
]
