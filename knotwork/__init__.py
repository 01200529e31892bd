from knotwork.errors import (
    DuplicateEdge,
    DuplicateNode,
    ExecutionFailed,
    FlowStoreError,
    GraphError,
    InvalidReference,
    KnotworkError,
    RunInProgress,
    SelfLoopEdge,
    UnknownEdge,
    UnknownNode,
)
from knotwork.graph_model import GraphChange, GraphChangeKind, GraphModel
from knotwork.models import EdgeNodeModel, ExecutionResponse, ExecutionResult, FlowModel, NodeModel
from knotwork.execution import (
    ExecutionCoordinator,
    HandleRouter,
    PropagationEngine,
    PropagationReport,
    ReactiveWatchLayer,
    VariableStore,
    WatchState,
)
from knotwork.backend import FlowBackendClient
from knotwork.storage import JsonEnvironmentStore, RequestTemplate, RequestTemplateStore, list_flows, load_flow, save_flow

__version__ = "0.3.0"

__all__ = [
    "GraphModel",
    "GraphChange",
    "GraphChangeKind",
    "NodeModel",
    "EdgeNodeModel",
    "FlowModel",
    "ExecutionResult",
    "ExecutionResponse",
    "ExecutionCoordinator",
    "HandleRouter",
    "PropagationEngine",
    "PropagationReport",
    "ReactiveWatchLayer",
    "VariableStore",
    "WatchState",
    "FlowBackendClient",
    "JsonEnvironmentStore",
    "RequestTemplate",
    "RequestTemplateStore",
    "list_flows",
    "load_flow",
    "save_flow",
    "KnotworkError",
    "GraphError",
    "InvalidReference",
    "SelfLoopEdge",
    "DuplicateNode",
    "DuplicateEdge",
    "UnknownNode",
    "UnknownEdge",
    "ExecutionFailed",
    "RunInProgress",
    "FlowStoreError",
]
