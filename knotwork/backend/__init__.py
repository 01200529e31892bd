from knotwork.backend.base import EnvironmentBackend, FlowExecutor, NodeRunner
from knotwork.backend.client import FlowBackendClient

__all__ = [
    "EnvironmentBackend",
    "FlowExecutor",
    "NodeRunner",
    "FlowBackendClient",
]
