from knotwork.storage.environment_store import JsonEnvironmentStore
from knotwork.storage.flow_store import list_flows, load_flow, load_graph, save_flow
from knotwork.storage.template_store import RequestTemplate, RequestTemplateStore

__all__ = [
    "JsonEnvironmentStore",
    "RequestTemplate",
    "RequestTemplateStore",
    "list_flows",
    "load_flow",
    "load_graph",
    "save_flow",
]
