"""
Knotwork exception hierarchy.

Graph mutation errors are raised locally at the point of mutation.
Execution errors abort a batch run before any node is stamped.
Per-node failures are never raised; they travel inside ExecutionResult.
"""

from typing import Optional


class KnotworkError(Exception):
    """Base class for every error raised by knotwork."""


class GraphError(KnotworkError):
    """A graph mutation was rejected."""


class InvalidReference(GraphError):
    """An edge references a node that does not exist in the graph."""

    def __init__(self, edge_id: str, missing: list[str]):
        self.edge_id = edge_id
        self.missing = missing
        super().__init__(
            f"Edge '{edge_id}' references non-existent node(s): {', '.join(missing)}"
        )


class SelfLoopEdge(GraphError):
    """An edge connects a node to itself."""

    def __init__(self, edge_id: str, node_id: str):
        self.edge_id = edge_id
        self.node_id = node_id
        super().__init__(f"Edge '{edge_id}' creates a self-loop on node '{node_id}'")


class DuplicateNode(GraphError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node id '{node_id}' already exists")


class DuplicateEdge(GraphError):
    def __init__(self, edge_id: str):
        self.edge_id = edge_id
        super().__init__(f"Edge id '{edge_id}' already exists")


class UnknownNode(GraphError, KeyError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Unknown node: '{node_id}'")

    def __str__(self) -> str:
        return self.args[0]


class UnknownEdge(GraphError, KeyError):
    def __init__(self, edge_id: str):
        self.edge_id = edge_id
        super().__init__(f"Unknown edge: '{edge_id}'")

    def __str__(self) -> str:
        return self.args[0]


class ExecutionFailed(KnotworkError):
    """The execution backend was unreachable or answered with a malformed response."""

    def __init__(self, reason: str, cause: Optional[BaseException] = None):
        self.reason = reason
        self.cause = cause
        super().__init__(reason)


class RunInProgress(KnotworkError):
    """A batch run was requested while another one is still in flight."""

    def __init__(self, run_id: Optional[str] = None):
        self.run_id = run_id
        super().__init__(
            f"A batch run is already in progress (run_id={run_id}); "
            "wait for it to finish before starting another"
        )


class FlowStoreError(KnotworkError):
    """A flow document could not be read, parsed or written."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")
