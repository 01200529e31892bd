"""
Contracts of the external execution backend.

The core never performs node operations itself. A batch run goes through
``FlowExecutor``, a single reactive execution through ``NodeRunner``, and
the environment is read and written through ``EnvironmentBackend``.
Return values may be models or their plain wire form; callers validate.
"""

from typing import Any, Dict, Protocol, runtime_checkable

from knotwork.models.factory import FlowModel


@runtime_checkable
class FlowExecutor(Protocol):

    async def execute_flow(self, flow: FlowModel, env: Dict[str, str]) -> Any:
        """
        Execute the whole flow.

        Returns an ExecutionResponse or its wire form. Raises on failure;
        a partial response is never returned.
        """
        ...


@runtime_checkable
class NodeRunner(Protocol):

    async def execute_node(self, node: Dict[str, Any], env: Dict[str, str]) -> Any:
        """Execute one node (its data already rendered). Returns an ExecutionResult or its wire form."""
        ...


@runtime_checkable
class EnvironmentBackend(Protocol):

    async def load_environment(self) -> Dict[str, str]:
        ...

    async def save_environment(self, env: Dict[str, str]) -> None:
        ...
