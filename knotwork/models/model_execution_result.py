from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

ExecutionStatus = Literal['success', 'error', 'skipped']


class ModelExecutionStatus:
    SUCCESS = 'success'
    ERROR = 'error'
    SKIPPED = 'skipped'


class ExecutionResult(BaseModel):
    """
    Outcome of one node in one batch run (or one direct execution).

    Frozen after creation. ``active_handle`` is an optional backend hint,
    kept for display only; routing is decided by the HandleRouter.
    """
    model_config = ConfigDict(frozen=True, extra='ignore')

    node_id: str
    status: ExecutionStatus
    output: Any = None
    error: Optional[str] = None
    active_handle: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == ModelExecutionStatus.SUCCESS

    @classmethod
    def skipped(cls, node_id: str) -> "ExecutionResult":
        return cls(node_id=node_id, status=ModelExecutionStatus.SKIPPED)

    def to_data(self) -> Dict[str, Any]:
        """Plain dict used as the ``executionResult`` display annotation."""
        return self.model_dump(exclude_none=True)


class ExecutionResponse(BaseModel):
    """
    Backend reply for a batch run.

    Accepts either the mapping form ``{"results": ..., "variables": ...}``
    or the positional pair ``[results, variables]``.
    """
    model_config = ConfigDict(frozen=True, extra='ignore')

    results: Dict[str, ExecutionResult] = Field(default_factory=dict)
    variables: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode='before')
    @classmethod
    def accept_pair_form(cls, value):
        if isinstance(value, (list, tuple)):
            if len(value) != 2:
                raise ValueError(
                    f"Expected a (results, variables) pair, got {len(value)} element(s)"
                )
            value = {'results': value[0], 'variables': value[1]}
        if isinstance(value, dict) and isinstance(value.get('results'), dict):
            # Backends may omit node_id inside each result; the mapping key is authoritative
            results = {}
            for node_id, result in value['results'].items():
                if isinstance(result, dict):
                    result = {**result, 'node_id': result.get('node_id') or node_id}
                results[node_id] = result
            value = {**value, 'results': results}
        return value

    @model_validator(mode='after')
    def check_result_keys(self):
        for node_id, result in self.results.items():
            if result.node_id != node_id:
                raise ValueError(
                    f"Result keyed '{node_id}' reports node_id '{result.node_id}'"
                )
        return self

    def result_for(self, node_id: str) -> ExecutionResult:
        """Result for ``node_id``; absent nodes are reported as skipped."""
        return self.results.get(node_id) or ExecutionResult.skipped(node_id)
