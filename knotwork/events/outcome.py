"""
Run outcome aggregation.

Summarises a batch run for user notification: partial success is a
displayed outcome, not a failure of the whole run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from knotwork.models.model_execution_result import ExecutionResponse, ModelExecutionStatus


@dataclass
class RunOutcome:
    """
    Aggregate outcome of one batch run.

    Attributes:
        run_id: Identifier of the run
        all_succeeded: True when no node reported an error
        first_error: Representative error message (first failing node in graph order)
        failed_nodes: IDs of nodes whose status is error, in graph order
        counts: Number of results per status
        duration_ms: Wall time of the backend round trip plus propagation
    """
    run_id: str
    all_succeeded: bool
    first_error: Optional[str] = None
    failed_nodes: List[str] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=dict)
    duration_ms: float = 0.0

    @classmethod
    def from_response(
        cls,
        run_id: str,
        response: ExecutionResponse,
        node_order: List[str],
        duration_ms: float = 0.0,
    ) -> RunOutcome:
        counts = {
            ModelExecutionStatus.SUCCESS: 0,
            ModelExecutionStatus.ERROR: 0,
            ModelExecutionStatus.SKIPPED: 0,
        }
        for result in response.results.values():
            counts[result.status] = counts.get(result.status, 0) + 1

        failed = [
            node_id for node_id in node_order
            if node_id in response.results
            and response.results[node_id].status == ModelExecutionStatus.ERROR
        ]
        first_error = None
        if failed:
            first = response.results[failed[0]]
            first_error = first.error or f"Node '{failed[0]}' failed"

        return cls(
            run_id=run_id,
            all_succeeded=not failed,
            first_error=first_error,
            failed_nodes=failed,
            counts=counts,
            duration_ms=duration_ms,
        )

    @property
    def message(self) -> str:
        """One-line notification text."""
        if self.all_succeeded:
            return f"Flow executed successfully ({self.counts.get('success', 0)} node(s))"
        return (
            f"{len(self.failed_nodes)} node(s) failed. "
            f"First error: {self.first_error}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "all_succeeded": self.all_succeeded,
            "first_error": self.first_error,
            "failed_nodes": self.failed_nodes,
            "counts": self.counts,
            "duration_ms": round(self.duration_ms, 2),
            "message": self.message,
        }
