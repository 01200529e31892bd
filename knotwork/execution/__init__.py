"""
Execution Module

Coordinates batch runs against the execution backend and moves their
results through the graph.

Key Components:
- handle_router: Which outgoing edges of an executed node are active
- propagation: Transfers result data across active edges
- coordinator: Drives one batch run end to end
- reactive_watch: Node-local executions triggered by upstream changes
- variables: Captured variables of the last successful run
"""

from .handle_router import HandleRouter, activations, active_handles, is_active
from .variables import VariableStore
from .propagation import PropagationEngine, PropagationReport, Transfer, TransferConflict, propagate
from .coordinator import ExecutionCoordinator
from .reactive_watch import ReactiveWatchLayer, WatchState

__all__ = [
    # Routing
    "HandleRouter",
    "activations",
    "active_handles",
    "is_active",
    # State
    "VariableStore",
    # Propagation
    "PropagationEngine",
    "PropagationReport",
    "Transfer",
    "TransferConflict",
    "propagate",
    # Coordination
    "ExecutionCoordinator",
    "ReactiveWatchLayer",
    "WatchState",
]
