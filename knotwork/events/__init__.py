"""
Flow Events Module

Notifications published by the execution coordinator and the reactive
watch layer.

Key Components:
- events: Event type definitions and data structures
- emitter: Event emission dispatchers
- outcome: Aggregate outcome of a batch run
"""

from .events import (
    FlowEvent,
    FlowEventType,
    FlowEventSeverity,
)
from .emitter import (
    FlowEmitter,
    EmitterRegistry,
    QueueEmitter,
    LogEmitter,
    CallbackEmitter,
)
from .outcome import RunOutcome

__all__ = [
    # Events
    "FlowEvent",
    "FlowEventType",
    "FlowEventSeverity",
    # Emitter
    "FlowEmitter",
    "EmitterRegistry",
    "QueueEmitter",
    "LogEmitter",
    "CallbackEmitter",
    # Outcome
    "RunOutcome",
]
