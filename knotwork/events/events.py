"""
Flow Event Type Definitions and Data Structures.

Every notification the coordinator and the reactive layer publish is a
FlowEvent, so emitters can filter, log and forward them uniformly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4


class FlowEventType(Enum):
    """
    Enumeration of all flow event types.

    - Batch lifecycle: one run of the whole graph
    - Propagation: data moved across an edge or stamped on a node
    - Reactive: executions started outside the batch protocol
    """

    # Batch lifecycle
    RUN_START = "run_start"
    RUN_END = "run_end"
    RUN_FAILED = "run_failed"
    RUN_REJECTED = "run_rejected"

    # Propagation
    NODE_STAMPED = "node_stamped"
    EDGE_PROPAGATED = "edge_propagated"
    TRANSFER_CONFLICT = "transfer_conflict"

    # Reactive
    REACTIVE_TRIGGER = "reactive_trigger"
    REACTIVE_RESULT = "reactive_result"
    REACTIVE_ERROR = "reactive_error"


class FlowEventSeverity(Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


@dataclass
class FlowEvent:
    """
    Unified flow event structure.

    Attributes:
        event_id: Unique identifier for this event
        event_type: Type of flow event
        severity: Severity level for filtering
        timestamp: When the event occurred
        run_id: Batch run the event belongs to (empty for reactive events)
        node_id: ID of the node (if node-specific)
        edge_id: ID of the edge (if edge-specific)
        payload: Event-specific data
    """

    event_id: str = field(default_factory=lambda: uuid4().hex)
    event_type: FlowEventType = FlowEventType.RUN_START
    severity: FlowEventSeverity = FlowEventSeverity.INFO
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    run_id: str = ""
    node_id: Optional[str] = None
    edge_id: Optional[str] = None

    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "timestamp": self.timestamp.isoformat(),
            "run_id": self.run_id,
            "node_id": self.node_id,
            "edge_id": self.edge_id,
            "payload": self.payload,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> FlowEvent:
        return cls(
            event_id=data.get("event_id", uuid4().hex),
            event_type=FlowEventType(data.get("event_type", "run_start")),
            severity=FlowEventSeverity(data.get("severity", "info")),
            timestamp=(
                datetime.fromisoformat(data["timestamp"])
                if "timestamp" in data
                else datetime.now(UTC)
            ),
            run_id=data.get("run_id", ""),
            node_id=data.get("node_id"),
            edge_id=data.get("edge_id"),
            payload=data.get("payload", {}),
        )
