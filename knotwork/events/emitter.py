"""
Flow event delivery.

The coordinator and the reactive layer publish FlowEvents to an
EmitterRegistry, which fans them out to every registered emitter:
an asyncio queue for a UI or websocket bridge, the logging system,
or plain callbacks.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Set, runtime_checkable

from .events import FlowEvent, FlowEventSeverity, FlowEventType

logger = logging.getLogger(__name__)

_SEVERITY_RANK = {
    FlowEventSeverity.DEBUG: 0,
    FlowEventSeverity.INFO: 1,
    FlowEventSeverity.WARN: 2,
    FlowEventSeverity.ERROR: 3,
}


@runtime_checkable
class FlowEmitter(Protocol):
    """Anything with a unique ``name`` and async ``emit`` / ``close``."""

    @property
    def name(self) -> str:
        ...

    async def emit(self, event: FlowEvent) -> None:
        ...

    async def close(self) -> None:
        ...


class EmitterRegistry:
    """
    Fan-out of flow events to named emitters.

    Events below ``min_severity`` are dropped before delivery. A failing
    emitter is logged and skipped; the others still receive the event.

    Example:
        registry = EmitterRegistry(min_severity=FlowEventSeverity.INFO)
        registry.register(QueueEmitter(ui_queue)).register(LogEmitter())
        coordinator = ExecutionCoordinator(client, emitters=registry)
    """

    def __init__(self, min_severity: FlowEventSeverity = FlowEventSeverity.DEBUG):
        self.min_severity = min_severity
        self._emitters: Dict[str, FlowEmitter] = {}

    def register(self, emitter: FlowEmitter) -> "EmitterRegistry":
        if emitter.name in self._emitters:
            logger.debug("Replacing emitter '%s'", emitter.name)
        self._emitters[emitter.name] = emitter
        return self

    def unregister(self, name: str) -> Optional[FlowEmitter]:
        return self._emitters.pop(name, None)

    def get(self, name: str) -> Optional[FlowEmitter]:
        return self._emitters.get(name)

    @property
    def emitters(self) -> List[FlowEmitter]:
        return list(self._emitters.values())

    def accepts(self, event: FlowEvent) -> bool:
        return _SEVERITY_RANK[event.severity] >= _SEVERITY_RANK[self.min_severity]

    async def emit(self, event: FlowEvent) -> None:
        if not self._emitters or not self.accepts(event):
            return
        targets = list(self._emitters.values())
        outcomes = await asyncio.gather(*(t.emit(event) for t in targets), return_exceptions=True)
        for target, outcome in zip(targets, outcomes):
            if isinstance(outcome, Exception):
                logger.warning("Emitter '%s' failed on %s: %s", target.name, event.event_type.value, outcome)

    async def close_all(self) -> None:
        await asyncio.gather(*(t.close() for t in self._emitters.values()), return_exceptions=True)


class QueueEmitter:
    """
    Put ``{"type": <event type>, "content": <event dict>}`` on an asyncio queue.

    With ``event_types`` set, other events are not queued. A full bounded
    queue drops the event instead of blocking the run.
    """

    name = "queue"

    def __init__(self, queue: asyncio.Queue, event_types: Optional[Iterable[FlowEventType]] = None):
        self._queue = queue
        self._event_types: Optional[Set[FlowEventType]] = set(event_types) if event_types else None
        self._closed = False
        self.dropped = 0

    async def emit(self, event: FlowEvent) -> None:
        if self._closed:
            return
        if self._event_types is not None and event.event_type not in self._event_types:
            return
        try:
            self._queue.put_nowait({"type": event.event_type.value, "content": event.to_dict()})
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning("Event queue full; dropped %s (%d dropped so far)", event.event_type.value, self.dropped)

    async def close(self) -> None:
        self._closed = True


class LogEmitter:
    """Write each event as one log line, at the level matching its severity."""

    name = "log"

    SEVERITY_TO_LEVEL = {
        FlowEventSeverity.DEBUG: logging.DEBUG,
        FlowEventSeverity.INFO: logging.INFO,
        FlowEventSeverity.WARN: logging.WARNING,
        FlowEventSeverity.ERROR: logging.ERROR,
    }

    def __init__(self, logger_name: str = "knotwork.events", format_json: bool = False):
        self._logger = logging.getLogger(logger_name)
        self._format_json = format_json
        self._closed = False

    async def emit(self, event: FlowEvent) -> None:
        if self._closed:
            return
        level = self.SEVERITY_TO_LEVEL.get(event.severity, logging.INFO)
        if not self._logger.isEnabledFor(level):
            return
        if self._format_json:
            self._logger.log(level, json.dumps(event.to_dict(), default=str))
        else:
            self._logger.log(level, self.describe(event))

    @staticmethod
    def describe(event: FlowEvent) -> str:
        parts = [f"[{event.event_type.value}]"]
        for key, value in (("run", event.run_id), ("node", event.node_id), ("edge", event.edge_id)):
            if value:
                parts.append(f"{key}={value}")
        payload = event.payload
        if "status" in payload:
            parts.append(f"status={payload['status']}")
        if "fields" in payload:
            parts.append(f"fields={','.join(payload['fields'])}")
        if "duration_ms" in payload:
            parts.append(f"duration={payload['duration_ms']:.2f}ms")
        for key in ("message", "error"):
            if payload.get(key):
                parts.append(f"{key}={payload[key]}")
        return " ".join(parts)

    async def close(self) -> None:
        self._closed = True


class CallbackEmitter:
    """
    Call plain functions or coroutine functions with each event.

    Sync callbacks run first, in registration order, then async callbacks
    run concurrently.
    """

    name = "callback"

    def __init__(self):
        self._sync: List[Callable[[FlowEvent], Any]] = []
        self._async: List[Callable[[FlowEvent], Any]] = []
        self._closed = False

    def add_callback(self, callback: Callable[[FlowEvent], Any]) -> "CallbackEmitter":
        if inspect.iscoroutinefunction(callback):
            self._async.append(callback)
        else:
            self._sync.append(callback)
        return self

    def add_sync_callback(self, callback: Callable[[FlowEvent], Any]) -> "CallbackEmitter":
        self._sync.append(callback)
        return self

    def remove_callback(self, callback: Callable) -> "CallbackEmitter":
        for bucket in (self._sync, self._async):
            if callback in bucket:
                bucket.remove(callback)
        return self

    async def emit(self, event: FlowEvent) -> None:
        if self._closed:
            return
        for callback in self._sync:
            try:
                callback(event)
            except Exception as e:
                logger.warning("Callback %r failed: %s", callback, e)
        if self._async:
            outcomes = await asyncio.gather(*(cb(event) for cb in self._async), return_exceptions=True)
            for callback, outcome in zip(self._async, outcomes):
                if isinstance(outcome, Exception):
                    logger.warning("Callback %r failed: %s", callback, outcome)

    async def close(self) -> None:
        self._closed = True
