from typing import Any, Optional

from knotwork.models.factory.Nodes.BaseNodeModel import BaseNodeModel


class DisplayNodeModel(BaseNodeModel):
    """Display sinks (display, tabulize, debug) render whatever lands in ``input``."""
    input: Optional[Any] = None


class ResponseNodeModel(BaseNodeModel):
    """Response viewer for an upstream HTTP request."""
    status: Optional[int] = None
    response: Optional[Any] = None
    latency: Optional[float] = None
    error: Optional[str] = None
