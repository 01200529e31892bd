from typing import Optional

from knotwork.models.factory.Nodes.BaseNodeModel import BaseNodeModel


class CaptureNodeModel(BaseNodeModel):
    """
    Capture node: stores the value at ``path`` of its input as ``variable``.
    Captured values come back in the batch response's variables.
    """
    path: str = ""
    variable: str = ""


class CounterNodeModel(BaseNodeModel):
    variable: str = ""
    operation: str = "increment"
    amount: Optional[str] = None
