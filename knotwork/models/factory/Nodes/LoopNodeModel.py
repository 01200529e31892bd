from typing import Any, Optional

from knotwork.models.factory.Nodes.BaseNodeModel import BaseNodeModel


class LoopNodeModel(BaseNodeModel):
    """
    Node model for loop control. The backend iterates the collection;
    the loop result drives two outputs:
      - iteration outputs via handle 'item' (alias 'body').
      - final aggregation via handle 'done'.
    """
    items: Optional[list[Any]] = None
