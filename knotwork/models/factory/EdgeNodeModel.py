from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class EdgeNodeModel(BaseModel):
    model_config = ConfigDict(extra='allow')

    id: str
    source: str
    target: str
    sourceHandle: Optional[str] = None
    targetHandle: Optional[str] = None
    animated: bool = False
    style: Optional[Any] = None

    @property
    def handle(self) -> Optional[str]:
        """Source handle with empty strings normalised to None (the unnamed output)."""
        return self.sourceHandle or None
