from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Iterator, Mapping, Optional

logger = logging.getLogger(__name__)


class VariableStore(Mapping[str, Any]):
    """
    Captured variables of the last successful batch run.

    Read-only for everyone except the ExecutionCoordinator, which replaces
    the whole mapping after each run. Values are never merged.
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        self._values: Dict[str, Any] = copy.deepcopy(dict(initial or {}))

    def replace(self, values: Mapping[str, Any]) -> None:
        self._values = copy.deepcopy(dict(values))
        logger.debug("Variables replaced: %s", sorted(self._values))

    def clear(self) -> None:
        self._values = {}
        logger.debug("Variables cleared")

    def snapshot(self) -> Dict[str, Any]:
        """Detached copy of the current values."""
        return copy.deepcopy(self._values)

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"VariableStore({self._values!r})"
