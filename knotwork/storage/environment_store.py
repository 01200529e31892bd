import json
import logging
from pathlib import Path
from typing import Dict

from knotwork.errors import FlowStoreError

logger = logging.getLogger(__name__)


class JsonEnvironmentStore:
    """
    Environment variables persisted as a flat JSON object (``env.json``).

    Implements the EnvironmentBackend protocol, so it can stand in for the
    backend service's environment endpoints.
    """

    def __init__(self, path):
        self.path = Path(path).expanduser()
        self._cache: Dict[str, str] = {}

    def read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            document = json.loads(self.path.read_text(encoding='utf-8') or '{}')
        except (OSError, json.JSONDecodeError) as e:
            raise FlowStoreError(str(self.path), f"cannot read environment: {e}") from e
        if not isinstance(document, dict):
            raise FlowStoreError(str(self.path), "environment must be a JSON object")
        self._cache = {str(k): str(v) for k, v in document.items()}
        return dict(self._cache)

    def write(self, env: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(dict(env), indent=2, ensure_ascii=False), encoding='utf-8')
        except OSError as e:
            raise FlowStoreError(str(self.path), f"cannot write environment: {e}") from e
        self._cache = dict(env)
        logger.info("Saved %d environment variable(s) to %s", len(env), self.path)

    def env(self) -> Dict[str, str]:
        """Last loaded or saved environment, without touching the disk."""
        return dict(self._cache)

    async def load_environment(self) -> Dict[str, str]:
        return self.read()

    async def save_environment(self, env: Dict[str, str]) -> None:
        self.write(env)
