"""
Knotwork configuration.

Values are resolved from, lowest priority first: dataclass defaults,
``~/.knotwork/configuration.json``, ``KNOTWORK_*`` environment variables
and finally explicit overrides (command line flags).
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

KNOTWORK_CONFIG_FILE = Path.home() / ".knotwork" / "configuration.json"
ENV_PREFIX = "KNOTWORK_"


def get_knotwork_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from ~/.knotwork/configuration.json (or ``path``)."""
    path = Path(path) if path is not None else KNOTWORK_CONFIG_FILE
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8-sig") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Ignoring unreadable configuration file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass
class KnotworkConfig:
    """
    Attributes:
        backend_url: Base URL of the execution backend service
        request_timeout: Seconds before a backend call is abandoned
        environment_path: Location of env.json
        flow_dirs: Directories scanned for flow files
        debug: Log redacted backend payloads
        log_level: Root log level used by the command line
        emit_to_log: Also publish flow events to logging
    """
    backend_url: str = "http://127.0.0.1:8000"
    request_timeout: float = 60.0
    environment_path: str = str(Path.home() / ".knotwork" / "env.json")
    flow_dirs: List[str] = field(default_factory=lambda: [str(Path.home() / ".knotwork" / "flows")])
    debug: bool = False
    log_level: str = "INFO"
    emit_to_log: bool = True

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "KnotworkConfig":
        """Build from a mapping; unknown keys are ignored and missing ones keep their default."""
        if not data:
            return cls()
        base = cls()
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.debug("Ignoring unknown configuration keys: %s", unknown)

        flow_dirs = data.get("flow_dirs", base.flow_dirs)
        if isinstance(flow_dirs, str):
            flow_dirs = [d for d in flow_dirs.split(os.pathsep) if d]

        return cls(
            backend_url=str(data.get("backend_url", base.backend_url)),
            request_timeout=float(data.get("request_timeout", base.request_timeout)),
            environment_path=str(data.get("environment_path", base.environment_path)),
            flow_dirs=[str(d) for d in flow_dirs],
            debug=_as_bool(data.get("debug", base.debug)),
            log_level=str(data.get("log_level", base.log_level)).upper(),
            emit_to_log=_as_bool(data.get("emit_to_log", base.emit_to_log)),
        )

    @staticmethod
    def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
        """``KNOTWORK_BACKEND_URL`` -> ``backend_url`` and so on."""
        environ = os.environ if environ is None else environ
        known = {f.name for f in fields(KnotworkConfig)}
        overrides = {}
        for key, value in environ.items():
            if not key.startswith(ENV_PREFIX):
                continue
            name = key[len(ENV_PREFIX):].lower()
            if name in known:
                overrides[name] = value
        return overrides

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "KnotworkConfig":
        return cls.from_dict(cls.env_overrides(environ))

    @classmethod
    def load(
        cls,
        path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any,
    ) -> "KnotworkConfig":
        """File, then environment, then non-None ``overrides``."""
        data: Dict[str, Any] = dict(get_knotwork_config(path))
        data.update(cls.env_overrides(environ))
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend_url": self.backend_url,
            "request_timeout": self.request_timeout,
            "environment_path": self.environment_path,
            "flow_dirs": list(self.flow_dirs),
            "debug": self.debug,
            "log_level": self.log_level,
            "emit_to_log": self.emit_to_log,
        }
