"""
Flow documents on disk.

A flow file is the pretty-printed JSON form of FlowModel:
``{"nodes": [...], "edges": [...]}``.
"""

import json
import logging
import os
from pathlib import Path
from typing import Iterable, List, Union

from pydantic import ValidationError

from knotwork.errors import FlowStoreError, GraphError
from knotwork.graph_model import GraphModel
from knotwork.models.factory import FlowModel

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


def save_flow(path: PathLike, flow: Union[FlowModel, GraphModel, dict]) -> Path:
    if isinstance(flow, GraphModel):
        flow = flow.to_flow()
    elif isinstance(flow, dict):
        flow = FlowModel.model_validate(flow)

    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(flow.to_wire(), indent=2, ensure_ascii=False), encoding='utf-8')
    except OSError as e:
        raise FlowStoreError(str(path), f"cannot write flow: {e}") from e
    logger.info("Saved flow with %d node(s) to %s", len(flow.nodes), path)
    return path


def load_flow(path: PathLike) -> FlowModel:
    path = Path(path)
    try:
        raw = path.read_text(encoding='utf-8')
    except OSError as e:
        raise FlowStoreError(str(path), f"cannot read flow: {e}") from e
    try:
        document = json.loads(raw)
    except json.JSONDecodeError as e:
        raise FlowStoreError(str(path), f"invalid JSON at line {e.lineno}: {e.msg}") from e
    try:
        flow = FlowModel.model_validate(document)
    except ValidationError as e:
        raise FlowStoreError(str(path), f"not a valid flow: {e}") from e
    logger.debug("Loaded flow with %d node(s), %d edge(s) from %s", len(flow.nodes), len(flow.edges), path)
    return flow


def load_graph(path: PathLike) -> GraphModel:
    """Load a flow file straight into a GraphModel (references are checked)."""
    flow = load_flow(path)
    try:
        return GraphModel.from_flow(flow)
    except GraphError as e:
        raise FlowStoreError(str(path), str(e)) from e


def list_flows(dirs: Iterable[PathLike]) -> List[Path]:
    """``*.json`` files in ``dirs`` (not recursive), sorted by name; missing directories are skipped."""
    found: List[Path] = []
    for directory in dirs:
        directory = Path(directory).expanduser()
        if not directory.is_dir():
            logger.debug("Flow directory %s does not exist; skipped", directory)
            continue
        found.extend(sorted(p for p in directory.glob('*.json') if p.is_file()))
    return found
