"""
PropagationEngine - moves result data across active edges.

One pass walks the edges in declaration order and, for each activation
the HandleRouter reports, applies the transfer rule of the
(source type, target type) pair. Every write goes through
GraphModel.update_node_data with a fresh dict. The engine keeps no state
between passes, so repeating a pass over the same inputs leaves the graph
unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

from knotwork.execution.handle_router import activations
from knotwork.graph_model import GraphModel
from knotwork.models.model_execution_result import ExecutionResult
from knotwork.node_system import resolve_transfer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transfer:
    edge_id: str
    source_id: str
    target_id: str
    fields: Dict[str, Any]


@dataclass(frozen=True)
class TransferConflict:
    """A field written twice in one pass; the later write (``edge_id``) won."""
    target_id: str
    field: str
    overwritten_by_edge: str
    previous_edge: str


@dataclass
class PropagationReport:
    active_edge_ids: List[str] = field(default_factory=list)
    transfers: List[Transfer] = field(default_factory=list)
    conflicts: List[TransferConflict] = field(default_factory=list)
    skipped_edge_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "active_edge_ids": list(self.active_edge_ids),
            "transfers": [
                {"edge_id": t.edge_id, "source_id": t.source_id, "target_id": t.target_id, "fields": t.fields}
                for t in self.transfers
            ],
            "conflicts": [
                {
                    "target_id": c.target_id,
                    "field": c.field,
                    "overwritten_by_edge": c.overwritten_by_edge,
                    "previous_edge": c.previous_edge,
                }
                for c in self.conflicts
            ],
            "skipped_edge_ids": list(self.skipped_edge_ids),
        }


class PropagationEngine:

    def propagate(self, graph: GraphModel, results: Mapping[str, ExecutionResult]) -> PropagationReport:
        report = PropagationReport()
        # (target id, field) -> edge that last wrote it during this pass
        written: Dict[Tuple[str, str], str] = {}

        for edge in graph.edges:
            source = graph.get_node(edge.source)
            target = graph.get_node(edge.target)
            if source is None or target is None:
                logger.debug("Edge %s skipped: endpoint no longer in graph", edge.id)
                report.skipped_edge_ids.append(edge.id)
                continue

            result = results.get(source.id)
            if result is None:
                report.skipped_edge_ids.append(edge.id)
                continue

            payloads = activations(edge, source, result)
            if not payloads:
                report.skipped_edge_ids.append(edge.id)
                continue

            report.active_edge_ids.append(edge.id)
            for payload in payloads:
                # Re-read each time: an earlier activation may have replaced the data
                current = graph.require_node(target.id)
                fields = resolve_transfer(source.type, target.type, payload, dict(current.data))
                if not fields:
                    logger.debug(
                        "Edge %s active but no transfer rule for %s -> %s",
                        edge.id, source.type, target.type
                    )
                    continue

                for name in fields:
                    key = (target.id, name)
                    previous = written.get(key)
                    if previous is not None:
                        logger.warning(
                            "Field '%s' of node %s written by edge %s is overwritten by edge %s",
                            name, target.id, previous, edge.id
                        )
                        report.conflicts.append(TransferConflict(target.id, name, edge.id, previous))
                    written[key] = edge.id

                new_data = {**current.data, **fields}
                graph.update_node_data(target.id, new_data)
                report.transfers.append(Transfer(edge.id, source.id, target.id, dict(fields)))
                logger.debug("Edge %s transferred %s to node %s", edge.id, sorted(fields), target.id)

        logger.info(
            "Propagation: %d active edge(s), %d transfer(s), %d conflict(s)",
            len(report.active_edge_ids), len(report.transfers), len(report.conflicts)
        )
        return report


def propagate(graph: GraphModel, results: Mapping[str, ExecutionResult]) -> PropagationReport:
    return PropagationEngine().propagate(graph, results)
