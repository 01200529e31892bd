"""Knotwork command line."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from knotwork.backend.client import FlowBackendClient
from knotwork.config import KnotworkConfig
from knotwork.errors import KnotworkError
from knotwork.events import EmitterRegistry, LogEmitter
from knotwork.execution.coordinator import ExecutionCoordinator
from knotwork.storage.environment_store import JsonEnvironmentStore
from knotwork.storage.flow_store import list_flows, load_graph
from knotwork.util.graph_validator import execution_order, has_errors, run_all_validations
from knotwork.util.telemetry import configure_logging

logger = logging.getLogger(__name__)


def _load_config(args: argparse.Namespace) -> KnotworkConfig:
    return KnotworkConfig.load(
        path=Path(args.config) if args.config else None,
        backend_url=getattr(args, "backend", None),
        environment_path=getattr(args, "env", None),
        log_level=args.log_level,
        debug=True if args.debug else None,
    )


async def _execute(graph, config: KnotworkConfig, environment: dict):
    emitters = EmitterRegistry()
    if config.emit_to_log:
        emitters.register(LogEmitter())
    client = FlowBackendClient(config.backend_url, timeout=config.request_timeout, debug=config.debug)
    coordinator = ExecutionCoordinator(client, emitters=emitters, debug=config.debug)
    try:
        response = await coordinator.run(graph, environment)
    finally:
        await emitters.close_all()
    return response, coordinator.last_outcome


def _run_flow(args: argparse.Namespace) -> int:
    config = _load_config(args)
    graph = load_graph(args.file)
    environment = JsonEnvironmentStore(config.environment_path).read()

    response, outcome = asyncio.run(_execute(graph, config, environment))

    order = execution_order(graph)
    if args.json:
        print(json.dumps({
            "outcome": outcome.to_dict(),
            "results": {
                node_id: response.results[node_id].to_data()
                for node_id in order if node_id in response.results
            },
            "variables": response.variables,
        }, indent=2, default=str))
    else:
        for node_id in order:
            result = response.result_for(node_id)
            line = f"{node_id:<24} {result.status}"
            if result.error:
                line += f"  {result.error}"
            print(line)
        print(outcome.message)
    return 0 if outcome.all_succeeded else 1


def _list_flows(args: argparse.Namespace) -> int:
    config = _load_config(args)
    dirs = args.dirs or config.flow_dirs
    for path in list_flows(dirs):
        print(path)
    return 0


def _validate_flow(args: argparse.Namespace) -> int:
    graph = load_graph(args.file)
    findings = run_all_validations(graph)
    if args.json:
        print(json.dumps(findings, indent=2, default=str))
    else:
        for finding in findings:
            print(f"[{finding['severity']}] {finding['type']}: {finding['error_message']}")
        if not findings:
            print("No findings")
    return 1 if has_errors(findings) else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="knotwork")
    parser.add_argument("--config", default=None, help="Configuration file (defaults to ~/.knotwork/configuration.json).")
    parser.add_argument("--log-level", default=None, help="Root log level, e.g. DEBUG.")
    parser.add_argument("--debug", action="store_true", help="Log redacted backend payloads.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Execute a flow through the backend.")
    run_parser.add_argument("--file", required=True, help="Flow JSON file.")
    run_parser.add_argument("--backend", default=None, help="Backend base URL.")
    run_parser.add_argument("--env", default=None, help="Environment JSON file (env.json).")
    run_parser.add_argument("--json", action="store_true", help="Print results as JSON.")
    run_parser.set_defaults(handler=_run_flow)

    list_parser = subparsers.add_parser("list", help="List flow files.")
    list_parser.add_argument("dirs", nargs="*", help="Directories to scan (defaults to configured flow_dirs).")
    list_parser.set_defaults(handler=_list_flows)

    validate_parser = subparsers.add_parser("validate", help="Check a flow for routing problems.")
    validate_parser.add_argument("--file", required=True, help="Flow JSON file.")
    validate_parser.add_argument("--json", action="store_true", help="Print findings as JSON.")
    validate_parser.set_defaults(handler=_validate_flow)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(_load_config(args).log_level)
    try:
        return args.handler(args)
    except KnotworkError as e:
        logger.error("%s", e)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
