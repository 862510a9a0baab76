"""Command-line entry point for inspecting and upgrading project files."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence, TextIO

from novastate import (
    EngineSettings,
    EntityNotFoundError,
    ProjectSchemaError,
    ScriptExecutor,
    configure_logging,
    migrate_project,
)
from novastate.graph_store import ScriptGraphStore
from novastate.models import ScriptNode


def _load_payload(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise SystemExit(f"Could not read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SystemExit(f"{path} is not valid JSON: {exc}") from exc


def _describe_node(node: ScriptNode) -> str:
    """Return a one-line summary of ``node`` for the preview output."""

    summary = f"{node.id} [{node.type}]"
    if node.type == "text" and node.data.text:
        return f"{summary} {node.data.text}"
    if node.type == "choice" and node.data.choices:
        labels = ", ".join(
            f"{option.id}={option.label}" for option in node.data.choices
        )
        return f"{summary} {labels}"
    if node.type == "change_scene" and node.data.scene_id:
        return f"{summary} -> {node.data.scene_id}"
    return summary


def _run_migrate(args: argparse.Namespace, output: TextIO) -> int:
    try:
        project = migrate_project(_load_payload(args.input))
    except ProjectSchemaError as exc:
        print(str(exc), file=sys.stderr)
        return 1

    rendered = json.dumps(project.to_payload(), indent=2)
    if args.output is None:
        print(rendered, file=output)
    else:
        args.output.write_text(rendered + "\n", encoding="utf-8")
        print(f"Migrated project written to {args.output}", file=output)
    return 0


def _run_walk(args: argparse.Namespace, output: TextIO) -> int:
    try:
        project = migrate_project(_load_payload(args.input))
        graph = ScriptGraphStore(project.script_graphs).resolve(args.graph)
    except (ProjectSchemaError, EntityNotFoundError) as exc:
        print(str(exc), file=sys.stderr)
        return 1

    executor = ScriptExecutor(graph)
    if executor.get_start_node() is None:
        print(f"Graph '{graph.id}' has no start node.", file=output)
        return 0

    for node in executor.walk(args.choose or (), max_steps=args.max_steps):
        print(_describe_node(node), file=output)
    return 0


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Nova project state tools")
    parser.add_argument(
        "--log-level",
        type=str,
        help="Override NOVASTATE_LOG_LEVEL for this run.",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    migrate = subcommands.add_parser(
        "migrate", help="Upgrade a saved project file to the current schema."
    )
    migrate.add_argument("input", type=Path, help="Path to a project JSON file.")
    migrate.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Write the migrated project here instead of standard output.",
    )

    walk = subcommands.add_parser(
        "walk", help="Preview the path through one script graph."
    )
    walk.add_argument("input", type=Path, help="Path to a project JSON file.")
    walk.add_argument(
        "--graph",
        required=True,
        help="Identifier of the script graph (a scene id or main_flow).",
    )
    walk.add_argument(
        "--choose",
        action="append",
        metavar="OPTION",
        help=(
            "Option id to take at the next choice node. "
            "May be supplied multiple times."
        ),
    )
    walk.add_argument(
        "--max-steps",
        type=int,
        default=256,
        help="Stop after visiting this many nodes (default: 256).",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None, *, output: TextIO | None = None) -> int:
    """Run the requested subcommand and return its exit status."""

    args = _parse_args(argv)
    settings = EngineSettings.from_env()
    if args.log_level:
        settings = replace(settings, log_level=args.log_level.upper())
    configure_logging(settings)

    stream = output or sys.stdout
    if args.command == "migrate":
        return _run_migrate(args, stream)
    return _run_walk(args, stream)


if __name__ == "__main__":
    raise SystemExit(main())
