#!/usr/bin/env python3
"""
AI Director - command line
Inspect directive parsing, heuristic plans, long-term memory and the
project code index.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..core.config import Config
from ..core.context import AgentContext
from ..core.errors import DirectorError
from ..core.llm_provider import create_oracle
from ..memory.long_term import MemoryType
from ..monitoring.logging_setup import configure_logging
from ..orchestration.decomposer import TaskDecomposer
from ..tools.call_parser import extract_thoughts

logger = logging.getLogger(__name__)

console = Console()


def print_success(message: str) -> None:
    console.print(f"[green][OK][/green] {message}")


def print_error(message: str) -> None:
    console.print(f"[red][ERROR][/red] {message}")


def cmd_parse(args, config: Config) -> int:
    """Show the invocations and execution groups found in a response file"""
    path = Path(args.file)
    if not path.exists():
        print_error(f"File not found: {path}")
        return 1

    text = path.read_text(encoding="utf-8")
    context = AgentContext.create(config, persistent=False)
    invocations = context.parser.parse(text)

    for thought in extract_thoughts(text):
        console.print(Panel(thought, title="Thought", border_style="dim"))

    if not invocations:
        console.print("[yellow]No tool directives found[/yellow]")
        return 0

    table = Table(title="Invocations", show_header=True, header_style="bold magenta")
    table.add_column("#", style="cyan", width=4)
    table.add_column("Tool", style="green")
    table.add_column("Parameters", style="white")
    for i, inv in enumerate(invocations, 1):
        params = "\n".join(f"{k}: {_preview(v)}" for k, v in inv.parameters.items())
        table.add_row(str(i), inv.name, params or "-")
    console.print(table)

    groups = context.grouper.group(invocations)
    table = Table(title="Execution Groups", show_header=True, header_style="bold magenta")
    table.add_column("Group", style="cyan", width=6)
    table.add_column("Label", style="green")
    table.add_column("Tools", style="yellow")
    for i, group in enumerate(groups, 1):
        table.add_row(str(i), group.label, ", ".join(group.tool_names))
    console.print(table)
    return 0


def cmd_plan(args, config: Config) -> int:
    """Heuristic plan for a goal, or an oracle decomposition with --ai"""
    context = AgentContext.create(config, persistent=False)

    if args.ai:
        decomposer = TaskDecomposer(create_oracle(config.get_section("oracle")))
        plan = asyncio.run(decomposer.decompose(args.goal))
    else:
        plan = context.planner.plan(args.goal)

    complexity = context.planner.estimate_complexity(args.goal)
    console.print(Panel.fit(
        f"[bold cyan]{plan.goal}[/bold cyan]\n\n"
        f"Strategy: [yellow]{plan.strategy}[/yellow]\n"
        f"Complexity: {complexity}/{context.planner.max_complexity}\n"
        f"Recommended max steps: {context.planner.recommended_max_steps(args.goal)}",
        border_style="cyan"
    ))

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Step", style="cyan", width=6)
    table.add_column("Description", style="white")
    table.add_column("Capabilities", style="green")
    for i, task in enumerate(plan.sub_tasks, 1):
        table.add_row(str(i), task.description, ", ".join(task.required_capabilities))
    console.print(table)
    return 0


def cmd_memory(args, config: Config) -> int:
    context = AgentContext.create(config)
    memory = context.memory

    if args.action == "stats":
        stats = memory.statistics()
        table = Table(title="Long-Term Memory", show_header=True, header_style="bold magenta")
        table.add_column("Type", style="cyan")
        table.add_column("Count", style="yellow", justify="right")
        for kind, count in stats["by_type"].items():
            table.add_row(kind, str(count))
        console.print(table)
        console.print(
            f"Total: {stats['total']}/{stats['capacity']}  "
            f"Average importance: {stats['average_importance']:.2f}"
        )
        return 0

    if args.action == "search":
        if not args.query:
            print_error("memory search needs a query")
            return 1
        type_filter = MemoryType(args.type) if args.type else None
        entries = memory.search(args.query, limit=args.limit, type=type_filter)
        if not entries:
            console.print(f"[yellow]No memories match \"{args.query}\"[/yellow]")
            return 0
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Type", style="cyan")
        table.add_column("Content", style="white")
        table.add_column("Importance", style="yellow", justify="right")
        for entry in entries:
            table.add_row(entry.type.value, entry.content, f"{entry.importance:.2f}")
        console.print(table)
        return 0

    removed = memory.consolidate()
    print_success(f"Consolidated {removed} duplicate memories ({len(memory)} remaining)")
    return 0


def cmd_index(args, config: Config) -> int:
    root = Path(args.path)
    if not root.is_dir():
        print_error(f"Not a directory: {root}")
        return 1
    context = AgentContext.create(config)
    patterns = args.pattern or config.get("vector.patterns")
    with console.status(f"Indexing {root}..."):
        report = context.semantic.index_directory(str(root), patterns=patterns, force=True)
    console.print(report.render())
    return 0


def cmd_search(args, config: Config) -> int:
    context = AgentContext.create(config)
    if not context.semantic.is_indexed:
        print_error("Nothing indexed yet. Run: ai-director index <path>")
        return 1
    hits = context.semantic.search(args.query, top_k=args.top_k)
    console.print(context.semantic.format_results(args.query, hits))
    return 0


def _preview(value: str, width: int = 60) -> str:
    first = value.splitlines()[0] if value else ""
    if len(first) > width or "\n" in value:
        return first[:width] + " ..."
    return first


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ai-director",
        description="AI Director - tool-call parsing, planning and project memory",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ai-director parse response.txt
  ai-director plan "Create a player with movement"
  ai-director memory search PlayerController
  ai-director index ./Assets && ai-director search "enemy damage"
        """
    )
    parser.add_argument("--config", type=str, default="config/settings.yaml", help="Config file path")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("parse", help="Parse tool directives from a file")
    p.add_argument("file", help="File containing model output")
    p.set_defaults(handler=cmd_parse)

    p = sub.add_parser("plan", help="Build a task plan for a goal")
    p.add_argument("goal", help="Goal description")
    p.add_argument("--ai", action="store_true", help="Decompose with the configured oracle")
    p.set_defaults(handler=cmd_plan)

    p = sub.add_parser("memory", help="Inspect long-term memory")
    p.add_argument("action", choices=["stats", "search", "consolidate"])
    p.add_argument("query", nargs="?", help="Search text")
    p.add_argument("--type", choices=[t.value for t in MemoryType], help="Only this memory type")
    p.add_argument("--limit", type=int, default=10, help="Maximum results")
    p.set_defaults(handler=cmd_memory)

    p = sub.add_parser("index", help="Index a project directory for semantic search")
    p.add_argument("path", help="Project root")
    p.add_argument("--pattern", action="append", help="Glob pattern (repeatable)")
    p.set_defaults(handler=cmd_index)

    p = sub.add_parser("search", help="Semantic search over the indexed project")
    p.add_argument("query", help="What to look for")
    p.add_argument("--top-k", type=int, default=5, help="Number of results")
    p.set_defaults(handler=cmd_search)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = Config().load(args.config)
    configure_logging(config.get_section("logging"), verbose=args.verbose)

    try:
        return args.handler(args, config)
    except KeyboardInterrupt:
        console.print("\n\nInterrupted by user.")
        return 1
    except (DirectorError, OSError, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        print_error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
