"""
Notification Filter CLI.

Run a batch of notifications through the pipeline from the command line:

    python -m notify_intel simulate batch.json --context context.yaml
    python -m notify_intel explain batch.yaml --id n-42

Batch files are JSON or YAML holding either a list of notifications or a
mapping with ``notifications`` and an optional ``context``.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

import yaml

from .config import FilterConfig, load_filter_config
from .core.logging import get_logger
from .errors import NotifyError
from .models import ContextAnalysis, ContextSnapshot, Notification, utc_now
from .pipeline import FilterPipeline, create_pipeline


def output_json(data: dict[str, Any], indent: int = 2) -> None:
    """Print JSON output to stdout."""
    print(json.dumps(data, indent=indent, default=str))


def output_error(message: str, exit_code: int = 1, error_type: str = "error") -> int:
    """Print error JSON and return the exit code."""
    output_json(
        {
            "error": error_type,
            "message": message,
            "query_timestamp": utc_now().isoformat(timespec="seconds"),
        }
    )
    return exit_code


def load_document(path: Path) -> Any:
    """
    Load a JSON or YAML document.

    Raises:
        NotifyError: If the file cannot be read or parsed
    """
    try:
        with open(path) as f:
            if path.suffix.lower() == ".json":
                return json.load(f)
            return yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise NotifyError(f"Cannot load {path}: {e}") from e


def load_batch(
    batch_path: Path,
    context_path: Path | None = None,
) -> tuple[list[Notification], ContextSnapshot]:
    """Load notifications and context from batch (and optional context) files."""
    document = load_document(batch_path)
    context_data: Any = None

    if isinstance(document, dict):
        raw_notifications = document.get("notifications", [])
        context_data = document.get("context")
    elif isinstance(document, list):
        raw_notifications = document
    else:
        raise NotifyError(f"{batch_path} must contain a list or a mapping of notifications")

    if context_path is not None:
        context_data = load_document(context_path)

    notifications = [Notification.from_dict(n) for n in raw_notifications]
    return notifications, ContextSnapshot.from_dict(context_data)


def _build_pipeline(config_path: Path | None) -> FilterPipeline:
    if config_path is not None:
        return FilterPipeline.from_file(config_path)
    return create_pipeline()


# =============================================================================
# Commands
# =============================================================================


def cmd_simulate(args: argparse.Namespace) -> int:
    """Filter a batch and print the pipeline result."""
    notifications, context = load_batch(args.batch, args.context)
    pipeline = _build_pipeline(args.config)
    result = pipeline.filter(notifications, context, timeout=args.timeout)
    output_json(result.to_dict())
    return 0


def explain_notification(notification: Notification, analysis: ContextAnalysis) -> str:
    """Human-readable context analysis for one notification."""
    lines = [
        f"{notification.id} [{notification.priority.value}/{notification.category.value}/"
        f"{notification.type.value}] {notification.title}",
        f"  Relevance: {analysis.relevance:.3f}  Priority adjustment: {analysis.priority_adjustment:+.2f}",
    ]
    for name, score in analysis.dimension_scores.items():
        lines.append(f"    {name:<20} {score:.3f}")
    for label, items in (
        ("Recommendation", analysis.recommendations),
        ("Risk", analysis.risk_factors),
        ("Opportunity", analysis.opportunities),
    ):
        for item in items:
            lines.append(f"  {label}: {item}")
    return "\n".join(lines)


def cmd_explain(args: argparse.Namespace) -> int:
    """Print the context analysis of each notification in a batch."""
    notifications, context = load_batch(args.batch, args.context)
    config = load_filter_config(args.config) if args.config else FilterConfig()
    pipeline = FilterPipeline(config)

    if args.id:
        notifications = [n for n in notifications if n.id == args.id]
        if not notifications:
            return output_error(f"Notification {args.id!r} not in batch", error_type="not_found")

    analyses = [(n, pipeline.scorer.score(n, context)) for n in notifications]

    if args.json:
        output_json({"analyses": {n.id: a.to_dict() for n, a in analyses}})
    else:
        print("\n\n".join(explain_notification(n, a) for n, a in analyses))
    return 0


# =============================================================================
# Entry Point
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notify_intel",
        description="Context-aware notification filtering",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    simulate = subparsers.add_parser("simulate", help="Filter a batch and print the result")
    simulate.add_argument("batch", type=Path, help="JSON or YAML batch file")
    simulate.add_argument("--context", type=Path, help="JSON or YAML context snapshot")
    simulate.add_argument("--config", type=Path, help="YAML pipeline configuration")
    simulate.add_argument("--timeout", type=float, help="Overall time budget in seconds")
    simulate.set_defaults(func=cmd_simulate)

    explain = subparsers.add_parser("explain", help="Show context analysis per notification")
    explain.add_argument("batch", type=Path, help="JSON or YAML batch file")
    explain.add_argument("--context", type=Path, help="JSON or YAML context snapshot")
    explain.add_argument("--config", type=Path, help="YAML pipeline configuration")
    explain.add_argument("--id", help="Only explain this notification id")
    explain.add_argument("--json", action="store_true", help="Structured JSON output")
    explain.set_defaults(func=cmd_explain)

    return parser


def main(argv: list[str] | None = None) -> int:
    logger = get_logger(__name__)
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except NotifyError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        return output_error(str(e), error_type=type(e).__name__)
