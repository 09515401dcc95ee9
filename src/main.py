# src/main.py — v1
"""CLI entry point: analyze, batch, health and cache commands.

Usage:
    scamguard analyze "<text>" [--category C] [--user-id U | --ip IP]
    scamguard batch <file.json> [--user-id U | --ip IP]
    scamguard health
    scamguard cache stats|cleanup

Batch files hold either a list of items or ``{"batch": [...]}``. Each
item is ``{"content": ..., "category": ...}`` or ``{"file": path}``;
relative file paths resolve against the JSON file's directory.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from scamguard.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def cli() -> None:
    """Console-script wrapper."""
    sys.exit(main())


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="scamguard",
        description=f"scamguard v{__version__} - scam content analysis gateway",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--env-file", type=Path, default=None,
        help="Settings file (default: .env)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- analyze ---
    p_analyze = subparsers.add_parser("analyze", help="Analyze one piece of content")
    p_analyze.add_argument("content", help="Text, message or URL to analyze")
    p_analyze.add_argument("-c", "--category", default=None, help="Content category")
    _add_client_args(p_analyze)
    p_analyze.set_defaults(func=_cmd_analyze)

    # --- batch ---
    p_batch = subparsers.add_parser("batch", help="Analyze a batch from a JSON file")
    p_batch.add_argument("file", type=Path, help="Path to batch JSON file")
    _add_client_args(p_batch)
    p_batch.set_defaults(func=_cmd_batch)

    # --- health ---
    p_health = subparsers.add_parser("health", help="Show health from recorded metrics")
    p_health.set_defaults(func=_cmd_health)

    # --- cache ---
    p_cache = subparsers.add_parser("cache", help="Cache maintenance")
    p_cache.add_argument("action", choices=["stats", "cleanup"])
    p_cache.set_defaults(func=_cmd_cache)

    return parser


def _add_client_args(p: argparse.ArgumentParser) -> None:
    group = p.add_mutually_exclusive_group()
    group.add_argument("--user-id", default=None, help="Authenticated user id")
    group.add_argument("--ip", dest="ip_address", default=None, help="Client IP address")


async def _run(args: argparse.Namespace) -> int:
    from scamguard.api.facade import build_gateway
    from scamguard.config.settings import Settings
    from scamguard.logging.logger import setup_logging_from_settings

    settings = Settings(_env_file=args.env_file) if args.env_file else Settings()
    if args.verbose:
        settings = settings.model_copy(update={"log_level": "DEBUG"})
    setup_logging_from_settings(settings)

    container = build_gateway(settings)
    try:
        return await args.func(args, container)
    finally:
        await container.close()


async def _cmd_analyze(args: argparse.Namespace, container: Any) -> int:
    """Analyze a single submission and print the response."""
    from scamguard.api.facade import analyze, error_response
    from scamguard.core.errors import ScamGuardError

    request = {
        "content": args.content,
        "category": args.category,
        "userId": args.user_id,
        "ipAddress": args.ip_address,
    }
    try:
        response = await analyze(request, container)
    except ScamGuardError as exc:
        _, body = error_response(exc)
        _print_json(body)
        return 2
    _print_json(response.to_wire())
    return 0


async def _cmd_batch(args: argparse.Namespace, container: Any) -> int:
    """Run a batch file through the coordinator."""
    from scamguard.api.facade import error_response
    from scamguard.api.models import AnalyzeResponse
    from scamguard.core.errors import ScamGuardError, ValidationError
    from scamguard.ratelimit.limiter import resolve_client_id

    batch_file: Path = args.file
    if not batch_file.is_file():
        logger.error("File not found: %s", batch_file)
        return 1

    try:
        entries = _read_batch_entries(batch_file)
    except ValidationError as exc:
        logger.error("Invalid batch file %s: %s", batch_file, exc)
        _print_json(exc.to_payload())
        return 1

    coordinator = container.new_coordinator()
    for entry in entries:
        if "file" in entry:
            path = Path(entry["file"])
            if not path.is_absolute():
                path = batch_file.parent / path
            coordinator.add_file_item(str(path), category=entry.get("category"))
        else:
            coordinator.add_text_item(entry.get("content", ""), category=entry.get("category"))

    try:
        run = await coordinator.process_batch(
            client_id=resolve_client_id(args.user_id, args.ip_address)
        )
    except ScamGuardError as exc:
        _, body = error_response(exc)
        _print_json(body)
        return 2

    for index, item in enumerate(run.items):
        line: dict[str, Any] = {"index": index, "status": item.status}
        if item.result is not None:
            line["result"] = AnalyzeResponse.from_outcome(item.result).to_wire()
        if item.error:
            line["error"] = item.error
        _print_json(line)

    print(f"\nBatch {run.batch_id} complete:", file=sys.stderr)
    print(f"  Completed:  {run.completed}", file=sys.stderr)
    print(f"  Failed:     {run.failed}", file=sys.stderr)
    print(f"  Duration:   {run.duration_seconds:.1f}s", file=sys.stderr)
    return 0 if run.failed == 0 else 3


def _read_batch_entries(path: Path) -> list[dict[str, Any]]:
    """Load batch entries from a JSON list or a ``{"batch": [...]}`` object."""
    from scamguard.core.errors import ValidationError

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValidationError(f"Batch file is not valid JSON: {e}") from e
    if isinstance(data, dict):
        data = data.get("batch", [])
    if not isinstance(data, list):
        raise ValidationError("Batch file must hold a list of entries")
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ValidationError(f"Batch entry {index} must be an object")
        if "file" in entry and not isinstance(entry["file"], str):
            raise ValidationError(f"Batch entry {index}: file must be a path string")
    return data


async def _cmd_health(args: argparse.Namespace, container: Any) -> int:
    from scamguard.api.facade import stored_health

    snapshot = await stored_health(container)
    print(snapshot.model_dump_json(indent=2))
    return 0


async def _cmd_cache(args: argparse.Namespace, container: Any) -> int:
    from scamguard.api.facade import cache_cleanup, cache_stats

    if args.action == "cleanup":
        removed = await cache_cleanup(container)
        _print_json({"removed": removed})
        return 0

    stats = await cache_stats(container)
    if stats is None:
        _print_json({"enabled": False})
    else:
        _print_json(stats.model_dump())
    return 0


def _print_json(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, default=str))


if __name__ == "__main__":
    sys.exit(main())
