# src/main.py - v2
"""CLI entry point: generate, estimate and cache administration.

Usage:
    docuforge generate <type> --input request.json [options]
    docuforge estimate <type> --input request.json [--provider P] [--model M]
    docuforge cache stats|health
    docuforge cache clear (--type T | --provider P | --all)
    docuforge cache warm <type> --provider P --model M [--patterns file.json]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from docuforge.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from docuforge.config.settings import load_settings

    settings = load_settings()
    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    from docuforge.config.document_types import DocumentType

    doc_types = [t.value for t in DocumentType]
    parser = argparse.ArgumentParser(
        prog="docuforge",
        description=f"docuforge v{__version__} - cached long-form document generation",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- generate ---
    p_gen = subparsers.add_parser("generate", help="Generate a document")
    p_gen.add_argument("document_type", choices=doc_types)
    p_gen.add_argument(
        "-i", "--input", dest="input_file", required=True,
        help="JSON file with the document input ('-' for stdin)",
    )
    p_gen.add_argument("--provider", default=None, help="Provider override")
    p_gen.add_argument("--model", default=None, help="Model override")
    p_gen.add_argument("--temperature", type=float, default=None)
    p_gen.add_argument("--style", default=None, help="Prompt style (professional, creative, ...)")
    p_gen.add_argument("--user", default="", help="User id for preferences and quotas")
    p_gen.add_argument("--no-cache", action="store_true", help="Skip cache reads and writes")
    p_gen.add_argument("--force-refresh", action="store_true", help="Regenerate and overwrite cache")
    p_gen.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Write the document text here (default: stdout)",
    )
    p_gen.add_argument(
        "--record", type=Path, default=None,
        help="Write the full JSON record (stats, call log) here",
    )
    p_gen.set_defaults(func=_cmd_generate)

    # --- estimate ---
    p_est = subparsers.add_parser("estimate", help="Estimate tokens and cost")
    p_est.add_argument("document_type", choices=doc_types)
    p_est.add_argument("-i", "--input", dest="input_file", required=True)
    p_est.add_argument("--provider", default=None)
    p_est.add_argument("--model", default=None)
    p_est.set_defaults(func=_cmd_estimate)

    # --- cache ---
    p_cache = subparsers.add_parser("cache", help="Cache administration")
    cache_sub = p_cache.add_subparsers(dest="cache_command")

    p_stats = cache_sub.add_parser("stats", help="Show cache statistics")
    p_stats.set_defaults(func=_cmd_cache_stats)

    p_health = cache_sub.add_parser("health", help="Probe the cache backend")
    p_health.set_defaults(func=_cmd_cache_health)

    p_clear = cache_sub.add_parser("clear", help="Delete cache entries")
    target = p_clear.add_mutually_exclusive_group(required=True)
    target.add_argument("--type", dest="document_type", choices=doc_types)
    target.add_argument("--provider", default=None)
    target.add_argument("--all", action="store_true")
    p_clear.set_defaults(func=_cmd_cache_clear)

    p_warm = cache_sub.add_parser("warm", help="Warm outline entries")
    p_warm.add_argument("document_type", choices=doc_types)
    p_warm.add_argument("--provider", required=True)
    p_warm.add_argument("--model", required=True)
    p_warm.add_argument(
        "--patterns", type=Path, default=None,
        help="JSON file with a list of input patterns (default: built-in patterns)",
    )
    p_warm.set_defaults(func=_cmd_cache_warm)

    return parser


async def _cmd_generate(args: argparse.Namespace, settings: Any) -> int:
    """Run one generation and print the document."""
    from docuforge.api.facade import create_app
    from docuforge.core.models import GenerationRequest, PipelineStage

    raw_input = _read_json(args.input_file)
    request = GenerationRequest(
        document_type=args.document_type,
        raw_input=raw_input,
        provider_name=args.provider,
        model_id=args.model,
        user_id=args.user,
        temperature=args.temperature,
        use_cache=not args.no_cache,
        force_refresh=args.force_refresh,
        prompt_style=args.style,
    )

    app = create_app(settings)
    try:
        record = await app.orchestrator.run(request)
    finally:
        app.close()

    if args.record:
        args.record.write_text(record.model_dump_json(indent=2), encoding="utf-8")

    if record.status != PipelineStage.COMPLETED:
        failure = record.failure
        logger.error(
            "Generation %s during %s: %s",
            record.status.value,
            failure.stage.value if failure else "unknown",
            failure.reason if failure else "",
        )
        return 2

    if args.output:
        args.output.write_text(record.content, encoding="utf-8")
    else:
        print(record.content)

    stats = record.stats
    print(
        f"\n[{record.provider}/{record.model}] sections={stats.total_sections} "
        f"cached={stats.sections_from_cache} tokens={record.token_usage.total_tokens} "
        f"cost=${record.cost:.4f} saved=${stats.cost_saved:.4f}",
        file=sys.stderr,
    )
    if args.verbose:
        from docuforge.tracking.cost_calculator import compute_stage_usage

        for stage, usage in compute_stage_usage(record.call_records).items():
            print(
                f"  {stage}: calls={usage.total_calls} tokens={usage.total_tokens} "
                f"retries={usage.retry_count} cost=${usage.estimated_cost_usd:.4f}",
                file=sys.stderr,
            )
    return 0


async def _cmd_estimate(args: argparse.Namespace, settings: Any) -> int:
    from docuforge.api.facade import estimate_cost

    estimate = estimate_cost(
        args.document_type, _read_json(args.input_file),
        provider=args.provider, model=args.model, settings=settings,
    )
    print(estimate.model_dump_json(indent=2))
    return 0


async def _cmd_cache_stats(args: argparse.Namespace, settings: Any) -> int:
    from docuforge.api.facade import create_app

    app = create_app(settings)
    try:
        stats = await app.admin.get_stats()
    finally:
        app.close()

    print(f"\nCache statistics ({settings.cache_backend}):")
    print(f"  Entries:      {stats.total_entries}")
    print(f"  Memory:       {stats.memory_usage_bytes / 1024 / 1024:.2f} MB")
    print(f"  Entry hits:   {stats.total_entry_hits}")
    print(f"  Cost saved:   ${stats.total_cost_saved:.4f}")
    for stage, count in sorted(stats.by_stage.items()):
        print(f"  {stage + ':':<13} {count}")
    return 0 if stats.healthy else 1


async def _cmd_cache_health(args: argparse.Namespace, settings: Any) -> int:
    from docuforge.api.facade import create_app

    app = create_app(settings)
    try:
        report = await app.admin.health_check()
    finally:
        app.close()
    print(f"{report.backend}: {'healthy' if report.healthy else 'UNHEALTHY'}")
    return 0 if report.healthy else 1


async def _cmd_cache_clear(args: argparse.Namespace, settings: Any) -> int:
    from docuforge.api.facade import create_app

    app = create_app(settings)
    try:
        if args.all:
            count = await app.admin.clear_all()
        elif args.document_type:
            count = await app.admin.clear_by_document_type(args.document_type)
        else:
            count = await app.admin.clear_by_provider(args.provider)
    finally:
        app.close()
    print(f"Cleared {count} entries")
    return 0


async def _cmd_cache_warm(args: argparse.Namespace, settings: Any) -> int:
    from docuforge.api.facade import create_app

    patterns = _read_json(str(args.patterns)) if args.patterns else None
    if patterns is not None and not isinstance(patterns, list):
        logger.error("Patterns file must contain a JSON list")
        return 1

    app = create_app(settings)
    try:
        job_id = app.admin.warm_cache(args.document_type, args.provider, args.model, patterns)
        job = await app.admin.wait_for_job(job_id)
    finally:
        app.close()

    if job is None or job.status != "completed" or job.result is None:
        logger.error("Warm job %s failed: %s", job_id, job.error if job else "unknown job")
        return 1
    print(f"Warmed {job.result.warmed}/{job.result.total} patterns ({job_id})")
    return 0


def _read_json(source: str) -> Any:
    if source == "-":
        return json.load(sys.stdin)
    path = Path(source)
    if not path.is_file():
        raise FileNotFoundError(f"Input file not found: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def _setup_logging(settings: Any, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from docuforge.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
