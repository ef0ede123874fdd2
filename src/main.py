# src/main.py — v3
"""CLI entry point: generate, cache-stats, cache-cleanup, health commands.

Usage:
    masterchef generate <ingredient> [<ingredient> ...] [options]
    masterchef cache-stats
    masterchef cache-cleanup
    masterchef health
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from masterchef.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from masterchef.config.settings import ConfigurationError, load_settings

    try:
        settings = load_settings()
    except (ConfigurationError, ValueError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

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
    parser = argparse.ArgumentParser(
        prog="masterchef",
        description=f"masterchef v{__version__}: cached LLM recipe generation",
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
    p_generate = subparsers.add_parser(
        "generate", help="Generate a recipe from ingredients",
    )
    p_generate.add_argument("ingredients", nargs="+", help="Ingredients to cook with")
    p_generate.add_argument(
        "--prompt", default=None,
        help="Extra instructions appended to the recipe prompt",
    )
    p_generate.add_argument("--servings", type=int, default=None, help="Number of servings")
    p_generate.add_argument(
        "--difficulty", choices=["easy", "medium", "hard"], default=None,
        help="Target difficulty",
    )
    p_generate.add_argument(
        "--user", default="cli",
        help="Caller id recorded in the audit log (default: cli)",
    )
    p_generate.add_argument(
        "--export", action="store_true",
        help="Also export the recipe JSON to the configured export store",
    )
    p_generate.set_defaults(func=_cmd_generate)

    # --- cache-stats ---
    p_stats = subparsers.add_parser("cache-stats", help="Show cache entry counts")
    p_stats.set_defaults(func=_cmd_cache_stats)

    # --- cache-cleanup ---
    p_cleanup = subparsers.add_parser("cache-cleanup", help="Delete expired cache entries")
    p_cleanup.set_defaults(func=_cmd_cache_cleanup)

    # --- health ---
    p_health = subparsers.add_parser(
        "health", help="Check backend and export store availability",
    )
    p_health.set_defaults(func=_cmd_health)

    return parser


async def _cmd_generate(args: argparse.Namespace, settings) -> int:
    """Generate one recipe and print it as JSON."""
    from masterchef.api.facade import build_service
    from masterchef.api.models import RecipeRequest
    from masterchef.core.errors import RecipeGenerationError

    service = build_service(settings)
    request = RecipeRequest(
        ingredients=args.ingredients,
        extra_instructions=args.prompt,
        servings=args.servings,
        difficulty=args.difficulty,
    )
    try:
        response = await service.generate_recipe(request, args.user)
    except RecipeGenerationError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        _close_cache(service.orchestrator)

    print(service.export_recipe_json(response.recipe, response.recipe_id))
    meta = response.metadata
    print(
        f"\n[{meta.status}] model={meta.model} cached={meta.cached} "
        f"tokens={meta.tokens_used} latency={meta.latency_ms}ms",
        file=sys.stderr,
    )

    if args.export:
        key = await service.export_recipe(args.user, response.recipe_id, response)
        print(f"Exported to {key}", file=sys.stderr)
    return 0


async def _cmd_cache_stats(args: argparse.Namespace, settings) -> int:
    """Display cache entry counts."""
    from masterchef.api.facade import build_orchestrator

    orchestrator = build_orchestrator(settings)
    try:
        stats = await orchestrator.get_cache_stats()
    finally:
        _close_cache(orchestrator)

    if stats is None:
        print("Cache is disabled")
        return 0
    print(f"\nCache statistics ({settings.cache_backend}):")
    print(f"  Valid entries:  {stats.valid_entries}")
    print(f"  Total entries:  {stats.total_entries}")
    print(f"  Valid ratio:    {stats.hit_rate:.1%}")
    return 0


async def _cmd_cache_cleanup(args: argparse.Namespace, settings) -> int:
    """Sweep expired cache entries."""
    from masterchef.api.facade import build_orchestrator

    orchestrator = build_orchestrator(settings)
    try:
        removed = await orchestrator.cleanup_cache()
    finally:
        _close_cache(orchestrator)
    print(f"Removed {removed} expired entries")
    return 0


async def _cmd_health(args: argparse.Namespace, settings) -> int:
    """Report whether the generation backend and export store are reachable."""
    from masterchef.api.facade import build_service

    service = build_service(settings)
    orchestrator = service.orchestrator
    try:
        available = await orchestrator.is_available()
        export_ok = await service.check_export_store()
    finally:
        _close_cache(orchestrator)

    print(json.dumps({
        "provider": orchestrator.backend.provider_name,
        "model": orchestrator.get_model_name(),
        "available": available,
        "export_store": export_ok,
    }))
    return 0 if available and export_ok is not False else 1


def _close_cache(orchestrator) -> None:
    if orchestrator.cache is not None:
        orchestrator.cache.store.close()


def _setup_logging(settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from masterchef.logging.logger import setup_logging

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
