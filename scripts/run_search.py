"""Entry point for manual searches from the command line."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from lodging_search.config.run_config import RunConfig
from lodging_search.config.settings import Settings
from lodging_search.core.logging import configure_logging
from lodging_search.pipeline.events import ProgressEvent
from lodging_search.pipeline.orchestrator import SearchOrchestrator
from lodging_search.properties.models import AccommodationResult, Budget, SearchCriteria

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search and rank accommodations for a trip")
    parser.add_argument("destination", nargs="?", default=None, help="City or area to search")
    parser.add_argument("--check-in", default=None, help="YYYY-MM-DD, today, +14d, M/D ...")
    parser.add_argument("--check-out", default=None, help="Same formats as --check-in")
    parser.add_argument("--guests", type=int, default=None)
    parser.add_argument("--budget-min", type=float, default=None, help="Minimum nightly price")
    parser.add_argument("--budget-max", type=float, default=None, help="Maximum nightly price")
    parser.add_argument("--currency", default=None)
    parser.add_argument("--amenity", action="append", default=None, help="Wanted amenity (repeatable)")
    parser.add_argument("--trip-purpose", default=None)
    parser.add_argument("--property-type", default=None)
    parser.add_argument("--flexible-cancellation", action="store_true", default=None)
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=(
            "Path to a TOML run configuration file "
            "(defaults to config/run_config.toml when present)"
        ),
    )
    parser.add_argument(
        "--no-config",
        action="store_true",
        help="Ignore config/run_config.toml even if it exists",
    )
    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument("--live", action="store_true", help="Query live sources")
    mode_group.add_argument("--demo", action="store_true", help="Answer from the demo catalog")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--output", type=Path, default=None, help="Write ranked results to this JSON file")
    return parser


def _print_event(event: ProgressEvent) -> None:
    if event.type == "progress":
        print(f"  .. {event.message}")
    elif event.type == "error":
        print(f"  !! {event.message}")
    elif event.type == "results":
        print(f"  => {len(event.accommodations)} results")


def _print_results(results: list[AccommodationResult]) -> None:
    for result in results:
        rating = f"{result.rating:.1f}" if result.rating else "n/a"
        print(f"{result.id:>12}  {result.match_score:>3}  {result.price:>6}  {rating:>4}  {result.name} [{result.source}]")
        print(f"{'':>12}  {result.reasoning}")


def _write_results(path: Path, criteria: SearchCriteria, results: list[AccommodationResult]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "criteria": criteria.model_dump(mode="json"),
        "items": [result.to_dict() for result in results],
    }
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False))
    return path


async def run(settings: Settings, criteria: SearchCriteria) -> list[AccommodationResult]:
    orchestrator = SearchOrchestrator(settings)
    return await orchestrator.run(criteria, _print_event)


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    settings = Settings()
    config_path: Optional[Path] = None
    run_config = RunConfig()

    if not args.no_config:
        if args.config:
            config_path = args.config
            if not config_path.exists():
                raise FileNotFoundError(f"Config file not found: {config_path}")
        else:
            default_path = Path("config/run_config.toml")
            if default_path.exists():
                config_path = default_path

    if config_path:
        run_config = RunConfig.load(config_path)
        run_config.apply_to(settings, base_dir=config_path.parent)

    if args.live:
        settings.use_real_search = True
    elif args.demo:
        settings.use_real_search = False
    if args.headed:
        settings.headless = False

    overrides: dict[str, object] = {
        "destination": args.destination,
        "check_in": args.check_in,
        "check_out": args.check_out,
        "guests": args.guests,
        "amenities": args.amenity,
        "trip_purpose": args.trip_purpose,
        "property_type": args.property_type,
        "flexible_cancellation": args.flexible_cancellation,
    }
    if args.budget_min is not None or args.budget_max is not None or args.currency:
        band: dict[str, object] = {"min": args.budget_min, "max": args.budget_max}
        if args.currency:
            band["currency"] = args.currency
        overrides["budget"] = Budget(**band)
    try:
        criteria = run_config.search_criteria(**overrides)
    except ValueError as exc:
        parser.error(f"Invalid search criteria: {exc}")

    configure_logging(settings.log_level, settings.log_dir)
    settings.ensure_directories()
    if config_path:
        logger.info("Loaded run profile '%s' from %s", run_config.profile, config_path)
    logger.info("Mode: %s", "live" if settings.use_real_search else "demo")

    results = asyncio.run(run(settings, criteria))
    _print_results(results)
    if args.output:
        path = _write_results(args.output, criteria, results)
        logger.info("Wrote %s results to %s", len(results), path)


if __name__ == "__main__":
    main()
