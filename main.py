"""CLI entry point for the scheme finder."""

import argparse
import asyncio
import logging
import sqlite3
import sys
from pathlib import Path

import yaml

from scheme_finder.core.config import Settings
from scheme_finder.core.db import init_db, upsert_profile
from scheme_finder.core.errors import SchemeFinderError
from scheme_finder.core.schemas import SearchFilters, SearchResult, SmartSearchQuery, UserProfile
from scheme_finder.embedding import get_provider
from scheme_finder.embedding.base import EmbeddingProvider
from scheme_finder.pipeline.hybrid_search import HybridSearchService
from scheme_finder.pipeline.orchestrator import SearchOrchestrator, export_results_json

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Scheme finder - search welfare schemes and check eligibility",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- search subcommand ---
    search_parser = subparsers.add_parser("search", help="Search schemes by free text")
    search_parser.add_argument("text", nargs="?", default="", help="Free-text query")
    search_parser.add_argument("--category", help="Only schemes in this category")
    search_parser.add_argument("--state", help="Only schemes available in this state")
    search_parser.add_argument("--level", choices=["Central", "State"], help="Central or State schemes")
    search_parser.add_argument("--limit", type=int, default=None, help="Results per page")
    search_parser.add_argument("--offset", type=int, default=0, help="Results to skip")
    search_parser.add_argument("--profile", help="Path to a profile YAML for eligibility ranking")
    search_parser.add_argument("--user-id", help="Use the stored profile of this user")
    search_parser.add_argument(
        "--export",
        choices=["json"],
        help="Export results to format (json)",
    )
    _add_common_args(search_parser)

    # --- check subcommand ---
    check_parser = subparsers.add_parser("check", help="Check eligibility for one scheme")
    check_parser.add_argument("scheme_id", type=int, help="Scheme id")
    check_parser.add_argument("--profile", required=True, help="Path to a profile YAML")
    _add_common_args(check_parser)

    # --- recommend subcommand ---
    recommend_parser = subparsers.add_parser(
        "recommend",
        help="Recommend schemes for a stored user profile",
    )
    recommend_parser.add_argument("user_id", help="User whose stored profile is used")
    recommend_parser.add_argument("--limit", type=int, default=None, help="Number of results")
    _add_common_args(recommend_parser)

    # --- save-profile subcommand ---
    save_parser = subparsers.add_parser("save-profile", help="Store a profile for a user")
    save_parser.add_argument("user_id", help="User id to store the profile under")
    save_parser.add_argument("--profile", required=True, help="Path to a profile YAML")
    _add_common_args(save_parser)

    return parser.parse_args(argv)


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_profile(path: str | Path) -> UserProfile:
    """Load a UserProfile from YAML (snake_case or camelCase keys)."""
    path = Path(path)
    if not path.exists():
        msg = f"Profile file not found: {path}"
        raise FileNotFoundError(msg)
    raw = yaml.safe_load(path.read_text()) or {}
    return UserProfile.model_validate(raw)


def build_provider(settings: Settings) -> EmbeddingProvider | None:
    """Return the configured embedding provider, or None for lexical-only search."""
    if not settings.embedding.enabled:
        return None
    try:
        return get_provider(settings.embedding.provider)
    except ValueError as e:
        logger.warning("Embedding provider disabled: %s", e)
        return None


def build_orchestrator(settings: Settings, conn: sqlite3.Connection) -> SearchOrchestrator:
    service = HybridSearchService(conn, build_provider(settings), settings)
    return SearchOrchestrator(conn, service, settings)


def print_results(result: SearchResult) -> None:
    if result.degraded:
        print("Note: semantic search unavailable, results ranked by keywords only.")
    if not result.results:
        print("No schemes found.")
        return

    print(f"\n{result.total} schemes found, showing {result.offset + 1}-"
          f"{result.offset + len(result.results)}:")
    for i, s in enumerate(result.results, start=result.offset + 1):
        scheme = s.scheme
        where = scheme.state if scheme.level == "State" else "Central"
        print(f"{i:3d}. [{scheme.id}] {scheme.name} ({where}) score={s.score:.3f}")
        if s.eligibility is not None:
            print(f"       {s.eligibility.status.value} "
                  f"(confidence {s.eligibility.confidence})")


async def cmd_search(args: argparse.Namespace, settings: Settings) -> None:
    """Handle search subcommand."""
    profile = load_profile(args.profile) if args.profile else None
    query = SmartSearchQuery(
        raw_text=args.text,
        profile=profile,
        user_id=args.user_id,
        limit=args.limit or settings.search.default_limit,
        offset=args.offset,
        filters=SearchFilters(category=args.category, state=args.state, level=args.level),
    )

    conn = init_db(settings.database.path)
    try:
        result = await build_orchestrator(settings, conn).orchestrate_smart_search(query)
    finally:
        conn.close()

    if args.export == "json":
        print(export_results_json(result))
    else:
        print_results(result)


def cmd_check(args: argparse.Namespace, settings: Settings) -> None:
    """Handle check subcommand."""
    profile = load_profile(args.profile)
    conn = init_db(settings.database.path)
    try:
        result = build_orchestrator(settings, conn).check_scheme(args.scheme_id, profile)
    finally:
        conn.close()

    print(f"Scheme {result.scheme_id}: {result.status.value} "
          f"(confidence {result.confidence})")
    for label in result.matched_criteria:
        print(f"  + {label}")
    for label in result.unmatched_criteria:
        print(f"  - {label}")
    for label in result.undecided_criteria:
        print(f"  ? {label}")


async def cmd_recommend(args: argparse.Namespace, settings: Settings) -> None:
    """Handle recommend subcommand."""
    conn = init_db(settings.database.path)
    try:
        result = await build_orchestrator(settings, conn).get_personalized_recommendations(
            args.user_id,
            limit=args.limit or settings.search.default_limit,
        )
    finally:
        conn.close()
    if not result.profile_applied:
        print(f"Note: no profile stored for '{args.user_id}', showing general schemes.")
    print_results(result)


def cmd_save_profile(args: argparse.Namespace, settings: Settings) -> None:
    """Handle save-profile subcommand."""
    profile = load_profile(args.profile)
    conn = init_db(settings.database.path)
    try:
        upsert_profile(conn, args.user_id, profile)
    finally:
        conn.close()
    print(f"Profile stored for '{args.user_id}'")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Settings.from_yaml(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.command == "search":
            asyncio.run(cmd_search(args, settings))
        elif args.command == "check":
            cmd_check(args, settings)
        elif args.command == "recommend":
            asyncio.run(cmd_recommend(args, settings))
        elif args.command == "save-profile":
            cmd_save_profile(args, settings)
    except (SchemeFinderError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
