"""CLI entry point — Inspect documents in the configured store."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from docmapper.config.settings import Settings
    from docmapper.stores.base.store import DocumentStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docmapper",
        description="docmapper — Persistent models stored in a search index",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--backend",
        type=str,
        choices=["elasticsearch", "opensearch", "memory"],
        default=None,
        help="Store backend (overrides config)",
    )
    parser.add_argument(
        "--host",
        action="append",
        default=None,
        help="Store host URL, repeatable (overrides config)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Log level (overrides config)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"docmapper {_get_version()}",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("health", help="Report store health")

    get = commands.add_parser("get", help="Fetch one document by id")
    get.add_argument("index", help="Index name")
    get.add_argument("id", help="Document id")

    search = commands.add_parser("search", help="Search an index")
    search.add_argument("index", help="Index name")
    search.add_argument("query", nargs="?", default=None, help="Query-string text (match all if omitted)")
    search.add_argument("--page", type=int, default=1, help="1-based page number")
    search.add_argument("--per-page", type=int, default=None, help="Page size")
    search.add_argument("--sort", action="append", default=None, help="Sort field, 'field:desc' for descending")

    refresh = commands.add_parser("refresh", help="Make recent writes searchable")
    refresh.add_argument("index", help="Index name")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    from docmapper.config.settings import Settings
    from docmapper.observability.logging import setup_logging

    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            print(f"Error: Config file not found: {config_path}", file=sys.stderr)
            sys.exit(1)
        settings = Settings.from_yaml(config_path)
    else:
        settings = Settings()

    # Apply CLI overrides
    if args.backend:
        settings.store.backend = args.backend
    if args.host:
        settings.store.hosts = args.host
    if args.log_level:
        settings.observability.log_level = args.log_level

    # stdout carries the command's JSON output
    setup_logging(settings.observability, stream=sys.stderr)

    sys.exit(asyncio.run(_run(args, settings)))


async def _run(args: argparse.Namespace, settings: Settings) -> int:
    from docmapper.stores.base.exceptions import StoreError
    from docmapper.stores.base.registry import default_registry

    try:
        store = await default_registry().create_from_settings(settings.store)
    except StoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        result = await _dispatch(args, settings, store)
    except StoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await store.shutdown()

    print(json.dumps(result, indent=2, default=str))
    return 0


async def _dispatch(args: argparse.Namespace, settings: Settings, store: DocumentStore) -> Any:
    from docmapper.models.pagination import Pagination
    from docmapper.models.search import SearchOptions
    from docmapper.query.builder import QueryBuilder

    if args.command == "health":
        return (await store.health_check()).model_dump()

    if args.command == "get":
        return (await store.get_document(args.index, args.id)).model_dump()

    if args.command == "refresh":
        await store.refresh(args.index)
        return {"index": args.index, "refreshed": True}

    builder = QueryBuilder()
    if args.query:
        builder.string(args.query)
    options = SearchOptions(
        page=args.page,
        per_page=min(args.per_page or settings.pagination.default_per_page, settings.pagination.max_per_page),
        sort=args.sort,
    )
    hits = await store.search(args.index, options.to_body(builder.to_dict()))
    pagination = Pagination(page=options.page, per_page=options.per_page, total=hits.total)
    return {
        "total": hits.total,
        "page": pagination.current_page,
        "total_pages": pagination.total_pages,
        "next_page": pagination.next_page,
        "hits": [hit.model_dump() for hit in hits.hits],
    }


def _get_version() -> str:
    """Get the package version."""
    try:
        from docmapper import __version__

        return __version__
    except ImportError:
        return "unknown"


if __name__ == "__main__":
    main()
