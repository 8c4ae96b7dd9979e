"""CLI entry point for the shopping-list tools."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from dotenv import load_dotenv

from .config import load_config
from .db import ShoppingListDB
from .errors import ShoppingListError
from .normalize import STRATEGIES, Normalizer
from .oracles import create_search_backend
from .service import ShoppingListService


def main(argv: list[str] | None = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="shoplist",
        description="Normalize, merge and price shopping lists",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to the configuration file (TOML)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    sub = parser.add_subparsers(dest="command")

    # normalize
    norm_parser = sub.add_parser("normalize", help="Parse and merge raw lines")
    norm_parser.add_argument(
        "lines", nargs="*", help="Shopping-list lines (read from stdin if omitted)"
    )
    norm_parser.add_argument("--strategy", choices=STRATEGIES, default=None)
    norm_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # lists
    sub.add_parser("lists", help="Show stored shopping lists")

    # clean-up
    clean_parser = sub.add_parser("clean-up", help="Clean up a stored list")
    clean_parser.add_argument("--list", dest="list_id", default=None, help="List id (default: active list)")
    clean_parser.add_argument("--strategy", choices=STRATEGIES, default=None)
    clean_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # cheapest
    cheap_parser = sub.add_parser("cheapest", help="Compare supermarket prices for a list")
    cheap_parser.add_argument("--list", dest="list_id", default=None, help="List id (default: active list)")
    cheap_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # optimize
    opt_parser = sub.add_parser("optimize", help="Split a list over a few supermarkets")
    opt_parser.add_argument("--list", dest="list_id", default=None, help="List id (default: active list)")
    opt_parser.add_argument("--max-stores", type=int, default=2, help="Maximum number of supermarkets")
    opt_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # serve
    serve_parser = sub.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", type=str, default=None)
    serve_parser.add_argument("--port", type=int, default=None)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)

    try:
        match args.command:
            case "normalize":
                _cmd_normalize(config, args)
            case "lists":
                _cmd_lists(config)
            case "clean-up":
                _cmd_clean_up(config, args)
            case "cheapest":
                asyncio.run(_cmd_cheapest(config, args))
            case "optimize":
                asyncio.run(_cmd_optimize(config, args))
            case "serve":
                _cmd_serve(config, args)
    except (ShoppingListError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _cmd_normalize(config, args) -> None:
    lines = args.lines or sys.stdin.read().splitlines()
    result = Normalizer.from_config(config).normalize_lines(lines, args.strategy)

    if args.json:
        data = {
            "items": [i.to_dict() for i in result.items],
            "itemsMerged": result.items_merged,
            "categoriesAssigned": result.categories_assigned,
            "duplicatesFound": result.duplicates_found,
            "linesSkipped": result.lines_skipped,
        }
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return

    _print_items(result.items)
    print(
        f"\n{len(result.items)} items "
        f"({result.items_merged} merged, {result.lines_skipped} lines skipped)"
    )


def _cmd_lists(config) -> None:
    repo = ShoppingListDB(config.database.path)
    try:
        lists = repo.list_all()
    finally:
        repo.close()

    if not lists:
        print("No shopping lists found.")
        return
    for sl in lists:
        mark = " (active)" if sl.active else ""
        print(f"{sl.id}  {sl.name}{mark}  {len(sl.items)} items")


def _cmd_clean_up(config, args) -> None:
    repo = ShoppingListDB(config.database.path)
    service = ShoppingListService(repo, Normalizer.from_config(config))
    try:
        result = service.clean_up(args.list_id, args.strategy)
    finally:
        repo.close()

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return

    _print_items(result.items)
    print(
        f"\n{result.items_merged} merged, "
        f"{result.categories_assigned} categorized, "
        f"{result.items_standardized} renamed"
    )


async def _with_search(config, use_case):
    search = create_search_backend(config)
    repo = ShoppingListDB(config.database.path)
    service = ShoppingListService(
        repo,
        Normalizer.from_config(config),
        search=search,
        search_limit=config.search.limit,
        matches_per_item=config.search.matches_per_item,
    )
    try:
        if search is not None:
            await search.open()
        return await use_case(service)
    finally:
        if search is not None:
            await search.close()
        repo.close()


async def _cmd_cheapest(config, args) -> None:
    result = await _with_search(config, lambda s: s.find_cheapest(args.list_id))

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return

    if not result.comparisons:
        print("No matching products found.")
        return
    for comp in result.comparisons:
        missing = f", {len(comp.missing_items)} missing" if comp.missing_items else ""
        print(f"{comp.supermarket_name}: €{comp.total:.2f} ({len(comp.items)} items{missing})")
    summary = result.to_dict()["cheapest"]
    print(f"\nCheapest: {summary['supermarketName']} (saves €{summary['savings']:.2f})")


async def _cmd_optimize(config, args) -> None:
    result = await _with_search(
        config, lambda s: s.optimize(args.list_id, args.max_stores)
    )

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return

    opt = result.optimization
    if not opt.stores:
        print("No matching products found.")
        return
    for store in opt.stores:
        print(f"[{store.supermarket_name}] €{store.total:.2f}")
        for priced in store.items:
            print(f"  {priced.item.display()} -> {priced.product.name}")
    if opt.missing_items:
        print(f"\nNot found: {', '.join(opt.missing_items)}")
    print(
        f"\n€{opt.optimized_price:.2f} instead of €{opt.original_price:.2f} "
        f"(saves €{opt.total_savings:.2f})"
    )


def _cmd_serve(config, args) -> None:
    import uvicorn

    from .server import create_app

    uvicorn.run(
        create_app(config),
        host=args.host or config.server.host,
        port=args.port or config.server.port,
    )


def _print_items(items) -> None:
    current = None
    for item in sorted(items, key=lambda i: i.category):
        if item.category != current:
            current = item.category
            print(f"[{current}]")
        print(f"  {item.display()}")


if __name__ == "__main__":
    main()
