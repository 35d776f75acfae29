"""CLI entry point for the price engine."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from .config import load_config
from .db import LedgerError, PriceHistoryDB, PriceLedger, ShoppingListDB, VariantDB
from .matching import find_fuzzy_matches
from .sizes import parse_size, price_per_unit, unit_label


def main(argv: list[str] | None = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="shoplist-pricing",
        description="Grocery price engine: item matching, pack sizes and store comparison",
    )
    parser.add_argument(
        "--config", "-c", type=str, default=None, help="Config file path (TOML)"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    sub = parser.add_subparsers(dest="command")

    # match
    match_parser = sub.add_parser("match", help="Fuzzy-match an item name")
    match_parser.add_argument("query", type=str)
    match_parser.add_argument(
        "candidates", type=str, nargs="*",
        help="Names to match against (default: every item in the ledger)",
    )

    # parse-size
    size_parser = sub.add_parser("parse-size", help="Parse a pack size")
    size_parser.add_argument("size", type=str)
    size_parser.add_argument("--unit", type=str, default=None)
    size_parser.add_argument("--price", type=float, default=None, help="Show price per unit")

    # ingest
    ingest_parser = sub.add_parser("ingest", help="Record prices from a receipt JSON file")
    ingest_parser.add_argument("file", type=str)
    ingest_parser.add_argument("--reporter", type=str, default="", help="Reporting user id")

    # resolve
    resolve_parser = sub.add_parser("resolve", help="Resolve size and price for items")
    resolve_parser.add_argument("names", type=str, nargs="+")
    resolve_parser.add_argument("--store", type=str, default=None)
    resolve_parser.add_argument("--user", type=str, default=None)

    # compare
    compare_parser = sub.add_parser("compare", help="Compare a saved list across stores")
    compare_parser.add_argument("list_id", type=int)
    compare_parser.add_argument("--stores", type=str, nargs="+", required=True)

    # switch
    switch_parser = sub.add_parser("switch", help="Move a saved list to another store")
    switch_parser.add_argument("list_id", type=int)
    switch_parser.add_argument("--to", type=str, required=True, dest="to_store")
    switch_parser.add_argument(
        "--dry-run", action="store_true", help="Show the changes without saving"
    )

    # estimate
    estimate_parser = sub.add_parser("estimate", help="Estimate variants with AI")
    estimate_parser.add_argument("name", type=str)
    estimate_parser.add_argument(
        "--save", action="store_true", help="Store the variants for later resolution"
    )

    for p in sub.choices.values():
        p.add_argument("--json", action="store_true", help="Output as JSON")

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
            case "match":
                _cmd_match(config, args)
            case "parse-size":
                _cmd_parse_size(args)
            case "ingest":
                _cmd_ingest(config, args)
            case "resolve":
                _cmd_resolve(config, args)
            case "compare":
                _cmd_compare(config, args)
            case "switch":
                _cmd_switch(config, args)
            case "estimate":
                asyncio.run(_cmd_estimate(config, args))
    except (LedgerError, ValueError, ImportError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)


def _print_json(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def _cmd_match(config, args) -> None:
    candidates = args.candidates
    if not candidates:
        ledger = PriceLedger.from_config(config)
        candidates = ledger.known_items()
        ledger.close()

    matches = find_fuzzy_matches(
        args.query,
        candidates,
        min_similarity=config.matching.min_similarity,
        max_results=config.matching.max_results,
    )

    if args.json:
        _print_json(
            [
                {"name": m.name, "similarity": m.similarity, "is_exact": m.is_exact}
                for m in matches
            ]
        )
        return
    if not matches:
        print(f"No matches for {args.query!r}.")
        return
    for m in matches:
        exact = " (exact)" if m.is_exact else ""
        print(f"  {m.name:<24} {m.similarity:>3}%{exact}")


def _cmd_parse_size(args) -> None:
    parsed = parse_size(args.size, args.unit)
    if parsed is None:
        print(f"Could not parse size {args.size!r}.", file=sys.stderr)
        sys.exit(1)

    data = {
        "display": parsed.display,
        "category": parsed.category.value,
        "normalized_value": parsed.normalized_value,
        "unit": parsed.unit,
    }
    if args.price is not None:
        data["price_per_unit"] = price_per_unit(args.price, args.size, args.unit)
        data["unit_label"] = unit_label(args.size, args.unit)

    if args.json:
        _print_json(data)
        return
    print(f"{parsed.display}  ({parsed.category.value}, {parsed.normalized_value:g}{parsed.unit})")
    if args.price is not None and data["price_per_unit"] is not None:
        print(f"  £{data['price_per_unit']:.2f}{data['unit_label']}")


def _cmd_ingest(config, args) -> None:
    from .receipts import ReceiptIngestor, lines_from_receipt

    data = json.loads(Path(args.file).read_text(encoding="utf-8"))
    receipts = data if isinstance(data, list) else [data]

    ledger = PriceLedger.from_config(config)
    try:
        ingestor = ReceiptIngestor(ledger)
        lines = [
            line for receipt in receipts
            for line in lines_from_receipt(receipt, args.reporter)
        ]
        summary = ingestor.ingest(lines)
    finally:
        ledger.close()

    if args.json:
        _print_json(
            {
                "upserted": summary.upserted,
                "stale": summary.stale,
                "duplicate": summary.duplicate,
                "skipped": summary.skipped,
                "failed": summary.failed,
            }
        )
        return
    print(
        f"{summary.total} lines: {summary.upserted} recorded, {summary.duplicate} already known, "
        f"{summary.stale} out of date, {summary.skipped} skipped, {summary.failed} failed"
    )


def _cmd_resolve(config, args) -> None:
    from .resolver import ResolutionCascade

    path = config.database.path
    ledger, variants, history = PriceLedger.from_config(config), VariantDB(path), PriceHistoryDB(path)
    try:
        cascade = ResolutionCascade(ledger, variants, history, config.cascade)
        results = cascade.resolve_many(args.names, args.store, args.user)
    finally:
        ledger.close()
        variants.close()
        history.close()

    if args.json:
        _print_json(
            {
                name: {
                    "size": r.size,
                    "unit": r.unit,
                    "price": r.price,
                    "source": r.source.value if r.source else None,
                    "confidence": r.confidence,
                }
                for name, r in results.items()
            }
        )
        return
    for name, r in results.items():
        print(f"  {name:<24} {r.describe()}")


def _cmd_compare(config, args) -> None:
    from .compare import StoreComparator

    lists = ShoppingListDB(config.database.path)
    ledger = PriceLedger.from_config(config)
    try:
        stored = lists.get_list(args.list_id)
        if stored is None:
            raise ValueError(f"no shopping list with id {args.list_id}")
        comparison = StoreComparator(ledger, config.sizes).compare(
            lists.get_items(args.list_id), stored["store_id"], args.stores
        )
    finally:
        lists.close()
        ledger.close()

    if args.json:
        _print_json(
            {
                "current_store": comparison.current_store_id,
                "current_total": comparison.current_total,
                "alternatives": [
                    {
                        "store_id": a.store_id,
                        "total": a.total,
                        "items_compared": a.items_compared,
                        "items_with_issues": a.items_with_issues,
                        "savings": a.savings,
                    }
                    for a in comparison.alternatives
                ],
            }
        )
        return
    print(f"Current ({comparison.current_store_id or 'no store'}): £{comparison.current_total:.2f}")
    for a in comparison.alternatives:
        issues = f", {a.items_with_issues} approximate" if a.items_with_issues else ""
        print(f"  {a.store_id:<12} £{a.total:.2f}  save £{a.savings:.2f}{issues}")


def _cmd_switch(config, args) -> None:
    from .switch import StoreSwitchRepricer

    lists = ShoppingListDB(config.database.path)
    ledger = PriceLedger.from_config(config)
    try:
        repricer = StoreSwitchRepricer(ledger, config.sizes)
        if args.dry_run:
            stored = lists.get_list(args.list_id)
            if stored is None:
                raise ValueError(f"no shopping list with id {args.list_id}")
            result = repricer.switch(
                lists.get_items(args.list_id), stored["store_id"], args.to_store
            )
        else:
            result = repricer.switch_list(lists, args.list_id, args.to_store)
    finally:
        lists.close()
        ledger.close()

    if args.json:
        _print_json(
            {
                "previous_store": result.previous_store,
                "new_store": result.new_store,
                "items_updated": result.items_updated,
                "manual_overrides_preserved": result.manual_overrides_preserved,
                "previous_total": result.previous_total,
                "new_total": result.new_total,
                "savings": result.savings,
                "size_changes": [
                    {"item": c.item_name, "from": c.old_size, "to": c.new_size}
                    for c in result.size_changes
                ],
                "failed_items": result.failed_items,
            }
        )
        return
    print(
        f"{result.previous_store or 'no store'} -> {result.new_store}: "
        f"£{result.previous_total:.2f} -> £{result.new_total:.2f} (save £{result.savings:.2f})"
    )
    for c in result.size_changes:
        print(f"  {c.item_name}: {c.old_size or '?'} -> {c.new_size} ({c.match.value})")
    if result.failed_items:
        print(f"  not re-priced: {', '.join(result.failed_items)}")
    if args.dry_run:
        print("(dry run, nothing saved)")


async def _cmd_estimate(config, args) -> None:
    from .estimator import create_estimator

    estimator = create_estimator(config)
    variants = await estimator.estimate_variants(args.name)

    if args.save:
        db = VariantDB(config.database.path)
        try:
            db.upsert_many(variants)
        finally:
            db.close()

    if args.json:
        _print_json(
            [
                {
                    "variant_name": v.variant_name,
                    "size": v.size,
                    "commonality": v.commonality,
                    "estimated_price": v.estimated_price,
                }
                for v in variants
            ]
        )
        return
    if not variants:
        print(f"No variants suggested for {args.name!r}.")
        return
    for v in sorted(variants, key=lambda x: x.commonality, reverse=True):
        price = f"£{v.estimated_price:.2f}" if v.estimated_price is not None else "-"
        print(f"  {v.variant_name:<24} {v.size:<8} {price:>7}  {v.commonality:.0%}")
