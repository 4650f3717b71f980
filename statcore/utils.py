"""Developer utilities for inspecting balance numbers from the command line."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence, SupportsInt

from .aggregation import aggregate_by_source, compute_total_stats
from .cultivation import compute_exp_rate
from .models._validation import ModelValidationError
from .models.items import Rarity
from .scaling import scale_consumable, scale_equipment
from .storage import load_character, load_item, load_tables, load_tables_from_env
from .tables import BalanceTables
from .valuation import attribute_preview, compute_sell_price


def format_number(value: SupportsInt) -> str:
    """Return ``value`` with ``'`` as the thousands separator."""

    integer = int(value)
    sign = "-" if integer < 0 else ""
    formatted = f"{abs(integer):,}".replace(",", "'")
    return f"{sign}{formatted}"


def _format_rate(value: float) -> str:
    return f"{value * 100:.1f}%"


def _tables(args: argparse.Namespace) -> BalanceTables:
    if args.tables:
        return load_tables(args.tables)
    return load_tables_from_env()


def _command_price(args: argparse.Namespace) -> int:
    tables = _tables(args)
    item = load_item(args.item)
    price = compute_sell_price(item, tables=tables)
    print(f"{item.name} ({item.rarity.value}){attribute_preview(item.effect)}")
    print(f"Sell price: {format_number(price)}")
    return 0


def _command_scale(args: argparse.Namespace) -> int:
    tables = _tables(args)
    item = load_item(args.item)
    rarity = Rarity.from_value(args.rarity) if args.rarity else item.rarity
    resolved = tables.catalog.resolve(item.name, item.effect, item.permanent_effect)
    if item.is_equipment:
        effect = scale_equipment(resolved.effect, args.tier, args.level, rarity, tables=tables)
        permanent = resolved.permanent_effect
    elif item.category.is_consumable:
        effect, permanent = scale_consumable(
            resolved.effect, resolved.permanent_effect, args.tier, args.level, rarity, tables=tables
        )
    else:
        print(f"{item.name} does not scale with the realm.")
        return 0

    realm = tables.tier_scale(args.tier).name
    print(f"{item.name} at {realm} level {args.level} ({rarity.value})")
    print(f"  effect:{attribute_preview(effect) or ' none'}")
    if permanent is not None and not permanent.is_empty:
        print(f"  permanent:{attribute_preview(permanent)}")
    return 0


def _command_stats(args: argparse.Namespace) -> int:
    tables = _tables(args)
    character = load_character(args.character)
    total = compute_total_stats(character, tables=tables)
    realm = tables.tier_scale(character.tier).name
    print(f"{realm} level {character.tier_level}")
    for name, value in total.items():
        print(f"  {name:<10} {format_number(value):>12}")
    if args.breakdown:
        sources = aggregate_by_source(character, tables=tables)
        for label, bundle in zip(sources._fields, sources):
            parts = ", ".join(f"{name} {format_number(value)}" for name, value in bundle.items() if value)
            print(f"  {label}: {parts or 'none'}")
    return 0


def _command_exp_rate(args: argparse.Namespace) -> int:
    tables = _tables(args)
    character = load_character(args.character)
    rate = compute_exp_rate(character, tables=tables)
    for label in ("technique", "talent", "title", "dwelling"):
        print(f"  {label:<10} +{_format_rate(getattr(rate, label))}")
    print(f"  root affinity x{rate.root_affinity:.3f}")
    print(f"Total: +{_format_rate(rate.total)} (x{rate.multiplier:.3f})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Inspect attribute and item value calculations.")
    parser.add_argument("--tables", help="Path to a balance TOML file (default: $STATCORE_BALANCE_FILE or built-in tables)")
    parser.add_argument("--verbose", action="store_true", help="Log every fallback and stage")
    subparsers = parser.add_subparsers(dest="command")

    price_parser = subparsers.add_parser("price", help="Show the sell price of an item")
    price_parser.add_argument("item", help="Path to an item TOML file")
    price_parser.set_defaults(func=_command_price)

    scale_parser = subparsers.add_parser("scale", help="Scale an item to a realm and level")
    scale_parser.add_argument("item", help="Path to an item TOML file")
    scale_parser.add_argument("--tier", default="0", help="Realm index or name (default: 0)")
    scale_parser.add_argument("--level", type=int, default=1, help="Realm level, 1-9 (default: 1)")
    scale_parser.add_argument("--rarity", help="Override the item's rarity")
    scale_parser.set_defaults(func=_command_scale)

    stats_parser = subparsers.add_parser("stats", help="Show a character's total stats")
    stats_parser.add_argument("character", help="Path to a character TOML file")
    stats_parser.add_argument(
        "--breakdown", action="store_true", help="Also list bonuses by source"
    )
    stats_parser.set_defaults(func=_command_stats)

    exp_parser = subparsers.add_parser("exp-rate", help="Show a character's cultivation speed")
    exp_parser.add_argument("character", help="Path to a character TOML file")
    exp_parser.set_defaults(func=_command_exp_rate)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    if not getattr(args, "command", None):
        parser.print_help()
        return 0
    try:
        return args.func(args)
    except (RuntimeError, ModelValidationError) as exc:
        print(str(exc), file=sys.stderr)
        return 1


__all__ = ["build_parser", "format_number", "main"]


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
