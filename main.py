"""Command line entry point: browse the garment catalog and quote prices."""

import argparse
import json
from typing import Optional, Sequence

from models.order import DiscountType, LineItem
from services.garment_catalog import get_garment_catalog
from services.measurement_schema import get_measurement_resolver
from services.pricing import compute_totals


def show_catalog(category: Optional[str] = None, gender: Optional[str] = None) -> None:
    catalog = get_garment_catalog()
    labels = catalog.categories()
    current = None
    for item in catalog.items(category, gender=gender):
        if item.category != current:
            current = item.category
            print(f"\n{labels.get(current, current)}")
        price = f"{item.list_price:.2f}" if item.list_price is not None else "-"
        print(f"  {item.display_name:<32} {item.code.value:<14} {price:>8}")


def show_resolution(name: str, category: Optional[str] = None, gender: Optional[str] = None) -> None:
    definition = get_garment_catalog().resolve(category, name, gender)
    print(f"{name!r} -> {definition.display_name} ({definition.code.value}, {definition.category})")
    fields = get_measurement_resolver().fields_for(definition.code)
    if not fields:
        print("  No measurements needed")
    for field in fields:
        marker = "*" if field.required else " "
        print(f"  {marker} {field.key:<16} {field.label}")


def quote(items: Sequence[str], discount: str, discount_type: str, advance: str) -> dict:
    """
    Compute totals for ``price[xqty]`` entries, e.g. ``500x2 200``.

    Returns:
        Display totals (two decimals)
    """
    line_items = []
    for entry in items:
        price, _, qty = entry.partition("x")
        line_items.append(
            LineItem(garment_category="OTHER", garment_name="item", unit_price=price, quantity=int(qty or 1))
        )
    totals = compute_totals(line_items, discount, DiscountType(discount_type), advance)
    return totals.as_display()


def parse_cli_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Tailoring order intake tools")
    sub = parser.add_subparsers(dest="command", required=True)

    catalog = sub.add_parser("catalog", help="List catalog garments")
    catalog.add_argument("--category", default=None)
    catalog.add_argument("--gender", choices=["male", "female"], default=None)

    resolve = sub.add_parser("resolve", help="Resolve a garment name and show its measurements")
    resolve.add_argument("name")
    resolve.add_argument("--category", default=None)
    resolve.add_argument("--gender", choices=["male", "female"], default=None)

    price = sub.add_parser("quote", help="Compute totals, e.g. quote 500x2 200 --discount 10")
    price.add_argument("items", nargs="+", help="price or priceXqty")
    price.add_argument("--discount", default="0")
    price.add_argument("--discount-type", choices=["percentage", "amount"], default="percentage")
    price.add_argument("--advance", default="0")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None):
    args = parse_cli_args(argv)
    if args.command == "catalog":
        show_catalog(args.category, args.gender)
    elif args.command == "resolve":
        show_resolution(args.name, args.category, args.gender)
    else:
        print(json.dumps(quote(args.items, args.discount, args.discount_type, args.advance), indent=2))


if __name__ == "__main__":
    main()
