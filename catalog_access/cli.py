"""
Interactive CLI for the marketplace catalog.
Browse the catalog as a seller and inspect compliance, with every product
access checked and audited.
"""

import shlex
from datetime import datetime, timedelta, timezone

import pandas as pd

from catalog_access.analysis import summarize_violations
from catalog_access.engine import build_engine
from catalog_access.errors import NotFoundError
from catalog_access.models import CatalogFilters

MAX_PREVIEW_ROWS = 20

HELP = """Commands:
  search <text>            search the catalog
  list [category]          list products, optionally in one category
  product <id>             show one product
  validate <id> <action>   check view/sell/add_to_inventory/process_order
  stats                    catalog statistics for your seller kind
  status                   compliance status (last 24h)
  report [days]            compliance report for the last N days (default 7)
  quit"""


def print_page(page):
    if not page.items:
        print("(no products)")
        return
    df = pd.DataFrame([
        {
            "id": v.product.id,
            "name": v.product.name,
            "kind": v.product.kind.value,
            "rx": v.product.prescription_required,
            "price": v.price,
            "in_stock": v.in_stock,
        }
        for v in page.items
    ])
    print(df.head(MAX_PREVIEW_ROWS).to_string(index=False))
    print(f"\n{page.total_count} products (access: {page.access_level.value})")
    for r in page.restrictions:
        print(f"  * {r}")


def run_command(engine, business, line: str) -> bool:
    """Execute one REPL line. Returns False when the session should end."""
    parts = shlex.split(line)
    cmd, args = parts[0].lower(), parts[1:]

    if cmd in {"quit", "exit"}:
        print("Goodbye.")
        return False

    if cmd == "help":
        print(HELP)
    elif cmd == "search":
        filters = CatalogFilters(search_query=" ".join(args), limit=MAX_PREVIEW_ROWS)
        print_page(engine.query_catalog(business.kind, business.id, filters))
    elif cmd == "list":
        filters = CatalogFilters(category=args[0] if args else None, sort_by="name",
                                 limit=MAX_PREVIEW_ROWS)
        print_page(engine.query_catalog(business.kind, business.id, filters))
    elif cmd == "product" and args:
        result = engine.get_product(int(args[0]), business.kind, business.id)
        if not result.allowed:
            print(f"[denied] {result.reason}")
        else:
            v = result.product
            print(f"{v.product.name} ({v.product.kind.value}, {v.product.category})")
            print(f"  {v.product.description}")
            print(f"  price={v.price} stock={v.inventory.stock} status={v.inventory.status.value}")
    elif cmd == "validate" and len(args) == 2:
        result = engine.validate_access(business.id, int(args[0]), args[1])
        print("[allowed]" if result.allowed else f"[denied] {result.reason}")
        if result.violation:
            print(f"  violation: {result.violation.violation_type.value} "
                  f"(severity={result.violation.severity.value})")
    elif cmd == "stats":
        for key, value in engine.business_type_statistics(business.kind).items():
            print(f"  {key}: {value}")
    elif cmd == "status":
        status = engine.get_compliance_status()
        print(f"[{status.status.value}] {status.message}")
    elif cmd == "report":
        days = int(args[0]) if args else 7
        end = datetime.now(timezone.utc) + timedelta(seconds=1)
        report = engine.get_compliance_report(end - timedelta(days=days), end)
        print(f"Violations: {report.total_violations} "
              f"(critical={report.critical_violations}, blocked={report.blocked_violations})")
        print(summarize_violations(report.violations))
        for rec in report.recommendations:
            print(f"  - {rec}")
    else:
        print(HELP)
    return True


def main():
    print("=== Marketplace Catalog: seller access console ===\n")

    engine = build_engine()

    # ── Login ────────────────────────────────────────────────────────
    try:
        business_id = input("Enter business id (or 'quit'): ").strip()
    except (EOFError, KeyboardInterrupt):
        print("\nExiting.")
        return

    if not business_id or business_id.lower() in {"quit", "exit"}:
        print("Goodbye.")
        return

    business = engine.store.find_business(business_id)
    if business is None:
        print(f"\n[ERROR] Unknown business: {business_id}")
        return

    print(f"\n[auth] Seller: {business.name} (kind={business.kind.value})")
    print(HELP)

    # ── REPL ─────────────────────────────────────────────────────────
    while True:
        try:
            line = input("\n> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            break

        if not line:
            continue

        try:
            if not run_command(engine, business, line):
                break
        except (NotFoundError, ValueError) as e:
            print("\n[ERROR] Could not run that command.")
            print("Details:", e)


if __name__ == "__main__":
    main()
