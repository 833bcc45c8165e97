from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from stockledger.bootstrap import Services, build_services
from stockledger.core.logging import configure_logging
from stockledger.core.wire import to_wire
from stockledger.domain.errors import InventoryError
from stockledger.persistence.admin import reset_all_data
from stockledger.persistence.database import Database


def _print_json(data: Any) -> None:
    print(json.dumps(to_wire(data), ensure_ascii=False, indent=2, default=str))


def _read_events(source: str) -> list[Any]:
    text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    stripped = text.strip()
    if not stripped:
        return []
    if stripped.startswith("["):
        return list(json.loads(stripped))
    # JSON lines; each line goes through gateway validation on its own.
    return [line for line in stripped.splitlines() if line.strip()]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="stockledger", description="FIFO inventory costing")
    parser.add_argument("--database-url", default=None, help="Override SL_DATABASE_URL")
    top = parser.add_subparsers(dest="command", required=True)

    top.add_parser("init-db", help="Create tables")

    ingest = top.add_parser("ingest", help="Ingest purchase/sale events from a JSON array or JSON lines file")
    ingest.add_argument("source", help="Path to the events file, or - for stdin")

    purchase = top.add_parser("purchase", help="Record one purchase batch")
    purchase.add_argument("product_id")
    purchase.add_argument("quantity", type=int)
    purchase.add_argument("unit_price", help="Decimal unit price, e.g. 12.50")
    purchase.add_argument("--timestamp", default=None, help="ISO-8601, defaults to now")
    purchase.add_argument("--name", default=None, help="Display name used if the product is new")

    sale = top.add_parser("sale", help="Record one FIFO sale")
    sale.add_argument("product_id")
    sale.add_argument("quantity", type=int)
    sale.add_argument("--timestamp", default=None, help="ISO-8601, defaults to now")

    status = top.add_parser("status", help="Inventory status for one or all products")
    status.add_argument("product_id", nargs="?", default=None)

    ledger = top.add_parser("ledger", help="Purchases and sales, newest first")
    ledger.add_argument("--product-id", default=None)
    ledger.add_argument("--event-type", choices=["purchase", "sale"], default=None)
    ledger.add_argument("--limit", type=int, default=None)

    top.add_parser("products", help="List known products")

    reset = top.add_parser("reset", help="Delete all sales, batches and products")
    reset.add_argument("--yes", action="store_true", help="Confirm the reset")

    return parser


def _event_from_args(args: argparse.Namespace) -> dict[str, Any]:
    event: dict[str, Any] = {
        "product_id": args.product_id,
        "event_type": args.command,
        "quantity": args.quantity,
    }
    if args.command == "purchase":
        event["unit_price"] = args.unit_price
        if args.name:
            event["product_name"] = args.name
    if args.timestamp:
        event["timestamp"] = args.timestamp
    return event


def _run(args: argparse.Namespace, services: Services) -> int:
    if args.command == "init-db":
        services.database.init_db()
        _print_json({"status": "ok", "database": services.database.dialect_name})
        return 0

    services.database.init_db()

    if args.command == "ingest":
        outcomes = services.gateway.ingest_many(_read_events(args.source))
        successful = sum(1 for outcome in outcomes if outcome.success)
        _print_json(
            {
                "total": len(outcomes),
                "successful": successful,
                "failed": len(outcomes) - successful,
                "details": [outcome.to_dict() for outcome in outcomes],
            }
        )
        return 0 if successful == len(outcomes) else 1

    if args.command in ("purchase", "sale"):
        result = services.gateway.ingest(_event_from_args(args))
        _print_json(result.to_dict())
        return 0

    if args.command == "status":
        if args.product_id:
            _print_json(services.aggregator.status(args.product_id).to_dict())
        else:
            _print_json([status.to_dict() for status in services.aggregator.all_statuses()])
        return 0

    if args.command == "ledger":
        entries = services.ledger_view.serialized_entries(
            product_id=args.product_id,
            event_type=args.event_type,
            limit=args.limit,
        )
        _print_json({"count": len(entries), "entries": entries})
        return 0

    if args.command == "products":
        _print_json([product.to_dict() for product in services.registry.list_all()])
        return 0

    if args.command == "reset":
        if not args.yes:
            print("refusing to reset without --yes", file=sys.stderr)
            return 2
        _print_json({"tables_cleared": reset_all_data(services.database)})
        return 0

    return 2


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging()

    database = Database(args.database_url) if args.database_url else None
    services = build_services(database=database)
    try:
        return _run(args, services)
    except InventoryError as exc:
        _print_json(exc.to_dict())
        return 1
    finally:
        services.close()


if __name__ == "__main__":
    raise SystemExit(main())
