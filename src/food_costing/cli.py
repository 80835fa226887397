"""
Food Costing CLI

Command-line access to the cost engine, against the local database or the
backend REST API.

Usage Examples:
    # Create tables and seed units in the configured database
    food-costing init-db

    # Drop every table and start again with only the standard units
    food-costing reset-db --yes

    # Cost one item, recipe or product from the local database
    food-costing item-cost 3
    food-costing recipe-cost 12
    food-costing product-cost 7

    # Write a JSON cost report for every product
    food-costing export-costs costs.json

    # Same commands against the REST API
    food-costing --remote --token "$TOKEN" --org 1 product-cost 7
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from food_costing import __version__
from food_costing.api.client import ApiClient
from food_costing.api.session import AuthOrganization, AuthSession
from food_costing.services import costing_service
from food_costing.services.cost_sources import ApiCostSource
from food_costing.services.database import initialize_app_database, reset_database
from food_costing.services.exceptions import ServiceError
from food_costing.utils.config import get_database_url
from food_costing.utils.constants import APP_NAME
from food_costing.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, indent=2))


def _remote_source(args: argparse.Namespace) -> ApiCostSource:
    if not args.token or args.org is None:
        raise ServiceError("--remote requires --token and --org")
    session = AuthSession(token=args.token, organization=AuthOrganization(id=args.org))
    client = ApiClient(session, base_url=args.api_url)
    return ApiCostSource(client)


def init_db_cmd() -> int:
    print(f"Initializing database at {get_database_url()}...")
    initialize_app_database()
    print("Database ready.")
    return 0


def reset_db_cmd(confirmed: bool) -> int:
    if not confirmed:
        print("ERROR: reset-db deletes all data; pass --yes to confirm", file=sys.stderr)
        return 1
    print(f"Resetting database at {get_database_url()}...")
    reset_database(confirm=True)
    print("Database reset.")
    return 0


def item_cost_cmd(item_id: int, source=None) -> int:
    _print_json(costing_service.cost_item(item_id, source=source).to_dict())
    return 0


def recipe_cost_cmd(recipe_id: int, source=None) -> int:
    _print_json(costing_service.cost_recipe(recipe_id, source=source).to_dict())
    return 0


def product_cost_cmd(product_id: int, source=None) -> int:
    _print_json(costing_service.cost_product(product_id, source=source).to_dict())
    return 0


def export_costs_cmd(output_file: str, source: Optional[ApiCostSource] = None) -> int:
    """Write every product's cost breakdown to a JSON file."""
    product_ids = None
    if source is not None:
        product_ids = [product.id for product in source.client.list_products()]
    results = costing_service.cost_all_products(source=source, product_ids=product_ids)

    report = {
        "generated_at": utc_now().isoformat(),
        "product_count": len(results),
        "products": [result.to_dict() for result in results],
    }
    path = Path(output_file)
    path.write_text(json.dumps(report, indent=2), encoding="utf-8")
    print(f"Exported costs for {len(results)} product(s) to {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="food-costing",
        description=f"Item, recipe and product costing for {APP_NAME}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  food-costing init-db
  food-costing reset-db --yes
  food-costing recipe-cost 12
  food-costing export-costs costs.json
  food-costing --remote --token TOKEN --org 1 product-cost 7
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--remote", action="store_true", help="Read data from the REST API instead of the database"
    )
    parser.add_argument("--token", help="Bearer token for --remote")
    parser.add_argument("--org", help="Organization id for --remote")
    parser.add_argument("--api-url", dest="api_url", help="API base URL (default: from config)")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("init-db", help="Create tables and seed units")
    reset_parser = subparsers.add_parser("reset-db", help="Delete all data and recreate tables")
    reset_parser.add_argument("--yes", action="store_true", help="Confirm deleting all data")

    for name, label in (("item", "an item"), ("recipe", "a recipe"), ("product", "a product")):
        cost_parser = subparsers.add_parser(f"{name}-cost", help=f"Show the cost of {label}")
        cost_parser.add_argument("id", help=f"{name.capitalize()} id")

    export_parser = subparsers.add_parser(
        "export-costs", help="Export every product's cost breakdown as JSON"
    )
    export_parser.add_argument("file", help="JSON file path")

    return parser


def _coerce_id(raw: str):
    return int(raw) if raw.isdigit() else raw


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 1

    source = None
    try:
        if args.command in ("init-db", "reset-db"):
            if args.remote:
                raise ServiceError(f"{args.command} works on the local database only")
            if args.command == "reset-db":
                return reset_db_cmd(args.yes)
            return init_db_cmd()

        if args.remote:
            source = _remote_source(args)

        if args.command == "item-cost":
            return item_cost_cmd(_coerce_id(args.id), source)
        elif args.command == "recipe-cost":
            return recipe_cost_cmd(_coerce_id(args.id), source)
        elif args.command == "product-cost":
            return product_cost_cmd(_coerce_id(args.id), source)
        elif args.command == "export-costs":
            return export_costs_cmd(args.file, source)
    except ServiceError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        if source is not None:
            source.client.close()

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
