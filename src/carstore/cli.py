#!/usr/bin/env python3
"""Carstore CLI for serving the API and day-to-day operations."""

import argparse
import sys

import questionary
from rich.console import Console
from rich.table import Table

from carstore.config import Config
from carstore.errors import CarstoreError

console = Console()


def cars_table(cars, title: str) -> Table:
    """Render cars as a rich table."""
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Reg num", style="bold")
    table.add_column("Mark")
    table.add_column("Model")
    table.add_column("Year", justify="right")
    for car in cars:
        table.add_row(car.id or "-", car.reg_num, car.mark, car.model, str(car.year or "-"))
    return table


def migrate(config: Config) -> None:
    """Apply pending schema migrations."""
    from carstore.db import Database
    from carstore.logger import setup_logger
    from carstore.migrate import apply_migrations

    logger = setup_logger(config.environment)
    applied = apply_migrations(Database(config.database_url, logger), config.migrations_dir, logger)
    if applied:
        for version in applied:
            console.print(f"[green]Applied {version}[/]")
    else:
        console.print("[dim]Schema is up to date.[/]")


def serve(config: Config) -> None:
    """Apply migrations, then run the HTTP API."""
    from carstore.app import create_app

    migrate(config)
    app = create_app(config)
    try:
        app.run(host="0.0.0.0", port=config.app_port)
    finally:
        app.car_service.resolver.close()


def lookup(config: Config, reg_nums: list[str]) -> None:
    """Resolve registration numbers without storing anything."""
    from carstore.enrichment import CarInfoClient, resolve_all

    with CarInfoClient(config.external_cars_api_url, timeout=config.resolver_timeout) as client:
        cars = resolve_all(reg_nums, client, max_workers=config.resolver_workers)
    console.print(cars_table(cars, "Car info"))


def register(config: Config, reg_nums: list[str], assume_yes: bool = False) -> None:
    """Resolve registration numbers, preview the cars and store them."""
    from carstore.app import build_service
    from carstore.car.service import validate_reg_nums
    from carstore.enrichment import resolve_all
    from carstore.logger import setup_logger

    validate_reg_nums(reg_nums)
    service = build_service(config, setup_logger(config.environment))
    try:
        cars = resolve_all(reg_nums, service.resolver, max_workers=service.max_workers)
        console.print(cars_table(cars, "Cars to register"))

        if not assume_yes and not questionary.confirm("Proceed with these changes?").ask():
            console.print("[dim]Cancelled.[/]")
            return

        ids = service.add_many(cars)
        console.print(f"[green]Registered {len(ids)} car(s).[/]")
    finally:
        service.resolver.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="carstore", description="Car registry service")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("serve", help="apply migrations and run the HTTP API")
    sub.add_parser("migrate", help="apply pending schema migrations")

    lookup_parser = sub.add_parser("lookup", help="look up registration numbers")
    lookup_parser.add_argument("reg_nums", nargs="+", metavar="REGNUM")

    register_parser = sub.add_parser("register", help="look up and store registration numbers")
    register_parser.add_argument("reg_nums", nargs="+", metavar="REGNUM")
    register_parser.add_argument("-y", "--yes", action="store_true", help="skip confirmation")

    return parser


def main(argv: list[str] = None) -> int:
    args = build_parser().parse_args(argv)
    config = Config.from_env()

    try:
        if args.command == "serve":
            serve(config)
        elif args.command == "migrate":
            migrate(config)
        elif args.command == "lookup":
            lookup(config, args.reg_nums)
        elif args.command == "register":
            register(config, args.reg_nums, assume_yes=args.yes)
    except CarstoreError as e:
        console.print(f"[red]{e.kind.value}: {e.message}[/]")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
