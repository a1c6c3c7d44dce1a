"""Command line helpers for GachaForge."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from random import Random

from rich.console import Console
from rich.table import Table

from .app import GachaApp
from .config import GachaForgeConfig
from .diagnostics.roll_simulator import RollSimulator
from .domain.rarity import Rarity
from .loaders import load_catalog_from_json, validate_catalog_file
from .validators import validate_app

console = Console()


def run_validate() -> None:
    parser = argparse.ArgumentParser(description="GachaForge catalog validator")
    parser.add_argument("catalog", help="Path to catalog JSON file for validation")
    args = parser.parse_args()

    errors = validate_catalog_file(Path(args.catalog))
    if errors:
        console.print("Catalog errors:", style="red")
        for err in errors:
            console.print(f"- {err}", style="red")
        sys.exit(1)

    app = _build_app(args.catalog)
    issues = validate_app(app)
    if issues:
        console.print("Configuration problems found:", style="red")
        for issue in issues:
            console.print(f"- {issue}", style="red")
        sys.exit(1)
    console.print("Catalog is valid.", style="green")


def run_simulator() -> None:
    parser = argparse.ArgumentParser(description="GachaForge roll simulator")
    parser.add_argument("catalog", help="Path to catalog JSON file")
    parser.add_argument("kind_id", nargs="?", default="single", help="Roll kind to simulate")
    parser.add_argument("--pulls", type=int, default=1000, help="Number of purchases to simulate")
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible runs")
    parser.add_argument("--verbose", action="store_true", help="Show catalog fallback warnings")
    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING if args.verbose else logging.ERROR)
    app = _build_app(args.catalog)
    simulator = RollSimulator(app, rng=Random(args.seed))
    result = simulator.simulate(args.kind_id, pulls=args.pulls)

    console.print(
        f"[bold]Simulated {result.pulls} x '{args.kind_id}'[/bold]: "
        f"{result.cards_drawn} cards for {result.total_cost} {result.currency}"
    )
    table = Table(show_header=True, header_style="bold")
    table.add_column("Rarity")
    table.add_column("Cards", justify="right")
    table.add_column("Share", justify="right")
    table.add_column("Cards per hit", justify="right")
    for rarity in Rarity.ascending():
        per_hit = result.rolls_per(rarity)
        table.add_row(
            rarity.value,
            str(result.rarities.get(rarity, 0)),
            f"{result.share(rarity):.2%}",
            f"{per_hit:.1f}" if per_hit is not None else "-",
        )
    console.print(table)
    console.print(
        f"Pity triggers: {result.pity_triggers}, pack bonuses: {result.pack_bonuses}, "
        f"average cost per card: {result.average_cost_per_card:.2f}"
    )


def _build_app(catalog_path: str) -> GachaApp:
    config = GachaForgeConfig.from_env()
    definition = load_catalog_from_json(catalog_path)
    return GachaApp.from_definition(config, definition)
