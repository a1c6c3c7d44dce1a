"""Example: load a catalog, roll a bundle and run a short auto-roll."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from gachaforge import AutoRollConfig, GachaApp, GachaForgeConfig, Rarity
from gachaforge.domain.autoroll import AutoRollProgress, AutoRollResult
from gachaforge.domain.rolls import summarize_rolls
from gachaforge.loaders import load_catalog_from_json

PLAYER_ID = 42


async def on_progress(progress: AutoRollProgress) -> None:
    card = progress.last_roll.card
    print(f"  [{progress.completed}/{progress.max_rolls}] {card.stats.emoji} {card.name} ({card.rarity.value})")


async def on_complete(result: AutoRollResult) -> None:
    print(f"Auto-roll finished: {result.stopped_reason.value} after {result.total_rolls} rolls")


async def main() -> None:
    logging.basicConfig(level=logging.INFO)
    config = GachaForgeConfig.from_env()
    definition = load_catalog_from_json(Path(__file__).with_name("catalog") / "cards.json")
    app = GachaApp.from_definition(config, definition)
    await app.init_backend()

    await app.credit(PLAYER_ID, "gold", 5000)
    results = await app.roll_bundle(PLAYER_ID, kind_id="ten")
    summary = summarize_rolls(results)
    print(f"Ten roll for {summary.total_cost} gold, value {summary.total_value}")
    for card in summary.highlights:
        print(f"  highlight: {card.name} ({card.rarity.value})")

    handle = app.start_auto_roll(
        PLAYER_ID,
        AutoRollConfig(max_rolls=30, stop_on_rarity=Rarity.EPIC, batch_size=5),
        kind_id="single",
        on_progress=on_progress,
        on_complete=on_complete,
    )
    await handle.wait()

    for item in await app.pity_progress(PLAYER_ID):
        print(f"Pity {item.target.value}: {item.current}/{item.threshold} ({item.percentage:.0f}%)")
    print(f"Gold left: {await app.balance(PLAYER_ID, 'gold')}")
    await app.close()


if __name__ == "__main__":
    asyncio.run(main())
