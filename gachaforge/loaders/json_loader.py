"""Load cards, currencies, weight tables, pity rules and roll kinds from JSON."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from ..domain.cards import CardCatalog, CardDefinition, CardStats
from ..domain.economy import Currency, RollCost
from ..domain.packs import PackKind, PackPolicy, RollKind
from ..domain.pity import PityRule
from ..domain.rarity import Rarity, RarityWeightTable

_RARITY_CODES = {rarity.value for rarity in Rarity}
_PACK_CODES = {kind.value for kind in PackKind}
_STAT_FIELDS = ("attack", "defense", "health", "cost")


@dataclass(slots=True)
class CatalogDefinition:
    cards: Sequence[CardDefinition]
    currencies: Sequence[Currency]
    weight_tables: Mapping[str, RarityWeightTable] = field(default_factory=dict)
    pity_rules: Sequence[PityRule] | None = None
    roll_kinds: Sequence[RollKind] = ()

    def build_catalog(self) -> CardCatalog:
        return CardCatalog(self.cards)


def load_catalog_from_json(path: str | Path) -> CatalogDefinition:
    """Read, validate and parse a catalog JSON file."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return parse_catalog_dict(data)


def parse_catalog_dict(data: dict[str, Any]) -> CatalogDefinition:
    """Parse a JSON dict (already decoded) into domain objects."""
    errors = validate_catalog_dict(data)
    if errors:
        raise ValueError(_format_errors("Catalog validation failed", errors))
    currencies = tuple(parse_currency(entry) for entry in data.get("currencies", []))
    cards = tuple(parse_card(entry) for entry in data.get("cards", []))
    weight_tables = {
        str(name): RarityWeightTable.from_mapping(table)
        for name, table in data.get("rarityWeights", {}).items()
    }
    pity_raw = data.get("pity")
    pity_rules = None
    if pity_raw is not None:
        pity_rules = tuple(
            sorted(
                (PityRule(Rarity.parse(target), int(threshold)) for target, threshold in pity_raw.items()),
                key=lambda rule: rule.target.rank,
            )
        )
    roll_kinds = tuple(parse_roll_kind(entry) for entry in data.get("rollKinds", []))
    return CatalogDefinition(
        cards=cards,
        currencies=currencies,
        weight_tables=weight_tables,
        pity_rules=pity_rules,
        roll_kinds=roll_kinds,
    )


def parse_currency(entry: dict[str, Any]) -> Currency:
    return Currency(
        code=entry["code"],
        name=entry.get("name", entry["code"].title()),
        description=entry.get("description", ""),
    )


def parse_card(entry: dict[str, Any]) -> CardDefinition:
    stats_data = entry.get("stats", {})
    stats = CardStats(
        attack=int(stats_data.get("attack", 0)),
        defense=int(stats_data.get("defense", 0)),
        health=int(stats_data.get("health", 0)),
        cost=int(stats_data.get("cost", 0)),
        luck=float(stats_data.get("luck", 0.0)),
        emoji=str(stats_data.get("emoji", "")),
    )
    return CardDefinition(
        card_id=entry["id"],
        name=entry["name"],
        rarity=Rarity.parse(entry["rarity"]),
        stats=stats,
        craftable=bool(entry.get("craftable", True)),
        description=entry.get("description", ""),
        tags=tuple(map(str, entry.get("tags", []))),
    )


def parse_roll_kind(entry: dict[str, Any]) -> RollKind:
    bundle_size = int(entry.get("bundleSize", 1))
    pack_code = entry.get("pack")
    if pack_code is not None:
        policy = PackKind(pack_code).policy(bundle_size)
    else:
        guaranteed = entry.get("guaranteedMinimumRarity")
        policy = PackPolicy(
            cost_multiplier=float(entry.get("costMultiplier", 1.0)),
            bundle_size=bundle_size,
            guaranteed_minimum_rarity=Rarity.parse(guaranteed) if guaranteed else None,
        )
    return RollKind(
        kind_id=entry["id"],
        base_cost=RollCost(currency=entry["currency"], amount=int(entry["baseCost"])),
        policy=policy,
        weights_key=entry.get("weights", "default"),
        name=entry.get("name", entry["id"]),
    )


def validate_catalog_file(path: str | Path) -> list[str]:
    """Validate catalog JSON file and return a list of errors."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return validate_catalog_dict(data)


def validate_catalog_dict(data: dict[str, Any]) -> list[str]:
    errors: list[str] = []

    currencies_raw = data.get("currencies")
    currency_codes: set[str] = set()
    if not isinstance(currencies_raw, list) or not currencies_raw:
        errors.append("Catalog must contain non-empty 'currencies' array.")
    else:
        for idx, entry in enumerate(currencies_raw, start=1):
            if not isinstance(entry, dict):
                errors.append(f"Currency #{idx} must be an object.")
                continue
            code = entry.get("code")
            if not isinstance(code, str) or not code.strip():
                errors.append(f"Currency #{idx} must define non-empty 'code'.")
                continue
            if code in currency_codes:
                errors.append(f"Currency code '{code}' defined multiple times.")
            currency_codes.add(code)

    cards_raw = data.get("cards")
    rarities_present: set[str] = set()
    if not isinstance(cards_raw, list) or not cards_raw:
        errors.append("Catalog must contain non-empty 'cards' array.")
    else:
        card_ids: set[str] = set()
        for idx, entry in enumerate(cards_raw, start=1):
            if not isinstance(entry, dict):
                errors.append(f"Card #{idx} must be an object.")
                continue
            card_id = entry.get("id")
            if not isinstance(card_id, str) or not card_id.strip():
                errors.append(f"Card #{idx} must define non-empty 'id'.")
                continue
            if card_id in card_ids:
                errors.append(f"Card id '{card_id}' defined multiple times.")
            card_ids.add(card_id)

            name = entry.get("name")
            if not isinstance(name, str) or not name.strip():
                errors.append(f"Card '{card_id}' must define non-empty 'name'.")

            rarity_value = entry.get("rarity")
            if not isinstance(rarity_value, str) or rarity_value.strip().lower() not in _RARITY_CODES:
                errors.append(f"Card '{card_id}' has invalid rarity '{rarity_value}'.")
            else:
                rarities_present.add(rarity_value.strip().lower())

            stats = entry.get("stats")
            if stats is not None:
                if not isinstance(stats, dict):
                    errors.append(f"Card '{card_id}' stats must be an object.")
                else:
                    for stat in _STAT_FIELDS:
                        value = stats.get(stat)
                        if value is not None and (not isinstance(value, int) or value < 0):
                            errors.append(
                                f"Card '{card_id}' stat '{stat}' must be non-negative integer."
                            )

            craftable = entry.get("craftable")
            if craftable is not None and not isinstance(craftable, bool):
                errors.append(f"Card '{card_id}' 'craftable' must be a boolean.")

    weights_raw = data.get("rarityWeights")
    table_names: set[str] = set()
    if weights_raw is not None:
        if not isinstance(weights_raw, dict) or not weights_raw:
            errors.append("Catalog 'rarityWeights' must be a non-empty object of named tables.")
        else:
            for name, table in weights_raw.items():
                table_names.add(name)
                errors.extend(_validate_weight_table(name, table))

    pity_raw = data.get("pity")
    if pity_raw is not None:
        if not isinstance(pity_raw, dict):
            errors.append("Catalog 'pity' must be an object of rarity thresholds.")
        else:
            for target, threshold in pity_raw.items():
                if target not in _RARITY_CODES:
                    errors.append(f"Pity rule references invalid rarity '{target}'.")
                elif rarities_present and target not in rarities_present:
                    errors.append(f"Pity rule for '{target}' has no cards of that rarity.")
                if not isinstance(threshold, int) or threshold <= 0:
                    errors.append(f"Pity threshold for '{target}' must be positive integer.")

    kinds_raw = data.get("rollKinds")
    if kinds_raw is not None:
        if not isinstance(kinds_raw, list):
            errors.append("Catalog 'rollKinds' must be an array.")
        else:
            kind_ids: set[str] = set()
            for idx, entry in enumerate(kinds_raw, start=1):
                errors.extend(_validate_roll_kind(idx, entry, kind_ids, currency_codes, table_names))

    return errors


def _validate_weight_table(name: str, table: Any) -> list[str]:
    if not isinstance(table, dict) or not table:
        return [f"Weight table '{name}' must be a non-empty object."]
    errors: list[str] = []
    total = 0.0
    for rarity_code, weight in table.items():
        if rarity_code not in _RARITY_CODES:
            errors.append(f"Weight table '{name}' contains invalid rarity '{rarity_code}'.")
        if not isinstance(weight, (int, float)) or weight < 0:
            errors.append(f"Weight table '{name}' weight for '{rarity_code}' must be non-negative number.")
        else:
            total += float(weight)
    if total <= 0:
        errors.append(f"Weight table '{name}' must contain at least one positive weight.")
    return errors


def _validate_roll_kind(
    idx: int,
    entry: Any,
    kind_ids: set[str],
    currency_codes: set[str],
    table_names: set[str],
) -> list[str]:
    if not isinstance(entry, dict):
        return [f"Roll kind #{idx} must be an object."]
    kind_id = entry.get("id")
    if not isinstance(kind_id, str) or not kind_id.strip():
        return [f"Roll kind #{idx} must define non-empty 'id'."]
    errors: list[str] = []
    if kind_id in kind_ids:
        errors.append(f"Roll kind id '{kind_id}' defined multiple times.")
    kind_ids.add(kind_id)

    currency = entry.get("currency")
    if currency_codes and currency not in currency_codes:
        errors.append(f"Roll kind '{kind_id}' references unknown currency '{currency}'.")
    base_cost = entry.get("baseCost")
    if not isinstance(base_cost, int) or base_cost < 0:
        errors.append(f"Roll kind '{kind_id}' 'baseCost' must be non-negative integer.")
    bundle_size = entry.get("bundleSize", 1)
    if not isinstance(bundle_size, int) or bundle_size <= 0:
        errors.append(f"Roll kind '{kind_id}' has invalid 'bundleSize' value '{bundle_size}'.")

    pack = entry.get("pack")
    if pack is not None:
        if pack not in _PACK_CODES:
            errors.append(f"Roll kind '{kind_id}' references unknown pack '{pack}'.")
        if "costMultiplier" in entry or "guaranteedMinimumRarity" in entry:
            errors.append(
                f"Roll kind '{kind_id}' must use either 'pack' or explicit policy fields, not both."
            )
    multiplier = entry.get("costMultiplier", 1.0)
    if not isinstance(multiplier, (int, float)) or multiplier < 0:
        errors.append(f"Roll kind '{kind_id}' 'costMultiplier' must be non-negative number.")
    guaranteed = entry.get("guaranteedMinimumRarity")
    if guaranteed is not None and guaranteed not in _RARITY_CODES:
        errors.append(f"Roll kind '{kind_id}' has invalid guaranteed rarity '{guaranteed}'.")

    weights = entry.get("weights", "default")
    if table_names and weights not in table_names:
        errors.append(f"Roll kind '{kind_id}' references unknown weight table '{weights}'.")
    return errors


def _format_errors(prefix: str, errors: Iterable[str]) -> str:
    formatted = "\n".join(f"- {err}" for err in errors)
    return f"{prefix}:\n{formatted}"
