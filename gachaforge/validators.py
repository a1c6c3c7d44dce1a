"""Validation utilities for GachaForge applications."""

from __future__ import annotations

from .app import GachaApp


def validate_app(app: GachaApp) -> list[str]:
    """Return list of validation errors discovered in configured app."""
    errors: list[str] = []

    currency_codes = {currency.code for currency in app.currencies.all()}
    if not currency_codes:
        errors.append("No currencies registered in application.")

    catalog = app.catalog
    if len(catalog) == 0:
        errors.append("Catalog does not contain any cards.")
    available = set(catalog.available_rarities())
    lowest = min(available) if available else None

    for name, table in app.weight_tables.items():
        for rarity in table.positive_tiers():
            if rarity not in available:
                if lowest is None or rarity < lowest:
                    errors.append(
                        f"Weight table '{name}' gives weight to '{rarity.value}' "
                        "but no card exists at or below it."
                    )
                else:
                    errors.append(
                        f"Weight table '{name}' gives weight to '{rarity.value}' "
                        "which has no cards; draws will fall back to a lower tier."
                    )

    for rule in app.pity_rules:
        if rule.target not in available:
            errors.append(f"Pity rule for '{rule.target.value}' has no cards of that rarity.")

    for kind in app.roll_kinds.values():
        if kind.base_cost.currency not in currency_codes:
            errors.append(
                f"Roll kind '{kind.kind_id}' references unknown currency '{kind.base_cost.currency}'."
            )
        if kind.weights_key not in app.weight_tables:
            errors.append(
                f"Roll kind '{kind.kind_id}' references unknown weight table '{kind.weights_key}'."
            )
        guaranteed = kind.policy.guaranteed_minimum_rarity
        if guaranteed is not None and guaranteed not in available:
            errors.append(
                f"Roll kind '{kind.kind_id}' guarantees '{guaranteed.value}' but no such cards exist."
            )

    autoroll = app.config.autoroll
    if autoroll.max_rolls <= 0:
        errors.append("Auto-roll configuration 'max_rolls' must be positive.")
    if autoroll.batch_size <= 0:
        errors.append("Auto-roll configuration 'batch_size' must be positive.")

    return errors


__all__ = ["validate_app"]
