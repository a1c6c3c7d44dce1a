"""Exceptions raised by GachaForge domain services."""


class GachaForgeError(RuntimeError):
    """Base class for domain exceptions."""


class ConfigurationError(GachaForgeError):
    """Raised when weight tables, pack policies or catalogs are malformed."""


class UnknownRollKind(ConfigurationError):
    """Raised when a roll kind identifier is not configured."""


class CatalogExhausted(GachaForgeError):
    """Raised when no card exists at or below the requested rarity."""

    def __init__(self, rarity: str) -> None:
        super().__init__(f"No cards available at or below rarity '{rarity}'")
        self.rarity = rarity


class InsufficientCurrency(GachaForgeError):
    """Raised when the ledger cannot satisfy a roll charge."""

    def __init__(self, currency: str, required: int, available: int | None = None) -> None:
        if available is None:
            message = f"Insufficient {currency}: need {required}"
        else:
            message = f"Insufficient {currency}: have {available}, need {required}"
        super().__init__(message)
        self.currency = currency
        self.required = required
        self.available = available


class AutoRollAlreadyRunning(GachaForgeError):
    """Raised when a player starts a second auto-roll."""
