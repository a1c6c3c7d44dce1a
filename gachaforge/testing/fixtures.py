"""Pytest fixtures for GachaForge."""

from __future__ import annotations

from random import Random

import pytest

from ..app import GachaApp
from ..config import GachaForgeConfig
from ..domain.rarity import Rarity
from .factory import CardFactory

FULL_CATALOG = {rarity: 3 for rarity in Rarity}


@pytest.fixture()
def memory_app() -> GachaApp:
    return app_fixture()


def app_fixture(seed: int = 1234, **kwargs) -> GachaApp:
    """Helper for ad-hoc tests where pytest is not available."""
    kwargs.setdefault("cards", CardFactory(rng=Random(seed)).catalog(FULL_CATALOG))
    kwargs.setdefault("rng", Random(seed))
    return GachaApp(GachaForgeConfig(), **kwargs)
