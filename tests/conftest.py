import dataclasses
import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from config import Settings
from schemas import CatalogItem, Platform, ProductCategory
from shop import build_shop
from storage import InMemoryKeyValueStore


class FixedRandom(random.Random):
    """RNG whose draws are always ``value``."""

    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings():
    return Settings(processing_delay=0)


@pytest.fixture
def storage():
    return InMemoryKeyValueStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def item_a():
    return CatalogItem(
        id="item_a",
        title="Item A",
        description="Twenty dollar item",
        price=Decimal("20.00"),
        category=ProductCategory.GAMES,
        platform=Platform.ANDROID,
    )


@pytest.fixture
def item_b():
    return CatalogItem(
        id="item_b",
        title="Item B",
        price=Decimal("2.675"),
        category=ProductCategory.UTILITIES,
        platform=Platform.ALL,
    )


@pytest.fixture
def make_shop(settings, storage):
    def factory(success=True, rng=None, **overrides):
        if rng is None:
            rng = FixedRandom(0.99 if success else 0.05)
        shop_settings = dataclasses.replace(settings, **overrides)
        return build_shop(shop_settings, storage=storage, rng=rng)

    return factory


@pytest.fixture
def fixed_random():
    return FixedRandom


@pytest.fixture
def manager(make_shop, clock):
    shop = make_shop()
    shop.payments.clock = clock
    return shop.payments
