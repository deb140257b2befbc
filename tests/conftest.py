"""Shared fixtures for the test suite."""

from datetime import date

import pytest

from vaultstack.models import Category, Holding, PriceQuote, PriceSnapshot, Unit
from vaultstack.store import InventoryStore
from vaultstack.valuation import with_purchase_cost


def make_holding(**overrides) -> Holding:
    """Holding with sensible defaults and a consistent purchase total."""
    fields = {
        "category": Category.METAL,
        "variant": "24K Gram Gold",
        "code": "GA",
        "quantity": 10.0,
        "unit": Unit.GRAM,
        "purchase_date": date(2024, 1, 15),
        "purchase_price": 2000.0,
    }
    fields.update(overrides)
    return with_purchase_cost(Holding(**fields))


def make_snapshot(metals=None, currencies=None) -> PriceSnapshot:
    """Snapshot from {code: buy price} mappings."""
    metals = {"GA": 2200.0, "C": 9000.0} if metals is None else metals
    currencies = {"USD": 32.5, "EUR": 35.1} if currencies is None else currencies
    return PriceSnapshot(
        metals=tuple(PriceQuote(code=c, buy=p, sell=p * 1.01) for c, p in metals.items()),
        currencies=tuple(PriceQuote(code=c, buy=p, sell=p * 1.01) for c, p in currencies.items()),
    )


class FakeFeed:
    """Stands in for PriceFeed; returns a fixed snapshot or raises."""

    def __init__(self, snapshot=None, error=None):
        self.snapshot = snapshot if snapshot is not None else make_snapshot()
        self.error = error
        self.calls = 0

    def fetch_snapshot(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.snapshot

    def close(self):
        pass


@pytest.fixture
def store(tmp_path):
    return InventoryStore(tmp_path / "inventory.json")


@pytest.fixture
def feed():
    return FakeFeed()
