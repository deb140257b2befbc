"""Tests for the instrument table."""

import pytest

from conftest import make_snapshot
from vaultstack.catalog import (
    INSTRUMENTS,
    CatalogError,
    FeedCatalog,
    Instrument,
    check_catalog,
    find_instrument,
    instruments_for,
    missing_codes,
)
from vaultstack.models import Category, Unit


def test_builtin_catalog_is_valid():
    check_catalog()


def test_duplicate_codes_are_rejected():
    duplicate = Instrument(
        code="ga", name="Another Gram", category=Category.METAL,
        catalog=FeedCatalog.METALS, default_unit=Unit.GRAM,
    )
    with pytest.raises(CatalogError, match="Duplicate"):
        check_catalog((*INSTRUMENTS, duplicate))


def test_category_must_match_catalog():
    misplaced = Instrument(
        code="JPY", name="Yen", category=Category.CURRENCY,
        catalog=FeedCatalog.METALS, default_unit=Unit.PIECE,
    )
    with pytest.raises(CatalogError, match="JPY"):
        check_catalog((misplaced,))


def test_empty_code_is_rejected():
    blank = Instrument(
        code=" ", name="Nothing", category=Category.METAL,
        catalog=FeedCatalog.METALS, default_unit=Unit.GRAM,
    )
    with pytest.raises(CatalogError):
        check_catalog((blank,))


def test_instruments_for_category():
    currencies = instruments_for(Category.CURRENCY)
    assert [i.code for i in currencies] == ["USD", "EUR", "GBP"]
    assert all(i.category == Category.METAL for i in instruments_for(Category.METAL))


def test_find_instrument():
    assert find_instrument(" c ").name == "Quarter Gold Coin"
    assert find_instrument("XPT") is None


def test_missing_codes_checks_the_right_catalog():
    published_metals = {i.code: 1.0 for i in instruments_for(Category.METAL)}
    # USD published under metals does not count for the currencies catalog
    snapshot = make_snapshot(metals={**published_metals, "USD": 1.0}, currencies={"EUR": 1.0})
    assert missing_codes(snapshot) == ["USD", "GBP"]
