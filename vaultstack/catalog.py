"""Static table of instruments the price feed publishes."""

from enum import Enum

from pydantic import BaseModel, ConfigDict

from .models import Category, PriceSnapshot, Unit


class FeedCatalog(str, Enum):
    """Partitions of the price feed."""

    METALS = "metals"
    CURRENCIES = "currencies"


class CatalogError(ValueError):
    """The instrument table is inconsistent."""


class Instrument(BaseModel):
    """A tradable variant and the code the feed lists it under."""

    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    category: Category
    catalog: FeedCatalog
    default_unit: Unit


INSTRUMENTS: tuple[Instrument, ...] = (
    Instrument(code="CH_T", name="24K Cut Gold", category=Category.METAL,
               catalog=FeedCatalog.METALS, default_unit=Unit.GRAM),
    Instrument(code="GA", name="24K Gram Gold", category=Category.METAL,
               catalog=FeedCatalog.METALS, default_unit=Unit.GRAM),
    Instrument(code="GAT", name="Gold Bar", category=Category.METAL,
               catalog=FeedCatalog.METALS, default_unit=Unit.GRAM),
    Instrument(code="B", name="22K Bracelet", category=Category.METAL,
               catalog=FeedCatalog.METALS, default_unit=Unit.GRAM),
    Instrument(code="B_T", name="22K Gram Gold", category=Category.METAL,
               catalog=FeedCatalog.METALS, default_unit=Unit.GRAM),
    Instrument(code="C", name="Quarter Gold Coin", category=Category.METAL,
               catalog=FeedCatalog.METALS, default_unit=Unit.PIECE),
    Instrument(code="Y", name="Half Gold Coin", category=Category.METAL,
               catalog=FeedCatalog.METALS, default_unit=Unit.PIECE),
    Instrument(code="T", name="Full Gold Coin", category=Category.METAL,
               catalog=FeedCatalog.METALS, default_unit=Unit.PIECE),
    Instrument(code="USD", name="US Dollar", category=Category.CURRENCY,
               catalog=FeedCatalog.CURRENCIES, default_unit=Unit.PIECE),
    Instrument(code="EUR", name="Euro", category=Category.CURRENCY,
               catalog=FeedCatalog.CURRENCIES, default_unit=Unit.PIECE),
    Instrument(code="GBP", name="British Pound", category=Category.CURRENCY,
               catalog=FeedCatalog.CURRENCIES, default_unit=Unit.PIECE),
)

CATEGORY_CATALOGS = {
    Category.METAL: FeedCatalog.METALS,
    Category.CURRENCY: FeedCatalog.CURRENCIES,
}


def normalize_code(code: str) -> str:
    """Canonical form used for every code comparison."""
    return code.strip().upper()


def check_catalog(instruments: tuple[Instrument, ...] = INSTRUMENTS) -> None:
    """Validate the instrument table, raising CatalogError on the first problem."""
    seen: set[str] = set()
    for instrument in instruments:
        code = normalize_code(instrument.code)
        if not code:
            raise CatalogError(f"Instrument '{instrument.name}' has an empty code")
        if code in seen:
            raise CatalogError(f"Duplicate instrument code: {code}")
        seen.add(code)
        if CATEGORY_CATALOGS[instrument.category] != instrument.catalog:
            raise CatalogError(
                f"Instrument {code} is a {instrument.category.value} "
                f"but is listed in the {instrument.catalog.value} catalog"
            )


def instruments_for(category: Category) -> list[Instrument]:
    """Instruments of one category, in table order."""
    return [i for i in INSTRUMENTS if i.category == category]


def find_instrument(code: str) -> Instrument | None:
    """Look up an instrument by code."""
    code = normalize_code(code)
    for instrument in INSTRUMENTS:
        if instrument.code == code:
            return instrument
    return None


def missing_codes(
    snapshot: PriceSnapshot,
    instruments: tuple[Instrument, ...] = INSTRUMENTS,
) -> list[str]:
    """Codes from the table that the snapshot does not publish in their catalog."""
    published = {
        FeedCatalog.METALS: {normalize_code(q.code) for q in snapshot.metals},
        FeedCatalog.CURRENCIES: {normalize_code(q.code) for q in snapshot.currencies},
    }
    return [
        i.code
        for i in instruments
        if normalize_code(i.code) not in published[i.catalog]
    ]
