"""Data models for VaultStack."""

from datetime import date, datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class Category(str, Enum):
    """Kinds of instrument a holding can be."""

    METAL = "metal"
    CURRENCY = "currency"


class Unit(str, Enum):
    """Units a holding's quantity can be measured in."""

    GRAM = "gram"
    PIECE = "piece"
    KILOGRAM = "kilogram"
    OUNCE = "ounce"


def parse_price(text: str) -> float:
    """Parse a price as published by the feed.

    Plain decimals ("4342.4900") are tried first. Failing that the text is read
    as grouped with dots and using a comma as decimal separator ("4.342,49").
    Anything else parses to 0.0, which callers must treat as unknown.
    """
    try:
        return float(text)
    except ValueError:
        pass
    normalized = text.replace(".", "").replace(",", ".")
    try:
        return float(normalized)
    except ValueError:
        return 0.0


class Holding(BaseModel):
    """One purchased position of a metal or currency."""

    id: int | None = Field(default=None, description="Assigned by the store on create")
    category: Category
    variant: str = Field(description="Human-readable name, e.g. 'Quarter Gold Coin'")
    code: str = Field(default="", description="Instrument code used for price lookup")
    quantity: float = Field(gt=0)
    unit: Unit
    purchase_date: date
    purchase_price: float = Field(ge=0, description="Purchase price per unit")
    total_purchase_cost: float = Field(default=0.0, description="quantity * purchase_price")

    current_price: float | None = Field(default=None, description="Current price per unit")
    current_value: float | None = None
    profit_loss: float | None = None
    profit_loss_percent: float | None = None

    note: str = ""
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def _derive_purchase_cost(self) -> "Holding":
        self.total_purchase_cost = self.quantity * self.purchase_price
        return self


class Inventory(BaseModel):
    """On-disk layout of the inventory file."""

    next_id: int = 1
    holdings: list[Holding] = Field(default_factory=list)


class PriceQuote(BaseModel):
    """Buy/sell price of one instrument within a snapshot."""

    model_config = ConfigDict(frozen=True)

    code: str = Field(validation_alias=AliasChoices("code", "Kod"))
    description: str = Field(default="", validation_alias=AliasChoices("description", "Aciklama"))
    buy: float = Field(default=0.0, validation_alias=AliasChoices("buy", "buyPrice", "Alis"))
    sell: float = Field(default=0.0, validation_alias=AliasChoices("sell", "sellPrice", "Satis"))
    updated_at: str = Field(
        default="",
        validation_alias=AliasChoices("updated_at", "lastUpdated", "GuncellenmeZamani"),
    )

    @field_validator("buy", "sell", mode="before")
    @classmethod
    def _parse_price_text(cls, value):
        if value is None:
            return 0.0
        if isinstance(value, str):
            return parse_price(value)
        return value

    @field_validator("code", "description", "updated_at", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        if value is None:
            return ""
        return str(value)


class PriceSnapshot(BaseModel):
    """Immutable set of quotes retrieved in one fetch."""

    model_config = ConfigDict(frozen=True)

    fetched_at: datetime = Field(default_factory=datetime.now)
    metals: tuple[PriceQuote, ...] = ()
    currencies: tuple[PriceQuote, ...] = ()

    def quotes(self) -> list[PriceQuote]:
        """All quotes, metals first."""
        return [*self.metals, *self.currencies]
