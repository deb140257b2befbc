"""Validation of user-entered holding data."""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from pydantic import ValidationError

from .catalog import find_instrument
from .models import Category, Holding, Unit
from .valuation import with_purchase_cost

DATE_FORMATS = ("%d.%m.%Y", "%Y-%m-%d")


class InvalidInput(ValueError):
    """User input that can't become a holding."""


def parse_amount(text: str, label: str, required: bool = True) -> float | None:
    """Parse a user-typed number such as "1.234,56", "1234.56" or "12,5 ₺".

    Commas are decimal separators; when several dots remain, all but the last
    are treated as thousands separators. Blank input returns None unless the
    field is required.
    """
    cleaned = text.replace("₺", "").strip()
    if not cleaned:
        if required:
            raise InvalidInput(f"{label} is required")
        return None

    cleaned = cleaned.replace(",", ".")
    if cleaned.count(".") > 1:
        head, _, tail = cleaned.rpartition(".")
        cleaned = head.replace(".", "") + "." + tail

    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        raise InvalidInput(f"{label} must be a number, got '{text}'") from None
    if not value.is_finite():
        raise InvalidInput(f"{label} must be a number, got '{text}'")
    if value < 0:
        raise InvalidInput(f"{label} can't be negative")
    return float(value)


def parse_purchase_date(text: str) -> date:
    """Parse DD.MM.YYYY (or YYYY-MM-DD); blank means today."""
    text = text.strip()
    if not text:
        return date.today()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise InvalidInput(f"Purchase date must look like 31.12.2024, got '{text}'")


def build_holding(
    *,
    category: Category,
    variant: str,
    code: str,
    unit: Unit,
    quantity: str,
    purchase_price: str,
    purchase_date: str = "",
    current_price: str = "",
    note: str = "",
    existing: Holding | None = None,
) -> Holding:
    """Validate raw form fields and build a holding with its purchase total.

    Passing `existing` keeps its id and timestamps, which makes the result
    suitable for InventoryStore.update().
    """
    variant = variant.strip()
    if not variant:
        instrument = find_instrument(code)
        if instrument is None:
            raise InvalidInput("Variant is required")
        variant = instrument.name

    quantity_value = parse_amount(quantity, "Quantity")
    if not quantity_value:
        raise InvalidInput("Quantity must be greater than zero")
    purchase_price_value = parse_amount(purchase_price, "Purchase price")
    current_price_value = parse_amount(current_price, "Current price", required=False)

    fields = {
        "category": category,
        "variant": variant,
        "code": code.strip().upper(),
        "unit": unit,
        "quantity": quantity_value,
        "purchase_price": purchase_price_value,
        "purchase_date": parse_purchase_date(purchase_date),
        "current_price": current_price_value,
        "note": note.strip(),
    }
    try:
        if existing is not None:
            holding = Holding.model_validate(
                {**existing.model_dump(), **fields}
            )
        else:
            holding = Holding(**fields)
    except ValidationError as e:
        raise InvalidInput(str(e)) from e
    return with_purchase_cost(holding)
