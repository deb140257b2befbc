"""Interactive prompts for entering and editing holdings."""

from rich.prompt import IntPrompt, Prompt

from .catalog import find_instrument, instruments_for
from .display import DATE_FORMAT, console, display_error, format_number
from .inputs import InvalidInput, build_holding
from .models import Category, Holding, Unit


def _plain(value: float) -> str:
    """Ungrouped form of a number, safe to feed back into parse_amount."""
    return f"{value:.4f}".rstrip("0").rstrip(".")


def _ask_variant(category: Category, current_code: str | None) -> tuple[str, str, Unit]:
    """Pick an instrument of the category; returns (name, code, default unit)."""
    instruments = instruments_for(category)
    default = 1
    for i, instrument in enumerate(instruments, 1):
        if instrument.code == current_code:
            default = i
        console.print(f"  {i}. {instrument.name} [dim]({instrument.code})[/dim]")

    while True:
        choice = IntPrompt.ask("Variant", default=default, console=console)
        if 1 <= choice <= len(instruments):
            picked = instruments[choice - 1]
            return picked.name, picked.code, picked.default_unit
        display_error(f"Choose 1-{len(instruments)}.")


def prompt_holding(
    existing: Holding | None = None,
    default_category: Category = Category.METAL,
) -> Holding:
    """Ask for every field of a holding, re-asking until the input is valid.

    With `existing`, each prompt defaults to the current value and the
    returned holding keeps the existing id.
    """
    category_default = existing.category if existing else default_category
    category = Category(
        Prompt.ask(
            "Type",
            choices=[c.value for c in Category],
            default=category_default.value,
            console=console,
        )
    )

    current_code = existing.code if existing else None
    variant, code, unit_default = _ask_variant(category, current_code)
    if existing and existing.code == code:
        unit_default = existing.unit
        variant = existing.variant or variant

    unit = Unit(
        Prompt.ask(
            "Unit",
            choices=[u.value for u in Unit],
            default=unit_default.value,
            console=console,
        )
    )

    defaults = {
        "quantity": _plain(existing.quantity) if existing else "",
        "purchase_price": _plain(existing.purchase_price) if existing else "",
        "purchase_date": existing.purchase_date.strftime(DATE_FORMAT) if existing else "",
        "current_price": (
            _plain(existing.current_price)
            if existing and existing.current_price is not None
            else ""
        ),
        "note": existing.note if existing else "",
    }

    while True:
        quantity = Prompt.ask(f"Quantity ({unit.value})", default=defaults["quantity"], console=console)
        purchase_price = Prompt.ask(
            "Purchase price per unit", default=defaults["purchase_price"], console=console
        )
        purchase_date = Prompt.ask(
            "Purchase date (DD.MM.YYYY, Enter for today)",
            default=defaults["purchase_date"],
            console=console,
        )
        current_price = Prompt.ask(
            "Current price per unit (Enter to fetch)",
            default=defaults["current_price"],
            console=console,
        )
        note = Prompt.ask("Note (optional)", default=defaults["note"], console=console)

        try:
            return build_holding(
                category=category,
                variant=variant,
                code=code,
                unit=unit,
                quantity=quantity,
                purchase_price=purchase_price,
                purchase_date=purchase_date,
                current_price=current_price,
                note=note,
                existing=existing,
            )
        except InvalidInput as e:
            display_error(str(e))
            defaults.update(
                quantity=quantity,
                purchase_price=purchase_price,
                purchase_date=purchase_date,
                current_price=current_price,
                note=note,
            )


def describe(holding: Holding) -> str:
    """One-line description used in confirmations."""
    instrument = find_instrument(holding.code)
    name = holding.variant or (instrument.name if instrument else holding.code)
    return f"#{holding.id} {name} ({format_number(holding.quantity)} {holding.unit.value})"
