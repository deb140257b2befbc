"""Rich-based terminal display for VaultStack."""

from datetime import datetime

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .aggregate import Group, PortfolioTotals
from .catalog import INSTRUMENTS
from .models import Category, Holding, PriceSnapshot, Unit

console = Console()

CURRENCY_SYMBOL = "₺"
DATE_FORMAT = "%d.%m.%Y"

CATEGORY_NAMES = {
    Category.METAL: "Metal",
    Category.CURRENCY: "Currency",
}


def format_number(value: float, precision: int = 2) -> str:
    """Format with dot thousands and comma decimals, dropping trailing zeros.

    1234.5 -> "1.234,5", 1000000 -> "1.000.000".
    """
    if round(value, precision) == 0:
        value = 0.0
    integer, _, decimals = f"{value:,.{precision}f}".partition(".")
    integer = integer.replace(",", ".")
    decimals = decimals.rstrip("0")
    return f"{integer},{decimals}" if decimals else integer


def format_money(value: float | None) -> str:
    """Format a monetary amount; None means not yet priced."""
    if value is None:
        return "-"
    return f"{format_number(value)} {CURRENCY_SYMBOL}"


def format_quantity(quantity: float, unit: Unit) -> str:
    """Whole numbers for pieces, up to two decimals otherwise."""
    if unit == Unit.PIECE:
        return str(int(quantity))
    return format_number(quantity)


def format_change(change: float | None, change_pct: float | None) -> Text:
    """Format profit/loss with color coding."""
    if change is None:
        return Text("-", style="dim")
    if change >= 0:
        style = "green"
        sign = "+"
    else:
        style = "red"
        sign = ""

    text = Text()
    text.append(f"{sign}{format_money(change)} ", style=style)
    text.append(f"({sign}{(change_pct or 0):.2f}%)", style=style)
    return text


def format_signed_money(value: float | None) -> Text:
    if value is None:
        return Text("-", style="dim")
    if value >= 0:
        return Text(f"+{format_money(value)}", style="green")
    return Text(format_money(value), style="red")


def format_percent(value: float | None) -> Text:
    if value is None:
        return Text("-", style="dim")
    style = "green" if value >= 0 else "red"
    return Text(f"{value:+.2f}%", style=style)


def build_holdings_table(
    holdings: list[Holding],
    selected: int | None = None,
    title: str = "Holdings",
) -> Table:
    """Table of individual holdings; `selected` is a row index to highlight."""
    table = Table(title=title, expand=True)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Type")
    table.add_column("Variant")
    table.add_column("Qty", justify="right")
    table.add_column("Unit")
    table.add_column("Bought")
    table.add_column("Price", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Current", justify="right")
    table.add_column("Value", justify="right")
    table.add_column("P/L", justify="right")
    table.add_column("P/L %", justify="right")

    for row, holding in enumerate(holdings):
        table.add_row(
            str(holding.id),
            CATEGORY_NAMES[holding.category],
            holding.variant,
            format_quantity(holding.quantity, holding.unit),
            holding.unit.value,
            holding.purchase_date.strftime(DATE_FORMAT),
            format_money(holding.purchase_price),
            format_money(holding.total_purchase_cost),
            format_money(holding.current_price),
            format_money(holding.current_value),
            format_signed_money(holding.profit_loss),
            format_percent(holding.profit_loss_percent),
            style="reverse" if row == selected else None,
        )

    return table


def build_groups_table(
    groups: list[Group],
    selected: int | None = None,
) -> Table:
    """Table of per-code aggregates."""
    table = Table(title="Groups", expand=True)
    table.add_column("Code", style="dim")
    table.add_column("Type")
    table.add_column("Variant")
    table.add_column("Total Qty", justify="right")
    table.add_column("Unit")
    table.add_column("Avg Price", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Value", justify="right")
    table.add_column("P/L", justify="right")
    table.add_column("P/L %", justify="right")

    for row, group in enumerate(groups):
        table.add_row(
            group.code,
            CATEGORY_NAMES[group.category],
            f"{group.variant} ({group.count})" if group.count > 1 else group.variant,
            format_quantity(group.total_quantity, group.unit),
            group.unit.value,
            format_money(group.average_purchase_price),
            format_money(group.total_purchase_cost),
            format_money(group.total_current_value),
            format_signed_money(group.total_profit_loss),
            format_percent(group.profit_loss_percent),
            style="reverse" if row == selected else None,
        )

    return table


def build_summary_panel(totals: PortfolioTotals, last_update: datetime | None = None) -> Panel:
    """Panel with whole-inventory totals."""
    table = Table(show_header=False, box=None)
    table.add_column("Label", style="dim")
    table.add_column("Value")

    table.add_row("Holdings", str(totals.count))
    table.add_row("Total Cost", format_money(totals.total_purchase_cost))
    table.add_row("Total Value", Text(format_money(totals.total_current_value), style="bold"))
    table.add_row("Profit/Loss", format_change(totals.total_profit_loss, totals.profit_loss_percent))
    if last_update:
        table.add_row("Prices as of", last_update.strftime(f"%H:%M:%S {DATE_FORMAT}"))

    return Panel(table, title="Summary", border_style="green")


def build_quotes_table(snapshot: PriceSnapshot) -> Table:
    """Every quote in a snapshot, metals first."""
    table = Table(title=f"Feed Prices ({snapshot.fetched_at.strftime('%H:%M:%S')})")
    table.add_column("Code", style="bold")
    table.add_column("Description")
    table.add_column("Buy", justify="right")
    table.add_column("Sell", justify="right")
    table.add_column("Updated", style="dim")

    for quote in snapshot.quotes():
        table.add_row(
            quote.code,
            quote.description,
            format_money(quote.buy),
            format_money(quote.sell),
            quote.updated_at,
        )

    return table


def build_catalog_table() -> Table:
    """Instrument codes the app knows how to price."""
    table = Table(title="Instrument Codes")
    table.add_column("Code", style="bold")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Unit")

    for instrument in INSTRUMENTS:
        table.add_row(
            instrument.code,
            instrument.name,
            CATEGORY_NAMES[instrument.category],
            instrument.default_unit.value,
        )

    return table


def display_inventory(
    holdings: list[Holding],
    groups: list[Group],
    totals: PortfolioTotals,
    last_update: datetime | None = None,
) -> None:
    """Print holdings, groups and summary."""
    if not holdings:
        console.print("[dim]No holdings yet. Use 'vaultstack add' to add one.[/dim]")
        return

    console.print(build_holdings_table(holdings))
    console.print(build_groups_table(groups))
    console.print(build_summary_panel(totals, last_update))


def display_error(message: str) -> None:
    """Display error message."""
    console.print(f"[red]Error:[/red] {message}")


def display_warning(message: str) -> None:
    console.print(f"[yellow]Warning:[/yellow] {message}")


def display_success(message: str) -> None:
    """Display success message."""
    console.print(f"[green]{message}[/green]")
