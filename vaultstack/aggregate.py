"""Grouped and whole-inventory totals."""

from pydantic import BaseModel

from .catalog import normalize_code
from .models import Category, Holding, Unit

UNDEFINED_CODE = "undefined"


class Group(BaseModel):
    """Aggregate over all holdings sharing one instrument code."""

    code: str
    category: Category
    variant: str
    unit: Unit
    count: int = 0
    total_quantity: float = 0.0
    total_purchase_cost: float = 0.0
    total_current_value: float = 0.0
    total_profit_loss: float = 0.0
    average_purchase_price: float = 0.0
    average_profit_loss: float = 0.0
    profit_loss_percent: float = 0.0


class PortfolioTotals(BaseModel):
    """Totals across the whole inventory."""

    count: int = 0
    total_purchase_cost: float = 0.0
    total_current_value: float = 0.0
    total_profit_loss: float = 0.0
    profit_loss_percent: float = 0.0


def group_by_code(holdings: list[Holding]) -> dict[str, Group]:
    """Group holdings by instrument code.

    Holdings without a code share the "undefined" group. Category, variant and
    unit of a group come from its first holding. Unvalued holdings count as 0.
    """
    groups: dict[str, Group] = {}

    for holding in holdings:
        code = normalize_code(holding.code) or UNDEFINED_CODE
        group = groups.get(code)
        if group is None:
            group = Group(
                code=code,
                category=holding.category,
                variant=holding.variant,
                unit=holding.unit,
            )
            groups[code] = group

        group.count += 1
        group.total_quantity += holding.quantity
        group.total_purchase_cost += holding.total_purchase_cost
        group.total_current_value += holding.current_value or 0.0
        group.total_profit_loss += holding.profit_loss or 0.0

    for group in groups.values():
        if group.total_quantity:
            group.average_purchase_price = group.total_purchase_cost / group.total_quantity
        if group.count:
            group.average_profit_loss = group.total_profit_loss / group.count
        if group.total_purchase_cost:
            group.profit_loss_percent = group.total_profit_loss / group.total_purchase_cost * 100

    return groups


def sorted_groups(groups: dict[str, Group]) -> list[Group]:
    """Groups in display order: category, then unit, then code."""
    return sorted(
        groups.values(),
        key=lambda g: (g.category.value, g.unit.value, g.code),
    )


def portfolio_totals(holdings: list[Holding]) -> PortfolioTotals:
    """Sum purchase cost, current value and profit/loss over all holdings."""
    totals = PortfolioTotals(count=len(holdings))
    for holding in holdings:
        totals.total_purchase_cost += holding.total_purchase_cost
        totals.total_current_value += holding.current_value or 0.0
        totals.total_profit_loss += holding.profit_loss or 0.0

    if totals.total_purchase_cost > 0:
        totals.profit_loss_percent = totals.total_profit_loss / totals.total_purchase_cost * 100
    return totals
