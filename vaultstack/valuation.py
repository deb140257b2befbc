"""Derived monetary fields of a holding."""

from .models import Holding


def apply_current_price(holding: Holding, price: float) -> Holding:
    """Return a copy of the holding valued at the given per-unit price.

    Current value, profit/loss and profit/loss percentage are always set
    together. The percentage is 0 when nothing was paid for the holding.
    """
    current_value = holding.quantity * price
    profit_loss = current_value - holding.total_purchase_cost
    if holding.total_purchase_cost > 0:
        profit_loss_percent = profit_loss / holding.total_purchase_cost * 100
    else:
        profit_loss_percent = 0.0

    return holding.model_copy(
        update={
            "current_price": price,
            "current_value": current_value,
            "profit_loss": profit_loss,
            "profit_loss_percent": profit_loss_percent,
        }
    )


def with_purchase_cost(holding: Holding) -> Holding:
    """Recompute the purchase total, re-valuing the holding if it has a price."""
    holding = holding.model_copy(
        update={"total_purchase_cost": holding.quantity * holding.purchase_price}
    )
    if holding.current_price is None:
        return holding.model_copy(
            update={"current_value": None, "profit_loss": None, "profit_loss_percent": None}
        )
    return apply_current_price(holding, holding.current_price)
