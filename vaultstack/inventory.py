"""Inventory operations used by the CLI and the TUI."""

import logging

from .aggregate import Group, PortfolioTotals, group_by_code, portfolio_totals, sorted_groups
from .api import CodeNotFound, FeedError, PriceFeed, resolve_price
from .models import Holding
from .store import InventoryStore, ListOrder
from .valuation import apply_current_price, with_purchase_cost

logger = logging.getLogger(__name__)


class InventoryService:
    """Adds, edits and removes holdings, filling in prices from the feed.

    In offline mode (or without a feed) nothing is fetched: holdings are saved
    with whatever current price the user supplied.
    """

    def __init__(self, store: InventoryStore, feed: PriceFeed | None = None, offline: bool = False):
        self.store = store
        self.feed = feed
        self.offline = offline or feed is None

    def list_holdings(self, order: ListOrder = ListOrder.PURCHASE) -> list[Holding]:
        return self.store.list(order)

    def get(self, holding_id: int) -> Holding | None:
        return self.store.get(holding_id)

    def groups(self) -> list[Group]:
        """Per-code groups in display order."""
        return sorted_groups(group_by_code(self.store.list(ListOrder.VARIANT)))

    def totals(self) -> PortfolioTotals:
        return portfolio_totals(self.store.list())

    def _fill_current_price(self, holding: Holding) -> Holding:
        """Value a holding, looking its price up when none was entered."""
        holding = with_purchase_cost(holding)
        if holding.current_price is not None:
            return holding
        if self.offline:
            logger.info("Offline mode: not fetching a price for %s", holding.code or holding.variant)
            return holding

        try:
            snapshot = self.feed.fetch_snapshot()
        except FeedError as e:
            logger.warning("Could not fetch current price, saving purchase data only: %s", e)
            return holding

        try:
            price = resolve_price(snapshot, holding.code)
        except CodeNotFound as e:
            logger.warning("No current price for code %s: %s", holding.code, e)
            return holding
        if not price:
            logger.warning("Feed published no usable price for code %s", holding.code)
            return holding

        logger.info("Fetched current price for %s: %.2f", holding.code, price)
        return apply_current_price(holding, price)

    def add(self, holding: Holding) -> Holding:
        """Store a new holding and return it with its id."""
        holding = self._fill_current_price(holding)
        holding_id = self.store.create(holding)
        return self.store.get(holding_id)

    def update(self, holding: Holding) -> Holding:
        """Save an edited holding, keeping its derived fields consistent."""
        holding = self._fill_current_price(holding)
        self.store.update(holding)
        logger.info("Updated holding %d: %s %s", holding.id, holding.category.value, holding.variant)
        return self.store.get(holding.id)

    def delete(self, holding_id: int) -> None:
        self.store.delete(holding_id)
