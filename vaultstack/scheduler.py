"""Periodic and on-demand price refresh."""

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, Field

from .api import CodeNotFound, FeedError, PriceFeed, resolve_price
from .catalog import missing_codes
from .config import DEFAULT_REFRESH_INTERVAL_SECONDS
from .store import InventoryStore, PersistenceError

logger = logging.getLogger(__name__)


class RefreshState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    APPLYING = "applying"


class RefreshResult(BaseModel):
    """Outcome of one refresh."""

    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: datetime | None = None
    snapshot_at: datetime | None = None
    updated: int = 0
    skipped: list[str] = Field(default_factory=list, description="Codes with no usable price")
    failed: list[int] = Field(default_factory=list, description="Holding ids that failed to save")
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RefreshScheduler:
    """Re-prices every holding from a fresh snapshot, now or on an interval.

    Only one refresh runs at a time; a trigger that arrives while one is in
    flight is dropped. Once stop() is called no further holdings are written.
    """

    def __init__(
        self,
        feed: PriceFeed,
        store: InventoryStore,
        interval: int = DEFAULT_REFRESH_INTERVAL_SECONDS,
        on_complete: Callable[[RefreshResult], None] | None = None,
    ):
        self.feed = feed
        self.store = store
        self.interval = interval
        self.on_complete = on_complete
        self.state = RefreshState.IDLE
        self.last_result: RefreshResult | None = None
        self.next_run: datetime | None = None
        self._busy = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._catalog_checked = False

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def refresh(self) -> RefreshResult | None:
        """Run one refresh on the calling thread.

        Returns None if another refresh was already running or the scheduler
        has been stopped.
        """
        if self.stopped:
            return None
        if not self._busy.acquire(blocking=False):
            logger.info("Refresh already in progress, ignoring trigger")
            return None
        try:
            result = self._run_refresh()
        finally:
            self.state = RefreshState.IDLE
            self._busy.release()

        self.last_result = result
        if self.on_complete and not self.stopped:
            self.on_complete(result)
        return result

    def _run_refresh(self) -> RefreshResult:
        result = RefreshResult()
        self.state = RefreshState.FETCHING
        logger.info("Fetching current prices")
        try:
            snapshot = self.feed.fetch_snapshot()
        except FeedError as e:
            logger.warning("Price refresh failed, keeping previous values: %s", e)
            result.error = str(e)
            result.finished_at = datetime.now()
            return result

        result.snapshot_at = snapshot.fetched_at
        if not self._catalog_checked:
            self._catalog_checked = True
            for code in missing_codes(snapshot):
                logger.warning("Catalog code %s is not published by the price feed", code)

        self.state = RefreshState.APPLYING
        try:
            holdings = self.store.list()
        except PersistenceError as e:
            logger.error("Could not load holdings for refresh: %s", e)
            result.error = str(e)
            result.finished_at = datetime.now()
            return result

        for holding in holdings:
            if self.stopped:
                logger.info("Refresh interrupted by shutdown")
                break
            try:
                price = resolve_price(snapshot, holding.code)
            except CodeNotFound as e:
                logger.warning("Skipping holding %d: %s", holding.id, e)
                result.skipped.append(holding.code)
                continue
            if not price:
                logger.warning(
                    "Skipping holding %d: feed price for %s is unreadable", holding.id, holding.code
                )
                result.skipped.append(holding.code)
                continue

            try:
                self.store.apply_price(holding.id, price)
            except PersistenceError as e:
                logger.error("Could not update holding %d: %s", holding.id, e)
                result.failed.append(holding.id)
                continue
            result.updated += 1

        result.finished_at = datetime.now()
        logger.info(
            "Refresh complete: %d updated, %d skipped, %d failed",
            result.updated, len(result.skipped), len(result.failed),
        )
        return result

    def _refresh_logged(self) -> None:
        """refresh() for background threads, which must outlive any one failure."""
        try:
            self.refresh()
        except Exception:
            logger.exception("Price refresh crashed")

    def trigger(self) -> bool:
        """Start a refresh on a background thread without waiting for it.

        Returns False if a refresh is already running or the scheduler stopped.
        """
        if self.stopped or self._busy.locked():
            return False
        threading.Thread(target=self._refresh_logged, name="vaultstack-refresh", daemon=True).start()
        return True

    def _loop(self) -> None:
        while True:
            self.next_run = datetime.now() + timedelta(seconds=self.interval)
            if self._stop.wait(self.interval):
                return
            logger.info("Starting scheduled price refresh")
            self._refresh_logged()

    def start(self) -> None:
        """Start refreshing every `interval` seconds."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._loop, name="vaultstack-scheduler", daemon=True)
        self._thread.start()
        logger.info("Automatic price refresh started (every %d seconds)", self.interval)

    def stop(self, timeout: float = 1.0) -> None:
        """Stop the timer; an in-flight network call is abandoned, not awaited."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        self.next_run = None
        logger.info("Automatic price refresh stopped")
