"""JSON-file storage for holdings and application settings."""

import json
import logging
import os
import threading
from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import ValidationError

from .models import Category, Holding, Inventory
from .valuation import apply_current_price

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "vaultstack"
DEFAULT_STORE_FILE = DEFAULT_DATA_DIR / "inventory.json"
DEFAULT_SETTINGS_FILE = DEFAULT_DATA_DIR / "settings.json"


class PersistenceError(Exception):
    """The inventory file could not be read or written."""


class ListOrder(str, Enum):
    """Orderings offered by InventoryStore.list()."""

    PURCHASE = "purchase"
    VARIANT = "variant"


def _write_atomic(path: Path, text: str) -> None:
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_text(text)
    os.replace(tmp_path, path)


class InventoryStore:
    """Holds holdings in a JSON file, keyed by an integer id.

    Every call reads or rewrites the whole file under a lock, so a reader
    sees each holding either before or after a write, never half of it.
    """

    def __init__(self, path: Path | None = None):
        self.path = path or DEFAULT_STORE_FILE
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def load(self) -> Inventory:
        """Load the inventory file; a missing file is an empty inventory."""
        with self._lock:
            if not self.path.exists():
                return Inventory()
            try:
                return Inventory.model_validate_json(self.path.read_text())
            except (OSError, ValueError, ValidationError) as e:
                raise PersistenceError(f"Cannot read inventory {self.path}: {e}") from e

    def _save(self, inventory: Inventory) -> None:
        try:
            _write_atomic(self.path, inventory.model_dump_json(indent=2))
        except OSError as e:
            raise PersistenceError(f"Cannot write inventory {self.path}: {e}") from e

    def list(self, order: ListOrder = ListOrder.PURCHASE) -> list[Holding]:
        """All holdings, sorted by category then purchase date or variant."""
        holdings = self.load().holdings
        if order == ListOrder.VARIANT:
            return sorted(holdings, key=lambda h: (h.category.value, h.variant, h.id or 0))
        return sorted(holdings, key=lambda h: (h.category.value, h.purchase_date, h.id or 0))

    def get(self, holding_id: int) -> Holding | None:
        """Get a holding by id."""
        for holding in self.load().holdings:
            if holding.id == holding_id:
                return holding
        return None

    def create(self, holding: Holding) -> int:
        """Store a new holding and return its assigned id."""
        with self._lock:
            inventory = self.load()
            now = datetime.now()
            stored = holding.model_copy(
                update={"id": inventory.next_id, "created_at": now, "updated_at": now}
            )
            inventory.holdings.append(stored)
            inventory.next_id += 1
            self._save(inventory)
        logger.info(
            "Added holding %d: %s %s (%s %s)",
            stored.id, stored.category.value, stored.variant, stored.quantity, stored.unit.value,
        )
        return stored.id

    def update(self, holding: Holding) -> None:
        """Replace the stored holding with the same id."""
        with self._lock:
            inventory = self.load()
            for index, existing in enumerate(inventory.holdings):
                if existing.id == holding.id:
                    inventory.holdings[index] = holding.model_copy(
                        update={"created_at": existing.created_at, "updated_at": datetime.now()}
                    )
                    self._save(inventory)
                    return
        raise PersistenceError(f"No holding with id {holding.id}")

    def apply_price(self, holding_id: int, price: float) -> Holding:
        """Re-value the stored holding at `price`.

        The record is re-read under the lock, so only the current-price fields
        change and edits made since the caller listed the holdings survive.
        """
        with self._lock:
            inventory = self.load()
            for index, existing in enumerate(inventory.holdings):
                if existing.id == holding_id:
                    valued = apply_current_price(existing, price).model_copy(
                        update={"updated_at": datetime.now()}
                    )
                    inventory.holdings[index] = valued
                    self._save(inventory)
                    return valued
        raise PersistenceError(f"No holding with id {holding_id}")

    def delete(self, holding_id: int) -> None:
        """Remove a holding by id."""
        with self._lock:
            inventory = self.load()
            remaining = [h for h in inventory.holdings if h.id != holding_id]
            if len(remaining) == len(inventory.holdings):
                raise PersistenceError(f"No holding with id {holding_id}")
            inventory.holdings = remaining
            self._save(inventory)
        logger.info("Deleted holding %d", holding_id)


class SettingsManager:
    """Manages application settings persistence."""

    def __init__(self, settings_path: Path | None = None):
        self.settings_path = settings_path or DEFAULT_SETTINGS_FILE
        self.settings_path.parent.mkdir(parents=True, exist_ok=True)

    def _load(self) -> dict:
        """Load settings from JSON file."""
        if not self.settings_path.exists():
            return {}
        try:
            return json.loads(self.settings_path.read_text())
        except (json.JSONDecodeError, ValueError):
            return {}

    def _save(self, settings: dict) -> None:
        """Save settings to JSON file."""
        self.settings_path.write_text(json.dumps(settings, indent=2))

    def get_last_view(self) -> str:
        """Get the last focused TUI table, defaulting to holdings."""
        view = self._load().get("last_view")
        return view if view in ("holdings", "groups") else "holdings"

    def set_last_view(self, view: str) -> None:
        settings = self._load()
        settings["last_view"] = view
        self._save(settings)

    def get_last_category(self) -> Category:
        """Get the category last used in the add form, defaulting to METAL."""
        value = self._load().get("last_category")
        if value:
            try:
                return Category(value)
            except ValueError:
                pass
        return Category.METAL

    def set_last_category(self, category: Category) -> None:
        settings = self._load()
        settings["last_category"] = category.value
        self._save(settings)
