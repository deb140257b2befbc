"""CLI interface for VaultStack."""

import logging
from typing import Annotated, Optional

import typer
from rich.prompt import Confirm

from .api import FeedError, PriceFeed
from .catalog import CatalogError, check_catalog, find_instrument
from .config import AppConfig, ConfigError, configure_logging
from .display import (
    build_catalog_table,
    build_quotes_table,
    console,
    display_error,
    display_inventory,
    display_success,
    display_warning,
)
from .forms import describe, prompt_holding
from .inputs import InvalidInput, build_holding
from .inventory import InventoryService
from .models import Unit
from .scheduler import RefreshScheduler
from .store import InventoryStore, PersistenceError, SettingsManager
from .tui import run_interactive

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="vaultstack",
    help="Track your gold and foreign currency holdings with live prices.",
    invoke_without_command=True,
)


def load_config() -> AppConfig:
    """Read configuration, set up logging and check the instrument table."""
    try:
        config = AppConfig.from_env()
        check_catalog()
    except (ConfigError, CatalogError) as e:
        display_error(str(e))
        raise typer.Exit(1)
    configure_logging(config.log_path, config.log_level)
    return config


def get_store(config: AppConfig) -> InventoryStore:
    """Open the inventory, failing fast if the file is unusable."""
    try:
        store = InventoryStore(config.store_path)
        store.load()
    except (OSError, PersistenceError) as e:
        display_error(str(e))
        raise typer.Exit(1)
    return store


def get_feed(config: AppConfig) -> PriceFeed:
    return PriceFeed(base_url=config.feed_url, timeout=config.feed_timeout)


def get_service(config: AppConfig, offline: bool) -> InventoryService:
    store = get_store(config)
    feed = None if offline else get_feed(config)
    return InventoryService(store, feed, offline=offline)


def run_refresh(config: AppConfig, store: InventoryStore) -> None:
    """Refresh prices once, reporting problems without failing."""
    feed = get_feed(config)
    scheduler = RefreshScheduler(feed, store, interval=config.refresh_interval)
    try:
        with console.status("Fetching prices..."):
            result = scheduler.refresh()
    finally:
        feed.close()
    if result is None:
        return
    if not result.ok:
        display_warning(f"Prices not refreshed, showing stored values: {result.error}")
    elif result.skipped:
        display_warning(f"No price for: {', '.join(sorted(set(result.skipped)))}")


def show_inventory(service: InventoryService) -> None:
    try:
        display_inventory(service.list_holdings(), service.groups(), service.totals())
    except PersistenceError as e:
        display_error(str(e))
        raise typer.Exit(1)


def pick_holding(service: InventoryService, holding_id: Optional[int], verb: str):
    """Resolve a holding id, listing holdings and asking if none was given."""
    holdings = service.list_holdings()
    if not holdings:
        display_error("No holdings yet.")
        raise typer.Exit(1)

    if holding_id is None:
        console.print(f"\n[bold]{verb} Holding[/bold]\n")
        for holding in holdings:
            console.print(f"  {describe(holding)}")
        console.print()
        holding_id = typer.prompt(f"Holding number to {verb.lower()}", type=int)

    holding = service.get(holding_id)
    if holding is None:
        display_error(f"No holding #{holding_id}.")
        raise typer.Exit(1)
    return holding


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    offline: Annotated[
        bool,
        typer.Option("--offline", "-o", help="Show stored data only, never fetch prices"),
    ] = False,
    once: Annotated[
        bool,
        typer.Option("--once", "-1", help="Print the inventory and exit (non-interactive)"),
    ] = False,
) -> None:
    """Show your holdings with current prices."""
    if ctx.invoked_subcommand is not None:
        return

    config = load_config()
    store = get_store(config)
    settings = SettingsManager(config.settings_path)

    if once:
        if not offline:
            run_refresh(config, store)
        show_inventory(InventoryService(store, offline=True))
        return

    if offline:
        logger.info("Offline mode: showing stored data only")
        run_interactive(InventoryService(store, offline=True), settings)
        return

    feed = get_feed(config)
    service = InventoryService(store, feed)
    scheduler = RefreshScheduler(feed, store, interval=config.refresh_interval)
    try:
        run_interactive(service, settings, scheduler)
    finally:
        feed.close()


@app.command(name="list")
def list_holdings(
    offline: Annotated[
        bool,
        typer.Option("--offline", "-o", help="Don't refresh prices first"),
    ] = False,
) -> None:
    """List holdings, groups and totals."""
    config = load_config()
    store = get_store(config)
    if not offline:
        run_refresh(config, store)
    show_inventory(InventoryService(store, offline=True))


@app.command()
def add(
    code: Annotated[Optional[str], typer.Option("--code", "-c", help="Instrument code, e.g. GA or USD")] = None,
    quantity: Annotated[Optional[str], typer.Option("--quantity", "-q", help="Amount held")] = None,
    price: Annotated[Optional[str], typer.Option("--price", "-p", help="Purchase price per unit")] = None,
    date: Annotated[str, typer.Option("--date", "-d", help="Purchase date, DD.MM.YYYY")] = "",
    unit: Annotated[Optional[Unit], typer.Option("--unit", "-u", help="Unit of quantity")] = None,
    current: Annotated[str, typer.Option("--current", help="Current price per unit")] = "",
    note: Annotated[str, typer.Option("--note", "-n", help="Free-text note")] = "",
    offline: Annotated[bool, typer.Option("--offline", "-o", help="Don't fetch a current price")] = False,
) -> None:
    """Add a holding, from options or interactively."""
    config = load_config()
    service = get_service(config, offline)
    settings = SettingsManager(config.settings_path)

    try:
        if code and quantity and price:
            instrument = find_instrument(code)
            if instrument is None:
                raise InvalidInput(f"Unknown instrument code: {code}. See 'vaultstack codes'.")
            holding = build_holding(
                category=instrument.category,
                variant=instrument.name,
                code=instrument.code,
                unit=unit or instrument.default_unit,
                quantity=quantity,
                purchase_price=price,
                purchase_date=date,
                current_price=current,
                note=note,
            )
        else:
            console.print("\n[bold]Add Holding[/bold]\n")
            holding = prompt_holding(default_category=settings.get_last_category())

        with console.status("Saving..."):
            saved = service.add(holding)
    except (InvalidInput, PersistenceError) as e:
        display_error(str(e))
        raise typer.Exit(1)

    settings.set_last_category(saved.category)
    display_success(f"\nAdded: {describe(saved)}")
    if saved.current_price is None and not offline:
        display_warning("No current price found; it will be filled in on the next refresh.")


@app.command()
def edit(
    holding_id: Annotated[
        Optional[int],
        typer.Argument(help="Holding number to edit"),
    ] = None,
    offline: Annotated[bool, typer.Option("--offline", "-o", help="Don't fetch a current price")] = False,
) -> None:
    """Edit a holding."""
    config = load_config()
    service = get_service(config, offline)
    holding = pick_holding(service, holding_id, "Edit")

    console.print(f"\n[bold]Editing: {describe(holding)}[/bold]")
    console.print("[dim]Press Enter to keep current value[/dim]\n")

    try:
        updated = service.update(prompt_holding(existing=holding))
    except (InvalidInput, PersistenceError) as e:
        display_error(str(e))
        raise typer.Exit(1)

    display_success(f"\nUpdated: {describe(updated)}")


@app.command()
def remove(
    holding_id: Annotated[
        Optional[int],
        typer.Argument(help="Holding number to remove"),
    ] = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Don't ask for confirmation")] = False,
) -> None:
    """Remove a holding."""
    config = load_config()
    service = get_service(config, offline=True)
    holding = pick_holding(service, holding_id, "Remove")

    if not yes and not Confirm.ask(f"Remove {describe(holding)}?", console=console):
        console.print("Cancelled.")
        return

    try:
        service.delete(holding.id)
    except PersistenceError as e:
        display_error(str(e))
        raise typer.Exit(1)
    display_success(f"Removed: {describe(holding)}")


@app.command()
def refresh() -> None:
    """Fetch current prices and re-value every holding."""
    config = load_config()
    store = get_store(config)
    feed = get_feed(config)
    scheduler = RefreshScheduler(feed, store, interval=config.refresh_interval)
    try:
        with console.status("Fetching prices..."):
            result = scheduler.refresh()
    finally:
        feed.close()

    if result is None or not result.ok:
        display_error(f"Price refresh failed: {result.error if result else 'busy'}")
        raise typer.Exit(1)
    display_success(f"Updated {result.updated} holdings.")
    if result.skipped:
        display_warning(f"No price for: {', '.join(sorted(set(result.skipped)))}")
    if result.failed:
        display_error(f"Could not save holdings: {', '.join(map(str, result.failed))}")


@app.command()
def prices() -> None:
    """Show every price the feed currently publishes."""
    config = load_config()
    feed = get_feed(config)
    try:
        with console.status("Fetching prices..."):
            snapshot = feed.fetch_snapshot()
    except FeedError as e:
        display_error(str(e))
        raise typer.Exit(1)
    finally:
        feed.close()

    console.print(build_quotes_table(snapshot))


@app.command()
def codes() -> None:
    """List the instrument codes holdings can be priced by."""
    console.print(build_catalog_table())


if __name__ == "__main__":
    app()
