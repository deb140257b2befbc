"""Interactive TUI mode for VaultStack."""

import logging
import queue
import sys
import termios
import threading
from datetime import datetime

import readchar
from rich.console import Group
from rich.live import Live
from rich.prompt import Confirm
from rich.text import Text

from .display import (
    build_groups_table,
    build_holdings_table,
    build_summary_panel,
    console,
)
from .forms import describe, prompt_holding
from .inputs import InvalidInput
from .inventory import InventoryService
from .scheduler import RefreshResult, RefreshScheduler, RefreshState
from .store import PersistenceError, SettingsManager

logger = logging.getLogger(__name__)

LOGO = r"""
    ╦  ╦╔═╗╦ ╦╦ ╔╦╗╔═╗╔╦╗╔═╗╔═╗╦╔═
    ╚╗╔╝╠═╣║ ║║  ║ ╚═╗ ║ ╠═╣║  ╠╩╗
     ╚╝ ╩ ╩╚═╝╩═╝╩ ╚═╝ ╩ ╩ ╩╚═╝╩ ╩
"""

VIEWS = ("holdings", "groups")

# Rows of screen used by everything except the focused table body.
CHROME_ROWS = 24

UP_KEYS = (readchar.key.UP, "k")
DOWN_KEYS = (readchar.key.DOWN, "j")
REFRESH_KEYS = ("r", readchar.key.F5)


class InteractiveTUI:
    """Interactive terminal UI for VaultStack."""

    def __init__(
        self,
        service: InventoryService,
        settings: SettingsManager,
        scheduler: RefreshScheduler | None = None,
    ):
        self.service = service
        self.settings = settings
        self.scheduler = scheduler
        self.view = settings.get_last_view()
        self.selected = {"holdings": 0, "groups": 0}
        self.running = False
        self.last_update: datetime | None = None
        self.error_message: str | None = None
        self.notice: str | None = None
        self._key_queue: queue.Queue[str] = queue.Queue()
        self._key_ready = threading.Event()
        self._display_dirty = threading.Event()
        self._live: Live | None = None

        if scheduler is not None:
            scheduler.on_complete = self._on_refresh_complete

    @property
    def offline(self) -> bool:
        return self.scheduler is None

    def _on_refresh_complete(self, result: RefreshResult) -> None:
        """Called on the scheduler's thread when a refresh finishes."""
        if result.ok:
            self.last_update = result.finished_at
            self.error_message = None
            if result.skipped:
                self.notice = f"No price for: {', '.join(sorted(set(result.skipped)))}"
            else:
                self.notice = f"Updated {result.updated} holdings"
        else:
            self.error_message = f"Price refresh failed: {result.error}"
        self._display_dirty.set()

    def request_refresh(self) -> None:
        """Start a refresh without blocking the key loop."""
        if self.offline:
            self.notice = "Offline mode: prices are not refreshed"
        elif self.scheduler.trigger():
            self.notice = "Refreshing prices..."
        else:
            self.notice = "A refresh is already running"
        self._display_dirty.set()

    def build_logo(self) -> Text:
        """Build the gold-colored logo."""
        logo_text = Text(justify="center")
        lines = LOGO.rstrip("\n").split("\n")[1:]
        gold_styles = ["bold bright_yellow", "bold yellow", "yellow"]
        for i, line in enumerate(lines):
            style = gold_styles[min(i, len(gold_styles) - 1)]
            logo_text.append(line.strip() + "\n", style=style)
        return logo_text

    def build_keybindings(self) -> Text:
        """Build the keybindings help line."""
        keys = Text(justify="center")
        key_style = "yellow"
        for key, label in (
            ("↑↓", "move"),
            ("tab", "holdings/groups"),
            ("a", "add"),
            ("e", "edit"),
            ("d", "delete"),
            ("r", "refresh"),
            ("q", "quit"),
        ):
            keys.append(f"  {key}", style=key_style)
            keys.append(f": {label}", style="dim")
        return keys

    def _visible(self, rows: list, selected: int) -> tuple[list, int, int]:
        """Slice rows to fit the screen, keeping the selection visible.

        Returns (rows, selected index within the slice, offset of the slice).
        """
        height = max(3, console.height - CHROME_ROWS)
        if len(rows) <= height:
            return rows, selected, 0
        start = min(max(0, selected - height // 2), len(rows) - height)
        return rows[start:start + height], selected - start, start

    def build_main_table(self):
        """Build the focused table."""
        if self.view == "groups":
            groups = self.service.groups()
            if not groups:
                return Text("No holdings yet. Press 'a' to add one.", style="dim")
            self.selected["groups"] = min(self.selected["groups"], len(groups) - 1)
            rows, selected, _ = self._visible(groups, self.selected["groups"])
            return build_groups_table(rows, selected=selected)

        holdings = self.service.list_holdings()
        if not holdings:
            return Text("No holdings yet. Press 'a' to add one.", style="dim")
        self.selected["holdings"] = min(self.selected["holdings"], len(holdings) - 1)
        rows, selected, offset = self._visible(holdings, self.selected["holdings"])
        title = "Holdings"
        if offset or len(rows) < len(holdings):
            title = f"Holdings ({offset + 1}-{offset + len(rows)} of {len(holdings)})"
        return build_holdings_table(rows, selected=selected, title=title)

    def build_status_bar(self) -> Text:
        """Build the status bar."""
        status = Text()

        if self.error_message:
            status.append(f"Error: {self.error_message}", style="red")
        elif self.offline:
            status.append("Offline mode", style="yellow")
        elif self.last_update:
            status.append(f"Updated: {self.last_update.strftime('%H:%M:%S')}", style="dim")
        if self.scheduler is not None:
            if self.scheduler.state != RefreshState.IDLE:
                status.append(f" • {self.scheduler.state.value}...", style="yellow")
            elif self.scheduler.next_run:
                status.append(" • ", style="dim")
                status.append(f"Next: {self.scheduler.next_run.strftime('%H:%M:%S')}", style="dim")
        if self.notice:
            status.append(f"  {self.notice}", style="cyan")

        return status

    def build_display(self) -> Group:
        """Build the complete display."""
        try:
            main_table = self.build_main_table()
            summary = build_summary_panel(self.service.totals(), self.last_update)
        except PersistenceError as e:
            main_table = Text(f"Cannot read inventory: {e}", style="red")
            summary = Text()

        return Group(
            self.build_logo(),
            self.build_keybindings(),
            Text(),
            main_table,
            summary,
            self.build_status_bar(),
        )

    def _selected_holding(self):
        holdings = self.service.list_holdings()
        if not holdings:
            return None
        return holdings[min(self.selected["holdings"], len(holdings) - 1)]

    def _with_form(self, action) -> None:
        """Leave the live screen to run a prompt-based action, then return."""
        if self._live is not None:
            self._live.stop()
        try:
            action()
        except (InvalidInput, PersistenceError) as e:
            logger.warning("Holding change failed: %s", e)
            self.error_message = str(e)
        except (KeyboardInterrupt, EOFError):
            self.notice = "Cancelled"
        finally:
            if self._live is not None:
                self._live.start(refresh=True)
            self._display_dirty.set()

    def add_holding(self) -> None:
        console.print("\n[bold]Add Holding[/bold]\n")
        holding = prompt_holding(default_category=self.settings.get_last_category())
        saved = self.service.add(holding)
        self.settings.set_last_category(saved.category)
        self.error_message = None
        self.notice = f"Added {describe(saved)}"

    def edit_holding(self) -> None:
        holding = self._selected_holding()
        if holding is None:
            return
        console.print(f"\n[bold]Editing {describe(holding)}[/bold]")
        console.print("[dim]Press Enter to keep current value[/dim]\n")
        updated = self.service.update(prompt_holding(existing=holding))
        self.error_message = None
        self.notice = f"Updated {describe(updated)}"

    def delete_holding(self) -> None:
        holding = self._selected_holding()
        if holding is None:
            return
        if Confirm.ask(f"Delete {describe(holding)}?", console=console):
            self.service.delete(holding.id)
            self.error_message = None
            self.notice = f"Deleted {describe(holding)}"
        else:
            self.notice = "Cancelled"

    def move(self, step: int) -> None:
        if self.view == "groups":
            count = len(self.service.groups())
        else:
            count = len(self.service.list_holdings())
        if count:
            self.selected[self.view] = (self.selected[self.view] + step) % count
        self._display_dirty.set()

    def handle_key(self, key: str) -> bool:
        """Handle a key press. Returns False to quit."""
        if key.lower() in ("q", readchar.key.CTRL_C):
            return False

        if key in UP_KEYS:
            self.move(-1)
        elif key in DOWN_KEYS:
            self.move(1)
        elif key == readchar.key.TAB:
            self.view = VIEWS[(VIEWS.index(self.view) + 1) % len(VIEWS)]
            self._display_dirty.set()
        elif key in REFRESH_KEYS or key == "R":
            self.request_refresh()
        elif key.lower() in ("e", "d") and self.view != "holdings":
            self.notice = "Switch to holdings (tab) to edit or delete"
            self._display_dirty.set()
        elif key.lower() == "a":
            self._with_form(self.add_holding)
        elif key.lower() == "e":
            self._with_form(self.edit_holding)
        elif key.lower() == "d":
            self._with_form(self.delete_holding)

        return True

    def _key_reader_thread(self) -> None:
        """Background thread to read key presses.

        Waits for each key to be handled before reading the next, so prompts
        opened by a key own stdin until they finish.
        """
        while self.running:
            self._key_ready.wait()
            self._key_ready.clear()
            if not self.running:
                return
            try:
                key = readchar.readkey()
            except (OSError, termios.error):
                self._key_queue.put("q")  # Signal quit on terminal error
                return
            self._key_queue.put(key)

    def run(self) -> None:
        """Run the interactive TUI."""
        self.running = True

        # Save terminal settings to restore on exit
        try:
            old_settings = termios.tcgetattr(sys.stdin)
        except termios.error:
            old_settings = None

        if self.scheduler is not None:
            with console.status("Fetching prices..."):
                self.scheduler.refresh()
            self.scheduler.start()

        key_thread = threading.Thread(target=self._key_reader_thread, daemon=True)
        key_thread.start()
        self._key_ready.set()

        try:
            with Live(
                self.build_display(),
                console=console,
                refresh_per_second=2,
                screen=True,
                vertical_overflow="crop",
            ) as live:
                self._live = live
                while self.running:
                    try:
                        key = self._key_queue.get(timeout=0.1)
                        if not self.handle_key(key):
                            break
                        self._key_ready.set()
                    except queue.Empty:
                        pass

                    if self._display_dirty.is_set():
                        self._display_dirty.clear()
                        live.update(self.build_display())

        except KeyboardInterrupt:
            pass
        finally:
            self.running = False
            self._live = None
            self._key_ready.set()
            if self.scheduler is not None:
                self.scheduler.stop()
            if old_settings:
                try:
                    termios.tcsetattr(sys.stdin, termios.TCSADRAIN, old_settings)
                except termios.error:
                    pass

        self.settings.set_last_view(self.view)


def run_interactive(
    service: InventoryService,
    settings: SettingsManager,
    scheduler: RefreshScheduler | None = None,
) -> None:
    """Run the interactive TUI."""
    tui = InteractiveTUI(service, settings, scheduler)
    tui.run()
