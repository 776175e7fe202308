"""smartmon - Main Textual application."""

from collections import deque

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.containers import Container, Vertical
from textual.screen import ModalScreen
from textual.widgets import DataTable, Input, Static

from smartmon.config import Config
from smartmon.models import Band, ProcessSample, cpu_band, memory_band
from smartmon.session import Frame, Session
from smartmon.sources import ProcessSource, PsutilSource

TITLE_TEXT = " SMART SYSTEM MONITOR "
HELP_TEXT = "[q] quit  [t] toggle sort  [k] kill PID  [c] color/self-test"
ALERT_TEXT = "  ALERT: High usage detected!  "
NAME_WIDTH = 22
COMMAND_KEYS = frozenset("qtkc")


def format_percent(value: float) -> str:
    """Format a percentage for a table cell."""
    return f"{value:6.1f}"


class HeaderStats(Static):
    """Header widget showing sort order, key help and system totals."""

    DEFAULT_CSS = """
    HeaderStats {
        height: 4;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__(*args, **kwargs)
        self._cpu_percent: float = 0.0
        self._memory_percent: float = 0.0
        self._sort_by_cpu: bool = True
        self._alert: bool = False

    @property
    def alert(self) -> bool:
        return self._alert

    def on_mount(self) -> None:
        self.update(self._build())

    def update_stats(self, frame: Frame) -> None:
        """Update the statistics from a frame."""
        self._cpu_percent = frame.cpu_percent
        self._memory_percent = frame.memory_percent
        self._sort_by_cpu = frame.sort_by_cpu
        self._alert = frame.alert
        self.update(self._build())

    def _build(self) -> Text:
        text = Text()
        text.append(TITLE_TEXT, style="bold")
        text.append("  ")
        text.append("[Sorting: CPU%]" if self._sort_by_cpu else "[Sorting: MEM%]")
        text.append("\n")
        text.append(HELP_TEXT)
        text.append("\n")
        text.append(f"CPU: {self._cpu_percent:5.1f}%   MEM: {self._memory_percent:5.1f}%")
        if self._alert:
            text.append(ALERT_TEXT, style="bold red")
        return text


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }

    ProcessTable > DataTable {
        height: 1fr;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._shown_pids: list[int] = []

    @property
    def shown_pids(self) -> list[int]:
        """PIDs currently on screen, top to bottom."""
        return list(self._shown_pids)

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table", show_cursor=False, zebra_stripes=False)

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        header = "bold cyan"
        table.add_column(Text("PID", style=header), key="pid", width=7)
        table.add_column(Text("NAME", style=header), key="name", width=NAME_WIDTH)
        table.add_column(Text("CPU%", style=header), key="cpu", width=6)
        table.add_column(Text("MEM%", style=header), key="mem", width=6)

    def capacity(self) -> int:
        """Number of rows that fit below the column headers, at least one."""
        table = self.query_one("#process-table", DataTable)
        return max(table.size.height - 1, 1)

    def update_processes(self, processes: list[ProcessSample]) -> None:
        """
        Replace the table contents with the first rows that fit.

        Rows beyond the visible capacity are dropped; there is no scrolling.
        """
        table = self.query_one("#process-table", DataTable)
        visible = processes[: self.capacity()]

        table.clear()
        for proc in visible:
            table.add_row(
                str(proc.pid),
                proc.name[:NAME_WIDTH],
                Text(format_percent(proc.cpu_percent), style=cpu_band(proc.cpu_percent).value),
                Text(
                    format_percent(proc.memory_percent),
                    style=memory_band(proc.memory_percent).value,
                ),
                key=str(proc.pid),
            )
        self._shown_pids = [proc.pid for proc in visible]


class StatusLine(Static):
    """One-line status message, kept for one tick after it is shown."""

    DEFAULT_CSS = """
    StatusLine {
        height: 1;
        padding: 0 1;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize StatusLine."""
        super().__init__(*args, **kwargs)
        self.message: str = ""
        self._age = 0

    def show(self, message: str, band: Band) -> None:
        """Show message in the band color and restart its age."""
        self.message = message
        self._age = 0
        self.update(Text(message, style=band.value))

    def tick(self) -> None:
        """Age the message; clear it on the second tick after it was shown."""
        if not self.message:
            return
        self._age += 1
        if self._age > 1:
            self.message = ""
            self.update("")


def legend() -> Text:
    """Footer text naming each band color."""
    text = Text("Legend: ")
    text.append("Green=Normal ", style=Band.NORMAL.value)
    text.append("Yellow=Medium ", style=Band.MEDIUM.value)
    text.append("Red=High", style=Band.HIGH.value)
    return text


class KillPrompt(ModalScreen[str | None]):
    """Modal prompt reading the PID to terminate."""

    DEFAULT_CSS = """
    KillPrompt {
        align: center middle;
    }

    KillPrompt > Vertical {
        width: 50;
        height: auto;
        border: solid $warning;
        padding: 1;
        background: $surface;
    }
    """

    BINDINGS = [("escape", "cancel", "Cancel")]

    def compose(self) -> ComposeResult:
        yield Vertical(
            Static("Enter PID to kill (SIGTERM): "),
            Input(id="kill-pid", max_length=31),
        )

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Close the prompt with the typed text."""
        event.stop()
        self.dismiss(event.value)

    def action_cancel(self) -> None:
        self.dismiss(None)


class SelfTestScreen(ModalScreen[None]):
    """Shows every band color and waits for any key."""

    DEFAULT_CSS = """
    SelfTestScreen {
        align: center middle;
    }

    SelfTestScreen > Static {
        width: 40;
        height: auto;
        border: solid $primary;
        padding: 1;
        background: $surface;
    }
    """

    def compose(self) -> ComposeResult:
        text = Text()
        text.append("Color/Self-Test:\n", style="bold")
        text.append("Green OK\n", style=Band.NORMAL.value)
        text.append("Yellow OK\n", style=Band.MEDIUM.value)
        text.append("Red OK\n", style=Band.HIGH.value)
        text.append("Cyan Header OK\n", style="cyan")
        text.append("Press any key to continue...")
        yield Static(text, id="self-test")

    def on_key(self, event: events.Key) -> None:
        event.stop()
        self.dismiss(None)


class SmartMonApp(App):
    """Main smartmon application; the display side of a Session."""

    TITLE = "smartmon"
    SUB_TITLE = "Smart System Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #legend {
        dock: bottom;
        height: 1;
        padding: 0 1;
    }
    """

    def __init__(
        self,
        config: Config | None = None,
        source: ProcessSource | None = None,
    ) -> None:
        """Initialize the SmartMonApp."""
        super().__init__()
        self.config = config or Config()
        self._source = source or PsutilSource()
        self._pending_keys: deque[str] = deque()
        self._header = HeaderStats(id="header-stats")
        self._table = ProcessTable()
        self._status = StatusLine(id="status")
        self.session = Session(self._source, self, tick_interval=self.config.tick_interval)

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield self._header
        yield self._table
        yield self._status
        yield Static(legend(), id="legend")

    def on_mount(self) -> None:
        """Prime the sampler, then tick at the configured interval."""
        self.session.start()
        self.set_timer(self.config.prime_delay, self.tick)
        self.set_interval(self.session.tick_interval, self.tick)

    def on_key(self, event: events.Key) -> None:
        """Queue command keys for the next tick; modal screens handle their own."""
        if isinstance(self.screen, ModalScreen):
            return
        if event.character and event.character.lower() in COMMAND_KEYS:
            event.stop()
            self._pending_keys.append(event.character)

    def tick(self) -> None:
        """Run one session tick and exit once the session has terminated."""
        self.session.step()
        if self.session.is_terminated:
            self.exit()

    # Display protocol

    def draw(self, frame: Frame) -> None:
        """Show a frame and age the status line."""
        self._header.update_stats(frame)
        self._table.update_processes(frame.processes)
        self._status.tick()

    def poll_key(self) -> str | None:
        """Return the oldest queued command key, if any."""
        if self._pending_keys:
            return self._pending_keys.popleft()
        return None

    def request_kill_input(self) -> None:
        """Open the kill prompt; the result arrives in _on_kill_input."""
        self.push_screen(KillPrompt(), callback=self._on_kill_input)

    def show_self_test(self) -> None:
        """Open the color self-test screen."""
        self.push_screen(SelfTestScreen(), callback=self._on_self_test_closed)

    def show_status(self, message: str, band: Band) -> None:
        """Show a one-line status message in the band color."""
        self._status.show(message, band)

    def _on_kill_input(self, text: str | None) -> None:
        """Hand the prompt result to the session; None means cancelled."""
        if text is None:
            self.session.cancel_kill_input()
        else:
            self.session.submit_kill_input(text)

    def _on_self_test_closed(self, _result: None) -> None:
        """Resume ticking after the self-test screen closes."""
        self.session.dismiss_self_test()


def run(config: Config | None = None) -> None:
    """Run the interactive monitor until the operator quits."""
    app = SmartMonApp(config=config)
    app.run()
