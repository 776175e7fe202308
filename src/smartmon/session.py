"""Session loop for smartmon: tick cadence, sorting, alerts and operator commands."""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import structlog

from smartmon.models import Band, ProcessSample
from smartmon.sampler import Sampler
from smartmon.sources import ProcessSource

log = structlog.get_logger()

DEFAULT_TICK_INTERVAL = 1.8
MIN_TICK_INTERVAL = 0.1
INVALID_PID = "Invalid PID."


class SessionMode(Enum):
    """States of the session loop."""

    RUNNING = "running"
    AWAITING_KILL_INPUT = "awaiting_kill_input"
    SHOWING_SELF_TEST = "showing_self_test"
    TERMINATED = "terminated"


@dataclass(slots=True, frozen=True)
class Frame:
    """Everything the display needs to draw one tick."""

    processes: list[ProcessSample]
    cpu_percent: float
    memory_percent: float
    alert: bool
    sort_by_cpu: bool


class Display(Protocol):
    """Rendering and input collaborator driven by the session."""

    def draw(self, frame: Frame) -> None: ...

    def poll_key(self) -> str | None: ...

    def request_kill_input(self) -> None: ...

    def show_self_test(self) -> None: ...

    def show_status(self, message: str, band: Band) -> None: ...


def sort_samples(processes: list[ProcessSample], by_cpu: bool) -> list[ProcessSample]:
    """Sort descending by the active metric. Ties keep enumeration order."""
    if by_cpu:
        return sorted(processes, key=lambda p: p.cpu_percent, reverse=True)
    return sorted(processes, key=lambda p: p.memory_percent, reverse=True)


def has_alert(processes: list[ProcessSample]) -> bool:
    """True if any process is in the high band by CPU or memory."""
    return any(p.is_high for p in processes)


def parse_pid(text: str) -> int | None:
    """Parse operator input as a killable pid; None if invalid or <= 1."""
    try:
        pid = int(text.strip())
    except ValueError:
        return None
    if pid <= 1:
        return None
    return pid


@dataclass(slots=True, frozen=True)
class KillStatus:
    """One-line outcome of a kill command, colored by band."""

    sent: bool
    message: str
    band: Band


def request_termination(source: ProcessSource, text: str) -> KillStatus:
    """Validate text as a pid and ask the source to terminate it.

    Invalid input never reaches the source. Failures are reported, not
    retried, and the signal is never escalated.
    """
    pid = parse_pid(text)
    if pid is None:
        log.info("invalid kill input", text=text)
        return KillStatus(sent=False, message=INVALID_PID, band=Band.MEDIUM)

    result = source.send_termination_signal(pid)
    if result.ok:
        log.info("sent termination signal", pid=pid)
        return KillStatus(sent=True, message=f"Sent SIGTERM to PID {pid}", band=Band.NORMAL)
    log.warning("termination signal failed", pid=pid, reason=result.reason)
    return KillStatus(
        sent=False, message=f"kill({pid}) failed: {result.reason}", band=Band.HIGH
    )


class Session:
    """
    Single-threaded state machine driving one monitoring session.

    Each step() is one tick: sample, sort, compute the alert flag, render,
    then dispatch at most one pending key. The kill prompt and the color
    self-test are modal states that suspend ticking until the display calls
    back with submit_kill_input() or dismiss_self_test().
    """

    def __init__(
        self,
        source: ProcessSource,
        display: Display,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        sampler: Sampler | None = None,
    ) -> None:
        """
        Initialize the Session.

        Args:
            source: Operating system data source, also used for kill requests.
            display: Display collaborator that draws frames and collects input.
            tick_interval: Seconds between ticks, floored at 0.1.
            sampler: Sampler to use; one is built over source when omitted.
        """
        self._source = source
        self._display = display
        self._sampler = sampler or Sampler(source)
        self._tick_interval = max(MIN_TICK_INTERVAL, tick_interval)
        self.mode = SessionMode.RUNNING
        self.sort_by_cpu = True
        self.last_status: str | None = None
        self.last_frame: Frame | None = None

    @property
    def sampler(self) -> Sampler:
        """Sampler owning the counter baselines."""
        return self._sampler

    @property
    def tick_interval(self) -> float:
        """Seconds between ticks."""
        return self._tick_interval

    @tick_interval.setter
    def tick_interval(self, value: float) -> None:
        self._tick_interval = max(MIN_TICK_INTERVAL, value)

    @property
    def is_terminated(self) -> bool:
        """Whether the operator has quit."""
        return self.mode is SessionMode.TERMINATED

    def start(self) -> None:
        """Prime the sampler baselines before the first tick."""
        self._sampler.prime()
        log.info("session started", tick_interval=self._tick_interval)

    def step(self) -> Frame | None:
        """Run one tick. Does nothing unless the session is running."""
        if self.mode is not SessionMode.RUNNING:
            return None

        result = self._sampler.sample()
        processes = sort_samples(result.processes, self.sort_by_cpu)
        frame = Frame(
            processes=processes,
            cpu_percent=result.cpu_percent,
            memory_percent=result.memory_percent,
            alert=has_alert(processes),
            sort_by_cpu=self.sort_by_cpu,
        )
        self.last_frame = frame
        self._display.draw(frame)

        key = self._display.poll_key()
        if key:
            self.handle_key(key)
        return frame

    def handle_key(self, key: str) -> None:
        """Dispatch one operator keystroke."""
        if self.mode is not SessionMode.RUNNING:
            return
        key = key.lower()
        if key == "q":
            self.quit()
        elif key == "t":
            self.sort_by_cpu = not self.sort_by_cpu
            log.info("sort toggled", sort="cpu" if self.sort_by_cpu else "mem")
        elif key == "k":
            self.mode = SessionMode.AWAITING_KILL_INPUT
            self._display.request_kill_input()
        elif key == "c":
            self.mode = SessionMode.SHOWING_SELF_TEST
            self._display.show_self_test()

    def submit_kill_input(self, text: str) -> KillStatus:
        """Handle the line typed at the kill prompt.

        The session goes back to running whatever the outcome.
        """
        if self.mode is not SessionMode.AWAITING_KILL_INPUT:
            raise RuntimeError(f"not awaiting kill input (mode={self.mode.value})")
        self.mode = SessionMode.RUNNING

        status = request_termination(self._source, text)
        self.last_status = status.message
        self._display.show_status(status.message, status.band)
        return status

    def cancel_kill_input(self) -> None:
        """Leave the kill prompt without sending anything."""
        if self.mode is SessionMode.AWAITING_KILL_INPUT:
            self.mode = SessionMode.RUNNING

    def dismiss_self_test(self) -> None:
        """Return to running after the color self-test is closed."""
        if self.mode is SessionMode.SHOWING_SELF_TEST:
            self.mode = SessionMode.RUNNING

    def quit(self) -> None:
        """Terminate the session; no further ticks will sample."""
        if self.mode is not SessionMode.TERMINATED:
            self.mode = SessionMode.TERMINATED
            log.info("session stopped")
