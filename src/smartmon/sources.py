"""Operating system data sources for smartmon."""

import errno
import os
from dataclasses import dataclass
from typing import Protocol

import psutil

try:
    CLOCK_TICKS: int = os.sysconf("SC_CLK_TCK")
except (AttributeError, ValueError, OSError):
    CLOCK_TICKS = 100  # no sysconf (Windows); any fixed scale works for ratios

# Fields of the aggregate cpu line that make up "total" time.
_TOTAL_FIELDS = ("user", "nice", "system", "idle", "iowait", "irq", "softirq", "steal")
_IDLE_FIELDS = ("idle", "iowait")


class ProcessUnavailable(Exception):
    """A process vanished or could not be read between enumeration and read."""

    def __init__(self, pid: int, reason: str = "") -> None:
        super().__init__(f"process {pid} unavailable{': ' + reason if reason else ''}")
        self.pid = pid
        self.reason = reason


@dataclass(slots=True, frozen=True)
class CpuTicks:
    """Cumulative system CPU time in clock ticks."""

    total: int
    idle: int


@dataclass(slots=True, frozen=True)
class MemoryKB:
    """Physical memory in kilobytes."""

    total: float
    available: float


@dataclass(slots=True, frozen=True)
class ProcessReading:
    """Name, cumulative CPU ticks and resident memory of one process."""

    name: str
    cpu_ticks: int
    resident_kb: float


@dataclass(slots=True, frozen=True)
class KillResult:
    """Outcome of a termination signal request."""

    pid: int
    ok: bool
    reason: str = ""


class ProcessSource(Protocol):
    """Queries the sampler and session need from the operating system.

    Per-process reads raise ProcessUnavailable when the process is gone.
    """

    def list_pids(self) -> list[int]: ...

    def process_name(self, pid: int) -> str: ...

    def process_cpu_ticks(self, pid: int) -> int: ...

    def process_resident_kb(self, pid: int) -> float: ...

    def read_process(self, pid: int) -> ProcessReading: ...

    def system_cpu_ticks(self) -> CpuTicks: ...

    def system_memory_kb(self) -> MemoryKB: ...

    def send_termination_signal(self, pid: int) -> KillResult: ...


def _to_ticks(seconds: float) -> int:
    return int(round(seconds * CLOCK_TICKS))


def _describe(exc: psutil.Error) -> str:
    """Map a psutil error to the strerror text kill(2) would produce."""
    if isinstance(exc, psutil.NoSuchProcess):
        return os.strerror(errno.ESRCH)
    if isinstance(exc, psutil.AccessDenied):
        return os.strerror(errno.EPERM)
    return str(exc)


class PsutilSource:
    """ProcessSource backed by psutil.

    Handles NoSuchProcess, AccessDenied and ZombieProcess by raising
    ProcessUnavailable so callers can skip the process.
    """

    def list_pids(self) -> list[int]:
        return [pid for pid in psutil.pids() if pid > 0]

    def process_name(self, pid: int) -> str:
        try:
            name = psutil.Process(pid).name()
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess) as e:
            raise ProcessUnavailable(pid, _describe(e)) from e
        return name or str(pid)

    def process_cpu_ticks(self, pid: int) -> int:
        try:
            times = psutil.Process(pid).cpu_times()
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess) as e:
            raise ProcessUnavailable(pid, _describe(e)) from e
        return _to_ticks(times.user + times.system)

    def process_resident_kb(self, pid: int) -> float:
        try:
            rss = psutil.Process(pid).memory_info().rss
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess) as e:
            raise ProcessUnavailable(pid, _describe(e)) from e
        return rss / 1024

    def read_process(self, pid: int) -> ProcessReading:
        """
        Read name, CPU ticks and RSS of pid in one pass.

        Uses a single psutil.Process and the oneshot() context manager so the
        per-process files are read once per tick rather than once per field.
        """
        try:
            proc = psutil.Process(pid)
            with proc.oneshot():
                name = proc.name()
                times = proc.cpu_times()
                rss = proc.memory_info().rss
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess) as e:
            raise ProcessUnavailable(pid, _describe(e)) from e
        return ProcessReading(
            name=name or str(pid),
            cpu_ticks=_to_ticks(times.user + times.system),
            resident_kb=rss / 1024,
        )

    def system_cpu_ticks(self) -> CpuTicks:
        times = psutil.cpu_times()
        total = sum(getattr(times, name, 0.0) for name in _TOTAL_FIELDS)
        idle = sum(getattr(times, name, 0.0) for name in _IDLE_FIELDS)
        return CpuTicks(total=_to_ticks(total), idle=_to_ticks(idle))

    def system_memory_kb(self) -> MemoryKB:
        mem = psutil.virtual_memory()
        return MemoryKB(total=mem.total / 1024, available=mem.available / 1024)

    def send_termination_signal(self, pid: int) -> KillResult:
        """Send SIGTERM (TerminateProcess on Windows) to pid."""
        try:
            psutil.Process(pid).terminate()
        except psutil.Error as e:
            return KillResult(pid=pid, ok=False, reason=_describe(e))
        except (OSError, OverflowError) as e:
            return KillResult(pid=pid, ok=False, reason=getattr(e, "strerror", None) or str(e))
        return KillResult(pid=pid, ok=True)
