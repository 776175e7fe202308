"""Shared test fixtures for smartmon."""

from dataclasses import dataclass, field

import pytest

from smartmon.models import Band
from smartmon.session import Frame
from smartmon.sources import CpuTicks, KillResult, MemoryKB, ProcessReading, ProcessUnavailable


@dataclass
class FakeProcess:
    """Scripted process as seen by FakeSource."""

    name: str
    ticks: int = 0
    resident_kb: float = 0.0
    readable: bool = True


class FakeSource:
    """ProcessSource with counters set directly by the test."""

    def __init__(self, memory_total_kb: float = 1000.0, memory_available_kb: float = 500.0):
        self.processes: dict[int, FakeProcess] = {}
        self.cpu = CpuTicks(total=0, idle=0)
        self.memory = MemoryKB(total=memory_total_kb, available=memory_available_kb)
        self.killed: list[int] = []
        self.kill_ok = True
        self.kill_reason = "Operation not permitted"

    def add(self, pid: int, name: str, ticks: int = 0, resident_kb: float = 0.0) -> None:
        self.processes[pid] = FakeProcess(name=name, ticks=ticks, resident_kb=resident_kb)

    def set_cpu(self, total: int, idle: int = 0) -> None:
        self.cpu = CpuTicks(total=total, idle=idle)

    def list_pids(self) -> list[int]:
        return list(self.processes)

    def _get(self, pid: int) -> FakeProcess:
        proc = self.processes.get(pid)
        if proc is None or not proc.readable:
            raise ProcessUnavailable(pid, "No such process")
        return proc

    def process_name(self, pid: int) -> str:
        return self._get(pid).name

    def process_cpu_ticks(self, pid: int) -> int:
        return self._get(pid).ticks

    def process_resident_kb(self, pid: int) -> float:
        return self._get(pid).resident_kb

    def read_process(self, pid: int) -> ProcessReading:
        proc = self._get(pid)
        return ProcessReading(name=proc.name, cpu_ticks=proc.ticks, resident_kb=proc.resident_kb)

    def system_cpu_ticks(self) -> CpuTicks:
        return self.cpu

    def system_memory_kb(self) -> MemoryKB:
        return self.memory

    def send_termination_signal(self, pid: int) -> KillResult:
        self.killed.append(pid)
        if self.kill_ok:
            return KillResult(pid=pid, ok=True)
        return KillResult(pid=pid, ok=False, reason=self.kill_reason)


@dataclass
class RecordingDisplay:
    """Display that records calls and feeds scripted keys."""

    keys: list[str] = field(default_factory=list)
    frames: list[Frame] = field(default_factory=list)
    statuses: list[tuple[str, Band]] = field(default_factory=list)
    kill_prompts: int = 0
    self_tests: int = 0

    def draw(self, frame: Frame) -> None:
        self.frames.append(frame)

    def poll_key(self) -> str | None:
        if self.keys:
            return self.keys.pop(0)
        return None

    def request_kill_input(self) -> None:
        self.kill_prompts += 1

    def show_self_test(self) -> None:
        self.self_tests += 1

    def show_status(self, message: str, band: Band) -> None:
        self.statuses.append((message, band))


@pytest.fixture
def source() -> FakeSource:
    """Fake OS source with no processes."""
    return FakeSource()


@pytest.fixture
def display() -> RecordingDisplay:
    """Recording display with no pending keys."""
    return RecordingDisplay()
