"""Incremental metrics sampling engine for smartmon."""

from dataclasses import dataclass, field

import structlog

from smartmon.models import ProcessSample, SampleResult
from smartmon.sources import CpuTicks, ProcessSource, ProcessUnavailable

log = structlog.get_logger()


@dataclass(slots=True)
class SystemSnapshot:
    """Previous counter readings used to compute per-process deltas."""

    previous_total_ticks: int = 0
    previous_process_ticks: dict[int, int] = field(default_factory=dict)


@dataclass(slots=True)
class CpuCounters:
    """Previous idle/total pair for the system-wide busy percentage.

    Kept apart from SystemSnapshot: the aggregate figure comes from the
    idle counters, not from summing process deltas, so the two diverge.
    """

    previous_idle: int = 0
    previous_total: int = 0

    def update(self, ticks: CpuTicks) -> float:
        """Store the new reading and return the busy percentage since the last one."""
        d_total = ticks.total - self.previous_total
        d_idle = ticks.idle - self.previous_idle
        self.previous_idle = ticks.idle
        self.previous_total = ticks.total
        if d_total <= 0:
            return 0.0
        d_idle = min(max(d_idle, 0), d_total)
        return (d_total - d_idle) / d_total * 100.0


class Sampler:
    """
    Converts cumulative OS counters into per-interval utilization.

    Each call to sample() reads the current counters from the source,
    computes deltas against the stored snapshot and replaces the snapshot.
    Processes that vanish mid-read are skipped.
    """

    def __init__(self, source: ProcessSource) -> None:
        """
        Initialize the Sampler.

        Args:
            source: Operating system data source to read counters from.
        """
        self._source = source
        self.snapshot = SystemSnapshot()
        self.cpu_counters = CpuCounters()

    def prime(self) -> None:
        """Seed the total-tick baselines so the first sample covers a real interval."""
        ticks = self._source.system_cpu_ticks()
        self.snapshot.previous_total_ticks = ticks.total
        self.cpu_counters.previous_total = ticks.total
        self.cpu_counters.previous_idle = ticks.idle

    def sample(self) -> SampleResult:
        """Take one sample of every live process plus the system aggregates."""
        ticks = self._source.system_cpu_ticks()
        cpu_percent = self.cpu_counters.update(ticks)
        memory = self._source.system_memory_kb()
        memory_percent = _percent(memory.total - memory.available, memory.total)

        processes = self._collect_processes(ticks.total, memory.total)
        return SampleResult(
            processes=processes,
            cpu_percent=cpu_percent,
            memory_percent=memory_percent,
        )

    def _collect_processes(self, total_now: int, memory_total_kb: float) -> list[ProcessSample]:
        snapshot = self.snapshot
        total_delta = max(total_now - snapshot.previous_total_ticks, 1)
        previous = snapshot.previous_process_ticks
        current: dict[int, int] = {}
        processes: list[ProcessSample] = []
        skipped = 0

        for pid in self._source.list_pids():
            try:
                reading = self._source.read_process(pid)
            except ProcessUnavailable:
                skipped += 1
                continue

            cur = reading.cpu_ticks
            prev = previous.get(pid, cur)
            if cur < prev:
                log.debug("cpu counter went backwards", pid=pid, previous=prev, current=cur)
            delta = max(cur - prev, 0)
            current[pid] = cur

            processes.append(
                ProcessSample(
                    pid=pid,
                    name=reading.name,
                    cpu_percent=delta / total_delta * 100.0,
                    memory_percent=_percent(reading.resident_kb, memory_total_kb),
                )
            )

        # Rebuilt, never merged: a recycled pid must not inherit a dead baseline.
        snapshot.previous_process_ticks = current
        snapshot.previous_total_ticks = total_now

        if skipped:
            log.debug("skipped unavailable processes", count=skipped)
        return processes


def _percent(part: float, whole: float) -> float:
    if whole <= 0:
        return 0.0
    return part / whole * 100.0
