"""Data models for smartmon."""

from dataclasses import dataclass
from enum import Enum

# Band lower bounds (inclusive). Double as the alert thresholds.
CPU_MEDIUM = 25.0
CPU_HIGH = 70.0
MEM_MEDIUM = 4.0
MEM_HIGH = 15.0


class Band(Enum):
    """Coloring band for a utilization value."""

    NORMAL = "green"
    MEDIUM = "yellow"
    HIGH = "red"


def cpu_band(value: float) -> Band:
    """Return the band a CPU percentage falls into."""
    if value >= CPU_HIGH:
        return Band.HIGH
    if value >= CPU_MEDIUM:
        return Band.MEDIUM
    return Band.NORMAL


def memory_band(value: float) -> Band:
    """Return the band a memory percentage falls into."""
    if value >= MEM_HIGH:
        return Band.HIGH
    if value >= MEM_MEDIUM:
        return Band.MEDIUM
    return Band.NORMAL


@dataclass(slots=True, frozen=True)
class ProcessSample:
    """Immutable utilization record of one process for one tick."""

    pid: int
    name: str
    cpu_percent: float  # share of the whole-system tick delta, not per core
    memory_percent: float

    @property
    def is_high(self) -> bool:
        """True if either metric is in the high band."""
        return (
            cpu_band(self.cpu_percent) is Band.HIGH
            or memory_band(self.memory_percent) is Band.HIGH
        )


@dataclass(slots=True, frozen=True)
class SampleResult:
    """Output of one sampler tick."""

    processes: list[ProcessSample]
    cpu_percent: float
    memory_percent: float
