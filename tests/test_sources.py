"""Tests for the psutil-backed process source."""

import errno
import multiprocessing
import os
import time
from unittest.mock import patch

import psutil
import pytest

from smartmon.sources import (
    CLOCK_TICKS,
    CpuTicks,
    KillResult,
    MemoryKB,
    ProcessReading,
    ProcessUnavailable,
    PsutilSource,
)


def dummy_worker(duration: float = 30.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


def unused_pid() -> int:
    """Find a pid that is not currently in use."""
    live = set(psutil.pids())
    pid = 4_000_000
    while pid in live:
        pid -= 1
    return pid


@pytest.fixture
def worker():
    p = multiprocessing.Process(target=dummy_worker, args=(30.0,))
    p.start()
    try:
        yield p
    finally:
        if p.is_alive():
            p.terminate()
        p.join(timeout=2.0)


class TestPsutilSource:
    """Tests for PsutilSource against the live system."""

    def test_list_pids_contains_self(self):
        pids = PsutilSource().list_pids()
        assert os.getpid() in pids
        assert all(pid > 0 for pid in pids)

    def test_process_name_of_self(self):
        name = PsutilSource().process_name(os.getpid())
        assert isinstance(name, str)
        assert name

    def test_process_cpu_ticks_of_self(self):
        ticks = PsutilSource().process_cpu_ticks(os.getpid())
        assert isinstance(ticks, int)
        assert ticks >= 0

    def test_process_resident_kb_of_self(self):
        resident = PsutilSource().process_resident_kb(os.getpid())
        assert resident > 0

    def test_read_process_of_self(self):
        reading = PsutilSource().read_process(os.getpid())
        assert isinstance(reading, ProcessReading)
        assert reading.name
        assert reading.cpu_ticks >= 0
        assert reading.resident_kb > 0

    def test_read_process_uses_one_process_handle(self):
        with patch("smartmon.sources.psutil.Process", wraps=psutil.Process) as process:
            PsutilSource().read_process(os.getpid())
        process.assert_called_once_with(os.getpid())

    def test_system_cpu_ticks(self):
        ticks = PsutilSource().system_cpu_ticks()
        assert isinstance(ticks, CpuTicks)
        assert ticks.total > 0
        assert 0 <= ticks.idle <= ticks.total

    def test_system_cpu_ticks_monotonic(self):
        source = PsutilSource()
        first = source.system_cpu_ticks()
        time.sleep(0.05)
        second = source.system_cpu_ticks()
        assert second.total >= first.total

    def test_system_memory_kb(self):
        memory = PsutilSource().system_memory_kb()
        assert isinstance(memory, MemoryKB)
        assert memory.total > 0
        assert 0 <= memory.available <= memory.total

    def test_clock_ticks_positive(self):
        assert CLOCK_TICKS > 0

    @pytest.mark.parametrize(
        "method", ["process_name", "process_cpu_ticks", "process_resident_kb", "read_process"]
    )
    def test_missing_process_raises_unavailable(self, method):
        pid = unused_pid()
        with pytest.raises(ProcessUnavailable) as excinfo:
            getattr(PsutilSource(), method)(pid)
        assert excinfo.value.pid == pid

    def test_terminate_worker(self, worker):
        result = PsutilSource().send_termination_signal(worker.pid)

        assert result == KillResult(pid=worker.pid, ok=True)
        worker.join(timeout=5.0)
        assert not worker.is_alive()

    def test_terminate_missing_process_reports_failure(self):
        pid = unused_pid()
        result = PsutilSource().send_termination_signal(pid)

        assert result.ok is False
        assert result.pid == pid
        assert result.reason == os.strerror(errno.ESRCH)
