"""
Shared fakes for detector and monitor tests.

The process table and run flag are scripted against a fake clock whose
sleep() advances time, so polling scenarios run instantly.
"""

import pytest

from core.exceptions import ProcessQueryError
from models.session import ProcessSnapshot, ProcessUsage


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeProcess:
    def __init__(self, pid, name, appear=0.0, exit=None, has_window=False,
                 memory=100 * 1024 * 1024, start_time=None, unreadable_until=None):
        self.pid = pid
        self.name = name
        self.appear = appear
        self.exit = exit
        self.has_window = has_window
        self.memory = memory
        self.start_time = 1_700_000_000.0 + appear if start_time is None else start_time
        self.unreadable_until = unreadable_until

    def alive(self, now):
        return self.appear <= now and (self.exit is None or now < self.exit)


class FakeProcessTable:
    """Processes appear and exit at scripted times, listed in insertion order."""

    def __init__(self, clock, processes=(), usage_errors=()):
        self.clock = clock
        self.processes = list(processes)
        self.usage_errors = set(usage_errors)
        self.snapshot_calls = 0

    def add(self, proc):
        self.processes.append(proc)
        return proc

    def _alive(self):
        now = self.clock.now
        return [
            p for p in self.processes
            if p.alive(now) and (p.unreadable_until is None or now >= p.unreadable_until)
        ]

    def _snap(self, p):
        return ProcessSnapshot(
            pid=p.pid,
            name=p.name,
            path=f"C:\\Games\\{p.name}",
            start_time=p.start_time,
            working_set_bytes=p.memory,
            has_window=p.has_window,
        )

    def snapshot(self):
        self.snapshot_calls += 1
        return [self._snap(p) for p in self._alive()]

    def get(self, pid):
        for p in self._alive():
            if p.pid == pid:
                return self._snap(p)
        return None

    def usage(self, pid):
        if pid in self.usage_errors:
            raise ProcessQueryError(pid, "AccessDenied")
        for p in self._alive():
            if p.pid == pid:
                memory = p.memory(self.clock.now) if callable(p.memory) else p.memory
                return ProcessUsage(
                    pid=pid,
                    name=p.name,
                    runtime_seconds=self.clock.now - p.appear,
                    memory_bytes=memory,
                    cpu_time_seconds=(self.clock.now - p.appear) / 2,
                )
        raise ProcessQueryError(pid, "NoSuchProcess")


class FakeRunFlag:
    """Flag asserted during [on_at, off_at)."""

    def __init__(self, clock, on_at=None, off_at=None):
        self.clock = clock
        self.on_at = on_at
        self.off_at = off_at
        self.checks = 0

    def is_running(self, app_id):
        self.checks += 1
        if self.on_at is None or self.clock.now < self.on_at:
            return False
        return self.off_at is None or self.clock.now < self.off_at


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def table(clock):
    return FakeProcessTable(clock)
