"""
Shared test fixtures.

Provides: a manual scheduler for deterministic debounce tests, stores and
coordinators wired to it, and sample DSL texts.
"""

import pytest

from flowsync.backend.graph_store import GraphStore
from flowsync.backend.sync import SyncCoordinator


class FakeHandle:
    def __init__(self, due, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when the test advances it."""

    def __init__(self):
        self.now = 0.0
        self.handles: list[FakeHandle] = []

    def call_later(self, delay, callback):
        handle = FakeHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]

    def advance(self, seconds: float):
        self.now += seconds
        due = [h for h in self.pending if h.due <= self.now]
        for handle in sorted(due, key=lambda h: h.due):
            # Firing consumes the handle
            handle.cancelled = True
            handle.callback()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def store():
    return GraphStore()


@pytest.fixture
def coordinator(store, scheduler):
    return SyncCoordinator(store, scheduler, debounce_ms=300)


@pytest.fixture
def sample_text():
    return (
        "flowchart TD\n"
        "    A((Start)) --> B[Process]\n"
        "    B -->|ok| C{Check}\n"
        "    C -.-> D([Done])\n"
    )
