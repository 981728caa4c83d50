"""
Sync Coordinator - Keeps the DSL text and the graph store consistent.

Two event sources feed the coordinator: "text changed" (the text editor)
and "graph changed" (the store's change callbacks). Each sync cycle runs
exactly one direction:

    IDLE --text_changed--> SYNCING_FROM_TEXT --parse+layout+replace--> IDLE
    IDLE --graph change--> DEBOUNCING --timer--> SYNCING_FROM_GRAPH
                                        --serialize+text replace--> IDLE

Graph changes caused by the coordinator's own replace (while in
SYNCING_FROM_TEXT) are counted and ignored, and text the coordinator wrote
itself is recognized when the editor echoes it back. Neither direction can
therefore trigger the other.

Everything runs on one thread. The debounce timer is the only deferred
work and the only thing that can be cancelled.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional, Protocol

from ..core.parser import parse, ParseResult
from ..core.serializer import serialize
from .graph_store import GraphStore, GraphChange

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 300


class SyncState(str, Enum):
    IDLE = "idle"
    SYNCING_FROM_TEXT = "syncing_from_text"
    SYNCING_FROM_GRAPH = "syncing_from_graph"
    DEBOUNCING = "debouncing"


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Something that can run a callback later, like `loop.call_later`."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable: ...


class AsyncioScheduler:
    """Schedules on the event loop running at the time of the call."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class SyncCoordinator:
    """
    Arbitrates between text-originated and graph-originated updates.

    Text edits are applied immediately. Graph edits are coalesced with a
    trailing-edge debounce, except direction changes which are written out
    at once. Position-only changes never touch the text.
    """

    def __init__(
        self,
        store: GraphStore,
        scheduler: Optional[Scheduler] = None,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS
    ):
        self._store = store
        self._scheduler = scheduler or AsyncioScheduler()
        self._debounce = debounce_ms / 1000
        self._state = SyncState.IDLE
        self._pending: Optional[Cancellable] = None
        self._text = ""
        self._last_error: Optional[ParseResult] = None
        self._serialize_count = 0
        self._suppressed_changes = 0
        self._on_text_replaced_callbacks: list[Callable[[str], None]] = []

        store.on_change(self._on_graph_change)

    # --- Properties ---

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def text(self) -> str:
        """The text as last seen or written by the coordinator."""
        return self._text

    @property
    def last_error(self) -> Optional[ParseResult]:
        """The failed parse of the current text, if it did not parse."""
        return self._last_error

    @property
    def serialize_count(self) -> int:
        return self._serialize_count

    @property
    def suppressed_changes(self) -> int:
        """Graph changes ignored because the coordinator caused them."""
        return self._suppressed_changes

    @property
    def store(self) -> GraphStore:
        return self._store

    # --- Text Side ---

    def on_text_replaced(self, callback: Callable[[str], None]):
        """Register a callback that receives text produced from the graph."""
        self._on_text_replaced_callbacks.append(callback)

    def text_changed(self, text: str) -> Optional[ParseResult]:
        """
        Apply an edit from the text editor.

        Returns the parse result, or None when the text is what the
        coordinator already has (for instance its own write echoed back).
        A failed parse leaves the graph untouched.
        """
        if text == self._text:
            return None

        if self._pending is not None:
            # The author is typing; their text wins over an unwritten graph edit
            logger.debug("Text edit supersedes pending graph sync")
            self._cancel_pending()

        self._text = text
        self._state = SyncState.SYNCING_FROM_TEXT
        try:
            result = parse(text)
            if result.ok:
                document = result.document
                self._store.replace_all(
                    document.node_list(), document.edges,
                    document.direction, document.type
                )
                self._last_error = None
            else:
                logger.info("Keeping last good graph: %s", result.message)
                self._last_error = result
        finally:
            self._state = SyncState.IDLE
        return result

    # --- Graph Side ---

    def _on_graph_change(self, change: GraphChange):
        if self._state == SyncState.SYNCING_FROM_TEXT:
            self._suppressed_changes += 1
            return
        if self._state == SyncState.SYNCING_FROM_GRAPH:
            return
        if change in (GraphChange.SELECTION, GraphChange.POSITION):
            return
        if change == GraphChange.DIRECTION:
            self._cancel_pending()
            self._sync_from_graph()
            return
        self._schedule()

    def _schedule(self):
        self._cancel_pending()
        self._pending = self._scheduler.call_later(self._debounce, self._on_timer)
        self._state = SyncState.DEBOUNCING

    def _cancel_pending(self):
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        if self._state == SyncState.DEBOUNCING:
            self._state = SyncState.IDLE

    def _on_timer(self):
        self._pending = None
        self._sync_from_graph()

    def _sync_from_graph(self):
        self._state = SyncState.SYNCING_FROM_GRAPH
        try:
            text = serialize(self._store.document)
            self._serialize_count += 1
            if text != self._text:
                self._text = text
                self._last_error = None
                for callback in self._on_text_replaced_callbacks:
                    callback(text)
        finally:
            self._state = SyncState.IDLE

    def flush(self) -> bool:
        """Run a pending graph-to-text sync now. Returns True if one ran."""
        if self._pending is None:
            return False
        self._cancel_pending()
        self._sync_from_graph()
        return True

    def cancel(self):
        """Drop a pending graph-to-text sync without running it."""
        self._cancel_pending()

    def get_state(self) -> dict:
        """Sync status for API responses."""
        return {
            "state": self._state.value,
            "pending": self._pending is not None,
            "serialize_count": self._serialize_count,
            "suppressed_changes": self._suppressed_changes,
            "error": self._last_error.to_dict() if self._last_error else None,
        }
