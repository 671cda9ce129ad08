# =============================================================================
# oncogest_core/services/search_proxy.py
# Debounced Medication Search
# =============================================================================
"""
MedicationSearch - turns keystrokes into bounded catalog lookups.

Each keystroke restarts a 300 ms timer; only when typing pauses does one
query reach the store. Queries shorter than two characters clear the results
without touching the store. Store errors are logged and show up as an empty
result list.

Results are delivered together with the query that produced them. A result
for a query that is no longer current is dropped.
"""

from __future__ import annotations
import threading
from typing import Callable, List, Optional, Protocol

from oncogest_core.errors import error_boundary
from oncogest_core.logging import get_logger
from oncogest_core.models import Medication

logger = get_logger(__name__)

DEBOUNCE_SECONDS = 0.3
MIN_QUERY_LENGTH = 2
RESULT_LIMIT = 20

ResultsCallback = Callable[[str, List[Medication]], None]


class Timer(Protocol):
    def start(self) -> None: ...
    def cancel(self) -> None: ...


class MedicationSource(Protocol):
    def search_medications(self, text: str, limit: int = ...) -> List[Medication]: ...


def _thread_timer(interval: float, function: Callable[[], None]) -> Timer:
    timer = threading.Timer(interval, function)
    timer.daemon = True
    return timer


class MedicationSearch:
    """
    Debounced search over the medication catalog.

    Usage:
        search = MedicationSearch(gateway, on_results=lambda q, meds: ...)
        search.set_query("cis")      # dispatched 300 ms after the last call
        search.results               # latest matches for search.query
    """

    def __init__(
        self,
        source: MedicationSource,
        on_results: Optional[ResultsCallback] = None,
        delay: float = DEBOUNCE_SECONDS,
        limit: int = RESULT_LIMIT,
        timer_factory: Callable[[float, Callable[[], None]], Timer] = _thread_timer,
    ):
        self.source = source
        self.on_results = on_results
        self.delay = delay
        self.limit = limit
        self._timer_factory = timer_factory
        self._lock = threading.RLock()
        self._pending: Optional[Timer] = None
        self._query = ""
        self._results: List[Medication] = []

    @property
    def query(self) -> str:
        return self._query

    @property
    def results(self) -> List[Medication]:
        return list(self._results)

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def set_query(self, text: str) -> None:
        """Record a keystroke; cancels any pending dispatch."""
        with self._lock:
            self._query = text
            self._cancel_pending()

            if len(text.strip()) < MIN_QUERY_LENGTH:
                self._publish(text, [])
                return

            timer = self._timer_factory(self.delay, lambda: self._dispatch(text, timer))
            self._pending = timer
            timer.start()

    def clear(self) -> None:
        """Reset query and results, e.g. after a selection."""
        self.set_query("")

    def cancel(self) -> None:
        with self._lock:
            self._cancel_pending()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _dispatch(self, text: str, timer: Timer) -> None:
        with self._lock:
            if self._pending is not timer:
                return
            self._pending = None

        matches = self.search_now(text)

        with self._lock:
            if text != self._query:
                logger.debug(f"Dropping stale results for {text!r}")
                return
            self._publish(text, matches)

    def _publish(self, text: str, matches: List[Medication]) -> None:
        self._results = matches
        if self.on_results is not None:
            self.on_results(text, list(matches))

    @error_boundary(default_return=[])
    def search_now(self, text: str) -> List[Medication]:
        """Run one lookup immediately, without debounce."""
        text = text.strip()
        if len(text) < MIN_QUERY_LENGTH:
            return []
        return self.source.search_medications(text, limit=self.limit)
