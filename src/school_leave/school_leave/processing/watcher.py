from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable, Dict, Optional, Sequence, Tuple

from ..applications.model import LeaveApplication
from ..applications.service import LeaveApplicationService
from ..core.constants import DEFAULT_POLL_INTERVAL_SECONDS, WATCH_LOOKBACK_DAYS

logger = logging.getLogger(__name__)

Callback = Callable[[Sequence[LeaveApplication]], object]


class ApprovedLeaveWatcher:
    """Polls for approved, unprocessed applications and notifies subscribers.

    A subscription is either for one applicant or, with ``applicant_id=None``,
    for everybody. One background thread serves all subscriptions; it starts
    with the first one and stops when the last is cancelled.
    """

    def __init__(
        self,
        applications: LeaveApplicationService,
        *,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        lookback_days: int = WATCH_LOOKBACK_DAYS,
    ):
        self._applications = applications
        self._interval = float(interval_seconds)
        self._lookback_days = int(lookback_days)
        self._lock = threading.Lock()
        self._subs: Dict[int, Tuple[Optional[str], Callback]] = {}
        self._tokens = itertools.count(1)
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subs)

    def subscribe(self, applicant_id: Optional[str], callback: Callback, *, autostart: bool = True) -> Callable[[], None]:
        """Register ``callback``; the returned function cancels the subscription."""
        with self._lock:
            token = next(self._tokens)
            self._subs[token] = (applicant_id, callback)
        if autostart:
            self.start()

        def unsubscribe() -> None:
            with self._lock:
                self._subs.pop(token, None)
            self._halt(only_if_idle=True)

        return unsubscribe

    def poll_once(self) -> int:
        """Run one discovery cycle; returns how many callbacks fired."""
        with self._lock:
            subs = list(self._subs.values())

        fired = 0
        for applicant_id, callback in subs:
            try:
                found = self._applications.list_awaiting_processing(
                    applicant_id=applicant_id, lookback_days=self._lookback_days
                )
                if found:
                    callback(found)
                    fired += 1
            except Exception:
                logger.exception("Approved-leave watcher callback failed (applicant=%s)", applicant_id or "*")
        return fired

    def start(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stop_event,), name="approved-leave-watcher", daemon=True
            )
            self._thread.start()
        logger.debug("Approved-leave watcher started (every %ss)", self._interval)

    def stop(self) -> None:
        self._halt(only_if_idle=False)

    def _halt(self, *, only_if_idle: bool) -> None:
        with self._lock:
            # A subscription added since the last cancel keeps the thread alive.
            if only_if_idle and self._subs:
                return
            thread, self._thread = self._thread, None
            self._stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._interval + 1)
        logger.debug("Approved-leave watcher stopped")

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval):
            self.poll_once()
