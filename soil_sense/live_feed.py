"""
Live feed: a single repeating timer driving produce -> persist -> notify.

Timer ticks and direct tick() calls from other threads share one lock, so
readings are generated, stored and delivered strictly one after another.
"""
import logging
import threading
from typing import Callable, List, Optional

import schedule

from .config import LIVE_FEED
from .simulator import SensorReading

log = logging.getLogger(__name__)

Subscriber = Callable[[SensorReading], None]


class LiveFeed:
    """Periodic reading emitter with ordered subscribers."""

    def __init__(self, produce: Callable[[], SensorReading], persist: Callable[[SensorReading], None],
                 interval_ms: int = LIVE_FEED.interval_ms, poll_seconds: float = LIVE_FEED.poll_seconds):
        self.produce = produce
        self.persist = persist
        self.interval_ms = interval_ms
        self.poll_seconds = poll_seconds
        self.subscribers: List[Subscriber] = []
        self._scheduler = schedule.Scheduler()
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._lock = threading.RLock()
        self._tick_lock = threading.RLock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def subscribe(self, callback: Subscriber) -> None:
        self.subscribers.append(callback)

    on_live_data = subscribe

    def tick(self) -> SensorReading:
        """Generate one reading, persist it, then hand it to every subscriber in order."""
        with self._tick_lock:
            reading = self.produce()
            self.persist(reading)
            for callback in list(self.subscribers):
                try:
                    callback(reading)
                except Exception:
                    log.exception(f"Live-data subscriber {callback!r} failed")
            return reading

    def start(self, interval_ms: Optional[int] = None) -> None:
        """(Re)start the feed: emit immediately, then every `interval_ms`."""
        with self._lock:
            self._stop_locked()
            if interval_ms is not None:
                self.interval_ms = interval_ms
            if self.interval_ms <= 0:
                raise ValueError(f"interval_ms must be positive, got {self.interval_ms}")

            self.tick()
            self._scheduler.every(self.interval_ms / 1000.0).seconds.do(self._safe_tick)
            self._stop_event = threading.Event()
            self._thread = threading.Thread(target=self._run_loop, args=(self._stop_event,),
                                            name="soil-live-feed", daemon=True)
            self._thread.start()
            log.info(f"Live feed started ({self.interval_ms} ms)")

    def stop(self) -> None:
        """Cancel the timer. Safe to call when not running."""
        with self._lock:
            self._stop_locked()

    def _stop_locked(self) -> None:
        self._scheduler.clear()
        if self._thread is None:
            return
        self._stop_event.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=5)
        self._thread = None
        log.info("Live feed stopped")

    def _safe_tick(self) -> None:
        try:
            self.tick()
        except Exception:
            log.exception("Live feed tick failed")

    def _run_loop(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            self._scheduler.run_pending()
            stop_event.wait(self.poll_seconds)
