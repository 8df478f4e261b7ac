"""
Sarkari Pulse — Run Notifier
In-process publish/subscribe for scrape-run lifecycle events:
  run-started, run-progress, run-completed
Subscribers are plain callables; transport (WebSocket relay) lives in api.events.
"""

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from sarkari_pulse.utils.logger import logger


RUN_STARTED = "run-started"
RUN_PROGRESS = "run-progress"
RUN_COMPLETED = "run-completed"

Subscriber = Callable[[dict], None]


def build_event(event: str, data: dict[str, Any]) -> dict:
    return {
        "event": event,
        "data": data,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class RunNotifier:
    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: str, data: dict[str, Any]) -> dict:
        message = build_event(event, data)
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(message)
            except Exception as e:
                # A broken listener must not abort the scrape run.
                logger.warning(f"Notifier subscriber failed on '{event}': {e}")
        logger.debug(f"📣 {event} -> {len(subscribers)} subscribers")
        return message


# --- Singleton ---
_notifier: Optional[RunNotifier] = None


def get_notifier() -> RunNotifier:
    global _notifier
    if _notifier is None:
        _notifier = RunNotifier()
    return _notifier
