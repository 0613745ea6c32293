"""Progress and completion events for crawl and file jobs."""

import logging
import threading
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, str, dict[str, Any]], None]


class EventPublisher(Protocol):
    """Anything that can broadcast a job event."""

    def publish(self, event: str, job_id: str, payload: dict[str, Any]) -> None: ...


class NullPublisher:
    """Publisher used when nobody listens."""

    def publish(self, event: str, job_id: str, payload: dict[str, Any]) -> None:
        return None


class EventBroadcaster:
    """In-process fan-out of job events to subscribed callables.

    A subscriber that raises is logged and skipped; publishing never fails
    the pipeline.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: str, job_id: str, payload: dict[str, Any]) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event, job_id, payload)
            except Exception as e:
                logger.warning(f"Event subscriber failed for {event} ({job_id}): {e}")


def safe_publish(publisher: EventPublisher, event: str, job_id: str, payload: dict[str, Any]) -> None:
    """Publish without letting a sink failure escape."""
    try:
        publisher.publish(event, job_id, payload)
    except Exception as e:
        logger.warning(f"Failed to publish {event} for {job_id}: {e}")
