"""Publish/subscribe channel for device events, and the periodic poller."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

logger = logging.getLogger(__name__)

POLL_INTERVAL_S = 5.0


class EventKind(str, Enum):
    TEMPERATURE_RECEIVED = "temperatureReceived"
    PRESSURE_RECEIVED = "pressureReceived"
    SPEED_RECEIVED = "speedReceived"
    INCLINE_RECEIVED = "inclineReceived"
    SERIAL_ERROR = "serialError"


@dataclass(frozen=True)
class Event:
    """A decoded reading or an error message."""

    kind: EventKind
    value: Union[float, int, None] = None
    message: Optional[str] = None


Listener = Callable[[Event], None]


class Subscription:
    """Handle returned by :meth:`EventRouter.subscribe`.

    ``remove()`` may be called any number of times. The handle also works
    as a context manager that removes the listener on exit.
    """

    def __init__(self, router: EventRouter, kind: EventKind, listener: Listener) -> None:
        self._router = router
        self.kind = kind
        self.listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def remove(self) -> None:
        if self._active:
            self._active = False
            self._router._unsubscribe(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.remove()


class EventRouter:
    """Fans events out to the listeners registered for their kind.

    Listeners run on the publishing thread, usually the serial reader
    thread. A listener that raises is logged and skipped.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: dict[EventKind, list[Subscription]] = {
            kind: [] for kind in EventKind
        }

    def subscribe(self, kind: Union[EventKind, str], listener: Listener) -> Subscription:
        kind = EventKind(kind)
        subscription = Subscription(self, kind, listener)
        with self._lock:
            self._subscriptions[kind].append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subs = self._subscriptions[subscription.kind]
            if subscription in subs:
                subs.remove(subscription)

    def remove_listeners(self, kind: Union[EventKind, str, None] = None) -> None:
        """Drop every listener of one kind, or of all kinds."""
        kinds = list(EventKind) if kind is None else [EventKind(kind)]
        with self._lock:
            for k in kinds:
                for subscription in self._subscriptions[k]:
                    subscription._active = False
                self._subscriptions[k] = []

    def listener_count(self, kind: Union[EventKind, str]) -> int:
        with self._lock:
            return len(self._subscriptions[EventKind(kind)])

    def publish(self, event: Event) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions[event.kind])
        for subscription in subscriptions:
            if not subscription.active:
                continue
            try:
                subscription.listener(event)
            except Exception:
                logger.exception("Listener for %s failed", event.kind.value)

    def publish_error(self, message: str) -> None:
        self.publish(Event(EventKind.SERIAL_ERROR, message=message))


class Poller:
    """Calls ``action`` every ``interval`` seconds on a daemon thread.

    ``stop()`` waits for a running ``action`` to finish; after it returns
    ``action`` is never called again. A stopped poller can be started again.
    """

    def __init__(self, action: Callable[[], None], interval: float = POLL_INTERVAL_S) -> None:
        if interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {interval}")
        self._action = action
        self._interval = interval
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._thread is not None

    def start(self) -> None:
        with self._lock:
            if self._thread is not None:
                return
            self._stop = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._stop,), name="poller", daemon=True
            )
            self._thread.start()

    def stop(self) -> None:
        with self._lock:
            self._stop.set()
            thread = self._thread
            self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def _run(self, stop: threading.Event) -> None:
        while not stop.wait(self._interval):
            with self._lock:
                if stop.is_set():
                    return
                try:
                    self._action()
                except Exception:
                    logger.exception("Poll action failed")
