"""Single-writer, latest-value-wins channel.

The worker publishes the alert state here after every frame; the
presentation layer reads the most recent value from its own thread.
Nothing is queued: a reader that falls behind simply sees the newest value.
"""

from __future__ import annotations

from collections.abc import Callable
from threading import Lock
from typing import Generic, TypeVar

from loguru import logger

T = TypeVar("T")


class LatestValue(Generic[T]):
    """Observable cell holding the most recently published value.

    Usage:
        >>> status = LatestValue(AlertState.MONITORING)
        >>> unsubscribe = status.subscribe(print)
        >>> status.publish(AlertState.ALERTING)
        AlertState.ALERTING
        >>> status.get()
        <AlertState.ALERTING: 'alerting'>
    """

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._version = 0
        self._subscribers: list[Callable[[T], None]] = []
        self._lock = Lock()

    @property
    def version(self) -> int:
        """Number of values published so far."""
        with self._lock:
            return self._version

    def get(self) -> T:
        with self._lock:
            return self._value

    def snapshot(self) -> tuple[T, int]:
        """Return the current value together with its version."""
        with self._lock:
            return self._value, self._version

    def publish(self, value: T) -> None:
        """Replace the current value and notify subscribers.

        Subscribers run on the publishing thread, outside the lock.
        """
        with self._lock:
            self._value = value
            self._version += 1
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(value)
            except Exception:
                logger.exception("LatestValue subscriber failed")

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register ``callback`` for future values; returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe
