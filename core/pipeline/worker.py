"""Single-thread frame worker with keep-only-latest backpressure.

Frames submitted while the worker is busy replace any frame still waiting,
so at most one frame is pending and the capture thread never blocks.
"""

from __future__ import annotations

from collections.abc import Callable
from threading import Condition, Thread
from typing import Generic, TypeVar

from loguru import logger

T = TypeVar("T")


class LatestFrameWorker(Generic[T]):
    """Processes submitted items one at a time on a dedicated thread.

    Usage:
        >>> worker = LatestFrameWorker(pipeline.process)
        >>> worker.start()
        >>> worker.submit(raw_frame)   # from the capture thread
        >>> worker.stop()
    """

    def __init__(self, handler: Callable[[T], object], name: str = "frame-worker") -> None:
        self._handler = handler
        self._name = name
        self._cond = Condition()
        self._pending: T | None = None
        self._has_pending = False
        self._running = False
        self._thread: Thread | None = None
        self._error: BaseException | None = None
        self._submitted = 0
        self._dropped = 0
        self._handled = 0

    @property
    def is_running(self) -> bool:
        with self._cond:
            return self._running

    @property
    def frames_submitted(self) -> int:
        with self._cond:
            return self._submitted

    @property
    def frames_dropped(self) -> int:
        """Frames replaced by a newer frame before they were handled."""
        with self._cond:
            return self._dropped

    @property
    def frames_handled(self) -> int:
        with self._cond:
            return self._handled

    def start(self) -> None:
        with self._cond:
            if self._running:
                return
            self._running = True
            self._error = None
            self._pending = None
            self._has_pending = False
        self._thread = Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        logger.debug(f"Worker '{self._name}' started")

    def submit(self, item: T) -> bool:
        """Offer an item to the worker without blocking.

        Returns:
            False if the worker is not running and the item was discarded.
        """
        with self._cond:
            if not self._running:
                return False
            self._submitted += 1
            if self._has_pending:
                self._dropped += 1
            self._pending = item
            self._has_pending = True
            self._cond.notify()
        return True

    def stop(self, timeout: float | None = 5.0) -> bool:
        """Stop the worker and wait for the current item to finish.

        Returns:
            False if the thread was still busy with an item after ``timeout``.

        Raises:
            Exception: The error that stopped the worker, if any.
        """
        with self._cond:
            self._running = False
            self._pending = None
            self._has_pending = False
            self._cond.notify_all()

        stopped = True
        thread, self._thread = self._thread, None
        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                stopped = False
                logger.warning(f"Worker '{self._name}' did not stop within {timeout}s")
        logger.debug(
            f"Worker '{self._name}' stopped | handled={self._handled} dropped={self._dropped}"
        )

        error, self._error = self._error, None
        if error is not None:
            raise error
        return stopped

    def _run(self) -> None:
        while True:
            with self._cond:
                while self._running and not self._has_pending:
                    self._cond.wait()
                if not self._running:
                    return
                item = self._pending
                self._pending = None
                self._has_pending = False

            try:
                self._handler(item)
            except Exception as e:
                logger.exception(f"Worker '{self._name}' failed; stopping")
                with self._cond:
                    self._error = e
                    self._running = False
                return

            with self._cond:
                self._handled += 1
