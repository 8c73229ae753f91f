import logging
import queue
import threading
from typing import Callable, Optional

from quicklaunch.messages import Message


class MessageChannel:
    """FIFO channel between producer threads and the single consumer.

    Producers call post() from any thread. The consumer either drains the
    queue from the tk main loop (the wakeup callback schedules that with
    root.after) or blocks in run(). Messages are handled one at a time, in
    arrival order, each to completion before the next.

    Args:
        wakeup: Called after every post, from the posting thread
        verbose: Enable verbose logging
    """

    def __init__(self, wakeup: Optional[Callable[[], None]] = None, verbose: bool = False) -> None:
        self._queue: queue.Queue = queue.Queue()
        self._wakeup = wakeup
        self._verbose = verbose
        self._closed = threading.Event()

    def set_wakeup(self, wakeup: Optional[Callable[[], None]]) -> None:
        self._wakeup = wakeup

    def post(self, message: Message) -> None:
        if self._closed.is_set():
            if self._verbose:
                logging.debug(f"MessageChannel: dropped {type(message).__name__} after close")
            return
        self._queue.put(message)
        if self._wakeup is not None:
            self._wakeup()

    def drain(self, handler: Callable[[Message], None]) -> int:
        """Handle every message currently queued, stopping early on close().

        Returns:
            Number of messages handled
        """
        handled = 0
        while not self._closed.is_set():
            try:
                message = self._queue.get_nowait()
            except queue.Empty:
                return handled
            self._dispatch(handler, message)
            handled += 1
        return handled

    def run(self, handler: Callable[[Message], None], poll_timeout: float = 0.1) -> None:
        """Block handling messages until close() is called."""
        while not self._closed.is_set():
            try:
                message = self._queue.get(timeout=poll_timeout)
            except queue.Empty:
                continue
            self._dispatch(handler, message)

    def _dispatch(self, handler: Callable[[Message], None], message: Message) -> None:
        # One failing message must not strand the ones queued behind it
        try:
            handler(message)
        except Exception as e:
            logging.error(
                f"MessageChannel: handler failed on {type(message).__name__}: {e}",
                exc_info=True
            )

    def close(self) -> None:
        self._closed.set()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def pending(self) -> int:
        return self._queue.qsize()
