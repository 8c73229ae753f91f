"""
IndexWatcher - detects when the index must be rebuilt.

A rebuild is needed when:
- the raw config file content differs from the last observed content, or
- the number of immediate subdirectories under any watched root changed
  (an app was installed or removed).

Filesystem notifications come from a watchdog observer on the config
directory and each root (non-recursive). Bursts of events are collapsed by a
debounce timer before the actual comparison runs in check().
"""
import logging
import os
import threading
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from quicklaunch.Config import read_raw_config


def count_subdirectories(root: Path) -> int:
    """Number of immediate subdirectories, -1 if root cannot be read."""
    try:
        with os.scandir(root) as it:
            return sum(1 for entry in it if entry.is_dir(follow_symlinks=False))
    except OSError:
        return -1


def create_observer(use_polling: bool):
    """Create a watchdog observer based on configuration."""
    if use_polling:
        from watchdog.observers.polling import PollingObserver
        logging.info("IndexWatcher: using polling observer for filesystem events")
        return PollingObserver()
    return Observer()


class _DebouncedHandler(FileSystemEventHandler):

    def __init__(self, watcher: 'IndexWatcher') -> None:
        super().__init__()
        self._watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in ('opened', 'closed_no_write'):
            return
        self._watcher.schedule_check()


class IndexWatcher:
    """Watches the config file and index roots and reports changes.

    Args:
        config_path: Path to the config file
        roots: Directories whose subdirectory count is tracked
        on_change: Called (from a timer thread) when a rebuild is needed
        debounce: Seconds to wait after the last event before checking
        use_polling: Use watchdog's PollingObserver (network drives, WSL)
        verbose: Enable verbose logging
    """

    def __init__(self, config_path: Path, roots: Iterable[Path],
                 on_change: Callable[[], None], debounce: float = 0.25,
                 use_polling: bool = False, verbose: bool = False) -> None:
        self.config_path = config_path
        self.roots = [Path(r) for r in roots]
        self.on_change = on_change
        self.debounce = debounce
        self.use_polling = use_polling
        self.verbose = verbose

        self._lock = threading.Lock()
        # start/stop/reset_roots may come from the reload worker and the main thread
        self._lifecycle = threading.RLock()
        self._timer: Optional[threading.Timer] = None
        self._observer = None

        self._last_config = read_raw_config(config_path)
        self._last_counts: Dict[Path, int] = {r: count_subdirectories(r) for r in self.roots}

    def start(self) -> None:
        with self._lifecycle:
            self._start()

    def _start(self) -> None:
        if self._observer is not None:
            return

        observer = create_observer(self.use_polling)
        handler = _DebouncedHandler(self)
        watched = set()
        for directory in [self.config_path.parent, *self.roots]:
            if directory in watched or not directory.is_dir():
                continue
            try:
                observer.schedule(handler, str(directory), recursive=False)
                watched.add(directory)
            except OSError as e:
                logging.warning(f"IndexWatcher: cannot watch {directory}: {e}")

        observer.daemon = True
        observer.start()
        self._observer = observer

        if self.verbose:
            logging.info(f"IndexWatcher: started, watching {len(watched)} directories")

    def stop(self) -> None:
        with self._lifecycle:
            self._stop()

    def _stop(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=2.0)
        self._observer = None

        if self.verbose:
            logging.info("IndexWatcher: stopped")

    def schedule_check(self) -> None:
        """Restart the debounce timer; check() runs once events settle."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
        if self.check():
            self.on_change()

    def check(self) -> bool:
        """Compare current state with the last observation.

        Returns:
            True if the config content or any root's subdirectory count
            changed since the previous check. The new state becomes the
            baseline either way.
        """
        changed = False

        current_config = read_raw_config(self.config_path)
        if current_config != self._last_config:
            self._last_config = current_config
            changed = True
            logging.info("IndexWatcher: config file changed")

        for root in self.roots:
            count = count_subdirectories(root)
            if count != self._last_counts.get(root):
                if self.verbose:
                    logging.info(f"IndexWatcher: {root} subdirectories "
                                 f"{self._last_counts.get(root)} -> {count}")
                self._last_counts[root] = count
                changed = True

        return changed

    def reset_roots(self, roots: Iterable[Path]) -> None:
        """Track a new set of roots (after a config reload).

        Restarts the observer if it was running so new roots are watched.
        """
        with self._lifecycle:
            was_running = self._observer is not None
            if was_running:
                self._stop()
            self.roots = [Path(r) for r in roots]
            self._last_counts = {r: count_subdirectories(r) for r in self.roots}
            self._last_config = read_raw_config(self.config_path)
            if was_running:
                self._start()
