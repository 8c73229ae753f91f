"""
ClipboardPoller - reports clipboard changes from a background thread.

The reader prefers an image over text when both are offered. The poller
only forwards content that differs from its own previous read; the
history applies its own duplicate check on top.
"""
import logging
import threading
from typing import Callable, Optional

import pyperclip
from PIL import Image, ImageGrab

from quicklaunch.protocols import ClipboardReader
from quicklaunch.types import ClipboardContent, ClipboardImage, ClipboardText


class SystemClipboardReader:
    """ClipboardReader backed by Pillow's ImageGrab and pyperclip."""

    def __init__(self, verbose: bool = False) -> None:
        self._verbose = verbose

    def read(self) -> Optional[ClipboardContent]:
        image = self._read_image()
        if image is not None:
            return image

        try:
            text = pyperclip.paste()
        except pyperclip.PyperclipException as e:
            if self._verbose:
                logging.debug(f"SystemClipboardReader: text unavailable: {e}")
            return None
        if not text:
            return None
        return ClipboardText(text)

    def _read_image(self) -> Optional[ClipboardImage]:
        try:
            grabbed = ImageGrab.grabclipboard()
        except (OSError, NotImplementedError) as e:
            if self._verbose:
                logging.debug(f"SystemClipboardReader: image unavailable: {e}")
            return None

        # grabclipboard returns a list of file names for copied files
        if not isinstance(grabbed, Image.Image):
            return None

        rgba = grabbed.convert("RGBA")
        return ClipboardImage(width=rgba.width, height=rgba.height, data=rgba.tobytes())


class ClipboardPoller:
    """Polls a ClipboardReader and calls on_change with new content.

    Args:
        reader: Clipboard reader
        on_change: Called from the poller thread with each new content
        interval: Seconds between reads
        verbose: Enable verbose logging
    """

    def __init__(self, reader: ClipboardReader, on_change: Callable[[ClipboardContent], None],
                 interval: float = 0.5, verbose: bool = False) -> None:
        self.reader = reader
        self.on_change = on_change
        self.interval = interval
        self.verbose = verbose

        self._previous: Optional[ClipboardContent] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="ClipboardPoller", daemon=True)
        self._thread.start()
        if self.verbose:
            logging.info(f"ClipboardPoller: started (interval {self.interval}s)")

    def stop(self) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        self._thread.join(timeout=2.0)
        self._thread = None
        if self.verbose:
            logging.info("ClipboardPoller: stopped")

    def poll_once(self) -> bool:
        """Read the clipboard once; returns True if on_change was called."""
        content = self.reader.read()
        if content is None or content == self._previous:
            return False
        self._previous = content
        self.on_change(content)
        return True

    def _run(self) -> None:
        while not self._stop_event.is_set():
            self.poll_once()
            self._stop_event.wait(self.interval)
