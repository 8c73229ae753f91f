import ctypes
import logging
import shutil
import subprocess
import sys
from typing import Any, List, Optional

_FRONTMOST_APP_SCRIPT = ('tell application "System Events" to get name of '
                         'first application process whose frontmost is true')


class FocusTracker:
    """Captures and restores the externally focused window.

    The handle is a window handle on Windows, an X11 window id (via xdotool)
    on Linux and an application name on macOS. The caller owns the handle;
    this class keeps no state between calls.
    """

    def __init__(self, platform: Optional[str] = None, verbose: bool = False) -> None:
        self._platform = platform or sys.platform
        self._verbose = verbose

    def capture_frontmost(self) -> Optional[Any]:
        if self._platform == 'win32':
            handle = ctypes.windll.user32.GetForegroundWindow() or None
        elif self._platform == 'darwin':
            handle = self._run(["osascript", "-e", _FRONTMOST_APP_SCRIPT])
        elif shutil.which("xdotool"):
            handle = self._run(["xdotool", "getactivewindow"])
        else:
            handle = None

        if self._verbose:
            logging.info(f"FocusTracker: captured {handle!r}")
        return handle

    def restore(self, handle: Any) -> bool:
        if handle is None:
            return False

        if self._platform == 'win32':
            result = bool(ctypes.windll.user32.SetForegroundWindow(handle))
        elif self._platform == 'darwin':
            result = self._run(["osascript", "-e", f'tell application "{handle}" to activate']) is not None
        else:
            result = self._run(["xdotool", "windowactivate", str(handle)]) is not None

        if self._verbose:
            logging.info(f"FocusTracker: restore {handle!r} result={result}")
        return result

    def _run(self, command: List[str]) -> Optional[str]:
        """Run a helper command; stripped stdout, or None on failure."""
        try:
            completed = subprocess.run(command, capture_output=True, text=True,
                                       timeout=2, check=True)
        except (OSError, subprocess.SubprocessError) as e:
            logging.debug(f"FocusTracker: {command[0]} failed: {e}")
            return None
        return completed.stdout.strip()
