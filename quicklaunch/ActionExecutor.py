"""
ActionExecutor - performs the side effect of an activated entry.

Execution is fire-and-forget: processes are spawned detached and never
waited on, and every failure is logged instead of raised. What the window
does afterwards is decided by the state machine, not here.
"""
import io
import logging
import os
import shlex
import shutil
import subprocess
import sys
import webbrowser
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote_plus

import pyperclip
from PIL import Image

from quicklaunch.Config import LauncherConfig
from quicklaunch.index.DirectorySources import parse_desktop_file
from quicklaunch.types import (
    ClipboardImage,
    ClipboardText,
    CopyToClipboard,
    GoogleSearch,
    OpenApplication,
    RunShellCommand,
)


def query_arguments(query: str) -> List[str]:
    """Words of the query after its first space, shell-split."""
    _, _, rest = query.strip().partition(" ")
    try:
        return shlex.split(rest)
    except ValueError:
        # unbalanced quotes
        return rest.split()


class ActionExecutor:
    """Executes actions for the launcher.

    Args:
        platform: sys.platform value, overridable for tests
        verbose: Enable verbose logging
    """

    def __init__(self, platform: Optional[str] = None, verbose: bool = False) -> None:
        self.platform = platform or sys.platform
        self.verbose = verbose

    def execute(self, action, config: LauncherConfig, query: str) -> None:
        """Perform action. Never raises.

        Args:
            action: Action of the activated entry
            config: Current config (search URL)
            query: Raw query text at activation time
        """
        try:
            if isinstance(action, OpenApplication):
                self.open_application(action.path)
            elif isinstance(action, RunShellCommand):
                self.run_shell_command(action.args, query)
            elif isinstance(action, GoogleSearch):
                self.open_search(config.search_url, action.text)
            elif isinstance(action, CopyToClipboard):
                self.copy_to_clipboard(action.content)
            elif self.verbose:
                logging.debug(f"ActionExecutor: nothing to do for {type(action).__name__}")
        except (OSError, ValueError, subprocess.SubprocessError, webbrowser.Error,
                pyperclip.PyperclipException) as e:
            logging.error(f"ActionExecutor: {type(action).__name__} failed: {e}")

    def open_application(self, path: str) -> None:
        logging.info(f"ActionExecutor: opening {path}")
        if self.platform == 'win32':
            os.startfile(path)
        elif self.platform == 'darwin':
            self._spawn(["open", path])
        elif path.endswith(".desktop"):
            self._spawn(self._desktop_command(Path(path)))
        else:
            self._spawn([path])

    def _desktop_command(self, desktop_file: Path) -> List[str]:
        if shutil.which("gtk-launch"):
            return ["gtk-launch", desktop_file.stem]

        info = parse_desktop_file(desktop_file)
        if info is None or not info["exec"]:
            raise OSError(f"no Exec line in {desktop_file}")
        return shlex.split(info["exec"])

    def run_shell_command(self, args: tuple, query: str) -> None:
        command = list(args) + query_arguments(query)
        if not command:
            logging.warning("ActionExecutor: empty shell command")
            return
        logging.info(f"ActionExecutor: running {command}")
        self._spawn(command)

    def open_search(self, search_url: str, text: str) -> None:
        url = search_url.replace("%s", quote_plus(text))
        if self.verbose:
            logging.info(f"ActionExecutor: opening {url}")
        webbrowser.open(url)

    def copy_to_clipboard(self, content) -> None:
        if isinstance(content, ClipboardText):
            pyperclip.copy(content.text)
        elif isinstance(content, ClipboardImage):
            if self.platform != 'win32':
                logging.warning("ActionExecutor: copying images is only supported on Windows")
                return
            set_clipboard_image(content)
        else:
            logging.warning(f"ActionExecutor: cannot copy {type(content).__name__}")

    def _spawn(self, command: List[str]) -> None:
        subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )


def set_clipboard_image(content: ClipboardImage) -> None:
    """Put an RGBA image on the Windows clipboard as CF_DIB."""
    import pywintypes
    import win32clipboard

    image = Image.frombytes("RGBA", (content.width, content.height), content.data)
    with io.BytesIO() as buffer:
        image.convert("RGB").save(buffer, "BMP")
        # CF_DIB is the BMP file without its 14-byte file header
        dib = buffer.getvalue()[14:]

    try:
        win32clipboard.OpenClipboard()
    except pywintypes.error as e:
        raise OSError(f"clipboard is busy: {e}") from e
    try:
        win32clipboard.EmptyClipboard()
        win32clipboard.SetClipboardData(win32clipboard.CF_DIB, dib)
    except pywintypes.error as e:
        raise OSError(f"cannot set clipboard image: {e}") from e
    finally:
        win32clipboard.CloseClipboard()
