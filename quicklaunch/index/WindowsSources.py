"""
Windows-only app sources: the uninstall registry and Start Menu shortcuts.

Both ignore the walking semantics of DirectorySource; the registry source
ignores its root entirely and the Start Menu source walks .lnk files.
"""
import logging
import os
from pathlib import Path
from typing import Callable, List, Optional

from quicklaunch.index.DirectorySources import APPLICATION_DESCRIPTION, DirectorySource
from quicklaunch.types import Entry, OpenApplication

UNINSTALL_KEYS = (
    r"SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall",
    r"SOFTWARE\Wow6432Node\Microsoft\Windows\CurrentVersion\Uninstall",
)

START_MENU_PROGRAMS = Path(os.environ.get('ProgramData', r"C:\ProgramData")) / \
    "Microsoft" / "Windows" / "Start Menu" / "Programs"


def display_icon_executable(display_icon: str) -> Optional[str]:
    """Extract the exe path from a DisplayIcon value.

    Values look like ``"C:\\Program Files\\App\\app.exe",0``; the part
    before the first comma is used and must end with .exe.
    """
    exe = display_icon.split(',')[0].strip().strip('"')
    if not exe.lower().endswith(".exe"):
        return None
    return exe


class RegistrySource:
    """Installed programs from the HKLM uninstall keys.

    Args:
        winreg_module: Injected for tests; defaults to the stdlib winreg
        verbose: Enable verbose logging
    """

    def __init__(self, winreg_module=None, verbose: bool = False) -> None:
        self._winreg = winreg_module
        self.verbose = verbose

    def discover(self, root: Path, max_depth: int) -> List[Entry]:
        if self._winreg is None:
            import winreg
            self._winreg = winreg
        entries: List[Entry] = []
        for key_path in UNINSTALL_KEYS:
            try:
                key = self._winreg.OpenKey(self._winreg.HKEY_LOCAL_MACHINE, key_path)
            except OSError as e:
                logging.warning(f"RegistrySource: cannot open {key_path}: {e}")
                continue
            with key:
                entries.extend(self._read_uninstall_key(key))
        return entries

    def _read_uninstall_key(self, key) -> List[Entry]:
        entries: List[Entry] = []
        index = 0
        while True:
            try:
                sub_name = self._winreg.EnumKey(key, index)
            except OSError:
                break
            index += 1

            try:
                with self._winreg.OpenKey(key, sub_name) as sub_key:
                    display_name = self._query(sub_key, "DisplayName")
                    display_icon = self._query(sub_key, "DisplayIcon")
            except OSError:
                continue

            if not display_name or not display_icon:
                continue
            exe = display_icon_executable(display_icon)
            if exe is None:
                continue

            if self.verbose:
                logging.debug(f"RegistrySource: app added {display_name!r}")
            entries.append(Entry(
                name=display_name,
                description=APPLICATION_DESCRIPTION,
                action=OpenApplication(exe),
            ))
        return entries

    def _query(self, key, name: str) -> str:
        try:
            value, _ = self._winreg.QueryValueEx(key, name)
        except OSError:
            return ""
        return str(value) if value is not None else ""


class StartMenuSource(DirectorySource):
    """Start Menu ``.lnk`` shortcuts resolved to their targets.

    Args:
        shortcut_target: Callable mapping a .lnk path to its target path (or
            None). Defaults to WScript.Shell via pywin32.
    """

    def __init__(self, shortcut_target: Optional[Callable[[Path], Optional[str]]] = None,
                 **kwargs) -> None:
        super().__init__(**kwargs)
        self._shortcut_target = shortcut_target

    def discover(self, root: Path, max_depth: int) -> List[Entry]:
        if self._shortcut_target is not None:
            return super().discover(root, max_depth)

        # COM objects belong to the thread that created them, so the shell
        # is created on the worker thread running this discovery.
        import pythoncom
        pythoncom.CoInitialize()
        try:
            self._shortcut_target = _wscript_shortcut_target()
            return super().discover(root, max_depth)
        finally:
            self._shortcut_target = None
            pythoncom.CoUninitialize()

    def _entry_for(self, path: Path, is_dir: bool) -> Optional[Entry]:
        if is_dir or path.suffix.lower() != ".lnk":
            return None
        target = self._shortcut_target(path)
        if not target:
            logging.debug(f"StartMenuSource: link at {path} has no target, skipped")
            return None
        return Entry(
            name=path.stem,
            description=APPLICATION_DESCRIPTION,
            action=OpenApplication(target),
            icon=self._icon_for(Path(target)),
        )


def _wscript_shortcut_target() -> Callable[[Path], Optional[str]]:
    import pywintypes
    import win32com.client

    shell = win32com.client.Dispatch("WScript.Shell")

    def resolve(path: Path) -> Optional[str]:
        try:
            return shell.CreateShortcut(str(path)).Targetpath or None
        except pywintypes.com_error as e:
            logging.debug(f"StartMenuSource: error opening link {path} ({e}), skipped")
            return None

    return resolve
