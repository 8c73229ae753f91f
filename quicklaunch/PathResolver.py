# PathResolver.py
"""
Path resolution for configuration, logs and the command socket.

Windows keeps everything under %LOCALAPPDATA%\\quicklaunch; other platforms
follow XDG (~/.config/quicklaunch for config, ~/.local/state/quicklaunch for
logs, $XDG_RUNTIME_DIR for the socket).
"""
import os
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

APP_NAME = "quicklaunch"
CONFIG_FILE_NAME = "config.json"


@dataclass(frozen=True)
class ResolvedPaths:
    """Immutable container for all resolved application paths."""
    config_dir: Path
    config_file: Path
    logs_dir: Path
    socket_path: Path


class PathResolver:
    """Resolves application paths for the current platform."""

    def __init__(self, platform: Optional[str] = None, environ: Optional[Mapping[str, str]] = None,
                 home: Optional[Path] = None):
        self._platform = platform or sys.platform
        self._environ = environ if environ is not None else os.environ
        self._home = home or Path.home()
        self._paths = self._resolve_paths()

    @property
    def paths(self) -> ResolvedPaths:
        """Returns resolved paths for current platform."""
        return self._paths

    def _resolve_paths(self) -> ResolvedPaths:
        if self._platform == 'win32':
            local_app_data = Path(self._environ.get('LOCALAPPDATA', str(self._home / "AppData" / "Local")))
            base = local_app_data / APP_NAME
            config_dir = base
            logs_dir = base / "logs"
        else:
            config_home = Path(self._environ.get('XDG_CONFIG_HOME', str(self._home / ".config")))
            state_home = Path(self._environ.get('XDG_STATE_HOME', str(self._home / ".local" / "state")))
            config_dir = config_home / APP_NAME
            logs_dir = state_home / APP_NAME / "logs"

        runtime_dir = self._environ.get('XDG_RUNTIME_DIR') or tempfile.gettempdir()

        return ResolvedPaths(
            config_dir=config_dir,
            config_file=config_dir / CONFIG_FILE_NAME,
            logs_dir=logs_dir,
            socket_path=Path(runtime_dir) / f"{APP_NAME}.sock",
        )
