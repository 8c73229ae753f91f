"""
Launcher configuration.

The configuration file is JSON. It is parsed into frozen dataclasses so the
rest of the launcher works with typed values; the raw file text is kept
alongside so reload detection can compare content instead of fields.

Parse and I/O errors never stop the launcher: they are logged and the
defaults are used instead.
"""
import json
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


def default_index_roots() -> Tuple['IndexRoot', ...]:
    """Platform default directories to scan for applications."""
    home = Path.home()
    if sys.platform == 'darwin':
        paths = [
            Path("/Applications"),
            home / "Applications",
            Path("/System/Applications"),
            Path("/System/Applications/Utilities"),
        ]
        return tuple(IndexRoot(path=str(p), max_depth=1) for p in paths)

    if sys.platform == 'win32':
        paths = [
            os.environ.get('ProgramFiles', r"C:\Program Files"),
            os.environ.get('ProgramFiles(x86)', r"C:\Program Files (x86)"),
            str(Path(os.environ.get('LOCALAPPDATA', str(home / "AppData" / "Local"))) / "Programs"),
        ]
        return tuple(
            IndexRoot(path=p, max_depth=3, exclude_patterns=("*unins*", "*Uninstall*"))
            for p in paths
        )

    # XDG application directories
    paths = [
        home / ".local/share/applications",
        home / ".local/share/flatpak/exports/share/applications",
        Path("/usr/share/applications"),
        Path("/usr/local/share/applications"),
        Path("/var/lib/flatpak/exports/share/applications"),
        Path("/var/lib/snapd/desktop/applications"),
    ]
    return tuple(IndexRoot(path=str(p), max_depth=1) for p in paths)


@dataclass(frozen=True)
class IndexRoot:
    """A directory to index.

    Args:
        path: Directory to walk (``~`` is expanded)
        max_depth: Maximum recursion depth; 1 means direct children only
        include_patterns: Globs that override exclude_patterns
        exclude_patterns: Globs of paths to skip
    """
    path: str
    max_depth: int = 1
    include_patterns: Tuple[str, ...] = ()
    exclude_patterns: Tuple[str, ...] = ()

    @property
    def resolved_path(self) -> Path:
        return Path(self.path).expanduser()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IndexRoot':
        return cls(
            path=str(data['path']),
            max_depth=int(data.get('max_depth', 1)),
            include_patterns=tuple(data.get('include_patterns', ())),
            exclude_patterns=tuple(data.get('exclude_patterns', ())),
        )


@dataclass(frozen=True)
class ShellCommand:
    """A user-defined command shown in results under its alias."""
    command: str
    alias: str
    description: str = "Shell command"
    icon_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ShellCommand':
        return cls(
            command=str(data['command']),
            alias=str(data.get('alias', data['command'])),
            description=str(data.get('description', "Shell command")),
            icon_path=data.get('icon_path'),
        )


@dataclass(frozen=True)
class BufferRules:
    clear_on_hide: bool = True
    clear_on_enter: bool = True


@dataclass(frozen=True)
class ThemeConfig:
    show_icons: bool = True


@dataclass(frozen=True)
class ClipboardConfig:
    poll_interval: float = 0.5
    # None keeps the whole history
    history_limit: Optional[int] = None


@dataclass(frozen=True)
class LogConfig:
    level: str = "INFO"
    console: bool = True


@dataclass(frozen=True)
class WatcherConfig:
    use_polling: bool = False
    debounce: float = 0.25


@dataclass(frozen=True)
class LauncherConfig:
    toggle_hotkey: str = "alt+space"
    clipboard_hotkey: Optional[str] = None
    placeholder: str = "Time to be productive!"
    search_url: str = "https://www.google.com/search?q=%s"
    buffer_rules: BufferRules = field(default_factory=BufferRules)
    theme: ThemeConfig = field(default_factory=ThemeConfig)
    index_roots: Tuple[IndexRoot, ...] = field(default_factory=default_index_roots)
    shells: Tuple[ShellCommand, ...] = ()
    clipboard: ClipboardConfig = field(default_factory=ClipboardConfig)
    log: LogConfig = field(default_factory=LogConfig)
    watcher: WatcherConfig = field(default_factory=WatcherConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LauncherConfig':
        """Build a config from parsed JSON; missing keys take defaults.

        Raises:
            KeyError, TypeError, ValueError: on malformed values
        """
        defaults = cls()
        roots = data.get('index_roots')
        return cls(
            toggle_hotkey=str(data.get('toggle_hotkey', defaults.toggle_hotkey)),
            clipboard_hotkey=data.get('clipboard_hotkey', defaults.clipboard_hotkey),
            placeholder=str(data.get('placeholder', defaults.placeholder)),
            search_url=str(data.get('search_url', defaults.search_url)),
            buffer_rules=BufferRules(**data.get('buffer_rules', {})),
            theme=ThemeConfig(**data.get('theme', {})),
            index_roots=(
                tuple(IndexRoot.from_dict(r) for r in roots)
                if roots is not None else defaults.index_roots
            ),
            shells=tuple(ShellCommand.from_dict(s) for s in data.get('shells', ())),
            clipboard=ClipboardConfig(**data.get('clipboard', {})),
            log=LogConfig(**data.get('log', {})),
            watcher=WatcherConfig(**data.get('watcher', {})),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'toggle_hotkey': self.toggle_hotkey,
            'clipboard_hotkey': self.clipboard_hotkey,
            'placeholder': self.placeholder,
            'search_url': self.search_url,
            'buffer_rules': {
                'clear_on_hide': self.buffer_rules.clear_on_hide,
                'clear_on_enter': self.buffer_rules.clear_on_enter,
            },
            'theme': {'show_icons': self.theme.show_icons},
            'index_roots': [
                {
                    'path': r.path,
                    'max_depth': r.max_depth,
                    'include_patterns': list(r.include_patterns),
                    'exclude_patterns': list(r.exclude_patterns),
                }
                for r in self.index_roots
            ],
            'shells': [
                {
                    'command': s.command,
                    'alias': s.alias,
                    'description': s.description,
                    'icon_path': s.icon_path,
                }
                for s in self.shells
            ],
            'clipboard': {
                'poll_interval': self.clipboard.poll_interval,
                'history_limit': self.clipboard.history_limit,
            },
            'log': {'level': self.log.level, 'console': self.log.console},
            'watcher': {
                'use_polling': self.watcher.use_polling,
                'debounce': self.watcher.debounce,
            },
        }


def read_raw_config(config_path: Path) -> str:
    """Raw config file content, or an empty string if it cannot be read or is not UTF-8."""
    try:
        return config_path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError):
        return ""


def parse_config(raw: str) -> LauncherConfig:
    """Parse raw JSON text, falling back to defaults on any error."""
    if not raw.strip():
        return LauncherConfig()
    try:
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("top level must be an object")
        return LauncherConfig.from_dict(data)
    except (ValueError, KeyError, TypeError) as e:
        logging.warning(f"Config: failed to parse config ({e}); using defaults")
        return LauncherConfig()


def load_config(config_path: Path) -> Tuple[LauncherConfig, str]:
    """Load the config file, creating it with defaults when missing.

    Args:
        config_path: Path to config.json

    Returns:
        Tuple of (config, raw file content)
    """
    if not config_path.exists():
        config = LauncherConfig()
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            config_path.write_text(json.dumps(config.to_dict(), indent=2), encoding='utf-8')
            logging.info(f"Config: wrote default config to {config_path}")
        except OSError as e:
            logging.warning(f"Config: could not write default config to {config_path}: {e}")
            return config, ""

    try:
        raw = config_path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        logging.warning(f"Config: could not read {config_path} ({e}); using defaults")
        return LauncherConfig(), ""

    return parse_config(raw), raw
