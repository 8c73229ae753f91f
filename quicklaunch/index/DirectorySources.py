"""
Directory-walking app sources.

Each source walks a root directory up to a maximum depth and turns matching
paths into entries. What counts as an app is platform specific:

- ExecutableSource: files with an executable suffix (``.exe`` on Windows)
- BundleSource: ``.app`` bundle directories (macOS); bundles are not entered
- DesktopEntrySource: freedesktop ``.desktop`` files (Linux)
"""
import logging
import os
import plistlib
from configparser import ConfigParser, Error as ConfigParserError
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from quicklaunch.index.PathFilter import PathFilter
from quicklaunch.protocols import IconResolver
from quicklaunch.types import Entry, Icon, OpenApplication

APPLICATION_DESCRIPTION = "Application"


class DirectorySource:
    """Base class for sources that walk a directory tree.

    Subclasses implement _entry_for() and may override _should_descend().

    Args:
        path_filter: Include/exclude filter applied to every candidate
        icon_resolver: Optional resolver; None disables icon lookup
        verbose: Enable verbose logging
    """

    def __init__(self, path_filter: Optional[PathFilter] = None,
                 icon_resolver: Optional[IconResolver] = None,
                 verbose: bool = False) -> None:
        self.path_filter = path_filter or PathFilter()
        self.icon_resolver = icon_resolver
        self.verbose = verbose

    def discover(self, root: Path, max_depth: int) -> List[Entry]:
        entries: List[Entry] = []
        for path, is_dir in self._walk(root, max_depth):
            if self.path_filter.is_excluded(path):
                if self.verbose:
                    logging.debug(f"{type(self).__name__}: excluded {path}")
                continue
            entry = self._entry_for(path, is_dir)
            if entry is not None:
                entries.append(entry)
        return entries

    def _walk(self, root: Path, max_depth: int) -> Iterator[tuple]:
        """Yield (path, is_dir) for everything below root, depth-first.

        Depth 1 is the direct children of root. Symlinks are not followed
        into, and unreadable directories are skipped.
        """
        if max_depth < 1:
            return
        stack = [(root, 1)]
        while stack:
            directory, depth = stack.pop()
            try:
                with os.scandir(directory) as it:
                    children = sorted(it, key=lambda e: e.name)
            except OSError as e:
                logging.debug(f"{type(self).__name__}: cannot read {directory}: {e}")
                continue

            subdirs = []
            for child in children:
                path = Path(child.path)
                try:
                    is_dir = child.is_dir(follow_symlinks=False)
                except OSError:
                    continue
                yield path, is_dir
                if is_dir and depth < max_depth and self._should_descend(path):
                    subdirs.append((path, depth + 1))
            stack.extend(reversed(subdirs))

    def _should_descend(self, path: Path) -> bool:
        return True

    def _entry_for(self, path: Path, is_dir: bool) -> Optional[Entry]:
        raise NotImplementedError

    def _icon_for(self, path: Path) -> Optional[Icon]:
        if self.icon_resolver is None:
            return None
        return self.icon_resolver.resolve(path)


class ExecutableSource(DirectorySource):
    """Files whose suffix marks them as executables."""

    def __init__(self, suffix: str = ".exe", **kwargs) -> None:
        super().__init__(**kwargs)
        self.suffix = suffix.lower()

    def _entry_for(self, path: Path, is_dir: bool) -> Optional[Entry]:
        if is_dir or path.suffix.lower() != self.suffix:
            return None
        return Entry(
            name=path.name[:-len(self.suffix)],
            description=APPLICATION_DESCRIPTION,
            action=OpenApplication(str(path)),
            icon=self._icon_for(path),
        )


class BundleSource(DirectorySource):
    """macOS ``.app`` bundles."""

    BUNDLE_SUFFIX = ".app"

    def _should_descend(self, path: Path) -> bool:
        return not path.name.endswith(self.BUNDLE_SUFFIX)

    def _entry_for(self, path: Path, is_dir: bool) -> Optional[Entry]:
        if not is_dir or not path.name.endswith(self.BUNDLE_SUFFIX):
            return None
        icon = None
        if self.icon_resolver is not None:
            icon_path = find_bundle_icon(path)
            if icon_path is not None:
                icon = self.icon_resolver.resolve(icon_path)
        return Entry(
            name=path.name[:-len(self.BUNDLE_SUFFIX)],
            description=APPLICATION_DESCRIPTION,
            action=OpenApplication(str(path)),
            icon=icon,
        )


def find_bundle_icon(bundle: Path) -> Optional[Path]:
    """Locate the .icns file of an app bundle.

    Uses CFBundleIconFile from Contents/Info.plist; otherwise the only .icns
    in Contents/Resources, or AppIcon.icns when there are several.
    """
    resources = bundle / "Contents" / "Resources"
    try:
        with open(bundle / "Contents" / "Info.plist", 'rb') as f:
            info = plistlib.load(f)
        icon_name = info.get('CFBundleIconFile')
        if icon_name:
            if not icon_name.endswith(".icns"):
                icon_name += ".icns"
            candidate = resources / icon_name
            if candidate.exists():
                return candidate
    except (OSError, plistlib.InvalidFileException, ValueError) as e:
        logging.debug(f"find_bundle_icon: no usable Info.plist in {bundle}: {e}")

    try:
        icns = sorted(p for p in resources.iterdir() if p.suffix == ".icns")
    except OSError:
        return None
    if len(icns) > 1:
        named = [p for p in icns if p.name == "AppIcon.icns"]
        return named[0] if named else None
    return icns[0] if icns else None


class DesktopEntrySource(DirectorySource):
    """freedesktop.org ``.desktop`` application files."""

    def _entry_for(self, path: Path, is_dir: bool) -> Optional[Entry]:
        if is_dir or path.suffix != ".desktop":
            return None
        info = parse_desktop_file(path)
        if info is None:
            return None
        icon = None
        if self.icon_resolver is not None and info['icon']:
            icon_path = Path(info['icon'])
            if icon_path.is_absolute():
                icon = self.icon_resolver.resolve(icon_path)
        return Entry(
            name=info['name'],
            description=info['comment'] or APPLICATION_DESCRIPTION,
            action=OpenApplication(str(path)),
            icon=icon,
        )


def parse_desktop_file(path: Path) -> Optional[Dict[str, str]]:
    """Parse a .desktop file and return app info, or None if not launchable."""
    try:
        config = ConfigParser(interpolation=None)
        config.read(path, encoding="utf-8")
    except (ConfigParserError, UnicodeDecodeError, OSError):
        return None

    if not config.has_section("Desktop Entry"):
        return None

    entry = config["Desktop Entry"]

    if entry.get("Type", "") != "Application":
        return None
    if entry.get("NoDisplay", "").lower() == "true":
        return None
    if entry.get("Hidden", "").lower() == "true":
        return None

    name = entry.get("Name", "")
    if not name:
        return None

    exec_str = entry.get("Exec", "")
    exec_clean = " ".join(p for p in exec_str.split() if not p.startswith("%"))

    return {
        "name": name,
        "comment": entry.get("Comment", ""),
        "icon": entry.get("Icon", ""),
        "exec": exec_clean,
    }
