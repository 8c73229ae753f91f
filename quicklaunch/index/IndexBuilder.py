"""
IndexBuilder - builds the option set the search engine filters.

Discovery fans out over (source, root) jobs on a thread pool; no job waits
on another and a failing job only loses its own entries. The merged list is
stable-sorted by name length, a cheap pre-ranking that puts short names
(usually the exact app someone is typing) first.

Sources are composed once per config by platform_sources():
- every platform: one directory source per configured index root
- Windows: plus the uninstall registry and Start Menu shortcuts
"""
import logging
import shlex
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from quicklaunch.Config import LauncherConfig, ShellCommand
from quicklaunch.index.DirectorySources import (
    BundleSource,
    DesktopEntrySource,
    DirectorySource,
    ExecutableSource,
)
from quicklaunch.index.PathFilter import PathFilter
from quicklaunch.protocols import AppSource, IconResolver
from quicklaunch.types import Entry, Page, Quit, RunShellCommand, SwitchPage

APP_DESCRIPTION = "Quicklaunch"


@dataclass(frozen=True)
class SourceJob:
    """One unit of discovery work: a source applied to a root."""
    source: AppSource
    root: Path
    max_depth: int


def directory_source_for_platform(platform: str, path_filter: PathFilter,
                                  icon_resolver: Optional[IconResolver],
                                  verbose: bool = False) -> DirectorySource:
    if platform == 'win32':
        return ExecutableSource(".exe", path_filter=path_filter, icon_resolver=icon_resolver, verbose=verbose)
    if platform == 'darwin':
        return BundleSource(path_filter=path_filter, icon_resolver=icon_resolver, verbose=verbose)
    return DesktopEntrySource(path_filter=path_filter, icon_resolver=icon_resolver, verbose=verbose)


def platform_sources(config: LauncherConfig, icon_resolver: Optional[IconResolver] = None,
                     platform: Optional[str] = None, verbose: bool = False) -> List[SourceJob]:
    """Compose the discovery jobs for the current platform.

    Args:
        config: Launcher config providing index roots
        icon_resolver: Used only when config.theme.show_icons is set
        platform: sys.platform value, overridable for tests
        verbose: Enable verbose logging in sources

    Returns:
        List of SourceJob to hand to IndexBuilder
    """
    platform = platform or sys.platform
    resolver = icon_resolver if config.theme.show_icons else None

    jobs = [
        SourceJob(
            source=directory_source_for_platform(
                platform,
                PathFilter(root.include_patterns, root.exclude_patterns),
                resolver,
                verbose,
            ),
            root=root.resolved_path,
            max_depth=root.max_depth,
        )
        for root in config.index_roots
    ]

    if platform == 'win32':
        from quicklaunch.index.WindowsSources import (
            RegistrySource,
            START_MENU_PROGRAMS,
            StartMenuSource,
        )
        jobs.append(SourceJob(RegistrySource(verbose=verbose), Path(), 0))
        jobs.append(SourceJob(
            StartMenuSource(icon_resolver=resolver, verbose=verbose),
            START_MENU_PROGRAMS,
            8,
        ))

    return jobs


def shell_entries(shells: Sequence[ShellCommand], icon_resolver: Optional[IconResolver] = None) -> List[Entry]:
    entries = []
    for shell in shells:
        icon = None
        if icon_resolver is not None and shell.icon_path:
            icon = icon_resolver.resolve(Path(shell.icon_path).expanduser())
        entries.append(Entry(
            name=shell.alias,
            description=shell.description,
            action=RunShellCommand(tuple(shlex.split(shell.command))),
            icon=icon,
        ))
    return entries


def builtin_entries() -> List[Entry]:
    return [
        Entry(name="Quit Quicklaunch", description=APP_DESCRIPTION, action=Quit()),
        Entry(name="Clipboard History", description=APP_DESCRIPTION,
              action=SwitchPage(Page.CLIPBOARD_HISTORY)),
    ]


class IndexBuilder:
    """Builds the option set from a list of discovery jobs.

    Args:
        icon_resolver: Icon resolver for shell entries
        max_workers: Thread pool size for discovery
        verbose: Enable verbose logging
    """

    def __init__(self, icon_resolver: Optional[IconResolver] = None,
                 max_workers: Optional[int] = None, verbose: bool = False) -> None:
        self.icon_resolver = icon_resolver
        self.max_workers = max_workers
        self.verbose = verbose

    def build(self, config: LauncherConfig, jobs: Optional[Sequence[SourceJob]] = None) -> List[Entry]:
        """Discover all entries and return them sorted by name length.

        Args:
            config: Config providing roots, shells and the show_icons flag
            jobs: Discovery jobs; defaults to platform_sources(config)

        Returns:
            The new option set
        """
        if jobs is None:
            jobs = platform_sources(config, self.icon_resolver, verbose=self.verbose)

        start = time.perf_counter()
        entries: List[Entry] = []

        if jobs:
            with ThreadPoolExecutor(max_workers=self.max_workers,
                                    thread_name_prefix="index") as pool:
                for found in pool.map(self._run_job, jobs):
                    entries.extend(found)

        resolver = self.icon_resolver if config.theme.show_icons else None
        entries.extend(shell_entries(config.shells, resolver))
        entries.extend(builtin_entries())

        # sorted() is stable: equal lengths keep discovery order
        entries = sorted(entries, key=lambda e: len(e.name))

        elapsed = time.perf_counter() - start
        logging.info(f"IndexBuilder: indexed {len(entries)} entries from {len(jobs)} sources "
                     f"(t = {elapsed:.3f}s)")
        return entries

    def _run_job(self, job: SourceJob) -> List[Entry]:
        try:
            found = job.source.discover(job.root, job.max_depth)
        except Exception as e:
            logging.warning(f"IndexBuilder: {type(job.source).__name__} failed for {job.root}: {e}")
            return []
        if self.verbose:
            logging.debug(f"IndexBuilder: {type(job.source).__name__} found {len(found)} in {job.root}")
        return found
