# tests/conftest.py
import pytest

from quicklaunch.Config import LauncherConfig
from quicklaunch.LauncherState import LauncherState
from quicklaunch.types import Entry, OpenApplication, RunShellCommand


@pytest.fixture
def config():
    """Config with no index roots so nothing touches the real filesystem."""
    return LauncherConfig(index_roots=())


@pytest.fixture
def app_entries():
    """Option set of ordinary applications, sorted by name length.

    Returns:
        list[Entry]: Foot, Files, Figma, Firefox, Firefox Developer Edition
    """
    entries = [
        Entry("Foot", "Application", OpenApplication("/usr/bin/foot")),
        Entry("Files", "Application", OpenApplication("/usr/bin/nautilus")),
        Entry("Figma", "Application", OpenApplication("/opt/figma")),
        Entry("Firefox", "Application", OpenApplication("/usr/bin/firefox")),
        Entry("Firefox Developer Edition", "Application", OpenApplication("/opt/ffdev")),
    ]
    return sorted(entries, key=lambda e: len(e.name))


@pytest.fixture
def shell_entry():
    return Entry("ssh", "Shell command", RunShellCommand(("ssh",)))


@pytest.fixture
def state(config, app_entries):
    """LauncherState with app_entries as its option set."""
    return LauncherState(config=config, options=list(app_entries))

