# quicklaunch/__init__.py
from .Config import LauncherConfig, load_config
from .LauncherState import LauncherState
from .LauncherStateMachine import LauncherStateMachine
from .MessageChannel import MessageChannel
from .search.SearchEngine import SearchEngine
from .index.IndexBuilder import IndexBuilder

__all__ = [
    'LauncherConfig',
    'load_config',
    'LauncherState',
    'LauncherStateMachine',
    'MessageChannel',
    'SearchEngine',
    'IndexBuilder',
]
