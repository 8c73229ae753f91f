"""Messages posted to the MessageChannel by producers."""

from dataclasses import dataclass
from typing import Any, List, Optional, Union

from quicklaunch.Config import LauncherConfig
from quicklaunch.types import Action, ClipboardContent, Entry


# ---------------------------------------------------------------------------
# Global hotkeys and the command socket
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HotkeyEvent:
    hotkey_id: int
    pressed: bool


@dataclass(frozen=True)
class ToggleWindow:
    """Show the window if hidden, hide it otherwise."""


@dataclass(frozen=True)
class ShowClipboardHistory:
    """Show the window on the clipboard history page."""


@dataclass(frozen=True)
class QuitRequested:
    pass


# ---------------------------------------------------------------------------
# Window host
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class QueryChanged:
    text: str


@dataclass(frozen=True)
class RunAction:
    action: Action


@dataclass(frozen=True)
class WindowFocusChanged:
    focused: bool


@dataclass(frozen=True)
class WindowCloseRequested:
    pass


@dataclass(frozen=True)
class EscapePressed:
    pass


# ---------------------------------------------------------------------------
# Background producers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FocusCaptured:
    """Frontmost external window captured off the consumer thread.

    Args:
        handle: Platform window handle, None if nothing could be captured
        generation: Show counter the capture was requested for
    """
    handle: Optional[Any]
    generation: int


@dataclass(frozen=True)
class ClipboardChanged:
    content: ClipboardContent


@dataclass(frozen=True)
class ReloadConfig:
    """Reload the config file and rebuild the index."""


@dataclass(frozen=True)
class IndexRebuilt:
    """Result of a background reload, applied atomically by the consumer.

    Args:
        config: Newly parsed config
        raw_config: Raw text the config was parsed from
        options: New option set
    """
    config: LauncherConfig
    raw_config: str
    options: List[Entry]


Message = Union[
    HotkeyEvent,
    ToggleWindow,
    ShowClipboardHistory,
    QuitRequested,
    QueryChanged,
    RunAction,
    WindowFocusChanged,
    WindowCloseRequested,
    EscapePressed,
    ClipboardChanged,
    FocusCaptured,
    ReloadConfig,
    IndexRebuilt,
]
