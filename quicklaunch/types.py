"""Type definitions for launcher entries, actions and window state."""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Optional, Union


class Page(Enum):
    """Pages the launcher window can show.

    The page is part of WindowState and resets to MAIN whenever the window
    is hidden.
    """
    MAIN = auto()
    CLIPBOARD_HISTORY = auto()


@dataclass(frozen=True)
class Icon:
    """Decoded bitmap: RGBA bytes, row-major, 4 bytes per pixel."""
    width: int
    height: int
    rgba: bytes = field(repr=False)


@dataclass(frozen=True)
class ClipboardText:
    text: str


@dataclass(frozen=True)
class ClipboardImage:
    """Raw image data read from the clipboard.

    Equality only looks at the bytes, so two reads of the same image compare
    equal even if a backend reports dimensions differently.
    """
    width: int = field(compare=False)
    height: int = field(compare=False)
    data: bytes = field(repr=False)


ClipboardContent = Union[ClipboardText, ClipboardImage]


def describe_clipboard_content(content: ClipboardContent) -> str:
    """Single-line label for a clipboard history row."""
    if isinstance(content, ClipboardImage):
        return f"<img {content.width}x{content.height}>"
    return content.text.replace("\n", " ").strip()


# Actions: one frozen dataclass per variant.

@dataclass(frozen=True)
class OpenApplication:
    path: str


@dataclass(frozen=True)
class RunShellCommand:
    args: tuple


@dataclass(frozen=True)
class GoogleSearch:
    text: str


@dataclass(frozen=True)
class Calculate:
    value: float


@dataclass(frozen=True)
class CopyToClipboard:
    content: Any


@dataclass(frozen=True)
class RandomVar:
    n: int


@dataclass(frozen=True)
class SwitchPage:
    page: Page


@dataclass(frozen=True)
class Display:
    """Entry that only shows information; activating it does nothing."""


@dataclass(frozen=True)
class Quit:
    pass


Action = Union[
    OpenApplication,
    RunShellCommand,
    GoogleSearch,
    Calculate,
    CopyToClipboard,
    RandomVar,
    SwitchPage,
    Display,
    Quit,
]


@dataclass(frozen=True)
class Entry:
    """One indexed candidate: an app, a command, or a synthetic result.

    name_lc is always derived from name and is not an init argument.
    """
    name: str
    description: str
    action: Any
    icon: Optional[Icon] = field(default=None, compare=False, repr=False)
    name_lc: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, 'name_lc', self.name.lower())

    @property
    def is_shell_command(self) -> bool:
        return isinstance(self.action, RunShellCommand)


@dataclass
class QueryState:
    """Current query text plus the normalized form of the query whose
    candidates are kept as the refinement base (None when there is none).
    """
    raw: str = ""
    normalized_lc: str = ""
    previous_normalized_lc: Optional[str] = None

    def clear(self) -> None:
        self.raw = ""
        self.normalized_lc = ""
        self.previous_normalized_lc = None


@dataclass
class WindowState:
    visible: bool = True
    focused: bool = False
    page: Page = Page.MAIN
    captured_external_focus: Optional[Any] = None
