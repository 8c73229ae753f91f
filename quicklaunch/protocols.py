"""Protocol definitions for launcher collaborators.

This module defines structural interfaces using Python's Protocol for duck typing.
Concrete implementations live next to the code that owns the concern; tests
substitute MagicMock objects.
"""

from pathlib import Path
from typing import Any, List, Optional, Protocol, Sequence

from quicklaunch.types import ClipboardContent, Entry, Icon


class AppSource(Protocol):
    """Discovers launchable entries below a root.

    One implementation exists per discovery strategy (directory walk,
    registry, bundle scan...). Implementations must be safe to call from
    worker threads and must not share mutable state between calls.
    """

    def discover(self, root: Path, max_depth: int) -> List[Entry]:
        """Return entries found under root, at most max_depth levels deep."""
        ...


class IconResolver(Protocol):

    def resolve(self, path: Path) -> Optional[Icon]:
        """Return the icon for path, or None. Must not raise."""
        ...


class ExpressionEvaluator(Protocol):

    def parse(self, text: str) -> Optional[float]:
        """Evaluate text as arithmetic, or None if it is not an expression."""
        ...


class ClipboardReader(Protocol):

    def read(self) -> Optional[ClipboardContent]:
        """Current clipboard content, or None if empty/unsupported."""
        ...


class FocusCapture(Protocol):
    """Saves and restores the externally focused window."""

    def capture_frontmost(self) -> Optional[Any]:
        ...

    def restore(self, handle: Any) -> bool:
        ...


class WindowHost(Protocol):
    """The top-level launcher surface.

    All methods are called from the consumer thread. The host reports user
    input and window events back through the MessageChannel.
    """

    def open(self) -> None:
        ...

    def close(self) -> None:
        ...

    def focus(self) -> None:
        ...

    def resize(self, height: int) -> None:
        """Resize immediately."""
        ...

    def schedule_resize(self, height: int, delay_ms: int) -> None:
        """Resize after delay_ms, replacing any pending scheduled resize."""
        ...

    def set_query(self, text: str) -> None:
        ...

    def render(self, results: Sequence[Entry], clipboard: Sequence[ClipboardContent],
               show_clipboard: bool) -> None:
        ...

    def quit(self) -> None:
        ...
