"""The single owned state struct threaded through every transition."""
from dataclasses import dataclass, field
from typing import List

from quicklaunch.ClipboardHistory import ClipboardHistory
from quicklaunch.Config import LauncherConfig
from quicklaunch.types import Entry, QueryState, WindowState

WINDOW_WIDTH = 500
DEFAULT_WINDOW_HEIGHT = 65
ROW_HEIGHT = 55
MAX_VISIBLE_ROWS = 5
RESIZE_DEBOUNCE_MS = 30


def window_height(row_count: int) -> int:
    """Window height showing row_count rows (capped at MAX_VISIBLE_ROWS)."""
    return DEFAULT_WINDOW_HEIGHT + ROW_HEIGHT * min(MAX_VISIBLE_ROWS, row_count)


@dataclass
class LauncherState:
    """Everything the state machine mutates.

    Attributes:
        config: Current typed config
        raw_config: Raw config text the current config was parsed from
        window: Visibility, focus, page and captured external focus
        query: Query text and refinement bookkeeping
        options: Full option set, replaced wholesale on reload
        results: Ranked result set for the current query
        candidates: Refinement base for the next, longer query
        clipboard: Clipboard history
    """
    config: LauncherConfig = field(default_factory=LauncherConfig)
    raw_config: str = ""
    window: WindowState = field(default_factory=WindowState)
    query: QueryState = field(default_factory=QueryState)
    options: List[Entry] = field(default_factory=list)
    results: List[Entry] = field(default_factory=list)
    candidates: List[Entry] = field(default_factory=list)
    clipboard: ClipboardHistory = field(default_factory=ClipboardHistory)

    def clear_results(self) -> None:
        """Drop the result set and the refinement base."""
        self.results = []
        self.candidates = []
        self.query.previous_normalized_lc = None
