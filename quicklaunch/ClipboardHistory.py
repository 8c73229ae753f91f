import logging
from typing import Iterator, List, Optional

from quicklaunch.types import ClipboardContent


class ClipboardHistory:
    """Newest-first clipboard history with consecutive-duplicate suppression.

    A new item is recorded only when it differs (structurally) from the last
    item seen, so copying A, A, B, A gives [A, B, A]. The history is
    unbounded unless a limit is given.

    Args:
        limit: Maximum number of items kept, None for no limit
        verbose: Enable verbose logging
    """

    def __init__(self, limit: Optional[int] = None, verbose: bool = False) -> None:
        self._items: List[ClipboardContent] = []
        self._last_seen: Optional[ClipboardContent] = None
        self.limit = limit
        self._verbose = verbose

    def record(self, content: ClipboardContent) -> bool:
        """Prepend content unless it equals the last seen content.

        Returns:
            True if the history changed
        """
        if content == self._last_seen:
            return False

        self._last_seen = content
        self._items.insert(0, content)
        if self.limit is not None and len(self._items) > self.limit:
            del self._items[self.limit:]

        if self._verbose:
            logging.debug(f"ClipboardHistory: recorded {type(content).__name__}, "
                          f"{len(self._items)} items")
        return True

    @property
    def items(self) -> List[ClipboardContent]:
        return list(self._items)

    @property
    def last_seen(self) -> Optional[ClipboardContent]:
        return self._last_seen

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[ClipboardContent]:
        return iter(list(self._items))
