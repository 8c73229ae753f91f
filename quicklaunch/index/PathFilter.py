import fnmatch
from pathlib import Path, PurePath
from typing import Iterable, Tuple


class PathFilter:
    """Include/exclude glob filter for index candidates.

    A path is excluded only when an exclude pattern matches it and no
    include pattern does. Patterns are matched against the whole path and
    ``*`` also matches path separators, so ``*/Helpers/*`` excludes every
    path containing a Helpers directory.
    """

    def __init__(self, include_patterns: Iterable[str] = (), exclude_patterns: Iterable[str] = ()) -> None:
        self.include_patterns: Tuple[str, ...] = tuple(include_patterns)
        self.exclude_patterns: Tuple[str, ...] = tuple(exclude_patterns)

    @staticmethod
    def _matches_any(path: PurePath, patterns: Tuple[str, ...]) -> bool:
        native = str(path)
        posix = path.as_posix()
        return any(
            fnmatch.fnmatchcase(native, pattern) or fnmatch.fnmatchcase(posix, pattern)
            for pattern in patterns
        )

    def is_excluded(self, path: Path) -> bool:
        if not self.exclude_patterns:
            return False
        if not self._matches_any(path, self.exclude_patterns):
            return False
        return not self._matches_any(path, self.include_patterns)

    def allows(self, path: Path) -> bool:
        return not self.is_excluded(path)
