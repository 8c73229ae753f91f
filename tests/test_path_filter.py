"""Tests for PathFilter - include/exclude glob rules."""
from pathlib import Path, PureWindowsPath

from quicklaunch.index.PathFilter import PathFilter


class TestPathFilter:
    """Test PathFilter exclusion semantics."""

    def test_no_patterns_allows_everything(self):
        """A filter without patterns should never exclude."""
        path_filter = PathFilter()

        assert path_filter.allows(Path("/opt/app/bin/tool"))

    def test_exclude_pattern_matches(self):
        """A matching exclude pattern should exclude the path."""
        path_filter = PathFilter(exclude_patterns=["*unins*"])

        assert path_filter.is_excluded(Path("/programs/App/unins000.exe"))
        assert path_filter.allows(Path("/programs/App/app.exe"))

    def test_star_crosses_separators(self):
        """'*' should match across directory separators."""
        path_filter = PathFilter(exclude_patterns=["*/Helpers/*"])

        assert path_filter.is_excluded(Path("/Applications/X.app/Contents/Helpers/helper"))

    def test_include_overrides_exclude(self):
        """A path matching both lists should be kept."""
        path_filter = PathFilter(
            include_patterns=["*/Uninstall Manager.exe"],
            exclude_patterns=["*Uninstall*"],
        )

        assert path_filter.allows(Path("/programs/Tools/Uninstall Manager.exe"))
        assert path_filter.is_excluded(Path("/programs/Tools/Uninstall.exe"))

    def test_include_alone_does_not_exclude(self):
        """Include patterns only matter when an exclude pattern matched."""
        path_filter = PathFilter(include_patterns=["*/keep/*"])

        assert path_filter.allows(Path("/anything/else"))

    def test_windows_paths_match_posix_patterns(self):
        """Patterns written with '/' should match Windows paths too."""
        path_filter = PathFilter(exclude_patterns=["*/Common Files/*"])

        assert path_filter.is_excluded(PureWindowsPath(r"C:\Program Files\Common Files\x.exe"))

    def test_matching_is_case_sensitive(self):
        """Globs should compare case-sensitively on every platform."""
        path_filter = PathFilter(exclude_patterns=["*Uninstall*"])

        assert path_filter.allows(Path("/programs/uninstall.exe"))
