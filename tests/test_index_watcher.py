"""Tests for IndexWatcher - config and subdirectory change detection."""
import threading
from unittest.mock import MagicMock, patch

from quicklaunch.index.IndexWatcher import IndexWatcher, count_subdirectories


class TestCountSubdirectories:
    """Test count_subdirectories."""

    def test_counts_only_directories(self, tmp_path):
        (tmp_path / "a").mkdir()
        (tmp_path / "b").mkdir()
        (tmp_path / "file").write_text("")

        assert count_subdirectories(tmp_path) == 2

    def test_missing_root(self, tmp_path):
        """Unreadable roots report -1."""
        assert count_subdirectories(tmp_path / "missing") == -1


class TestIndexWatcherCheck:
    """Test IndexWatcher.check comparisons."""

    def make_watcher(self, tmp_path, roots=()):
        config_path = tmp_path / "config.json"
        config_path.write_text("{}")
        return IndexWatcher(config_path, roots, on_change=MagicMock()), config_path

    def test_no_change(self, tmp_path):
        """An untouched config and root should not request a rebuild."""
        root = tmp_path / "apps"
        root.mkdir()
        watcher, _ = self.make_watcher(tmp_path, [root])

        assert watcher.check() is False

    def test_config_content_change(self, tmp_path):
        """Changed config text should request a rebuild exactly once."""
        watcher, config_path = self.make_watcher(tmp_path)
        config_path.write_text('{"placeholder": "x"}')

        assert watcher.check() is True
        assert watcher.check() is False

    def test_rewrite_with_same_content(self, tmp_path):
        """Saving identical content is not a change."""
        watcher, config_path = self.make_watcher(tmp_path)
        config_path.write_text("{}")

        assert watcher.check() is False

    def test_config_not_utf8_does_not_raise(self, tmp_path):
        """A config saved in a legacy code page is treated as unreadable."""
        watcher, config_path = self.make_watcher(tmp_path)
        config_path.write_bytes(b'{"placeholder": "caf\xe9"}')

        assert watcher.check() is True
        assert watcher.check() is False

    def test_new_subdirectory(self, tmp_path):
        """A new app directory under a root should request a rebuild."""
        root = tmp_path / "apps"
        root.mkdir()
        watcher, _ = self.make_watcher(tmp_path, [root])

        (root / "NewApp").mkdir()

        assert watcher.check() is True
        assert watcher.check() is False

    def test_new_file_is_not_a_change(self, tmp_path):
        """Only subdirectory counts are tracked under roots."""
        root = tmp_path / "apps"
        root.mkdir()
        watcher, _ = self.make_watcher(tmp_path, [root])

        (root / "notes.txt").write_text("")

        assert watcher.check() is False

    def test_root_appearing(self, tmp_path):
        """A root that did not exist and now does counts as a change."""
        root = tmp_path / "later"
        watcher, _ = self.make_watcher(tmp_path, [root])

        root.mkdir()

        assert watcher.check() is True

    def test_reset_roots_takes_new_baseline(self, tmp_path):
        """reset_roots should track the new roots from their current state."""
        watcher, config_path = self.make_watcher(tmp_path)
        root = tmp_path / "apps"
        root.mkdir()
        config_path.write_text('{"index_roots": []}')

        watcher.reset_roots([root])

        assert watcher.roots == [root]
        assert watcher.check() is False


class TestIndexWatcherEvents:
    """Test debounced event handling."""

    def test_fire_calls_on_change_when_changed(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text("{}")
        on_change = MagicMock()
        watcher = IndexWatcher(config_path, [], on_change=on_change)
        config_path.write_text("[]")

        watcher._fire()

        on_change.assert_called_once_with()

    def test_fire_silent_without_change(self, tmp_path):
        config_path = tmp_path / "config.json"
        config_path.write_text("{}")
        on_change = MagicMock()
        watcher = IndexWatcher(config_path, [], on_change=on_change)

        watcher._fire()

        on_change.assert_not_called()

    def test_schedule_check_debounces(self, tmp_path):
        """A burst of events should result in a single check."""
        config_path = tmp_path / "config.json"
        config_path.write_text("{}")
        fired = threading.Event()
        watcher = IndexWatcher(config_path, [], on_change=MagicMock(), debounce=0.05)

        with patch.object(watcher, 'check', side_effect=lambda: fired.set() or False) as check:
            for _ in range(5):
                watcher.schedule_check()
            assert fired.wait(2.0)
            watcher.stop()

        assert check.call_count == 1

    def test_start_and_stop_observer(self, tmp_path):
        """start() schedules the config directory and roots; stop() joins the observer."""
        config_path = tmp_path / "config.json"
        config_path.write_text("{}")
        root = tmp_path / "apps"
        root.mkdir()
        observer = MagicMock()

        with patch('quicklaunch.index.IndexWatcher.create_observer', return_value=observer):
            watcher = IndexWatcher(config_path, [root, tmp_path / "missing"], on_change=MagicMock())
            watcher.start()
            watcher.stop()

        watched = [call.args[1] for call in observer.schedule.call_args_list]
        assert watched == [str(tmp_path), str(root)]
        observer.start.assert_called_once()
        observer.stop.assert_called_once()
