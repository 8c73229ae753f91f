"""Tests for LauncherStateMachine - window lifecycle, focus handling and actions."""
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest

from quicklaunch.ClipboardHistory import ClipboardHistory
from quicklaunch.Config import BufferRules, ClipboardConfig, LauncherConfig
from quicklaunch.LauncherState import (
    DEFAULT_WINDOW_HEIGHT,
    RESIZE_DEBOUNCE_MS,
    LauncherState,
    window_height,
)
from quicklaunch.LauncherStateMachine import LauncherStateMachine
from quicklaunch.MessageChannel import MessageChannel
from quicklaunch.messages import (
    ClipboardChanged,
    EscapePressed,
    FocusCaptured,
    HotkeyEvent,
    IndexRebuilt,
    QueryChanged,
    QuitRequested,
    ReloadConfig,
    RunAction,
    ShowClipboardHistory,
    ToggleWindow,
    WindowCloseRequested,
    WindowFocusChanged,
)
from quicklaunch.search.SearchEngine import SearchEngine
from quicklaunch.types import (
    ClipboardText,
    CopyToClipboard,
    Display,
    Entry,
    GoogleSearch,
    OpenApplication,
    Page,
    Quit,
    RunShellCommand,
    SwitchPage,
)

TOGGLE_ID = 1
CLIPBOARD_ID = 2


class ImmediateExecutor:
    """Executor stand-in that runs submitted work synchronously."""

    def submit(self, fn, *args):
        future = Future()
        try:
            future.set_result(fn(*args))
        except Exception as e:
            future.set_exception(e)
        return future


def make_machine(state, **kwargs):
    host = MagicMock()
    focus = MagicMock()
    focus.capture_frontmost.side_effect = ["handle-1", "handle-2", "handle-3", "handle-4"]
    evaluator = MagicMock()
    evaluator.parse.return_value = None
    executor = MagicMock()

    machine = LauncherStateMachine(
        state=state,
        host=host,
        focus=focus,
        search_engine=SearchEngine(evaluator),
        action_executor=executor,
        **kwargs
    )
    machine.toggle_hotkey_id = TOGGLE_ID
    machine.clipboard_hotkey_id = CLIPBOARD_ID
    return machine, host, focus, executor


@pytest.fixture
def machine_parts(state):
    machine, host, focus, executor = make_machine(state)
    machine.start()
    host.reset_mock()
    return machine, host, focus, executor


class TestStartAndToggle:
    """Test initial state and hotkey toggling."""

    def test_start_opens_window_and_captures_focus(self, state):
        """start() should capture the frontmost window and open the surface."""
        machine, host, focus, _ = make_machine(state)

        machine.start()

        assert state.window.visible is True
        assert state.window.focused is False
        assert state.window.page == Page.MAIN
        assert state.window.captured_external_focus == "handle-1"
        host.open.assert_called_once()
        host.focus.assert_called_once()

    def test_toggle_hides_visible_window(self, machine_parts, state):
        """Pressing the toggle hotkey while visible should hide the window."""
        machine, host, focus, _ = machine_parts

        machine.handle(HotkeyEvent(TOGGLE_ID, True))

        assert state.window.visible is False
        host.close.assert_called_once()
        focus.restore.assert_called_once_with("handle-1")

    def test_toggle_shows_hidden_window(self, machine_parts, state):
        """Pressing the toggle hotkey while hidden should capture focus and show."""
        machine, host, focus, _ = machine_parts
        machine.handle(HotkeyEvent(TOGGLE_ID, True))

        machine.handle(HotkeyEvent(TOGGLE_ID, True))

        assert state.window.visible is True
        assert state.window.captured_external_focus == "handle-2"
        host.open.assert_called_once()
        host.focus.assert_called_once()

    def test_hotkey_release_is_ignored(self, machine_parts, state):
        """Released events should not change anything."""
        machine, host, _, _ = machine_parts

        machine.handle(HotkeyEvent(TOGGLE_ID, False))

        assert state.window.visible is True
        host.close.assert_not_called()

    def test_unknown_hotkey_is_ignored(self, machine_parts, state):
        """Events for ids that were never registered should be ignored."""
        machine, host, _, _ = machine_parts

        machine.handle(HotkeyEvent(99, True))

        assert state.window.visible is True
        host.close.assert_not_called()

    def test_toggle_window_message(self, machine_parts, state):
        """ToggleWindow from the command socket behaves like the hotkey."""
        machine, _, _, _ = machine_parts

        machine.handle(ToggleWindow())

        assert state.window.visible is False


class TestHideBranch:
    """Test hide semantics and focus restore."""

    def test_focus_restored_exactly_once(self, machine_parts, state):
        """A captured handle should be restored once and then dropped."""
        machine, _, focus, _ = machine_parts

        machine.handle(EscapePressed())
        machine.handle(EscapePressed())
        machine.handle(WindowCloseRequested())

        focus.restore.assert_called_once_with("handle-1")
        assert state.window.captured_external_focus is None

    def test_hide_resets_window_state(self, machine_parts, state):
        """Hiding should reset focus flag and page, and clear results."""
        machine, host, _, _ = machine_parts
        machine.handle(WindowFocusChanged(True))
        machine.handle(QueryChanged("fi"))
        state.window.page = Page.CLIPBOARD_HISTORY

        machine.handle(EscapePressed())

        assert state.window.focused is False
        assert state.window.page == Page.MAIN
        assert state.results == []
        assert state.query.previous_normalized_lc is None
        host.resize.assert_called_with(DEFAULT_WINDOW_HEIGHT)

    def test_clear_on_hide_clears_query(self, machine_parts, state):
        """With clear_on_hide the query text should be emptied."""
        machine, host, _, _ = machine_parts
        machine.handle(QueryChanged("fi"))

        machine.handle(EscapePressed())

        assert state.query.raw == ""
        host.set_query.assert_called_with("")

    def test_query_kept_without_clear_on_hide(self, app_entries):
        """Without clear_on_hide the query text survives hiding."""
        config = LauncherConfig(index_roots=(), buffer_rules=BufferRules(clear_on_hide=False))
        state = LauncherState(config=config, options=list(app_entries))
        machine, host, _, _ = make_machine(state)
        machine.start()
        machine.handle(QueryChanged("fi"))

        machine.handle(EscapePressed())

        assert state.query.raw == "fi"
        assert state.results == []

    def test_focus_lost_hides_when_focused(self, machine_parts, state):
        """Losing focus after having it should hide the window."""
        machine, host, _, _ = machine_parts
        machine.handle(WindowFocusChanged(True))

        machine.handle(WindowFocusChanged(False))

        assert state.window.visible is False
        host.close.assert_called_once()

    def test_focus_lost_before_focus_gained_is_ignored(self, machine_parts, state):
        """A focus-out before the window ever had focus should not hide it."""
        machine, host, _, _ = machine_parts

        machine.handle(WindowFocusChanged(False))

        assert state.window.visible is True
        host.close.assert_not_called()


class TestQueryHandling:
    """Test QueryChanged transitions and resize requests."""

    def test_query_renders_results(self, machine_parts, state):
        """A query should render the new result set."""
        machine, host, _, _ = machine_parts

        machine.handle(QueryChanged("fi"))

        results, clipboard, show_clipboard = host.render.call_args[0]
        assert [e.name for e in results] == ["Files", "Figma", "Firefox", "Firefox Developer Edition"]
        assert show_clipboard is False

    def test_result_count_change_schedules_resize(self, machine_parts):
        """A change in result count should schedule a debounced resize."""
        machine, host, _, _ = machine_parts

        machine.handle(QueryChanged("fi"))

        host.schedule_resize.assert_called_once_with(window_height(4), RESIZE_DEBOUNCE_MS)

    def test_same_result_count_does_not_resize(self, machine_parts):
        """No resize should be requested when the result count is unchanged."""
        machine, host, _, _ = machine_parts
        machine.handle(QueryChanged("fig"))
        host.reset_mock()

        machine.handle(QueryChanged("figm"))

        host.schedule_resize.assert_not_called()

    def test_resize_is_capped_at_five_rows(self):
        """Height should never exceed five rows."""
        assert window_height(12) == window_height(5) == DEFAULT_WINDOW_HEIGHT + 5 * 55

    def test_empty_query_collapses_immediately(self, machine_parts):
        """Clearing the query should resize immediately to the default height."""
        machine, host, _, _ = machine_parts
        machine.handle(QueryChanged("fi"))
        host.reset_mock()

        machine.handle(QueryChanged(""))

        host.resize.assert_called_once_with(DEFAULT_WINDOW_HEIGHT)
        host.schedule_resize.assert_not_called()

    def test_cbhist_switches_page(self, machine_parts, state):
        """Typing 'cbhist' should switch to the clipboard page."""
        machine, host, _, _ = machine_parts
        state.clipboard.record(ClipboardText("a"))
        state.clipboard.record(ClipboardText("b"))

        machine.handle(QueryChanged("cbhist"))

        assert state.window.page == Page.CLIPBOARD_HISTORY
        host.schedule_resize.assert_called_with(window_height(2), RESIZE_DEBOUNCE_MS)
        assert host.render.call_args[0][2] is True

    def test_main_switches_back(self, machine_parts, state):
        """Typing 'main' on the clipboard page should return to MAIN."""
        machine, _, _, _ = machine_parts
        machine.handle(QueryChanged("cbhist"))

        machine.handle(QueryChanged("main"))

        assert state.window.page == Page.MAIN


class TestRunAction:
    """Test RunAction handling per action variant."""

    def test_open_application_discards_focus_handle(self, machine_parts, state):
        """Launching an app should close the window without restoring focus."""
        machine, host, focus, executor = machine_parts
        machine.handle(QueryChanged("firefox"))
        action = OpenApplication("/usr/bin/firefox")

        machine.handle(RunAction(action))

        executor.execute.assert_called_once_with(action, state.config, "firefox")
        host.close.assert_called_once()
        focus.restore.assert_not_called()
        assert state.window.captured_external_focus is None
        assert state.query.raw == ""
        assert state.window.visible is False

    def test_google_search_discards_focus_handle(self, machine_parts):
        """Web searches give focus to the browser, not the previous window."""
        machine, _, focus, executor = machine_parts

        machine.handle(RunAction(GoogleSearch("weather?")))

        executor.execute.assert_called_once()
        focus.restore.assert_not_called()

    def test_copy_restores_focus(self, machine_parts):
        """Copying from history should give focus back to the previous window."""
        machine, _, focus, executor = machine_parts
        action = CopyToClipboard(ClipboardText("x"))

        machine.handle(RunAction(action))

        executor.execute.assert_called_once()
        focus.restore.assert_called_once_with("handle-1")

    def test_shell_command_restores_focus(self, machine_parts):
        """Shell commands should restore the captured focus."""
        machine, _, focus, _ = machine_parts

        machine.handle(RunAction(RunShellCommand(("true",))))

        focus.restore.assert_called_once_with("handle-1")

    def test_no_close_without_clear_on_enter(self, app_entries):
        """Without clear_on_enter the window should stay open after running."""
        config = LauncherConfig(index_roots=(), buffer_rules=BufferRules(clear_on_enter=False))
        state = LauncherState(config=config, options=list(app_entries))
        machine, host, focus, executor = make_machine(state)
        machine.start()

        machine.handle(RunAction(OpenApplication("/usr/bin/foot")))

        executor.execute.assert_called_once()
        host.close.assert_not_called()
        assert state.window.visible is True
        assert state.window.captured_external_focus == "handle-1"

    def test_display_is_ignored(self, machine_parts, state):
        """Display entries should do nothing."""
        machine, host, _, executor = machine_parts

        machine.handle(RunAction(Display()))

        executor.execute.assert_not_called()
        host.close.assert_not_called()

    def test_switch_page_action(self, machine_parts, state):
        """The Clipboard History entry should switch pages without executing."""
        machine, _, _, executor = machine_parts

        machine.handle(RunAction(SwitchPage(Page.CLIPBOARD_HISTORY)))

        assert state.window.page == Page.CLIPBOARD_HISTORY
        executor.execute.assert_not_called()

    def test_quit_action_calls_on_quit_once(self, state):
        """Quit should invoke the quit callback once."""
        on_quit = MagicMock()
        machine, _, _, _ = make_machine(state, on_quit=on_quit)
        machine.start()

        machine.handle(RunAction(Quit()))
        machine.handle(QuitRequested())

        on_quit.assert_called_once()


class TestClipboard:
    """Test clipboard history transitions."""

    def test_duplicate_suppression(self, machine_parts, state):
        """Copying A, A, B, A should record A, B, A (newest first: A, B, A)."""
        machine, _, _, _ = machine_parts
        a, b = ClipboardText("A"), ClipboardText("B")

        for content in (a, a, b, a):
            machine.handle(ClipboardChanged(content))

        assert state.clipboard.items == [a, b, a]

    def test_clipboard_page_rerenders_on_change(self, machine_parts, state):
        """New clipboard content should re-render the clipboard page."""
        machine, host, _, _ = machine_parts
        machine.handle(ShowClipboardHistory())
        host.reset_mock()

        machine.handle(ClipboardChanged(ClipboardText("new")))

        host.render.assert_called_once()
        host.schedule_resize.assert_called_once_with(window_height(1), RESIZE_DEBOUNCE_MS)

    def test_clipboard_hotkey_shows_hidden_window(self, machine_parts, state):
        """The clipboard hotkey should show the window on the clipboard page."""
        machine, host, _, _ = machine_parts
        machine.handle(EscapePressed())
        host.reset_mock()

        machine.handle(HotkeyEvent(CLIPBOARD_ID, True))

        assert state.window.visible is True
        assert state.window.page == Page.CLIPBOARD_HISTORY
        host.open.assert_called_once()


class TestReload:
    """Test background reload and the atomic swap."""

    def test_reload_swaps_config_and_options(self, state):
        """IndexRebuilt from a reload should replace config and options."""
        new_config = LauncherConfig(index_roots=(), clipboard=ClipboardConfig(history_limit=3))
        new_options = [Entry("Zed", "Application", OpenApplication("/usr/bin/zed"))]
        channel = MagicMock()
        on_reloaded = MagicMock()
        reload_index = MagicMock(return_value=IndexRebuilt(new_config, "{}", new_options))

        machine, _, _, _ = make_machine(
            state, channel=channel, reload_index=reload_index,
            background=ImmediateExecutor(), on_reloaded=on_reloaded
        )
        machine.start()

        machine.handle(ReloadConfig())
        posted = channel.post.call_args[0][0]
        machine.handle(posted)

        assert state.config is new_config
        assert state.options == new_options
        assert state.raw_config == "{}"
        assert state.clipboard.limit == 3
        on_reloaded.assert_called_once_with(new_config)

    def test_reload_resets_refinement_base(self, state):
        """After a swap the next query should filter the new option set."""
        machine, _, _, _ = make_machine(state)
        machine.start()
        machine.handle(QueryChanged("f"))

        new_options = [Entry("Fzf", "Application", OpenApplication("/usr/bin/fzf"))]
        machine.handle(IndexRebuilt(state.config, "", new_options))

        assert state.query.previous_normalized_lc is None
        machine.handle(QueryChanged("fz"))
        assert [e.name for e in state.results] == ["Fzf"]

    def test_reload_does_not_recompute_results(self, state):
        """Results stay as they were until the next query change."""
        machine, _, _, _ = make_machine(state)
        machine.start()
        machine.handle(QueryChanged("fi"))
        before = list(state.results)

        machine.handle(IndexRebuilt(state.config, "", []))

        assert state.results == before

    def test_failed_rebuild_posts_nothing(self, state):
        """A rebuild that raises should be logged and not posted."""
        channel = MagicMock()
        reload_index = MagicMock(side_effect=OSError("disk gone"))
        machine, _, _, _ = make_machine(
            state, channel=channel, reload_index=reload_index, background=ImmediateExecutor()
        )

        machine.handle(ReloadConfig())

        channel.post.assert_not_called()

    def test_unknown_message_is_ignored(self, machine_parts, state):
        """Unknown messages should be ignored."""
        machine, host, _, _ = machine_parts

        machine.handle(object())

        host.render.assert_not_called()
        host.close.assert_not_called()
        assert state.window.visible is True


def test_history_limit_trims_oldest():
    """A history limit should drop the oldest entries."""
    history = ClipboardHistory(limit=2)
    for text in ("a", "b", "c"):
        history.record(ClipboardText(text))

    assert history.items == [ClipboardText("c"), ClipboardText("b")]


class TestFocusWorker:
    """Focus capture and restore off the consumer thread."""

    def test_hide_does_not_wait_for_restore(self, state):
        """A slow restore runs on the worker while _hide returns at once."""
        gate = threading.Event()
        worker = ThreadPoolExecutor(max_workers=1)
        channel = MessageChannel()
        machine, host, focus, _ = make_machine(state, channel=channel, focus_worker=worker)
        focus.restore.side_effect = lambda handle: gate.wait(5)
        machine.start()
        worker.submit(lambda: None).result(timeout=5)
        channel.drain(machine.handle)

        machine.handle(EscapePressed())

        assert state.window.visible is False
        host.close.assert_called_once()
        gate.set()
        worker.shutdown(wait=True)
        focus.restore.assert_called_once_with("handle-1")

    def test_show_does_not_wait_for_capture(self, state):
        """The window opens before the capture finishes; the handle arrives as a message."""
        gate = threading.Event()
        worker = ThreadPoolExecutor(max_workers=1)
        channel = MessageChannel()
        machine, host, focus, _ = make_machine(state, channel=channel, focus_worker=worker)
        focus.capture_frontmost.side_effect = lambda: "slow-handle" if gate.wait(5) else None

        machine.start()

        assert state.window.visible is True
        host.open.assert_called_once()
        assert state.window.captured_external_focus is None
        gate.set()
        worker.shutdown(wait=True)
        channel.drain(machine.handle)
        assert state.window.captured_external_focus == "slow-handle"

    def test_capture_arriving_after_hide_is_restored(self, state):
        channel = MessageChannel()
        machine, _, focus, _ = make_machine(state, channel=channel, focus_worker=ImmediateExecutor())
        machine.start()

        machine.handle(EscapePressed())
        channel.drain(machine.handle)

        focus.restore.assert_called_once_with("handle-1")
        assert state.window.captured_external_focus is None

    def test_capture_arriving_after_app_launch_is_dropped(self, state):
        """A launched app takes focus even when the capture came back late."""
        channel = MessageChannel()
        machine, _, focus, _ = make_machine(state, channel=channel, focus_worker=ImmediateExecutor())
        machine.start()

        machine.handle(RunAction(OpenApplication("/usr/bin/firefox")))
        channel.drain(machine.handle)

        focus.restore.assert_not_called()

    def test_stale_capture_ignored(self, state):
        """A capture from an earlier show does not overwrite the current handle."""
        channel = MessageChannel()
        machine, _, _, _ = make_machine(state, channel=channel, focus_worker=ImmediateExecutor())
        machine.start()
        channel.drain(machine.handle)

        machine.handle(FocusCaptured("old-handle", 0))

        assert state.window.captured_external_focus == "handle-1"
