"""
LauncherStateMachine - the single consumer of the MessageChannel.

Every transition runs on the consumer thread and owns LauncherState
exclusively; producers only ever post messages. The captured external
focus handle is consumed at most once: every path that gives focus back
(or decides not to) takes the handle out of WindowState first.

With a focus worker, capture and restore run on that worker: the captured
handle comes back as a FocusCaptured message tagged with the show it
belongs to. A window closed before its capture arrives records whether
the late handle is restored or dropped.
"""
import logging
from concurrent.futures import Executor, Future
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from quicklaunch.LauncherState import (
    DEFAULT_WINDOW_HEIGHT,
    RESIZE_DEBOUNCE_MS,
    LauncherState,
    window_height,
)
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
from quicklaunch.types import Display, GoogleSearch, OpenApplication, Page, Quit, SwitchPage

if TYPE_CHECKING:
    from quicklaunch.ActionExecutor import ActionExecutor
    from quicklaunch.MessageChannel import MessageChannel
    from quicklaunch.Config import LauncherConfig
    from quicklaunch.protocols import FocusCapture, WindowHost
    from quicklaunch.search.SearchEngine import SearchEngine

# Launched apps and the browser take focus themselves
_FOCUS_TAKING_ACTIONS = (OpenApplication, GoogleSearch)


class LauncherStateMachine:
    """Applies messages to LauncherState and drives the window host.

    Args:
        state: State to own
        host: Window surface
        focus: Captures and restores external focus
        search_engine: Query filtering
        action_executor: Side effects of activated entries
        channel: Channel background reloads post IndexRebuilt to
        reload_index: Loads config and rebuilds the index (runs off-thread)
        background: Executor reloads are submitted to
        on_quit: Called once when the launcher should exit
        on_reloaded: Called with the new config after IndexRebuilt is applied
        focus_worker: Single-thread executor for focus capture and restore;
            None runs them inline
        verbose: Enable verbose logging
    """

    def __init__(
        self,
        state: LauncherState,
        host: 'WindowHost',
        focus: 'FocusCapture',
        search_engine: 'SearchEngine',
        action_executor: 'ActionExecutor',
        channel: Optional['MessageChannel'] = None,
        reload_index: Optional[Callable[[], IndexRebuilt]] = None,
        background: Optional[Executor] = None,
        on_quit: Optional[Callable[[], None]] = None,
        on_reloaded: Optional[Callable[['LauncherConfig'], None]] = None,
        focus_worker: Optional[Executor] = None,
        verbose: bool = False
    ) -> None:
        self.state = state
        self._host = host
        self._focus = focus
        self._search = search_engine
        self._executor = action_executor
        self._channel = channel
        self._reload_index = reload_index
        self._background = background
        self._on_quit = on_quit
        self._on_reloaded = on_reloaded
        self._focus_worker = focus_worker
        self._verbose = verbose

        self._show_generation = 0
        self._pending_capture: Optional[int] = None
        # generation -> restore the late handle?
        self._closed_before_capture: Dict[int, bool] = {}

        self.toggle_hotkey_id: Optional[int] = None
        self.clipboard_hotkey_id: Optional[int] = None
        self._quitting = False

        self._handlers = {
            HotkeyEvent: self._on_hotkey,
            ToggleWindow: lambda _: self._toggle(),
            ShowClipboardHistory: lambda _: self._show_clipboard_history(),
            QuitRequested: lambda _: self._quit(),
            QueryChanged: self._on_query_changed,
            RunAction: self._on_run_action,
            WindowFocusChanged: self._on_focus_changed,
            WindowCloseRequested: lambda _: self._hide(),
            EscapePressed: lambda _: self._hide(),
            ClipboardChanged: self._on_clipboard_changed,
            FocusCaptured: self._on_focus_captured,
            ReloadConfig: lambda _: self._request_reload(),
            IndexRebuilt: self._on_index_rebuilt,
        }

    def start(self) -> None:
        """Open the window for the first time, capturing external focus."""
        window = self.state.window
        self._capture_focus()
        window.visible = True
        self._host.open()
        self._host.focus()
        self._host.set_query(self.state.query.raw)
        self._render()

        if self._verbose:
            logging.info("LauncherStateMachine: started")

    def handle(self, message) -> None:
        handler = self._handlers.get(type(message))
        if handler is None:
            logging.debug(f"LauncherStateMachine: ignoring {message!r}")
            return
        if self._verbose:
            logging.debug(f"LauncherStateMachine: handling {type(message).__name__}")
        handler(message)

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------

    def _on_hotkey(self, event: HotkeyEvent) -> None:
        if not event.pressed:
            return
        if event.hotkey_id == self.toggle_hotkey_id:
            self._toggle()
        elif event.hotkey_id is not None and event.hotkey_id == self.clipboard_hotkey_id:
            self._show_clipboard_history()

    def _toggle(self) -> None:
        if self.state.window.visible:
            self._hide()
        else:
            self._show()

    def _show(self) -> None:
        window = self.state.window
        if window.visible:
            return
        self._capture_focus()
        self._host.open()
        self._host.focus()
        window.visible = True

        if self._verbose:
            logging.info("LauncherStateMachine: window shown")

    def _show_clipboard_history(self) -> None:
        self._show()
        self._switch_page(Page.CLIPBOARD_HISTORY)

    def _hide(self) -> None:
        window = self.state.window
        if not window.visible:
            return

        self._host.close()
        self._release_focus(restore=True)
        self._reset_after_close(self.state.config.buffer_rules.clear_on_hide)

        if self._verbose:
            logging.info("LauncherStateMachine: window hidden")

    def _take_focus_handle(self):
        window = self.state.window
        handle = window.captured_external_focus
        window.captured_external_focus = None
        return handle

    def _release_focus(self, restore: bool) -> None:
        """Give the captured handle back (or drop it); consumed exactly once."""
        handle = self._take_focus_handle()
        if self._pending_capture is not None:
            self._closed_before_capture[self._pending_capture] = restore
            self._pending_capture = None
        elif restore:
            self._restore_focus(handle)

    def _capture_focus(self) -> None:
        window = self.state.window
        window.captured_external_focus = None
        if self._focus_worker is None or self._channel is None:
            window.captured_external_focus = self._focus.capture_frontmost()
            return

        self._show_generation += 1
        generation = self._show_generation
        self._pending_capture = generation
        future = self._focus_worker.submit(self._focus.capture_frontmost)
        future.add_done_callback(lambda f: self._post_captured(f, generation))

    def _post_captured(self, future: Future, generation: int) -> None:
        # Runs on the focus worker
        error = future.exception()
        if error is not None:
            logging.error(f"LauncherStateMachine: focus capture failed: {error}")
        handle = None if error is not None else future.result()
        self._channel.post(FocusCaptured(handle, generation))

    def _on_focus_captured(self, event: FocusCaptured) -> None:
        restore = self._closed_before_capture.pop(event.generation, None)
        if restore is not None:
            if restore:
                self._restore_focus(event.handle)
            return
        if event.generation == self._pending_capture:
            self._pending_capture = None
            self.state.window.captured_external_focus = event.handle

    def _restore_focus(self, handle: Any) -> None:
        if handle is None:
            return
        if self._focus_worker is None:
            self._focus.restore(handle)
            return
        future = self._focus_worker.submit(self._focus.restore, handle)
        future.add_done_callback(_log_restore_failure)

    def _reset_after_close(self, clear_query: bool) -> None:
        window = self.state.window
        window.visible = False
        window.focused = False
        window.page = Page.MAIN
        self.state.clear_results()
        if clear_query:
            self.state.query.clear()
            self._host.set_query("")
        self._host.resize(DEFAULT_WINDOW_HEIGHT)
        self._render()

    def _on_focus_changed(self, event: WindowFocusChanged) -> None:
        window = self.state.window
        if event.focused:
            window.focused = True
        elif window.visible and window.focused:
            self._hide()

    # ------------------------------------------------------------------
    # Query and pages
    # ------------------------------------------------------------------

    def _on_query_changed(self, event: QueryChanged) -> None:
        previous_count = len(self.state.results)
        outcome = self._search.search(self.state, event.text)

        if outcome.switch_page is not None:
            self._switch_page(outcome.switch_page)
            return

        self._render()
        if outcome.collapse:
            self._host.resize(DEFAULT_WINDOW_HEIGHT)
            return
        self._resize_for_rows(previous_count)

    def _switch_page(self, page: Page) -> None:
        previous_count = len(self.state.results)
        self.state.window.page = page
        self.state.clear_results()
        self._render()
        self._resize_for_rows(previous_count)

        if self._verbose:
            logging.info(f"LauncherStateMachine: page -> {page.name}")

    def _resize_for_rows(self, previous_count: int) -> None:
        page = self.state.window.page
        if page == Page.CLIPBOARD_HISTORY:
            rows = len(self.state.clipboard)
        elif len(self.state.results) != previous_count:
            rows = len(self.state.results)
        else:
            return
        self._host.schedule_resize(window_height(rows), RESIZE_DEBOUNCE_MS)

    def _render(self) -> None:
        self._host.render(
            self.state.results,
            self.state.clipboard.items,
            self.state.window.page == Page.CLIPBOARD_HISTORY,
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _on_run_action(self, event: RunAction) -> None:
        action = event.action
        if isinstance(action, Display):
            return
        if isinstance(action, Quit):
            self._quit()
            return
        if isinstance(action, SwitchPage):
            self._switch_page(action.page)
            return

        self._executor.execute(action, self.state.config, self.state.query.raw)

        if not self.state.config.buffer_rules.clear_on_enter:
            return

        self._host.close()
        self._release_focus(restore=not isinstance(action, _FOCUS_TAKING_ACTIONS))
        self._reset_after_close(clear_query=True)

    def _quit(self) -> None:
        if self._quitting:
            return
        self._quitting = True
        logging.info("LauncherStateMachine: quit requested")
        if self._on_quit is not None:
            self._on_quit()

    # ------------------------------------------------------------------
    # Clipboard and reload
    # ------------------------------------------------------------------

    def _on_clipboard_changed(self, event: ClipboardChanged) -> None:
        if not self.state.clipboard.record(event.content):
            return
        if self.state.window.page == Page.CLIPBOARD_HISTORY:
            self._render()
            self._resize_for_rows(len(self.state.results))

    def _request_reload(self) -> None:
        if self._reload_index is None or self._background is None:
            logging.warning("LauncherStateMachine: reload requested but no rebuild is configured")
            return
        logging.info("LauncherStateMachine: reloading config and index")
        future = self._background.submit(self._reload_index)
        future.add_done_callback(self._post_rebuilt)

    def _post_rebuilt(self, future: Future) -> None:
        # Runs on the background thread
        error = future.exception()
        if error is not None:
            logging.error(f"LauncherStateMachine: index rebuild failed: {error}")
            return
        if self._channel is not None:
            self._channel.post(future.result())

    def _on_index_rebuilt(self, event: IndexRebuilt) -> None:
        state = self.state
        state.config = event.config
        state.raw_config = event.raw_config
        state.options = event.options
        state.clipboard.limit = event.config.clipboard.history_limit
        # Next query rescans the new option set
        state.candidates = []
        state.query.previous_normalized_lc = None

        logging.info(f"LauncherStateMachine: index swapped, {len(event.options)} entries")
        if self._on_reloaded is not None:
            self._on_reloaded(event.config)


def _log_restore_failure(future: Future) -> None:
    error = future.exception()
    if error is not None:
        logging.error(f"LauncherStateMachine: focus restore failed: {error}")
