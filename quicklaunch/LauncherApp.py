import logging
import signal
import tkinter as tk
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Optional

from quicklaunch.ActionExecutor import ActionExecutor
from quicklaunch.Calculator import Calculator
from quicklaunch.ClipboardHistory import ClipboardHistory
from quicklaunch.Config import LauncherConfig, load_config
from quicklaunch.LauncherState import LauncherState
from quicklaunch.LauncherStateMachine import LauncherStateMachine
from quicklaunch.MessageChannel import MessageChannel
from quicklaunch.gui.LauncherWindow import LauncherWindow
from quicklaunch.index.IconResolver import PillowIconResolver
from quicklaunch.index.IndexBuilder import IndexBuilder
from quicklaunch.index.IndexWatcher import IndexWatcher
from quicklaunch.messages import (
    ClipboardChanged,
    HotkeyEvent,
    IndexRebuilt,
    QuitRequested,
    ReloadConfig,
    ShowClipboardHistory,
    ToggleWindow,
)
from quicklaunch.search.SearchEngine import SearchEngine
from quicklaunch.system.ClipboardPoller import ClipboardPoller, SystemClipboardReader
from quicklaunch.system.CommandServer import CommandServer
from quicklaunch.system.FocusTracker import FocusTracker
from quicklaunch.system.GlobalHotkeyListener import GlobalHotkeyListener, HotkeyRegistrationError

_SOCKET_MESSAGES = {
    "toggle": ToggleWindow,
    "clipboard": ShowClipboardHistory,
    "reload": ReloadConfig,
}


class LauncherApp:
    """Composes producers, the state machine and the window.

    Every producer posts to one MessageChannel; the tk main loop drains it
    on the main thread. Construction does not start anything: start() builds
    the initial index, registers hotkeys and opens the window.

    Args:
        config: Config loaded at startup
        raw_config: Raw text of the config file
        config_path: Config file, re-read on reload
        socket_path: Command socket path, None to disable the command server
        root: Tk root; created (withdrawn) when not given
        verbose: Enable verbose logging
    """

    def __init__(
        self,
        config: LauncherConfig,
        raw_config: str,
        config_path: Path,
        socket_path: Optional[Path] = None,
        root: Optional[tk.Tk] = None,
        verbose: bool = False
    ) -> None:
        self.config_path = config_path
        self._verbose = verbose
        self._is_stopped = False

        self.root = root or tk.Tk()
        self.root.withdraw()

        self.channel = MessageChannel(wakeup=self._wakeup, verbose=verbose)
        self.state = LauncherState(
            config=config,
            raw_config=raw_config,
            clipboard=ClipboardHistory(limit=config.clipboard.history_limit, verbose=verbose),
        )

        self._search_pool = ThreadPoolExecutor(thread_name_prefix="search")
        self._background = ThreadPoolExecutor(max_workers=1, thread_name_prefix="reload")
        # One thread keeps capture and restore in request order
        self._focus_worker = ThreadPoolExecutor(max_workers=1, thread_name_prefix="focus")
        self.index_builder = IndexBuilder(icon_resolver=PillowIconResolver(), verbose=verbose)

        self.window = LauncherWindow(
            self.root,
            post=self.channel.post,
            placeholder=config.placeholder,
            show_icons=config.theme.show_icons,
            verbose=verbose
        )

        self.machine = LauncherStateMachine(
            state=self.state,
            host=self.window,
            focus=FocusTracker(verbose=verbose),
            search_engine=SearchEngine(Calculator(), executor=self._search_pool, verbose=verbose),
            action_executor=ActionExecutor(verbose=verbose),
            channel=self.channel,
            reload_index=self.reload_index,
            background=self._background,
            on_quit=self.stop,
            on_reloaded=self._on_reloaded,
            focus_worker=self._focus_worker,
            verbose=verbose
        )

        self.hotkeys = GlobalHotkeyListener(
            callback=lambda hotkey_id, pressed: self.channel.post(HotkeyEvent(hotkey_id, pressed)),
            verbose=verbose
        )
        self.clipboard_poller = ClipboardPoller(
            SystemClipboardReader(verbose=verbose),
            on_change=lambda content: self.channel.post(ClipboardChanged(content)),
            interval=config.clipboard.poll_interval,
            verbose=verbose
        )
        self.watcher = IndexWatcher(
            config_path,
            [index_root.resolved_path for index_root in config.index_roots],
            on_change=lambda: self.channel.post(ReloadConfig()),
            debounce=config.watcher.debounce,
            use_polling=config.watcher.use_polling,
            verbose=verbose
        )
        self.command_server = (
            CommandServer(socket_path, self._on_socket_command, verbose=verbose)
            if socket_path is not None else None
        )

    def _wakeup(self) -> None:
        # Called from producer threads; the drain runs on the tk main thread
        try:
            self.root.after(0, self._drain)
        except (RuntimeError, tk.TclError):
            logging.debug("LauncherApp: main loop gone, message left in channel")

    def _drain(self) -> None:
        self.channel.drain(self.machine.handle)

    def _on_socket_command(self, command: str) -> None:
        self.channel.post(_SOCKET_MESSAGES[command]())

    def register_hotkeys(self) -> None:
        """Register configured hotkeys.

        Raises:
            HotkeyRegistrationError: if the toggle hotkey is invalid. A bad
                clipboard hotkey only logs a warning.
        """
        config = self.state.config
        self.machine.toggle_hotkey_id = self.hotkeys.register(config.toggle_hotkey)

        if config.clipboard_hotkey:
            try:
                self.machine.clipboard_hotkey_id = self.hotkeys.register(config.clipboard_hotkey)
            except HotkeyRegistrationError as e:
                logging.warning(f"LauncherApp: clipboard hotkey '{config.clipboard_hotkey}' "
                                f"not registered: {e}")

    def reload_index(self) -> IndexRebuilt:
        """Load the config file and rebuild the option set (off the main thread)."""
        config, raw = load_config(self.config_path)
        options = self.index_builder.build(config)
        return IndexRebuilt(config=config, raw_config=raw, options=options)

    def _on_reloaded(self, config: LauncherConfig) -> None:
        self.clipboard_poller.interval = config.clipboard.poll_interval
        # Restarting the observer joins its thread; keep that off the tk thread
        roots = [index_root.resolved_path for index_root in config.index_roots]
        future = self._background.submit(self.watcher.reset_roots, roots)
        future.add_done_callback(_log_watcher_failure)

    def start(self) -> None:
        logging.info("Starting Quicklaunch...")
        self.register_hotkeys()

        self.state.options = self.index_builder.build(self.state.config)

        self.hotkeys.start()
        self.clipboard_poller.start()
        self.watcher.start()
        if self.command_server is not None:
            self.command_server.start()

        self.machine.start()
        logging.info("Quicklaunch running.")

    def stop(self) -> None:
        if self._is_stopped:
            return
        self._is_stopped = True

        logging.info("Stopping Quicklaunch...")
        self.channel.close()
        self.hotkeys.stop()
        self.clipboard_poller.stop()
        self.watcher.stop()
        if self.command_server is not None:
            self.command_server.stop()
        self._background.shutdown(wait=False)
        self._focus_worker.shutdown(wait=False)
        self._search_pool.shutdown(wait=False)
        self.window.quit()
        logging.info("Quicklaunch stopped.")

    def run(self) -> None:
        self.start()

        def signal_handler(sig: int, frame: Any) -> None:
            self.channel.post(QuitRequested())

        signal.signal(signal.SIGINT, signal_handler)

        try:
            self.root.mainloop()
        except KeyboardInterrupt:
            logging.info("LauncherApp: interrupted")
        finally:
            self.stop()
            try:
                self.root.destroy()
            except tk.TclError:
                logging.debug("LauncherApp: root already destroyed")


def _log_watcher_failure(future: Future) -> None:
    error = future.exception()
    if error is not None:
        logging.error(f"LauncherApp: index watcher restart failed: {error}")
