# main.py
import sys
import logging
from typing import List, Optional

from quicklaunch.Config import load_config
from quicklaunch.LoggingSetup import setup_logging
from quicklaunch.PathResolver import PathResolver
from quicklaunch.system.CommandServer import send_command
from quicklaunch.system.GlobalHotkeyListener import HotkeyRegistrationError


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point.

    Flags:
        -v        verbose (DEBUG) logging
        --cphist  open the clipboard history page

    A running instance that accepts the command socket is toggled (or
    switched to clipboard history) instead of starting a second launcher.

    Returns:
        Process exit status
    """
    argv = sys.argv[1:] if argv is None else argv
    verbose = "-v" in argv
    show_clipboard = "--cphist" in argv

    # Detect if running from frozen executable
    is_frozen = getattr(sys, 'frozen', False)

    paths = PathResolver().paths

    if send_command(paths.socket_path, "clipboard" if show_clipboard else "toggle"):
        return 0

    config, raw_config = load_config(paths.config_file)

    try:
        setup_logging(paths.logs_dir, verbose=verbose, is_frozen=is_frozen,
                      level_name=config.log.level, console=config.log.console)
    except OSError as e:
        print(f"Failed to initialize logging in {paths.logs_dir}: {e}", file=sys.stderr)
        return 1

    from quicklaunch.LauncherApp import LauncherApp
    from quicklaunch.messages import ShowClipboardHistory

    app = LauncherApp(
        config,
        raw_config,
        config_path=paths.config_file,
        socket_path=paths.socket_path,
        verbose=verbose
    )

    if show_clipboard:
        # handled once the main loop runs, after start()
        app.channel.post(ShowClipboardHistory())

    try:
        app.run()
    except HotkeyRegistrationError as e:
        logging.error(f"Cannot register toggle hotkey '{config.toggle_hotkey}': {e}")
        app.stop()
        return 1
    except Exception as e:
        logging.error(f"ERROR: {type(e).__name__}: {e}")
        import traceback
        logging.error(traceback.format_exc())
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
