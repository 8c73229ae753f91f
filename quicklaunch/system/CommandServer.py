"""
CommandServer - single-instance control socket.

The first launcher process binds a Unix socket. A later process connects,
writes one command and exits, so a desktop keybinding can run
``quicklaunch`` (toggle) or ``quicklaunch --cphist`` (clipboard history)
against the running instance.
"""
import logging
import os
import socket
import threading
from pathlib import Path
from typing import Callable, Optional

COMMANDS = ("toggle", "clipboard", "reload")
_MAX_COMMAND_BYTES = 64


def send_command(socket_path: Path, command: str, timeout: float = 1.0) -> bool:
    """Send command to a running instance.

    Returns:
        True if an instance accepted the connection
    """
    if not hasattr(socket, 'AF_UNIX'):
        return False
    try:
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as client:
            client.settimeout(timeout)
            client.connect(str(socket_path))
            client.sendall(command.encode('utf-8'))
    except OSError:
        return False
    logging.info(f"CommandServer: sent '{command}' to running instance")
    return True


class CommandServer:
    """Accepts commands on a Unix socket and hands them to on_command.

    Args:
        socket_path: Filesystem path of the socket
        on_command: Called from the server thread with each known command
        verbose: Enable verbose logging
    """

    def __init__(self, socket_path: Path, on_command: Callable[[str], None],
                 verbose: bool = False) -> None:
        self.socket_path = socket_path
        self.on_command = on_command
        self.verbose = verbose

        self._server: Optional[socket.socket] = None
        self._thread: Optional[threading.Thread] = None
        self._running = threading.Event()

    def start(self) -> bool:
        """Bind the socket and start serving.

        A stale socket file (left by a crashed instance) is removed first.

        Returns:
            False if the platform has no Unix sockets or binding failed
        """
        if not hasattr(socket, 'AF_UNIX'):
            logging.info("CommandServer: Unix sockets unavailable, not starting")
            return False

        if self.socket_path.exists():
            try:
                self.socket_path.unlink()
            except OSError as e:
                logging.warning(f"CommandServer: cannot remove stale socket {self.socket_path}: {e}")
                return False

        server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            server.bind(str(self.socket_path))
            os.chmod(self.socket_path, 0o600)
            server.listen(4)
        except OSError as e:
            server.close()
            logging.warning(f"CommandServer: cannot bind {self.socket_path}: {e}")
            return False

        self._server = server
        self._running.set()
        self._thread = threading.Thread(target=self._serve, name="CommandServer", daemon=True)
        self._thread.start()
        logging.info(f"CommandServer: listening on {self.socket_path}")
        return True

    def stop(self) -> None:
        if self._server is None:
            return
        self._running.clear()
        try:
            self._server.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            logging.debug(f"CommandServer: shutdown: {e}")
        self._server.close()
        self._server = None
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
        try:
            self.socket_path.unlink()
        except OSError as e:
            logging.debug(f"CommandServer: cannot remove {self.socket_path}: {e}")
        if self.verbose:
            logging.info("CommandServer: stopped")

    def _serve(self) -> None:
        server = self._server
        while self._running.is_set():
            try:
                connection, _ = server.accept()
            except OSError:
                # socket closed by stop()
                break
            with connection:
                connection.settimeout(1.0)
                try:
                    data = connection.recv(_MAX_COMMAND_BYTES)
                except OSError as e:
                    logging.debug(f"CommandServer: read failed: {e}")
                    continue
            self.handle(data.decode('utf-8', errors='replace'))

    def handle(self, text: str) -> None:
        command = text.strip().lower()
        if command not in COMMANDS:
            logging.debug(f"CommandServer: ignoring unknown command '{command}'")
            return
        if self.verbose:
            logging.info(f"CommandServer: received '{command}'")
        self.on_command(command)
