# quicklaunch/LoggingSetup.py
import io
import sys
import logging
from pathlib import Path
from logging.handlers import RotatingFileHandler

LOG_FILE_NAME = "quicklaunch.log"
LOG_FORMAT = '[%(asctime)s] [%(levelname)s] %(message)s'
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5


def resolve_level(level_name: str, verbose: bool) -> int:
    """Map the configured level name to a logging level; -v always wins."""
    if verbose:
        return logging.DEBUG
    level = logging.getLevelName(level_name.upper())
    return level if isinstance(level, int) else logging.INFO


def _use_utf8_console() -> None:
    # Windows consoles default to a legacy code page; app names are arbitrary unicode
    if not hasattr(sys.stdout, 'buffer'):
        return
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace', line_buffering=True)
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8', errors='replace', line_buffering=True)


def setup_logging(logs_dir: Path, verbose: bool = False, is_frozen: bool = False,
                  level_name: str = "INFO", console: bool = True) -> None:
    """
    Configure the root logger: a rotating log file, plus stdout when a
    terminal is attached.

    Args:
        logs_dir: Directory for quicklaunch.log, created if missing
        verbose: Force DEBUG regardless of level_name
        is_frozen: Packaged build without a console; no stdout handler
        level_name: Level from the config file ("INFO", "debug", ...)
        console: If False, log to the file only

    Raises:
        OSError: if the log directory or file cannot be created
    """
    with_console = console and not is_frozen
    if with_console:
        _use_utf8_console()

    logs_dir.mkdir(parents=True, exist_ok=True)
    level = resolve_level(level_name, verbose)
    formatter = logging.Formatter(LOG_FORMAT)

    handlers = [RotatingFileHandler(logs_dir / LOG_FILE_NAME, maxBytes=MAX_LOG_BYTES,
                                    backupCount=LOG_BACKUPS, encoding='utf-8')]
    if with_console:
        handlers.append(logging.StreamHandler(sys.stdout))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    logging.info(f"Logging initialized: level={logging.getLevelName(level)}, "
                 f"console={with_console}, file={logs_dir / LOG_FILE_NAME}")
