import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

from colorama import Fore, Style, init

from fastbackward.utils import constants

init(autoreset=True)

CONSOLE_FORMAT = '[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s'
FILE_FORMAT = '[%(asctime)s] [%(levelname)s] [%(name)s] [%(funcName)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

LEVEL_COLORS = {
    logging.DEBUG: Fore.WHITE + Style.DIM,
    logging.INFO: Fore.CYAN,
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.RED + Style.BRIGHT,
}


class ColoredFormatter(logging.Formatter):
    """Console formatter that colours the level name; the record itself is left as is."""

    def format(self, record):
        color = LEVEL_COLORS.get(record.levelno)
        if color is None:
            return super().format(record)
        shown = logging.makeLogRecord(record.__dict__)
        shown.levelname = f"{color}{record.levelname}{Style.RESET_ALL}"
        return super().format(shown)


class LoggingConfigurator:
    """
    Root logger setup for a selection run.

    The console handler follows the configured level; the rotating UTF-8 file
    under ``log_dir`` always records DEBUG, so pruning decisions are kept even
    when the console is quiet.
    """

    def __init__(self, config: dict):
        self.config = config.get('logging', {})
        self.log_level = getattr(logging, str(self.config.get('level', 'INFO')).upper())
        self.log_dir = Path(self.config.get('log_dir', 'logs'))

    def setup(self) -> None:
        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG if self.config.get('log_to_file', True) else self.log_level)
        root_logger.handlers = []

        if self.config.get('log_to_console', True):
            root_logger.addHandler(self._console_handler())
        if self.config.get('log_to_file', True):
            self.log_dir.mkdir(parents=True, exist_ok=True)
            root_logger.addHandler(self._file_handler(self.log_dir / constants.LOG_FILE))

    def _console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(self.log_level)
        formatter_cls = ColoredFormatter if self.config.get('colorful_console', True) else logging.Formatter
        handler.setFormatter(formatter_cls(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
        return handler

    def _file_handler(self, path: Path) -> logging.Handler:
        handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding='utf-8')
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(FILE_FORMAT))
        return handler

    def get_logger(self, name: str) -> logging.Logger:
        return logging.getLogger(name)
