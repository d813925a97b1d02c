"""logging utilities with rich support"""

import functools
import inspect
import os
from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.theme import Theme

from lsp_fanout.utils.config_utils import get_config_value
from lsp_fanout.utils.singleton_utils import SingletonInstance


# custom theme for log levels
custom_theme = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "debug": "dim white",
})

LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}


class Logger(SingletonInstance):
    """singleton logger class with rich support"""

    def __init__(
        self,
        prefix: Optional[str] = None,
        level: Optional[str] = None,
        log_dir: Optional[str] = None,
        console: Optional[Console] = None,
    ):
        """initialize logger

        Args:
            prefix: log message prefix ([logging] prefix)
            level: minimum level to emit ([logging] level)
            log_dir: directory for a plain-text log file ([logging] log_dir),
                     console only when unset
            console: rich console to print to (stderr by default)
        """
        self.prefix = prefix or get_config_value("logging", "prefix", "lsp-fanout")
        self.level = (level or get_config_value("logging", "level", "info")).upper()
        self.log_dir = log_dir or get_config_value("logging", "log_dir")
        self.console = console or Console(theme=custom_theme, stderr=True)
        self.log_path: Optional[str] = None
        if self.log_dir:
            self._ensure_log_dir()
            self.log_path = os.path.join(self.log_dir, f"{self.prefix}.log")

    def _ensure_log_dir(self):
        """create log directory if not exists"""
        if not os.path.exists(self.log_dir):
            os.makedirs(self.log_dir)

    def _enabled(self, level: str) -> bool:
        return LEVELS[level] >= LEVELS.get(self.level, LEVELS["INFO"])

    def _format(self, level: str, message: str) -> str:
        """format log message"""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        return f"[{timestamp}] [{self.prefix}] {level}: {message}"

    def _emit(self, level: str, message: str):
        if not self._enabled(level):
            return
        line = self._format(level, message)
        self.console.print(line, style=level.lower(), markup=False, highlight=False)
        if self.log_path:
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(line + "\n")

    def info(self, message: str):
        """log info level message"""
        self._emit("INFO", message)

    def error(self, message: str):
        """log error level message"""
        self._emit("ERROR", message)

    def warning(self, message: str):
        """log warning level message"""
        self._emit("WARNING", message)

    def debug(self, message: str):
        """log debug level message"""
        self._emit("DEBUG", message)


def logging_func(desc: str = ""):
    """decorator for function logging (sync or async)

    Args:
        desc: description of the function
    """
    def decorator(function):
        if inspect.iscoroutinefunction(function):
            @functools.wraps(function)
            async def async_wrapper(*args, **kwargs):
                Logger.instance().debug(f"[start] {function.__name__} - {desc}")
                result = await function(*args, **kwargs)
                Logger.instance().debug(f"[end] {function.__name__}")
                return result
            return async_wrapper

        @functools.wraps(function)
        def wrapper(*args, **kwargs):
            Logger.instance().debug(f"[start] {function.__name__} - {desc}")
            result = function(*args, **kwargs)
            Logger.instance().debug(f"[end] {function.__name__}")
            return result
        return wrapper
    return decorator
