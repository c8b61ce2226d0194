"""Module loggers on top of loguru.

Every module of the package gets its logger with

    ```python
    from .logsetup import get_module_logger
    logger = get_module_logger(__file__)
    logger.trace("Parsed OpusHead: 2ch")
    ```

The returned `OptimizedLogger` replaces the methods of disabled levels by a
no-op, so a `logger.trace(...)` in the parser costs one call when TRACE is
off. `Config.log_level` is the global upper bound; `Config.module_log_levels`
can make single modules more restrictive. Any change of a logging key in
`Config.set()` reconfigures all sinks and all logger instances.

Outputs
-------
- **Console**: colored, with optional line wrapping
  (`Config.terminal_log_max_line_length`)
- **File**: plain text with rotation, retention and compression, active when
  `Config.log_filepath` is set
"""

import pathlib
import sys
import textwrap
from typing import Dict, Optional, Callable
from loguru import logger as loguru_logger
from .packagetypes import LogLevel


class OptimizedLogger:
    """Logger wrapper with null methods for disabled levels.

    Parameters
    ----------
    module_name : str
        Name of the module this logger represents, bound into every record
    effective_level : LogLevel
        The effective log level for this logger instance
    """

    _LEVEL_METHODS = {
        'trace': LogLevel.TRACE,
        'debug': LogLevel.DEBUG,
        'info': LogLevel.INFO,
        'success': LogLevel.SUCCESS,
        'warning': LogLevel.WARNING,
        'error': LogLevel.ERROR,
        'critical': LogLevel.CRITICAL
    }

    def __init__(self, module_name: str, effective_level: LogLevel):
        self.module_name = module_name
        self.effective_level = effective_level
        self._setup_methods()

    def _null_method(self, *args, **kwargs):
        pass

    def _is_level_enabled(self, level: LogLevel) -> bool:
        if self.effective_level == LogLevel.NOTSET:
            return False
        return level.priority >= self.effective_level.priority

    def _setup_methods(self):
        """Assign a real or a null method to each level name."""
        for method_name, level in self._LEVEL_METHODS.items():
            if self._is_level_enabled(level):
                setattr(self, method_name, self._create_log_method(method_name))
            else:
                setattr(self, method_name, self._null_method)

    def _create_log_method(self, level_name: str) -> Callable:
        bound = loguru_logger.bind(module=self.module_name).opt(depth=1)
        loguru_method = getattr(bound, level_name)

        def log_method(message, *args, **kwargs):
            return loguru_method(message, *args, **kwargs)

        return log_method

    def exception(self, message, *args, **kwargs):
        """Log at ERROR level including the current traceback."""
        if self._is_level_enabled(LogLevel.ERROR):
            return loguru_logger.bind(module=self.module_name).opt(depth=1).exception(message, *args, **kwargs)

    def update_level(self, new_effective_level: LogLevel):
        """Switch to a new effective level and rebuild all methods."""
        self.effective_level = new_effective_level
        self._setup_methods()


class LoggingManager:
    """Owner of the loguru sinks and of all module logger instances.

    All state is class-level: there is one logging setup per process.
    """

    _loggers: Dict[str, OptimizedLogger] = {}
    _handler_ids: Dict[str, int] = {}
    _current_config: Optional[tuple] = None
    _initialized = False

    @classmethod
    def _loguru_level_name(cls, log_level: LogLevel) -> str:
        # NOTSET never reaches a sink, configure() adds none
        if log_level == LogLevel.NOTSET:
            return "CRITICAL"
        return log_level.value

    @classmethod
    def _wrap_console_message(cls, message: str) -> str:
        """Wrap long console messages and indent continuation lines below the message column."""
        from .config import Config

        if Config.terminal_log_max_line_length is None:
            return message

        # "YYYY-MM-DD HH:mm:ss.SSS | LEVEL    | module          | "
        prefix_length = 23 + 3 + 8 + 3 + 15 + 3
        max_message_length = max(Config.terminal_log_max_line_length - prefix_length, 20)

        if len(message) <= max_message_length:
            return message

        wrapped_lines = textwrap.wrap(message, width=max_message_length)
        if len(wrapped_lines) <= 1:
            return message

        indent = " " * prefix_length
        return wrapped_lines[0] + "\n" + "\n".join(indent + line for line in wrapped_lines[1:])

    @classmethod
    def _console_format_function(cls, record) -> str:
        # record values are not parsed as color markup
        record["extra"]["wrapped_message"] = cls._wrap_console_message(record["message"])
        return (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[module]: <15}</cyan> | "
            "<level>{extra[wrapped_message]}</level>\n"
            "{exception}"
        )

    @classmethod
    def _create_file_format(cls) -> str:
        return (
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{extra[module]: <15} | "
            "{message}"
        )

    @classmethod
    def _setup_console_handler(cls, log_level: LogLevel):
        def console_sink(message):
            # resolve sys.stderr per message, it may have been replaced
            print(message, end='', file=sys.stderr, flush=True)

        handler_id = loguru_logger.add(
                console_sink,
                format=cls._console_format_function,
                level=cls._loguru_level_name(log_level),
                colorize=True
            )
        cls._handler_ids["console"] = handler_id

    @classmethod
    def _setup_file_handler(cls, log_filepath: pathlib.Path, log_level: LogLevel):
        """Add a rotating file sink; an unusable path is reported on stderr only."""
        try:
            log_filepath.parent.mkdir(parents=True, exist_ok=True)
            handler_id = loguru_logger.add(
                str(log_filepath),
                format=cls._create_file_format(),
                level=cls._loguru_level_name(log_level),
                rotation="10 MB",
                retention="1 week",
                compression="zip",
                encoding="utf-8"
            )
            cls._handler_ids["file"] = handler_id
        except (OSError, PermissionError) as e:
            print(f"Warning: Could not setup file logging to {log_filepath}: {e}", file=sys.stderr)

    @classmethod
    def _validate_log_filepath(cls, log_filepath) -> Optional[pathlib.Path]:
        """Normalize the configured log path; a directory gets 'opushead.log' appended."""
        if log_filepath is None:
            return None
        log_filepath = pathlib.Path(log_filepath)
        if log_filepath.is_dir():
            log_filepath = log_filepath / "opushead.log"
        return log_filepath

    @classmethod
    def _remove_handlers(cls):
        for handler_id in cls._handler_ids.values():
            try:
                loguru_logger.remove(handler_id)
            except ValueError:
                # Handler already removed
                pass
        cls._handler_ids.clear()

    @classmethod
    def configure(cls, force_reconfigure: bool = False):
        """Set up sinks and logger levels from the current `Config`.

        Parameters
        ----------
        force_reconfigure : bool, optional
            Rebuild even if the logging configuration did not change
        """
        from .config import Config  # Import here to avoid circular imports

        current_config = (Config.log_level,
                          Config.log_filepath,
                          dict(Config.module_log_levels),
                          Config.terminal_log_max_line_length)

        if not force_reconfigure and cls._initialized and cls._current_config == current_config:
            return

        if cls._initialized:
            cls._remove_handlers()
        else:
            # On first initialization, remove loguru's default handler
            loguru_logger.remove()

        cls._current_config = current_config

        if Config.log_level != LogLevel.NOTSET:
            cls._setup_console_handler(Config.log_level)
            log_filepath = cls._validate_log_filepath(Config.log_filepath)
            if log_filepath:
                cls._setup_file_handler(log_filepath, Config.log_level)

        for module_name, logger_instance in cls._loggers.items():
            logger_instance.update_level(Config.get_effective_log_level(module_name))

        cls._initialized = True

    @classmethod
    def reconfigure(cls):
        """Rebuild the logging setup regardless of detected changes."""
        cls.configure(force_reconfigure=True)

    @classmethod
    def get_logger(cls, module_name: str) -> OptimizedLogger:
        """Return the logger instance of `module_name`, creating it on first use."""
        if not cls._initialized:
            cls.configure()

        from .config import Config
        effective_level = Config.get_effective_log_level(module_name)

        if module_name in cls._loggers:
            cls._loggers[module_name].update_level(effective_level)
        else:
            cls._loggers[module_name] = OptimizedLogger(module_name, effective_level)

        return cls._loggers[module_name]


def get_module_logger(module_file: str) -> OptimizedLogger:
    """Return the logger of the module whose file path is `module_file`.

    The module name is the file stem, so `get_module_logger(__file__)` in
    `opus_header.py` logs as 'opus_header'.
    """
    module_name = pathlib.Path(module_file).stem
    return LoggingManager.get_logger(module_name)
