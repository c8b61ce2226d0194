"""Package configuration with YAML import/export.

All configuration parameters are class variables of `Config`, so IDEs and
type checkers see them directly. Runtime changes go through `Config.set()`,
which validates every value and reconfigures logging when one of the logging
parameters changed.

Configuration Categories
------------------------
- **Configurable Parameters**: listed in `_CONFIGURABLE_KEYS`; changeable at
  runtime and included in YAML export/import.
- **Immutable Parameters**: package constants such as `version`.

Usage Examples
--------------
    ```python
    from opushead.config import Config
    from opushead.packagetypes import LogLevel

    Config.set(log_level=LogLevel.TRACE, opus_head_search_limit=None)
    Config.export_to_yaml(pathlib.Path("opushead.yaml"))
    Config.import_from_yaml(pathlib.Path("opushead.yaml"))
    ```
"""

from __future__ import annotations # This has to be the first line of code.
import pathlib
import inspect
import re
import yaml
from datetime import datetime
from typing import Dict, Any
from .packagetypes import LogLevel


class Config:
    """Package wide configuration.

    Attributes
    ----------
    log_level : LogLevel
        Global logging level that acts as upper bound for all module loggers
    log_filepath : pathlib.Path or None
        File path for log output, None disables file logging
    module_log_levels : Dict[str, LogLevel]
        Module-specific log level overrides
    terminal_log_max_line_length : int or None
        Maximum line length for terminal output, None disables wrapping
    opus_head_search_limit : int or None
        Number of leading bytes searched for the OpusHead magic by
        `find_opus_header()`, None searches the whole buffer
    opus_header_array_name : str
        Name of the Zarr array that stores a canonical OpusHead packet
    """

    # configurable values
    # -------------------
    _CONFIGURABLE_KEYS = [  "log_level",
                            "log_filepath",
                            "module_log_levels",
                            "terminal_log_max_line_length",
                            "opus_head_search_limit",
                            "opus_header_array_name"
                         ]

    log_level: LogLevel = LogLevel.ERROR    # Global logging level (acts as upper bound)
    log_filepath: pathlib.Path|None = None  # set a logging path if you want to write logging outputs
    module_log_levels: Dict[str, LogLevel] = {}  # Module-specific log levels
    terminal_log_max_line_length: int|None = 120  # Maximum line length for terminal output (None = no wrapping)
    opus_head_search_limit: int|None = 64 * 1024  # Bytes searched for 'OpusHead' in raw streams (None = all)
    opus_header_array_name: str = "opus_header"  # Zarr array name of a stored OpusHead packet

    # immutable keys  (can not be changed during runtime; only changeable at this position)
    # --------------
    version = (1,0)                       # package version tuple; (Major, Minor, Patch)

    @classmethod
    def set_module_log_level(cls, module_name: str, log_level: LogLevel):
        """Set the log level of one module and reconfigure logging.

        The module level can be more restrictive than the global level, never
        less restrictive.
        """
        if not isinstance(log_level, LogLevel):
            raise TypeError(f"Module log level for '{module_name}' must be LogLevel, got {type(log_level).__name__}")
        cls.module_log_levels[module_name] = log_level
        from .logsetup import LoggingManager
        LoggingManager.reconfigure()

    @classmethod
    def get_effective_log_level(cls, module_name: str) -> LogLevel:
        """Return the log level a module logger really uses.

        The global level is an upper bound: the more restrictive of the global
        and the module-specific level wins.

        Parameters
        ----------
        module_name : str
            Name of the module to query

        Returns
        -------
        LogLevel
            The effective log level for the specified module
        """
        module_level = cls.module_log_levels.get(module_name, cls.log_level)
        if cls.log_level.priority > module_level.priority:
            return cls.log_level
        return module_level

    @classmethod
    def _serialize_value(cls, value: Any) -> Any:
        """Convert a configuration value into a YAML-friendly representation."""
        if value is None:
            return None
        elif isinstance(value, pathlib.Path):
            return str(value)
        elif isinstance(value, LogLevel):
            return value.value
        elif isinstance(value, dict):
            return {k: cls._serialize_value(v) for k, v in value.items()}
        elif isinstance(value, (list, tuple)):
            return [cls._serialize_value(item) for item in value]
        else:
            return value

    @classmethod
    def _deserialize_value(cls, key: str, value: Any) -> Any:
        """Convert a YAML-loaded value back into the type `key` expects.

        Raises
        ------
        ValueError
            If a log level string is not a valid `LogLevel`
        """
        if value is None:
            return None
        try:
            if key == "log_level":
                return LogLevel(value)
            if key == "module_log_levels":
                return {mod_name: LogLevel(mod_level) for mod_name, mod_level in value.items()}
        except ValueError:
            raise ValueError(f"Invalid LogLevel value in '{key}': {value}")
        if key == "log_filepath":
            return pathlib.Path(value)
        return value

    @classmethod
    def _extract_inline_comments(cls) -> Dict[str, str]:
        """Collect the inline comments of configurable class variables."""
        try:
            source = inspect.getsource(cls)
        except (OSError, TypeError):
            return {}

        comments = {}
        pattern = r'^\s*(\w+)\s*[:=].*?#\s*(.+)$'
        for line in source.split('\n'):
            match = re.match(pattern, line.strip())
            if match:
                var_name, comment = match.groups()
                if var_name in cls._CONFIGURABLE_KEYS:
                    comments[var_name] = comment.strip()
        return comments

    @classmethod
    def export_to_yaml(cls, filepath: pathlib.Path, include_metadata: bool = True):
        """Write all configurable parameters into a commented YAML file.

        Parameters
        ----------
        filepath : pathlib.Path
            Path where the YAML file should be written
        include_metadata : bool, optional
            Whether to include an export header comment, by default True
        """
        filepath.parent.mkdir(parents=True, exist_ok=True)

        config_data = {key: cls._serialize_value(getattr(cls, key)) for key in cls._CONFIGURABLE_KEYS}
        comments = cls._extract_inline_comments()

        yaml_lines = []
        if include_metadata:
            yaml_lines.append(f"# Configuration exported on {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
            yaml_lines.append("# This file was automatically generated from the opushead Config class")
            yaml_lines.append("")

        yaml_content = yaml.dump(config_data, default_flow_style=False, sort_keys=False)
        for line in yaml_content.split('\n'):
            key_match = re.match(r'^(\w+):', line)
            if key_match and key_match.group(1) in comments:
                line = f"{line}  # {comments[key_match.group(1)]}"
            yaml_lines.append(line)

        with open(filepath, 'w', encoding='utf-8') as f:
            f.write('\n'.join(yaml_lines))

    @classmethod
    def import_from_yaml(cls, filepath: pathlib.Path):
        """Load configurable parameters from a YAML file.

        Unknown keys are ignored. All values pass through `set()`.

        Raises
        ------
        FileNotFoundError
            If the specified YAML file does not exist
        yaml.YAMLError
            If the YAML file is malformed
        ValueError, TypeError
            If a value fails validation
        """
        with open(filepath, 'r', encoding='utf-8') as f:
            yaml_data = yaml.safe_load(f)

        if not yaml_data:
            return

        config_updates = {
            key: cls._deserialize_value(key, value)
            for key, value in yaml_data.items()
            if key in cls._CONFIGURABLE_KEYS
        }
        cls.set(**config_updates)

    @classmethod
    def set(cls, **kwargs):
        """Set configuration parameters with validation.

        Raises
        ------
        AttributeError
            If a parameter name is unknown or immutable
        TypeError
            If a parameter value has an incorrect type
        ValueError
            If a parameter value is out of range

        Examples
        --------
            >>> Config.set(log_level=LogLevel.INFO, opus_head_search_limit=4096)
        """
        from .logsetup import LoggingManager  # Import here to avoid circular imports

        old_logging_state = cls._logging_state()

        for key, value in kwargs.items():
            if not hasattr(cls, key):
                raise AttributeError(f"Invalid config key: {key}. No such key.")
            if key not in cls._CONFIGURABLE_KEYS:
                raise AttributeError(f"Sorry, value of key '{key}' is immutable.")

            if key == "log_level":
                if isinstance(value, str) and not isinstance(value, LogLevel):
                    try:
                        value = LogLevel(value.upper())
                    except ValueError:
                        raise ValueError(f"Invalid log_level: '{value}'. "
                                         f"Must be one of: {[lvl.value for lvl in LogLevel]}")
                elif not isinstance(value, LogLevel):
                    raise TypeError("log_level must be a str or LogLevel")
            elif key == "log_filepath":
                if isinstance(value, str):
                    value = pathlib.Path(value)
                if value is not None and not isinstance(value, pathlib.Path):
                    raise TypeError(f"Expected {key} to be pathlib.Path or None, got {type(value).__name__}")
            elif key == "module_log_levels":
                if not isinstance(value, dict):
                    raise TypeError(f"Expected {key} to be dict, got {type(value).__name__}")
                for mod_name, mod_level in value.items():
                    if not isinstance(mod_level, LogLevel):
                        raise TypeError(f"Module log level for '{mod_name}' must be LogLevel, got {type(mod_level).__name__}")
                value = dict(value)
            elif key in ("terminal_log_max_line_length", "opus_head_search_limit"):
                if value is not None and (not isinstance(value, int) or isinstance(value, bool)):
                    raise TypeError(f"Expected {key} to be int or None, got {type(value).__name__}")
                if value is not None and value <= 0:
                    raise ValueError(f"Expected {key} to be positive integer or None, got {value}")
            elif key == "opus_header_array_name":
                if not isinstance(value, str):
                    raise TypeError(f"Expected {key} to be str, got {type(value).__name__}")
                if not value or "/" in value:
                    raise ValueError(f"Invalid Zarr array name: '{value}'")

            setattr(cls, key, value)

        if cls._logging_state() != old_logging_state:
            LoggingManager.reconfigure()

    @classmethod
    def _logging_state(cls) -> tuple:
        return (cls.log_level,
                cls.log_filepath,
                dict(cls.module_log_levels),
                cls.terminal_log_max_line_length)
