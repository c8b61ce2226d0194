"""Types and Enum definitions"""

from enum import Enum, IntEnum


class LogLevel(str, Enum):
    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    SUCCESS = "SUCCESS"
    INFO = "INFO"
    DEBUG = "DEBUG"
    TRACE = "TRACE"
    NOTSET = "NOTSET"

    @property
    def priority(self) -> int:
        """Numeric priority; higher values are more restrictive."""
        return _LOG_LEVEL_PRIORITY[self]


_LOG_LEVEL_PRIORITY = {
    LogLevel.TRACE: 0,
    LogLevel.DEBUG: 1,
    LogLevel.INFO: 2,
    LogLevel.SUCCESS: 3,
    LogLevel.WARNING: 4,
    LogLevel.ERROR: 5,
    LogLevel.CRITICAL: 6,
    LogLevel.NOTSET: 999
}


class ChannelMappingFamily(IntEnum):
    """Known OpusHead channel mapping families.

    Only the distinction zero / nonzero matters to the codec. Unknown nonzero
    families are kept as plain ints.
    """
    RTP = 0         # implicit mono/stereo order, no stream map
    VORBIS = 1      # explicit map, Vorbis channel order
