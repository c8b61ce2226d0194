"""opushead package initialization."""

from .logsetup import get_module_logger

# Get logger for this module
logger = get_module_logger(__file__)

# Codec
from .opus_header import (
    OpusHeader,
    parse_opus_header,
    write_opus_header,
    build_opus_header,
    find_opus_header,
    is_opus_header,
    read_input_sample_rate,
    OPUS_HEAD_MAGIC,
    OPUS_HEADER_SIZE,
    OPUS_DECODE_SAMPLE_RATE,
)
from .channel_mapping import OPUS_CHANNEL_MAP, MAX_CHANNELS, channel_map_for

# Zarr storage of headers
from .header_store import store_opus_header, load_opus_header

# Configuration and exceptions
from .config import Config
from .exceptions import (
    OpusHeaderError,
    OpusHeaderParseError,
    OpusHeaderWriteError,
    TooShort,
    InvalidChannelCount,
    MissingStreamMap,
    TruncatedStreamMap,
    InconsistentStreamMap,
    OpusHeadNotFound,
    BufferTooSmall,
    OpusHeaderArrayMissing,
)

# Types
from .packagetypes import LogLevel, ChannelMappingFamily

# Names exported by "from opushead import *"
__all__ = [
    # Codec
    "OpusHeader",
    "parse_opus_header",
    "write_opus_header",
    "build_opus_header",
    "find_opus_header",
    "is_opus_header",
    "read_input_sample_rate",
    "OPUS_HEAD_MAGIC",
    "OPUS_HEADER_SIZE",
    "OPUS_DECODE_SAMPLE_RATE",
    "OPUS_CHANNEL_MAP",
    "MAX_CHANNELS",
    "channel_map_for",

    # Storage
    "store_opus_header",
    "load_opus_header",

    # Configuration
    "Config",

    # Exceptions
    "OpusHeaderError",
    "OpusHeaderParseError",
    "OpusHeaderWriteError",
    "TooShort",
    "InvalidChannelCount",
    "MissingStreamMap",
    "TruncatedStreamMap",
    "InconsistentStreamMap",
    "OpusHeadNotFound",
    "BufferTooSmall",
    "OpusHeaderArrayMissing",

    # Types
    "LogLevel",
    "ChannelMappingFamily",
]

logger.debug("opushead package loaded.")
