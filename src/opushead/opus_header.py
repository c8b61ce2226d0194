"""
OpusHead Identification Header Codec
====================================

Reads and writes the Opus identification header ("OpusHead") as it is
carried in Ogg and WebM containers (RFC 7845, section 5.1):

    offset  size  field
    0       8     magic 'OpusHead'
    8       1     version (1 on write)
    9       1     channel count (1..8)
    10      2     pre-skip samples, LE u16
    12      4     original input sample rate, LE u32
    16      2     output gain, LE i16 (Q7.8 dB)
    18      1     channel mapping family
    19      1     stream count            (family != 0)
    20      1     coupled stream count    (family != 0)
    21      N     stream position per output channel (family != 0)

Headers come from untrusted media files. `parse_opus_header()` therefore runs
a fixed sequence of checks and rejects with a dedicated exception for each
kind of damage. Only the pre-skip and gain reads are lenient: a field whose
second byte lies outside the buffer decodes as 0.

The decode output rate of Opus is always 48 kHz. The stored input sample
rate is informational only.
"""

import struct
from dataclasses import dataclass, asdict
from typing import Optional, Tuple, Union

from .channel_mapping import MAX_CHANNELS, channel_map_for
from .config import Config
from .packagetypes import ChannelMappingFamily
from .exceptions import (
    TooShort,
    InvalidChannelCount,
    MissingStreamMap,
    TruncatedStreamMap,
    InconsistentStreamMap,
    OpusHeadNotFound,
    BufferTooSmall,
)

from .logsetup import get_module_logger
logger = get_module_logger(__file__)

BytesLike = Union[bytes, bytearray, memoryview]

# Opus constants
OPUS_HEAD_MAGIC = b'OpusHead'
OPUS_HEADER_VERSION = 1
OPUS_DECODE_SAMPLE_RATE = 48000

# Header size without the optional stream map
OPUS_HEADER_SIZE = 19
OPUS_HEADER_CHANNELS_OFFSET = 9
OPUS_HEADER_SKIP_SAMPLES_OFFSET = 10
OPUS_HEADER_SAMPLE_RATE_OFFSET = 12
OPUS_HEADER_GAIN_OFFSET = 16
OPUS_HEADER_CHANNEL_MAPPING_OFFSET = 18
OPUS_HEADER_NUM_STREAMS_OFFSET = 19
OPUS_HEADER_NUM_COUPLED_STREAMS_OFFSET = 20
OPUS_HEADER_STREAM_MAP_OFFSET = 21

# Without a stream map only mono and stereo have a defined layout
MAX_CHANNELS_WITH_DEFAULT_LAYOUT = 2
DEFAULT_CHANNEL_LAYOUT = bytes((0, 1))

# magic, version, channel count, pre-skip, input sample rate, gain
_FIXED_FIELDS = struct.Struct('<8sBBHIh')
_UINT32_MAX = 0xFFFFFFFF


def _check_int_range(name: str, value, lowest: int, highest: int):
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    if not lowest <= value <= highest:
        raise ValueError(f"{name} must be within {lowest}..{highest}, got {value}")


@dataclass(frozen=True)
class OpusHeader:
    """Decoded OpusHead header.

    Construction validates all fields, so an instance with an impossible
    channel layout cannot exist.

    Raises
    ------
    InvalidChannelCount
        If `channel_count` is not within 1..8
    MissingStreamMap
        If mapping family 0 is combined with more than two channels
    InconsistentStreamMap
        If `stream_count + coupled_stream_count != channel_count`
    ValueError, TypeError
        If a field does not fit its wire width or
        `channel_to_stream_position` has not `channel_count` entries
    """
    channel_count: int
    pre_skip_samples: int
    output_gain_db: int
    channel_mapping_family: int
    stream_count: int
    coupled_stream_count: int
    channel_to_stream_position: bytes

    def __post_init__(self):
        if (not isinstance(self.channel_count, int) or isinstance(self.channel_count, bool)
                or not 1 <= self.channel_count <= MAX_CHANNELS):
            raise InvalidChannelCount(f"Invalid channel count: {self.channel_count} (1..{MAX_CHANNELS}).")
        _check_int_range("pre_skip_samples", self.pre_skip_samples, 0, 0xFFFF)
        _check_int_range("output_gain_db", self.output_gain_db, -0x8000, 0x7FFF)
        _check_int_range("channel_mapping_family", self.channel_mapping_family, 0, 0xFF)
        _check_int_range("stream_count", self.stream_count, 0, 0xFF)
        _check_int_range("coupled_stream_count", self.coupled_stream_count, 0, 0xFF)

        # accept a byte buffer or a list/tuple of small ints, keep immutable bytes
        if not isinstance(self.channel_to_stream_position, (bytes, bytearray, memoryview, list, tuple)):
            raise TypeError(f"channel_to_stream_position must be bytes or a sequence of ints, "
                            f"got {type(self.channel_to_stream_position).__name__}")
        positions = bytes(self.channel_to_stream_position)
        object.__setattr__(self, 'channel_to_stream_position', positions)
        if len(positions) != self.channel_count:
            raise ValueError(f"channel_to_stream_position needs {self.channel_count} entries, "
                             f"got {len(positions)}")

        if self.channel_mapping_family == 0 and self.channel_count > MAX_CHANNELS_WITH_DEFAULT_LAYOUT:
            raise MissingStreamMap(f"Mapping family 0 can not describe {self.channel_count} channels.")
        if self.stream_count + self.coupled_stream_count != self.channel_count:
            raise InconsistentStreamMap(f"{self.stream_count} streams + {self.coupled_stream_count} coupled "
                                        f"!= {self.channel_count} channels.")

    @classmethod
    def for_channels(cls, channel_count: int, pre_skip_samples: int = 0,
                     output_gain_db: int = 0) -> "OpusHeader":
        """Build the header `write_opus_header()` emits for `channel_count` channels.

        Up to two channels use mapping family 0 with one (possibly coupled)
        stream. More channels use family 1 with one uncoupled stream per
        channel in Vorbis channel order.
        """
        if isinstance(channel_count, int) and 1 <= channel_count <= MAX_CHANNELS_WITH_DEFAULT_LAYOUT:
            return cls(channel_count=channel_count,
                       pre_skip_samples=pre_skip_samples,
                       output_gain_db=output_gain_db,
                       channel_mapping_family=int(ChannelMappingFamily.RTP),
                       stream_count=1,
                       coupled_stream_count=1 if channel_count > 1 else 0,
                       channel_to_stream_position=DEFAULT_CHANNEL_LAYOUT[:channel_count])
        return cls(channel_count=channel_count,
                   pre_skip_samples=pre_skip_samples,
                   output_gain_db=output_gain_db,
                   channel_mapping_family=int(ChannelMappingFamily.VORBIS),
                   stream_count=channel_count,
                   coupled_stream_count=0,
                   channel_to_stream_position=channel_map_for(channel_count))

    @property
    def has_stream_map(self) -> bool:
        return self.channel_mapping_family != 0

    @property
    def header_size(self) -> int:
        """Size in bytes of this header on the wire."""
        if self.has_stream_map:
            return OPUS_HEADER_STREAM_MAP_OFFSET + self.channel_count
        return OPUS_HEADER_SIZE

    @property
    def output_gain(self) -> float:
        """Output gain in dB."""
        return self.output_gain_db / 256.0

    def to_dict(self) -> dict:
        result = asdict(self)
        result['channel_to_stream_position'] = list(self.channel_to_stream_position)
        return result


def _read_le16(data: BytesLike, offset: int, signed: bool = False) -> int:
    """Read a little-endian 16 bit field; 0 if its second byte is outside `data`."""
    if offset + 1 >= len(data):
        return 0
    return struct.unpack_from('<h' if signed else '<H', data, offset)[0]


def is_opus_header(data: BytesLike) -> bool:
    """Return True if `data` starts with the 'OpusHead' magic."""
    return bytes(data[:len(OPUS_HEAD_MAGIC)]) == OPUS_HEAD_MAGIC


def parse_opus_header(data: BytesLike) -> OpusHeader:
    """Decode an OpusHead header.

    `data` starts at the magic; the magic itself is not verified here (see
    `is_opus_header()`). Bytes behind the header are ignored.

    Args:
        data: Header bytes as read from the container

    Returns:
        The decoded header

    Raises:
        TooShort: fewer than 19 bytes
        InvalidChannelCount: channel count 0 or above 8
        MissingStreamMap: mapping family 0 with more than 2 channels
        TruncatedStreamMap: buffer ends inside the stream map
        InconsistentStreamMap: stream counts do not add up to the channel count
    """
    data_size = len(data)
    if data_size < OPUS_HEADER_SIZE:
        logger.trace(f"Header size is too small: {data_size} bytes")
        raise TooShort(f"Header size is too small: {data_size} < {OPUS_HEADER_SIZE} bytes.")

    channel_count = data[OPUS_HEADER_CHANNELS_OFFSET]
    if not 1 <= channel_count <= MAX_CHANNELS:
        logger.trace(f"Invalid header, bad channel count: {channel_count}")
        raise InvalidChannelCount(f"Invalid header, bad channel count: {channel_count}.")

    pre_skip_samples = _read_le16(data, OPUS_HEADER_SKIP_SAMPLES_OFFSET)
    output_gain_db = _read_le16(data, OPUS_HEADER_GAIN_OFFSET, signed=True)
    channel_mapping_family = data[OPUS_HEADER_CHANNEL_MAPPING_OFFSET]

    if channel_mapping_family == ChannelMappingFamily.RTP:
        if channel_count > MAX_CHANNELS_WITH_DEFAULT_LAYOUT:
            logger.trace(f"Invalid header, missing stream map for {channel_count} channels")
            raise MissingStreamMap(f"Invalid header, missing stream map for {channel_count} channels.")
        stream_count = 1
        coupled_stream_count = 1 if channel_count > 1 else 0
        positions = DEFAULT_CHANNEL_LAYOUT[:channel_count]
    else:
        header_size = OPUS_HEADER_STREAM_MAP_OFFSET + channel_count
        if data_size < header_size:
            logger.trace(f"Invalid stream map; insufficient data for current channel count: {channel_count}")
            raise TruncatedStreamMap(f"Invalid stream map; {data_size} bytes but {header_size} needed "
                                     f"for {channel_count} channels.")
        stream_count = data[OPUS_HEADER_NUM_STREAMS_OFFSET]
        coupled_stream_count = data[OPUS_HEADER_NUM_COUPLED_STREAMS_OFFSET]
        if stream_count + coupled_stream_count != channel_count:
            logger.trace(f"Inconsistent channel mapping: {stream_count} + {coupled_stream_count} "
                         f"!= {channel_count}")
            raise InconsistentStreamMap(f"Inconsistent channel mapping: {stream_count} streams + "
                                        f"{coupled_stream_count} coupled != {channel_count} channels.")
        positions = bytes(data[OPUS_HEADER_STREAM_MAP_OFFSET:header_size])

    header = OpusHeader(channel_count=channel_count,
                        pre_skip_samples=pre_skip_samples,
                        output_gain_db=output_gain_db,
                        channel_mapping_family=channel_mapping_family,
                        stream_count=stream_count,
                        coupled_stream_count=coupled_stream_count,
                        channel_to_stream_position=positions)
    logger.trace(f"Parsed OpusHead: {channel_count}ch, pre_skip={pre_skip_samples}, "
                 f"gain={output_gain_db}, mapping family={channel_mapping_family}")
    return header


def read_input_sample_rate(data: BytesLike) -> int:
    """Return the original input sample rate stored in an OpusHead header."""
    if len(data) < OPUS_HEADER_SIZE:
        raise TooShort(f"Header size is too small: {len(data)} < {OPUS_HEADER_SIZE} bytes.")
    return struct.unpack_from('<I', data, OPUS_HEADER_SAMPLE_RATE_OFFSET)[0]


def write_opus_header(header: OpusHeader, input_sample_rate: int,
                      output: Union[bytearray, memoryview]) -> int:
    """Write the canonical OpusHead header for `header` into `output`.

    The complete `output` buffer is zeroed before the header is written.
    Streams with more than two channels always get mapping family 1 with
    one uncoupled stream per channel in Vorbis order; the stream layout of
    `header` itself is not used.

    Args:
        header: Header to write
        input_sample_rate: Original sample rate of the encoder input in Hz
        output: Writable buffer of at least `21 + channel_count` bytes

    Returns:
        Number of header bytes written (19, or 21 + channel count)

    Raises:
        InvalidChannelCount: `header.channel_count` is not within 1..8
        ValueError: `input_sample_rate` does not fit into 32 bits
        BufferTooSmall: `output` is too small; nothing was written
    """
    channel_count = header.channel_count
    if not 1 <= channel_count <= MAX_CHANNELS:
        raise InvalidChannelCount(f"Can not write header for {channel_count} channels (1..{MAX_CHANNELS}).")
    _check_int_range("input_sample_rate", input_sample_rate, 0, _UINT32_MAX)

    total_size = OPUS_HEADER_STREAM_MAP_OFFSET + channel_count
    if len(output) < total_size:
        logger.trace(f"Output buffer too small for header: {len(output)} < {total_size} bytes")
        raise BufferTooSmall(f"Output buffer too small for header: {len(output)} < {total_size} bytes.")

    output[:] = bytes(len(output))
    _FIXED_FIELDS.pack_into(output, 0,
                            OPUS_HEAD_MAGIC,
                            OPUS_HEADER_VERSION,
                            channel_count,
                            header.pre_skip_samples,
                            input_sample_rate,
                            header.output_gain_db)

    if channel_count > MAX_CHANNELS_WITH_DEFAULT_LAYOUT:
        output[OPUS_HEADER_CHANNEL_MAPPING_OFFSET] = ChannelMappingFamily.VORBIS
        # no coupled streams: one stream per channel
        output[OPUS_HEADER_NUM_STREAMS_OFFSET] = channel_count
        output[OPUS_HEADER_NUM_COUPLED_STREAMS_OFFSET] = 0
        output[OPUS_HEADER_STREAM_MAP_OFFSET:total_size] = channel_map_for(channel_count)
        written = total_size
    else:
        output[OPUS_HEADER_CHANNEL_MAPPING_OFFSET] = ChannelMappingFamily.RTP
        written = OPUS_HEADER_SIZE

    logger.trace(f"Wrote OpusHead: {channel_count}ch, {input_sample_rate}Hz, {written} bytes")
    return written


def build_opus_header(header: OpusHeader, input_sample_rate: int) -> bytes:
    """Return the canonical OpusHead header bytes for `header`."""
    buffer = bytearray(OPUS_HEADER_STREAM_MAP_OFFSET + header.channel_count)
    written = write_opus_header(header, input_sample_rate, buffer)
    return bytes(buffer[:written])


def find_opus_header(data: BytesLike, search_limit: Optional[int] = None) -> Tuple[int, OpusHeader]:
    """Locate and parse the first OpusHead header inside a raw Opus or Ogg stream.

    Args:
        data: Stream bytes
        search_limit: Number of leading bytes in which the magic must start;
            defaults to `Config.opus_head_search_limit` (None there means the
            whole buffer)

    Returns:
        Tuple of (offset of the magic, parsed header)

    Raises:
        OpusHeadNotFound: no magic within the searched range
        OpusHeaderParseError: the header found is invalid
    """
    if not isinstance(data, (bytes, bytearray)):
        data = bytes(data)
    if search_limit is None:
        search_limit = Config.opus_head_search_limit

    end = len(data) if search_limit is None else min(len(data), search_limit + len(OPUS_HEAD_MAGIC) - 1)
    opus_head_pos = data.find(OPUS_HEAD_MAGIC, 0, end)
    if opus_head_pos == -1:
        logger.debug(f"OpusHead magic not found in first {end} bytes")
        raise OpusHeadNotFound(f"OpusHead magic not found in first {end} bytes.")

    logger.trace(f"Found OpusHead at position {opus_head_pos}")
    return opus_head_pos, parse_opus_header(memoryview(data)[opus_head_pos:])
