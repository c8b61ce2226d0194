"""Opus channel order for streams with explicit mapping.

Opus uses the Vorbis channel mapping, which defines the order for up to 8
channels (Vorbis I specification, section 4.3.9). Row `n - 1` gives, for each
output channel of an `n` channel stream, the decoded stream position that
supplies it.
"""

from .exceptions import InvalidChannelCount

MAX_CHANNELS = 8

OPUS_CHANNEL_MAP: tuple[bytes, ...] = (
    bytes((0,)),
    bytes((0, 1)),
    bytes((0, 2, 1)),
    bytes((0, 1, 2, 3)),
    bytes((0, 4, 1, 2, 3)),
    bytes((0, 4, 1, 2, 3, 5)),
    bytes((0, 4, 1, 2, 3, 5, 6)),
    bytes((0, 6, 1, 2, 3, 4, 5, 7)),
)


def channel_map_for(channel_count: int) -> bytes:
    """Return the canonical stream position map for `channel_count` channels."""
    if not 1 <= channel_count <= MAX_CHANNELS:
        raise InvalidChannelCount(f"No channel mapping for {channel_count} channels (1..{MAX_CHANNELS}).")
    return OPUS_CHANNEL_MAP[channel_count - 1]
