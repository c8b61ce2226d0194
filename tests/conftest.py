import struct

import pytest

from opushead.config import Config
from opushead.logsetup import LoggingManager


def make_opus_head(channels: int = 2, pre_skip: int = 312, sample_rate: int = 44100,
                   gain: int = 0, family: int = 0, streams: int | None = None,
                   coupled: int | None = None, mapping: bytes = b"",
                   magic: bytes = b"OpusHead", version: int = 1) -> bytes:
    """Assemble OpusHead bytes field by field, without any validation."""
    data = magic + struct.pack('<BBHIhB', version, channels, pre_skip, sample_rate, gain, family)
    if streams is not None:
        data += bytes((streams,))
    if coupled is not None:
        data += bytes((coupled,))
    return data + bytes(mapping)


@pytest.fixture
def restore_config():
    """Restore all configurable keys after a test changed them."""
    saved = {key: getattr(Config, key) for key in Config._CONFIGURABLE_KEYS}
    saved["module_log_levels"] = dict(saved["module_log_levels"])
    yield Config
    for key, value in saved.items():
        setattr(Config, key, value)
    LoggingManager.reconfigure()
