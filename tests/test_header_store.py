#!/usr/bin/env python3
"""
Tests for storing OpusHead headers in Zarr groups (header_store.py)

Verwendung:
    pytest tests/test_header_store.py -v
"""

import numpy as np
import pytest
import zarr
from zarr.errors import BaseZarrError

from opushead.config import Config
from opushead.exceptions import OpusHeaderArrayMissing, InvalidChannelCount
from opushead.header_store import store_opus_header, load_opus_header
from opushead.opus_header import OpusHeader, build_opus_header


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def audio_group() -> zarr.Group:
    store = zarr.storage.MemoryStore()
    root = zarr.create_group(store=store)
    return root.create_group("0")


# ============================================================================
# Tests
# ============================================================================

class TestHeaderStore:

    @pytest.mark.parametrize("channels", [1, 2, 6, 8])
    def test_store_and_load(self, audio_group, channels):
        header = OpusHeader.for_channels(channels, pre_skip_samples=312, output_gain_db=-5)
        store_opus_header(audio_group, header, 96000)

        loaded, input_sample_rate = load_opus_header(audio_group)
        assert loaded == header
        assert input_sample_rate == 96000

    def test_stored_bytes_are_canonical(self, audio_group):
        header = OpusHeader.for_channels(3, pre_skip_samples=3840)
        header_array = store_opus_header(audio_group, header, 44100)

        assert header_array.dtype == np.uint8
        assert header_array.shape == (24,)
        assert header_array[:].tobytes() == build_opus_header(header, 44100)

    def test_attributes(self, audio_group):
        header = OpusHeader.for_channels(2, pre_skip_samples=312)
        header_array = store_opus_header(audio_group, header, 48000)

        attrs = dict(header_array.attrs)
        assert attrs["channel_count"] == 2
        assert attrs["pre_skip_samples"] == 312
        assert attrs["input_sample_rate"] == 48000
        assert attrs["header_size"] == 19
        assert attrs["channel_to_stream_position"] == [0, 1]

    def test_overwrite(self, audio_group):
        store_opus_header(audio_group, OpusHeader.for_channels(2), 48000)
        store_opus_header(audio_group, OpusHeader.for_channels(5), 22050)

        loaded, input_sample_rate = load_opus_header(audio_group)
        assert loaded.channel_count == 5
        assert input_sample_rate == 22050

    def test_missing_header_array(self, audio_group):
        with pytest.raises(OpusHeaderArrayMissing):
            load_opus_header(audio_group)
        assert issubclass(OpusHeaderArrayMissing, BaseZarrError)

    def test_array_name_from_config(self, audio_group, restore_config):
        Config.set(opus_header_array_name="identification_header")
        store_opus_header(audio_group, OpusHeader.for_channels(1), 16000)

        assert "identification_header" in audio_group.array_keys()
        assert load_opus_header(audio_group)[1] == 16000

    def test_damaged_stored_header(self, audio_group):
        data = bytearray(build_opus_header(OpusHeader.for_channels(2), 48000))
        data[9] = 0
        damaged = audio_group.create_array(name=Config.opus_header_array_name,
                                           shape=(len(data),), dtype=np.uint8)
        damaged[:] = np.frombuffer(bytes(data), dtype=np.uint8)

        with pytest.raises(InvalidChannelCount):
            load_opus_header(audio_group)
