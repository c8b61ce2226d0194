"""Keep a canonical OpusHead header inside a Zarr group.

Packet based Opus storage needs the identification header to initialize a
decoder later on. The header is stored as its wire bytes in a 1-D uint8
array; the decoded fields go into the array attributes for inspection
without parsing.
"""

from typing import Tuple

import numpy as np
import zarr

from .config import Config
from .exceptions import OpusHeaderArrayMissing
from .opus_header import OpusHeader, build_opus_header, parse_opus_header, read_input_sample_rate

# import and initialize logging
from .logsetup import get_module_logger
logger = get_module_logger(__file__)


def store_opus_header(zarr_group: zarr.Group, header: OpusHeader, input_sample_rate: int,
                      overwrite: bool = True) -> zarr.Array:
    """Write the canonical header bytes of `header` into `zarr_group`.

    Args:
        zarr_group: Group that holds the audio data
        header: Header to store
        input_sample_rate: Original sample rate of the encoder input in Hz
        overwrite: Replace an existing header array

    Returns:
        The created header array
    """
    opus_header = build_opus_header(header, input_sample_rate)

    header_array = zarr_group.create_array(
        name=Config.opus_header_array_name,
        shape=(len(opus_header),),
        chunks=(len(opus_header),),
        dtype=np.uint8,
        overwrite=overwrite,
    )
    header_array[:] = np.frombuffer(opus_header, dtype=np.uint8)
    header_array.attrs.update({
        **header.to_dict(),
        "input_sample_rate": input_sample_rate,
        "header_size": len(opus_header),
    })

    logger.trace(f"Stored OpusHead header ({len(opus_header)} bytes) as "
                 f"'{Config.opus_header_array_name}' in group '{zarr_group.path}'")
    return header_array


def load_opus_header(zarr_group: zarr.Group) -> Tuple[OpusHeader, int]:
    """Read back a header stored by `store_opus_header()`.

    Returns:
        Tuple of (header, input sample rate)

    Raises:
        OpusHeaderArrayMissing: the group has no header array
        OpusHeaderParseError: the stored bytes are no valid header
    """
    array_name = Config.opus_header_array_name
    if array_name not in zarr_group.array_keys():
        raise OpusHeaderArrayMissing(f"Group '{zarr_group.path}' contains no array '{array_name}'.")

    opus_header = np.asarray(zarr_group[array_name][:], dtype=np.uint8).tobytes()
    header = parse_opus_header(opus_header)
    input_sample_rate = read_input_sample_rate(opus_header)

    logger.trace(f"Loaded OpusHead header: {header.channel_count}ch, {input_sample_rate}Hz")
    return header, input_sample_rate
