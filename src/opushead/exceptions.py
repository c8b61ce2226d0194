from zarr.errors import BaseZarrError


class OpusHeaderError(ValueError):
    """Base error of the OpusHead codec."""
    def __init__(self, message: str = "Invalid OpusHead header."):
        super().__init__(message)


class OpusHeaderParseError(OpusHeaderError):
    """A byte buffer could not be decoded as OpusHead header."""
    def __init__(self, message: str = "OpusHead header could not be parsed."):
        super().__init__(message)


class TooShort(OpusHeaderParseError):
    """Buffer is smaller than the fixed 19 byte header region."""
    def __init__(self, message: str = "Header size is too small."):
        super().__init__(message)


class InvalidChannelCount(OpusHeaderParseError):
    """Channel count is 0 or larger than the channel mapping table."""
    def __init__(self, message: str = "Invalid header, bad channel count."):
        super().__init__(message)


class MissingStreamMap(OpusHeaderParseError):
    """Mapping family 0 was used for more than two channels."""
    def __init__(self, message: str = "Invalid header, missing stream map."):
        super().__init__(message)


class TruncatedStreamMap(OpusHeaderParseError):
    """Buffer ends before the stream map of the declared channel count."""
    def __init__(self, message: str = "Invalid stream map; insufficient data for current channel count."):
        super().__init__(message)


class InconsistentStreamMap(OpusHeaderParseError):
    """Stream count plus coupled stream count differs from the channel count."""
    def __init__(self, message: str = "Inconsistent channel mapping."):
        super().__init__(message)


class OpusHeadNotFound(OpusHeaderParseError):
    """No 'OpusHead' magic inside the searched bytes."""
    def __init__(self, message: str = "OpusHead magic not found."):
        super().__init__(message)


class OpusHeaderWriteError(OpusHeaderError):
    """A header could not be written."""
    def __init__(self, message: str = "OpusHead header could not be written."):
        super().__init__(message)


class BufferTooSmall(OpusHeaderWriteError):
    """Output buffer cannot hold the header."""
    def __init__(self, message: str = "Output buffer too small for header."):
        super().__init__(message)


class OpusHeaderArrayMissing(BaseZarrError):
    """Zarr group has no stored OpusHead header array."""
    _msg = "{}"

    def __init__(self, message: str = "Requested group contains no OpusHead header array."):
        super().__init__(message)
