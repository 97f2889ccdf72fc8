class PngMetadataError(ValueError):
    """Base class for structural failures while reading or signing a PNG."""


class InvalidFormat(PngMetadataError):
    """The buffer does not start with the PNG signature."""


class Truncated(PngMetadataError):
    """A chunk header or body runs past the end of the buffer."""


class NoIendChunk(PngMetadataError):
    """The chunk directory ended without an IEND terminator."""


class Malformed(PngMetadataError):
    """A tEXt chunk carried our keyword but its payload could not be read."""
