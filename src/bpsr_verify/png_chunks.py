import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Union

from .crc32 import CRC32
from .errors import InvalidFormat, Truncated

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
CHUNK_HEADER = struct.Struct(">I4s")
CHUNK_OVERHEAD = 12  # length + type + crc

BytesLike = Union[bytes, bytearray, memoryview]


@dataclass(frozen=True)
class PngChunk:
    """One entry of a PNG chunk directory, as offsets into the source buffer."""

    offset: int
    length: int
    type: str
    data_start: int
    data_end: int
    crc: int

    @property
    def end(self) -> int:
        return self.data_end + 4

    def data(self, buffer: BytesLike) -> bytes:
        return bytes(buffer[self.data_start : self.data_end])

    def crc_matches(self, buffer: BytesLike) -> bool:
        checksum = CRC32(bytes(buffer[self.offset + 4 : self.data_start]))
        checksum.update(self.data(buffer))
        return checksum.value == self.crc


def has_png_signature(buffer: BytesLike) -> bool:
    return bytes(buffer[:8]) == PNG_SIGNATURE


def iter_chunks(buffer: BytesLike) -> Iterator[PngChunk]:
    """
    Walk the chunk directory of a PNG buffer, stopping after IEND.

    Raises InvalidFormat for a bad signature and Truncated when a declared
    chunk does not fit in the buffer. A buffer that ends exactly on a chunk
    boundary without IEND just ends the walk.
    """
    view = memoryview(buffer)
    if bytes(view[:8]) != PNG_SIGNATURE:
        raise InvalidFormat("Not a PNG file.")
    total = len(view)
    pos = 8
    while pos < total:
        if pos + 8 > total:
            raise Truncated(f"Chunk header at offset {pos} runs past end of buffer ({total} bytes).")
        length, raw_type = CHUNK_HEADER.unpack_from(view, pos)
        end = pos + CHUNK_OVERHEAD + length
        if end > total:
            raise Truncated(
                f"Chunk at offset {pos} declares {length} bytes but only {total - pos - CHUNK_OVERHEAD} remain."
            )
        data_start = pos + 8
        data_end = data_start + length
        (stored_crc,) = struct.unpack_from(">I", view, data_end)
        chunk = PngChunk(
            offset=pos,
            length=length,
            type=raw_type.decode("latin-1"),
            data_start=data_start,
            data_end=data_end,
            crc=stored_crc,
        )
        yield chunk
        if chunk.type == "IEND":
            return
        pos = end


def find_chunk(buffer: BytesLike, chunk_type: str) -> Optional[PngChunk]:
    for chunk in iter_chunks(buffer):
        if chunk.type == chunk_type:
            return chunk
    return None


def list_png_chunks(png_path: str) -> List[PngChunk]:
    """
    List the chunks of a PNG file in order.
    """
    data = Path(png_path).read_bytes()
    return list(iter_chunks(data))
