import struct
from dataclasses import dataclass
from typing import Literal, Optional

from .crc32 import CRC32
from .errors import InvalidFormat, NoIendChunk, Truncated
from .metadata import ParseMetadata, encode_text_chunk
from .png_chunks import BytesLike, iter_chunks

InjectStatus = Literal["ok", "not_a_png", "truncated", "no_iend"]

TEXT_CHUNK_TYPE = b"tEXt"


@dataclass
class InjectResult:
    """Outcome of embedding metadata; `data` is None unless status is "ok"."""

    status: InjectStatus
    data: Optional[bytes] = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "ok"


def build_chunk(chunk_type: bytes, data: bytes) -> bytes:
    """Serialize one chunk: length, type, data, CRC of type+data."""
    if len(chunk_type) != 4:
        raise ValueError("Chunk type must be exactly 4 bytes.")
    checksum = CRC32(chunk_type)
    checksum.update(data)
    return struct.pack(">I", len(data)) + chunk_type + data + checksum.digest()


def find_iend_offset(buffer: BytesLike) -> int:
    for chunk in iter_chunks(buffer):
        if chunk.type == "IEND":
            return chunk.offset
    raise NoIendChunk("IEND chunk not found, cannot inject metadata.")


def inject_metadata(png: BytesLike, metadata: ParseMetadata) -> InjectResult:
    """
    Return a new PNG with a BPSR-Verification tEXt chunk placed right before IEND.

    The input buffer is left untouched. Structural problems are reported through
    the result status instead of being raised.
    """
    if not isinstance(metadata, ParseMetadata):
        raise TypeError("metadata must be a ParseMetadata instance.")
    source = bytes(png)
    try:
        iend = find_iend_offset(source)
    except InvalidFormat as exc:
        return InjectResult(status="not_a_png", error=str(exc))
    except Truncated as exc:
        return InjectResult(status="truncated", error=str(exc))
    except NoIendChunk as exc:
        return InjectResult(status="no_iend", error=str(exc))

    chunk = build_chunk(TEXT_CHUNK_TYPE, encode_text_chunk(metadata))
    return InjectResult(status="ok", data=b"".join((source[:iend], chunk, source[iend:])))
