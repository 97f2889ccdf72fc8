from typing import List


def _build_table(polynomial: int = 0xEDB88320) -> List[int]:
    table: List[int] = []
    for n in range(256):
        c = n
        for _ in range(8):
            c = polynomial ^ (c >> 1) if c & 1 else c >> 1
        table.append(c)
    return table


CRC_TABLE = _build_table()


def crc32(data: bytes, value: int = 0) -> int:
    """
    IEEE 802.3 CRC-32 as required for PNG chunks.

    Pass the previous result as `value` to continue a running checksum, e.g.
    crc32(data, crc32(chunk_type)).
    """
    crc = (value ^ 0xFFFFFFFF) & 0xFFFFFFFF
    for byte in bytes(data):
        crc = CRC_TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ 0xFFFFFFFF


class CRC32:
    """hashlib-like wrapper for the chunk checksum."""

    def __init__(self, data: bytes = b"") -> None:
        self._value = crc32(data) if data else 0

    def update(self, data: bytes) -> None:
        self._value = crc32(data, self._value)

    def digest(self) -> bytes:
        return self._value.to_bytes(4, "big")

    def hexdigest(self) -> str:
        return f"{self._value:08x}"

    @property
    def value(self) -> int:
        return self._value
