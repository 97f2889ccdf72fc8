import io
from typing import Optional, Tuple

from PIL import Image
from PIL.PngImagePlugin import PngInfo

from bpsr_verify import ParseMetadata, Player, find_chunk


def make_png(size: Tuple[int, int] = (4, 3), color=(200, 30, 30), text: Optional[dict] = None) -> bytes:
    img = Image.new("RGB", size, color=color)
    info = None
    if text:
        info = PngInfo()
        for key, value in text.items():
            info.add_text(key, value)
    out = io.BytesIO()
    img.save(out, format="PNG", pnginfo=info)
    return out.getvalue()


def make_metadata(name: str = "Alice", version: str = "1.2.3") -> ParseMetadata:
    players = [
        Player(name=name, dps=1500.5, damage=180060, profession="Stormblade"),
        Player(name="Bob", dps=900, damage=108000, profession="Frost Mage"),
    ]
    return ParseMetadata.create(
        timestamp="2024-05-01T12:30:00.000Z",
        duration=120,
        players=players,
        version=version,
    )


def insert_before_iend(png: bytes, raw_chunk: bytes) -> bytes:
    iend = find_chunk(png, "IEND")
    assert iend is not None
    return png[: iend.offset] + raw_chunk + png[iend.offset :]
