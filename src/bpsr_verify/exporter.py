import io
import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from PIL import Image

from .config import BpsrConfig, resolve_config
from .injector import InjectResult, inject_metadata
from .metadata import ParseMetadata, Player
from .png_chunks import has_png_signature

UNKNOWN = "Unknown"


def _number(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _total(row: Dict[str, Any], key: str) -> float:
    stats = row.get(key)
    if isinstance(stats, dict):
        return _number(stats.get("total"))
    return 0.0


def _text(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return UNKNOWN


def _profession(row: Dict[str, Any]) -> str:
    details = row.get("professionDetails")
    if isinstance(details, dict):
        return _text(details.get("name_en"))
    return UNKNOWN


def iso_timestamp(now: Optional[datetime] = None) -> str:
    """UTC timestamp in the same shape as JavaScript's Date.toISOString()."""
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def export_filename(now: Optional[datetime] = None) -> str:
    stamp = iso_timestamp(now)[:19].replace(":", "-")
    return f"bpsr-parse-{stamp}.png"


def select_players(rows: Iterable[Dict[str, Any]], top_n: int) -> List[Player]:
    """
    Keep rows with any damage or healing, strongest damage first, at most top_n.
    """
    active = [
        row
        for row in rows
        if isinstance(row, dict) and (_total(row, "totalDamage") > 0 or _total(row, "totalHealing") > 0)
    ]
    active.sort(key=lambda row: _total(row, "totalDamage"), reverse=True)
    return [
        Player(
            name=_text(row.get("name")),
            dps=_number(row.get("totalDps")),
            damage=_total(row, "totalDamage"),
            profession=_profession(row),
        )
        for row in active[:top_n]
    ]


def build_parse_metadata(
    rows: Iterable[Dict[str, Any]],
    duration: int,
    version: Optional[str] = None,
    timestamp: Optional[str] = None,
    top_n: Optional[int] = None,
    config: Optional[BpsrConfig] = None,
) -> ParseMetadata:
    if duration < 0:
        raise ValueError("Parse duration must not be negative.")
    cfg = resolve_config(config)
    players = select_players(rows, top_n or cfg.top_players)
    if not players:
        raise ValueError("No data to export: no player dealt damage or healing.")
    return ParseMetadata.create(
        timestamp=timestamp or iso_timestamp(),
        duration=int(duration),
        players=players,
        version=version or cfg.version,
    )


def normalize_rows(payload: Any) -> Tuple[List[Dict[str, Any]], Optional[int]]:
    """
    Accept the shapes the overlay's data endpoint produces: a list of rows, a
    {"user": {uid: row}} document, a {uid: row} mapping, or an object with
    "rows"/"players" plus an optional "duration".
    """
    duration: Optional[int] = None
    if isinstance(payload, dict):
        raw_duration = payload.get("duration")
        if isinstance(raw_duration, (int, float)) and not isinstance(raw_duration, bool):
            duration = int(raw_duration)
        for key in ("rows", "players", "user"):
            if key in payload:
                payload = payload[key]
                break
        else:
            payload = {k: v for k, v in payload.items() if k != "duration"}
    if isinstance(payload, dict):
        rows = list(payload.values())
    elif isinstance(payload, list):
        rows = payload
    else:
        raise ValueError("Stats must be a list of rows or an object of rows.")
    return [row for row in rows if isinstance(row, dict)], duration


def ensure_png(image: bytes) -> bytes:
    """
    Return PNG bytes for an image; PNG input is returned unchanged, anything
    Pillow can open is re-encoded.
    """
    if has_png_signature(image):
        return bytes(image)
    with Image.open(io.BytesIO(image)) as img:
        out = io.BytesIO()
        img.save(out, format="PNG")
    return out.getvalue()


def sign_png(
    png: bytes,
    rows: Iterable[Dict[str, Any]],
    duration: int,
    version: Optional[str] = None,
    timestamp: Optional[str] = None,
    top_n: Optional[int] = None,
    config: Optional[BpsrConfig] = None,
) -> Tuple[InjectResult, ParseMetadata]:
    metadata = build_parse_metadata(rows, duration, version=version, timestamp=timestamp, top_n=top_n, config=config)
    return inject_metadata(png, metadata), metadata
