import hashlib
import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .errors import Malformed

KEYWORD = "BPSR-Verification"
KEYWORD_SEPARATOR = b"\x00"

Number = Union[int, float]

# JSON.stringify switches to exponent notation from 1e21 upwards.
_MAX_PLAIN_INTEGER = 1e21


@dataclass
class Player:
    name: str
    dps: Number
    damage: Number
    profession: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "dps": self.dps,
            "damage": self.damage,
            "profession": self.profession,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Player":
        if not isinstance(data, dict):
            raise Malformed("Player entry is not an object.")
        return cls(
            name=_require(data, "name", str),
            dps=_require_number(data, "dps"),
            damage=_require_number(data, "damage"),
            profession=_require(data, "profession", str),
        )


@dataclass
class ParseMetadata:
    """
    Statistics record embedded in an exported parse image.

    `hash` is the SHA-256 of the canonical {timestamp, duration, players}
    subset and never covers itself or `version`.
    """

    hash: str
    timestamp: str
    duration: int
    players: List[Player] = field(default_factory=list)
    version: str = ""

    @classmethod
    def create(cls, timestamp: str, duration: int, players: List[Player], version: str) -> "ParseMetadata":
        record = cls(hash="", timestamp=timestamp, duration=duration, players=list(players), version=version)
        record.hash = compute_hash(record)
        return record

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.hash,
            "timestamp": self.timestamp,
            "duration": self.duration,
            "players": [player.to_dict() for player in self.players],
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ParseMetadata":
        if not isinstance(data, dict):
            raise Malformed("Metadata payload is not a JSON object.")
        duration = _require(data, "duration", int)
        if duration < 0:
            raise Malformed("Field 'duration' must not be negative.")
        if duration >= _MAX_PLAIN_INTEGER:
            raise Malformed("Field 'duration' is out of range.")
        players = _require(data, "players", list)
        return cls(
            hash=_require(data, "hash", str),
            timestamp=_require(data, "timestamp", str),
            duration=duration,
            players=[Player.from_dict(item) for item in players],
            version=_require(data, "version", str),
        )


def _require(data: Dict[str, Any], key: str, kind: type) -> Any:
    if key not in data:
        raise Malformed(f"Missing field '{key}'.")
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, kind):
        raise Malformed(f"Field '{key}' must be of type {kind.__name__}.")
    return value


def _require_number(data: Dict[str, Any], key: str) -> Number:
    if key not in data:
        raise Malformed(f"Missing field '{key}'.")
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise Malformed(f"Field '{key}' must be a number.")
    if isinstance(value, float) and not math.isfinite(value):
        raise Malformed(f"Field '{key}' must be a finite number.")
    if isinstance(value, int) and abs(value) >= _MAX_PLAIN_INTEGER:
        raise Malformed(f"Field '{key}' is out of range.")
    return value


def _normalize(value: Any) -> Any:
    # Integral floats are written the way JSON.stringify writes them (1234, not 1234.0).
    if isinstance(value, float) and math.isfinite(value) and value.is_integer() and abs(value) < _MAX_PLAIN_INTEGER:
        return int(value)
    if isinstance(value, dict):
        return {key: _normalize(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_normalize(item) for item in value]
    return value


def canonical_json(value: Any) -> str:
    """
    Serialize with a fixed key order and compact separators so the same record
    always produces the same bytes.
    """
    return json.dumps(_normalize(value), separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def hashed_subset(metadata: ParseMetadata) -> Dict[str, Any]:
    return {
        "timestamp": metadata.timestamp,
        "duration": metadata.duration,
        "players": [player.to_dict() for player in metadata.players],
    }


def compute_hash(metadata: ParseMetadata) -> str:
    digest = hashlib.sha256()
    digest.update(canonical_json(hashed_subset(metadata)).encode("utf-8"))
    return digest.hexdigest()


def encode_text_chunk(metadata: ParseMetadata) -> bytes:
    """Return the tEXt data segment: keyword, NUL, canonical JSON."""
    return KEYWORD.encode("utf-8") + KEYWORD_SEPARATOR + canonical_json(metadata.to_dict()).encode("utf-8")


def claims_keyword(data: bytes) -> bool:
    return data.startswith(KEYWORD.encode("utf-8") + KEYWORD_SEPARATOR)


def _reject_constant(name: str) -> Any:
    raise Malformed(f"Non-finite number {name} in metadata.")


def decode_text_chunk(data: bytes) -> Optional[ParseMetadata]:
    """
    Decode a tEXt data segment.

    Returns None when the keyword belongs to someone else; raises Malformed when
    there is no separator or our payload cannot be parsed.
    """
    sep = data.find(KEYWORD_SEPARATOR)
    if sep < 0:
        raise Malformed("tEXt chunk has no keyword separator.")
    try:
        keyword = data[:sep].decode("utf-8")
    except UnicodeDecodeError:
        return None
    if keyword != KEYWORD:
        return None
    try:
        payload = json.loads(data[sep + 1 :].decode("utf-8"), parse_constant=_reject_constant)
    except (ValueError, RecursionError) as exc:
        raise Malformed(f"Invalid metadata JSON: {exc}") from exc
    record = ParseMetadata.from_dict(payload)
    try:
        canonical_json(record.to_dict()).encode("utf-8")
    except ValueError as exc:
        raise Malformed(f"Metadata cannot be re-serialized: {exc}") from exc
    return record
