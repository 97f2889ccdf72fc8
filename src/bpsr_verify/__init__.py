from .crc32 import CRC32, crc32
from .errors import InvalidFormat, Malformed, NoIendChunk, PngMetadataError, Truncated
from .png_chunks import PNG_SIGNATURE, PngChunk, find_chunk, iter_chunks, list_png_chunks
from .metadata import (
    KEYWORD,
    ParseMetadata,
    Player,
    canonical_json,
    compute_hash,
    decode_text_chunk,
    encode_text_chunk,
    hashed_subset,
)
from .injector import InjectResult, build_chunk, inject_metadata
from .verifier import Verdict, render_verdict, short_code, verify_file, verify_png
from .exporter import build_parse_metadata, ensure_png, export_filename, sign_png
from .config import BpsrConfig, load_config, save_config

__all__ = [
    "CRC32",
    "crc32",
    "InvalidFormat",
    "Malformed",
    "NoIendChunk",
    "PngMetadataError",
    "Truncated",
    "PNG_SIGNATURE",
    "PngChunk",
    "find_chunk",
    "iter_chunks",
    "list_png_chunks",
    "KEYWORD",
    "ParseMetadata",
    "Player",
    "canonical_json",
    "compute_hash",
    "decode_text_chunk",
    "encode_text_chunk",
    "hashed_subset",
    "InjectResult",
    "build_chunk",
    "inject_metadata",
    "Verdict",
    "render_verdict",
    "short_code",
    "verify_file",
    "verify_png",
    "build_parse_metadata",
    "ensure_png",
    "export_filename",
    "sign_png",
    "BpsrConfig",
    "load_config",
    "save_config",
]
