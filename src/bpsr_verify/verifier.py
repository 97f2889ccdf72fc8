from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator, Literal, Optional

from .errors import InvalidFormat, Malformed, PngMetadataError, Truncated
from .metadata import ParseMetadata, claims_keyword, compute_hash, decode_text_chunk
from .png_chunks import BytesLike, PngChunk, iter_chunks

VerdictStatus = Literal["not_a_png", "truncated", "not_verifiable", "malformed", "authentic", "tampered"]

SHORT_CODE_LENGTH = 16


@dataclass
class Verdict:
    """
    Classification of an untrusted PNG.

    For "authentic" and "tampered" the metadata and both hashes are filled in;
    `expected_hash` is what the file claims, `calculated_hash` what its content
    actually hashes to. `signature_count` counts every chunk carrying our
    keyword; only the first one is used.
    """

    status: VerdictStatus
    metadata: Optional[ParseMetadata] = None
    expected_hash: str = ""
    calculated_hash: str = ""
    signature_count: int = 0
    crc_valid: Optional[bool] = None
    message: str = ""

    @property
    def authentic(self) -> bool:
        return self.status == "authentic"


def short_code(hash_hex: str) -> str:
    return hash_hex[:SHORT_CODE_LENGTH].upper()


def _count_remaining_signatures(buffer: BytesLike, chunks: Iterator[PngChunk]) -> int:
    count = 0
    try:
        for chunk in chunks:
            if chunk.type == "tEXt" and claims_keyword(chunk.data(buffer)):
                count += 1
    except PngMetadataError:
        # The walk already produced a signature; damage past it is not reported.
        pass
    return count


def verify_png(buffer: BytesLike) -> Verdict:
    """
    Extract the embedded parse metadata and check it against its hash.

    Never raises for any byte content; every outcome is a Verdict status.
    """
    chunks = iter_chunks(buffer)
    found: Optional[PngChunk] = None
    try:
        for chunk in chunks:
            if chunk.type == "tEXt" and claims_keyword(chunk.data(buffer)):
                found = chunk
                break
    except InvalidFormat as exc:
        return Verdict(status="not_a_png", message=str(exc))
    except Truncated as exc:
        return Verdict(status="truncated", message=str(exc))

    if found is None:
        return Verdict(
            status="not_verifiable",
            message="No verification metadata found in PNG.",
        )

    signature_count = 1 + _count_remaining_signatures(buffer, chunks)
    crc_valid = found.crc_matches(buffer)
    try:
        metadata = decode_text_chunk(found.data(buffer))
    except Malformed as exc:
        return Verdict(
            status="malformed",
            signature_count=signature_count,
            crc_valid=crc_valid,
            message=str(exc),
        )
    if metadata is None:
        return Verdict(status="not_verifiable", message="No verification metadata found in PNG.")

    calculated = compute_hash(metadata)
    status: VerdictStatus = "authentic" if calculated == metadata.hash.lower() else "tampered"
    return Verdict(
        status=status,
        metadata=metadata,
        expected_hash=metadata.hash,
        calculated_hash=calculated,
        signature_count=signature_count,
        crc_valid=crc_valid,
        message="Parse is authentic and unmodified." if status == "authentic" else "Parse has been modified.",
    )


def verify_file(path: str) -> Verdict:
    return verify_png(Path(path).read_bytes())


def _format_timestamp(value: str) -> str:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def render_verdict(verdict: Verdict) -> str:
    """Human readable summary for the verify command."""
    if verdict.status == "authentic" and verdict.metadata is not None:
        meta = verdict.metadata
        lines = [
            "Verified! This parse is authentic and unmodified.",
            f"Verification Code: {short_code(meta.hash)}",
            f"Timestamp: {_format_timestamp(meta.timestamp)}",
            f"Duration: {meta.duration // 60} minutes",
            f"Players: {len(meta.players)}",
        ]
    elif verdict.status == "tampered":
        lines = [
            "Verification Failed! This parse has been modified.",
            f"Expected Hash: {short_code(verdict.expected_hash)}",
            f"Calculated Hash: {short_code(verdict.calculated_hash)}",
        ]
    elif verdict.status == "not_verifiable":
        lines = [
            "No verification metadata found in PNG. This file was not created by BPSR Tools "
            "or is from an older version.",
        ]
    elif verdict.status == "malformed":
        lines = [f"Verification metadata is corrupt: {verdict.message}"]
    elif verdict.status == "truncated":
        lines = [f"PNG file is truncated: {verdict.message}"]
    else:
        lines = ["Please select a PNG file."]
    if verdict.signature_count > 1:
        lines.append(f"Note: {verdict.signature_count} verification chunks found; the first one was checked.")
    if verdict.crc_valid is False:
        lines.append("Note: the verification chunk CRC does not match its content.")
    return "\n".join(lines)
