import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from PIL import UnidentifiedImageError

from .config import load_config, save_config
from .exporter import ensure_png, export_filename, normalize_rows, sign_png
from .errors import PngMetadataError
from .history import log_event
from .png_chunks import iter_chunks
from .verifier import Verdict, render_verdict, short_code, verify_png

EXIT_AUTHENTIC = 0
EXIT_REJECTED = 1
EXIT_UNVERIFIABLE = 2


def _record(args: argparse.Namespace, action: str, payload: dict) -> None:
    if args.no_history or not args.config.history:
        return
    log_event(action, payload)


def _run_sign(args: argparse.Namespace) -> int:
    image = Path(args.image).read_bytes()
    try:
        png = ensure_png(image)
    except UnidentifiedImageError as exc:
        print(f"Cannot read image: {exc}", file=sys.stderr)
        return EXIT_UNVERIFIABLE

    stats = json.loads(Path(args.stats).read_text(encoding="utf-8"))
    rows, stats_duration = normalize_rows(stats)
    duration = args.duration if args.duration is not None else stats_duration
    if duration is None:
        raise ValueError("Parse duration missing: pass --duration or include it in the stats file.")

    result, metadata = sign_png(png, rows, duration, version=args.version, top_n=args.top, config=args.config)
    if not result.ok or result.data is None:
        print(f"Cannot embed metadata ({result.status}): {result.error}", file=sys.stderr)
        return EXIT_UNVERIFIABLE

    out_path = Path(args.out) if args.out else Path(args.image).with_name(export_filename())
    out_path.write_bytes(result.data)
    print(f"Saved: {out_path}")
    print(f"Verification Code: {short_code(metadata.hash)}")
    print(f"Full Hash: {metadata.hash}")
    _record(
        args,
        "sign",
        {"image": args.image, "out_file": str(out_path), "hash": metadata.hash, "players": len(metadata.players)},
    )
    return EXIT_AUTHENTIC


def _verdict_to_dict(verdict: Verdict) -> dict:
    return {
        "status": verdict.status,
        "expected_hash": verdict.expected_hash,
        "calculated_hash": verdict.calculated_hash,
        "signature_count": verdict.signature_count,
        "crc_valid": verdict.crc_valid,
        "message": verdict.message,
        "metadata": verdict.metadata.to_dict() if verdict.metadata else None,
    }


def _run_verify(args: argparse.Namespace) -> int:
    verdict = verify_png(Path(args.image).read_bytes())
    if args.json:
        print(json.dumps(_verdict_to_dict(verdict), ensure_ascii=False, indent=2))
    else:
        print(render_verdict(verdict))
    _record(
        args,
        "verify",
        {
            "image": args.image,
            "status": verdict.status,
            "expected_hash": verdict.expected_hash,
            "calculated_hash": verdict.calculated_hash,
        },
    )
    if verdict.status == "authentic":
        return EXIT_AUTHENTIC
    if verdict.status in ("tampered", "malformed"):
        return EXIT_REJECTED
    return EXIT_UNVERIFIABLE


def _run_chunks(args: argparse.Namespace) -> int:
    data = Path(args.image).read_bytes()
    try:
        for chunk in iter_chunks(data):
            status = "ok" if chunk.crc_matches(data) else "BAD CRC"
            print(f"{chunk.offset:>10}  {chunk.type}  {chunk.length:>10}  {status}")
    except PngMetadataError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_UNVERIFIABLE
    return EXIT_AUTHENTIC


def _run_config(args: argparse.Namespace) -> int:
    config = args.config
    changed = False
    if args.version is not None:
        config.version = args.version
        changed = True
    if args.top is not None:
        config.top_players = args.top
        changed = True
    if args.history is not None:
        config.history = args.history
        changed = True
    if changed:
        save_config(config)
    for key, value in config.to_dict().items():
        print(f"{key}: {value}")
    if changed:
        print("Config saved; BPSR_* environment variables still override these values.")
    return EXIT_AUTHENTIC


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"Expected a positive integer, got {value}.")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sign and verify BPSR parse result images.")
    parser.add_argument(
        "--no-history", action="store_true", help="Do not record the operation in history."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sign_parser = subparsers.add_parser("sign", help="Embed verification metadata into a parse image")
    sign_parser.add_argument("image", help="Rendered parse image (PNG, or anything Pillow can open).")
    sign_parser.add_argument("--stats", required=True, help="JSON file with combat rows.")
    sign_parser.add_argument("--duration", type=int, help="Parse duration in seconds.")
    sign_parser.add_argument("--out", help="Output PNG path (default: bpsr-parse-<timestamp>.png).")
    sign_parser.add_argument("--version", help="Version string stored in the metadata.")
    sign_parser.add_argument("--top", type=_positive_int, help="Number of players to keep.")
    sign_parser.set_defaults(func=_run_sign)

    verify_parser = subparsers.add_parser("verify", help="Check a parse image for tampering")
    verify_parser.add_argument("image", help="PNG file to verify.")
    verify_parser.add_argument("--json", action="store_true", help="Print the verdict as JSON.")
    verify_parser.set_defaults(func=_run_verify)

    chunks_parser = subparsers.add_parser("chunks", help="List PNG chunk information")
    chunks_parser.add_argument("image", help="PNG file.")
    chunks_parser.set_defaults(func=_run_chunks)

    config_parser = subparsers.add_parser("config", help="Show or update defaults")
    config_parser.add_argument("--version", help="Default version string.")
    config_parser.add_argument("--top", type=_positive_int, help="Default number of players to keep.")
    config_parser.add_argument(
        "--enable-history", dest="history", action="store_true", default=None, help="Record operations by default."
    )
    config_parser.add_argument(
        "--disable-history",
        dest="history",
        action="store_false",
        default=None,
        help="Do not record operations by default.",
    )
    config_parser.set_defaults(func=_run_config)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    args.config = load_config()
    try:
        return args.func(args)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_UNVERIFIABLE


if __name__ == "__main__":
    sys.exit(main())
