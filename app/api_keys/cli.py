"""Command-line client for the key validator API.

Usage:
  python -m app.api_keys.cli extract --in keys.txt
  python -m app.api_keys.cli validate --in keys.txt --base-url http://127.0.0.1:8000
  python -m app.api_keys.cli list
  python -m app.api_keys.cli export --out valid_keys.txt
  python -m app.api_keys.cli clear-invalid
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional, Sequence

import httpx
from loguru import logger

from app.api_keys.batch_client import BatchProgress, KeyValidationClient
from app.api_keys.exceptions import BatchTransportError
from app.api_keys.extractor import extract_keys_with_summary
from app.api_keys.schemas import KeyRecordInfo
from app.core.logging_setup import configure_logging


def _read_input(path: Optional[str]) -> str:
    if not path or path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _print_records(records: Sequence[KeyRecordInfo]) -> None:
    if not records:
        print("No keys stored.")
        return
    for record in records:
        line = f"{record.status.value:<9} {record.key_string}"
        if record.error_message:
            line += f"  ({record.error_message})"
        print(line)
    print(f"{len(records)} key(s)")


def _log_progress(progress: BatchProgress) -> None:
    logger.info(
        "Processed {}/{} keys ({}%)",
        progress.processed,
        progress.total,
        progress.percent,
    )


async def _validate(client: KeyValidationClient, keys: List[str]) -> int:
    try:
        await client.validate_all(keys, on_progress=_log_progress)
    except BatchTransportError as exc:
        logger.error("Validation stopped: {}", exc)
        _print_records(await client.fetch_all())
        return 1
    _print_records(await client.fetch_all())
    return 0


def cmd_extract(args: argparse.Namespace) -> int:
    result = extract_keys_with_summary(_read_input(args.input))
    logger.info(result.message)
    for key in result.keys:
        print(key)
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    result = extract_keys_with_summary(_read_input(args.input))
    logger.info(result.message)
    if not result.keys:
        return 0
    client = KeyValidationClient(args.base_url, batch_size=args.batch_size)
    return asyncio.run(_validate(client, result.keys))


def cmd_list(args: argparse.Namespace) -> int:
    client = KeyValidationClient(args.base_url)
    _print_records(asyncio.run(client.fetch_all()))
    return 0


def cmd_clear_invalid(args: argparse.Namespace) -> int:
    client = KeyValidationClient(args.base_url)
    response = asyncio.run(client.clear_invalid())
    print(response.message)
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    client = KeyValidationClient(args.base_url)
    keys = asyncio.run(client.export_valid())
    if not keys:
        logger.warning("No valid keys to export.")
        return 0
    content = "\n".join(keys)
    if args.out:
        Path(args.out).write_text(content, encoding="utf-8")
        logger.info("Wrote {} valid keys to {}", len(keys), args.out)
    else:
        print(content)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Gemini API key validator client")
    parser.add_argument("--base-url", default=None, help="API server base URL (default: API_BASE_URL)")

    # Accepted after the subcommand too; SUPPRESS keeps a value given before it
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--base-url", default=argparse.SUPPRESS, help="API server base URL (default: API_BASE_URL)")

    sub = parser.add_subparsers(dest="command", required=True)

    extract = sub.add_parser("extract", parents=[common], help="Print keys detected in a text file")
    extract.add_argument("--in", dest="input", default="-", help="Input file ('-' for stdin)")
    extract.set_defaults(func=cmd_extract)

    validate = sub.add_parser("validate", parents=[common], help="Detect, validate and store keys")
    validate.add_argument("--in", dest="input", default="-", help="Input file ('-' for stdin)")
    validate.add_argument("--batch-size", type=int, default=None, help="Keys per request")
    validate.set_defaults(func=cmd_validate)

    sub.add_parser("list", parents=[common], help="Show stored keys").set_defaults(func=cmd_list)
    sub.add_parser("clear-invalid", parents=[common], help="Delete invalid and errored keys").set_defaults(func=cmd_clear_invalid)

    export = sub.add_parser("export", parents=[common], help="Export valid keys")
    export.add_argument("--out", default=None, help="Output file (default: stdout)")
    export.set_defaults(func=cmd_export)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    configure_logging(production=True)
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except httpx.HTTPError as exc:
        logger.error("Request failed: {}", exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
