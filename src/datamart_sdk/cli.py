from __future__ import annotations

import argparse
import json
import logging
import shutil
import sys
from pathlib import Path
from typing import Any, Optional

from .client import DataMartClient
from .config import DataMartConfig
from .errors import DataMartError


def _build_client(args: argparse.Namespace) -> DataMartClient:
    config = DataMartConfig.from_env()
    return DataMartClient(
        config,
        company_secret=getattr(args, "company_secret", None),
        client_id=getattr(args, "client_id", None),
        base_url=getattr(args, "url", None),
    )


def _print_output(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def cmd_exists(args: argparse.Namespace) -> int:
    client = _build_client(args)
    try:
        found = client.exists(args.name)
    finally:
        client.close()
    _print_output({"name": args.name, "exists": found})
    return 0 if found else 1


def cmd_put(args: argparse.Namespace) -> int:
    source = Path(args.file).expanduser()
    if not source.is_file():
        raise SystemExit(f"File not found: {source}")
    name = args.name or source.name
    client = _build_client(args)
    try:
        handle = client.open_write(name, "wb")
        with handle, source.open("rb") as f:
            shutil.copyfileobj(f, handle)
            handle.commit()
    finally:
        client.close()
    _print_output({"name": name, "uploaded": True, "bytes": source.stat().st_size})
    return 0


def cmd_get(args: argparse.Namespace) -> int:
    client = _build_client(args)
    try:
        with client.open_read(args.name, "rb") as stream:
            if args.output in (None, "-"):
                shutil.copyfileobj(stream, sys.stdout.buffer)
                sys.stdout.flush()
                return 0
            target = Path(args.output).expanduser()
            with target.open("wb") as f:
                shutil.copyfileobj(stream, f)
    finally:
        client.close()
    _print_output({"name": args.name, "output": str(target), "bytes": target.stat().st_size})
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="datamart",
        description="Data Mart CLI (existence checks, uploads and downloads).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    parser.add_argument("--url", default=None, help="Data Mart API base URL.")
    parser.add_argument("--company-secret", dest="company_secret", default=None, help="Company secret override.")
    parser.add_argument("--client-id", dest="client_id", default=None, help="Project/client id override.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log requests at DEBUG level.")

    p_exists = subparsers.add_parser("exists", help="Check whether a file is in the Data Mart.")
    p_exists.add_argument("name", help="Remote filename.")
    p_exists.set_defaults(func=cmd_exists)

    p_put = subparsers.add_parser("put", help="Upload a local file.")
    p_put.add_argument("file", help="Local file to upload.")
    p_put.add_argument("--name", default=None, help="Remote filename. Defaults to the local file name.")
    p_put.set_defaults(func=cmd_put)

    p_get = subparsers.add_parser("get", help="Download a file.")
    p_get.add_argument("name", help="Remote filename.")
    p_get.add_argument("--output", "-o", default=None, help="Local path, or '-' for stdout (default).")
    p_get.set_defaults(func=cmd_get)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return int(args.func(args))
    except DataMartError as exc:
        _print_output({"ok": False, "error": str(exc)})
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
