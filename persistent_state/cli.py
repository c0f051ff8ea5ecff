"""Command line access to a filesystem store.

    persistent-state --dir ./state list
    persistent-state --dir ./state set Settings '{"account": "Testolope"}'
    persistent-state --app-id org.example.app get Settings

Exit codes: 0 ok, 1 key not found, 2 bad arguments or directory,
3 fatal storage error, 4 out of space.
"""
from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

from persistent_state.config import StoreConfig, load_config
from persistent_state.errors import CodecError, FatalStorageError, InvalidDirectory, OutOfSpace
from persistent_state.logging_config import configure_logging
from persistent_state.storage import StorageBackend, get_coder, storage_from_config
from persistent_state.storage.serializer import Coder

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_MISSING = 1
EXIT_USAGE = 2
EXIT_FATAL = 3
EXIT_NO_SPACE = 4


def get_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="persistent-state", description="Inspect and edit a persistent state store")
    p.add_argument("--config", type=Path, help="YAML config file (default: ./persistent_state.yml)")
    where = p.add_mutually_exclusive_group()
    where.add_argument("--dir", dest="directory", help="Store directory (must exist)")
    where.add_argument("--app-id", help="Use the platform data directory of this application")
    p.add_argument("--prefix", help="Filename prefix of the store entries")
    p.add_argument("--key-encoding", choices=["percent", "base64"], help="Filename encoding of keys")
    p.add_argument("--coder", choices=["json", "yaml", "pickle"], help="Value encoding of entries")
    p.add_argument("--log-level", help="Logging level (e.g. DEBUG, INFO)")

    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="List all keys")
    get = sub.add_parser("get", help="Print the value stored under KEY as JSON")
    get.add_argument("key")
    put = sub.add_parser("set", help="Store a JSON value under KEY")
    put.add_argument("key")
    put.add_argument("value", help="JSON text")
    rm = sub.add_parser("delete", help="Delete the entry for KEY")
    rm.add_argument("key")
    return p


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    parser = get_parser()
    if argv is not None:
        argv = list(argv)
    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace) -> StoreConfig:
    """Merge the config file with command line overrides."""
    config = load_config(args.config)
    overrides = {
        name: getattr(args, name)
        for name in ("directory", "app_id", "prefix", "key_encoding", "coder", "log_level")
        if getattr(args, name) is not None
    }
    if args.directory is not None:
        overrides["app_id"] = None
    elif args.app_id is not None:
        overrides["directory"] = None
    return StoreConfig.model_validate({**config.model_dump(), **overrides})


def _show_key(key) -> str:
    return key if isinstance(key, str) else repr(key)


def run(args: argparse.Namespace, storage: StorageBackend, coder: Coder) -> int:
    if args.command == "list":
        for key in sorted(storage.list(), key=_show_key):
            print(_show_key(key))
        return EXIT_OK

    if args.command == "get":
        data = storage.read(args.key)
        if data is None:
            print(f"No entry for key: {args.key}", file=sys.stderr)
            return EXIT_MISSING
        try:
            value = coder.decode(data)
        except Exception as e:
            raise CodecError(f"cannot decode entry {args.key!r}: {e}") from e
        print(json.dumps(value, indent=2, ensure_ascii=False, default=str))
        return EXIT_OK

    if args.command == "set":
        try:
            value = json.loads(args.value)
        except json.JSONDecodeError as e:
            print(f"Invalid JSON value: {e}", file=sys.stderr)
            return EXIT_USAGE
        storage.write(args.key, coder.encode(value))
        return EXIT_OK

    if args.command == "delete":
        if not storage.exists(args.key):
            print(f"No entry for key: {args.key}", file=sys.stderr)
            return EXIT_MISSING
        storage.delete(args.key)
        return EXIT_OK

    raise ValueError(f"unknown command: {args.command}")


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = resolve_config(args)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_USAGE
    configure_logging(args.config, level=config.log_level)

    if config.directory is None and config.app_id is None:
        print("No store given: use --dir, --app-id or a config file", file=sys.stderr)
        return EXIT_USAGE

    try:
        storage = storage_from_config(config)
    except InvalidDirectory as e:
        print(f"Invalid store directory: {e}", file=sys.stderr)
        return EXIT_USAGE
    except ValueError as e:
        print(f"Invalid store options: {e}", file=sys.stderr)
        return EXIT_USAGE

    try:
        return run(args, storage, get_coder(config.coder))
    except OutOfSpace as e:
        print(f"Out of space: {e}", file=sys.stderr)
        return EXIT_NO_SPACE
    except FatalStorageError as e:
        logger.error("Fatal storage error: %s", e)
        print(f"Fatal storage error: {e}", file=sys.stderr)
        return EXIT_FATAL


if __name__ == "__main__":
    raise SystemExit(main())
