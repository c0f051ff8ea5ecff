#!/usr/bin/env python3
"""Small CLI to dump every entry of a store directory.

Entries are decoded with the chosen coder and printed as JSON (falling back
to repr for values JSON cannot represent). Undecodable entries are reported
and skipped so a damaged store can still be inspected.

Warning: `--coder pickle` unpickles the entries, which can execute arbitrary
code. Use it only on stores you trust.
"""

from __future__ import annotations

import argparse
import json
import sys

from persistent_state.errors import FatalStorageError, InvalidDirectory
from persistent_state.storage import DEFAULT_PREFIX, FilesystemStorage, get_coder, get_key_encoder


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Dump the entries of a persistent_state store directory")
    p.add_argument("directory", help="Store directory")
    p.add_argument("--prefix", default=DEFAULT_PREFIX, help="Filename prefix of the store entries")
    p.add_argument("--key-encoding", default="percent", choices=["percent", "base64"])
    p.add_argument("--coder", default="json", choices=["json", "yaml", "pickle"])
    return p.parse_args()


def safe_json_dumps(obj):
    try:
        return json.dumps(obj, indent=2, ensure_ascii=False)
    except (TypeError, ValueError):
        # Fallback: JSON can't represent this object; use repr
        return json.dumps({"repr": repr(obj)}, indent=2)


def main() -> int:
    args = parse_args()
    try:
        storage = FilesystemStorage(
            args.directory, prefix=args.prefix, key_encoder=get_key_encoder(args.key_encoding)
        )
    except InvalidDirectory as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    coder = get_coder(args.coder)
    try:
        keys = storage.list()
    except FatalStorageError as exc:
        print(f"Failed to list store: {exc}", file=sys.stderr)
        return 3

    failed = 0
    for key in sorted(keys, key=repr):
        data = storage.read(key)
        if data is None:
            continue
        try:
            value = coder.decode(data)
        except Exception as exc:
            failed += 1
            print(f"{key!r}: <undecodable, {len(data)} bytes: {exc}>")
            continue
        print(f"{key!r} ({len(data)} bytes):")
        print(safe_json_dumps(value))

    print(f"{len(keys)} entries, {failed} undecodable", file=sys.stderr)
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
