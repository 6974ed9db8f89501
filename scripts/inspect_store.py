#!/usr/bin/env python3
"""Inspect or edit stores kept in a FileSlotStorage directory.

Usage
-----
    python scripts/inspect_store.py --dir ./slots
    python scripts/inspect_store.py --dir ./slots --location https://acme.com/page
    python scripts/inspect_store.py --dir ./slots --location https://acme.com --set consent='"granted"'
    python scripts/inspect_store.py --dir ./slots --location https://acme.com --remove consent
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from ampstorage import (
    BroadcastHub,
    FileSlotStorage,
    StorageConfig,
    StorageDecodeError,
    create_storage,
    decode_blob,
    origin_from_location,
)

MAX_VAL_WIDTH = 60


def _truncate(val: Any, width: int = MAX_VAL_WIDTH) -> str:
    s = json.dumps(val, ensure_ascii=False)
    if len(s) <= width:
        return s
    return s[: width - 3] + "..."


def _describe_slot(slots: FileSlotStorage, key: str) -> dict[str, Any]:
    blob = slots.get_item(key)
    if blob is None:
        return {"slot": key, "entries": None}
    try:
        entries = decode_blob(blob)
    except StorageDecodeError as exc:
        return {"slot": key, "error": str(exc)}
    return {
        "slot": key,
        "entries": {k: e.model_dump(by_alias=True) for k, e in entries.items()},
    }


def _print_slot(info: dict[str, Any]) -> None:
    print(f"── {info['slot']}")
    if "error" in info:
        print(f"  <undecodable: {info['error']}>")
        return
    entries = info["entries"]
    if not entries:
        print("  <empty>")
        return
    for key, entry in entries.items():
        print(f"  {key:<24} t={entry['t']:<14} {_truncate(entry['v'])}")


def _parse_assignment(text: str) -> tuple[str, Any]:
    key, sep, raw = text.partition("=")
    if not sep or not key:
        raise SystemExit(f"--set expects KEY=JSON, got {text!r}")
    try:
        return key, json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SystemExit(f"--set value for {key!r} is not JSON: {exc}") from exc


async def main() -> None:
    parser = argparse.ArgumentParser(description="Inspect or edit ampstorage slot files.")
    parser.add_argument("--dir", help="Slot directory (default: AMP_STORAGE_SLOT_DIR)")
    parser.add_argument("--location", help="Only show the store of this page/origin")
    parser.add_argument("--set", action="append", default=[], metavar="KEY=JSON", help="Store a value")
    parser.add_argument("--remove", action="append", default=[], metavar="KEY", help="Remove a key")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = StorageConfig.from_env()
    directory = args.dir or config.slot_directory
    if not directory:
        raise SystemExit("No slot directory given (use --dir or AMP_STORAGE_SLOT_DIR)")
    slots = FileSlotStorage(directory)

    if (args.set or args.remove) and not args.location:
        raise SystemExit("--set/--remove require --location")

    if args.location:
        storage = create_storage(args.location, broadcaster=BroadcastHub().connect(), slots=slots, config=config)
        for assignment in args.set:
            key, value = _parse_assignment(assignment)
            await storage.set(key, value)
        for key in args.remove:
            await storage.remove(key)
        keys = [f"{config.slot_prefix}{origin_from_location(args.location)}"]
    else:
        keys = [k for k in slots.keys() if k.startswith(config.slot_prefix)]

    infos = [_describe_slot(slots, key) for key in keys]
    if args.json_mode:
        json.dump(infos, sys.stdout, indent=2, ensure_ascii=False)
        print()
        return
    if not infos:
        print(f"No stores in {directory}")
    for info in infos:
        _print_slot(info)


if __name__ == "__main__":
    asyncio.run(main())
