from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from common.logs import build_logger

from .cache_storage import StateCacheStorage
from .options import StateStoreOptions


def _parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="python -m state", description="Persist run state in the Actions cache.")
    p.add_argument("--prefix", help="cache prefix (defaults to the cache-prefix input)")
    sub = p.add_subparsers(dest="command", required=True)
    save = sub.add_parser("save", help="store a serialized state; an empty value clears it")
    save.add_argument("value", nargs="?", help="state to store (read from stdin when omitted)")
    sub.add_parser("restore", help="print the stored state (empty when none)")
    return p


def main(argv: Optional[List[str]] = None, *, storage: Optional[StateCacheStorage] = None) -> int:
    args = _parser().parse_args(argv)
    build_logger("state")
    build_logger("common")

    if storage is None:
        overrides = {"cache_prefix": args.prefix} if args.prefix is not None else {}
        storage = StateCacheStorage(StateStoreOptions.from_env(**overrides))

    if args.command == "save":
        value = args.value if args.value is not None else sys.stdin.read()
        storage.save(value)
    else:
        sys.stdout.write(storage.restore())
    return 0


if __name__ == "__main__":
    sys.exit(main())
