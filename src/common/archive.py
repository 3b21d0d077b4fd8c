from __future__ import annotations

import io
import tarfile
from pathlib import Path, PurePath
from typing import List, Sequence


class ArchiveError(RuntimeError):
    """Raised when an archive cannot be created or unpacked."""


def _arcname(path: Path) -> str:
    # Absolute path without its anchor: "/tmp/x" -> "tmp/x"
    resolved = path.resolve()
    return resolved.relative_to(resolved.anchor).as_posix()


def _anchor(paths: Sequence[str]) -> Path:
    anchors = {Path(p).resolve().anchor for p in paths}
    if len(anchors) != 1:
        raise ArchiveError("All cached paths must share one filesystem root")
    return Path(anchors.pop())


def create_archive(paths: Sequence[str]) -> bytes:
    """Pack existing `paths` (files or directories) into gzip tar bytes."""
    if not paths:
        raise ArchiveError("No paths to archive")
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        added = 0
        for p in paths:
            path = Path(p)
            if not path.exists():
                continue
            tar.add(str(path), arcname=_arcname(path))
            added += 1
    if added == 0:
        raise ArchiveError("None of the given paths exist: " + ", ".join(paths))
    return buf.getvalue()


def _is_within(member: str, allowed: List[str]) -> bool:
    parts = PurePath(member).parts
    for root in allowed:
        root_parts = PurePath(root).parts
        if parts[: len(root_parts)] == root_parts:
            return True
    return False


def extract_archive(data: bytes, paths: Sequence[str]) -> int:
    """
    Unpack `data` back to its original locations.

    Only members that fall under one of `paths` are written; anything else in
    the archive is skipped. Returns the number of members extracted.
    """
    if not paths:
        raise ArchiveError("No paths to restore")
    anchor = _anchor(paths)
    allowed = [_arcname(Path(p)) for p in paths]
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
            members = [m for m in tar.getmembers() if _is_within(m.name, allowed)]
            tar.extractall(path=str(anchor), members=members, filter="data")
    except (tarfile.TarError, EOFError, OSError) as ex:
        raise ArchiveError(f"Failed to unpack cache archive: {ex}") from ex
    return len(members)
