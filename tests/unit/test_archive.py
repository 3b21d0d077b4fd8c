from __future__ import annotations

import pytest

from common.archive import ArchiveError, create_archive, extract_archive


def test_extract_only_writes_requested_paths(tmp_path):
    keep = tmp_path / "keep"
    skip = tmp_path / "skip"
    for d in (keep, skip):
        d.mkdir()
        (d / "f.txt").write_text(d.name, encoding="utf-8")
    data = create_archive([str(keep), str(skip)])

    (keep / "f.txt").unlink()
    (skip / "f.txt").unlink()
    count = extract_archive(data, [str(keep)])

    assert count >= 1
    assert (keep / "f.txt").read_text(encoding="utf-8") == "keep"
    assert not (skip / "f.txt").exists()


def test_single_file_path(tmp_path):
    f = tmp_path / "one.txt"
    f.write_text("1", encoding="utf-8")
    data = create_archive([str(f)])
    f.unlink()

    assert extract_archive(data, [str(f)]) == 1
    assert f.read_text(encoding="utf-8") == "1"


def test_missing_paths_are_rejected(tmp_path):
    with pytest.raises(ArchiveError):
        create_archive([str(tmp_path / "absent")])
    with pytest.raises(ArchiveError):
        create_archive([])


def test_corrupt_archive_raises(tmp_path):
    with pytest.raises(ArchiveError):
        extract_archive(b"definitely not gzip", [str(tmp_path)])
