import os
import sys

import pytest


def pytest_configure():
    # Ensure `src/` is importable as top-level for `common.*` / `state.*` imports
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    src_path = os.path.join(root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


@pytest.fixture
def scratch_root(tmp_path):
    # Keep scratch files out of the real temp root
    path = tmp_path / "scratch-root"
    path.mkdir()
    return path
