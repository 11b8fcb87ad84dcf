from __future__ import annotations
import gzip
from pathlib import Path

import pytest


@pytest.fixture
def write_gz(tmp_path: Path):
    def _write(name: str, header: str, rows: list[str]) -> Path:
        path = tmp_path / name
        with gzip.open(path, "wt", encoding="utf-8", newline="") as f:
            f.write(header + "\n")
            for r in rows:
                f.write(r + "\n")
        return path

    return _write
