from __future__ import annotations
import csv
import math
from decimal import Decimal
from typing import Iterable, TextIO

from spmatch.types import OverlapResult

COLS = [
    "seq",
    "uri",
    "multi_follow_size",
    "starter_pack_size",
    "intersection_size",
    "size_diff_factor",
    "overlap",
    "result",
]


def format_float(x: float) -> str:
    """Shortest round-trip decimal, no exponent, integral values without ``.0``."""
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "inf" if x > 0 else "-inf"
    s = repr(float(x))
    if "e" in s:
        s = format(Decimal(s), "f")
    if s.endswith(".0"):
        s = s[:-2]
    return s


class ResultWriter:
    """Writes ranked matches as CSV rows. Not shared across processes."""

    def __init__(self, stream: TextIO) -> None:
        self.w = csv.writer(stream, lineterminator="\n")
        self.rows = 0

    def write_header(self) -> None:
        self.w.writerow(COLS)

    def write_batch(self, seq: int, results: Iterable[OverlapResult]) -> int:
        n = 0
        for r in results:
            self.w.writerow(
                [
                    seq,
                    r.uri,
                    r.multi_follow_size,
                    r.starter_pack_size,
                    r.intersection_size,
                    format_float(r.size_diff_factor),
                    format_float(r.overlap),
                    format_float(r.result),
                ]
            )
            n += 1
        self.rows += n
        return n
