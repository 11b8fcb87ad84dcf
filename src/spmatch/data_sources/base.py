from __future__ import annotations
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterator

import pandas as pd

from spmatch.types import OPERATION_CODES, Operation

_SEQ_RE = re.compile(r"[+-]?\d+", re.ASCII)
_RFC3339_RE = re.compile(
    r"(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})",
    re.ASCII,
)
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


class InputError(ValueError):
    """A fatal problem with an input file, located by file and record."""

    def __init__(self, source: str, record: int | None, message: str) -> None:
        self.source = source
        self.record = record
        where = source if record is None else f"{source}: record {record}"
        super().__init__(f"{where}: {message}")


class RecordSource(ABC):
    name: str
    chunksize: int

    @abstractmethod
    def rows(self) -> Iterator[tuple[int, dict[str, str]]]:
        """Yield ``(record, fields)`` with 1-based data record numbers."""
        raise NotImplementedError

    def chunks(self) -> Iterator[pd.DataFrame]:
        """Group rows into frames of named fields plus a ``record`` column."""
        buf: list[dict[str, str | int]] = []
        for record, fields in self.rows():
            buf.append({"record": record, **fields})
            if len(buf) >= self.chunksize:
                yield pd.DataFrame(buf)
                buf = []
        if buf:
            yield pd.DataFrame(buf)


def parse_seq(s: str) -> int:
    if not _SEQ_RE.fullmatch(s):
        raise ValueError(f"unable to parse seq as integer: {s!r}")
    n = int(s)
    if not _I64_MIN <= n <= _I64_MAX:
        raise ValueError(f"seq out of 64-bit range: {s!r}")
    return n


def parse_rfc3339(s: str) -> datetime:
    """
    Parse an RFC3339 timestamp, keeping its own UTC offset.

    Fractions beyond microseconds are truncated. ``.date()`` of the result is the
    calendar date as written, not the UTC date.
    """
    m = _RFC3339_RE.fullmatch(s)
    if not m:
        raise ValueError(f"unable to parse date: {s!r}")
    day, clock, frac, offset = m.groups()
    if clock.endswith(":60"):
        # leap second, folded into the preceding second
        clock = clock[:-2] + "59"
    text = f"{day}T{clock}"
    if frac:
        text += "." + frac[:6].ljust(6, "0")
    text += "+00:00" if offset in ("Z", "z") else offset
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"unable to parse date: {s!r}") from exc


def parse_operation(s: str) -> Operation:
    try:
        return OPERATION_CODES[s]
    except KeyError:
        raise ValueError(f"invalid operation: {s!r}") from None
