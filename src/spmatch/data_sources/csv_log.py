from __future__ import annotations
import csv
import gzip
import zlib
from pathlib import Path
from typing import Iterator, TextIO

from spmatch.config import CFG
from spmatch.data_sources.base import InputError, RecordSource
from spmatch.logging import get_logger

log = get_logger(__name__)

MULTI_FOLLOW_FIELDS = {"seq": 1, "subject": 4}
MEMBERSHIP_FIELDS = {"timestamp": 0, "operation": 1, "member": 2, "list_uri": 3}

_READ_ERRORS = (OSError, EOFError, zlib.error, UnicodeDecodeError, csv.Error)


class CSVLogSource(RecordSource):
    """
    Comma-delimited event log with a header line, tokenized one row at a time.

    Every row must have as many fields as the header. Only the positional
    ``fields`` are kept, renamed to their keys. A row is read and checked only
    when the consumer asks for it.
    """

    def __init__(
        self,
        path: Path,
        fields: dict[str, int],
        compression: str = CFG.compression,
        chunksize: int = CFG.chunksize,
    ) -> None:
        self.path = Path(path)
        self.name = self.path.name
        self.fields = dict(fields)
        self.compression = compression
        self.chunksize = chunksize

    def _open(self) -> TextIO:
        gz = self.compression == "gzip" or (
            self.compression == "infer" and self.path.suffix == ".gz"
        )
        if gz:
            return gzip.open(self.path, "rt", encoding="utf-8", newline="")
        return self.path.open("r", encoding="utf-8", newline="")

    def rows(self) -> Iterator[tuple[int, dict[str, str]]]:
        f = self._open()
        with f:
            reader = csv.reader(f)
            record = 0
            width: int | None = None
            while True:
                try:
                    row = next(reader)
                except StopIteration:
                    break
                except _READ_ERRORS as exc:
                    raise InputError(self.name, record + 1, f"unable to parse CSV: {exc}") from exc
                if not row:
                    continue
                if width is None:
                    width = len(row)
                    continue
                record += 1
                yield record, self._select(row, record, width)
        if width is None:
            log.warning("%s has no records", self.path)

    def _select(self, row: list[str], record: int, width: int) -> dict[str, str]:
        if len(row) > width:
            raise InputError(
                self.name, record, f"unable to parse CSV: expected {width} fields, saw {len(row)}"
            )
        out = {}
        for name, pos in self.fields.items():
            if pos >= len(row):
                raise InputError(self.name, record, f"missing {name} field")
            out[name] = row[pos]
        if len(row) < width:
            raise InputError(
                self.name, record, f"unable to parse CSV: expected {width} fields, saw {len(row)}"
            )
        return out


def multi_follow_source(path: Path, **kwargs) -> CSVLogSource:
    return CSVLogSource(path, MULTI_FOLLOW_FIELDS, **kwargs)


def membership_source(path: Path, **kwargs) -> CSVLogSource:
    return CSVLogSource(path, MEMBERSHIP_FIELDS, **kwargs)
