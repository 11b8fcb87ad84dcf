from __future__ import annotations

from typing import Iterable

import pandas as pd

from spmatch.data_sources.base import InputError, RecordSource, parse_seq
from spmatch.types import MultiFollowBatch


def partial_aggregate(chunk: pd.DataFrame, source_name: str = "multi-follow log") -> dict[int, set[str]]:
    """
    Fold one chunk of multi-follow rows into ``{seq: followed accounts}``.
    """
    keys = []
    for record, seq in zip(chunk["record"], chunk["seq"]):
        try:
            keys.append(parse_seq(seq))
        except ValueError as exc:
            raise InputError(source_name, int(record), str(exc)) from exc
    grouped = chunk.assign(seq=keys).groupby("seq")["subject"].agg(set)
    return {int(seq): subjects for seq, subjects in grouped.items()}


def merge_partials(partials: Iterable[dict[int, set[str]]]) -> dict[int, set[str]]:
    merged: dict[int, set[str]] = {}
    for part in partials:
        for seq, subjects in part.items():
            if seq in merged:
                merged[seq] |= subjects
            else:
                merged[seq] = set(subjects)
    return merged


def aggregate(source: RecordSource) -> list[MultiFollowBatch]:
    """
    Group multi-follow records by batch sequence number.

    Each chunk is folded on its own and the partial maps are merged by set union,
    so row order does not matter.
    """
    merged = merge_partials(partial_aggregate(c, source.name) for c in source.chunks())
    return [MultiFollowBatch(seq, frozenset(merged[seq])) for seq in sorted(merged)]
