from __future__ import annotations
import logging
import math

from spmatch.ranking.engine import _sort_key, rank_all, rank_batch
from spmatch.types import ListSnapshot, MultiFollowBatch, OverlapResult

TARGET = frozenset(f"did:{i}" for i in range(20))
ORDERED = sorted(TARGET, key=lambda d: int(d.split(":")[1]))


def growing_candidates(n: int = 15) -> list[ListSnapshot]:
    # candidate i holds the first i+1 targets: overlap 1, result (i+1)/20
    return [ListSnapshot(f"at://list/{i:02d}", frozenset(ORDERED[: i + 1])) for i in range(n)]


def test_top_k_keeps_highest_in_descending_order():
    out = rank_batch(TARGET, growing_candidates(15), top_k=10)
    assert [r.uri for r in out] == [f"at://list/{i:02d}" for i in range(14, 4, -1)]
    results = [r.result for r in out]
    assert all(a > b for a, b in zip(results, results[1:]))


def test_zero_overlap_candidates_are_excluded():
    cands = growing_candidates(3) + [ListSnapshot("at://list/none", frozenset({"x", "y"}))]
    out = rank_batch(TARGET, cands, top_k=10)
    assert len(out) == 3
    assert all(r.overlap > 0 for r in out)


def test_ties_break_on_uri():
    members = frozenset({"a", "b"})
    cands = [ListSnapshot("at://b", members), ListSnapshot("at://a", members), ListSnapshot("at://c", members)]
    out = rank_batch(frozenset({"a", "b"}), cands, top_k=2)
    assert [r.uri for r in out] == ["at://a", "at://b"]


def test_nan_sorts_last():
    def res(uri, r):
        return OverlapResult(uri, 1, 1, 1, 1.0, 1.0, r)

    ranked = sorted([res("n", math.nan), res("lo", 0.1), res("hi", 0.9)], key=_sort_key)
    assert [r.uri for r in ranked] == ["hi", "lo", "n"]


def test_rank_all_skips_empty_batches(caplog):
    log = logging.getLogger("test.rank")
    batches = [MultiFollowBatch(1, frozenset()), MultiFollowBatch(2, frozenset({"did:0"}))]
    with caplog.at_level(logging.WARNING, logger="test.rank"):
        out = list(rank_all(batches, growing_candidates(3), top_k=10, log=log))
    assert [b.seq for b, _ in out] == [2]
    assert "skipping multi-follow 1" in caplog.text


def test_rank_all_parallel_matches_serial():
    cands = growing_candidates(15)
    batches = [MultiFollowBatch(i, frozenset(ORDERED[i : i + 6])) for i in range(12)]
    serial = {b.seq: res for b, res in rank_all(batches, cands, top_k=5, workers=1)}
    parallel = {
        b.seq: res for b, res in rank_all(batches, cands, top_k=5, workers=2, start_method="spawn")
    }
    assert parallel == serial
    assert len(serial) == 12
