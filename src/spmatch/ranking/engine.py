from __future__ import annotations

import logging
import math
from multiprocessing import cpu_count, get_context
from typing import AbstractSet, Iterator, Sequence

from spmatch.config import CFG
from spmatch.logging import get_logger
from spmatch.scoring.overlap import score
from spmatch.types import ListSnapshot, MultiFollowBatch, OverlapResult

logger = get_logger(__name__)


def _sort_key(res: OverlapResult) -> tuple[float, str]:
    # NaN ranks last; equal results fall back to the list uri
    r = res.result
    return (math.inf if math.isnan(r) else -r, res.uri)


def rank_batch(
    target: AbstractSet[str],
    candidates: Sequence[ListSnapshot],
    top_k: int = CFG.top_k,
    log: logging.Logger | None = None,
) -> list[OverlapResult]:
    """
    Score one multi-follow target set against every candidate and keep the best
    ``top_k``, ordered by result descending. Zero-overlap candidates are dropped.
    """
    log = log or logger
    matches = [res for res in (score(c, target) for c in candidates) if res.overlap > 0]
    matches.sort(key=_sort_key)
    kept = matches[: max(0, int(top_k))]
    if kept:
        log.debug(
            "best result is %s (%s), last kept result is %s (%s), %s of %s candidates matched",
            kept[0].result,
            kept[0].uri,
            kept[-1].result,
            kept[-1].uri,
            len(matches),
            len(candidates),
        )
    return kept


# Per-process state for pool workers, set once by _init_worker.
_CANDIDATES: tuple[ListSnapshot, ...] = ()
_TOP_K: int = CFG.top_k


def _init_worker(candidates: tuple[ListSnapshot, ...], top_k: int) -> None:
    global _CANDIDATES, _TOP_K
    _CANDIDATES = candidates
    _TOP_K = top_k


def _rank_indexed(job: tuple[int, frozenset[str]]) -> tuple[int, list[OverlapResult]]:
    i, target = job
    return i, rank_batch(target, _CANDIDATES, _TOP_K)


def resolve_workers(workers: int) -> int:
    if workers > 0:
        return workers
    return max(1, cpu_count() - 1)


def rank_all(
    batches: Sequence[MultiFollowBatch],
    candidates: Sequence[ListSnapshot],
    top_k: int = CFG.top_k,
    workers: int = 1,
    start_method: str | None = CFG.mp_start,
    log: logging.Logger | None = None,
) -> Iterator[tuple[MultiFollowBatch, list[OverlapResult]]]:
    """
    Rank every batch against the shared candidate collection.

    Yields ``(batch, results)`` pairs. With more than one worker the batches are
    spread over a process pool and come back in completion order; each batch's
    own results keep their rank order. Batches with no followed accounts are
    skipped with a warning.
    """
    log = log or logger
    candidates = tuple(candidates)

    jobs: list[tuple[int, frozenset[str]]] = []
    for i, b in enumerate(batches):
        if not b.targets:
            log.warning("skipping multi-follow %s with no followed accounts", b.seq)
            continue
        jobs.append((i, b.targets))

    if workers <= 1 or len(jobs) <= 1:
        for i, target in jobs:
            yield batches[i], rank_batch(target, candidates, top_k, log=log)
        return

    procs = min(workers, len(jobs))
    chunksize = max(1, len(jobs) // (procs * 16))
    log.info("ranking %s multi-follows on %s procs...", len(jobs), procs)

    ctx = get_context(start_method)
    with ctx.Pool(processes=procs, initializer=_init_worker, initargs=(candidates, top_k)) as pool:
        for i, results in pool.imap_unordered(_rank_indexed, jobs, chunksize=chunksize):
            yield batches[i], results
