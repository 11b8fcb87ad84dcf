from __future__ import annotations

import sys
from contextlib import nullcontext
from dataclasses import dataclass
from datetime import date
from pathlib import Path

from spmatch.config import CFG
from spmatch.data_sources.csv_log import membership_source, multi_follow_source
from spmatch.datasets.memberships import build_candidates, iter_membership_events, replay
from spmatch.datasets.multi_follows import aggregate
from spmatch.logging import get_logger
from spmatch.ranking.engine import rank_all, resolve_workers
from spmatch.ranking.report import ResultWriter
from spmatch.types import ListSnapshot, MultiFollowBatch

log = get_logger(__name__)


@dataclass(frozen=True)
class MatchConfig:
    multi: Path
    lists: Path
    date: date
    top_k: int = CFG.top_k
    workers: int = CFG.workers
    compression: str = CFG.compression
    chunksize: int = CFG.chunksize
    check_order: bool = CFG.check_order
    start_method: str = CFG.mp_start


def load_candidates(cfg: MatchConfig) -> tuple[ListSnapshot, ...]:
    log.debug("reading list membership from %s...", cfg.lists)
    src = membership_source(cfg.lists, compression=cfg.compression, chunksize=cfg.chunksize)
    snapshot = replay(iter_membership_events(src), cfg.date, check_order=cfg.check_order)
    log.info(
        "read %s starter packs with participants until and including %s", len(snapshot), cfg.date
    )
    return build_candidates(snapshot)


def load_batches(cfg: MatchConfig) -> list[MultiFollowBatch]:
    log.debug("reading multi-follows file from %s...", cfg.multi)
    src = multi_follow_source(cfg.multi, compression=cfg.compression, chunksize=cfg.chunksize)
    batches = aggregate(src)
    log.info("read %s multi-follows", len(batches))
    return batches


def run_match(cfg: MatchConfig, out: Path | None = None) -> dict:
    """
    Replay list membership up to ``cfg.date``, group multi-follows, and write the
    top matches per multi-follow as CSV to ``out`` (stdout when None).

    Both inputs are fully read before the header is written, so a bad input
    never leaves partial output behind.
    """
    candidates = load_candidates(cfg)
    batches = load_batches(cfg)
    workers = resolve_workers(cfg.workers)

    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        sink = out.open("w", newline="", encoding="utf-8")
    else:
        sink = nullcontext(sys.stdout)

    with sink as stream:
        writer = ResultWriter(stream)
        writer.write_header()
        ranked = 0
        for batch, results in rank_all(
            batches,
            candidates,
            top_k=cfg.top_k,
            workers=workers,
            start_method=cfg.start_method,
        ):
            writer.write_batch(batch.seq, results)
            ranked += 1
        stream.flush()

    log.info("wrote %s rows for %s multi-follows", writer.rows, ranked)
    return {
        "ok": True,
        "starter_packs": len(candidates),
        "batches": ranked,
        "rows": writer.rows,
        "out": str(out) if out is not None else "-",
    }
