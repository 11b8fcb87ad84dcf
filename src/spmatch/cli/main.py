from __future__ import annotations

from datetime import date, datetime
from pathlib import Path

import typer
from rich import print
from rich.console import Console
from rich.markup import escape

from spmatch.config import CFG
from spmatch.data_sources.base import InputError
from spmatch.pipeline import MatchConfig, load_batches, load_candidates, run_match
from spmatch.scoring.overlap import explain_overlap

app = typer.Typer(
    add_completion=False,
    help="Intersects CSVs of multi-follow operations and starter pack members",
)
err = Console(stderr=True)


def _parse_date(s: str) -> date:
    try:
        return datetime.strptime(s.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise typer.BadParameter(f"unable to parse date {s!r}, expected YYYY-MM-DD")


def _fail(exc: Exception) -> None:
    err.print(f"[red]error:[/red] {escape(str(exc))}")
    raise typer.Exit(code=1)


@app.command("match")
def cmd_match(
    multi: Path = typer.Option(..., help="File with the multi-follow operations of one day"),
    lists: Path = typer.Option(..., help="File with starter pack membership changes, ordered by time"),
    date: str = typer.Option(..., help="YYYY-MM-DD; membership changes are replayed up to and including it"),
    top_k: int = typer.Option(CFG.top_k, help="Matches kept per multi-follow"),
    workers: int = typer.Option(CFG.workers, help="Worker processes (0 = CPUs - 1)"),
    out: Path | None = typer.Option(None, help="Output CSV (default stdout)"),
    compression: str = typer.Option(CFG.compression, help="gzip | infer | none"),
    check_order: bool = typer.Option(CFG.check_order, help="Warn when the lists file is not time-sorted"),
):
    cfg = MatchConfig(
        multi=multi,
        lists=lists,
        date=_parse_date(date),
        top_k=top_k,
        workers=workers,
        compression=compression.strip().lower(),
        check_order=check_order,
    )
    try:
        summary = run_match(cfg, out)
    except (InputError, OSError) as exc:
        _fail(exc)
    err.print(summary)


@app.command("explain")
def cmd_explain(
    multi: Path = typer.Option(...),
    lists: Path = typer.Option(...),
    date: str = typer.Option(...),
    seq: int = typer.Option(..., help="Multi-follow sequence number"),
    uri: str = typer.Option(..., help="Starter pack list uri"),
    compression: str = typer.Option(CFG.compression),
):
    cfg = MatchConfig(multi=multi, lists=lists, date=_parse_date(date), compression=compression.strip().lower())
    try:
        candidates = {c.uri: c for c in load_candidates(cfg)}
        batches = {b.seq: b for b in load_batches(cfg)}
    except (InputError, OSError) as exc:
        _fail(exc)

    if uri not in candidates:
        _fail(ValueError(f"no starter pack {uri!r} with members on {cfg.date}"))
    if seq not in batches:
        _fail(ValueError(f"no multi-follow with seq {seq}"))
    print(explain_overlap(candidates[uri], batches[seq].targets))


def main():
    app()


if __name__ == "__main__":
    main()
