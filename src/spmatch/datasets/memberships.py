from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Iterator

from spmatch.data_sources.base import InputError, RecordSource, parse_operation, parse_rfc3339
from spmatch.logging import get_logger
from spmatch.types import ListSnapshot, MembershipEvent

logger = get_logger(__name__)


def iter_membership_events(source: RecordSource) -> Iterator[MembershipEvent]:
    """
    Lazily turn membership-log rows into events.

    Only the timestamp is parsed here; operation codes are checked by ``replay``.
    Rows past an early stop in ``replay`` are never read.
    """
    for record, row in source.rows():
        try:
            timestamp = parse_rfc3339(row["timestamp"])
        except ValueError as exc:
            raise InputError(source.name, record, str(exc)) from exc
        yield MembershipEvent(
            timestamp, row["operation"], row["member"], row["list_uri"], record, source.name
        )


def replay(
    events: Iterable[MembershipEvent],
    cutoff: date,
    check_order: bool = True,
    log: logging.Logger | None = None,
) -> dict[str, frozenset[str]]:
    """
    Rebuild every list's membership as of the end of ``cutoff``.

    Events must be sorted by time. Processing stops at the first event dated after
    ``cutoff``; the rest of the stream is not consumed. Lists that end up empty are
    dropped.
    """
    log = log or logger
    lists: dict[str, set[str]] = {}
    prev: date | None = None
    unordered = 0

    for ev in events:
        day = ev.date
        if day > cutoff:
            break
        if check_order and prev is not None and day < prev:
            if unordered == 0:
                log.warning(
                    "membership event at record %s dated %s precedes %s; input is not sorted",
                    ev.record,
                    day,
                    prev,
                )
            unordered += 1
        prev = day if prev is None else max(prev, day)

        try:
            operation = parse_operation(ev.operation)
        except ValueError as exc:
            raise InputError(ev.source or "membership log", ev.record, str(exc)) from exc

        members = lists.setdefault(ev.list_uri, set())
        if operation == "add":
            members.add(ev.member)
        else:
            if ev.member in members:
                members.remove(ev.member)
            else:
                log.warning("removal of %s from list %s but was not present", ev.member, ev.list_uri)

    if unordered:
        log.warning("%s membership events were out of order; snapshot may be wrong", unordered)

    return {uri: frozenset(members) for uri, members in lists.items() if members}


def build_candidates(snapshot: dict[str, frozenset[str]]) -> tuple[ListSnapshot, ...]:
    return tuple(ListSnapshot(uri, snapshot[uri]) for uri in sorted(snapshot))
