from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal

Operation = Literal["add", "remove"]

OPERATION_CODES: dict[str, Operation] = {"c": "add", "d": "remove"}


@dataclass(frozen=True)
class MembershipEvent:
    timestamp: datetime
    # raw operation code, see OPERATION_CODES
    operation: str
    member: str
    list_uri: str
    record: int = 0
    source: str = ""

    @property
    def date(self) -> date:
        return self.timestamp.date()


@dataclass(frozen=True)
class ListSnapshot:
    uri: str
    members: frozenset[str]


@dataclass(frozen=True)
class MultiFollowBatch:
    seq: int
    targets: frozenset[str]


@dataclass(frozen=True)
class OverlapResult:
    uri: str
    multi_follow_size: int
    starter_pack_size: int
    intersection_size: int
    size_diff_factor: float
    overlap: float
    result: float
