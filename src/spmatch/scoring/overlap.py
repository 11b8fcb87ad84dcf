from __future__ import annotations

from typing import AbstractSet

from spmatch.types import ListSnapshot, OverlapResult


def score(candidate: ListSnapshot, target: AbstractSet[str]) -> OverlapResult:
    """
    Score how well a starter pack matches a multi-follow target set.

    - size_diff_factor = 1 - |I - larger| / larger, where I is the intersection size
      and larger the bigger of the two set sizes. This is not Jaccard: it measures
      how close I gets to the larger set, not to the union.
    - overlap = I / smaller, the share of the smaller set found in the other one.
    - result = overlap * size_diff_factor.

    Both sets must be non-empty.
    """
    members = candidate.members
    if not members or not target:
        raise ValueError(f"cannot score empty sets (list={candidate.uri!r})")

    intersection_size = len(members & target)
    larger = max(len(members), len(target))
    smaller = min(len(members), len(target))

    size_diff_factor = 1.0 - abs(intersection_size - larger) / larger
    overlap = intersection_size / smaller
    return OverlapResult(
        uri=candidate.uri,
        multi_follow_size=len(target),
        starter_pack_size=len(members),
        intersection_size=intersection_size,
        size_diff_factor=size_diff_factor,
        overlap=overlap,
        result=overlap * size_diff_factor,
    )


def explain_overlap(candidate: ListSnapshot, target: AbstractSet[str]) -> dict:
    """
    Small explain helper: the score terms plus which side the members fall on.
    """
    res = score(candidate, target)
    members = candidate.members
    return {
        "uri": res.uri,
        "multi_follow_size": res.multi_follow_size,
        "starter_pack_size": res.starter_pack_size,
        "intersection_size": res.intersection_size,
        "only_in_starter_pack": len(members - target),
        "only_in_multi_follow": len(target - members),
        "term_size_diff_factor": res.size_diff_factor,
        "term_overlap": res.overlap,
        "result": res.result,
    }
