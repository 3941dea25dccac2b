from __future__ import annotations

import heapq
from typing import Dict, Iterable, List, Mapping, Tuple

from ..models import HASHTAG, MENTION, EntityType, TypedGroup


def split_type(token: str) -> EntityType:
    return MENTION if token.startswith("@") else HASHTAG


def group_by_type(counts: Mapping[str, int]) -> Dict[EntityType, List[Tuple[str, int]]]:
    groups: Dict[EntityType, List[Tuple[str, int]]] = {}
    for token, count in counts.items():
        groups.setdefault(split_type(token), []).append((token, count))
    return groups


def select_top_k(counts: Iterable[Tuple[str, int]], k: int) -> List[Tuple[str, int]]:
    """Return the ``k`` highest counts, descending; equal counts ordered by token."""

    if k < 1:
        raise ValueError("k must be at least 1")
    return heapq.nsmallest(k, counts, key=lambda entry: (-entry[1], entry[0]))


def rank_window(window_start: int, counts: Mapping[str, int], k: int) -> List[TypedGroup]:
    groups = group_by_type(counts)
    return [
        TypedGroup(entity_type=entity_type, window_start=window_start, entries=select_top_k(entries, k))
        for entity_type, entries in sorted(groups.items())
    ]
