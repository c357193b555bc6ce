"""Word-overlap scoring used to rank flow search candidates."""

from __future__ import annotations

from typing import Iterable

from tiangong_lca_flowmap.core.models import Ref
from tiangong_lca_flowmap.query import FlowQuery


def match_length(text: str | None, words: Iterable[str]) -> int:
    """Sum of the lengths of ``words`` that occur in ``text`` (case-insensitive)."""
    if not text:
        return 0
    haystack = text.casefold()
    score = 0
    for word in words:
        needle = word.strip().casefold()
        if needle and needle in haystack:
            score += len(needle)
    return score


def name_score(query: FlowQuery, candidate: Ref) -> int:
    return match_length(candidate.name, query.name.split())


def category_score(query: FlowQuery, category_path: Iterable[str]) -> int:
    return match_length("/".join(category_path), query.category.split("/"))


def location_matches(query: FlowQuery, candidate: Ref) -> bool:
    if not query.location or not candidate.location:
        return False
    return query.location.casefold() == candidate.location.strip().casefold()


def is_better_match(current: Ref | None, candidate: Ref, query: FlowQuery) -> bool:
    """Whether ``candidate`` should replace ``current`` as the best match.

    The name score decides; on a tie a matching location wins, then the
    larger category overlap. Equal candidates never replace the current one.
    """
    if current is None:
        return True
    current_score = name_score(query, current)
    candidate_score = name_score(query, candidate)
    if candidate_score != current_score:
        return candidate_score > current_score

    current_location = location_matches(query, current)
    candidate_location = location_matches(query, candidate)
    if current_location != candidate_location:
        return candidate_location

    if not query.category:
        return False
    return category_score(query, candidate.category_path) > category_score(query, current.category_path)
