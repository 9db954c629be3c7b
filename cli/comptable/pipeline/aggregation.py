"""Aggregation & Ranking Engine - Merges model answers into top-K entity lists."""

from typing import Iterable, Mapping

from comptable.models.output import Competitor, Criterion, RawModelResponse
from comptable.pipeline.classification import classify_competitor, classify_criterion

DEFAULT_TOP_K = 10


def count_frequencies(
    responses: Iterable[RawModelResponse],
    mapping: Mapping[str, str],
) -> dict[str, int]:
    """
    Count raw mentions per canonical name.

    Failed responses contribute nothing. An item missing from the mapping
    counts under its own name. A model that lists the same entity twice
    counts twice.

    Args:
        responses: Parsed model responses for one entity kind
        mapping: Raw string -> canonical name

    Returns:
        Canonical name -> count, in first-encounter order
    """
    counts: dict[str, int] = {}
    for response in responses:
        if not response.ok:
            continue
        for item in response.items:
            canonical = mapping.get(item) or item
            counts[canonical] = counts.get(canonical, 0) + 1
    return counts


def rank_frequencies(
    counts: Mapping[str, int], top_k: int = DEFAULT_TOP_K
) -> list[tuple[int, str, int]]:
    """
    Sort by descending frequency and keep the first top_k.

    Ties keep first-encounter order (sorted() is stable over the insertion
    ordered mapping). Zero counts are dropped; fewer than top_k entries are
    returned as-is.

    Returns:
        (rank, name, frequency) triples with rank starting at 1
    """
    ordered = sorted(
        ((name, frequency) for name, frequency in counts.items() if frequency > 0),
        key=lambda pair: -pair[1],
    )
    return [
        (rank, name, frequency)
        for rank, (name, frequency) in enumerate(ordered[:top_k], start=1)
    ]


def aggregate_competitors(
    responses: Iterable[RawModelResponse],
    mapping: Mapping[str, str],
    top_k: int = DEFAULT_TOP_K,
) -> list[Competitor]:
    """Rank competitors and classify each as company or product."""
    competitors = []
    for rank, name, frequency in rank_frequencies(count_frequencies(responses, mapping), top_k):
        kind, parent = classify_competitor(name)
        competitors.append(Competitor(
            name=name,
            frequency=frequency,
            rank=rank,
            kind=kind,
            parent=parent,
        ))
    return competitors


def aggregate_criteria(
    responses: Iterable[RawModelResponse],
    mapping: Mapping[str, str],
    top_k: int = DEFAULT_TOP_K,
) -> list[Criterion]:
    """Rank criteria and attach value type, unit and scale."""
    criteria = []
    for rank, name, frequency in rank_frequencies(count_frequencies(responses, mapping), top_k):
        value_type, unit, scale = classify_criterion(name)
        criteria.append(Criterion(
            name=name,
            frequency=frequency,
            rank=rank,
            value_type=value_type,
            unit=unit,
            scale=scale,
        ))
    return criteria


def unique_entities(responses: Iterable[RawModelResponse]) -> list[str]:
    """Order-preserving union of every item across successful responses."""
    seen: dict[str, None] = {}
    for response in responses:
        if response.ok:
            for item in response.items:
                seen.setdefault(item, None)
    return list(seen)
