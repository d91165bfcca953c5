from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Tuple

from ..index.schema import FusedResult, NoteRecord, RankedItem

RRF_K = 60


def as_ranked(records: Sequence[NoteRecord]) -> List[RankedItem]:
    return [RankedItem(key=r.key, rank=idx) for idx, r in enumerate(records)]


def rrf_scores(ranked_lists: Iterable[Sequence[RankedItem]], k: int = RRF_K) -> Dict[Tuple[str, str], float]:
    """Sum 1 / (k + rank) per (title, content) key across all lists.

    Dict order is first-encounter order, which is what breaks ties below.
    """
    scores: Dict[Tuple[str, str], float] = {}
    for items in ranked_lists:
        for item in items:
            scores[item.key] = scores.get(item.key, 0.0) + 1.0 / (k + item.rank)
    return scores


def rrf_merge(
    vector_hits: Sequence[NoteRecord],
    lexical_hits: Sequence[NoteRecord],
    k: int = RRF_K,
    limit: int = 20,
) -> List[FusedResult]:
    """Fuse vector and lexical rankings (each best-first) with Reciprocal Rank Fusion."""
    scores = rrf_scores([as_ranked(vector_hits), as_ranked(lexical_hits)], k=k)
    # sorted() is stable, so equal scores keep first-encounter order
    ordered = sorted(scores.items(), key=lambda kv: kv[1], reverse=True)
    return [
        FusedResult(title=title, content=content, score=score)
        for (title, content), score in ordered[:limit]
    ]
