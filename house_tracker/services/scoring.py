"""
Scoring -- criteria-weighted comparison of candidate properties.

Every rating is an ordinal 1-3 (Doesn't Meet / Partial / Meets).  A property
gets two averages, one over its must-have ratings and one over its
nice-to-have ratings, combined with a fixed weighting:

    total = must_have_avg * 3 + nice_to_have_avg * 1

A property is "Tier 1" when every must-have criterion currently defined is
rated exactly 3.  Scores are derived on every request and never stored.

Inputs are duck-typed: criteria need ``id`` and ``type``, ratings need
``criterion_id`` and ``score``.  ORM rows and plain objects both work.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from house_tracker.models.criterion import MUST_HAVE, NICE_TO_HAVE
from house_tracker.models.rating import RatingScore

MUST_HAVE_WEIGHT = 3
NICE_TO_HAVE_WEIGHT = 1

VIEW_TIER1 = "tier1"
VIEW_ALL = "all"
SORT_BY_TOTAL = "total"


@dataclass
class PropertyScore:
    property: Any
    must_have_score: float
    nice_to_have_score: float
    total_score: float
    meets_all_must_haves: bool
    ratings: list[Any] = field(default_factory=list)

    def rating_for(self, criterion_id: str) -> Any | None:
        """Return this property's rating for *criterion_id*, if any."""
        for rating in self.ratings:
            if rating.criterion_id == criterion_id:
                return rating
        return None


@dataclass
class Report:
    scores: list[PropertyScore]
    view: str
    sort_by: str
    has_properties: bool
    has_ratings: bool


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _mean(values: Sequence[int]) -> float:
    """Arithmetic mean, 0 for an empty sequence."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def score_label(score: int) -> str:
    """Human label for a 1-3 rating score."""
    return RatingScore(score).label


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def compute_score(prop: Any, ratings: Iterable[Any], criteria: Iterable[Any]) -> PropertyScore:
    """Score one property against the full criteria list.

    Ratings that reference a criterion missing from *criteria* are ignored
    for the averages but kept on the result for detail display.
    """
    ratings = list(ratings)
    must_have_ids = set()
    nice_to_have_ids = set()
    for criterion in criteria:
        if criterion.type == MUST_HAVE:
            must_have_ids.add(criterion.id)
        elif criterion.type == NICE_TO_HAVE:
            nice_to_have_ids.add(criterion.id)

    must_have_scores = [r.score for r in ratings if r.criterion_id in must_have_ids]
    nice_to_have_scores = [r.score for r in ratings if r.criterion_id in nice_to_have_ids]

    must_have_score = _mean(must_have_scores)
    nice_to_have_score = _mean(nice_to_have_scores)
    total_score = must_have_score * MUST_HAVE_WEIGHT + nice_to_have_score * NICE_TO_HAVE_WEIGHT

    # No must-haves defined means nothing qualifies for Tier 1
    meets_all_must_haves = (
        len(must_have_ids) > 0
        and len(must_have_scores) == len(must_have_ids)
        and all(s == RatingScore.MEETS for s in must_have_scores)
    )

    return PropertyScore(
        property=prop,
        must_have_score=must_have_score,
        nice_to_have_score=nice_to_have_score,
        total_score=total_score,
        meets_all_must_haves=meets_all_must_haves,
        ratings=ratings,
    )


# ---------------------------------------------------------------------------
# Orderings
# ---------------------------------------------------------------------------


def rank_by_total(scores: Iterable[PropertyScore]) -> list[PropertyScore]:
    """Highest total first.  Equal totals keep their input order."""
    return sorted(scores, key=lambda s: s.total_score, reverse=True)


def filter_tier1(scores: Iterable[PropertyScore]) -> list[PropertyScore]:
    """Properties meeting every must-have, best nice-to-have average first.

    Within Tier 1 the must-have average is always 3, so only the
    nice-to-have average distinguishes them.
    """
    tier1 = [s for s in scores if s.meets_all_must_haves]
    return sorted(tier1, key=lambda s: s.nice_to_have_score, reverse=True)


def rank_by_criterion(scores: Iterable[PropertyScore], criterion_id: str) -> list[PropertyScore]:
    """Highest rating on one criterion first; unrated counts as 0.

    Ties on the criterion are broken by total score, descending.
    """

    def _key(s: PropertyScore) -> tuple[int, float]:
        rating = s.rating_for(criterion_id)
        return (rating.score if rating is not None else 0, s.total_score)

    return sorted(scores, key=_key, reverse=True)


# ---------------------------------------------------------------------------
# Report assembly
# ---------------------------------------------------------------------------


def build_report(
    properties: Iterable[Any],
    criteria: Iterable[Any],
    ratings: Iterable[Any],
    view: str = VIEW_TIER1,
    sort_by: str = SORT_BY_TOTAL,
) -> Report:
    """Score every property and order the result for the requested view.

    ``view="tier1"`` shows only Tier 1 properties; ``view="all"`` ranks
    everything by total (``sort_by="total"``) or by a single criterion id.
    """
    if view not in (VIEW_TIER1, VIEW_ALL):
        raise ValueError(f"Unknown report view: {view}")

    criteria = list(criteria)
    by_property: dict[str, list[Any]] = defaultdict(list)
    for rating in ratings:
        by_property[rating.property_id].append(rating)

    scores = [compute_score(p, by_property.get(p.id, []), criteria) for p in properties]

    if view == VIEW_TIER1:
        ordered = filter_tier1(scores)
    elif sort_by == SORT_BY_TOTAL:
        ordered = rank_by_total(scores)
    else:
        ordered = rank_by_criterion(scores, sort_by)

    return Report(
        scores=ordered,
        view=view,
        sort_by=sort_by,
        has_properties=len(scores) > 0,
        has_ratings=any(s.ratings for s in scores),
    )
