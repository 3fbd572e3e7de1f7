"""Competition ranking of approved projects by vote count."""

from __future__ import annotations

from collections.abc import Sequence

from tally.models import CanonicalProjectView, RankedView

NO_RANK = "—"


def sort_by_votes(views: Sequence[CanonicalProjectView]) -> list[CanonicalProjectView]:
    """Approved views sorted by vote count, highest first.

    Equal vote counts keep their original (fetch) order; the position is an
    explicit secondary key rather than relying on sort stability.
    """
    indexed = [(i, v) for i, v in enumerate(views) if v.approved]
    indexed.sort(key=lambda item: (-item[1].vote_count, item[0]))
    return [v for _, v in indexed]


def assign_ranks(sorted_views: Sequence[CanonicalProjectView]) -> list[int]:
    """Competition ranks for views already sorted by descending votes.

    A view tied with its predecessor shares the predecessor's rank; any
    other view is ranked by its 1-indexed position, so ranks skip after a
    tie group: [300, 300, 100] -> [1, 1, 3].
    """
    ranks: list[int] = []
    for position, view in enumerate(sorted_views, start=1):
        if ranks and view.vote_count == sorted_views[position - 2].vote_count:
            ranks.append(ranks[-1])
        else:
            ranks.append(position)
    return ranks


def rank_projects(
    views: Sequence[CanonicalProjectView], max_winners: int = 0
) -> list[RankedView]:
    """Rank approved views; unapproved views follow with no rank.

    Args:
        views: Canonical views in fetch order.
        max_winners: Rank cutoff for the winner flag. 0 means every ranked
            project with votes is a winner.

    Returns:
        Ranked approved views in rank order, then unapproved views in their
        original order with ``rank=None``.
    """
    ordered = sort_by_votes(views)
    ranks = assign_ranks(ordered)

    ranked = [
        RankedView(
            view=view,
            rank=rank,
            is_winner=view.vote_count > 0 and (max_winners <= 0 or rank <= max_winners),
        )
        for view, rank in zip(ordered, ranks, strict=True)
    ]
    ranked.extend(RankedView(view=v, rank=None) for v in views if not v.approved)
    return ranked


def ordinal(rank: int | None) -> str:
    """Display form of a rank: 1st, 2nd, 3rd, 4th, 11th, 21st ... or "—"."""
    if rank is None or rank < 1:
        return NO_RANK
    if 10 <= rank % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(rank % 10, "th")
    return f"{rank}{suffix}"


def podium(ranked: Sequence[RankedView], size: int = 3) -> list[RankedView]:
    """The leading ranked entries shown on the campaign podium."""
    return [r for r in ranked if r.rank is not None][:size]
