"""Pool distribution across approved projects.

Two weighting regimes are supported:

- linear: a project's weight is its decimal vote total.
- quadratic: a project's weight is the square root of its decimal vote
  total (standard quadratic funding), which compresses the share of
  projects backed by a few large votes.

The pool first loses the platform fee and the campaign admin fee; what is
left (``available_for_projects``) is split proportionally to weight. All
math runs in decimal token units and is never rounded here; rounding to
display precision belongs to the API schemas.

Every function in this module is total: malformed input degrades to zero
rather than raising.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import Any

from tally.fixed_point import to_decimal
from tally.models import (
    CanonicalProjectView,
    DistributionEntry,
    DistributionMode,
    FeeBreakdown,
)

logger = logging.getLogger(__name__)

# HARDCODED ASSUMPTION: platform fee charged on every campaign pool
PLATFORM_FEE_PERCENT = 15


def _safe_percent(value: Any) -> float:
    """Clamp a fee percentage to [0, 100]; garbage becomes 0."""
    try:
        pct = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(pct):
        return 0.0
    return min(max(pct, 0.0), 100.0)


def fee_breakdown(
    total_funds: Any,
    admin_fee_percent: Any,
    platform_fee_percent: Any = PLATFORM_FEE_PERCENT,
) -> FeeBreakdown:
    """Split a fixed-point pool into fees and the amount left for projects.

    When the fees sum to 100% or more, nothing is left for projects.
    """
    total = to_decimal(total_funds)
    platform_pct = _safe_percent(platform_fee_percent)
    admin_pct = _safe_percent(admin_fee_percent)

    available = total * (1 - platform_pct / 100 - admin_pct / 100)
    if platform_pct + admin_pct >= 100 or available < 0:
        available = 0.0

    return FeeBreakdown(
        total_funds=total,
        platform_fee_percent=platform_pct,
        admin_fee_percent=admin_pct,
        platform_fee_amount=total * (platform_pct / 100),
        admin_fee_amount=total * (admin_pct / 100),
        available_for_projects=available,
    )


def available_for_projects(
    total_funds: Any,
    admin_fee_percent: Any,
    platform_fee_percent: Any = PLATFORM_FEE_PERCENT,
) -> float:
    """Decimal amount of the pool left after platform and admin fees."""
    return fee_breakdown(
        total_funds, admin_fee_percent, platform_fee_percent
    ).available_for_projects


def project_weight(vote_count: Any, mode: DistributionMode) -> float:
    """Weight of a fixed-point vote total under ``mode``.

    The vote total is converted to decimal units before the square root so
    large raw integers do not lose precision.
    """
    votes = to_decimal(vote_count)
    if votes <= 0:
        return 0.0
    if mode == DistributionMode.QUADRATIC:
        return math.sqrt(votes)
    return votes


def calculate_distribution(
    views: Sequence[CanonicalProjectView],
    total_funds: Any,
    admin_fee_percent: Any,
    mode: DistributionMode | str = DistributionMode.LINEAR,
    platform_fee_percent: Any = PLATFORM_FEE_PERCENT,
) -> list[DistributionEntry]:
    """Compute each approved project's share of the pool.

    Args:
        views: Canonical views for the campaign; unapproved views are ignored.
        total_funds: Campaign pool as a fixed-point integer.
        admin_fee_percent: Campaign admin fee, 0-100.
        mode: "linear" or "quadratic". "custom" and unknown values are
            weighted linearly.
        platform_fee_percent: Platform fee, 0-100.

    Returns:
        One entry per approved project, including zero-vote projects, sorted
        by amount descending with ties kept in input order. When no project
        has votes, or the fees consume the whole pool, every amount and
        percentage is exactly 0.
    """
    weighting = _resolve_mode(mode)
    available = available_for_projects(total_funds, admin_fee_percent, platform_fee_percent)

    approved = [v for v in views if v.approved]
    weights = [project_weight(v.vote_count, weighting) for v in approved]
    try:
        total_weight = math.fsum(w for w in weights if w > 0)
    except OverflowError:
        logger.warning("Total vote weight exceeds float range; distribution is all zero")
        total_weight = 0.0

    entries: list[DistributionEntry] = []
    for view, weight in zip(approved, weights, strict=True):
        votes = to_decimal(view.vote_count)
        if total_weight <= 0 or weight <= 0:
            entries.append(
                DistributionEntry(
                    project_id=view.project_id,
                    project_name=view.name,
                    vote_count=votes,
                    weight=0.0,
                    amount=0.0,
                    percentage=0.0,
                )
            )
            continue

        share = weight / total_weight if available > 0 else 0.0
        entries.append(
            DistributionEntry(
                project_id=view.project_id,
                project_name=view.name,
                vote_count=votes,
                weight=weight,
                amount=share * available,
                percentage=share * 100,
            )
        )

    if total_weight <= 0:
        logger.debug("No votes cast; distribution is all zero")

    order = sorted(range(len(entries)), key=lambda i: (-entries[i].amount, i))
    return [entries[i] for i in order]


def _resolve_mode(mode: DistributionMode | str) -> DistributionMode:
    try:
        resolved = DistributionMode(str(mode).lower())
    except ValueError:
        logger.warning(f"Unknown distribution mode {mode!r}, using linear")
        return DistributionMode.LINEAR
    if resolved == DistributionMode.CUSTOM:
        return DistributionMode.LINEAR
    return resolved
