"""Reconcile raw participation data into one canonical view per project.

The reconciler is a pure, total function: it is safe to call on every
refresh and never raises on partial or malformed input. Approval is
resolved exclusively from the approved-id set returned by the contract's
sorted-projects read; the per-participation ``approved`` flag is ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from tally.models import CanonicalProjectView, ParticipationRecord, Project

logger = logging.getLogger(__name__)


def parse_project_id(raw: Any) -> str | None:
    """Normalise a project id to its canonical decimal string.

    Accepts non-negative ints, decimal strings and "0x" hex strings.

    Returns:
        The id as a decimal string, or None if it cannot be parsed.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return str(raw) if raw >= 0 else None
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        try:
            value = int(text, 16) if text.lower().startswith("0x") else int(text)
        except ValueError:
            return None
        return str(value) if value >= 0 else None
    return None


def normalize_approved_ids(ids: Iterable[Any]) -> frozenset[str]:
    """Build the authoritative approved set, dropping ids that do not parse."""
    result = set()
    for raw in ids:
        pid = parse_project_id(raw)
        if pid is not None:
            result.add(pid)
    return frozenset(result)


def projects_for_campaign(
    projects: Iterable[Project], campaign_id: str
) -> list[Project]:
    """Select the projects that joined ``campaign_id``, preserving order."""
    target = parse_project_id(campaign_id) or str(campaign_id)
    selected = []
    for project in projects:
        joined = {parse_project_id(c) or c for c in project.campaign_ids}
        if target in joined:
            selected.append(project)
    return selected


def reconcile(
    projects: Iterable[Project],
    approved_ids: Iterable[Any],
    participations: Mapping[str, ParticipationRecord | None],
) -> list[CanonicalProjectView]:
    """Merge projects, the approved set and participation records.

    Args:
        projects: Projects belonging to the campaign, in fetch order.
        approved_ids: Authoritative approved project ids.
        participations: Participation records keyed by canonical project id.
            May be partial; missing or None entries default to zero.

    Returns:
        One CanonicalProjectView per project with a parsable id, in input
        order. Duplicate ids keep their first occurrence.
    """
    approved = normalize_approved_ids(approved_ids)
    views: list[CanonicalProjectView] = []
    seen: set[str] = set()

    for project in projects:
        pid = parse_project_id(project.id)
        if pid is None:
            logger.debug(f"Skipping project with unparsable id {project.id!r}")
            continue
        if pid in seen:
            continue
        seen.add(pid)

        record = participations.get(pid)
        if isinstance(record, ParticipationRecord):
            vote_count = max(record.vote_count, 0)
            funds_received = max(record.funds_received, 0)
        else:
            vote_count = 0
            funds_received = 0

        views.append(
            CanonicalProjectView(
                project_id=pid,
                name=project.name,
                approved=pid in approved,
                vote_count=vote_count,
                funds_received=funds_received,
            )
        )

    return views


def filter_views(
    views: Iterable[CanonicalProjectView], status: str = "all"
) -> list[CanonicalProjectView]:
    """Filter views by approval status: "all", "approved" or "pending"."""
    if status == "approved":
        return [v for v in views if v.approved]
    if status == "pending":
        return [v for v in views if not v.approved]
    return list(views)
