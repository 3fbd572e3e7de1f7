"""Domain records for campaigns, projects and their reconciled views.

Raw records (Campaign, Project, ParticipationRecord) arrive from the chain
gateway and are treated as read-only. Derived records (CanonicalProjectView,
RankedView, DistributionEntry) are frozen and rebuilt on every refresh.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from tally.fixed_point import safe_amount

logger = logging.getLogger(__name__)


class DistributionMode(StrEnum):
    """How a campaign's pool is weighted across projects."""

    LINEAR = "linear"
    QUADRATIC = "quadratic"
    CUSTOM = "custom"


class Phase(StrEnum):
    """Lifecycle phase of a campaign, derived from its timestamps."""

    LOADING = "loading"
    PREPARING = "preparing"
    ACTIVE = "active"
    ENDED = "ended"


class FetchStatus(StrEnum):
    """Outcome of the last participation fetch for a campaign."""

    OK = "ok"
    DATA_UNAVAILABLE = "data_unavailable"


def _safe_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _safe_timestamp(value: Any) -> int:
    """Unix seconds, or 0 when unset / unparsable."""
    try:
        return max(int(value), 0)
    except (TypeError, ValueError, OverflowError):
        return 0


@dataclass(frozen=True)
class Campaign:
    """A pooled-fund campaign as stored on chain."""

    id: str
    name: str
    description: str = ""
    start_time: int = 0
    end_time: int = 0
    total_funds: int = 0  # fixed-point, 18 decimals
    admin_fee_percentage: int = 0  # 0-100
    max_winners: int = 0  # 0 = no cap
    distribution_mode: DistributionMode = DistributionMode.LINEAR
    active: bool = False

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> Campaign:
        """Create from a chain gateway campaign payload."""
        # Older contracts expose a boolean instead of a mode
        mode_raw = data.get("distributionMode")
        if mode_raw is None:
            mode_raw = "quadratic" if data.get("useQuadraticDistribution") else "linear"
        try:
            mode = DistributionMode(str(mode_raw).lower())
        except ValueError:
            mode = DistributionMode.LINEAR

        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            description=data.get("description", ""),
            start_time=_safe_timestamp(data.get("startTime")),
            end_time=_safe_timestamp(data.get("endTime")),
            total_funds=safe_amount(data.get("totalFunds")),
            admin_fee_percentage=min(safe_amount(data.get("adminFeePercentage")), 100),
            max_winners=safe_amount(data.get("maxWinners")),
            distribution_mode=mode,
            active=_safe_bool(data.get("active", False)),
        )


@dataclass(frozen=True)
class Project:
    """A project registered on the platform."""

    id: Any  # raw id as delivered; normalised by the reconciler
    name: str
    description: str = ""
    owner: str = ""
    campaign_ids: tuple[str, ...] = ()

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> Project:
        """Create from a chain gateway project payload."""
        campaign_ids = data.get("campaignIds") or []
        return cls(
            id=data.get("id"),
            name=data.get("name", ""),
            description=data.get("description", ""),
            owner=data.get("owner", ""),
            campaign_ids=tuple(str(c) for c in campaign_ids),
        )


@dataclass(frozen=True)
class ParticipationRecord:
    """A project's participation in one campaign.

    The ``approved`` flag is whatever the contract returned and may be stale;
    the approved-id set always wins during reconciliation.
    """

    campaign_id: str
    project_id: str
    approved: bool = False
    vote_count: int = 0  # fixed-point
    funds_received: int = 0  # fixed-point

    @classmethod
    def from_raw(
        cls, campaign_id: str, project_id: str, raw: Any
    ) -> ParticipationRecord | None:
        """Normalise a raw participation payload.

        The gateway relays either the contract tuple
        ``[approved, voteCount, fundsReceived]`` or an object with the same
        fields. Returns None when the shape is unrecognised.
        """
        if isinstance(raw, dict):
            approved = raw.get("approved", False)
            votes = raw.get("voteCount", 0)
            funds = raw.get("fundsReceived", 0)
        elif isinstance(raw, Sequence) and not isinstance(raw, str | bytes):
            if len(raw) < 2:
                logger.debug(f"Short participation tuple for project {project_id}: {raw!r}")
                return None
            approved = raw[0]
            votes = raw[1]
            funds = raw[2] if len(raw) > 2 else 0
        else:
            logger.debug(f"Unrecognised participation shape for project {project_id}")
            return None

        return cls(
            campaign_id=str(campaign_id),
            project_id=str(project_id),
            approved=_safe_bool(approved),
            vote_count=safe_amount(votes),
            funds_received=safe_amount(funds),
        )


@dataclass(frozen=True)
class CanonicalProjectView:
    """The single reconciled record all downstream computation consumes."""

    project_id: str
    name: str
    approved: bool
    vote_count: int = 0  # fixed-point
    funds_received: int = 0  # fixed-point


@dataclass(frozen=True)
class RankedView:
    """A canonical view annotated with its competition rank.

    ``rank`` is None for unapproved projects.
    """

    view: CanonicalProjectView
    rank: int | None
    is_winner: bool = False

    @property
    def project_id(self) -> str:
        return self.view.project_id


@dataclass(frozen=True)
class DistributionEntry:
    """One project's share of the pool, in decimal token units."""

    project_id: str
    project_name: str
    vote_count: float
    weight: float
    amount: float
    percentage: float


@dataclass(frozen=True)
class FeeBreakdown:
    """Fee deductions applied to a pool before distribution (decimal units)."""

    total_funds: float
    platform_fee_percent: float
    admin_fee_percent: float
    platform_fee_amount: float
    admin_fee_amount: float
    available_for_projects: float


@dataclass(frozen=True)
class PhaseState:
    """Campaign phase plus the time left to the relevant boundary."""

    phase: Phase
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.phase == Phase.ENDED


@dataclass(frozen=True)
class CampaignStats:
    """Headline numbers for a campaign's admin dashboard."""

    total_projects: int
    approved_projects: int
    pending_projects: int
    total_votes: float
    total_funds: float
    participating_projects: int = 0
    top_project_ids: tuple[str, ...] = field(default_factory=tuple)
