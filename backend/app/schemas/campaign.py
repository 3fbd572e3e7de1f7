"""Pydantic schemas for campaign tally endpoints.

Amounts leave the service here, so this is the only place values are rounded
to display precision. Fixed-point integers are serialised as strings to
survive JSON clients that parse numbers as doubles.
"""

from pydantic import BaseModel, Field, computed_field

from tally.fixed_point import to_decimal
from tally.models import (
    Campaign,
    CampaignStats,
    CanonicalProjectView,
    DistributionEntry,
    DistributionMode,
    FeeBreakdown,
    FetchStatus,
    Phase,
    PhaseState,
    RankedView,
)
from tally.ranking import ordinal

DISPLAY_DECIMALS = 2


def _display(value: float) -> float:
    return round(value, DISPLAY_DECIMALS)


class CanonicalProjectSchema(BaseModel):
    """One reconciled project in a campaign."""

    project_id: str
    name: str
    approved: bool
    vote_count: str = Field(..., description="Fixed-point vote total (18 decimals)")
    funds_received: str = Field(..., description="Fixed-point funds received (18 decimals)")
    votes: float = Field(..., description="Vote total in token units")

    @classmethod
    def from_view(cls, view: CanonicalProjectView) -> "CanonicalProjectSchema":
        return cls(
            project_id=view.project_id,
            name=view.name,
            approved=view.approved,
            vote_count=str(view.vote_count),
            funds_received=str(view.funds_received),
            votes=_display(to_decimal(view.vote_count)),
        )


class CanonicalProjectListSchema(BaseModel):
    """Canonical projects plus the fetch status of the snapshot they came from."""

    campaign_id: str
    version: int
    status: FetchStatus
    projects: list[CanonicalProjectSchema]


class RankedProjectSchema(CanonicalProjectSchema):
    """A project with its leaderboard position. ``rank`` is null when unapproved."""

    rank: int | None
    is_winner: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def rank_label(self) -> str:
        return ordinal(self.rank)

    @classmethod
    def from_ranked(cls, ranked: RankedView) -> "RankedProjectSchema":
        base = CanonicalProjectSchema.from_view(ranked.view)
        return cls(**base.model_dump(), rank=ranked.rank, is_winner=ranked.is_winner)


class RankingSchema(BaseModel):
    campaign_id: str
    version: int
    status: FetchStatus
    projects: list[RankedProjectSchema]


class DistributionEntrySchema(BaseModel):
    """One project's projected share of the pool."""

    project_id: str
    project_name: str
    vote_count: float
    weight: float
    amount: float
    percentage: float

    @classmethod
    def from_entry(cls, entry: DistributionEntry) -> "DistributionEntrySchema":
        return cls(
            project_id=entry.project_id,
            project_name=entry.project_name,
            vote_count=_display(entry.vote_count),
            weight=_display(entry.weight),
            amount=_display(entry.amount),
            percentage=_display(entry.percentage),
        )


class FeeBreakdownSchema(BaseModel):
    total_funds: float
    platform_fee_percent: float
    admin_fee_percent: float
    platform_fee_amount: float
    admin_fee_amount: float
    available_for_projects: float

    @classmethod
    def from_fees(cls, fees: FeeBreakdown) -> "FeeBreakdownSchema":
        return cls(
            total_funds=_display(fees.total_funds),
            platform_fee_percent=fees.platform_fee_percent,
            admin_fee_percent=fees.admin_fee_percent,
            platform_fee_amount=_display(fees.platform_fee_amount),
            admin_fee_amount=_display(fees.admin_fee_amount),
            available_for_projects=_display(fees.available_for_projects),
        )


class DistributionSchema(BaseModel):
    """Projected pool split for a campaign."""

    campaign_id: str
    mode: DistributionMode
    version: int
    status: FetchStatus
    fees: FeeBreakdownSchema
    entries: list[DistributionEntrySchema]


class PhaseSchema(BaseModel):
    campaign_id: str
    phase: Phase
    days: int = Field(0, ge=0)
    hours: int = Field(0, ge=0)
    minutes: int = Field(0, ge=0)
    seconds: int = Field(0, ge=0)
    start_time: int
    end_time: int

    @classmethod
    def from_state(cls, campaign: Campaign, state: PhaseState) -> "PhaseSchema":
        return cls(
            campaign_id=campaign.id,
            phase=state.phase,
            days=state.days,
            hours=state.hours,
            minutes=state.minutes,
            seconds=state.seconds,
            start_time=campaign.start_time,
            end_time=campaign.end_time,
        )


class CampaignStatsSchema(BaseModel):
    campaign_id: str
    status: FetchStatus
    total_projects: int
    approved_projects: int
    pending_projects: int
    participating_projects: int
    total_votes: float
    total_funds: float
    top_project_ids: list[str]

    @classmethod
    def from_stats(
        cls, campaign_id: str, status: FetchStatus, stats: CampaignStats
    ) -> "CampaignStatsSchema":
        return cls(
            campaign_id=campaign_id,
            status=status,
            total_projects=stats.total_projects,
            approved_projects=stats.approved_projects,
            pending_projects=stats.pending_projects,
            participating_projects=stats.participating_projects,
            total_votes=_display(stats.total_votes),
            total_funds=_display(stats.total_funds),
            top_project_ids=list(stats.top_project_ids),
        )


class SubmissionResultSchema(BaseModel):
    """Outcome of an approval or distribution request."""

    ok: bool
    transaction: str
    kind: str | None = None
    message: str = ""
    retryable: bool = False
    tx_hash: str | None = None
