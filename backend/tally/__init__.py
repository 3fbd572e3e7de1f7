"""Campaign tally: reconciliation, ranking and pool distribution for campaigns."""

from tally.distribution import (
    PLATFORM_FEE_PERCENT,
    available_for_projects,
    calculate_distribution,
    fee_breakdown,
)
from tally.models import (
    Campaign,
    CanonicalProjectView,
    DistributionEntry,
    DistributionMode,
    FetchStatus,
    ParticipationRecord,
    Phase,
    PhaseState,
    Project,
    RankedView,
)
from tally.phase_clock import PhaseTicker, compute_phase
from tally.ranking import assign_ranks, ordinal, rank_projects, sort_by_votes
from tally.reconciler import parse_project_id, reconcile
from tally.snapshot import CampaignSnapshot, CampaignSnapshotService, SnapshotNotLoadedError

__all__ = [
    "PLATFORM_FEE_PERCENT",
    "Campaign",
    "CampaignSnapshot",
    "CampaignSnapshotService",
    "CanonicalProjectView",
    "DistributionEntry",
    "DistributionMode",
    "FetchStatus",
    "ParticipationRecord",
    "Phase",
    "PhaseState",
    "PhaseTicker",
    "Project",
    "RankedView",
    "SnapshotNotLoadedError",
    "assign_ranks",
    "available_for_projects",
    "calculate_distribution",
    "compute_phase",
    "fee_breakdown",
    "ordinal",
    "parse_project_id",
    "rank_projects",
    "reconcile",
    "sort_by_votes",
]
