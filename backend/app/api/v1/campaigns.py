"""Campaign endpoints: canonical projects, ranking, distribution and phase."""

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.service import get_snapshot_service
from app.schemas.campaign import (
    CampaignStatsSchema,
    CanonicalProjectListSchema,
    CanonicalProjectSchema,
    DistributionEntrySchema,
    DistributionSchema,
    FeeBreakdownSchema,
    PhaseSchema,
    RankedProjectSchema,
    RankingSchema,
    SubmissionResultSchema,
)
from tally.chain.errors import CampaignNotFoundError, ChainGatewayError, SubmissionResult
from tally.models import DistributionMode
from tally.snapshot import CampaignSnapshot, CampaignSnapshotService, SnapshotNotLoadedError

router = APIRouter()


async def _load_snapshot(
    service: CampaignSnapshotService, campaign_id: str
) -> CampaignSnapshot:
    try:
        return await service.ensure_snapshot(campaign_id)
    except CampaignNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except SnapshotNotLoadedError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    except ChainGatewayError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e


def _submission(result: SubmissionResult) -> SubmissionResultSchema:
    return SubmissionResultSchema(
        ok=result.ok,
        transaction=result.transaction.value,
        kind=result.kind.value if result.kind else None,
        message=result.message,
        retryable=result.retryable,
        tx_hash=result.tx_hash,
    )


@router.post("/{campaign_id}/refresh")
async def refresh_campaign(
    campaign_id: str,
    service: CampaignSnapshotService = Depends(get_snapshot_service),
) -> CampaignStatsSchema:
    """Refetch a campaign and return its headline numbers."""
    try:
        await service.refresh(campaign_id)
    except CampaignNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ChainGatewayError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    snapshot = await _load_snapshot(service, campaign_id)
    return CampaignStatsSchema.from_stats(
        campaign_id, snapshot.status, service.get_stats(campaign_id)
    )


@router.get("/{campaign_id}/projects")
async def list_projects(
    campaign_id: str,
    status: Literal["all", "approved", "pending"] = Query(
        "all", alias="filter", description="Approval filter"
    ),
    service: CampaignSnapshotService = Depends(get_snapshot_service),
) -> CanonicalProjectListSchema:
    """Canonical per-project views for a campaign."""
    snapshot = await _load_snapshot(service, campaign_id)
    views = service.get_canonical_projects(campaign_id, status)
    return CanonicalProjectListSchema(
        campaign_id=campaign_id,
        version=snapshot.version,
        status=snapshot.status,
        projects=[CanonicalProjectSchema.from_view(v) for v in views],
    )


@router.get("/{campaign_id}/ranking")
async def get_ranking(
    campaign_id: str,
    service: CampaignSnapshotService = Depends(get_snapshot_service),
) -> RankingSchema:
    """Approved projects ranked by votes, then unapproved projects unranked."""
    snapshot = await _load_snapshot(service, campaign_id)
    return RankingSchema(
        campaign_id=campaign_id,
        version=snapshot.version,
        status=snapshot.status,
        projects=[
            RankedProjectSchema.from_ranked(r) for r in service.get_ranked_projects(campaign_id)
        ],
    )


@router.get("/{campaign_id}/distribution")
async def get_distribution(
    campaign_id: str,
    mode: Literal["linear", "quadratic"] | None = Query(
        None, description="Weighting mode (default: the campaign's mode)"
    ),
    service: CampaignSnapshotService = Depends(get_snapshot_service),
) -> DistributionSchema:
    """Projected pool split after platform and admin fees."""
    snapshot = await _load_snapshot(service, campaign_id)
    resolved = DistributionMode(mode) if mode else snapshot.campaign.distribution_mode
    if resolved == DistributionMode.CUSTOM:
        resolved = DistributionMode.LINEAR
    entries = service.compute_distribution(campaign_id, resolved)
    return DistributionSchema(
        campaign_id=campaign_id,
        mode=resolved,
        version=snapshot.version,
        status=snapshot.status,
        fees=FeeBreakdownSchema.from_fees(service.get_fee_breakdown(campaign_id)),
        entries=[DistributionEntrySchema.from_entry(e) for e in entries],
    )


@router.get("/{campaign_id}/phase")
async def get_phase(
    campaign_id: str,
    service: CampaignSnapshotService = Depends(get_snapshot_service),
) -> PhaseSchema:
    """Current lifecycle phase and countdown."""
    snapshot = await _load_snapshot(service, campaign_id)
    return PhaseSchema.from_state(snapshot.campaign, service.get_phase(snapshot.campaign))


@router.get("/{campaign_id}/stats")
async def get_stats(
    campaign_id: str,
    service: CampaignSnapshotService = Depends(get_snapshot_service),
) -> CampaignStatsSchema:
    """Project counts, vote total and pool size."""
    snapshot = await _load_snapshot(service, campaign_id)
    return CampaignStatsSchema.from_stats(
        campaign_id, snapshot.status, service.get_stats(campaign_id)
    )


@router.post("/{campaign_id}/projects/{project_id}/approve")
async def approve_project(
    campaign_id: str,
    project_id: str,
    service: CampaignSnapshotService = Depends(get_snapshot_service),
) -> SubmissionResultSchema:
    """Relay a project approval. Failures come back as a classified result."""
    return _submission(await service.submit_approval(campaign_id, project_id))


@router.post("/{campaign_id}/distribute")
async def distribute_funds(
    campaign_id: str,
    service: CampaignSnapshotService = Depends(get_snapshot_service),
) -> SubmissionResultSchema:
    """Relay the campaign's fund distribution. Irreversible on success."""
    return _submission(await service.submit_distribution(campaign_id))
