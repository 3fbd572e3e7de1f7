"""Versioned campaign snapshots and the queries served from them.

One CampaignSnapshotService owns, per campaign, a single immutable
CampaignSnapshot. A refresh builds a complete new snapshot from a fresh
fan-out fetch and swaps it in whole; it never patches the previous one.

Every refresh takes a token from a monotonically increasing counter. When a
newer refresh for the same campaign starts before an older one finishes,
the older result is discarded on arrival, so a slow fetch can never
overwrite newer data.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

import httpx

from tally.chain.client import ChainReader
from tally.chain.errors import (
    CampaignNotFoundError,
    ChainGatewayError,
    SubmissionResult,
    TransactionKind,
    failure_result,
)
from tally.distribution import calculate_distribution, fee_breakdown
from tally.models import (
    Campaign,
    CampaignStats,
    CanonicalProjectView,
    DistributionEntry,
    DistributionMode,
    FeeBreakdown,
    FetchStatus,
    ParticipationRecord,
    PhaseState,
    Project,
    RankedView,
)
from tally.phase_clock import compute_phase
from tally.ranking import rank_projects
from tally.reconciler import filter_views, parse_project_id, projects_for_campaign, reconcile
from tally.stats import compute_campaign_stats

logger = logging.getLogger(__name__)


class SnapshotNotLoadedError(LookupError):
    """No snapshot has been installed for the campaign yet."""

    def __init__(self, campaign_id: str):
        super().__init__(f"No snapshot loaded for campaign {campaign_id}")
        self.campaign_id = campaign_id


@dataclass(frozen=True)
class CampaignSnapshot:
    """Everything known about a campaign as of one complete fetch."""

    campaign: Campaign
    projects: tuple[Project, ...]
    approved_ids: frozenset[str]
    participations: Mapping[str, ParticipationRecord]
    version: int
    status: FetchStatus = FetchStatus.OK
    fetched_at: float = 0.0
    views: tuple[CanonicalProjectView, ...] = field(default=(), repr=False)

    @classmethod
    def build(
        cls,
        campaign: Campaign,
        projects: Sequence[Project],
        approved_ids: frozenset[str],
        participations: Mapping[str, ParticipationRecord],
        version: int,
        status: FetchStatus,
        fetched_at: float,
    ) -> CampaignSnapshot:
        """Reconcile the fetched data and freeze it."""
        frozen = MappingProxyType(dict(participations))
        return cls(
            campaign=campaign,
            projects=tuple(projects),
            approved_ids=approved_ids,
            participations=frozen,
            version=version,
            status=status,
            fetched_at=fetched_at,
            views=tuple(reconcile(projects, approved_ids, frozen)),
        )


class CampaignSnapshotService:
    """Fetches campaign data and answers presentation queries from snapshots."""

    def __init__(
        self,
        reader: ChainReader,
        max_attempts: int | None = None,
        retry_delay: float | None = None,
        platform_fee_percent: float | None = None,
        clock: Callable[[], float] = time.time,
    ):
        from app.config import settings

        self.reader = reader
        self.max_attempts = (
            max_attempts if max_attempts is not None else settings.fetch_max_attempts
        )
        self.retry_delay = retry_delay if retry_delay is not None else settings.fetch_retry_delay
        self.platform_fee_percent = (
            platform_fee_percent
            if platform_fee_percent is not None
            else settings.platform_fee_percent
        )
        self.clock = clock
        self._snapshots: dict[str, CampaignSnapshot] = {}
        self._latest_token: dict[str, int] = {}
        self._tokens = itertools.count(1)

    # =========================================================================
    # Fetching
    # =========================================================================

    def _issue_token(self, campaign_id: str) -> int:
        token = next(self._tokens)
        self._latest_token[campaign_id] = token
        return token

    def is_current(self, campaign_id: str, token: int) -> bool:
        """True if ``token`` is the newest refresh issued for the campaign."""
        return self._latest_token.get(campaign_id) == token

    async def refresh(self, campaign_id: str) -> CampaignSnapshot | None:
        """Fetch a complete new snapshot and install it.

        Each call supersedes any refresh already in flight for the campaign.

        Returns:
            The installed snapshot, or None if a newer refresh started while
            this one was fetching (its result is discarded).

        Raises:
            CampaignNotFoundError: The campaign does not exist.
            ChainGatewayError: The campaign, project list or approved set
                could not be read. The previous snapshot is kept.
        """
        campaign_id = str(campaign_id)
        token = self._issue_token(campaign_id)
        logger.debug(f"Refreshing campaign {campaign_id} (token {token})")

        try:
            async with asyncio.TaskGroup() as group:
                campaign_task = group.create_task(self.reader.read_campaign(campaign_id))
                projects_task = group.create_task(self.reader.read_all_projects())
                approved_task = group.create_task(
                    self.reader.read_approved_project_ids(campaign_id)
                )
        except ExceptionGroup as eg:
            raise _read_failure(campaign_id, eg) from eg

        campaign = campaign_task.result()
        approved_ids = approved_task.result()
        projects = projects_for_campaign(projects_task.result(), campaign_id)
        participations, status = await self._fetch_participations(campaign_id, projects)

        if not self.is_current(campaign_id, token):
            logger.info(f"Discarding superseded refresh of campaign {campaign_id} (token {token})")
            return None

        snapshot = CampaignSnapshot.build(
            campaign=campaign,
            projects=projects,
            approved_ids=approved_ids,
            participations=participations,
            version=token,
            status=status,
            fetched_at=self.clock(),
        )
        self._snapshots[campaign_id] = snapshot
        logger.info(
            f"Campaign {campaign_id}: {len(snapshot.views)} projects, "
            f"{len(approved_ids)} approved, status={status.value} (v{token})"
        )
        return snapshot

    async def _fetch_participations(
        self, campaign_id: str, projects: Sequence[Project]
    ) -> tuple[dict[str, ParticipationRecord], FetchStatus]:
        """Fetch the participation batch with fixed-delay retries.

        On exhaustion, returns an empty map so every project falls back to
        zero votes.
        """
        project_ids = [pid for p in projects if (pid := parse_project_id(p.id)) is not None]
        if not project_ids:
            return {}, FetchStatus.OK

        for attempt in range(1, self.max_attempts + 1):
            try:
                records = await self.reader.read_participation_batch(campaign_id, project_ids)
            except (httpx.HTTPError, ChainGatewayError, asyncio.TimeoutError) as e:
                logger.warning(
                    f"Participation fetch for campaign {campaign_id} failed "
                    f"(attempt {attempt}/{self.max_attempts}): {e}"
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_delay)
                continue

            return {
                pid: record
                for pid, record in zip(project_ids, records, strict=False)
                if record is not None
            }, FetchStatus.OK

        logger.error(
            f"Participation data unavailable for campaign {campaign_id}; "
            "defaulting to zero votes"
        )
        return {}, FetchStatus.DATA_UNAVAILABLE

    async def ensure_snapshot(self, campaign_id: str) -> CampaignSnapshot:
        """Return the installed snapshot, fetching one first if needed."""
        campaign_id = str(campaign_id)
        snapshot = self._snapshots.get(campaign_id)
        if snapshot is not None:
            return snapshot
        await self.refresh(campaign_id)
        return self.snapshot(campaign_id)

    def snapshot(self, campaign_id: str) -> CampaignSnapshot:
        """The installed snapshot for a campaign.

        Raises:
            SnapshotNotLoadedError: If the campaign has never been refreshed.
        """
        try:
            return self._snapshots[str(campaign_id)]
        except KeyError:
            raise SnapshotNotLoadedError(str(campaign_id)) from None

    # =========================================================================
    # Queries
    # =========================================================================

    def get_canonical_projects(
        self, campaign_id: str, status: str = "all"
    ) -> list[CanonicalProjectView]:
        """Canonical views, optionally filtered to "approved" or "pending"."""
        return filter_views(self.snapshot(campaign_id).views, status)

    def get_ranked_projects(self, campaign_id: str) -> list[RankedView]:
        snap = self.snapshot(campaign_id)
        return rank_projects(snap.views, snap.campaign.max_winners)

    def compute_distribution(
        self, campaign_id: str, mode: DistributionMode | str | None = None
    ) -> list[DistributionEntry]:
        """Pool split for the campaign; defaults to the campaign's own mode."""
        snap = self.snapshot(campaign_id)
        return calculate_distribution(
            snap.views,
            total_funds=snap.campaign.total_funds,
            admin_fee_percent=snap.campaign.admin_fee_percentage,
            mode=mode or snap.campaign.distribution_mode,
            platform_fee_percent=self.platform_fee_percent,
        )

    def get_fee_breakdown(self, campaign_id: str) -> FeeBreakdown:
        campaign = self.snapshot(campaign_id).campaign
        return fee_breakdown(
            campaign.total_funds, campaign.admin_fee_percentage, self.platform_fee_percent
        )

    def get_phase(self, campaign: Campaign, now: float | None = None) -> PhaseState:
        return compute_phase(
            campaign.start_time, campaign.end_time, self.clock() if now is None else now
        )

    def get_stats(self, campaign_id: str) -> CampaignStats:
        snap = self.snapshot(campaign_id)
        return compute_campaign_stats(snap.campaign, snap.views)

    # =========================================================================
    # Submissions
    # =========================================================================

    async def submit_approval(self, campaign_id: str, project_id: str) -> SubmissionResult:
        """Approve a project in a campaign, then refresh on success."""
        try:
            tx_hash = await self.reader.submit_approval(str(campaign_id), str(project_id))
        except Exception as e:
            logger.warning(f"Approval of project {project_id} in {campaign_id} failed: {e}")
            return failure_result(TransactionKind.APPROVAL, e)

        logger.info(f"Project {project_id} approved in campaign {campaign_id}")
        await self._refresh_after_submit(campaign_id)
        return SubmissionResult(
            ok=True,
            transaction=TransactionKind.APPROVAL,
            message="Project approved successfully",
            tx_hash=tx_hash,
        )

    async def submit_distribution(self, campaign_id: str) -> SubmissionResult:
        """Distribute a campaign's pool, then refresh on success."""
        try:
            tx_hash = await self.reader.submit_distribution(str(campaign_id))
        except Exception as e:
            logger.warning(f"Distribution for campaign {campaign_id} failed: {e}")
            return failure_result(TransactionKind.DISTRIBUTION, e)

        logger.info(f"Funds distributed for campaign {campaign_id}")
        await self._refresh_after_submit(campaign_id)
        return SubmissionResult(
            ok=True,
            transaction=TransactionKind.DISTRIBUTION,
            message="Funds distributed successfully",
            tx_hash=tx_hash,
        )

    async def _refresh_after_submit(self, campaign_id: str) -> None:
        # The transaction went through; a failed re-read keeps the last snapshot
        try:
            await self.refresh(campaign_id)
        except ChainGatewayError as e:
            logger.warning(f"Refresh after submission failed for {campaign_id}: {e}")


def _read_failure(campaign_id: str, group: ExceptionGroup) -> Exception:
    """Pick the error to raise when one of a refresh's reads failed.

    A missing campaign wins over other failures. Transport and HTTP errors
    are wrapped in ChainGatewayError.
    """
    not_found = group.subgroup(CampaignNotFoundError)
    if not_found is not None:
        return not_found.exceptions[0]
    error = group.exceptions[0]
    if isinstance(error, ChainGatewayError):
        return error
    if isinstance(error, httpx.HTTPError):
        return ChainGatewayError(f"Failed to read campaign {campaign_id}: {error}")
    return error
