"""Shared fixtures: an in-memory chain reader and an API test client."""

from __future__ import annotations

from collections.abc import Iterator, Sequence

import pytest
from fastapi.testclient import TestClient

from app.core.service import get_snapshot_service
from app.main import app
from tally.models import Campaign, DistributionMode, ParticipationRecord, Project
from tally.snapshot import CampaignSnapshotService

WEI = 10**18


class FakeChainReader:
    """ChainReader backed by dicts, with hooks for injecting failures."""

    def __init__(
        self,
        campaigns: dict[str, Campaign] | None = None,
        projects: Sequence[Project] = (),
        approved: dict[str, frozenset[str]] | None = None,
        participations: dict[tuple[str, str], ParticipationRecord] | None = None,
    ):
        self.campaigns = campaigns or {}
        self.projects = list(projects)
        self.approved = approved or {}
        self.participations = participations or {}
        self.batch_failures = 0  # fail this many batch calls before succeeding
        self.batch_calls = 0
        self.submit_error: Exception | None = None
        self.submitted: list[tuple[str, ...]] = []

    async def read_campaign(self, campaign_id: str) -> Campaign:
        from tally.chain.errors import CampaignNotFoundError

        if campaign_id not in self.campaigns:
            raise CampaignNotFoundError(campaign_id)
        return self.campaigns[campaign_id]

    async def read_all_projects(self) -> list[Project]:
        return list(self.projects)

    async def read_approved_project_ids(self, campaign_id: str) -> frozenset[str]:
        return self.approved.get(campaign_id, frozenset())

    async def read_participation_batch(
        self, campaign_id: str, project_ids: Sequence[str]
    ) -> list[ParticipationRecord | None]:
        import httpx

        self.batch_calls += 1
        if self.batch_calls <= self.batch_failures:
            raise httpx.ConnectError("gateway unreachable")
        return [self.participations.get((campaign_id, pid)) for pid in project_ids]

    async def submit_approval(self, campaign_id: str, project_id: str) -> str | None:
        if self.submit_error:
            raise self.submit_error
        self.submitted.append(("approve", campaign_id, project_id))
        self.approved[campaign_id] = self.approved.get(campaign_id, frozenset()) | {project_id}
        return "0xabc"

    async def submit_distribution(self, campaign_id: str) -> str | None:
        if self.submit_error:
            raise self.submit_error
        self.submitted.append(("distribute", campaign_id))
        return "0xdef"


def make_participation(
    project_id: str, votes: float, approved: bool = False, campaign_id: str = "1"
) -> ParticipationRecord:
    return ParticipationRecord(
        campaign_id=campaign_id,
        project_id=project_id,
        approved=approved,
        vote_count=int(votes * WEI),
        funds_received=0,
    )


@pytest.fixture
def campaign() -> Campaign:
    return Campaign(
        id="1",
        name="Celo Builders Round",
        start_time=1_700_000_000,
        end_time=1_700_864_000,
        total_funds=1000 * WEI,
        admin_fee_percentage=5,
        max_winners=2,
        distribution_mode=DistributionMode.LINEAR,
        active=True,
    )


@pytest.fixture
def fake_reader(campaign: Campaign) -> FakeChainReader:
    """Campaign 1 with three projects: two approved with votes, one pending."""
    projects = [
        Project(id=0, name="Seed Wallet", campaign_ids=("1",)),
        Project(id=1, name="Green Ledger", campaign_ids=("1", "2")),
        Project(id=2, name="Pending Pals", campaign_ids=("1",)),
        Project(id=3, name="Other Campaign", campaign_ids=("2",)),
    ]
    return FakeChainReader(
        campaigns={"1": campaign},
        projects=projects,
        approved={"1": frozenset({"0", "1"})},
        participations={
            ("1", "0"): make_participation("0", 300),
            ("1", "1"): make_participation("1", 100, approved=True),
            ("1", "2"): make_participation("2", 500),
        },
    )


@pytest.fixture
def service(fake_reader: FakeChainReader) -> CampaignSnapshotService:
    return CampaignSnapshotService(
        fake_reader, max_attempts=3, retry_delay=0, platform_fee_percent=15
    )


@pytest.fixture
def client(service: CampaignSnapshotService) -> Iterator[TestClient]:
    app.dependency_overrides[get_snapshot_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
