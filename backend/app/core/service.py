"""Snapshot service wiring for the API."""

from functools import lru_cache

from tally.chain.client import ChainGatewayClient
from tally.snapshot import CampaignSnapshotService


@lru_cache
def get_snapshot_service() -> CampaignSnapshotService:
    """Dependency returning the process-wide snapshot service."""
    return CampaignSnapshotService(ChainGatewayClient())
