"""CLI for inspecting campaign tallies against a chain gateway."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from tally.chain.client import ChainGatewayClient
from tally.chain.errors import ChainGatewayError
from tally.fixed_point import to_decimal
from tally.models import DistributionMode, FetchStatus
from tally.ranking import ordinal
from tally.snapshot import CampaignSnapshotService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)-5.5s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


async def _load(campaign_id: str, gateway_url: str | None) -> CampaignSnapshotService | None:
    service = CampaignSnapshotService(ChainGatewayClient(base_url=gateway_url))
    try:
        snapshot = await service.refresh(campaign_id)
    except ChainGatewayError as e:
        logger.error(str(e))
        return None
    if snapshot is None:
        return None
    if snapshot.status == FetchStatus.DATA_UNAVAILABLE:
        print("Warning: participation data unavailable, vote counts shown as zero\n")
    return service


async def ranking_command(campaign_id: str, gateway_url: str | None) -> int:
    """Print the project leaderboard for a campaign."""
    service = await _load(campaign_id, gateway_url)
    if service is None:
        return 1

    campaign = service.snapshot(campaign_id).campaign
    print(f"\nCampaign {campaign.id}: {campaign.name}")
    print("-" * 70)
    for entry in service.get_ranked_projects(campaign_id):
        view = entry.view
        status = "approved" if view.approved else "pending"
        winner = " *" if entry.is_winner else ""
        votes = to_decimal(view.vote_count)
        print(f"  {ordinal(entry.rank):>5}  {view.name[:40]:<40} {votes:>12.2f}  {status}{winner}")
    print("-" * 70)
    return 0


async def distribution_command(
    campaign_id: str, mode: str | None, gateway_url: str | None
) -> int:
    """Print the projected pool split for a campaign."""
    service = await _load(campaign_id, gateway_url)
    if service is None:
        return 1

    fees = service.get_fee_breakdown(campaign_id)
    entries = service.compute_distribution(campaign_id, mode)

    print(f"\nTotal funds:        {fees.total_funds:.2f}")
    print(f"Platform fee ({fees.platform_fee_percent:g}%): -{fees.platform_fee_amount:.2f}")
    print(f"Admin fee ({fees.admin_fee_percent:g}%):    -{fees.admin_fee_amount:.2f}")
    print(f"Available:          {fees.available_for_projects:.2f}\n")
    for entry in entries:
        print(
            f"  {entry.project_name[:40]:<40} {entry.vote_count:>10.2f} votes "
            f"{entry.amount:>12.2f} ({entry.percentage:.2f}%)"
        )
    return 0


async def phase_command(campaign_id: str, gateway_url: str | None) -> int:
    """Print the campaign phase and countdown."""
    service = await _load(campaign_id, gateway_url)
    if service is None:
        return 1

    state = service.get_phase(service.snapshot(campaign_id).campaign)
    print(
        f"{state.phase.value}: {state.days}d {state.hours}h "
        f"{state.minutes}m {state.seconds}s"
    )
    return 0


def main() -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(description="Campaign tally CLI")
    parser.add_argument(
        "--gateway",
        default=None,
        help="Chain gateway URL (default: CHAIN_GATEWAY_URL setting)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    ranking_parser = subparsers.add_parser("ranking", help="Show the campaign leaderboard")
    ranking_parser.add_argument("campaign_id", help="Campaign id")

    dist_parser = subparsers.add_parser("distribution", help="Show the projected pool split")
    dist_parser.add_argument("campaign_id", help="Campaign id")
    dist_parser.add_argument(
        "--mode",
        choices=[DistributionMode.LINEAR.value, DistributionMode.QUADRATIC.value],
        default=None,
        help="Weighting mode (default: the campaign's own mode)",
    )

    phase_parser = subparsers.add_parser("phase", help="Show the campaign phase")
    phase_parser.add_argument("campaign_id", help="Campaign id")

    args = parser.parse_args()

    if args.command == "ranking":
        return asyncio.run(ranking_command(args.campaign_id, args.gateway))

    elif args.command == "distribution":
        return asyncio.run(distribution_command(args.campaign_id, args.mode, args.gateway))

    elif args.command == "phase":
        return asyncio.run(phase_command(args.campaign_id, args.gateway))

    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
