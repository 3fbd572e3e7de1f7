"""Headline campaign numbers for the admin dashboard."""

from collections.abc import Sequence

from tally.fixed_point import to_decimal
from tally.models import Campaign, CampaignStats, CanonicalProjectView
from tally.ranking import podium, rank_projects


def compute_campaign_stats(
    campaign: Campaign, views: Sequence[CanonicalProjectView]
) -> CampaignStats:
    approved = sum(1 for v in views if v.approved)
    leaders = podium(rank_projects(views, campaign.max_winners))
    return CampaignStats(
        total_projects=len(views),
        approved_projects=approved,
        pending_projects=len(views) - approved,
        total_votes=sum(to_decimal(v.vote_count) for v in views),
        total_funds=to_decimal(campaign.total_funds),
        participating_projects=sum(1 for v in views if v.vote_count > 0),
        top_project_ids=tuple(r.project_id for r in leaders),
    )
