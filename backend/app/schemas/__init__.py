"""Pydantic schemas module.

Response models for the campaign tally API. Schema suffix distinguishes
them from the frozen domain records in ``tally.models``.
"""

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

__all__ = [
    "CampaignStatsSchema",
    "CanonicalProjectListSchema",
    "CanonicalProjectSchema",
    "DistributionEntrySchema",
    "DistributionSchema",
    "FeeBreakdownSchema",
    "PhaseSchema",
    "RankedProjectSchema",
    "RankingSchema",
    "SubmissionResultSchema",
]
