"""Chain gateway access: reads, transaction relays and failure classification."""

from tally.chain.client import ChainGatewayClient, ChainReader
from tally.chain.errors import (
    CampaignNotFoundError,
    ChainGatewayError,
    SubmissionResult,
    TransactionFailureKind,
    TransactionKind,
    classify_failure,
)

__all__ = [
    "CampaignNotFoundError",
    "ChainGatewayClient",
    "ChainGatewayError",
    "ChainReader",
    "SubmissionResult",
    "TransactionFailureKind",
    "TransactionKind",
    "classify_failure",
]
