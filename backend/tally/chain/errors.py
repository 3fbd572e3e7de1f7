"""Classification of failed approval and distribution transactions.

Submissions are the only fallible, user-visible writes. Failures are caught
at the submit boundary and turned into a SubmissionResult so nothing raised
by the wallet or gateway reaches the calculators.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

import httpx


class TransactionFailureKind(StrEnum):
    """Why a submitted transaction did not go through."""

    USER_REJECTED = "user_rejected"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    ALREADY_DONE = "already_done"
    REVERTED = "reverted"
    NETWORK = "network"
    UNKNOWN = "unknown"


class TransactionKind(StrEnum):
    APPROVAL = "approval"
    DISTRIBUTION = "distribution"


class ChainGatewayError(Exception):
    """Raised by the gateway client when a request fails for good."""


class CampaignNotFoundError(ChainGatewayError):
    """The requested campaign does not exist on chain."""

    def __init__(self, campaign_id: str):
        super().__init__(f"Campaign {campaign_id} not found")
        self.campaign_id = campaign_id


# Substrings the wallet / node put in error messages, checked in order
_MESSAGE_PATTERNS: list[tuple[str, TransactionFailureKind]] = [
    ("user rejected", TransactionFailureKind.USER_REJECTED),
    ("user denied", TransactionFailureKind.USER_REJECTED),
    ("insufficient funds", TransactionFailureKind.INSUFFICIENT_FUNDS),
    ("already approved", TransactionFailureKind.ALREADY_DONE),
    ("already distributed", TransactionFailureKind.ALREADY_DONE),
    ("funds already", TransactionFailureKind.ALREADY_DONE),
    ("reverted", TransactionFailureKind.REVERTED),
    ("timeout", TransactionFailureKind.NETWORK),
    ("network", TransactionFailureKind.NETWORK),
]

_USER_MESSAGES: dict[TransactionFailureKind, str] = {
    TransactionFailureKind.USER_REJECTED: "Transaction was rejected by user",
    TransactionFailureKind.INSUFFICIENT_FUNDS: "Insufficient funds for transaction",
    TransactionFailureKind.REVERTED: "Transaction reverted on chain",
    TransactionFailureKind.NETWORK: "Network error while submitting transaction",
}

_NOT_RETRYABLE = {TransactionFailureKind.ALREADY_DONE}


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of an approval or distribution submission."""

    ok: bool
    transaction: TransactionKind
    kind: TransactionFailureKind | None = None
    message: str = ""
    tx_hash: str | None = None

    @property
    def retryable(self) -> bool:
        return not self.ok and self.kind not in _NOT_RETRYABLE


def classify_failure(error: BaseException) -> TransactionFailureKind:
    """Map a raised error to a TransactionFailureKind."""
    if isinstance(error, httpx.RequestError):
        return TransactionFailureKind.NETWORK

    message = str(error).lower()
    if isinstance(error, httpx.HTTPStatusError):
        message = f"{message} {error.response.text.lower()}"
        if error.response.status_code == 409:
            return TransactionFailureKind.ALREADY_DONE

    for pattern, kind in _MESSAGE_PATTERNS:
        if pattern in message:
            return kind

    if isinstance(error, httpx.HTTPStatusError) and error.response.status_code >= 500:
        return TransactionFailureKind.NETWORK
    return TransactionFailureKind.UNKNOWN


def failure_result(transaction: TransactionKind, error: BaseException) -> SubmissionResult:
    """Build the SubmissionResult for a failed submission."""
    kind = classify_failure(error)
    if kind == TransactionFailureKind.ALREADY_DONE:
        message = (
            "Project is already approved"
            if transaction == TransactionKind.APPROVAL
            else "Funds have already been distributed"
        )
    else:
        message = _USER_MESSAGES.get(kind, f"Error: {error}")
    return SubmissionResult(ok=False, transaction=transaction, kind=kind, message=message)
