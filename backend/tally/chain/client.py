"""HTTP client for the chain-access gateway.

The gateway wraps the campaign contract's read methods and relays signed
admin transactions. This module only speaks HTTP to it; no contract ABI
handling lives here.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any, Protocol

import httpx

from tally.chain.errors import CampaignNotFoundError, ChainGatewayError
from tally.models import Campaign, ParticipationRecord, Project
from tally.reconciler import normalize_approved_ids

logger = logging.getLogger(__name__)

# =============================================================================
# Gateway endpoints
# =============================================================================
#   GET  /campaigns/{id}
#   GET  /projects
#   GET  /campaigns/{id}/approved-projects          -> {"projectIds": [...]}
#   GET  /campaigns/{id}/projects/{pid}/participation
#   POST /campaigns/{id}/projects/{pid}/approve      -> {"txHash": "0x..."}
#   POST /campaigns/{id}/distribute                  -> {"txHash": "0x..."}
# =============================================================================

DEFAULT_GATEWAY_URL = "http://localhost:8545/gateway"


class ChainReader(Protocol):
    """Reads and writes the snapshot service needs from the chain."""

    async def read_campaign(self, campaign_id: str) -> Campaign: ...

    async def read_all_projects(self) -> list[Project]: ...

    async def read_approved_project_ids(self, campaign_id: str) -> frozenset[str]: ...

    async def read_participation_batch(
        self, campaign_id: str, project_ids: Sequence[str]
    ) -> list[ParticipationRecord | None]: ...

    async def submit_approval(self, campaign_id: str, project_id: str) -> str | None: ...

    async def submit_distribution(self, campaign_id: str) -> str | None: ...


class ChainGatewayClient:
    """Client for the chain-access gateway.

    The campaign, project-list and approved-id reads retry transient failures
    (5xx responses and transport errors) with exponential backoff. 4xx
    responses are raised immediately. Participation reads and submissions
    make a single attempt.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
    ):
        """Initialize the gateway client.

        Args:
            base_url: Gateway root URL. Defaults to CHAIN_GATEWAY_URL from
                app settings.
            api_key: Optional bearer token for the gateway.
            timeout: HTTP request timeout in seconds.
        """
        from app.config import settings

        self.base_url = (base_url or settings.chain_gateway_url or DEFAULT_GATEWAY_URL).rstrip(
            "/"
        )
        self.api_key = api_key if api_key is not None else settings.chain_gateway_api_key
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self.max_retries = 3
        self.retry_delay = 0.5  # seconds

    def _client(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, headers=headers)

    async def _request_with_retry(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request, retrying 5xx and transport errors with exponential backoff.

        Used by the single-shot reads only. Participation reads are retried
        as a whole batch by the snapshot service instead.

        Raises:
            httpx.HTTPStatusError: On 4xx, or 5xx after all retries.
            httpx.RequestError: On transport failure after all retries.
        """
        for attempt in range(1, self.max_retries + 1):
            try:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                return response
            except (httpx.HTTPStatusError, httpx.RequestError) as e:
                if not _is_transient(e) or attempt >= self.max_retries:
                    raise
                delay = self.retry_delay * 2 ** (attempt - 1)
                logger.warning(
                    f"{method} {url} failed ({e}), "
                    f"retrying in {delay}s (attempt {attempt}/{self.max_retries})"
                )
                await asyncio.sleep(delay)
        raise RuntimeError(f"No attempts made for {method} {url}")

    # =========================================================================
    # Reads
    # =========================================================================

    async def read_campaign(self, campaign_id: str) -> Campaign:
        """Fetch a campaign.

        Raises:
            CampaignNotFoundError: If the gateway reports 404.
            ChainGatewayError: If the body is not a JSON object.
        """
        async with self._client() as client:
            try:
                response = await self._request_with_retry(
                    client, "GET", f"/campaigns/{campaign_id}"
                )
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 404:
                    raise CampaignNotFoundError(campaign_id) from e
                raise
        data = _decode(response)
        if not isinstance(data, dict):
            raise ChainGatewayError(f"Unexpected campaign payload for {campaign_id}")
        data.setdefault("id", campaign_id)
        return Campaign.from_api_response(data)

    async def read_all_projects(self) -> list[Project]:
        """Fetch every registered project."""
        async with self._client() as client:
            response = await self._request_with_retry(client, "GET", "/projects")
        data = _decode(response)
        items = data.get("projects", []) if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise ChainGatewayError("Unexpected project list payload")
        return [Project.from_api_response(item) for item in items if isinstance(item, dict)]

    async def read_approved_project_ids(self, campaign_id: str) -> frozenset[str]:
        """Fetch the authoritative set of approved project ids."""
        async with self._client() as client:
            response = await self._request_with_retry(
                client, "GET", f"/campaigns/{campaign_id}/approved-projects"
            )
        data = _decode(response)
        ids = data.get("projectIds", []) if isinstance(data, dict) else data
        if not isinstance(ids, list):
            raise ChainGatewayError(f"Unexpected approved-id payload for {campaign_id}")
        return normalize_approved_ids(ids)

    async def read_participation_batch(
        self, campaign_id: str, project_ids: Sequence[str]
    ) -> list[ParticipationRecord | None]:
        """Fetch participation records for many projects in parallel.

        Each project gets exactly one request. A 404 for one project yields
        None in its slot. Any other failure cancels the reads still in flight
        and fails the whole batch, so callers never see a half-filled result.

        Returns:
            Records aligned with ``project_ids``.
        """
        async with self._client() as client:
            try:
                async with asyncio.TaskGroup() as group:
                    tasks = [
                        group.create_task(self._read_participation(client, campaign_id, pid))
                        for pid in project_ids
                    ]
            except ExceptionGroup as eg:
                # Surface the first failure with its own type
                raise eg.exceptions[0] from None
        return [task.result() for task in tasks]

    async def _read_participation(
        self, client: httpx.AsyncClient, campaign_id: str, project_id: str
    ) -> ParticipationRecord | None:
        response = await client.get(
            f"/campaigns/{campaign_id}/projects/{project_id}/participation"
        )
        if response.status_code == 404:
            logger.debug(f"No participation for project {project_id} in {campaign_id}")
            return None
        response.raise_for_status()
        return ParticipationRecord.from_raw(campaign_id, project_id, _decode(response))

    # =========================================================================
    # Writes
    # =========================================================================

    async def submit_approval(self, campaign_id: str, project_id: str) -> str | None:
        """Relay a project approval transaction. Returns the tx hash."""
        async with self._client() as client:
            response = await client.post(f"/campaigns/{campaign_id}/projects/{project_id}/approve")
            response.raise_for_status()
        return _tx_hash(response)

    async def submit_distribution(self, campaign_id: str) -> str | None:
        """Relay a fund distribution transaction. Returns the tx hash.

        Not retried: distribution is irreversible.
        """
        async with self._client() as client:
            response = await client.post(f"/campaigns/{campaign_id}/distribute")
            response.raise_for_status()
        return _tx_hash(response)


def _tx_hash(response: httpx.Response) -> str | None:
    if not response.content:
        return None
    try:
        data = response.json()
    except ValueError:
        # The transaction went through; only the hash is lost
        logger.warning(f"Undecodable submission response from {response.request.url}")
        return None
    return data.get("txHash") if isinstance(data, dict) else None


def _is_transient(error: httpx.HTTPStatusError | httpx.RequestError) -> bool:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return True


def _decode(response: httpx.Response) -> Any:
    """JSON body of a successful read; an undecodable body is a failed read."""
    try:
        return response.json()
    except ValueError as e:
        raise ChainGatewayError(f"Malformed response from {response.request.url}: {e}") from e
