"""Tests for the chain gateway client and failure classification."""

import asyncio
import json

import httpx
import pytest

from tally.chain.client import ChainGatewayClient
from tally.chain.errors import (
    CampaignNotFoundError,
    ChainGatewayError,
    TransactionFailureKind,
    TransactionKind,
    classify_failure,
    failure_result,
)
from tally.models import FetchStatus
from tally.snapshot import CampaignSnapshotService, SnapshotNotLoadedError

WEI = 10**18
BASE = "http://gateway.test"


def _gateway(handler) -> ChainGatewayClient:
    """A client whose HTTP calls go to ``handler`` instead of the network."""
    client = ChainGatewayClient(base_url=BASE, api_key="secret", timeout=5)
    client.retry_delay = 0

    def _client() -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=BASE,
            transport=httpx.MockTransport(handler),
            headers={"Authorization": "Bearer secret"},
        )

    client._client = _client  # type: ignore[method-assign]
    return client


def _status_error(status: int, body: str = "") -> httpx.HTTPStatusError:
    request = httpx.Request("POST", f"{BASE}/x")
    response = httpx.Response(status, text=body, request=request)
    return httpx.HTTPStatusError(f"Error {status}", request=request, response=response)


class TestClassifyFailure:
    def test_message_patterns(self) -> None:
        kinds = TransactionFailureKind
        cases = {
            "MetaMask Tx Signature: User rejected the request.": kinds.USER_REJECTED,
            "insufficient funds for gas * price + value": kinds.INSUFFICIENT_FUNDS,
            "execution reverted: Project already approved": TransactionFailureKind.ALREADY_DONE,
            "execution reverted: Not campaign admin": TransactionFailureKind.REVERTED,
            "something odd": TransactionFailureKind.UNKNOWN,
        }
        for message, kind in cases.items():
            assert classify_failure(RuntimeError(message)) == kind

    def test_transport_errors_are_network(self) -> None:
        assert classify_failure(httpx.ConnectError("boom")) == TransactionFailureKind.NETWORK
        assert classify_failure(httpx.ReadTimeout("slow")) == TransactionFailureKind.NETWORK

    def test_http_status(self) -> None:
        assert classify_failure(_status_error(409)) == TransactionFailureKind.ALREADY_DONE
        assert classify_failure(_status_error(502)) == TransactionFailureKind.NETWORK
        assert (
            classify_failure(_status_error(400, "insufficient funds"))
            == TransactionFailureKind.INSUFFICIENT_FUNDS
        )

    def test_failure_result(self) -> None:
        rejected = failure_result(TransactionKind.APPROVAL, RuntimeError("user rejected"))
        assert not rejected.ok
        assert rejected.message == "Transaction was rejected by user"
        assert rejected.retryable

        done = failure_result(TransactionKind.DISTRIBUTION, _status_error(409))
        assert done.kind == TransactionFailureKind.ALREADY_DONE
        assert done.message == "Funds have already been distributed"
        assert not done.retryable


class TestChainGatewayClient:
    def test_init_from_arguments(self) -> None:
        client = ChainGatewayClient(base_url=f"{BASE}/", api_key="k", timeout=3)
        assert client.base_url == BASE
        assert client.api_key == "k"
        assert client.timeout == 3
        assert client.max_retries == 3

    @pytest.mark.asyncio
    async def test_read_campaign(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/campaigns/4"
            return httpx.Response(
                200, json={"name": "Round 4", "totalFunds": str(10 * WEI), "startTime": 1}
            )

        campaign = await _gateway(handler).read_campaign("4")

        assert campaign.id == "4"
        assert campaign.name == "Round 4"
        assert campaign.total_funds == 10 * WEI

    @pytest.mark.asyncio
    async def test_read_campaign_not_found(self) -> None:
        client = _gateway(lambda request: httpx.Response(404))
        with pytest.raises(CampaignNotFoundError):
            await client.read_campaign("99")

    @pytest.mark.asyncio
    async def test_retries_server_errors(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"projects": [{"id": 1, "name": "A"}]})

        projects = await _gateway(handler).read_all_projects()

        assert len(calls) == 3
        assert [p.name for p in projects] == ["A"]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self) -> None:
        client = _gateway(lambda request: httpx.Response(500))
        with pytest.raises(httpx.HTTPStatusError):
            await client.read_all_projects()

    @pytest.mark.asyncio
    async def test_read_approved_project_ids(self) -> None:
        client = _gateway(
            lambda request: httpx.Response(200, json={"projectIds": [1, "0x2", "bad"]})
        )
        assert await client.read_approved_project_ids("1") == frozenset({"1", "2"})

    @pytest.mark.asyncio
    async def test_participation_batch_mixed_shapes(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            pid = request.url.path.split("/")[4]
            if pid == "1":
                return httpx.Response(200, json=[True, str(5 * WEI), "0"])
            if pid == "2":
                return httpx.Response(200, json={"voteCount": str(2 * WEI)})
            return httpx.Response(404)

        records = await _gateway(handler).read_participation_batch("7", ["1", "2", "3"])

        assert records[0] is not None and records[0].vote_count == 5 * WEI
        assert records[1] is not None and records[1].vote_count == 2 * WEI
        assert records[2] is None

    @pytest.mark.asyncio
    async def test_participation_batch_fails_whole(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/2/participation"):
                return httpx.Response(400)
            return httpx.Response(200, json=[False, "1", "0"])

        with pytest.raises(httpx.HTTPStatusError):
            await _gateway(handler).read_participation_batch("7", ["1", "2"])

    @pytest.mark.asyncio
    async def test_submit_distribution(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert request.url.path == "/campaigns/5/distribute"
            return httpx.Response(200, content=json.dumps({"txHash": "0x123"}))

        assert await _gateway(handler).submit_distribution("5") == "0x123"

    @pytest.mark.asyncio
    async def test_submit_approval_raises_on_error(self) -> None:
        client = _gateway(lambda request: httpx.Response(409, text="Project already approved"))
        with pytest.raises(httpx.HTTPStatusError):
            await client.submit_approval("5", "1")

    @pytest.mark.asyncio
    async def test_participation_read_is_single_attempt(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503)

        with pytest.raises(httpx.HTTPStatusError):
            await _gateway(handler).read_participation_batch("7", ["1"])
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_failed_batch_cancels_reads_in_flight(self) -> None:
        started = asyncio.Event()
        never = asyncio.Event()
        cancelled = []

        async def handler(request: httpx.Request) -> httpx.Response:
            pid = request.url.path.split("/")[4]
            if pid == "1":
                await started.wait()
                return httpx.Response(400)
            started.set()
            try:
                await never.wait()
            except asyncio.CancelledError:
                cancelled.append(pid)
                raise
            return httpx.Response(200, json=[False, "1", "0"])

        with pytest.raises(httpx.HTTPStatusError):
            await _gateway(handler).read_participation_batch("7", ["1", "2"])
        assert cancelled == ["2"]

    @pytest.mark.asyncio
    async def test_malformed_body_is_gateway_error(self) -> None:
        client = _gateway(lambda request: httpx.Response(200, text="<html>bad gateway</html>"))

        with pytest.raises(ChainGatewayError):
            await client.read_campaign("1")
        with pytest.raises(ChainGatewayError):
            await client.read_all_projects()
        with pytest.raises(ChainGatewayError):
            await client.read_participation_batch("1", ["0"])

    @pytest.mark.asyncio
    async def test_submission_with_malformed_body_has_no_hash(self) -> None:
        client = _gateway(lambda request: httpx.Response(200, text="ok"))
        assert await client.submit_distribution("5") is None


def _campaign_routes(participation):
    """Gateway serving campaign 1 with one approved project, 0."""

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/campaigns/1":
            return httpx.Response(200, json={"name": "Round 1", "totalFunds": str(100 * WEI)})
        if path == "/projects":
            return httpx.Response(
                200, json={"projects": [{"id": 0, "name": "A", "campaignIds": [1]}]}
            )
        if path == "/campaigns/1/approved-projects":
            return httpx.Response(200, json={"projectIds": [0]})
        return participation(request)

    return handler


class TestSnapshotOverGateway:
    @pytest.mark.asyncio
    async def test_batch_retry_is_the_only_participation_retry(self) -> None:
        calls = []

        def participation(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503)

        service = CampaignSnapshotService(
            _gateway(_campaign_routes(participation)), max_attempts=3, retry_delay=0
        )

        snapshot = await service.refresh("1")

        assert len(calls) == 3
        assert snapshot is not None
        assert snapshot.status == FetchStatus.DATA_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_malformed_participation_degrades(self) -> None:
        calls = []

        def participation(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, text="<html>bad gateway</html>")

        service = CampaignSnapshotService(
            _gateway(_campaign_routes(participation)), max_attempts=3, retry_delay=0
        )

        snapshot = await service.refresh("1")

        assert len(calls) == 3
        assert snapshot is not None
        assert snapshot.status == FetchStatus.DATA_UNAVAILABLE
        assert [v.vote_count for v in snapshot.views] == [0]

    @pytest.mark.asyncio
    async def test_malformed_campaign_is_gateway_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/campaigns/1":
                return httpx.Response(200, text="<html>bad gateway</html>")
            return _campaign_routes(lambda r: httpx.Response(404))(request)

        service = CampaignSnapshotService(_gateway(handler), max_attempts=3, retry_delay=0)

        with pytest.raises(ChainGatewayError) as excinfo:
            await service.refresh("1")
        assert not isinstance(excinfo.value, CampaignNotFoundError)
        with pytest.raises(SnapshotNotLoadedError):
            service.snapshot("1")

    @pytest.mark.asyncio
    async def test_transport_failure_is_gateway_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/projects":
                raise httpx.ConnectError("gateway down")
            return _campaign_routes(lambda r: httpx.Response(404))(request)

        service = CampaignSnapshotService(_gateway(handler), max_attempts=3, retry_delay=0)

        with pytest.raises(ChainGatewayError):
            await service.refresh("1")
