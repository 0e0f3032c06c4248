"""IndexerClient against an in-process httpx.MockTransport."""

import httpx
import pytest

from src.mb_payment.domain.models import IndexerTxStatus, TxOutput
from src.mb_payment.infrastructure.indexer_client import (
    IndexerClient,
    IndexerHardError,
    IndexerTransientError,
    parse_outputs,
)

TX = "ab" * 32
PAY_TO = "addr_test1" + "p" * 60


def _client(handler, project_id: str = "preprodABC123") -> IndexerClient:
    return IndexerClient(
        base_url="https://indexer.test",
        project_id=project_id,
        transport=httpx.MockTransport(handler),
    )


class TestParseOutputs:
    def test_flat_shape(self) -> None:
        payload = {
            "outputs": [
                {"address": PAY_TO, "amount": [{"unit": "lovelace", "quantity": "10000000"}]},
            ]
        }
        assert parse_outputs(payload) == (TxOutput(PAY_TO, 10_000_000),)

    def test_nested_shape_and_native_assets(self) -> None:
        payload = {
            "outputs": [
                {
                    "output": {
                        "address": PAY_TO,
                        "amount": [
                            {"unit": "abc123token", "quantity": "5"},
                            {"unit": "lovelace", "quantity": "2500000"},
                        ],
                    }
                }
            ]
        }
        assert parse_outputs(payload) == (TxOutput(PAY_TO, 2_500_000),)

    def test_garbage_is_ignored(self) -> None:
        assert parse_outputs(None) == ()
        assert parse_outputs({"outputs": ["x", {"amount": []}]}) == ()
        assert parse_outputs({"outputs": [{"address": PAY_TO, "amount": "bad"}]}) == (
            TxOutput(PAY_TO, 0),
        )


class TestLookupTransaction:
    async def test_confirmed(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={"outputs": [{"address": PAY_TO, "amount": [{"unit": "lovelace", "quantity": "1"}]}]},
            )

        client = _client(handler)
        lookup = await client.lookup_transaction(TX)
        await client.shutdown()

        assert lookup.status == IndexerTxStatus.CONFIRMED
        assert lookup.outputs == (TxOutput(PAY_TO, 1),)
        assert seen[0].url.path == f"/txs/{TX}/utxos"
        assert seen[0].headers["project_id"] == "preprodABC123"

    async def test_mempool_only_is_pending(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.startswith("/mempool/"):
                return httpx.Response(200, json={"tx": {"hash": TX}})
            return httpx.Response(404, json={"error": "Not Found"})

        lookup = await _client(handler).lookup_transaction(TX)
        assert lookup.status == IndexerTxStatus.PENDING

    async def test_unknown_everywhere_is_not_found(self) -> None:
        lookup = await _client(lambda r: httpx.Response(404)).lookup_transaction(TX)
        assert lookup.status == IndexerTxStatus.NOT_FOUND

    @pytest.mark.parametrize("status", [400, 401, 403])
    async def test_client_errors_are_hard(self, status: int) -> None:
        with pytest.raises(IndexerHardError):
            await _client(lambda r: httpx.Response(status)).lookup_transaction(TX)

    @pytest.mark.parametrize("status", [402, 418, 429, 500, 503])
    async def test_other_errors_are_transient(self, status: int) -> None:
        with pytest.raises(IndexerTransientError):
            await _client(lambda r: httpx.Response(status)).lookup_transaction(TX)

    async def test_network_failure_is_transient(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        with pytest.raises(IndexerTransientError):
            await _client(handler).lookup_transaction(TX)

    async def test_non_json_body_is_transient(self) -> None:
        with pytest.raises(IndexerTransientError):
            await _client(lambda r: httpx.Response(200, text="<html>")).lookup_transaction(TX)

    @pytest.mark.parametrize("project_id", ["", "testnetXYZ"])
    async def test_misconfigured_project_is_hard(self, project_id: str) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        with pytest.raises(IndexerHardError):
            await _client(handler, project_id=project_id).lookup_transaction(TX)
        assert calls == []
