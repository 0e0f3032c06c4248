"""Async client for a Blockfrost-compatible chain indexer.

The raw JSON never leaves this module: every response is normalized into an
IndexerLookup at the boundary. Failures are classified into two exceptions so
the verifier can decide whether a retry is worth it.
"""

import asyncio
import logging
from typing import Any

import httpx

from config.settings import settings
from src.mb_payment.domain.models import IndexerLookup, IndexerTxStatus, TxOutput

logger = logging.getLogger(__name__)

_HARD_STATUSES = frozenset({400, 401, 403})
_KNOWN_NETWORK_PREFIXES = ("mainnet", "preprod", "preview")


class IndexerError(RuntimeError):
    """Base class for indexer failures."""


class IndexerHardError(IndexerError):
    """Bad credentials, malformed request or misconfiguration. Never retried."""


class IndexerTransientError(IndexerError):
    """Rate limiting, 5xx or network failure. Retried within the backoff budget."""


def _parse_lovelace(amounts: Any) -> int:
    if not isinstance(amounts, list):
        return 0
    for amount in amounts:
        if isinstance(amount, dict) and amount.get("unit") == "lovelace":
            try:
                return int(amount.get("quantity", 0))
            except (TypeError, ValueError):
                return 0
    return 0


def parse_outputs(payload: Any) -> tuple[TxOutput, ...]:
    """Flatten indexer outputs; tolerates both flat and ``{"output": {...}}`` shapes."""
    if not isinstance(payload, dict):
        return ()
    outputs: list[TxOutput] = []
    for raw in payload.get("outputs") or []:
        if not isinstance(raw, dict):
            continue
        item = raw.get("output") if isinstance(raw.get("output"), dict) else raw
        address = item.get("address")
        if not isinstance(address, str):
            continue
        outputs.append(TxOutput(address=address, lovelace=_parse_lovelace(item.get("amount"))))
    return tuple(outputs)


class IndexerClient:
    """HTTP client for transaction lookups against the indexer."""

    def __init__(
        self,
        base_url: str,
        project_id: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._project_id = project_id
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._lock = asyncio.Lock()

    async def startup(self) -> None:
        async with self._lock:
            if self._client is None:
                logger.info("Connecting to chain indexer at %s", self._base_url)
                self._client = httpx.AsyncClient(
                    base_url=self._base_url,
                    timeout=self._timeout,
                    headers={"project_id": self._project_id},
                    transport=self._transport,
                )

    async def shutdown(self) -> None:
        async with self._lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            await self.startup()
        assert self._client is not None
        return self._client

    def _check_config(self) -> None:
        if not self._project_id:
            raise IndexerHardError("Indexer project id is not configured")
        if not self._project_id.startswith(_KNOWN_NETWORK_PREFIXES):
            raise IndexerHardError("Indexer project id does not name a known network")

    async def _get(self, endpoint: str) -> httpx.Response | None:
        """GET ``endpoint``; returns None on 404."""
        client = await self._ensure_client()
        try:
            response = await client.get(endpoint)
        except httpx.HTTPError as exc:
            logger.warning("Indexer request failed: %s %s", endpoint, exc)
            raise IndexerTransientError(f"Indexer unreachable: {exc}") from exc

        if response.status_code == 404:
            return None
        if response.status_code in _HARD_STATUSES:
            logger.error("Indexer rejected request: %s status=%d", endpoint, response.status_code)
            raise IndexerHardError(f"Indexer rejected request with status {response.status_code}")
        if response.status_code >= 400:
            logger.warning("Indexer error: %s status=%d", endpoint, response.status_code)
            raise IndexerTransientError(f"Indexer returned status {response.status_code}")
        return response

    async def lookup_transaction(self, tx_hash: str) -> IndexerLookup:
        """Resolve a hash to confirmed outputs, a mempool sighting, or not-found."""
        self._check_config()

        response = await self._get(f"/txs/{tx_hash}/utxos")
        if response is not None:
            try:
                payload = response.json()
            except ValueError as exc:
                raise IndexerTransientError("Indexer returned a non-JSON body") from exc
            return IndexerLookup(status=IndexerTxStatus.CONFIRMED, outputs=parse_outputs(payload))

        mempool = await self._get(f"/mempool/{tx_hash}")
        if mempool is not None:
            return IndexerLookup(status=IndexerTxStatus.PENDING)
        return IndexerLookup(status=IndexerTxStatus.NOT_FOUND)


_indexer_client: IndexerClient | None = None


def get_indexer_client() -> IndexerClient:
    """Return the process-wide indexer client."""
    global _indexer_client
    if _indexer_client is None:
        _indexer_client = IndexerClient(
            base_url=settings.INDEXER_BASE_URL,
            project_id=settings.INDEXER_PROJECT_ID,
            timeout=settings.INDEXER_TIMEOUT_SECONDS,
        )
    return _indexer_client
