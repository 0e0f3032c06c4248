"""Router-level tests: envelopes, status codes and headers.

Services run against the in-memory fakes through ``app.dependency_overrides``.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from config.settings import settings
from src.main import app
from src.mb_common import redis_client
from src.mb_common.database import get_db_session
from src.mb_game.api.router import get_game_service, get_outcome_resolver
from src.mb_game.application.service import GameSettlementService
from src.mb_game.domain.models import GameSettings
from src.mb_game.domain.outcome import DoorDrawResolver
from src.mb_gateway.auth.dependencies import get_current_user
from src.mb_ledger.api.router import get_ledger_service
from src.mb_ledger.application.service import LedgerApplicationService
from src.mb_payment.application.verifier import get_payment_verifier
from src.mb_payment.domain.models import VerificationResult, VerificationStatus
from src.mb_purchase.application.service import PurchaseProcessor, get_purchase_processor
from src.mb_withdrawal.api.router import get_withdrawal_service
from src.mb_withdrawal.application.service import WithdrawalService
from src.mb_withdrawal.domain.models import FeeSchedule

TX = "ab" * 32
WALLET = "addr_test1" + "q" * 60
PAY_TO = "addr_test1" + "p" * 60
DEST = "addr_test1" + "d" * 60

CONFIRMED = VerificationResult(
    verified=True, status=VerificationStatus.CONFIRMED, detail="Payment confirmed", attempts=1
)
NOT_FOUND = VerificationResult(
    verified=False,
    status=VerificationStatus.NOT_FOUND,
    detail="Transaction not found on chain",
    attempts=5,
)


class StubVerifier:
    def __init__(self, result: VerificationResult) -> None:
        self.result = result

    async def verify(self, tx_hash, expected_amount, expected_address):
        return self.result


class PermissiveRedis:
    async def incr(self, key: str) -> int:
        return 1

    async def expire(self, key: str, seconds: int) -> bool:
        return True


class SilentNotifier:
    async def notify(self, request) -> bool:
        return True


@pytest.fixture(autouse=True)
def _environment(monkeypatch, clear_overrides) -> None:
    monkeypatch.setattr(redis_client, "_redis_pool", PermissiveRedis())
    monkeypatch.setattr(settings, "PAYMENT_ADDRESS", PAY_TO)
    monkeypatch.setattr(settings, "WELCOME_BONUS_CREDITS", 100)
    app.dependency_overrides[get_db_session] = lambda: AsyncMock()


@pytest.fixture
def verifier() -> StubVerifier:
    return StubVerifier(CONFIRMED)


@pytest.fixture
def purchases(verifier, balances, credit_txs, users) -> PurchaseProcessor:
    processor = PurchaseProcessor(
        verifier=verifier,
        balance_repo=balances,
        tx_repo=credit_txs,
        users=users,
        verify_timeout_seconds=5,
    )
    app.dependency_overrides[get_purchase_processor] = lambda: processor
    return processor


def _login(is_admin: bool = False) -> None:
    user = SimpleNamespace(id="user-1", wallet_address=WALLET, is_active=True, is_admin=is_admin)
    app.dependency_overrides[get_current_user] = lambda: user


def _purchase_body() -> dict:
    return {"txHash": TX, "credits": 1000, "walletAddress": WALLET}


class TestHealth:
    async def test_health(self, client) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestPurchaseRoutes:
    async def test_completed(self, client, purchases) -> None:
        resp = await client.post("/api/v1/purchases", json=_purchase_body())

        assert resp.status_code == 200
        body = resp.json()
        assert body["code"] == 0
        assert body["data"]["status"] == "completed"
        assert body["data"]["newBalance"] == 1100
        assert body["data"]["oldBalance"] == 0
        assert body["data"]["bonus"] == 100
        assert resp.headers["X-Request-ID"] == body["request_id"]

    async def test_pending_is_202_with_retry_after(self, client, purchases, verifier) -> None:
        verifier.result = NOT_FOUND
        resp = await client.post("/api/v1/purchases", json=_purchase_body())

        assert resp.status_code == 202
        assert resp.headers["Retry-After"] == str(settings.PENDING_RETRY_AFTER_SECONDS)
        assert resp.json()["data"]["status"] == "pending"

    async def test_duplicate_is_400_with_prior(self, client, purchases) -> None:
        await client.post("/api/v1/purchases", json=_purchase_body())
        resp = await client.post("/api/v1/purchases", json=_purchase_body())

        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == 4001
        assert body["data"]["newBalance"] == 1100

    async def test_recover_answers_already_processed(self, client, purchases) -> None:
        await client.post("/api/v1/purchases", json=_purchase_body())
        resp = await client.post("/api/v1/purchases/recover", json=_purchase_body())

        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "already_processed"
        assert resp.json()["data"]["details"]["creditsAdded"] == 1000

    async def test_test_hash_is_400(self, client, purchases) -> None:
        body = _purchase_body() | {"txHash": "test_" + "a" * 59}
        resp = await client.post("/api/v1/purchases", json=body)
        assert resp.status_code == 400
        assert resp.json()["code"] == 3001

    async def test_listing_requires_auth(self, client, purchases) -> None:
        resp = await client.get("/api/v1/purchases")
        assert resp.status_code == 401


class TestPaymentRoutes:
    async def test_verify_pending(self, client) -> None:
        app.dependency_overrides[get_payment_verifier] = lambda: StubVerifier(NOT_FOUND)
        resp = await client.post(
            "/api/v1/payments/verify",
            json={"txHash": TX, "expectedAmount": 10_000_000, "expectedAddress": PAY_TO},
        )
        assert resp.status_code == 202
        assert resp.json()["data"]["verified"] is False

    async def test_verify_mismatch_is_error(self, client) -> None:
        mismatch = VerificationResult(
            verified=False, status=VerificationStatus.ERROR, detail="Amount or address mismatch"
        )
        app.dependency_overrides[get_payment_verifier] = lambda: StubVerifier(mismatch)
        resp = await client.post(
            "/api/v1/payments/verify",
            json={"txHash": TX, "expectedAmount": 10_000_000, "expectedAddress": PAY_TO},
        )
        assert resp.status_code == 500
        assert resp.json()["code"] == 3002


class TestWithdrawalRoutes:
    @pytest.fixture
    def withdrawal_service(self, balances, withdrawals, users) -> WithdrawalService:
        service = WithdrawalService(
            balance_repo=balances,
            repo=withdrawals,
            notifier=SilentNotifier(),
            users=users,
            schedule=FeeSchedule(10_000, 500, 250, 170_000, 5_000_000),
        )
        app.dependency_overrides[get_withdrawal_service] = lambda: service
        return service

    async def test_quote(self, client, balances, withdrawal_service) -> None:
        _login()
        balances.seed("user-1", purchased=1000)
        resp = await client.post("/api/v1/withdrawals/quote", json={"credits": 1000})

        assert resp.status_code == 200
        assert resp.json()["data"]["netAmount"] == 9_092_500

    async def test_submit_and_admin_cancel(self, client, balances, withdrawal_service) -> None:
        _login(is_admin=True)
        balances.seed("user-1", winnings=600, purchased=600)

        created = await client.post(
            "/api/v1/withdrawals/submit", json={"credits": 1000, "toAddress": DEST}
        )
        assert created.status_code == 201
        request_id = created.json()["data"]["id"]
        assert created.json()["data"]["drawnWinnings"] == 600

        queue = await client.get("/api/v1/admin/withdrawals", params={"status": "pending"})
        assert [item["id"] for item in queue.json()["data"]["items"]] == [request_id]

        cancelled = await client.patch(
            f"/api/v1/admin/withdrawals/{request_id}/status",
            json={"status": "cancelled", "adminNotes": "duplicate"},
        )
        assert cancelled.status_code == 200
        assert balances.balances["user-1"].total == 1200

    async def test_admin_only(self, client, withdrawal_service) -> None:
        _login(is_admin=False)
        resp = await client.get("/api/v1/admin/withdrawals")
        assert resp.status_code == 403


class TestAccountRoutes:
    @pytest.fixture
    def ledger_service(self, balances, users) -> LedgerApplicationService:
        service = LedgerApplicationService(repo=balances, users=users)
        app.dependency_overrides[get_ledger_service] = lambda: service
        return service

    async def test_balance_splits_withdrawable(self, client, balances, ledger_service) -> None:
        _login()
        balances.seed("user-1", purchased=10, winnings=20, bonus=100)
        resp = await client.get("/api/v1/account/balance")

        data = resp.json()["data"]
        assert data["total_credits"] == 130
        assert data["withdrawable_credits"] == 30

    async def test_admin_apply_uses_decimal_strings(self, client, ledger_service) -> None:
        _login(is_admin=True)
        body = {
            "user_id": "user-7",
            "delta": "250",
            "reason": "admin_adjustment",
            "idempotency_key": "a1",
        }

        first = await client.post("/api/v1/admin/ledger/apply", json=body)
        again = await client.post("/api/v1/admin/ledger/apply", json=body)

        assert first.json()["data"]["resulting_balance"] == "250"
        assert again.json()["data"]["replayed"] is True

    async def test_rejected_debit_is_422(self, client, ledger_service) -> None:
        _login(is_admin=True)
        resp = await client.post(
            "/api/v1/admin/ledger/apply",
            json={"user_id": "user-7", "delta": "-1", "reason": "admin_adjustment"},
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == 2001

    async def test_unknown_user_is_404(self, client, users, ledger_service) -> None:
        _login(is_admin=True)
        users.unknown_ids.add("user-404")
        resp = await client.post(
            "/api/v1/admin/ledger/apply",
            json={"user_id": "user-404", "delta": "5", "reason": "admin_adjustment"},
        )
        assert resp.status_code == 404
        assert resp.json()["code"] == 1005

    async def test_ledger_page(self, client, ledger_service) -> None:
        _login(is_admin=True)
        for key in ("k1", "k2", "k3"):
            await client.post(
                "/api/v1/admin/ledger/apply",
                json={
                    "user_id": "user-1",
                    "delta": "5",
                    "reason": "admin_adjustment",
                    "idempotency_key": key,
                },
            )

        resp = await client.get("/api/v1/account/ledger", params={"limit": 2})

        data = resp.json()["data"]
        assert [item["balance_after"] for item in data["items"]] == [15, 10]
        assert data["has_more"] is True


class TestAuthRoutes:
    async def test_me(self, client) -> None:
        user = SimpleNamespace(
            id="user-1",
            wallet_address=WALLET,
            username="Userqqqqqqqq",
            is_active=True,
            is_admin=False,
            welcome_bonus_claimed=True,
            total_credits_purchased=1000,
            total_credits_withdrawn=0,
        )
        app.dependency_overrides[get_current_user] = lambda: user
        resp = await client.get("/api/v1/auth/me")

        assert resp.status_code == 200
        assert resp.json()["data"]["wallet_address"] == WALLET

    async def test_dev_session_hidden_outside_debug(self, client, monkeypatch) -> None:
        monkeypatch.setattr(settings, "DEBUG", False)
        resp = await client.post("/api/v1/auth/session", json={"wallet_address": WALLET})
        assert resp.status_code == 404


class FixedSettingsProvider:
    async def get(self, game: str) -> GameSettings:
        return GameSettings(game, 100, 118, 40)


class TestGameRoutes:
    @pytest.fixture
    def game_service(self, balances, sessions) -> GameSettlementService:
        service = GameSettlementService(
            settings_provider=FixedSettingsProvider(), balance_repo=balances, sessions=sessions
        )
        app.dependency_overrides[get_game_service] = lambda: service
        # door 1 always wins
        app.dependency_overrides[get_outcome_resolver] = lambda: DoorDrawResolver(
            draw=lambda doors: 1
        )
        return service

    async def _open(self, client) -> str:
        resp = await client.post("/api/v1/games/sessions", json={"game": "monty"})
        assert resp.status_code == 201
        return resp.json()["data"]["sessionId"]

    async def test_open_then_win(self, client, balances, game_service) -> None:
        _login()
        balances.seed("user-1", purchased=100)
        session_id = await self._open(client)
        assert balances.balances["user-1"].total == 0

        resp = await client.post(
            f"/api/v1/games/sessions/{session_id}/settle", json={"choice": 1}
        )

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["won"] is True
        assert data["winningChoice"] == 1
        assert data["payout"] == 118
        assert balances.balances["user-1"].winnings_credits == 118

    async def test_client_cannot_pick_the_outcome(self, client, balances, game_service) -> None:
        _login()
        balances.seed("user-1", purchased=100)
        session_id = await self._open(client)

        resp = await client.post(
            f"/api/v1/games/sessions/{session_id}/settle", json={"choice": 0, "won": True}
        )

        data = resp.json()["data"]
        assert data["won"] is False
        assert data["payout"] == 40

    async def test_second_settle_is_409(self, client, balances, game_service) -> None:
        _login()
        balances.seed("user-1", purchased=100)
        session_id = await self._open(client)
        await client.post(f"/api/v1/games/sessions/{session_id}/settle", json={"choice": 1})

        again = await client.post(
            f"/api/v1/games/sessions/{session_id}/settle", json={"choice": 1}
        )

        assert again.status_code == 409
        assert again.json()["code"] == 6003
        assert balances.balances["user-1"].winnings_credits == 118

    async def test_choice_out_of_range(self, client, balances, game_service) -> None:
        _login()
        balances.seed("user-1", purchased=100)
        session_id = await self._open(client)

        resp = await client.post(
            f"/api/v1/games/sessions/{session_id}/settle", json={"choice": 3}
        )

        assert resp.status_code == 400
        assert resp.json()["code"] == 3001

    async def test_cannot_afford_stake(self, client, balances, game_service) -> None:
        _login()
        balances.seed("user-1", purchased=10)
        resp = await client.post("/api/v1/games/sessions", json={"game": "monty"})

        assert resp.status_code == 422
        assert resp.json()["code"] == 2001
