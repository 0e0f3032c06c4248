"""PayoutNotifier publishes to Redis and never raises on Redis failure."""

import json

from redis.exceptions import ConnectionError as RedisConnectionError

from src.mb_common.enums import WithdrawalStatus
from src.mb_withdrawal.domain.models import WithdrawalRequest
from src.mb_withdrawal.infrastructure.payout_notifier import PAYOUT_CHANNEL, PayoutNotifier


class FakeRedis:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.published: list[tuple[str, str]] = []

    async def publish(self, channel: str, message: str) -> int:
        if self.fail:
            raise RedisConnectionError("redis down")
        self.published.append((channel, message))
        return 1


def _request() -> WithdrawalRequest:
    return WithdrawalRequest(
        id="7d0c5a52-9c55-4b7e-bf43-6d9f1f7f2d11",
        user_id="user-1",
        credits=40,
        destination_address="addr_test1" + "d" * 60,
        status=WithdrawalStatus.PENDING,
        gross_lovelace=380_000,
        platform_fee_lovelace=9_500,
        network_fee_lovelace=170_000,
        net_lovelace=200_500,
    )


async def test_publishes_payload() -> None:
    redis = FakeRedis()

    async def factory() -> FakeRedis:
        return redis

    assert await PayoutNotifier(redis_factory=factory).notify(_request()) is True

    channel, message = redis.published[0]
    assert channel == PAYOUT_CHANNEL
    assert json.loads(message) == {
        "withdrawal_id": "7d0c5a52-9c55-4b7e-bf43-6d9f1f7f2d11",
        "user_id": "user-1",
        "destination_address": "addr_test1" + "d" * 60,
        "net_lovelace": 200_500,
    }


async def test_redis_failure_returns_false() -> None:
    async def factory() -> FakeRedis:
        return FakeRedis(fail=True)

    assert await PayoutNotifier(redis_factory=factory).notify(_request()) is False
