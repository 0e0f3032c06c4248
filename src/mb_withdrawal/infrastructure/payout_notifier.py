"""Fire-and-forget hand-off to the off-chain payout executor via Redis pub/sub.

Delivery is at-most-once from this side; the executor reconciles against
the pending queue in withdrawal_requests, so a lost message only delays a payout.
"""

import json
import logging
from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from src.mb_common.redis_client import get_redis
from src.mb_withdrawal.domain.models import WithdrawalRequest

logger = logging.getLogger(__name__)

PAYOUT_CHANNEL = "payouts:pending"


class PayoutNotifier:
    def __init__(
        self,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
        channel: str = PAYOUT_CHANNEL,
    ) -> None:
        self._redis_factory = redis_factory
        self._channel = channel

    async def notify(self, request: WithdrawalRequest) -> bool:
        """Publish the request; returns False (and logs) instead of raising."""
        payload = json.dumps(
            {
                "withdrawal_id": request.id,
                "user_id": request.user_id,
                "destination_address": request.destination_address,
                "net_lovelace": request.net_lovelace,
            }
        )
        try:
            redis = await self._redis_factory()
            await redis.publish(self._channel, payload)
        except (RedisError, OSError) as exc:
            logger.warning("Payout notification failed for %s: %s", request.id, exc)
            return False
        logger.info("Payout queued: withdrawal=%s net=%d", request.id, request.net_lovelace)
        return True
