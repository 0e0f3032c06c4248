"""Shared helpers for integration tests: wallet users and admin promotion."""

import uuid

from httpx import AsyncClient
from sqlalchemy import text

from src.mb_common.database import async_session_factory

APPLY_URL = "/api/v1/admin/ledger/apply"


def unique_wallet() -> str:
    return "addr_test1" + uuid.uuid4().hex + uuid.uuid4().hex[:28]


async def login(client: AsyncClient, wallet: str | None = None) -> tuple[dict[str, str], str]:
    """Create (or resolve) the wallet's user; return auth headers and user id."""
    resp = await client.post(
        "/api/v1/auth/session", json={"wallet_address": wallet or unique_wallet()}
    )
    data = resp.json()["data"]
    return {"Authorization": f"Bearer {data['access_token']}"}, data["user"]["user_id"]


async def promote_to_admin(user_id: str) -> None:
    async with async_session_factory() as db:
        await db.execute(
            text("UPDATE users SET is_admin = TRUE WHERE id = CAST(:id AS UUID)"), {"id": user_id}
        )
        await db.commit()


async def admin_login(client: AsyncClient) -> dict[str, str]:
    headers, user_id = await login(client)
    await promote_to_admin(user_id)
    return headers


def apply_body(user_id: str, delta: str, key: str | None = None, bucket: str = "purchased") -> dict:
    return {
        "user_id": user_id,
        "delta": delta,
        "reason": "admin_adjustment",
        "idempotency_key": key,
        "bucket": bucket,
    }
