"""Pydantic schemas and cursor utilities for mb_ledger API."""

import base64
import json

from pydantic import BaseModel, Field, field_validator

from src.mb_common.credits import parse_int_string
from src.mb_common.enums import Bucket

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Ledger RPC: integers travel as decimal strings
# ---------------------------------------------------------------------------


class ApplyAndLogRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    delta: str = Field(..., description="Signed decimal-string integer")
    reason: str = Field(..., min_length=1, max_length=128)
    idempotency_key: str | None = Field(None, max_length=200)
    bucket: Bucket = Bucket.PURCHASED

    @field_validator("delta")
    @classmethod
    def delta_is_int_string(cls, v: str) -> str:
        value = parse_int_string(v)
        if value == 0:
            raise ValueError("delta must be non-zero")
        return v


class ApplyAndLogResponse(BaseModel):
    resulting_balance: str
    replayed: bool
    ledger_entry_id: int


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    purchased_credits: int
    winnings_credits: int
    bonus_credits: int
    total_credits: int
    withdrawable_credits: int


class LedgerEntryItem(BaseModel):
    id: int
    delta: int
    purchased_delta: int
    winnings_delta: int
    bonus_delta: int
    balance_after: int
    reason: str
    idempotency_key: str | None
    created_at: str  # ISO8601 string


class LedgerResponse(BaseModel):
    items: list[LedgerEntryItem]
    next_cursor: str | None
    has_more: bool
