"""Pydantic schemas for game session endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class OpenSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    game: str = Field("monty", min_length=1, max_length=32)
    idempotency_key: str | None = Field(
        None, alias="idempotencyKey", min_length=1, max_length=128
    )


class SettleSessionRequest(BaseModel):
    choice: int = Field(..., ge=0)
