"""Pydantic schemas for withdrawal endpoints."""

from pydantic import BaseModel, ConfigDict, Field

from src.mb_common.enums import WithdrawalStatus


class QuoteRequest(BaseModel):
    credits: int = Field(..., gt=0)


class SubmitRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    credits: int = Field(..., gt=0)
    to_address: str = Field(..., alias="toAddress", min_length=1, max_length=200)


class StatusUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: WithdrawalStatus
    admin_notes: str | None = Field(None, alias="adminNotes", max_length=1000)
    payment_tx_hash: str | None = Field(None, alias="paymentTxHash", max_length=128)
