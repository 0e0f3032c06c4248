"""Pydantic request/response schemas for the payment verification API."""

from pydantic import BaseModel, Field

from src.mb_payment.domain.models import VerificationResult


class VerifyPaymentRequest(BaseModel):
    tx_hash: str = Field(..., alias="txHash", min_length=1, max_length=128)
    expected_amount: int = Field(..., alias="expectedAmount", gt=0, description="lovelace")
    expected_address: str = Field(..., alias="expectedAddress", min_length=1)

    model_config = {"populate_by_name": True}


class VerificationResponse(BaseModel):
    verified: bool
    status: str
    detail: str
    attempts: int
    retry_after: int | None = None

    @classmethod
    def from_result(
        cls, result: VerificationResult, retry_after: int | None = None
    ) -> "VerificationResponse":
        return cls(
            verified=result.verified,
            status=result.status.value,
            detail=result.detail,
            attempts=result.attempts,
            retry_after=retry_after,
        )
