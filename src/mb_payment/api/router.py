"""mb_payment REST API: standalone payment verification (no crediting)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from config.settings import settings
from src.mb_common.response import ApiResponse, success_response
from src.mb_payment.application.schemas import VerificationResponse, VerifyPaymentRequest
from src.mb_payment.application.verifier import (
    PaymentVerifier,
    get_payment_verifier,
    raise_for_failure,
    verify_within_deadline,
)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/verify")
async def verify_payment(
    body: VerifyPaymentRequest,
    verifier: Annotated[PaymentVerifier, Depends(get_payment_verifier)],
    request: Request,
    response: Response,
) -> ApiResponse:
    result = await verify_within_deadline(
        verifier,
        body.tx_hash,
        body.expected_amount,
        body.expected_address,
        settings.VERIFY_REQUEST_TIMEOUT_SECONDS,
    )
    raise_for_failure(result)

    retry_after = None
    if result.is_pending:
        retry_after = settings.PENDING_RETRY_AFTER_SECONDS
        response.status_code = status.HTTP_202_ACCEPTED
        response.headers["Retry-After"] = str(retry_after)

    data = VerificationResponse.from_result(result, retry_after)
    resp = success_response(data.model_dump(), message=result.detail or "success")
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
