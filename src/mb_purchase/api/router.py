"""mb_purchase REST API.

POST /purchases          200 credited | 202 pending (poll) | 400 invalid/duplicate | 5xx
POST /purchases/recover  same, but a processed hash answers 200 already_processed
GET  /purchases          the current user's credit transactions
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mb_common.database import get_db_session
from src.mb_common.response import ApiResponse, success_response
from src.mb_gateway.auth.dependencies import get_current_user
from src.mb_gateway.user.db_models import UserModel
from src.mb_purchase.application.schemas import PurchaseItem, PurchaseRequest, PurchaseResponse
from src.mb_purchase.application.service import PurchaseProcessor, get_purchase_processor
from src.mb_purchase.domain.models import PurchaseOutcome, PurchaseStatus

router = APIRouter(prefix="/purchases", tags=["purchases"])

_MESSAGES = {
    PurchaseStatus.COMPLETED: "Credits added",
    PurchaseStatus.PENDING: "Payment not confirmed yet, retry later",
    PurchaseStatus.ALREADY_PROCESSED: "Transaction already processed",
}


def _render(outcome: PurchaseOutcome, request: Request, response: Response) -> ApiResponse:
    retry_after = None
    if outcome.status == PurchaseStatus.PENDING:
        retry_after = settings.PENDING_RETRY_AFTER_SECONDS
        response.status_code = status.HTTP_202_ACCEPTED
        response.headers["Retry-After"] = str(retry_after)
    data = PurchaseResponse.from_outcome(outcome, retry_after)
    resp = success_response(data.model_dump(by_alias=True), message=_MESSAGES[outcome.status])
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("")
async def create_purchase(
    body: PurchaseRequest,
    processor: Annotated[PurchaseProcessor, Depends(get_purchase_processor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    response: Response,
) -> ApiResponse:
    outcome = await processor.process(db, body.to_command())
    return _render(outcome, request, response)


@router.post("/recover")
async def recover_purchase(
    body: PurchaseRequest,
    processor: Annotated[PurchaseProcessor, Depends(get_purchase_processor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    response: Response,
) -> ApiResponse:
    outcome = await processor.recover(db, body.to_command())
    return _render(outcome, request, response)


@router.get("")
async def list_purchases(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    processor: Annotated[PurchaseProcessor, Depends(get_purchase_processor)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    txs = await processor.list_purchases(db, str(current_user.id), limit)
    resp = success_response({"items": [PurchaseItem.from_tx(tx).model_dump() for tx in txs]})
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
