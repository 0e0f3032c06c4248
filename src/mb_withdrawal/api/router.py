"""mb_withdrawal REST API: user quote/submit/history and the admin payout queue."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mb_common.database import get_db_session
from src.mb_common.enums import WithdrawalStatus
from src.mb_common.response import ApiResponse, success_response
from src.mb_gateway.auth.dependencies import get_current_user, require_admin
from src.mb_gateway.user.db_models import UserModel
from src.mb_withdrawal.application.schemas import (
    QuoteRequest,
    StatusUpdateRequest,
    SubmitRequest,
)
from src.mb_withdrawal.application.service import WithdrawalService

router = APIRouter(prefix="/withdrawals", tags=["withdrawals"])
admin_router = APIRouter(prefix="/admin/withdrawals", tags=["admin"])

_service = WithdrawalService()


def get_withdrawal_service() -> WithdrawalService:
    return _service


@router.post("/quote")
async def quote_withdrawal(
    body: QuoteRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    service: Annotated[WithdrawalService, Depends(get_withdrawal_service)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    quote = await service.quote(db, str(current_user.id), body.credits)
    resp = success_response(quote.to_dict())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/submit", status_code=201)
async def submit_withdrawal(
    body: SubmitRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    service: Annotated[WithdrawalService, Depends(get_withdrawal_service)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    created = await service.submit(db, str(current_user.id), body.credits, body.to_address)
    resp = success_response(created.to_dict(), message="Withdrawal request created")
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("")
async def list_withdrawals(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    service: Annotated[WithdrawalService, Depends(get_withdrawal_service)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    items = await service.list_for_user(db, str(current_user.id), limit)
    resp = success_response({"items": [w.to_dict() for w in items]})
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@admin_router.get("")
async def list_queue(
    admin: Annotated[UserModel, Depends(require_admin)],
    service: Annotated[WithdrawalService, Depends(get_withdrawal_service)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: WithdrawalStatus | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
) -> ApiResponse:
    items = await service.list_queue(db, status, limit)
    resp = success_response({"items": [w.to_dict() for w in items]})
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@admin_router.patch("/{request_id}/status")
async def update_status(
    request_id: str,
    body: StatusUpdateRequest,
    admin: Annotated[UserModel, Depends(require_admin)],
    service: Annotated[WithdrawalService, Depends(get_withdrawal_service)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    updated = await service.transition(
        db, request_id, body.status, body.admin_notes, body.payment_tx_hash
    )
    resp = success_response(updated.to_dict())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
