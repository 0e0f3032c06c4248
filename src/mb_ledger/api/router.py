"""mb_ledger REST API — balance and audit log for the current user, plus the
admin-only ledger RPC (decimal-string integers)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mb_common.database import get_db_session
from src.mb_common.response import ApiResponse, success_response
from src.mb_gateway.auth.dependencies import get_current_user, require_admin
from src.mb_gateway.user.db_models import UserModel
from src.mb_ledger.application.schemas import ApplyAndLogRequest
from src.mb_ledger.application.service import LedgerApplicationService

router = APIRouter(prefix="/account", tags=["account"])
admin_router = APIRouter(prefix="/admin/ledger", tags=["admin"])

_service = LedgerApplicationService()


def get_ledger_service() -> LedgerApplicationService:
    return _service


@router.get("/balance")
async def get_balance(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    service: Annotated[LedgerApplicationService, Depends(get_ledger_service)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await service.get_balance(db, str(current_user.id))
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/ledger")
async def list_ledger(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    service: Annotated[LedgerApplicationService, Depends(get_ledger_service)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    reason: str | None = Query(None, description="Filter by exact reason string"),
) -> ApiResponse:
    data = await service.list_ledger(db, str(current_user.id), cursor, limit, reason)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@admin_router.post("/apply")
async def apply_and_log(
    body: ApplyAndLogRequest,
    admin: Annotated[UserModel, Depends(require_admin)],
    service: Annotated[LedgerApplicationService, Depends(get_ledger_service)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await service.apply_and_log(db, body)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
