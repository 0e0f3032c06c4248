"""Auth API router.

/auth/session mints a token for a raw wallet address and therefore answers 404
unless DEBUG is set. In production, tokens are issued by an external wallet
sign-in service that shares JWT_SECRET; this service only verifies them.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mb_common.database import get_db_session
from src.mb_common.response import ApiResponse, success_response
from src.mb_gateway.auth.dependencies import get_current_user
from src.mb_gateway.auth.jwt_handler import create_access_token
from src.mb_gateway.user.db_models import UserModel
from src.mb_gateway.user.schemas import SessionRequest, SessionResponse, UserInfo
from src.mb_gateway.user.service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])
_service = UserService()


def _get_request_id(request: Request) -> str:
    """Read request_id injected by RequestLogMiddleware, fallback if absent."""
    return getattr(request.state, "request_id", "req_unknown")


def _user_info(user: UserModel) -> UserInfo:
    return UserInfo(
        user_id=str(user.id),
        wallet_address=user.wallet_address,
        username=user.username,
        is_admin=user.is_admin,
        welcome_bonus_claimed=user.welcome_bonus_claimed,
        total_credits_purchased=user.total_credits_purchased,
        total_credits_withdrawn=user.total_credits_withdrawn,
    )


@router.post(
    "/session",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="Development-only token for a wallet address",
)
async def create_session(
    request: Request,
    body: SessionRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    if not settings.DEBUG:
        raise HTTPException(status_code=404, detail="Not found")
    try:
        user = await _service.get_or_create_by_wallet(db, body.wallet_address)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    data = SessionResponse(
        access_token=create_access_token(str(user.id), user.wallet_address),
        expires_in=settings.JWT_EXPIRE_MINUTES * 60,
        user=_user_info(user),
    )
    resp = success_response(data.model_dump())
    resp.request_id = _get_request_id(request)
    return resp


@router.get("/me", response_model=ApiResponse, summary="Current user")
async def me(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
) -> ApiResponse:
    resp = success_response(_user_info(current_user).model_dump())
    resp.request_id = _get_request_id(request)
    return resp
