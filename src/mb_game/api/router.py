"""mb_game REST API: open a staked session, then settle it with a server-drawn outcome."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mb_common.database import get_db_session
from src.mb_common.response import ApiResponse, success_response
from src.mb_game.application.schemas import OpenSessionRequest, SettleSessionRequest
from src.mb_game.application.service import GameSettlementService
from src.mb_game.domain.outcome import DoorDrawResolver, OutcomeResolver
from src.mb_gateway.auth.dependencies import get_current_user
from src.mb_gateway.user.db_models import UserModel

router = APIRouter(prefix="/games", tags=["games"])

_service = GameSettlementService()
_resolver = DoorDrawResolver()


def get_game_service() -> GameSettlementService:
    return _service


def get_outcome_resolver() -> OutcomeResolver:
    return _resolver


@router.post("/sessions", status_code=201)
async def open_session(
    body: OpenSessionRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    service: Annotated[GameSettlementService, Depends(get_game_service)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    session = await service.open_session(
        db, str(current_user.id), body.game, body.idempotency_key
    )
    resp = success_response(session.to_dict(), message="Game session opened")
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/sessions/{session_id}/settle")
async def settle_session(
    session_id: str,
    body: SettleSessionRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    service: Annotated[GameSettlementService, Depends(get_game_service)],
    resolver: Annotated[OutcomeResolver, Depends(get_outcome_resolver)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    user_id = str(current_user.id)
    session = await service.get_session(db, user_id, session_id)
    outcome = resolver.resolve(session.game, body.choice)
    result = await service.settle_session(db, user_id, session_id, outcome.won)
    data = result.session.to_dict()
    data.update(
        choice=body.choice,
        winningChoice=outcome.winning_choice,
        newBalance=result.new_balance,
    )
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
