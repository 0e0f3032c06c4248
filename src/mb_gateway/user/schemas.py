"""Pydantic request/response schemas for mb_gateway.

All responses are wrapped in ApiResponse at the router layer.
"""

from pydantic import BaseModel, Field


class SessionRequest(BaseModel):
    wallet_address: str = Field(..., min_length=50, max_length=255)


class UserInfo(BaseModel):
    """Minimal user info embedded in responses."""

    user_id: str
    wallet_address: str
    username: str
    is_admin: bool
    welcome_bonus_claimed: bool
    total_credits_purchased: int
    total_credits_withdrawn: int


class SessionResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 1800
    user: UserInfo
