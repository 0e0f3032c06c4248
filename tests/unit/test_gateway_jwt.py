"""Unit tests for JWT handler."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from jose import jwt

from config.settings import settings
from src.mb_common.errors import InvalidCredentialsError
from src.mb_gateway.auth.jwt_handler import create_access_token, decode_token

WALLET = "addr_test1" + "q" * 60


def test_access_token_contains_correct_claims() -> None:
    token = create_access_token("user-123", WALLET)
    payload = jwt.get_unverified_claims(token)
    assert payload["sub"] == "user-123"
    assert payload["wallet"] == WALLET
    assert payload["type"] == "access"


def test_decode_valid_access_token() -> None:
    payload = decode_token(create_access_token("user-abc", WALLET))
    assert payload["sub"] == "user-abc"


def test_expired_access_token_raises_credentials_error() -> None:
    with patch("src.mb_gateway.auth.jwt_handler._ACCESS_EXPIRE", timedelta(seconds=-1)):
        token = create_access_token("user-abc", WALLET)
    with pytest.raises(InvalidCredentialsError):
        decode_token(token)


def test_tampered_token_raises_error() -> None:
    token = create_access_token("user-abc", WALLET)
    with pytest.raises(InvalidCredentialsError):
        decode_token(token[:-4] + "xxxx")


def test_non_access_token_is_rejected() -> None:
    token = jwt.encode(
        {"sub": "user-abc", "type": "refresh"},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(InvalidCredentialsError):
        decode_token(token)
