from datetime import datetime, timedelta, timezone

import jwt
import pytest

from my_finances.errors import ConfigurationError
from my_finances.tokens import TokenService, token_from_header

service = TokenService("test-secret")


def test_issue_and_verify_roundtrip() -> None:
    token = service.issue(42)
    assert service.verify(f"Bearer {token}") == 42


def test_token_expires_after_one_day() -> None:
    issued = datetime(2025, 1, 1, tzinfo=timezone.utc)
    token = service.issue(7, now=issued)
    claims = jwt.decode(token, "test-secret", algorithms=["HS256"], options={"verify_exp": False})
    assert claims["exp"] - claims["iat"] == 24 * 60 * 60


def test_expired_token_is_rejected() -> None:
    token = service.issue(7, now=datetime.now(timezone.utc) - timedelta(days=2))
    assert service.verify(f"Bearer {token}") is None


def test_token_signed_with_other_secret_is_rejected() -> None:
    token = TokenService("other-secret").issue(7)
    assert service.verify(f"Bearer {token}") is None


def test_token_without_user_id_is_rejected() -> None:
    exp = datetime.now(timezone.utc) + timedelta(hours=1)
    token = jwt.encode({"exp": exp}, "test-secret", algorithm="HS256")
    assert service.verify(f"Bearer {token}") is None


@pytest.mark.parametrize("header", [None, "", "Bearer ", "Token abc", "bearer abc", "BEARER abc", "Bearer not.a.jwt"])
def test_bad_headers_yield_none(header) -> None:
    assert service.verify(header) is None


def test_scheme_prefix_is_case_sensitive() -> None:
    token = service.issue(1)
    assert token_from_header(f"Bearer {token}") == token
    assert token_from_header(f"bearer {token}") is None


def test_missing_secret_is_fatal() -> None:
    with pytest.raises(ConfigurationError):
        TokenService("")
