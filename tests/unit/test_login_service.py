"""Tests for LoginService.

Security: unknown email and wrong password must be indistinguishable,
and unverified accounts never receive a token.
"""

from unittest.mock import patch

import pytest

from app.core.auth import decode_jwt
from app.core.config import settings
from app.core.errors import EmailNotVerifiedError, InvalidCredentialsError
from app.services.login_service import LoginService
from tests.conftest import TEST_EMAIL, TEST_PASSWORD


class TestLogin:
    @pytest.mark.asyncio
    async def test_verified_user_gets_token(self, db_session, make_user, clock):
        user = await make_user(verified_at=clock())

        result = await LoginService(db_session).login(TEST_EMAIL, TEST_PASSWORD)

        assert result.user.id == user.id
        assert result.token_type == "bearer"
        assert result.expires_in == settings.jwt_ttl_minutes * 60
        assert decode_jwt(result.token)["sub"] == str(user.id)

    @pytest.mark.asyncio
    async def test_email_is_case_insensitive(self, db_session, make_user, clock):
        await make_user(verified_at=clock())

        result = await LoginService(db_session).login("JANE@EXAMPLE.COM", TEST_PASSWORD)

        assert result.user.email == TEST_EMAIL

    @pytest.mark.asyncio
    async def test_uses_injected_signer(self, db_session, make_user, clock):
        user = await make_user(verified_at=clock())
        calls = []

        def signer(subject: str) -> tuple[str, int]:
            calls.append(subject)
            return "signed-token", 900

        result = await LoginService(db_session, signer=signer).login(
            TEST_EMAIL, TEST_PASSWORD
        )

        assert calls == [str(user.id)]
        assert result.token == "signed-token"
        assert result.expires_in == 900


class TestLoginFailures:
    @pytest.mark.asyncio
    async def test_wrong_password(self, db_session, make_user, clock):
        await make_user(verified_at=clock())

        with pytest.raises(InvalidCredentialsError):
            await LoginService(db_session).login(TEST_EMAIL, "Wrong1!pass")

    @pytest.mark.asyncio
    async def test_unknown_email_matches_wrong_password(self, db_session, make_user, clock):
        """Both failures carry the same code, message and errors."""
        await make_user(verified_at=clock())
        service = LoginService(db_session)

        with pytest.raises(InvalidCredentialsError) as unknown:
            await service.login("nobody@example.com", TEST_PASSWORD)
        with pytest.raises(InvalidCredentialsError) as wrong:
            await service.login(TEST_EMAIL, "Wrong1!pass")

        assert unknown.value.code == wrong.value.code
        assert unknown.value.message == wrong.value.message
        assert unknown.value.errors == wrong.value.errors
        assert unknown.value.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_email_still_runs_bcrypt(self, db_session):
        with patch("app.core.auth.bcrypt.checkpw", return_value=False) as checkpw:
            with pytest.raises(InvalidCredentialsError):
                await LoginService(db_session).login("nobody@example.com", "x")
        checkpw.assert_called_once()

    @pytest.mark.asyncio
    async def test_unverified_user(self, db_session, make_user):
        await make_user()

        with pytest.raises(EmailNotVerifiedError) as exc_info:
            await LoginService(db_session).login(TEST_EMAIL, TEST_PASSWORD)

        assert exc_info.value.status_code == 401
        assert exc_info.value.errors == [
            "Please verify your email address before logging in."
        ]

    @pytest.mark.asyncio
    async def test_unverified_user_with_wrong_password(self, db_session, make_user):
        """Password is checked before verification state."""
        await make_user()

        with pytest.raises(InvalidCredentialsError):
            await LoginService(db_session).login(TEST_EMAIL, "Wrong1!pass")
