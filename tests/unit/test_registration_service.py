"""Tests for RegistrationService."""

from datetime import timedelta
from unittest.mock import patch

import bcrypt
import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import InternalError, ValidationError
from app.repositories.email_verification_repository import (
    EmailVerificationRepository,
)
from app.repositories.user_repository import UserRepository
from app.services.auth_validation import EMAIL_TAKEN_MSG, NAME_FORMAT_MSG
from app.services.registration_service import RegistrationService
from tests.conftest import (
    TEST_BCRYPT_ROUNDS,
    TEST_EMAIL,
    TEST_NAME,
    TEST_PASSWORD,
)


def _payload(**overrides) -> dict:
    payload = {
        "name": TEST_NAME,
        "email": TEST_EMAIL,
        "password": TEST_PASSWORD,
        "password_confirmation": TEST_PASSWORD,
        "role": "applicant",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def service(db_session, mailer, clock) -> RegistrationService:
    return RegistrationService(
        db_session, mailer, clock=clock, bcrypt_rounds=TEST_BCRYPT_ROUNDS
    )


class TestRegister:
    @pytest.mark.asyncio
    async def test_creates_unverified_user(self, service, db_session):
        user = await service.register(**_payload(role="company"))

        assert user.name == TEST_NAME
        assert user.email == TEST_EMAIL
        assert user.role == "company"
        assert user.email_verified_at is None
        stored = await UserRepository.get_by_email(db_session, TEST_EMAIL)
        assert stored is not None

    @pytest.mark.asyncio
    async def test_stores_bcrypt_hash(self, service):
        user = await service.register(**_payload())

        assert user.password_hash != TEST_PASSWORD
        assert bcrypt.checkpw(TEST_PASSWORD.encode(), user.password_hash.encode())

    @pytest.mark.asyncio
    async def test_issues_token_and_sends_link(self, service, db_session, mailer, clock):
        user = await service.register(**_payload())

        records = await EmailVerificationRepository.list_for_user(db_session, user.id)
        assert len(records) == 1
        assert records[0].expires_at == clock() + timedelta(hours=1)
        assert records[0].is_used is False

        assert len(mailer.sent) == 1
        assert mailer.sent[0]["to_email"] == TEST_EMAIL
        assert mailer.sent[0]["name"] == TEST_NAME
        assert mailer.last_token == records[0].token
        assert "/api/v1/auth/verify-email?token=" in mailer.sent[0]["verification_url"]

    @pytest.mark.asyncio
    async def test_lowercases_email(self, service):
        user = await service.register(**_payload(email="Jane@Example.COM"))
        assert user.email == TEST_EMAIL


class TestRegisterValidation:
    @pytest.mark.asyncio
    async def test_invalid_input_writes_nothing(self, service, db_session, mailer):
        with pytest.raises(ValidationError) as exc_info:
            await service.register(**_payload(name="Jane"))

        assert exc_info.value.errors == [NAME_FORMAT_MSG]
        assert await UserRepository.get_by_email(db_session, TEST_EMAIL) is None
        assert mailer.sent == []

    @pytest.mark.asyncio
    async def test_duplicate_email(self, service, make_user, mailer):
        await make_user()

        with pytest.raises(ValidationError) as exc_info:
            await service.register(**_payload(email=TEST_EMAIL.upper()))

        assert exc_info.value.errors == [EMAIL_TAKEN_MSG]
        assert mailer.sent == []

    @pytest.mark.asyncio
    async def test_duplicate_reported_with_other_errors(self, service, make_user):
        await make_user()

        with pytest.raises(ValidationError) as exc_info:
            await service.register(**_payload(name="Jane", role="admin"))

        assert EMAIL_TAKEN_MSG in exc_info.value.errors
        assert NAME_FORMAT_MSG in exc_info.value.errors
        assert len(exc_info.value.errors) == 3


class TestRegisterFailures:
    """Storage or mail failure leaves no user and no token behind."""

    @pytest.mark.asyncio
    async def test_mail_failure_rolls_back(self, db_session, failing_mailer, clock):
        service = RegistrationService(
            db_session, failing_mailer, clock=clock, bcrypt_rounds=TEST_BCRYPT_ROUNDS
        )

        with pytest.raises(InternalError) as exc_info:
            await service.register(**_payload())

        assert exc_info.value.message == "Registration failed. Please try again."
        assert failing_mailer.attempts == 1
        assert await UserRepository.get_by_email(db_session, TEST_EMAIL) is None

    @pytest.mark.asyncio
    async def test_storage_failure_rolls_back(self, service, db_session, mailer):
        with patch.object(
            EmailVerificationRepository,
            "create",
            side_effect=OperationalError("INSERT", {}, Exception("disk full")),
        ):
            with pytest.raises(InternalError):
                await service.register(**_payload())

        assert await UserRepository.get_by_email(db_session, TEST_EMAIL) is None
        assert mailer.sent == []

    @pytest.mark.asyncio
    async def test_retry_after_failure_succeeds(
        self, db_session, failing_mailer, mailer, clock
    ):
        """A rolled-back registration does not block the email."""
        failing = RegistrationService(
            db_session, failing_mailer, clock=clock, bcrypt_rounds=TEST_BCRYPT_ROUNDS
        )
        with pytest.raises(InternalError):
            await failing.register(**_payload())

        working = RegistrationService(
            db_session, mailer, clock=clock, bcrypt_rounds=TEST_BCRYPT_ROUNDS
        )
        user = await working.register(**_payload())

        assert user.email == TEST_EMAIL
