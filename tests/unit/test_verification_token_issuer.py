"""Tests for VerificationTokenIssuer."""

import re
from datetime import timedelta

import pytest

from app.repositories.email_verification_repository import (
    EmailVerificationRepository,
)
from app.services.verification_token_issuer import (
    VerificationTokenIssuer,
    generate_verification_token,
)


class TestGenerateVerificationToken:
    def test_is_64_hex_characters(self):
        assert re.fullmatch(r"[0-9a-f]{64}", generate_verification_token())

    def test_tokens_differ(self):
        tokens = {generate_verification_token() for _ in range(100)}
        assert len(tokens) == 100


class TestIssue:
    @pytest.mark.asyncio
    async def test_expires_one_hour_after_issue(self, db_session, make_user, clock):
        user = await make_user()
        issuer = VerificationTokenIssuer(db_session, clock=clock)

        record = await issuer.issue(user)

        assert record.expires_at == clock() + timedelta(hours=1)
        assert record.is_used is False
        assert len(record.token) == 64

    @pytest.mark.asyncio
    async def test_custom_ttl(self, db_session, make_user, clock):
        user = await make_user()
        issuer = VerificationTokenIssuer(
            db_session, clock=clock, ttl=timedelta(minutes=5)
        )

        record = await issuer.issue(user)

        assert record.expires_at == clock() + timedelta(minutes=5)

    @pytest.mark.asyncio
    async def test_replaces_existing_tokens(self, db_session, make_user, make_token, clock):
        """Only the newest token survives a re-issue."""
        user = await make_user()
        old = await make_token(user)
        issuer = VerificationTokenIssuer(db_session, clock=clock)

        new = await issuer.issue(user)
        await db_session.commit()

        records = await EmailVerificationRepository.list_for_user(db_session, user.id)
        assert [r.id for r in records] == [new.id]
        assert await EmailVerificationRepository.get_by_token(db_session, old.token) is None

    @pytest.mark.asyncio
    async def test_does_not_commit(self, db_session, make_user, clock):
        """Rolling back discards the new token and restores the old state."""
        user = await make_user()
        user_id = user.id
        issuer = VerificationTokenIssuer(db_session, clock=clock)

        await issuer.issue(user)
        await db_session.rollback()

        assert await EmailVerificationRepository.count_for_user(db_session, user_id) == 0
