"""
Tests for email verification codes.
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from lulemo.app.core.clock import utcnow
from lulemo.app.core.exceptions import ValidationError
from lulemo.app.models.email_verification import PURPOSE_REGISTER, PURPOSE_RESET, EmailVerification
from lulemo.app.services import email_verification
from lulemo.app.services.email_verification import EmailVerificationService, generate_code

EMAIL = "new@example.com"


@pytest.fixture
def fixed_codes(monkeypatch):
    codes = iter(["111111", "222222", "333333"])
    monkeypatch.setattr(email_verification, "generate_code", lambda: next(codes))


class TestGenerateCode:
    def test_six_digits(self):
        for _ in range(200):
            code = generate_code()
            assert len(code) == 6
            assert code.isdigit()
            assert 100_000 <= int(code) <= 999_999


class TestVerifyCode:
    def test_single_use(self, run_db, settings):
        async def scenario(db):
            service = EmailVerificationService(db, settings)
            code = await service.create_code(EMAIL, PURPOSE_REGISTER)
            first = await service.verify_code(EMAIL, code, PURPOSE_REGISTER)
            second = await service.verify_code(EMAIL, code, PURPOSE_REGISTER)
            return first, second

        assert run_db(scenario) == (True, False)

    def test_scoped_to_email_and_purpose(self, run_db, settings):
        async def scenario(db):
            service = EmailVerificationService(db, settings)
            code = await service.create_code(EMAIL, PURPOSE_REGISTER)
            return (
                await service.verify_code("other@example.com", code, PURPOSE_REGISTER),
                await service.verify_code(EMAIL, code, PURPOSE_RESET),
                await service.verify_code(EMAIL, code, PURPOSE_REGISTER),
            )

        assert run_db(scenario) == (False, False, True)

    def test_expires_after_ten_minutes(self, run_db, settings):
        async def scenario(db):
            service = EmailVerificationService(db, settings)
            issued_at = utcnow()
            code = await service.create_code(EMAIL, PURPOSE_RESET, now=issued_at)
            late = await service.verify_code(EMAIL, code, PURPOSE_RESET, now=issued_at + timedelta(minutes=10))
            in_time = await service.verify_code(EMAIL, code, PURPOSE_RESET, now=issued_at + timedelta(minutes=9))
            return late, in_time

        assert run_db(scenario) == (False, True)

    def test_wrong_or_empty_code(self, run_db, settings):
        async def scenario(db):
            service = EmailVerificationService(db, settings)
            code = await service.create_code(EMAIL, PURPOSE_REGISTER)
            wrong = "000000" if code != "000000" else "999999"
            return (
                await service.verify_code(EMAIL, wrong, PURPOSE_REGISTER),
                await service.verify_code(EMAIL, "", PURPOSE_REGISTER),
                await service.verify_code(EMAIL, code, "login"),
            )

        assert run_db(scenario) == (False, False, False)

    def test_only_hash_is_stored(self, run_db, settings):
        async def scenario(db):
            code = await EmailVerificationService(db, settings).create_code(EMAIL, PURPOSE_REGISTER)
            row = (await db.execute(select(EmailVerification))).scalars().one()
            return code, row

        code, row = run_db(scenario)
        assert row.code_hash != code
        assert code not in row.code_hash
        assert row.consumed_at is None

    def test_unknown_purpose_rejected(self, run_db, settings):
        async def scenario(db):
            await EmailVerificationService(db, settings).create_code(EMAIL, "login")

        with pytest.raises(ValidationError):
            run_db(scenario)


class TestOutstandingCodes:
    def test_older_codes_stay_valid_by_default(self, run_db, settings, fixed_codes):
        async def scenario(db):
            service = EmailVerificationService(db, settings)
            first = await service.create_code(EMAIL, PURPOSE_REGISTER)
            second = await service.create_code(EMAIL, PURPOSE_REGISTER)
            return (
                await service.verify_code(EMAIL, first, PURPOSE_REGISTER),
                await service.verify_code(EMAIL, second, PURPOSE_REGISTER),
            )

        assert run_db(scenario) == (True, True)

    def test_supersede_consumes_older_codes(self, run_db, settings, fixed_codes):
        strict = settings.model_copy(update={"EMAIL_CODE_SUPERSEDE": True})

        async def scenario(db):
            service = EmailVerificationService(db, strict)
            first = await service.create_code(EMAIL, PURPOSE_REGISTER)
            second = await service.create_code(EMAIL, PURPOSE_REGISTER)
            return (
                await service.verify_code(EMAIL, first, PURPOSE_REGISTER),
                await service.verify_code(EMAIL, second, PURPOSE_REGISTER),
            )

        assert run_db(scenario) == (False, True)
