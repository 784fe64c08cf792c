# lulemo/app/services/email_verification.py
"""
Short-lived, single-use numeric codes scoped to (email, purpose).

- 6 digits, drawn with `secrets`
- stored as SHA-256("purpose:email:code"), never in clear
- honored only while unconsumed and unexpired; the newest matching row wins

Several outstanding codes for the same (email, purpose) may coexist and each
stays valid until its own expiry, unless EMAIL_CODE_SUPERSEDE is enabled.
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lulemo.app.core.clock import utcnow
from lulemo.app.core.config import Settings, settings as default_settings
from lulemo.app.core.exceptions import ValidationError
from lulemo.app.models.email_verification import EmailVerification, PURPOSES
from lulemo.app.security.tokens import sha256_b64

logger = logging.getLogger(__name__)

CODE_MIN = 100_000
CODE_SPAN = 900_000


def generate_code() -> str:
    return str(CODE_MIN + secrets.randbelow(CODE_SPAN))


def code_hash(email: str, code: str, purpose: str) -> str:
    return sha256_b64(f"{purpose}:{email}:{code}")


class EmailVerificationService:
    def __init__(self, db: AsyncSession, settings: Settings = default_settings):
        self.db = db
        self.settings = settings

    async def create_code(self, email: str, purpose: str, now: Optional[datetime] = None) -> str:
        if purpose not in PURPOSES:
            raise ValidationError(f"unknown verification purpose: {purpose}")

        now = now or utcnow()
        code = generate_code()

        if self.settings.EMAIL_CODE_SUPERSEDE:
            await self.db.execute(
                update(EmailVerification)
                .where(
                    EmailVerification.email == email,
                    EmailVerification.purpose == purpose,
                    EmailVerification.consumed_at.is_(None),
                )
                .values(consumed_at=now)
            )

        self.db.add(EmailVerification(
            email=email,
            purpose=purpose,
            code_hash=code_hash(email, code, purpose),
            expires_at=now + timedelta(minutes=self.settings.EMAIL_CODE_EXPIRE_MINUTES),
            created_at=now,
        ))
        await self.db.commit()

        logger.info("Issued %s verification code", purpose)
        return code

    async def verify_code(self, email: str, code: str, purpose: str, now: Optional[datetime] = None) -> bool:
        """
        Consume the newest matching code. Returns False when nothing matches.

        The consuming UPDATE is conditional on consumed_at still being NULL,
        so two concurrent verifications of one code cannot both succeed.
        """
        if not code or purpose not in PURPOSES:
            return False

        now = now or utcnow()
        result = await self.db.execute(
            select(EmailVerification.id)
            .where(
                EmailVerification.email == email,
                EmailVerification.purpose == purpose,
                EmailVerification.code_hash == code_hash(email, code, purpose),
                EmailVerification.consumed_at.is_(None),
                EmailVerification.expires_at > now,
            )
            .order_by(EmailVerification.created_at.desc())
            .limit(1)
        )
        row_id = result.scalars().first()
        if row_id is None:
            logger.warning("Rejected %s verification code", purpose)
            return False

        consumed = await self.db.execute(
            update(EmailVerification)
            .where(EmailVerification.id == row_id, EmailVerification.consumed_at.is_(None))
            .values(consumed_at=now)
        )
        await self.db.commit()
        return consumed.rowcount == 1
