# lulemo/app/models/email_verification.py
"""
Single-use email verification codes.

Rows are never deleted; consumed_at is set once on successful verification.
Only SHA-256(purpose:email:code) is stored.
"""
from sqlalchemy import Column, String, DateTime, Index

from lulemo.app.core.clock import utcnow
from lulemo.app.db.base import Base
from lulemo.app.security.tokens import random_id

PURPOSE_REGISTER = "register"
PURPOSE_RESET = "reset"
PURPOSES = (PURPOSE_REGISTER, PURPOSE_RESET)


class EmailVerification(Base):
    __tablename__ = "email_verifications"
    __table_args__ = (
        Index("ix_email_verifications_lookup", "email", "purpose", "code_hash"),
    )

    id = Column(String(40), primary_key=True, default=lambda: random_id("evc"))
    email = Column(String(255), nullable=False)
    purpose = Column(String(16), nullable=False)
    code_hash = Column(String(64), nullable=False)

    expires_at = Column(DateTime(timezone=True), nullable=False)
    consumed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
