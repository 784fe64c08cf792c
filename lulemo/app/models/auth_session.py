# lulemo/app/models/auth_session.py
"""
One row per login. Rows are only ever inserted or have revoked_at set,
so concurrent logins and refreshes for the same user never conflict.
"""
from sqlalchemy import Column, String, ForeignKey, DateTime

from lulemo.app.core.clock import utcnow
from lulemo.app.db.base import Base
from lulemo.app.security.tokens import random_id


class AuthSession(Base):
    __tablename__ = "sessions"

    id = Column(String(40), primary_key=True, default=lambda: random_id("ses"))
    user_id = Column(String(40), ForeignKey("users.id"), index=True, nullable=False)

    # SHA-256 of the refresh token, base64. The token itself is never stored.
    refresh_token_hash = Column(String(64), unique=True, index=True, nullable=False)

    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
