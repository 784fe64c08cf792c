# lulemo/app/services/sessions.py
"""
Access/refresh token lifecycle.

- issue():          signed access token + opaque refresh token, one session row
- validate_access(): stateless signature + expiry check
- refresh():        new access token for a live session of an active user
- revoke*():        set revoked_at on one or all of a user's sessions

Refresh tokens are multi-use by default: two concurrent refreshes with the
same token both succeed and each returns a different valid access token.
Set REFRESH_TOKEN_ROTATION to make each refresh token single-use instead.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lulemo.app.core.clock import as_utc, to_epoch_ms, utcnow
from lulemo.app.core.config import Settings, settings as default_settings
from lulemo.app.core.exceptions import AuthenticationError, AuthorizationError, ValidationError
from lulemo.app.models.auth_session import AuthSession
from lulemo.app.models.user import User
from lulemo.app.security.tokens import (
    SessionUser,
    create_access_token,
    decode_access_token,
    hash_refresh_token,
    new_refresh_token,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedSession:
    access_token: str
    access_expires_at: int
    refresh_token: str
    refresh_expires_at: int


@dataclass(frozen=True)
class RefreshedAccess:
    access_token: str
    access_expires_at: int
    user: User
    refresh_token: Optional[str] = None
    refresh_expires_at: Optional[int] = None


class SessionTokenService:
    def __init__(self, db: AsyncSession, settings: Settings = default_settings):
        self.db = db
        self.settings = settings

    def mint_access_token(self, user_id: str, email: str, now: Optional[datetime] = None):
        now = now or utcnow()
        expires_at = to_epoch_ms(now + timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES))
        token = create_access_token(
            self.settings.ACCESS_TOKEN_SECRET, user_id, email, expires_at, self.settings.ALGORITHM
        )
        return token, expires_at

    def validate_access(self, token: str, now: Optional[datetime] = None) -> SessionUser:
        """Raises IntegrityError when the signature or expiry check fails."""
        now = now or utcnow()
        return decode_access_token(
            self.settings.ACCESS_TOKEN_SECRET, token, to_epoch_ms(now), self.settings.ALGORITHM
        )

    async def issue(self, user: User, now: Optional[datetime] = None) -> IssuedSession:
        """Add a session row and commit it together with anything already pending."""
        now = now or utcnow()
        refresh_token = new_refresh_token()
        refresh_expires = now + timedelta(days=self.settings.REFRESH_TOKEN_EXPIRE_DAYS)

        self.db.add(AuthSession(
            user_id=user.id,
            refresh_token_hash=hash_refresh_token(refresh_token),
            expires_at=refresh_expires,
            created_at=now,
        ))
        await self.db.commit()

        access_token, access_expires_at = self.mint_access_token(user.id, user.email, now)
        logger.info("Session issued for user %s", user.id)
        return IssuedSession(
            access_token=access_token,
            access_expires_at=access_expires_at,
            refresh_token=refresh_token,
            refresh_expires_at=to_epoch_ms(refresh_expires),
        )

    async def _live_session(self, refresh_token: str, now: datetime):
        if not refresh_token:
            raise ValidationError("missing refresh token")

        result = await self.db.execute(
            select(AuthSession, User)
            .join(User, User.id == AuthSession.user_id)
            .where(AuthSession.refresh_token_hash == hash_refresh_token(refresh_token))
        )
        row = result.first()
        if row is None:
            raise AuthenticationError("invalid refresh token")

        session, user = row
        if session.revoked_at is not None or as_utc(session.expires_at) <= now:
            raise AuthenticationError("invalid refresh token")
        if not user.is_active:
            raise AuthorizationError("account is disabled")
        return session, user

    async def refresh(self, refresh_token: str, now: Optional[datetime] = None) -> RefreshedAccess:
        now = now or utcnow()
        session, user = await self._live_session(refresh_token, now)

        if self.settings.REFRESH_TOKEN_ROTATION:
            # the revocation commits together with the replacement session in issue()
            revoked = await self._revoke_where(AuthSession.id == session.id, now, commit=False)
            if revoked == 0:
                # lost a race against another refresh of the same token
                raise AuthenticationError("invalid refresh token")
            issued = await self.issue(user, now)
            return RefreshedAccess(
                access_token=issued.access_token,
                access_expires_at=issued.access_expires_at,
                user=user,
                refresh_token=issued.refresh_token,
                refresh_expires_at=issued.refresh_expires_at,
            )

        access_token, access_expires_at = self.mint_access_token(user.id, user.email, now)
        return RefreshedAccess(access_token=access_token, access_expires_at=access_expires_at, user=user)

    async def _revoke_where(self, condition, now: datetime, commit: bool = True) -> int:
        result = await self.db.execute(
            update(AuthSession)
            .where(condition, AuthSession.revoked_at.is_(None))
            .values(revoked_at=now)
        )
        if commit:
            await self.db.commit()
        return result.rowcount

    async def revoke(self, refresh_token: str, now: Optional[datetime] = None) -> int:
        if not refresh_token:
            return 0
        count = await self._revoke_where(
            AuthSession.refresh_token_hash == hash_refresh_token(refresh_token), now or utcnow()
        )
        if count:
            logger.info("Session revoked")
        return count

    async def revoke_all(self, user_id: str, now: Optional[datetime] = None, commit: bool = True) -> int:
        """
        Revoke every live session of `user_id`. With commit=False the update
        joins the caller's transaction and the caller commits.
        """
        count = await self._revoke_where(AuthSession.user_id == user_id, now or utcnow(), commit=commit)
        logger.info("Revoked %d session(s) for user %s", count, user_id)
        return count

    async def last_login_at(self, user_id: str) -> Optional[datetime]:
        result = await self.db.execute(
            select(AuthSession.created_at)
            .where(AuthSession.user_id == user_id)
            .order_by(AuthSession.created_at.desc())
            .limit(1)
        )
        return as_utc(result.scalars().first())
