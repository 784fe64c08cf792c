# lulemo/app/services/credentials.py
"""
Registration, login, password reset and admin user management.

Register/login/reset deliberately report whether an email is registered
("email already registered", "email not registered"). Changing that is a
product decision, not a bug fix.
"""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lulemo.app.core.clock import utcnow
from lulemo.app.core.config import Settings, settings as default_settings
from lulemo.app.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ExpiredOrConsumedError,
    NotFoundError,
    ValidationError,
)
from lulemo.app.models.email_verification import PURPOSE_REGISTER, PURPOSE_RESET
from lulemo.app.models.user import (
    ADMIN_PRESET_PERMISSIONS,
    DEFAULT_PERMISSIONS,
    ROLE_ADMIN,
    ROLE_USER,
    STATUS_ACTIVE,
    STATUS_DISABLED,
    User,
)
from lulemo.app.services.email_verification import EmailVerificationService
from lulemo.app.services.mailer import Mailer
from lulemo.app.services.sessions import IssuedSession, SessionTokenService
from lulemo.security.hashing import get_password_hash, verify_password

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^\S+@\S+\.\S+$")
REGION_MAX_LENGTH = 64
DEFAULT_REGION = "unknown"


@dataclass(frozen=True)
class CodeDispatch:
    dev_code: Optional[str] = None


def normalize_email(email: Optional[str]) -> str:
    normalized = (email or "").strip().lower()
    if not normalized or not EMAIL_RE.match(normalized):
        raise ValidationError("invalid email address")
    return normalized


class CredentialAuthService:
    def __init__(
        self,
        db: AsyncSession,
        settings: Settings = default_settings,
        mailer: Optional[Mailer] = None,
    ):
        self.db = db
        self.settings = settings
        self.mailer = mailer or Mailer(settings)
        self.codes = EmailVerificationService(db, settings)
        self.sessions = SessionTokenService(db, settings)

    # ─────────────────────────────────────────────────────────────
    # Lookups
    # ─────────────────────────────────────────────────────────────
    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def get_user(self, user_id: str) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("user not found")
        return user

    def _check_password_shape(self, password: Optional[str]) -> str:
        password = password or ""
        if len(password) < self.settings.PASSWORD_MIN_LENGTH:
            raise ValidationError(f"password must be at least {self.settings.PASSWORD_MIN_LENGTH} characters")
        return password

    def _set_password(self, user: User, password: str) -> None:
        iterations = self.settings.PASSWORD_ITERATIONS
        user.password_hash, user.password_salt = get_password_hash(password, iterations)
        user.password_iterations = iterations

    # ─────────────────────────────────────────────────────────────
    # Verification codes
    # ─────────────────────────────────────────────────────────────
    async def send_code(self, email: Optional[str], purpose: str) -> CodeDispatch:
        email = normalize_email(email)
        existing = await self.find_by_email(email)
        if purpose == PURPOSE_REGISTER and existing is not None:
            raise ConflictError("email already registered, please log in")
        if purpose == PURPOSE_RESET and existing is None:
            raise NotFoundError("email not registered")

        code = await self.codes.create_code(email, purpose)
        delivery = await self.mailer.send_code(email, code, purpose)
        return CodeDispatch(dev_code=delivery.code if delivery.bypass else None)

    # ─────────────────────────────────────────────────────────────
    # Register / login / reset
    # ─────────────────────────────────────────────────────────────
    async def register(
        self,
        email: Optional[str],
        password: Optional[str],
        code: Optional[str],
        region: Optional[str] = None,
    ) -> User:
        email = normalize_email(email)
        code = (code or "").strip()
        if not code:
            raise ValidationError("verification code is required")
        password = self._check_password_shape(password)

        if await self.find_by_email(email) is not None:
            raise ConflictError("email already registered")

        if not await self.codes.verify_code(email, code, PURPOSE_REGISTER):
            raise ExpiredOrConsumedError()

        is_admin = email in self.settings.admin_emails
        user = User(
            email=email,
            role=ROLE_ADMIN if is_admin else ROLE_USER,
            region=(region or "").strip()[:REGION_MAX_LENGTH] or DEFAULT_REGION,
            status=STATUS_ACTIVE,
        )
        user.permission_list = list(ADMIN_PRESET_PERMISSIONS if is_admin else DEFAULT_PERMISSIONS)
        self._set_password(user, password)

        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # another registration for this email committed first
            await self.db.rollback()
            raise ConflictError("email already registered")
        logger.info("Registered user %s (role=%s)", user.id, user.role)
        return user

    async def login(self, email: Optional[str], password: Optional[str]) -> Tuple[IssuedSession, User]:
        email = (email or "").strip().lower()
        if not email or not password:
            raise ValidationError("email and password are required")

        user = await self.find_by_email(email)
        if user is None:
            raise AuthenticationError("incorrect email or password")
        # checked before the password so a disabled account never reveals a mismatch
        if user.status != STATUS_ACTIVE:
            raise AuthorizationError("account is disabled, please contact an administrator")
        if not verify_password(password, user.password_salt, user.password_hash, user.password_iterations):
            logger.warning("Failed login for user %s", user.id)
            raise AuthenticationError("incorrect email or password")

        issued = await self.sessions.issue(user)
        logger.info("User %s logged in", user.id)
        return issued, user

    async def reset_password(self, email: Optional[str], code: Optional[str], new_password: Optional[str]) -> None:
        """Set a new password and revoke every session the user holds."""
        email = normalize_email(email)
        code = (code or "").strip()
        if not code:
            raise ValidationError("verification code is required")
        new_password = self._check_password_shape(new_password)

        user = await self.find_by_email(email)
        if user is None:
            raise NotFoundError("email not registered")

        if not await self.codes.verify_code(email, code, PURPOSE_RESET):
            raise ExpiredOrConsumedError()

        self._set_password(user, new_password)
        user.updated_at = utcnow()
        self.db.add(user)
        # new password and revoked sessions land in one commit
        await self.sessions.revoke_all(user.id, commit=False)
        await self.db.commit()
        logger.info("Password reset for user %s", user.id)

    # ─────────────────────────────────────────────────────────────
    # Admin
    # ─────────────────────────────────────────────────────────────
    async def require_admin(self, user_id: str) -> User:
        user = await self.db.get(User, user_id)
        if user is None or user.role != ROLE_ADMIN:
            raise AuthorizationError("admin role required")
        if user.status != STATUS_ACTIVE:
            raise AuthorizationError("account is disabled")
        return user

    async def list_users(self) -> List[User]:
        result = await self.db.execute(select(User).order_by(User.created_at.desc()))
        return list(result.scalars().all())

    async def update_user(
        self,
        user_id: str,
        role: Optional[str],
        status: Optional[str],
        permissions: Optional[List[str]],
    ) -> User:
        """Unknown roles fall back to "user", unknown statuses to "active"."""
        user = await self.get_user(user_id)

        user.role = ROLE_ADMIN if role == ROLE_ADMIN else ROLE_USER
        user.status = STATUS_DISABLED if status == STATUS_DISABLED else STATUS_ACTIVE
        user.permission_list = list(permissions or [])
        user.updated_at = utcnow()
        self.db.add(user)
        if user.status == STATUS_DISABLED:
            await self.sessions.revoke_all(user.id, commit=False)
        await self.db.commit()
        logger.info("Admin updated user %s (role=%s, status=%s)", user.id, user.role, user.status)
        return user
