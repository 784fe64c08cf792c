# lulemo/app/api/deps.py
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from lulemo.app.core.config import Settings, settings
from lulemo.app.core.exceptions import AuthenticationError
from lulemo.app.db.base import get_db
from lulemo.app.models.user import User
from lulemo.app.security.tokens import SessionUser
from lulemo.app.services.credentials import CredentialAuthService
from lulemo.app.services.mailer import Mailer
from lulemo.app.services.sessions import SessionTokenService

bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings() -> Settings:
    return settings


def get_mailer(app_settings: Settings = Depends(get_app_settings)) -> Mailer:
    return Mailer(app_settings)


def get_session_service(
    db: AsyncSession = Depends(get_db),
    app_settings: Settings = Depends(get_app_settings),
) -> SessionTokenService:
    return SessionTokenService(db, app_settings)


def get_credential_service(
    db: AsyncSession = Depends(get_db),
    app_settings: Settings = Depends(get_app_settings),
    mailer: Mailer = Depends(get_mailer),
) -> CredentialAuthService:
    return CredentialAuthService(db, app_settings, mailer)


def get_session_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    sessions: SessionTokenService = Depends(get_session_service),
) -> SessionUser:
    """`authorization: Bearer <accessToken>`; signature and expiry only."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("not logged in")
    return sessions.validate_access(credentials.credentials)


async def get_current_user(
    session_user: SessionUser = Depends(get_session_user),
    credentials: CredentialAuthService = Depends(get_credential_service),
) -> User:
    return await credentials.get_user(session_user.user_id)


async def require_admin(
    session_user: SessionUser = Depends(get_session_user),
    credentials: CredentialAuthService = Depends(get_credential_service),
) -> User:
    return await credentials.require_admin(session_user.user_id)
