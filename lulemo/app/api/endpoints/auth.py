# lulemo/app/api/endpoints/auth.py
from fastapi import APIRouter, Depends

from lulemo.app.api import deps
from lulemo.app.models.email_verification import PURPOSE_REGISTER, PURPOSE_RESET
from lulemo.app.models.user import User
from lulemo.app.schemas.auth import (
    EmailRequest,
    LoginRequest,
    LoginResponse,
    MeResponse,
    OkResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    ResetPasswordRequest,
    SendCodeResponse,
)
from lulemo.app.schemas.user import UserPublic
from lulemo.app.services.credentials import CredentialAuthService
from lulemo.app.services.sessions import SessionTokenService

router = APIRouter()


@router.post("/send-code", response_model=SendCodeResponse, response_model_exclude_none=True)
async def send_register_code(
    body: EmailRequest,
    credentials: CredentialAuthService = Depends(deps.get_credential_service),
):
    dispatch = await credentials.send_code(body.email, PURPOSE_REGISTER)
    return SendCodeResponse(dev_code=dispatch.dev_code)


@router.post("/register", response_model=OkResponse)
async def register(
    body: RegisterRequest,
    credentials: CredentialAuthService = Depends(deps.get_credential_service),
):
    await credentials.register(body.email, body.password, body.code, body.region)
    return OkResponse()


@router.post("/send-reset-code", response_model=SendCodeResponse, response_model_exclude_none=True)
async def send_reset_code(
    body: EmailRequest,
    credentials: CredentialAuthService = Depends(deps.get_credential_service),
):
    dispatch = await credentials.send_code(body.email, PURPOSE_RESET)
    return SendCodeResponse(dev_code=dispatch.dev_code)


@router.post("/reset-password", response_model=OkResponse)
async def reset_password(
    body: ResetPasswordRequest,
    credentials: CredentialAuthService = Depends(deps.get_credential_service),
):
    await credentials.reset_password(body.email, body.code, body.password)
    return OkResponse()


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    credentials: CredentialAuthService = Depends(deps.get_credential_service),
):
    issued, user = await credentials.login(body.email, body.password)
    return LoginResponse(
        access_token=issued.access_token,
        access_expires_at=issued.access_expires_at,
        refresh_token=issued.refresh_token,
        refresh_expires_at=issued.refresh_expires_at,
        user=UserPublic.from_user(user),
    )


@router.post("/refresh", response_model=RefreshResponse, response_model_exclude_none=True)
async def refresh(
    body: RefreshRequest,
    sessions: SessionTokenService = Depends(deps.get_session_service),
):
    refreshed = await sessions.refresh(body.refresh_token)
    return RefreshResponse(
        access_token=refreshed.access_token,
        access_expires_at=refreshed.access_expires_at,
        user=UserPublic.from_user(refreshed.user),
        refresh_token=refreshed.refresh_token,
        refresh_expires_at=refreshed.refresh_expires_at,
    )


@router.post("/logout", response_model=OkResponse)
async def logout(
    body: RefreshRequest,
    sessions: SessionTokenService = Depends(deps.get_session_service),
):
    # No token means nothing to revoke; the client clears its side anyway.
    await sessions.revoke(body.refresh_token)
    return OkResponse()


@router.get("/me", response_model=MeResponse)
async def me(current_user: User = Depends(deps.get_current_user)):
    return MeResponse(user=UserPublic.from_user(current_user))
