# lulemo/app/schemas/auth.py
"""
Request/response bodies for /auth endpoints.

Wire names are camelCase (accessToken, refreshExpiresAt, ...). Request
fields are optional here; shape rules (email format, password length) are
enforced by the services so every failure uses the same {"error"} body.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from lulemo.app.schemas.user import UserPublic


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EmailRequest(CamelModel):
    email: Optional[str] = None


class RegisterRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    code: Optional[str] = None
    region: Optional[str] = None


class ResetPasswordRequest(CamelModel):
    email: Optional[str] = None
    code: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


class OkResponse(CamelModel):
    ok: bool = True


class SendCodeResponse(CamelModel):
    ok: bool = True
    # Only present when DEV_BYPASS_EMAIL is on
    dev_code: Optional[str] = None


class LoginResponse(CamelModel):
    access_token: str
    access_expires_at: int
    refresh_token: str
    refresh_expires_at: int
    user: UserPublic


class RefreshResponse(CamelModel):
    access_token: str
    access_expires_at: int
    user: UserPublic
    # Only present when REFRESH_TOKEN_ROTATION is on
    refresh_token: Optional[str] = None
    refresh_expires_at: Optional[int] = None


class MeResponse(CamelModel):
    user: UserPublic
