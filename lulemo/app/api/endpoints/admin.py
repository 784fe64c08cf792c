# lulemo/app/api/endpoints/admin.py
from fastapi import APIRouter, Depends

from lulemo.app.api import deps
from lulemo.app.core.clock import to_epoch_ms
from lulemo.app.models.user import ADMIN_PRESET_PERMISSIONS, User
from lulemo.app.schemas.auth import OkResponse
from lulemo.app.schemas.user import AdminUserList, AdminUserRow, AdminUserUpdate, UserPublic
from lulemo.app.services.credentials import CredentialAuthService

router = APIRouter()


@router.get("/users", response_model=AdminUserList)
async def list_users(
    _admin: User = Depends(deps.require_admin),
    credentials: CredentialAuthService = Depends(deps.get_credential_service),
):
    rows = []
    for user in await credentials.list_users():
        last_login = await credentials.sessions.last_login_at(user.id)
        rows.append(AdminUserRow(
            **UserPublic.from_user(user).model_dump(),
            created_at=to_epoch_ms(user.created_at),
            last_login_at=to_epoch_ms(last_login) if last_login else None,
        ))
    return AdminUserList(users=rows, permission_templates=ADMIN_PRESET_PERMISSIONS)


@router.post("/users/{user_id}", response_model=OkResponse)
async def update_user(
    user_id: str,
    body: AdminUserUpdate,
    _admin: User = Depends(deps.require_admin),
    credentials: CredentialAuthService = Depends(deps.get_credential_service),
):
    await credentials.update_user(user_id, body.role, body.status, body.permissions)
    return OkResponse()
