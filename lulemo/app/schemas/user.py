# lulemo/app/schemas/user.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# Returned to clients. Never carries password hash/salt.
class UserPublic(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    email: str
    role: str
    region: str
    status: str
    permissions: List[str] = Field(default_factory=list)

    @classmethod
    def from_user(cls, user) -> "UserPublic":
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            region=user.region,
            status=user.status,
            permissions=user.permission_list,
        )


class AdminUserRow(UserPublic):
    created_at: int
    last_login_at: Optional[int] = None


class AdminUserList(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    users: List[AdminUserRow]
    permission_templates: List[str]


class AdminUserUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    role: Optional[str] = None
    status: Optional[str] = None
    permissions: Optional[List[str]] = None
