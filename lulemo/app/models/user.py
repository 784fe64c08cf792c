# lulemo/app/models/user.py
import json
from typing import List

from sqlalchemy import Column, String, Integer, Text, DateTime

from lulemo.app.core.clock import utcnow
from lulemo.app.db.base import Base
from lulemo.app.security.tokens import random_id

ROLE_USER = "user"
ROLE_ADMIN = "admin"

STATUS_ACTIVE = "active"
STATUS_DISABLED = "disabled"

ADMIN_PRESET_PERMISSIONS = ["dashboard:view", "user:view", "user:edit", "leaderboard:view"]
DEFAULT_PERMISSIONS = ["record:self"]


class User(Base):
    __tablename__ = "users"

    id = Column(String(40), primary_key=True, default=lambda: random_id("usr"))
    email = Column(String(255), unique=True, index=True, nullable=False)

    # PBKDF2-SHA256, base64. Iterations kept per row so the default can grow.
    password_hash = Column(String(128), nullable=False)
    password_salt = Column(String(64), nullable=False)
    password_iterations = Column(Integer, nullable=False)

    role = Column(String(16), nullable=False, default=ROLE_USER)
    region = Column(String(64), nullable=False, default="unknown")
    # "disabled" blocks both login and refresh
    status = Column(String(16), nullable=False, default=STATUS_ACTIVE)
    # JSON-encoded list of permission strings
    permissions = Column(Text, nullable=False, default="[]")

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    @property
    def permission_list(self) -> List[str]:
        try:
            parsed = json.loads(self.permissions or "[]")
        except ValueError:
            return []
        if not isinstance(parsed, list):
            return []
        return [p for p in parsed if isinstance(p, str)]

    @permission_list.setter
    def permission_list(self, value: List[str]) -> None:
        self.permissions = json.dumps([p for p in value if isinstance(p, str)])
