# lulemo/app/db/base.py
"""
SQLAlchemy declarative base and re-exports of the session components.

Models inherit from Base; endpoints import get_db from here.
"""
from sqlalchemy.orm import DeclarativeBase


# ─────────────────────────────────────────────────────────────────────────────
# Declarative base
# ─────────────────────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """Shared metadata for the users, sessions and verification-code tables."""


from lulemo.app.db.session import (  # noqa: E402
    engine,
    AsyncSessionLocal,
    get_db,
)

__all__ = [
    "Base",
    "engine",
    "AsyncSessionLocal",
    "get_db",
]
