# lulemo/app/db/init_db.py
"""Create all tables: python -m lulemo.app.db.init_db"""
import asyncio
import logging

from lulemo.app.db.base import Base, engine
from lulemo.app.models import auth_session, email_verification, user  # noqa: F401

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def init_models():
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Tables created")
    except Exception:
        logger.exception("Table creation failed")
        raise


if __name__ == "__main__":
    asyncio.run(init_models())
