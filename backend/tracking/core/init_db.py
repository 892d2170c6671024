# backend/tracking/core/init_db.py
import asyncio
import logging
from sqlalchemy import select
from tracking.core.config import settings
from tracking.core.database import async_session, engine, Base
from tracking.core.security import hash_password
# Import all models to register them with Base
from tracking.models import User, PurchaseOrder  # noqa: F401

logger = logging.getLogger(__name__)


async def init_db():
    """Create tables and the default admin account."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        result = await session.execute(
            select(User).where(User.username == settings.DEFAULT_ADMIN_USERNAME)
        )
        if not result.scalar_one_or_none():
            admin = User(
                username=settings.DEFAULT_ADMIN_USERNAME,
                password_hash=hash_password(settings.DEFAULT_ADMIN_PASSWORD),
                email=settings.DEFAULT_ADMIN_EMAIL,
                is_admin=True,
            )
            session.add(admin)
            await session.commit()
            logger.info(f"Created default admin user: {settings.DEFAULT_ADMIN_USERNAME}")
        else:
            logger.info("Default admin user already exists")


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    asyncio.run(init_db())
