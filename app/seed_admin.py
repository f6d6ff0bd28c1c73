import asyncio
import getpass
import logging

from sqlalchemy.future import select
from app.core.config import settings
from app.core.db import SessionLocal
from app.core.logging_config import setup_logging
from app.core.security import get_password_hash
from app.modules.auth.models import User, UserRole

logger = logging.getLogger("app.seed_admin")

async def seed_admin(email: str, password: str):
    async with SessionLocal() as session:
        result = await session.execute(select(User).where(User.email == email))
        existing_admin = result.scalars().first()

        if existing_admin:
            if existing_admin.role != UserRole.ADMIN:
                existing_admin.role = UserRole.ADMIN
                await session.commit()
                logger.info(f"Promoted {email} to admin.")
            else:
                logger.info("Admin user already exists.")
            return

        logger.info("Creating admin user...")
        admin_user = User(
            email=email,
            hashed_password=get_password_hash(password),
            name="Admin",
            role=UserRole.ADMIN,
            email_verified=True, # Auto verify admin
        )
        session.add(admin_user)
        await session.commit()
        logger.info(f"Admin created successfully: {email}")

if __name__ == "__main__":
    setup_logging()
    admin_password = getpass.getpass(f"Password for {settings.ADMIN_EMAIL}: ")
    asyncio.run(seed_admin(settings.ADMIN_EMAIL.lower(), admin_password))
