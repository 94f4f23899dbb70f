"""Seed the platform super admin if configured and not present."""
import logging

from schoolerp.api.deps import get_password_hash
from schoolerp.config import settings
from schoolerp.models.user import User, UserRole

logger = logging.getLogger(__name__)

SUPER_ADMIN_FULL_NAME = "Platform Admin"


async def seed_super_admin():
    if not settings.super_admin_email or not settings.super_admin_password:
        logger.info("SUPER_ADMIN_EMAIL/SUPER_ADMIN_PASSWORD not set; skipping super admin seed")
        return
    email = settings.super_admin_email.strip().lower()
    existing = await User.find_one(User.email == email)
    if existing:
        return
    await User(
        email=email,
        hashed_password=get_password_hash(settings.super_admin_password),
        role=UserRole.SUPER_ADMIN,
        full_name=SUPER_ADMIN_FULL_NAME,
    ).insert()
    logger.info("Seeded super admin %s", email)
