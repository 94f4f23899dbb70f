"""User management inside the caller's school."""
import logging
from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel, Field

from schoolerp.api.deps import SchoolAdmin, get_password_hash
from schoolerp.api.responses import ok
from schoolerp.errors import AccessDenied, Conflict
from schoolerp.models.user import User, UserCreate, UserOut, UserRole, UserUpdate
from schoolerp.services.scoping import get_in_tenant, tenant_filter

logger = logging.getLogger(__name__)

router = APIRouter()


class PasswordUpdate(BaseModel):
    password: str = Field(min_length=8)


def _out(user: User) -> dict:
    return UserOut.from_document(user).model_dump(mode="json")


@router.get("/")
async def list_users(ctx: SchoolAdmin, role: UserRole | None = None, include_inactive: bool = False):
    criteria = {}
    if role:
        criteria["role"] = role.value
    if not include_inactive:
        criteria["is_active"] = True
    users = await User.find(tenant_filter(ctx, **criteria)).sort("full_name").to_list()
    return ok([_out(u) for u in users])


@router.post("/", status_code=201)
async def create_user(data: UserCreate, ctx: SchoolAdmin):
    if data.role == UserRole.SUPER_ADMIN:
        raise AccessDenied()
    email = str(data.email).lower()
    if await User.find_one(User.email == email):
        raise Conflict("Email already registered")
    u = User(
        email=email,
        hashed_password=get_password_hash(data.password),
        role=data.role,
        full_name=data.full_name,
        phone=data.phone,
        school_id=ctx.school_id,
    )
    await u.insert()
    logger.info("User %s (%s) created in school %s", u.id, u.role.value, ctx.school_id)
    return ok(_out(u), message="User created")


@router.patch("/{user_id}")
async def update_user(user_id: str, data: UserUpdate, ctx: SchoolAdmin):
    u = await get_in_tenant(User, ctx, user_id, "User")
    if data.role == UserRole.SUPER_ADMIN:
        raise AccessDenied()
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(u, key, value)
    u.updated_at = datetime.utcnow()
    await u.save()
    return ok(_out(u))


@router.delete("/{user_id}")
async def deactivate_user(user_id: str, ctx: SchoolAdmin):
    """Soft-deactivate; users are never hard-deleted."""
    u = await get_in_tenant(User, ctx, user_id, "User")
    if str(u.id) == ctx.user_id:
        raise Conflict("You cannot deactivate your own account")
    u.is_active = False
    u.updated_at = datetime.utcnow()
    await u.save()
    logger.info("User %s deactivated by %s", u.id, ctx.user_id)
    return ok(_out(u), message="User deactivated")


@router.post("/{user_id}/set-password")
async def set_user_password(user_id: str, data: PasswordUpdate, ctx: SchoolAdmin):
    """Reset a user's password; their existing sessions stop working."""
    u = await get_in_tenant(User, ctx, user_id, "User")
    u.hashed_password = get_password_hash(data.password)
    u.password_changed_at = datetime.utcnow()
    u.updated_at = u.password_changed_at
    await u.save()
    return ok({"id": str(u.id)}, message="Password updated")
