"""Shared dependencies: JWT auth, tenant context, role checks and permissions."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

import bcrypt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict

from schoolerp.config import settings
from schoolerp.errors import AccessDenied, Unauthorized
from schoolerp.models.school import School
from schoolerp.models.user import User, UserRole
from schoolerp.rbac import ACTION_BY_METHOD, has_permission
from schoolerp.services.scoping import safe_object_id

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

# Names under which clients have historically sent a tenant id.
_CLIENT_SCHOOL_ID_KEYS = ("school_id", "schoolId")


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def create_access_token(subject: str, role: str, issued_at: Optional[datetime] = None) -> str:
    now = issued_at or datetime.now(timezone.utc)
    expire = now + timedelta(minutes=settings.jwt_access_token_expire_minutes)
    to_encode = {"sub": subject, "role": role, "iat": now, "exp": expire, "type": "access"}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_refresh_token(subject: str) -> str:
    now = datetime.now(timezone.utc)
    expire = now + timedelta(days=settings.jwt_refresh_token_expire_days)
    to_encode = {"sub": subject, "iat": now, "exp": expire, "type": "refresh"}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, expected_type: str) -> dict:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise Unauthorized("Invalid or expired token")
    if payload.get("type") != expected_type or not payload.get("sub"):
        raise Unauthorized("Invalid or expired token")
    return payload


def _issued_before_password_change(payload: dict, user: User) -> bool:
    if not user.password_changed_at:
        return False
    changed_at = user.password_changed_at.replace(tzinfo=timezone.utc)
    return int(payload.get("iat") or 0) < int(changed_at.timestamp())


async def load_active_user(payload: dict) -> User:
    """Resolve the token subject against stored identity state."""
    oid = safe_object_id(payload.get("sub"))
    user = await User.get(oid) if oid else None
    if not user or not user.is_active:
        raise Unauthorized("User not found or inactive")
    if _issued_before_password_change(payload, user):
        raise Unauthorized("Session expired. Please log in again.")
    await ensure_school_active(user)
    return user


async def ensure_school_active(user: User) -> None:
    if user.role == UserRole.SUPER_ADMIN:
        return
    school_oid = safe_object_id(user.school_id)
    school = await School.get(school_oid) if school_oid else None
    if not school or not school.is_active:
        logger.warning("Rejected login context for user %s: school missing or inactive", user.id)
        raise Unauthorized("School is not active")


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> User:
    if not credentials:
        raise Unauthorized("Not authenticated")
    payload = decode_token(credentials.credentials, "access")
    return await load_active_user(payload)


class TenantContext(BaseModel):
    """Trusted identity of the caller, always rebuilt from the stored User."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    school_id: str
    role: UserRole
    email: str
    full_name: str
    phone: Optional[str] = None


async def _client_claimed_school_ids(request: Request) -> list[str]:
    claimed = [request.query_params[k] for k in _CLIENT_SCHOOL_ID_KEYS if k in request.query_params]
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            claimed.extend(str(body[k]) for k in _CLIENT_SCHOOL_ID_KEYS if body.get(k) is not None)
    return claimed


async def get_tenant_context(
    request: Request,
    user: Annotated[User, Depends(get_current_user)],
) -> TenantContext:
    if not user.school_id:
        # Platform operators have no tenant of their own.
        raise AccessDenied()
    for claimed in await _client_claimed_school_ids(request):
        if claimed != user.school_id:
            logger.warning(
                "User %s sent school_id %s outside own tenant on %s %s",
                user.id, claimed, request.method, request.url.path,
            )
            raise AccessDenied()
    return TenantContext(
        user_id=str(user.id),
        school_id=user.school_id,
        role=user.role,
        email=user.email,
        full_name=user.full_name,
        phone=user.phone,
    )


def require_roles(*allowed: UserRole):
    allowed_values = {role.value for role in allowed}

    async def checker(ctx: Annotated[TenantContext, Depends(get_tenant_context)]) -> TenantContext:
        if ctx.role.value not in allowed_values:
            raise AccessDenied()
        return ctx

    return checker


def require_super_admin(user: Annotated[User, Depends(get_current_user)]) -> User:
    if user.role != UserRole.SUPER_ADMIN:
        raise AccessDenied()
    return user


def require_module_permission(module: str):
    async def checker(
        request: Request,
        ctx: Annotated[TenantContext, Depends(get_tenant_context)],
    ) -> TenantContext:
        action = ACTION_BY_METHOD.get(request.method.upper())
        if not action or not has_permission(ctx.role.value, module, action):
            raise AccessDenied()
        return ctx

    return checker


# Type aliases for route injection
CurrentUser = Annotated[User, Depends(get_current_user)]
Tenant = Annotated[TenantContext, Depends(get_tenant_context)]
SuperAdmin = Annotated[User, Depends(require_super_admin)]
SchoolAdmin = Annotated[TenantContext, Depends(require_roles(UserRole.SCHOOL_ADMIN))]
StudentOnly = Annotated[TenantContext, Depends(require_roles(UserRole.STUDENT))]
ParentOnly = Annotated[TenantContext, Depends(require_roles(UserRole.PARENT))]
