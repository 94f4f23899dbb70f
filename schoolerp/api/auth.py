"""JWT-based stateless authentication."""
import logging
from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel, Field

from schoolerp.api.deps import (
    CurrentUser,
    create_access_token,
    create_refresh_token,
    decode_token,
    ensure_school_active,
    get_password_hash,
    load_active_user,
    verify_password,
)
from schoolerp.api.responses import ok
from schoolerp.errors import Unauthorized, ValidationError
from schoolerp.models.user import User, UserOut

logger = logging.getLogger(__name__)

router = APIRouter()


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=8)


def _token_pair(user: User) -> dict:
    return {
        "access_token": create_access_token(str(user.id), user.role.value),
        "refresh_token": create_refresh_token(str(user.id)),
        "token_type": "bearer",
    }


@router.post("/login")
async def login(req: LoginRequest):
    user = await User.find_one(User.email == req.email.strip().lower())
    if not user or not user.is_active or not verify_password(req.password, user.hashed_password):
        logger.info("Failed login for %s", req.email)
        raise Unauthorized("Invalid credentials")
    await ensure_school_active(user)
    return ok(_token_pair(user))


@router.post("/refresh")
async def refresh_token(req: RefreshRequest):
    payload = decode_token(req.refresh_token, "refresh")
    user = await load_active_user(payload)
    return ok(_token_pair(user))


@router.get("/me")
async def me(user: CurrentUser):
    return ok(UserOut.from_document(user).model_dump(mode="json"))


@router.post("/change-password")
async def change_password(req: ChangePasswordRequest, user: CurrentUser):
    if not verify_password(req.current_password, user.hashed_password):
        raise ValidationError("current_password: incorrect password")
    user.hashed_password = get_password_hash(req.new_password)
    user.password_changed_at = datetime.utcnow()
    user.updated_at = user.password_changed_at
    await user.save()
    logger.info("User %s changed password", user.id)
    return ok(_token_pair(user), message="Password updated")
