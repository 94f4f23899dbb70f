"""RBAC identities: platform operators, school staff, students and parents."""
from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, EmailStr, Field, field_validator

from schoolerp.models.fields import reject_null


class UserRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    SCHOOL_ADMIN = "school_admin"
    TEACHER = "teacher"
    ACCOUNTANT = "accountant"
    LIBRARIAN = "librarian"
    HOSTEL_WARDEN = "hostel_warden"
    RECEPTIONIST = "receptionist"
    STUDENT = "student"
    PARENT = "parent"


STAFF_ROLES = {
    UserRole.SCHOOL_ADMIN,
    UserRole.TEACHER,
    UserRole.ACCOUNTANT,
    UserRole.LIBRARIAN,
    UserRole.HOSTEL_WARDEN,
    UserRole.RECEPTIONIST,
}


class User(Document):
    """User document; ``school_id`` is empty only for super admins."""

    email: Indexed(EmailStr, unique=True)
    hashed_password: str
    role: UserRole
    full_name: str
    phone: Optional[str] = None
    school_id: Optional[str] = None
    profile_picture: Optional[str] = None
    is_active: bool = True
    # Tokens issued before this instant are rejected
    password_changed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("email", mode="before")
    @classmethod
    def _lower_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    class Settings:
        name = "users"
        use_state_management = True
        indexes = ["school_id"]


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    role: UserRole
    full_name: str
    phone: Optional[str] = None


class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None

    required_not_null = field_validator("full_name", "role", "is_active", mode="before")(reject_null)


class UserOut(BaseModel):
    id: str
    email: str
    role: UserRole
    full_name: str
    phone: Optional[str] = None
    school_id: Optional[str] = None
    profile_picture: Optional[str] = None
    is_active: bool

    @classmethod
    def from_document(cls, user: User) -> "UserOut":
        return cls(
            id=str(user.id),
            email=user.email,
            role=user.role,
            full_name=user.full_name,
            phone=user.phone,
            school_id=user.school_id,
            profile_picture=user.profile_picture,
            is_active=user.is_active,
        )
