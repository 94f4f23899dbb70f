"""Student records: class placement, guardian contact, login links."""
from datetime import date, datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, EmailStr, Field, field_validator

from schoolerp.models.fields import reject_null


def _normalize_email(value):
    if isinstance(value, str):
        value = value.strip().lower()
        return value or None
    return value


class ParentInfo(BaseModel):
    name: Optional[str] = None
    relationship: Optional[str] = None  # Mother, Father, Guardian
    phone: Optional[str] = None
    email: Optional[str] = None

    normalize_email = field_validator("email", mode="before")(_normalize_email)


class Student(Document):
    """Student document.

    ``class_name``/``section`` are the human-readable placement; ``class_id``
    is only set once the placement has been normalized to a SchoolClass.
    Parent linkage lives in both ``parent_email`` and ``parent.email``.
    """

    school_id: Indexed(str)
    admission_number: Optional[str] = None
    first_name: str
    last_name: str = ""
    class_name: str
    section: str
    class_id: Optional[str] = None
    roll_number: Optional[int] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    blood_group: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    transport_route: Optional[str] = None

    user_id: Optional[str] = None  # student's own login
    parent_email: Optional[str] = None
    parent: Optional[ParentInfo] = None

    profile_picture: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    normalize_emails = field_validator("email", "parent_email", mode="before")(_normalize_email)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    class Settings:
        name = "students"
        use_state_management = True
        indexes = ["user_id", "parent_email", "parent.email"]


class StudentCreate(BaseModel):
    first_name: str
    last_name: str = ""
    class_name: str
    section: str
    admission_number: Optional[str] = None
    roll_number: Optional[int] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    blood_group: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    transport_route: Optional[str] = None
    parent_email: Optional[EmailStr] = None
    parent: Optional[ParentInfo] = None


class StudentUpdate(BaseModel):
    """All fields optional for PATCH; admission_number and links are not updatable here."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    class_name: Optional[str] = None
    section: Optional[str] = None
    roll_number: Optional[int] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    blood_group: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    transport_route: Optional[str] = None
    parent_email: Optional[EmailStr] = None
    parent: Optional[ParentInfo] = None

    required_not_null = field_validator("first_name", "last_name", "class_name", "section", mode="before")(reject_null)


class StudentProfileUpdate(BaseModel):
    """Fields a student may change on their own profile."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    blood_group: Optional[str] = None
    gender: Optional[str] = None

    required_not_null = field_validator("first_name", "last_name", mode="before")(reject_null)
