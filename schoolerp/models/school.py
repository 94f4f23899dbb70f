"""School tenant: the unit every business document is partitioned by."""
from datetime import datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, EmailStr, Field, field_validator

from schoolerp.models.fields import reject_null


class School(Document):
    name: str
    code: Indexed(str, unique=True)
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "schools"
        use_state_management = True


class SchoolCreate(BaseModel):
    """New tenant plus its first school admin."""
    name: str
    code: str
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    admin_email: EmailStr
    admin_password: str = Field(min_length=8)
    admin_full_name: str


class SchoolUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    is_active: Optional[bool] = None

    required_not_null = field_validator("name", "is_active", mode="before")(reject_null)
