from datetime import datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field
from pymongo import ASCENDING, IndexModel


class SchoolClass(Document):
    """Canonical class/section of a school (e.g. "10" / "A")."""
    school_id: Indexed(str)
    name: str
    section: str
    class_teacher_id: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "classes"
        use_state_management = True
        indexes = [
            IndexModel(
                [("school_id", ASCENDING), ("name", ASCENDING), ("section", ASCENDING)],
                unique=True,
                name="school_class_section_unique",
            ),
        ]


class SchoolClassCreate(BaseModel):
    name: str
    section: str
    class_teacher_id: Optional[str] = None
    description: Optional[str] = None


class SchoolClassUpdate(BaseModel):
    class_teacher_id: Optional[str] = None
    description: Optional[str] = None
