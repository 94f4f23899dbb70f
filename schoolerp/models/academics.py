"""Class-bound academic content: timetable, exams, online classes, study materials."""
from datetime import datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field


class Period(BaseModel):
    subject: str
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    teacher_id: Optional[str] = None
    room: Optional[str] = None


class Timetable(Document):
    school_id: Indexed(str)
    class_id: Indexed(str)
    day_of_week: str  # Monday..Sunday
    periods: list[Period] = Field(default_factory=list)
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "timetables"
        use_state_management = True


class TimetableCreate(BaseModel):
    class_id: str
    day_of_week: str
    periods: list[Period] = Field(default_factory=list)


class Exam(Document):
    school_id: Indexed(str)
    class_id: Indexed(str)
    name: str
    subject: Optional[str] = None
    exam_date: datetime
    total_marks: Optional[float] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "exams"
        use_state_management = True


class ExamCreate(BaseModel):
    class_id: str
    name: str
    subject: Optional[str] = None
    exam_date: datetime
    total_marks: Optional[float] = None


class OnlineClass(Document):
    school_id: Indexed(str)
    class_id: Indexed(str)
    title: str
    subject: Optional[str] = None
    teacher_id: Optional[str] = None
    meeting_url: Optional[str] = None
    scheduled_date: datetime
    status: str = "scheduled"  # scheduled, ongoing, completed, cancelled
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "online_classes"
        use_state_management = True


class OnlineClassCreate(BaseModel):
    class_id: str
    title: str
    subject: Optional[str] = None
    meeting_url: Optional[str] = None
    scheduled_date: datetime


class StudyMaterial(Document):
    """Download-center item; an empty ``classes`` list publishes to every class."""
    school_id: Indexed(str)
    title: str
    description: Optional[str] = None
    file_url: str
    classes: list[str] = Field(default_factory=list)
    uploaded_by: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "study_materials"
        use_state_management = True


class StudyMaterialCreate(BaseModel):
    title: str
    description: Optional[str] = None
    file_url: str
    classes: list[str] = Field(default_factory=list)
