from datetime import date, datetime
from typing import Literal, Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field
from pymongo import ASCENDING, IndexModel

StaffAttendanceStatus = Literal["present", "absent", "late", "half_day"]


class StaffAttendance(Document):
    """One row per staff member per day; ``date`` is stored at midnight UTC."""
    school_id: Indexed(str)
    staff_id: str
    date: datetime
    status: StaffAttendanceStatus
    remarks: Optional[str] = None
    marked_by: str  # user_id
    marked_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "staff_attendance"
        use_state_management = True
        indexes = [
            IndexModel(
                [("school_id", ASCENDING), ("staff_id", ASCENDING), ("date", ASCENDING)],
                unique=True,
                name="staff_attendance_per_day_unique",
            ),
        ]


class StaffAttendanceEntry(BaseModel):
    staff_id: str
    status: StaffAttendanceStatus
    remarks: Optional[str] = None


class StaffAttendanceMarkRequest(BaseModel):
    date: date
    records: list[StaffAttendanceEntry] = Field(min_length=1)
