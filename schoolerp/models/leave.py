"""Student leave requests raised by the student or a parent."""
from datetime import date, datetime
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field, field_validator, model_validator

from schoolerp.models.requests import RequestStatus

LEAVE_TYPES = ("sick", "casual", "emergency", "vacation", "medical", "other")


def normalize_leave_type(value: str | None) -> str | None:
    """Map free-text leave types ("Sick leave", "MEDICAL") onto LEAVE_TYPES."""
    if not value:
        return None
    v = str(value).strip().lower()
    if v in LEAVE_TYPES:
        return v
    for known in LEAVE_TYPES[:-1]:
        if known in v:
            return known
    return "other"


class LeaveRequest(Document):
    school_id: Indexed(str)
    student_id: Indexed(str)
    requester_id: str  # user id of the student or parent who applied
    requester_type: str  # student, parent
    leave_type: str
    start_date: date
    end_date: date
    total_days: int
    reason: str
    status: RequestStatus = RequestStatus.PENDING
    approved_by: Optional[str] = None
    approval_date: Optional[datetime] = None
    approval_remarks: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "leave_requests"
        use_state_management = True


class LeaveRequestCreate(BaseModel):
    leave_type: str
    start_date: date
    end_date: date
    reason: str = Field(min_length=1)
    total_days: Optional[int] = Field(default=None, ge=1)

    @field_validator("leave_type")
    @classmethod
    def _normalize_type(cls, value: str) -> str:
        return normalize_leave_type(value) or "other"

    @model_validator(mode="after")
    def _fill_total_days(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        if self.total_days is None:
            self.total_days = (self.end_date - self.start_date).days + 1
        return self


class LeaveApproval(BaseModel):
    approval_remarks: Optional[str] = None


class LeaveRejection(BaseModel):
    rejection_reason: Optional[str] = None
