"""Hostels, rooms, student allocations and outpasses."""
from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field, model_validator
from pymongo import ASCENDING, IndexModel

from schoolerp.models.requests import RequestStatus


class Hostel(Document):
    school_id: Indexed(str)
    name: str
    type: str = "boys"  # boys, girls, mixed
    address: Optional[str] = None
    warden_id: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "hostels"
        use_state_management = True


class HostelCreate(BaseModel):
    name: str
    type: str = "boys"
    address: Optional[str] = None
    warden_id: Optional[str] = None


class HostelRoom(Document):
    school_id: Indexed(str)
    hostel_id: Indexed(str)
    room_number: str
    floor: Optional[str] = None
    capacity: int = 1
    occupied: int = 0

    class Settings:
        name = "hostel_rooms"
        use_state_management = True
        indexes = [
            IndexModel(
                [("school_id", ASCENDING), ("hostel_id", ASCENDING), ("room_number", ASCENDING)],
                unique=True,
                name="hostel_room_unique",
            ),
        ]


class HostelRoomCreate(BaseModel):
    hostel_id: str
    room_number: str
    floor: Optional[str] = None
    capacity: int = Field(default=1, ge=1)


class AllocationStatus(str, Enum):
    ACTIVE = "active"
    VACATED = "vacated"


class HostelAllocation(Document):
    school_id: Indexed(str)
    student_id: Indexed(str)
    hostel_id: str
    room_id: str
    status: AllocationStatus = AllocationStatus.ACTIVE
    allocated_at: datetime = Field(default_factory=datetime.utcnow)
    vacated_at: Optional[datetime] = None
    allocated_by: Optional[str] = None

    class Settings:
        name = "hostel_allocations"
        use_state_management = True
        indexes = [
            IndexModel(
                [("school_id", ASCENDING), ("student_id", ASCENDING)],
                unique=True,
                partialFilterExpression={"status": "active"},
                name="one_active_allocation_per_student",
            ),
        ]


class HostelAllocationCreate(BaseModel):
    student_id: str
    room_id: str


class HostelOutpass(Document):
    school_id: Indexed(str)
    student_id: Indexed(str)
    hostel_id: str
    from_date: datetime
    to_date: datetime
    reason: str
    parent_contact: Optional[str] = None
    requested_by: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    processed_by: Optional[str] = None
    processed_at: Optional[datetime] = None
    remarks: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "hostel_outpasses"
        use_state_management = True


class OutpassCreate(BaseModel):
    from_date: datetime
    to_date: datetime
    reason: str = Field(min_length=1)
    parent_contact: Optional[str] = None

    @model_validator(mode="after")
    def _check_range(self):
        if self.to_date < self.from_date:
            raise ValueError("to_date must not be before from_date")
        return self


class OutpassDecision(BaseModel):
    remarks: Optional[str] = None
