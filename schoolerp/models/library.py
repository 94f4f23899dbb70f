"""Library circulation: issued books and student book requests."""
from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field

from schoolerp.models.requests import RequestStatus


class IssueStatus(str, Enum):
    ISSUED = "issued"
    RETURNED = "returned"


class IssueRecord(Document):
    school_id: Indexed(str)
    student_id: Indexed(str)
    book_title: str
    author: Optional[str] = None
    book_request_id: Optional[str] = None
    issued_by: Optional[str] = None
    issue_date: datetime = Field(default_factory=datetime.utcnow)
    due_date: Optional[datetime] = None
    return_date: Optional[datetime] = None
    status: IssueStatus = IssueStatus.ISSUED

    class Settings:
        name = "library_issue_records"
        use_state_management = True


class IssueRecordCreate(BaseModel):
    student_id: str
    book_title: str
    author: Optional[str] = None
    due_date: Optional[datetime] = None


class BookRequest(Document):
    school_id: Indexed(str)
    student_id: Indexed(str)
    book_title: str
    author: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    processed_by: Optional[str] = None
    processed_at: Optional[datetime] = None
    remarks: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "library_book_requests"
        use_state_management = True


class BookRequestCreate(BaseModel):
    title: str
    author: Optional[str] = None


class BookRequestDecision(BaseModel):
    remarks: Optional[str] = None
    due_date: Optional[datetime] = None
