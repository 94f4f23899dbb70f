"""Beanie document models and Pydantic schemas."""
from schoolerp.models.school import School, SchoolCreate, SchoolUpdate
from schoolerp.models.user import User, UserRole, UserCreate, UserUpdate, UserOut, STAFF_ROLES
from schoolerp.models.student import Student, StudentCreate, StudentUpdate, StudentProfileUpdate, ParentInfo
from schoolerp.models.school_class import SchoolClass, SchoolClassCreate, SchoolClassUpdate
from schoolerp.models.academics import (
    Timetable,
    TimetableCreate,
    Period,
    Exam,
    ExamCreate,
    OnlineClass,
    OnlineClassCreate,
    StudyMaterial,
    StudyMaterialCreate,
)
from schoolerp.models.requests import RequestStatus
from schoolerp.models.library import IssueRecord, IssueRecordCreate, IssueStatus, BookRequest, BookRequestCreate, BookRequestDecision
from schoolerp.models.hostel import (
    Hostel,
    HostelCreate,
    HostelRoom,
    HostelRoomCreate,
    HostelAllocation,
    HostelAllocationCreate,
    AllocationStatus,
    HostelOutpass,
    OutpassCreate,
    OutpassDecision,
)
from schoolerp.models.leave import LeaveRequest, LeaveRequestCreate, LeaveApproval, LeaveRejection
from schoolerp.models.document import StudentDocument
from schoolerp.models.attendance import StaffAttendance, StaffAttendanceEntry, StaffAttendanceMarkRequest

DOCUMENT_MODELS = [
    School,
    User,
    Student,
    SchoolClass,
    Timetable,
    Exam,
    OnlineClass,
    StudyMaterial,
    IssueRecord,
    BookRequest,
    Hostel,
    HostelRoom,
    HostelAllocation,
    HostelOutpass,
    LeaveRequest,
    StudentDocument,
    StaffAttendance,
]

__all__ = [
    "School",
    "SchoolCreate",
    "SchoolUpdate",
    "User",
    "UserRole",
    "UserCreate",
    "UserUpdate",
    "UserOut",
    "STAFF_ROLES",
    "Student",
    "StudentCreate",
    "StudentUpdate",
    "StudentProfileUpdate",
    "ParentInfo",
    "SchoolClass",
    "SchoolClassCreate",
    "SchoolClassUpdate",
    "Timetable",
    "TimetableCreate",
    "Period",
    "Exam",
    "ExamCreate",
    "OnlineClass",
    "OnlineClassCreate",
    "StudyMaterial",
    "StudyMaterialCreate",
    "RequestStatus",
    "IssueRecord",
    "IssueRecordCreate",
    "IssueStatus",
    "BookRequest",
    "BookRequestCreate",
    "BookRequestDecision",
    "Hostel",
    "HostelCreate",
    "HostelRoom",
    "HostelRoomCreate",
    "HostelAllocation",
    "HostelAllocationCreate",
    "AllocationStatus",
    "HostelOutpass",
    "OutpassCreate",
    "OutpassDecision",
    "LeaveRequest",
    "LeaveRequestCreate",
    "LeaveApproval",
    "LeaveRejection",
    "StudentDocument",
    "StaffAttendance",
    "StaffAttendanceEntry",
    "StaffAttendanceMarkRequest",
    "DOCUMENT_MODELS",
]
