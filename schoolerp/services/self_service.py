"""Reads and requests shared by the student and parent portals.

Every function takes a Student that the caller has already resolved through
an ownership check; nothing here widens the scope beyond that student.
"""
import logging

from schoolerp.errors import ValidationError
from schoolerp.models.academics import Exam, OnlineClass, StudyMaterial, Timetable
from schoolerp.models.hostel import AllocationStatus, Hostel, HostelAllocation, HostelOutpass, HostelRoom, OutpassCreate
from schoolerp.models.leave import LeaveRequest, LeaveRequestCreate
from schoolerp.models.library import BookRequest, IssueRecord
from schoolerp.models.student import Student
from schoolerp.services.class_resolver import resolve_student_class
from schoolerp.services.scoping import safe_object_id

logger = logging.getLogger(__name__)

_DAY_ORDER = {d: i for i, d in enumerate(
    ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
)}


def _owned(student: Student, **criteria) -> dict:
    return {**criteria, "school_id": student.school_id, "student_id": str(student.id)}


# --- Class-bound content ---

async def timetable_for(student: Student) -> list[Timetable]:
    school_class = await resolve_student_class(student)
    if school_class is None:
        return []
    entries = await Timetable.find(
        {"school_id": student.school_id, "class_id": str(school_class.id), "is_active": True}
    ).to_list()
    return sorted(entries, key=lambda t: _DAY_ORDER.get(t.day_of_week.lower(), len(_DAY_ORDER)))


async def exams_for(student: Student) -> list[Exam]:
    school_class = await resolve_student_class(student)
    if school_class is None:
        return []
    return await Exam.find(
        {"school_id": student.school_id, "class_id": str(school_class.id)}
    ).sort("exam_date").to_list()


async def online_classes_for(student: Student) -> list[OnlineClass]:
    school_class = await resolve_student_class(student)
    if school_class is None:
        return []
    return await OnlineClass.find(
        {"school_id": student.school_id, "class_id": str(school_class.id)}
    ).sort("-scheduled_date").to_list()


async def downloads_for(student: Student) -> list[StudyMaterial]:
    """Materials for the student's class plus those published to all classes."""
    school_class = await resolve_student_class(student)
    if school_class is None:
        return []
    return await StudyMaterial.find(
        {
            "school_id": student.school_id,
            "is_active": True,
            "$or": [{"classes": {"$size": 0}}, {"classes": str(school_class.id)}],
        }
    ).sort("-created_at").to_list()


# --- Library ---

async def library_history(student: Student) -> dict:
    issues = await IssueRecord.find(_owned(student)).sort("-issue_date").to_list()
    requests = await BookRequest.find(_owned(student)).sort("-created_at").to_list()
    return {"issues": issues, "requests": requests}


async def request_book(student: Student, title: str, author: str | None) -> BookRequest:
    request = BookRequest(
        school_id=student.school_id,
        student_id=str(student.id),
        book_title=title,
        author=author,
    )
    await request.insert()
    return request


# --- Hostel ---

async def active_allocation(student: Student) -> HostelAllocation | None:
    return await HostelAllocation.find_one(_owned(student, status=AllocationStatus.ACTIVE.value))


async def hostel_details(student: Student) -> dict | None:
    """Active allocation with its hostel and room, or None."""
    allocation = await active_allocation(student)
    if allocation is None:
        return None
    hostel_oid = safe_object_id(allocation.hostel_id)
    room_oid = safe_object_id(allocation.room_id)
    hostel = await Hostel.find_one({"_id": hostel_oid, "school_id": student.school_id}) if hostel_oid else None
    room = await HostelRoom.find_one({"_id": room_oid, "school_id": student.school_id}) if room_oid else None
    return {"allocation": allocation, "hostel": hostel, "room": room}


async def outpasses_for(student: Student) -> list[HostelOutpass]:
    return await HostelOutpass.find(_owned(student)).sort("-created_at").to_list()


async def apply_outpass(student: Student, data: OutpassCreate, requested_by: str) -> HostelOutpass:
    allocation = await active_allocation(student)
    if allocation is None:
        raise ValidationError("No active hostel allocation")
    outpass = HostelOutpass(
        school_id=student.school_id,
        student_id=str(student.id),
        hostel_id=allocation.hostel_id,
        from_date=data.from_date,
        to_date=data.to_date,
        reason=data.reason,
        parent_contact=data.parent_contact,
        requested_by=requested_by,
    )
    await outpass.insert()
    logger.info("Outpass %s requested for student %s", outpass.id, student.id)
    return outpass


# --- Leave ---

async def leave_history(student: Student) -> list[LeaveRequest]:
    return await LeaveRequest.find(_owned(student)).sort("-created_at").to_list()


async def apply_leave(
    student: Student, data: LeaveRequestCreate, requester_id: str, requester_type: str
) -> LeaveRequest:
    leave = LeaveRequest(
        school_id=student.school_id,
        student_id=str(student.id),
        requester_id=requester_id,
        requester_type=requester_type,
        leave_type=data.leave_type,
        start_date=data.start_date,
        end_date=data.end_date,
        total_days=data.total_days,
        reason=data.reason,
    )
    await leave.insert()
    logger.info("Leave request %s raised by %s %s", leave.id, requester_type, requester_id)
    return leave
