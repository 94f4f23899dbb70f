"""Parent portal. A parent reaches a child only through the parent-email link.

Every ``/child/{student_id}`` route resolves the child with
:func:`child_of_parent`, so an unknown id, a student of another school and
another family's child all answer 403 the same way.
"""
import logging
from datetime import datetime

from fastapi import APIRouter, File, UploadFile

from schoolerp.api.deps import ParentOnly
from schoolerp.api.responses import ok, serialize, serialize_all
from schoolerp.api.students import student_out
from schoolerp.models.hostel import OutpassCreate
from schoolerp.models.leave import LeaveRequest, LeaveRequestCreate
from schoolerp.models.requests import RequestStatus
from schoolerp.services import self_service
from schoolerp.services.class_resolver import resolve_student_class
from schoolerp.services.scoping import child_of_parent, children_of_parent
from schoolerp.services.uploads import store_upload
from schoolerp.services.workflow import transition

logger = logging.getLogger(__name__)

router = APIRouter()


def _child_summary(student) -> dict:
    return {
        "id": str(student.id),
        "full_name": student.full_name,
        "admission_number": student.admission_number,
        "class_name": student.class_name,
        "section": student.section,
        "roll_number": student.roll_number,
        "profile_picture": student.profile_picture,
    }


@router.get("/dashboard")
async def dashboard(ctx: ParentOnly):
    children = await children_of_parent(ctx)
    pending_leave = await LeaveRequest.find(
        {
            "school_id": ctx.school_id,
            "student_id": {"$in": [str(c.id) for c in children]},
            "status": RequestStatus.PENDING.value,
        }
    ).count()
    return ok(
        {
            "parent": {"full_name": ctx.full_name, "email": ctx.email, "phone": ctx.phone},
            "children": [_child_summary(c) for c in children],
            "pending_leave_requests": pending_leave,
        }
    )


@router.get("/children")
async def list_children(ctx: ParentOnly):
    children = await children_of_parent(ctx)
    return ok([_child_summary(c) for c in children])


@router.get("/child/{student_id}")
async def get_child(student_id: str, ctx: ParentOnly):
    child = await child_of_parent(ctx, student_id)
    school_class = await resolve_student_class(child)
    data = student_out(child)
    data["class"] = serialize(school_class) if school_class else None
    return ok(data)


@router.get("/child/{student_id}/timetable")
async def child_timetable(student_id: str, ctx: ParentOnly):
    child = await child_of_parent(ctx, student_id)
    return ok(serialize_all(await self_service.timetable_for(child)))


@router.get("/child/{student_id}/exams")
async def child_exams(student_id: str, ctx: ParentOnly):
    child = await child_of_parent(ctx, student_id)
    return ok(serialize_all(await self_service.exams_for(child)))


@router.get("/child/{student_id}/online-classes")
async def child_online_classes(student_id: str, ctx: ParentOnly):
    child = await child_of_parent(ctx, student_id)
    return ok(serialize_all(await self_service.online_classes_for(child)))


@router.get("/child/{student_id}/downloads")
async def child_downloads(student_id: str, ctx: ParentOnly):
    child = await child_of_parent(ctx, student_id)
    return ok(serialize_all(await self_service.downloads_for(child)))


@router.get("/child/{student_id}/library")
async def child_library(student_id: str, ctx: ParentOnly):
    child = await child_of_parent(ctx, student_id)
    history = await self_service.library_history(child)
    return ok({key: serialize_all(items) for key, items in history.items()})


@router.get("/child/{student_id}/hostel")
async def child_hostel(student_id: str, ctx: ParentOnly):
    child = await child_of_parent(ctx, student_id)
    details = await self_service.hostel_details(child)
    if details is None:
        return ok(None, message="No active hostel allocation")
    return ok({key: serialize(doc) if doc else None for key, doc in details.items()})


@router.get("/child/{student_id}/outpasses")
async def child_outpasses(student_id: str, ctx: ParentOnly):
    child = await child_of_parent(ctx, student_id)
    return ok(serialize_all(await self_service.outpasses_for(child)))


@router.post("/child/{student_id}/outpasses", status_code=201)
async def apply_child_outpass(student_id: str, data: OutpassCreate, ctx: ParentOnly):
    child = await child_of_parent(ctx, student_id)
    if not data.parent_contact and ctx.phone:
        data = data.model_copy(update={"parent_contact": ctx.phone})
    outpass = await self_service.apply_outpass(child, data, requested_by=ctx.user_id)
    return ok(serialize(outpass), message="Outpass requested")


@router.get("/child/{student_id}/leave-history")
async def child_leave_history(student_id: str, ctx: ParentOnly):
    child = await child_of_parent(ctx, student_id)
    return ok(serialize_all(await self_service.leave_history(child)))


@router.post("/child/{student_id}/leave", status_code=201)
async def apply_child_leave(student_id: str, data: LeaveRequestCreate, ctx: ParentOnly):
    child = await child_of_parent(ctx, student_id)
    leave = await self_service.apply_leave(child, data, requester_id=ctx.user_id, requester_type="parent")
    return ok(serialize(leave), message="Leave request submitted")


@router.patch("/leave/{leave_id}/cancel")
async def cancel_leave(leave_id: str, ctx: ParentOnly):
    """Cancel a pending request this parent raised for one of their children."""
    children = await children_of_parent(ctx)
    leave = await transition(
        LeaveRequest,
        ctx,
        leave_id,
        RequestStatus.CANCELLED,
        resource="Leave request",
        owner_filter={
            "requester_id": ctx.user_id,
            "student_id": {"$in": [str(c.id) for c in children]},
        },
    )
    return ok(serialize(leave), message="Leave request cancelled")


@router.post("/child/{student_id}/profile-picture")
async def upload_child_profile_picture(student_id: str, ctx: ParentOnly, file: UploadFile = File(...)):
    child = await child_of_parent(ctx, student_id)
    url = await store_upload(file, category="profiles", school_id=ctx.school_id)
    child.profile_picture = url
    child.updated_at = datetime.utcnow()
    await child.save()
    logger.info("Parent %s updated profile picture of student %s", ctx.user_id, child.id)
    return ok({"profile_picture": url}, message="Profile picture updated")
