"""Student self-service portal. Every read is scoped to the caller's own record."""
import logging
from datetime import datetime

from fastapi import APIRouter, File, Form, UploadFile

from schoolerp.api.deps import StudentOnly
from schoolerp.api.responses import ok, serialize, serialize_all
from schoolerp.api.students import student_out
from schoolerp.errors import ValidationError
from schoolerp.models.document import StudentDocument
from schoolerp.models.hostel import HostelOutpass, OutpassCreate
from schoolerp.models.leave import LeaveRequest, LeaveRequestCreate
from schoolerp.models.library import BookRequest, BookRequestCreate
from schoolerp.models.requests import RequestStatus
from schoolerp.models.student import StudentProfileUpdate
from schoolerp.models.user import User
from schoolerp.services import self_service
from schoolerp.services.class_resolver import resolve_student_class
from schoolerp.services.scoping import safe_object_id, student_for_self, tenant_filter
from schoolerp.services.uploads import store_upload
from schoolerp.services.workflow import transition

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Profile ---

@router.get("/profile")
async def get_profile(ctx: StudentOnly):
    student = await student_for_self(ctx)
    school_class = await resolve_student_class(student)
    data = student_out(student)
    data["class"] = serialize(school_class) if school_class else None
    return ok(data)


@router.patch("/profile")
async def update_profile(data: StudentProfileUpdate, ctx: StudentOnly):
    student = await student_for_self(ctx)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(student, key, value)
    student.updated_at = datetime.utcnow()
    await student.save()
    return ok(student_out(student), message="Profile updated")


@router.post("/profile-picture")
async def upload_profile_picture(ctx: StudentOnly, file: UploadFile = File(...)):
    student = await student_for_self(ctx)
    url = await store_upload(file, category="profiles", school_id=ctx.school_id)
    student.profile_picture = url
    student.updated_at = datetime.utcnow()
    await student.save()
    oid = safe_object_id(ctx.user_id)
    account = await User.find_one({"_id": oid, "school_id": ctx.school_id}) if oid else None
    if account:
        account.profile_picture = url
        await account.save()
    return ok({"profile_picture": url}, message="Profile picture updated")


# --- Class-bound content ---

@router.get("/timetable")
async def my_timetable(ctx: StudentOnly):
    student = await student_for_self(ctx)
    return ok(serialize_all(await self_service.timetable_for(student)))


@router.get("/exams")
async def my_exams(ctx: StudentOnly):
    student = await student_for_self(ctx)
    return ok(serialize_all(await self_service.exams_for(student)))


@router.get("/online-classes")
async def my_online_classes(ctx: StudentOnly):
    student = await student_for_self(ctx)
    return ok(serialize_all(await self_service.online_classes_for(student)))


@router.get("/downloads")
async def my_downloads(ctx: StudentOnly):
    student = await student_for_self(ctx)
    return ok(serialize_all(await self_service.downloads_for(student)))


# --- Library ---

@router.get("/library")
async def my_library(ctx: StudentOnly):
    student = await student_for_self(ctx)
    history = await self_service.library_history(student)
    return ok({key: serialize_all(items) for key, items in history.items()})


@router.get("/book-requests")
async def my_book_requests(ctx: StudentOnly):
    student = await student_for_self(ctx)
    requests = await BookRequest.find(
        tenant_filter(ctx, student_id=str(student.id))
    ).sort("-created_at").to_list()
    return ok(serialize_all(requests))


@router.post("/book-requests", status_code=201)
async def request_book(data: BookRequestCreate, ctx: StudentOnly):
    student = await student_for_self(ctx)
    request = await self_service.request_book(student, data.title, data.author)
    return ok(serialize(request), message="Book request submitted")


@router.patch("/book-requests/{request_id}/cancel")
async def cancel_book_request(request_id: str, ctx: StudentOnly):
    student = await student_for_self(ctx)
    request = await transition(
        BookRequest,
        ctx,
        request_id,
        RequestStatus.CANCELLED,
        resource="Book request",
        owner_filter={"student_id": str(student.id)},
    )
    return ok(serialize(request), message="Book request cancelled")


# --- Hostel ---

@router.get("/hostel")
async def my_hostel(ctx: StudentOnly):
    student = await student_for_self(ctx)
    details = await self_service.hostel_details(student)
    if details is None:
        return ok(None, message="No active hostel allocation")
    return ok({key: serialize(doc) if doc else None for key, doc in details.items()})


@router.get("/outpasses")
async def my_outpasses(ctx: StudentOnly):
    student = await student_for_self(ctx)
    return ok(serialize_all(await self_service.outpasses_for(student)))


@router.post("/outpasses", status_code=201)
async def apply_outpass(data: OutpassCreate, ctx: StudentOnly):
    student = await student_for_self(ctx)
    outpass = await self_service.apply_outpass(student, data, requested_by=ctx.user_id)
    return ok(serialize(outpass), message="Outpass requested")


@router.patch("/outpasses/{outpass_id}/cancel")
async def cancel_outpass(outpass_id: str, ctx: StudentOnly):
    student = await student_for_self(ctx)
    outpass = await transition(
        HostelOutpass,
        ctx,
        outpass_id,
        RequestStatus.CANCELLED,
        resource="Outpass",
        owner_filter={"student_id": str(student.id)},
    )
    return ok(serialize(outpass), message="Outpass cancelled")


# --- Leave ---

@router.get("/leave")
async def my_leave(ctx: StudentOnly):
    student = await student_for_self(ctx)
    return ok(serialize_all(await self_service.leave_history(student)))


@router.post("/leave", status_code=201)
async def apply_leave(data: LeaveRequestCreate, ctx: StudentOnly):
    student = await student_for_self(ctx)
    leave = await self_service.apply_leave(student, data, requester_id=ctx.user_id, requester_type="student")
    return ok(serialize(leave), message="Leave request submitted")


@router.patch("/leave/{leave_id}/cancel")
async def cancel_leave(leave_id: str, ctx: StudentOnly):
    student = await student_for_self(ctx)
    leave = await transition(
        LeaveRequest,
        ctx,
        leave_id,
        RequestStatus.CANCELLED,
        resource="Leave request",
        owner_filter={"student_id": str(student.id)},
    )
    return ok(serialize(leave), message="Leave request cancelled")


# --- Documents ---

@router.get("/documents")
async def my_documents(ctx: StudentOnly):
    student = await student_for_self(ctx)
    docs = await StudentDocument.find(
        tenant_filter(ctx, student_id=str(student.id))
    ).sort("-uploaded_at").to_list()
    return ok(serialize_all(docs))


@router.post("/documents", status_code=201)
async def upload_document(
    ctx: StudentOnly,
    title: str = Form(...),
    doc_type: str | None = Form(None, alias="type"),
    description: str | None = Form(None),
    file_url: str | None = Form(None),
    file: UploadFile | None = File(None),
):
    """Attach a document either as an uploaded file or an already-hosted URL."""
    student = await student_for_self(ctx)
    if file is not None and file.filename:
        file_url = await store_upload(file, category="documents", school_id=ctx.school_id)
    elif not file_url:
        raise ValidationError("file: a file or file_url is required")
    doc = StudentDocument(
        school_id=ctx.school_id,
        student_id=str(student.id),
        title=title,
        type=doc_type,
        description=description,
        file_url=file_url,
        uploaded_by=ctx.user_id,
    )
    await doc.insert()
    logger.info("Document %s uploaded for student %s", doc.id, student.id)
    return ok(serialize(doc), message="Document uploaded")
