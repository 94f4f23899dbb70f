"""Library circulation for staff: issues, returns and book request decisions."""
import logging
from datetime import datetime, timedelta
from typing import Annotated

from beanie import UpdateResponse
from fastapi import APIRouter, Depends

from schoolerp.api.deps import Tenant, TenantContext, require_roles
from schoolerp.api.responses import ok, serialize, serialize_all
from schoolerp.errors import Conflict, NotFound
from schoolerp.models.library import (
    BookRequest,
    BookRequestDecision,
    IssueRecord,
    IssueRecordCreate,
    IssueStatus,
)
from schoolerp.models.requests import RequestStatus
from schoolerp.models.user import UserRole
from schoolerp.services.scoping import safe_object_id, student_in_tenant, tenant_filter
from schoolerp.services.workflow import transition

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_LOAN_DAYS = 14

LibraryApprover = Annotated[TenantContext, Depends(require_roles(UserRole.SCHOOL_ADMIN, UserRole.LIBRARIAN))]


@router.get("/issues")
async def list_issues(ctx: Tenant, student_id: str | None = None, status: IssueStatus | None = None):
    criteria = {}
    if student_id:
        criteria["student_id"] = student_id
    if status:
        criteria["status"] = status.value
    records = await IssueRecord.find(tenant_filter(ctx, **criteria)).sort("-issue_date").to_list()
    return ok(serialize_all(records))


@router.post("/issues", status_code=201)
async def issue_book(data: IssueRecordCreate, ctx: Tenant):
    student = await student_in_tenant(ctx, data.student_id)
    now = datetime.utcnow()
    record = IssueRecord(
        school_id=ctx.school_id,
        student_id=str(student.id),
        book_title=data.book_title,
        author=data.author,
        issued_by=ctx.user_id,
        issue_date=now,
        due_date=data.due_date or now + timedelta(days=DEFAULT_LOAN_DAYS),
    )
    await record.insert()
    return ok(serialize(record), message="Book issued")


@router.patch("/issues/{issue_id}/return")
async def return_book(issue_id: str, ctx: Tenant):
    oid = safe_object_id(issue_id)
    if not oid:
        raise NotFound("Issue record")
    scope = {"_id": oid, "school_id": ctx.school_id}
    updated = await IssueRecord.find_one({**scope, "status": IssueStatus.ISSUED.value}).update(
        {"$set": {"status": IssueStatus.RETURNED.value, "return_date": datetime.utcnow()}},
        response_type=UpdateResponse.NEW_DOCUMENT,
    )
    if updated is None:
        if await IssueRecord.find_one(scope) is None:
            raise NotFound("Issue record")
        raise Conflict("Book is already returned")
    return ok(serialize(updated), message="Book returned")


@router.get("/book-requests")
async def list_book_requests(ctx: Tenant, status: RequestStatus | None = None):
    criteria = {"status": status.value} if status else {}
    requests = await BookRequest.find(tenant_filter(ctx, **criteria)).sort("-created_at").to_list()
    return ok(serialize_all(requests))


@router.patch("/book-requests/{request_id}/approve")
async def approve_book_request(request_id: str, ctx: LibraryApprover, data: BookRequestDecision | None = None):
    """Approve a pending request and issue the book; a second approval conflicts."""
    data = data or BookRequestDecision()
    now = datetime.utcnow()
    request = await transition(
        BookRequest,
        ctx,
        request_id,
        RequestStatus.APPROVED,
        resource="Book request",
        changes={"processed_by": ctx.user_id, "processed_at": now, "remarks": data.remarks},
    )
    record = IssueRecord(
        school_id=ctx.school_id,
        student_id=request.student_id,
        book_title=request.book_title,
        author=request.author,
        book_request_id=str(request.id),
        issued_by=ctx.user_id,
        issue_date=now,
        due_date=data.due_date or now + timedelta(days=DEFAULT_LOAN_DAYS),
    )
    await record.insert()
    logger.info("Book request %s approved; issue record %s created", request.id, record.id)
    return ok(
        {"request": serialize(request), "issue": serialize(record)},
        message="Book request approved",
    )


@router.patch("/book-requests/{request_id}/reject")
async def reject_book_request(request_id: str, ctx: LibraryApprover, data: BookRequestDecision | None = None):
    data = data or BookRequestDecision()
    request = await transition(
        BookRequest,
        ctx,
        request_id,
        RequestStatus.REJECTED,
        resource="Book request",
        changes={"processed_by": ctx.user_id, "processed_at": datetime.utcnow(), "remarks": data.remarks},
    )
    return ok(serialize(request), message="Book request rejected")
