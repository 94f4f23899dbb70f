"""Student leave management for staff."""
from collections import defaultdict
from datetime import date, datetime
from typing import Annotated

from fastapi import APIRouter, Depends

from schoolerp.api.deps import Tenant, TenantContext, require_roles
from schoolerp.api.responses import ok, serialize, serialize_all
from schoolerp.models.leave import LeaveApproval, LeaveRejection, LeaveRequest
from schoolerp.models.requests import RequestStatus
from schoolerp.models.student import Student
from schoolerp.models.user import UserRole
from schoolerp.services.scoping import tenant_filter
from schoolerp.services.workflow import transition

router = APIRouter()

LeaveApprover = Annotated[TenantContext, Depends(require_roles(UserRole.SCHOOL_ADMIN, UserRole.TEACHER))]


@router.get("/")
async def list_leave_requests(
    ctx: Tenant,
    status: RequestStatus | None = None,
    student_id: str | None = None,
):
    criteria = {}
    if status:
        criteria["status"] = status.value
    if student_id:
        criteria["student_id"] = student_id
    requests = await LeaveRequest.find(tenant_filter(ctx, **criteria)).sort("-created_at").to_list()
    return ok(serialize_all(requests))


@router.patch("/{leave_id}/approve")
async def approve_leave(leave_id: str, ctx: LeaveApprover, data: LeaveApproval | None = None):
    leave = await transition(
        LeaveRequest,
        ctx,
        leave_id,
        RequestStatus.APPROVED,
        resource="Leave request",
        changes={
            "approved_by": ctx.user_id,
            "approval_date": datetime.utcnow(),
            "approval_remarks": data.approval_remarks if data else None,
        },
    )
    return ok(serialize(leave), message="Leave request approved")


@router.patch("/{leave_id}/reject")
async def reject_leave(leave_id: str, ctx: LeaveApprover, data: LeaveRejection | None = None):
    leave = await transition(
        LeaveRequest,
        ctx,
        leave_id,
        RequestStatus.REJECTED,
        resource="Leave request",
        changes={
            "approved_by": ctx.user_id,
            "approval_date": datetime.utcnow(),
            "rejection_reason": data.rejection_reason if data else None,
        },
    )
    return ok(serialize(leave), message="Leave request rejected")


@router.get("/summary")
async def leave_summary(ctx: Tenant, from_date: date | None = None, to_date: date | None = None):
    """Approved leave days per student, broken down by leave type."""
    requests = await LeaveRequest.find(tenant_filter(ctx, status=RequestStatus.APPROVED.value)).to_list()
    if from_date:
        requests = [r for r in requests if r.end_date >= from_date]
    if to_date:
        requests = [r for r in requests if r.start_date <= to_date]

    by_student: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
    for r in requests:
        by_student[r.student_id][r.leave_type] += r.total_days

    students = await Student.find(tenant_filter(ctx)).to_list()
    names = {str(s.id): s.full_name for s in students}
    summary = [
        {
            "student_id": student_id,
            "student_name": names.get(student_id),
            "by_type": dict(types),
            "total_days": sum(types.values()),
        }
        for student_id, types in by_student.items()
    ]
    summary.sort(key=lambda row: row["total_days"], reverse=True)
    return ok(summary)
