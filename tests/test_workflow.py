from datetime import date, datetime

import pytest
from conftest import auth

from schoolerp.api.deps import TenantContext
from schoolerp.errors import Conflict, NotFound
from schoolerp.models import (
    BookRequest,
    HostelOutpass,
    IssueRecord,
    LeaveRequest,
    RequestStatus,
)
from schoolerp.services.workflow import transition


async def _outpass(world) -> HostelOutpass:
    outpass = HostelOutpass(
        school_id=str(world.school_a.id),
        student_id=str(world.child.id),
        hostel_id="64b7f0c2a1b2c3d4e5f60700",
        from_date=datetime(2026, 3, 6, 16),
        to_date=datetime(2026, 3, 8, 18),
        reason="Family function",
    )
    await outpass.insert()
    return outpass


async def _leave(world) -> LeaveRequest:
    leave = LeaveRequest(
        school_id=str(world.school_a.id),
        student_id=str(world.child.id),
        requester_id=str(world.parent_a.id),
        requester_type="parent",
        leave_type="sick",
        start_date=date(2026, 3, 2),
        end_date=date(2026, 3, 2),
        total_days=1,
        reason="Fever",
    )
    await leave.insert()
    return leave


async def _book_request(world) -> BookRequest:
    request = BookRequest(
        school_id=str(world.school_a.id),
        student_id=str(world.child.id),
        book_title="Wings of Fire",
        author="A. P. J. Abdul Kalam",
    )
    await request.insert()
    return request


async def test_outpass_approved_once_then_conflicts(client, world):
    outpass = await _outpass(world)
    headers = auth(world.warden_a)

    first = await client.patch(f"/api/hostel/outpasses/{outpass.id}/approve", json={"remarks": "ok"}, headers=headers)
    assert first.status_code == 200
    assert first.json()["success"] is True
    assert first.json()["data"]["status"] == "approved"
    assert first.json()["data"]["processed_by"] == str(world.warden_a.id)

    second = await client.patch(f"/api/hostel/outpasses/{outpass.id}/approve", headers=headers)
    assert second.status_code == 409
    assert second.json() == {"success": False, "error": "Outpass is already approved"}


async def test_reject_after_approve_leaves_state_unchanged(client, world):
    outpass = await _outpass(world)
    await client.patch(f"/api/hostel/outpasses/{outpass.id}/approve", headers=auth(world.admin_a))

    res = await client.patch(
        f"/api/hostel/outpasses/{outpass.id}/reject", json={"remarks": "late"}, headers=auth(world.warden_a)
    )
    assert res.status_code == 409
    stored = await HostelOutpass.get(outpass.id)
    assert stored.status == RequestStatus.APPROVED
    assert stored.remarks is None


async def test_outpass_approval_needs_hostel_authority(client, world):
    outpass = await _outpass(world)
    res = await client.patch(f"/api/hostel/outpasses/{outpass.id}/approve", headers=auth(world.librarian_a))
    assert res.status_code == 403
    assert (await HostelOutpass.get(outpass.id)).status == RequestStatus.PENDING


async def test_teacher_approves_leave(client, world):
    leave = await _leave(world)
    res = await client.patch(
        f"/api/leave/{leave.id}/approve", json={"approval_remarks": "Get well soon"}, headers=auth(world.teacher_a)
    )
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["status"] == "approved"
    assert data["approved_by"] == str(world.teacher_a.id)
    assert data["approval_remarks"] == "Get well soon"

    res = await client.patch(f"/api/leave/{leave.id}/reject", headers=auth(world.admin_a))
    assert res.status_code == 409
    assert res.json()["error"] == "Leave request is already approved"


@pytest.mark.parametrize("role_user", ["librarian_a", "warden_a", "accountant_a", "parent_a", "student_user_a"])
async def test_leave_approval_denied_without_authority(client, world, role_user):
    leave = await _leave(world)
    res = await client.patch(f"/api/leave/{leave.id}/approve", headers=auth(getattr(world, role_user)))
    assert res.status_code == 403
    assert res.json() == {"success": False, "error": "Access denied"}
    assert (await LeaveRequest.get(leave.id)).status == RequestStatus.PENDING


async def test_book_request_approval_issues_exactly_one_book(client, world):
    request = await _book_request(world)
    headers = auth(world.librarian_a)

    first = await client.patch(f"/api/library/book-requests/{request.id}/approve", headers=headers)
    assert first.status_code == 200
    issue = first.json()["data"]["issue"]
    assert issue["book_request_id"] == str(request.id)
    assert issue["student_id"] == str(world.child.id)
    assert issue["status"] == "issued"

    second = await client.patch(f"/api/library/book-requests/{request.id}/approve", headers=headers)
    assert second.status_code == 409
    assert await IssueRecord.find({"book_request_id": str(request.id)}).count() == 1


async def test_rejected_book_request_issues_nothing(client, world):
    request = await _book_request(world)
    res = await client.patch(
        f"/api/library/book-requests/{request.id}/reject", json={"remarks": "Not in catalogue"},
        headers=auth(world.admin_a),
    )
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "rejected"

    res = await client.patch(f"/api/library/book-requests/{request.id}/approve", headers=auth(world.admin_a))
    assert res.status_code == 409
    assert await IssueRecord.find_all().count() == 0


async def test_transition_raises_not_found_outside_scope(world):
    leave = await _leave(world)
    ctx_b = TenantContext(
        user_id=str(world.admin_b.id),
        school_id=str(world.school_b.id),
        role="school_admin",
        email=world.admin_b.email,
        full_name=world.admin_b.full_name,
    )
    with pytest.raises(NotFound):
        await transition(LeaveRequest, ctx_b, str(leave.id), RequestStatus.APPROVED, resource="Leave request")
    with pytest.raises(NotFound):
        await transition(LeaveRequest, ctx_b, "garbage", RequestStatus.APPROVED, resource="Leave request")


async def test_transition_from_terminal_state_conflicts(world):
    leave = await _leave(world)
    ctx = TenantContext(
        user_id=str(world.admin_a.id),
        school_id=str(world.school_a.id),
        role="school_admin",
        email=world.admin_a.email,
        full_name=world.admin_a.full_name,
    )
    updated = await transition(LeaveRequest, ctx, str(leave.id), RequestStatus.REJECTED, resource="Leave request")
    assert updated.status == RequestStatus.REJECTED
    with pytest.raises(Conflict) as excinfo:
        await transition(LeaveRequest, ctx, str(leave.id), RequestStatus.CANCELLED, resource="Leave request")
    assert excinfo.value.message == "Leave request is already rejected"
