from datetime import date, datetime

from conftest import auth, make_user

from schoolerp.models import (
    BookRequest,
    HostelAllocation,
    HostelOutpass,
    HostelRoom,
    IssueRecord,
    LeaveRequest,
    Student,
    UserRole,
)


async def _leave_for(student: Student, requester_id: str) -> LeaveRequest:
    leave = LeaveRequest(
        school_id=student.school_id,
        student_id=str(student.id),
        requester_id=requester_id,
        requester_type="parent",
        leave_type="sick",
        start_date=date(2026, 3, 2),
        end_date=date(2026, 3, 3),
        total_days=2,
        reason="Fever",
    )
    await leave.insert()
    return leave


async def test_student_list_only_contains_own_tenant(client, world):
    res = await client.get("/api/students/", headers=auth(world.admin_a))
    assert res.status_code == 200
    ids = {s["id"] for s in res.json()["data"]}
    assert str(world.child.id) in ids
    assert str(world.foreign_child.id) not in ids
    assert all(s["school_id"] == str(world.school_a.id) for s in res.json()["data"])


async def test_foreign_student_id_looks_missing_to_staff(client, world):
    res = await client.get(f"/api/students/{world.foreign_child.id}", headers=auth(world.admin_a))
    assert res.status_code == 404
    assert res.json() == {"success": False, "error": "Student not found"}

    missing = await client.get("/api/students/64b7f0c2a1b2c3d4e5f60718", headers=auth(world.admin_a))
    assert missing.status_code == 404
    assert missing.json() == res.json()


async def test_staff_cannot_approve_other_tenants_leave(client, world):
    leave = await _leave_for(world.foreign_child, str(world.admin_b.id))
    res = await client.patch(f"/api/leave/{leave.id}/approve", headers=auth(world.admin_a))
    assert res.status_code == 404
    stored = await LeaveRequest.get(leave.id)
    assert stored.status == "pending"


async def test_client_supplied_school_id_is_rejected(client, world):
    foreign = str(world.school_b.id)
    res = await client.get(f"/api/students/?school_id={foreign}", headers=auth(world.admin_a))
    assert res.status_code == 403
    assert res.json() == {"success": False, "error": "Access denied"}

    res = await client.post(
        "/api/students/",
        json={"first_name": "Zed", "class_name": "10", "section": "A", "schoolId": foreign},
        headers=auth(world.admin_a),
    )
    assert res.status_code == 403
    assert await Student.find_one({"first_name": "Zed"}) is None


async def test_matching_school_id_is_tolerated(client, world):
    own = str(world.school_a.id)
    res = await client.get(f"/api/students/?school_id={own}", headers=auth(world.admin_a))
    assert res.status_code == 200


async def test_created_student_is_bound_to_caller_tenant(client, world):
    res = await client.post(
        "/api/students/",
        json={"first_name": "Nila", "class_name": "10", "section": "A"},
        headers=auth(world.admin_b),
    )
    assert res.status_code == 201
    data = res.json()["data"]
    assert data["school_id"] == str(world.school_b.id)
    # School B has no class 10/A, so nothing is linked across tenants
    assert data["class_id"] is None


async def test_super_admin_has_no_tenant_context(client, world):
    root = await make_user("root@platform-ops.org", UserRole.SUPER_ADMIN, None)
    res = await client.get("/api/students/", headers=auth(root))
    assert res.status_code == 403

    res = await client.get("/api/schools/", headers=auth(root))
    assert res.status_code == 200
    assert {s["code"] for s in res.json()["data"]} == {"ALPHA", "BETA"}


async def test_school_admin_cannot_reach_users_of_other_school(client, world):
    res = await client.patch(
        f"/api/users/{world.admin_b.id}", json={"full_name": "Hijacked"}, headers=auth(world.admin_a)
    )
    assert res.status_code == 404

    res = await client.get("/api/users/", headers=auth(world.admin_a))
    emails = {u["email"] for u in res.json()["data"]}
    assert "admin@beta-school.org" not in emails
    assert "teacher@alpha-school.org" in emails


async def test_other_tenant_cannot_return_issued_book(client, world):
    issue = IssueRecord(school_id=str(world.school_a.id), student_id=str(world.child.id), book_title="Godaan")
    await issue.insert()
    res = await client.patch(f"/api/library/issues/{issue.id}/return", headers=auth(world.admin_b))
    assert res.status_code == 404
    assert res.json() == {"success": False, "error": "Issue record not found"}
    stored = await IssueRecord.get(issue.id)
    assert stored.status == "issued"
    assert stored.return_date is None


async def test_other_tenant_cannot_vacate_allocation(client, world):
    room = HostelRoom(
        school_id=str(world.school_a.id), hostel_id="64b7f0c2a1b2c3d4e5f60700", room_number="12", capacity=2, occupied=1
    )
    await room.insert()
    allocation = HostelAllocation(
        school_id=str(world.school_a.id),
        student_id=str(world.child.id),
        hostel_id=room.hostel_id,
        room_id=str(room.id),
    )
    await allocation.insert()

    res = await client.patch(f"/api/hostel/allocations/{allocation.id}/vacate", headers=auth(world.admin_b))
    assert res.status_code == 404
    assert res.json()["success"] is False
    assert (await HostelAllocation.get(allocation.id)).status == "active"
    assert (await HostelRoom.get(room.id)).occupied == 1


async def test_other_tenant_cannot_decide_outpass(client, world):
    outpass = HostelOutpass(
        school_id=str(world.school_a.id),
        student_id=str(world.child.id),
        hostel_id="64b7f0c2a1b2c3d4e5f60700",
        from_date=datetime(2026, 3, 6, 16),
        to_date=datetime(2026, 3, 8, 18),
        reason="Family function",
    )
    await outpass.insert()
    for action in ("approve", "reject"):
        res = await client.patch(f"/api/hostel/outpasses/{outpass.id}/{action}", headers=auth(world.admin_b))
        assert res.status_code == 404
        assert res.json() == {"success": False, "error": "Outpass not found"}
    stored = await HostelOutpass.get(outpass.id)
    assert stored.status == "pending"
    assert stored.processed_by is None


async def test_other_tenant_cannot_approve_book_request(client, world):
    request = BookRequest(school_id=str(world.school_a.id), student_id=str(world.child.id), book_title="Gitanjali")
    await request.insert()
    res = await client.patch(f"/api/library/book-requests/{request.id}/approve", headers=auth(world.admin_b))
    assert res.status_code == 404
    assert res.json() == {"success": False, "error": "Book request not found"}
    assert (await BookRequest.get(request.id)).status == "pending"
    assert await IssueRecord.find_all().count() == 0
