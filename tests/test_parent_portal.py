from beanie import PydanticObjectId
from conftest import auth

from schoolerp.models import LeaveRequest, StudyMaterial


async def test_leave_history_for_own_child(client, world):
    res = await client.get(f"/api/parent/child/{world.child.id}/leave-history", headers=auth(world.parent_a))
    assert res.status_code == 200
    assert res.json() == {"success": True, "data": []}


async def test_leave_history_for_other_family_is_denied(client, world):
    res = await client.get(
        f"/api/parent/child/{world.other_child.id}/leave-history", headers=auth(world.parent_a)
    )
    assert res.status_code == 403
    assert res.json() == {"success": False, "error": "Access denied"}


async def test_absent_foreign_and_malformed_children_look_identical(client, world):
    headers = auth(world.parent_a)
    responses = [
        await client.get(f"/api/parent/child/{sid}/leave-history", headers=headers)
        for sid in ("64b7f0c2a1b2c3d4e5f60718", str(world.foreign_child.id), "not-an-id")
    ]
    assert {r.status_code for r in responses} == {403}
    assert all(r.json() == {"success": False, "error": "Access denied"} for r in responses)


async def test_nested_parent_email_links_child(client, world):
    res = await client.get(f"/api/parent/child/{world.sibling.id}", headers=auth(world.parent_a))
    assert res.status_code == 200
    assert res.json()["data"]["first_name"] == "Ravi"


async def test_dashboard_lists_only_linked_children_in_tenant(client, world):
    res = await client.get("/api/parent/dashboard", headers=auth(world.parent_a))
    assert res.status_code == 200
    data = res.json()["data"]
    names = [c["full_name"] for c in data["children"]]
    assert names == ["Asha Test", "Ravi Test"]
    assert data["pending_leave_requests"] == 0


async def test_parent_applies_and_cancels_leave(client, world):
    headers = auth(world.parent_a)
    res = await client.post(
        f"/api/parent/child/{world.child.id}/leave",
        json={"leave_type": "Sick Leave", "start_date": "2026-03-02", "end_date": "2026-03-04", "reason": "Fever"},
        headers=headers,
    )
    assert res.status_code == 201
    leave = res.json()["data"]
    assert leave["status"] == "pending"
    assert leave["leave_type"] == "sick"
    assert leave["total_days"] == 3
    assert leave["requester_type"] == "parent"
    assert leave["school_id"] == str(world.school_a.id)

    history = await client.get(f"/api/parent/child/{world.child.id}/leave-history", headers=headers)
    assert [item["id"] for item in history.json()["data"]] == [leave["id"]]

    res = await client.patch(f"/api/parent/leave/{leave['id']}/cancel", headers=headers)
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "cancelled"

    again = await client.patch(f"/api/parent/leave/{leave['id']}/cancel", headers=headers)
    assert again.status_code == 409
    assert again.json() == {"success": False, "error": "Leave request is already cancelled"}


async def test_parent_cannot_cancel_leave_raised_by_another_parent(client, world):
    res = await client.post(
        f"/api/parent/child/{world.other_child.id}/leave",
        json={"leave_type": "casual", "start_date": "2026-03-02", "end_date": "2026-03-02", "reason": "Trip"},
        headers=auth(world.other_parent_a),
    )
    leave_id = res.json()["data"]["id"]
    res = await client.patch(f"/api/parent/leave/{leave_id}/cancel", headers=auth(world.parent_a))
    assert res.status_code == 404
    assert (await LeaveRequest.get(PydanticObjectId(leave_id))).status == "pending"


async def test_leave_without_reason_is_a_field_error(client, world):
    res = await client.post(
        f"/api/parent/child/{world.child.id}/leave",
        json={"leave_type": "sick", "start_date": "2026-03-02", "end_date": "2026-03-02"},
        headers=auth(world.parent_a),
    )
    assert res.status_code == 422
    assert res.json() == {"success": False, "error": "reason: Field required"}


async def test_downloads_empty_when_class_does_not_resolve(client, world):
    await StudyMaterial(school_id=str(world.school_a.id), title="Syllabus", file_url="/uploads/s.pdf").insert()
    res = await client.get(f"/api/parent/child/{world.sibling.id}/downloads", headers=auth(world.parent_a))
    assert res.status_code == 200
    assert res.json() == {"success": True, "data": []}


async def test_parent_outpass_requires_active_allocation(client, world):
    res = await client.post(
        f"/api/parent/child/{world.child.id}/outpasses",
        json={"from_date": "2026-03-06T16:00:00", "to_date": "2026-03-08T18:00:00", "reason": "Family function"},
        headers=auth(world.parent_a),
    )
    assert res.status_code == 422
    assert res.json()["error"] == "No active hostel allocation"


async def test_staff_role_cannot_use_parent_portal(client, world):
    res = await client.get("/api/parent/dashboard", headers=auth(world.teacher_a))
    assert res.status_code == 403
