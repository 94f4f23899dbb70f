"""Hostel management for staff: hostels, rooms, allocations and outpass decisions."""
import logging
from datetime import datetime
from typing import Annotated

from beanie import UpdateResponse
from fastapi import APIRouter, Depends
from pymongo.errors import DuplicateKeyError, PyMongoError

from schoolerp.api.deps import Tenant, TenantContext, require_roles
from schoolerp.api.responses import ok, serialize, serialize_all
from schoolerp.errors import Conflict, NotFound
from schoolerp.models.hostel import (
    AllocationStatus,
    Hostel,
    HostelAllocation,
    HostelAllocationCreate,
    HostelCreate,
    HostelOutpass,
    HostelRoom,
    HostelRoomCreate,
    OutpassDecision,
)
from schoolerp.models.requests import RequestStatus
from schoolerp.models.user import UserRole
from schoolerp.services.scoping import get_in_tenant, safe_object_id, student_in_tenant, tenant_filter
from schoolerp.services.workflow import transition

logger = logging.getLogger(__name__)

router = APIRouter()

OutpassApprover = Annotated[TenantContext, Depends(require_roles(UserRole.SCHOOL_ADMIN, UserRole.HOSTEL_WARDEN))]


async def _release_bed(ctx: TenantContext, room_id: str) -> None:
    room_oid = safe_object_id(room_id)
    if room_oid:
        await HostelRoom.find_one(
            {"_id": room_oid, "school_id": ctx.school_id, "occupied": {"$gt": 0}}
        ).update({"$inc": {"occupied": -1}})


# --- Hostels and rooms ---

@router.get("/hostels")
async def list_hostels(ctx: Tenant):
    hostels = await Hostel.find(tenant_filter(ctx, is_active=True)).sort("name").to_list()
    return ok(serialize_all(hostels))


@router.post("/hostels", status_code=201)
async def create_hostel(data: HostelCreate, ctx: Tenant):
    h = Hostel(school_id=ctx.school_id, **data.model_dump())
    await h.insert()
    return ok(serialize(h), message="Hostel created")


@router.get("/rooms")
async def list_rooms(ctx: Tenant, hostel_id: str | None = None, available: bool = False):
    criteria = {"hostel_id": hostel_id} if hostel_id else {}
    rooms = await HostelRoom.find(tenant_filter(ctx, **criteria)).sort("room_number").to_list()
    if available:
        rooms = [r for r in rooms if r.occupied < r.capacity]
    return ok(serialize_all(rooms))


@router.post("/rooms", status_code=201)
async def create_room(data: HostelRoomCreate, ctx: Tenant):
    await get_in_tenant(Hostel, ctx, data.hostel_id, "Hostel")
    if await HostelRoom.find_one(tenant_filter(ctx, hostel_id=data.hostel_id, room_number=data.room_number)):
        raise Conflict("Room already exists in this hostel")
    room = HostelRoom(school_id=ctx.school_id, **data.model_dump())
    await room.insert()
    return ok(serialize(room), message="Room created")


# --- Allocations ---

@router.get("/allocations")
async def list_allocations(ctx: Tenant, status: AllocationStatus | None = AllocationStatus.ACTIVE):
    criteria = {"status": status.value} if status else {}
    allocations = await HostelAllocation.find(tenant_filter(ctx, **criteria)).sort("-allocated_at").to_list()
    return ok(serialize_all(allocations))


@router.post("/allocations", status_code=201)
async def allocate_room(data: HostelAllocationCreate, ctx: Tenant):
    """Allocate a student to a room; one active allocation per student."""
    student = await student_in_tenant(ctx, data.student_id)
    room = await get_in_tenant(HostelRoom, ctx, data.room_id, "Room")
    student_id = str(student.id)
    if await HostelAllocation.find_one(
        tenant_filter(ctx, student_id=student_id, status=AllocationStatus.ACTIVE.value)
    ):
        raise Conflict("Student already has an active hostel allocation")

    # Claim a bed only while the room still has one free
    claimed = await HostelRoom.find_one(
        {"_id": room.id, "school_id": ctx.school_id, "occupied": {"$lt": room.capacity}}
    ).update({"$inc": {"occupied": 1}}, response_type=UpdateResponse.NEW_DOCUMENT)
    if claimed is None:
        raise Conflict("Room is full")

    allocation = HostelAllocation(
        school_id=ctx.school_id,
        student_id=student_id,
        hostel_id=room.hostel_id,
        room_id=str(room.id),
        allocated_by=ctx.user_id,
    )
    try:
        await allocation.insert()
    except DuplicateKeyError:
        await _release_bed(ctx, str(room.id))
        raise Conflict("Student already has an active hostel allocation")
    except PyMongoError:
        await _release_bed(ctx, str(room.id))
        raise
    logger.info("Student %s allocated to room %s", student_id, room.id)
    return ok(serialize(allocation), message="Room allocated")


@router.patch("/allocations/{allocation_id}/vacate")
async def vacate_room(allocation_id: str, ctx: Tenant):
    oid = safe_object_id(allocation_id)
    if not oid:
        raise NotFound("Allocation")
    scope = {"_id": oid, "school_id": ctx.school_id}
    updated = await HostelAllocation.find_one({**scope, "status": AllocationStatus.ACTIVE.value}).update(
        {"$set": {"status": AllocationStatus.VACATED.value, "vacated_at": datetime.utcnow()}},
        response_type=UpdateResponse.NEW_DOCUMENT,
    )
    if updated is None:
        if await HostelAllocation.find_one(scope) is None:
            raise NotFound("Allocation")
        raise Conflict("Allocation is already vacated")
    await _release_bed(ctx, updated.room_id)
    return ok(serialize(updated), message="Room vacated")


# --- Outpasses ---

@router.get("/outpasses")
async def list_outpasses(ctx: Tenant, status: RequestStatus | None = None, student_id: str | None = None):
    criteria = {}
    if status:
        criteria["status"] = status.value
    if student_id:
        criteria["student_id"] = student_id
    outpasses = await HostelOutpass.find(tenant_filter(ctx, **criteria)).sort("-created_at").to_list()
    return ok(serialize_all(outpasses))


@router.patch("/outpasses/{outpass_id}/approve")
async def approve_outpass(outpass_id: str, ctx: OutpassApprover, data: OutpassDecision | None = None):
    outpass = await transition(
        HostelOutpass,
        ctx,
        outpass_id,
        RequestStatus.APPROVED,
        resource="Outpass",
        changes={
            "processed_by": ctx.user_id,
            "processed_at": datetime.utcnow(),
            "remarks": data.remarks if data else None,
        },
    )
    return ok(serialize(outpass), message="Outpass approved")


@router.patch("/outpasses/{outpass_id}/reject")
async def reject_outpass(outpass_id: str, ctx: OutpassApprover, data: OutpassDecision | None = None):
    outpass = await transition(
        HostelOutpass,
        ctx,
        outpass_id,
        RequestStatus.REJECTED,
        resource="Outpass",
        changes={
            "processed_by": ctx.user_id,
            "processed_at": datetime.utcnow(),
            "remarks": data.remarks if data else None,
        },
    )
    return ok(serialize(outpass), message="Outpass rejected")
