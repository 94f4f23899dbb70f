"""Daily staff attendance: mark, list and export."""
import io
import logging
from datetime import date, datetime, time, timedelta

import pandas as pd
from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from schoolerp.api.deps import Tenant
from schoolerp.api.responses import ok, serialize
from schoolerp.errors import NotFound, ValidationError
from schoolerp.models.attendance import StaffAttendance, StaffAttendanceMarkRequest
from schoolerp.models.user import STAFF_ROLES, User
from schoolerp.services.scoping import safe_object_id, tenant_filter

logger = logging.getLogger(__name__)

router = APIRouter()


def _day(d: date) -> datetime:
    return datetime.combine(d, time.min)


async def _staff_by_id(ctx) -> dict[str, User]:
    users = await User.find(
        tenant_filter(ctx, role={"$in": [r.value for r in STAFF_ROLES]}, is_active=True)
    ).to_list()
    return {str(u.id): u for u in users}


@router.post("/")
async def mark_attendance(data: StaffAttendanceMarkRequest, ctx: Tenant):
    """Record one status per staff member for the day, replacing earlier marks."""
    staff_ids = [r.staff_id for r in data.records]
    if len(set(staff_ids)) != len(staff_ids):
        raise ValidationError("records: each staff member may appear only once")
    staff = await _staff_by_id(ctx)
    unknown = [sid for sid in staff_ids if sid not in staff]
    if unknown:
        raise NotFound("Staff member")

    day = _day(data.date)
    marked_at = datetime.utcnow()
    for r in data.records:
        # One row per (school, staff, day); a re-mark overwrites in place
        await StaffAttendance.find_one(tenant_filter(ctx, staff_id=r.staff_id, date=day)).upsert(
            {"$set": {"status": r.status, "remarks": r.remarks, "marked_by": ctx.user_id, "marked_at": marked_at}},
            on_insert=StaffAttendance(
                school_id=ctx.school_id,
                staff_id=r.staff_id,
                date=day,
                status=r.status,
                remarks=r.remarks,
                marked_by=ctx.user_id,
                marked_at=marked_at,
            ),
        )
    logger.info("Staff attendance for %s marked for %d staff by %s", data.date, len(data.records), ctx.user_id)
    return ok({"date": data.date.isoformat(), "marked": len(data.records)}, message="Attendance saved")


@router.get("/")
async def list_attendance(ctx: Tenant, on: date = Query(..., alias="date")):
    rows = await StaffAttendance.find(tenant_filter(ctx, date=_day(on))).to_list()
    staff = await _staff_by_id(ctx)
    out = []
    for row in rows:
        item = serialize(row)
        member = staff.get(row.staff_id)
        item["staff_name"] = member.full_name if member else None
        item["role"] = member.role.value if member else None
        out.append(item)
    out.sort(key=lambda item: item["staff_name"] or "")
    return ok(out)


@router.get("/export")
async def export_attendance(
    ctx: Tenant,
    from_date: date,
    to_date: date,
    format: str = Query("csv", enum=["csv", "excel"]),
):
    """Download staff attendance for a date range."""
    if to_date < from_date:
        raise ValidationError("to_date: must not be before from_date")
    rows = await StaffAttendance.find(
        tenant_filter(ctx, date={"$gte": _day(from_date), "$lt": _day(to_date + timedelta(days=1))})
    ).sort("date").to_list()
    if not rows:
        raise NotFound("Attendance records")

    ids = [oid for oid in (safe_object_id(r.staff_id) for r in rows) if oid]
    users = await User.find(tenant_filter(ctx, _id={"$in": ids})).to_list()
    names = {str(u.id): u.full_name for u in users}
    roles = {str(u.id): u.role.value for u in users}

    df = pd.DataFrame(
        [
            {
                "Date": r.date.date().isoformat(),
                "Staff ID": r.staff_id,
                "Staff Name": names.get(r.staff_id, "Unknown"),
                "Role": roles.get(r.staff_id, ""),
                "Status": r.status,
                "Remarks": r.remarks or "",
            }
            for r in rows
        ]
    )
    filename = f"staff_attendance_{from_date}_{to_date}"
    if format == "csv":
        stream = io.StringIO()
        df.to_csv(stream, index=False)
        return StreamingResponse(
            iter([stream.getvalue()]),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}.csv"},
        )
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Staff Attendance")
    output.seek(0)
    return StreamingResponse(
        output,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}.xlsx"},
    )
