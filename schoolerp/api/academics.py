"""Classes and class-bound academic content: timetable, exams, online classes, study materials."""
import logging
from datetime import datetime

from fastapi import APIRouter, File, Form, UploadFile

from schoolerp.api.deps import Tenant
from schoolerp.api.responses import ok, serialize, serialize_all
from schoolerp.errors import Conflict, NotFound
from schoolerp.models.academics import (
    Exam,
    ExamCreate,
    OnlineClass,
    OnlineClassCreate,
    StudyMaterial,
    StudyMaterialCreate,
    Timetable,
    TimetableCreate,
)
from schoolerp.models.school_class import SchoolClass, SchoolClassCreate, SchoolClassUpdate
from schoolerp.models.student import Student
from schoolerp.services.scoping import get_in_tenant, tenant_filter
from schoolerp.services.uploads import store_upload

logger = logging.getLogger(__name__)

router = APIRouter()


async def _class_in_tenant(ctx, class_id: str) -> SchoolClass:
    return await get_in_tenant(SchoolClass, ctx, class_id, "Class")


# --- Classes ---

@router.get("/classes")
async def list_classes(ctx: Tenant):
    classes = await SchoolClass.find(tenant_filter(ctx)).sort("name", "section").to_list()
    return ok(serialize_all(classes))


@router.post("/classes", status_code=201)
async def create_class(data: SchoolClassCreate, ctx: Tenant):
    name, section = data.name.strip(), data.section.strip()
    if await SchoolClass.find_one(tenant_filter(ctx, name=name, section=section)):
        raise Conflict("Class already exists")
    c = SchoolClass(
        school_id=ctx.school_id,
        name=name,
        section=section,
        class_teacher_id=data.class_teacher_id,
        description=data.description,
    )
    await c.insert()
    # Link students already placed in this class by name/section
    await Student.find(tenant_filter(ctx, class_name=name, section=section, class_id=None)).update(
        {"$set": {"class_id": str(c.id)}}
    )
    return ok(serialize(c), message="Class created")


@router.patch("/classes/{class_id}")
async def update_class(class_id: str, data: SchoolClassUpdate, ctx: Tenant):
    c = await _class_in_tenant(ctx, class_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(c, key, value)
    c.updated_at = datetime.utcnow()
    await c.save()
    return ok(serialize(c))


@router.delete("/classes/{class_id}")
async def delete_class(class_id: str, ctx: Tenant):
    c = await _class_in_tenant(ctx, class_id)
    if await Student.find_one(tenant_filter(ctx, class_id=str(c.id), is_active=True)):
        raise Conflict("Class still has active students")
    await c.delete()
    logger.info("Class %s deleted by %s", class_id, ctx.user_id)
    return ok({"id": class_id}, message="Class deleted")


# --- Timetable ---

@router.get("/timetable")
async def list_timetable(ctx: Tenant, class_id: str):
    await _class_in_tenant(ctx, class_id)
    entries = await Timetable.find(tenant_filter(ctx, class_id=class_id, is_active=True)).to_list()
    return ok(serialize_all(entries))


@router.post("/timetable", status_code=201)
async def create_timetable(data: TimetableCreate, ctx: Tenant):
    await _class_in_tenant(ctx, data.class_id)
    # One active timetable per class and day
    await Timetable.find(
        tenant_filter(ctx, class_id=data.class_id, day_of_week=data.day_of_week, is_active=True)
    ).update({"$set": {"is_active": False}})
    t = Timetable(school_id=ctx.school_id, **data.model_dump())
    await t.insert()
    return ok(serialize(t), message="Timetable saved")


# --- Exams ---

@router.get("/exams")
async def list_exams(ctx: Tenant, class_id: str | None = None):
    criteria = {}
    if class_id:
        await _class_in_tenant(ctx, class_id)
        criteria["class_id"] = class_id
    exams = await Exam.find(tenant_filter(ctx, **criteria)).sort("exam_date").to_list()
    return ok(serialize_all(exams))


@router.post("/exams", status_code=201)
async def create_exam(data: ExamCreate, ctx: Tenant):
    await _class_in_tenant(ctx, data.class_id)
    e = Exam(school_id=ctx.school_id, **data.model_dump())
    await e.insert()
    return ok(serialize(e), message="Exam created")


# --- Online classes ---

@router.get("/online-classes")
async def list_online_classes(ctx: Tenant, class_id: str | None = None):
    criteria = {}
    if class_id:
        await _class_in_tenant(ctx, class_id)
        criteria["class_id"] = class_id
    items = await OnlineClass.find(tenant_filter(ctx, **criteria)).sort("-scheduled_date").to_list()
    return ok(serialize_all(items))


@router.post("/online-classes", status_code=201)
async def create_online_class(data: OnlineClassCreate, ctx: Tenant):
    await _class_in_tenant(ctx, data.class_id)
    oc = OnlineClass(school_id=ctx.school_id, teacher_id=ctx.user_id, **data.model_dump())
    await oc.insert()
    return ok(serialize(oc), message="Online class scheduled")


# --- Study materials ---

async def _check_classes(ctx, class_ids: list[str]) -> list[str]:
    for cid in class_ids:
        await _class_in_tenant(ctx, cid)
    return list(dict.fromkeys(class_ids))


@router.get("/study-materials")
async def list_study_materials(ctx: Tenant):
    items = await StudyMaterial.find(tenant_filter(ctx, is_active=True)).sort("-created_at").to_list()
    return ok(serialize_all(items))


@router.post("/study-materials", status_code=201)
async def create_study_material(data: StudyMaterialCreate, ctx: Tenant):
    """Publish an already-hosted file; an empty ``classes`` list targets every class."""
    m = StudyMaterial(
        school_id=ctx.school_id,
        title=data.title,
        description=data.description,
        file_url=data.file_url,
        classes=await _check_classes(ctx, data.classes),
        uploaded_by=ctx.user_id,
    )
    await m.insert()
    return ok(serialize(m), message="Study material published")


@router.post("/study-materials/upload", status_code=201)
async def upload_study_material(
    ctx: Tenant,
    title: str = Form(...),
    description: str | None = Form(None),
    classes: str = Form("", description="Comma-separated class ids; empty for all classes"),
    file: UploadFile = File(...),
):
    class_ids = await _check_classes(ctx, [c.strip() for c in classes.split(",") if c.strip()])
    file_url = await store_upload(file, category="materials", school_id=ctx.school_id)
    m = StudyMaterial(
        school_id=ctx.school_id,
        title=title,
        description=description,
        file_url=file_url,
        classes=class_ids,
        uploaded_by=ctx.user_id,
    )
    await m.insert()
    return ok(serialize(m), message="Study material uploaded")


@router.delete("/study-materials/{material_id}")
async def remove_study_material(material_id: str, ctx: Tenant):
    m = await get_in_tenant(StudyMaterial, ctx, material_id, "Study material")
    if not m.is_active:
        raise NotFound("Study material")
    m.is_active = False
    await m.save()
    return ok({"id": material_id}, message="Study material removed")
