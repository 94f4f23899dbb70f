"""Student CRUD - class placement, parent linkage, login accounts."""
import logging
import re
from datetime import datetime

from fastapi import APIRouter, Query
from pydantic import BaseModel, EmailStr, Field

from schoolerp.api.deps import Tenant, get_password_hash
from schoolerp.api.responses import ok, serialize
from schoolerp.errors import Conflict, ValidationError
from schoolerp.models.student import ParentInfo, Student, StudentCreate, StudentUpdate
from schoolerp.models.user import User, UserRole
from schoolerp.services.class_resolver import ClassNameRef, resolve_class_ref
from schoolerp.services.scoping import get_in_tenant, student_in_tenant, tenant_filter

logger = logging.getLogger(__name__)

router = APIRouter()


class ParentAccountRequest(BaseModel):
    password: str = Field(min_length=8)
    full_name: str | None = None


class StudentAccountRequest(BaseModel):
    email: EmailStr | None = None
    password: str = Field(min_length=8)


def student_out(s: Student) -> dict:
    data = serialize(s)
    data["full_name"] = s.full_name
    return data


async def _next_admission_number(school_id: str) -> str:
    """Next admission number for the school (1, 2, 3... per school)."""
    students = await Student.find(Student.school_id == school_id).to_list()
    existing = [int(s.admission_number) for s in students if s.admission_number and s.admission_number.isdigit()]
    return str(max(existing, default=0) + 1)


def sync_parent_email(s: Student) -> None:
    """Keep the flat and nested parent email in agreement after a write."""
    nested = s.parent.email if s.parent else None
    if s.parent_email and nested != s.parent_email:
        s.parent = (s.parent or ParentInfo()).model_copy(update={"email": s.parent_email})
    elif nested and not s.parent_email:
        s.parent_email = nested


async def _class_id_for(school_id: str, class_name: str, section: str) -> str | None:
    school_class = await resolve_class_ref(school_id, ClassNameRef(class_name, section))
    return str(school_class.id) if school_class else None


@router.get("/")
async def list_students(
    ctx: Tenant,
    class_name: str | None = None,
    section: str | None = None,
    q: str | None = Query(None, description="Search by name or admission number"),
    include_inactive: bool = False,
):
    criteria = {}
    if not include_inactive:
        criteria["is_active"] = True
    if class_name:
        criteria["class_name"] = class_name
    if section:
        criteria["section"] = section
    query = tenant_filter(ctx, **criteria)
    if q and q.strip():
        search = re.escape(q.strip())
        query["$or"] = [
            {"first_name": {"$regex": search, "$options": "i"}},
            {"last_name": {"$regex": search, "$options": "i"}},
            {"admission_number": {"$regex": search, "$options": "i"}},
        ]
    students = await Student.find(query).sort("class_name", "section", "roll_number").to_list()
    return ok([student_out(s) for s in students])


@router.post("/", status_code=201)
async def create_student(data: StudentCreate, ctx: Tenant):
    payload = data.model_dump(exclude_none=True)
    admission_number = payload.pop("admission_number", None)
    if admission_number:
        if await Student.find_one(tenant_filter(ctx, admission_number=admission_number)):
            raise Conflict("Admission number already exists")
    else:
        admission_number = await _next_admission_number(ctx.school_id)

    s = Student(
        **payload,
        school_id=ctx.school_id,
        admission_number=admission_number,
        class_id=await _class_id_for(ctx.school_id, data.class_name, data.section),
    )
    sync_parent_email(s)
    await s.insert()
    logger.info("Student %s admitted to school %s", s.id, ctx.school_id)
    return ok(student_out(s), message="Student created")


@router.get("/{student_id}")
async def get_student(student_id: str, ctx: Tenant):
    s = await student_in_tenant(ctx, student_id)
    return ok(student_out(s))


@router.patch("/{student_id}")
async def update_student(student_id: str, data: StudentUpdate, ctx: Tenant):
    s = await student_in_tenant(ctx, student_id)
    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("parent") is not None:
        update_data["parent"] = ParentInfo(**update_data["parent"])
    for key in ("email", "parent_email"):
        if update_data.get(key):
            update_data[key] = update_data[key].lower()
    nested_email_changed = "parent" in update_data and "parent_email" not in update_data
    for key, value in update_data.items():
        setattr(s, key, value)
    if nested_email_changed:
        s.parent_email = s.parent.email if s.parent else None
    if "class_name" in update_data or "section" in update_data:
        s.class_id = await _class_id_for(ctx.school_id, s.class_name, s.section)
    sync_parent_email(s)
    s.updated_at = datetime.utcnow()
    await s.save()
    return ok(student_out(s))


@router.delete("/{student_id}")
async def archive_student(student_id: str, ctx: Tenant):
    """Soft delete; the linked student login is deactivated too."""
    s = await student_in_tenant(ctx, student_id)
    s.is_active = False
    s.updated_at = datetime.utcnow()
    await s.save()
    account = await get_in_tenant(User, ctx, s.user_id, "User") if s.user_id else None
    if account and account.role == UserRole.STUDENT:
        account.is_active = False
        await account.save()
    logger.info("Student %s archived by %s", s.id, ctx.user_id)
    return ok({"id": str(s.id)}, message="Student archived")


@router.post("/{student_id}/parent-account")
async def create_parent_account(student_id: str, data: ParentAccountRequest, ctx: Tenant):
    """Create or reset the parent login for the student's parent email."""
    s = await student_in_tenant(ctx, student_id)
    email = s.parent_email or (s.parent.email if s.parent else None)
    if not email:
        raise ValidationError("parent_email: student has no parent email")

    existing = await User.find_one(User.email == email)
    if existing:
        if existing.school_id != ctx.school_id or existing.role != UserRole.PARENT:
            raise Conflict("Email already registered")
        existing.hashed_password = get_password_hash(data.password)
        existing.password_changed_at = datetime.utcnow()
        existing.is_active = True
        await existing.save()
        return ok({"user_id": str(existing.id), "email": email}, message="Parent account updated")

    full_name = data.full_name or (s.parent.name if s.parent and s.parent.name else f"Parent of {s.full_name}")
    parent = User(
        email=email,
        hashed_password=get_password_hash(data.password),
        role=UserRole.PARENT,
        full_name=full_name,
        phone=s.parent.phone if s.parent else None,
        school_id=ctx.school_id,
    )
    await parent.insert()
    logger.info("Parent account %s created for student %s", parent.id, s.id)
    return ok({"user_id": str(parent.id), "email": email}, message="Parent account created")


@router.post("/{student_id}/student-account")
async def create_student_account(student_id: str, data: StudentAccountRequest, ctx: Tenant):
    """Create the student's own login and link it to the record."""
    s = await student_in_tenant(ctx, student_id)
    if s.user_id:
        raise Conflict("Student already has a login account")
    email = str(data.email).lower() if data.email else s.email
    if not email:
        raise ValidationError("email: Field required")
    if await User.find_one(User.email == email):
        raise Conflict("Email already registered")

    account = User(
        email=email,
        hashed_password=get_password_hash(data.password),
        role=UserRole.STUDENT,
        full_name=s.full_name,
        phone=s.phone,
        school_id=ctx.school_id,
    )
    await account.insert()
    s.user_id = str(account.id)
    s.email = email
    s.updated_at = datetime.utcnow()
    await s.save()
    logger.info("Student account %s linked to student %s", account.id, s.id)
    return ok({"user_id": str(account.id), "email": email}, message="Student account created")
