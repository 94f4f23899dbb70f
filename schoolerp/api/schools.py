"""Tenant onboarding - super admin only."""
import logging
from datetime import datetime

from fastapi import APIRouter

from schoolerp.api.deps import SuperAdmin, get_password_hash
from schoolerp.api.responses import ok, serialize, serialize_all
from schoolerp.errors import Conflict, NotFound
from schoolerp.models.school import School, SchoolCreate, SchoolUpdate
from schoolerp.models.user import User, UserRole
from schoolerp.services.scoping import safe_object_id

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def list_schools(admin: SuperAdmin):
    schools = await School.find_all().sort("name").to_list()
    return ok(serialize_all(schools))


@router.post("/", status_code=201)
async def create_school(data: SchoolCreate, admin: SuperAdmin):
    """Create a tenant together with its first school admin."""
    code = data.code.strip().upper()
    if await School.find_one(School.code == code):
        raise Conflict("School code already exists")
    admin_email = str(data.admin_email).lower()
    if await User.find_one(User.email == admin_email):
        raise Conflict("Email already registered")

    school = School(
        name=data.name,
        code=code,
        address=data.address,
        phone=data.phone,
        email=data.email,
    )
    await school.insert()
    school_admin = User(
        email=admin_email,
        hashed_password=get_password_hash(data.admin_password),
        role=UserRole.SCHOOL_ADMIN,
        full_name=data.admin_full_name,
        school_id=str(school.id),
    )
    await school_admin.insert()
    logger.info("School %s (%s) created by %s", school.id, code, admin.email)
    return ok(
        {"school": serialize(school), "admin_user_id": str(school_admin.id)},
        message="School created",
    )


@router.patch("/{school_id}")
async def update_school(school_id: str, data: SchoolUpdate, admin: SuperAdmin):
    oid = safe_object_id(school_id)
    school = await School.get(oid) if oid else None
    if not school:
        raise NotFound("School")
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(school, key, value)
    school.updated_at = datetime.utcnow()
    await school.save()
    if data.is_active is False:
        logger.warning("School %s deactivated by %s", school.id, admin.email)
    return ok(serialize(school))
