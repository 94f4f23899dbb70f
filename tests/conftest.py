import os
import tempfile
import uuid
from types import SimpleNamespace

os.environ["DEBUG"] = "true"
os.environ["JWT_SECRET_KEY"] = "test-secret-" + "x" * 32
os.environ["UPLOAD_BACKEND"] = "local"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="schoolerp-uploads-")
os.environ["SUPER_ADMIN_EMAIL"] = ""
os.environ["SUPER_ADMIN_PASSWORD"] = ""

import pytest
from beanie import init_beanie
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from schoolerp.api.deps import create_access_token, get_password_hash
from schoolerp.main import app
from schoolerp.models import DOCUMENT_MODELS, ParentInfo, School, SchoolClass, Student, User, UserRole

PASSWORD = "password123"
PASSWORD_HASH = get_password_hash(PASSWORD)


@pytest.fixture(autouse=True)
async def db():
    client = AsyncMongoMockClient()
    database = client[f"schoolerp_test_{uuid.uuid4().hex[:8]}"]
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)
    yield database


@pytest.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def auth(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(str(user.id), user.role.value)}"}


async def make_user(email: str, role: UserRole, school: School | None, full_name: str | None = None) -> User:
    user = User(
        email=email,
        hashed_password=PASSWORD_HASH,
        role=role,
        full_name=full_name or email.split("@")[0].replace(".", " ").title(),
        school_id=str(school.id) if school else None,
    )
    await user.insert()
    return user


async def make_student(school: School, first_name: str, class_name: str, section: str, **extra) -> Student:
    student = Student(
        school_id=str(school.id),
        first_name=first_name,
        last_name="Test",
        class_name=class_name,
        section=section,
        **extra,
    )
    await student.insert()
    return student


@pytest.fixture
async def world():
    """Two schools. School A has staff, a parent with two children and an unrelated family."""
    school_a = School(name="Alpha Public School", code="ALPHA")
    school_b = School(name="Beta High School", code="BETA")
    await school_a.insert()
    await school_b.insert()

    class_10a = SchoolClass(school_id=str(school_a.id), name="10", section="A")
    await class_10a.insert()

    admin_a = await make_user("admin@alpha-school.org", UserRole.SCHOOL_ADMIN, school_a)
    teacher_a = await make_user("teacher@alpha-school.org", UserRole.TEACHER, school_a)
    librarian_a = await make_user("librarian@alpha-school.org", UserRole.LIBRARIAN, school_a)
    warden_a = await make_user("warden@alpha-school.org", UserRole.HOSTEL_WARDEN, school_a)
    accountant_a = await make_user("accountant@alpha-school.org", UserRole.ACCOUNTANT, school_a)
    parent_a = await make_user("parent.one@families.org", UserRole.PARENT, school_a)
    other_parent_a = await make_user("parent.two@families.org", UserRole.PARENT, school_a)
    student_user_a = await make_user("asha@alpha-school.org", UserRole.STUDENT, school_a)
    admin_b = await make_user("admin@beta-school.org", UserRole.SCHOOL_ADMIN, school_b)

    # Linked through the flat field, resolved class, has a login
    child = await make_student(
        school_a, "Asha", "10", "A",
        class_id=str(class_10a.id),
        parent_email="parent.one@families.org",
        user_id=str(student_user_a.id),
    )
    # Linked only through the nested parent record; no SchoolClass for 9/B
    sibling = await make_student(
        school_a, "Ravi", "9", "B",
        parent=ParentInfo(name="Parent One", email="Parent.One@Families.org"),
    )
    other_child = await make_student(school_a, "Meera", "10", "A", parent_email="parent.two@families.org")
    # Same parent email, different tenant
    foreign_child = await make_student(school_b, "Kiran", "10", "A", parent_email="parent.one@families.org")

    return SimpleNamespace(
        school_a=school_a,
        school_b=school_b,
        class_10a=class_10a,
        admin_a=admin_a,
        teacher_a=teacher_a,
        librarian_a=librarian_a,
        warden_a=warden_a,
        accountant_a=accountant_a,
        parent_a=parent_a,
        other_parent_a=other_parent_a,
        student_user_a=student_user_a,
        admin_b=admin_b,
        child=child,
        sibling=sibling,
        other_child=other_child,
        foreign_child=foreign_child,
    )
