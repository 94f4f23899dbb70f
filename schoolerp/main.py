"""SchoolERP - FastAPI entrypoint."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pymongo.errors import DuplicateKeyError, PyMongoError, ServerSelectionTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from schoolerp.api import (
    academics,
    auth,
    hostel,
    leave,
    library,
    parent_portal,
    schools,
    staff_attendance,
    student_portal,
    students,
    users,
)
from schoolerp.api.deps import require_module_permission
from schoolerp.api.responses import fail
from schoolerp.config import settings
from schoolerp.db import db_shutdown, db_startup
from schoolerp.errors import ApiError, Conflict, InternalError
from schoolerp.seed import seed_super_admin

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await db_startup()
        await seed_super_admin()
    except ServerSelectionTimeoutError as e:
        logger.error("MongoDB is not reachable at %s", settings.mongodb_url)
        raise RuntimeError("MongoDB connection failed. Check MONGODB_URL.") from e
    yield
    await db_shutdown()


app = FastAPI(
    title=settings.app_name,
    description="Multi-tenant school ERP: students, academics, library, hostel, leave and staff attendance",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return fail(exc.status_code, exc.message, headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return fail(exc.status_code, message, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "form")]
        field = ".".join(loc)
        messages.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return fail(status.HTTP_422_UNPROCESSABLE_ENTITY, "; ".join(messages) or "Invalid input")


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    # A unique index caught what a check-then-write guard let through
    logger.warning("Duplicate key on %s %s: %s", request.method, request.url.path, exc)
    return fail(Conflict.status_code, "Record already exists")


@app.exception_handler(PyMongoError)
async def store_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Data store error on %s %s", request.method, request.url.path)
    return fail(InternalError.status_code, InternalError.default_message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return fail(InternalError.status_code, InternalError.default_message)


app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(schools.router, prefix="/api/schools", tags=["Schools"])
app.include_router(users.router, prefix="/api/users", tags=["Users"], dependencies=[Depends(require_module_permission("users"))])
app.include_router(students.router, prefix="/api/students", tags=["Students"], dependencies=[Depends(require_module_permission("students"))])
app.include_router(academics.router, prefix="/api/academics", tags=["Academics"], dependencies=[Depends(require_module_permission("academics"))])
app.include_router(library.router, prefix="/api/library", tags=["Library"], dependencies=[Depends(require_module_permission("library"))])
app.include_router(hostel.router, prefix="/api/hostel", tags=["Hostel"], dependencies=[Depends(require_module_permission("hostel"))])
app.include_router(leave.router, prefix="/api/leave", tags=["Leave"], dependencies=[Depends(require_module_permission("leave"))])
app.include_router(staff_attendance.router, prefix="/api/staff-attendance", tags=["Staff Attendance"], dependencies=[Depends(require_module_permission("staff_attendance"))])
app.include_router(student_portal.router, prefix="/api/student", tags=["Student Portal"])
app.include_router(parent_portal.router, prefix="/api/parent", tags=["Parent Portal"])


# Serve locally stored uploads
if settings.upload_backend == "local":
    _upload_dir = Path(settings.upload_dir)
    _upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount(settings.upload_url_prefix, StaticFiles(directory=str(_upload_dir)), name="uploads")


@app.get("/health")
def health():
    return {"success": True, "data": {"status": "ok", "app": settings.app_name}}
