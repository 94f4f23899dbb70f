"""Tenant- and owner-scoped lookups.

Every filter built here starts from ``{"school_id": ctx.school_id}``; callers
add entity keys on top, never replace the tenant key.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from beanie import Document, PydanticObjectId

from schoolerp.errors import AccessDenied, NotFound
from schoolerp.models.student import Student

if TYPE_CHECKING:
    from schoolerp.api.deps import TenantContext

DocT = TypeVar("DocT", bound=Document)


def safe_object_id(value: str | None) -> PydanticObjectId | None:
    if not value:
        return None
    try:
        return PydanticObjectId(value)
    except Exception:
        return None


def tenant_filter(ctx: "TenantContext", **criteria: Any) -> dict[str, Any]:
    criteria.pop("school_id", None)
    return {**criteria, "school_id": ctx.school_id}


def parent_predicate(email: str) -> dict[str, Any]:
    """Parent linkage is stored flat (``parent_email``) or nested (``parent.email``)."""
    email = email.strip().lower()
    return {"$or": [{"parent_email": email}, {"parent.email": email}]}


async def get_in_tenant(model: type[DocT], ctx: "TenantContext", record_id: str, resource: str) -> DocT:
    """Fetch by id inside the caller's school; foreign ids look exactly like missing ones."""
    oid = safe_object_id(record_id)
    doc = await model.find_one({"_id": oid, "school_id": ctx.school_id}) if oid else None
    if doc is None:
        raise NotFound(resource)
    return doc


async def student_in_tenant(ctx: "TenantContext", student_id: str) -> Student:
    oid = safe_object_id(student_id)
    student = (
        await Student.find_one({"_id": oid, "school_id": ctx.school_id, "is_active": True})
        if oid
        else None
    )
    if student is None:
        raise NotFound("Student")
    return student


async def student_for_self(ctx: "TenantContext") -> Student:
    """The student record linked to the caller's own login."""
    student = await Student.find_one(tenant_filter(ctx, user_id=ctx.user_id, is_active=True))
    if student is None:
        raise NotFound("Student")
    return student


async def children_of_parent(ctx: "TenantContext") -> list[Student]:
    students = await Student.find(
        {**tenant_filter(ctx, is_active=True), **parent_predicate(ctx.email)}
    ).to_list()
    return sorted(students, key=lambda s: (s.first_name.lower(), s.last_name.lower()))


async def child_of_parent(ctx: "TenantContext", student_id: str) -> Student:
    """A student the calling parent is linked to, or AccessDenied.

    Absent ids, other tenants' students and other families' children all fail
    the same way.
    """
    oid = safe_object_id(student_id)
    student = None
    if oid:
        student = await Student.find_one(
            {"_id": oid, **tenant_filter(ctx, is_active=True), **parent_predicate(ctx.email)}
        )
    if student is None:
        raise AccessDenied()
    return student
