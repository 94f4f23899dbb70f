"""Resolve a student's class placement to the canonical SchoolClass.

Students store their placement either as an already-normalized class id or
as the human-readable ``class_name``/``section`` pair. Timetables, exams,
online classes and study materials are keyed by class id, so every read path
goes through :func:`resolve_student_class` first.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from schoolerp.models.school_class import SchoolClass
from schoolerp.models.student import Student
from schoolerp.services.scoping import safe_object_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassIdRef:
    class_id: str


@dataclass(frozen=True)
class ClassNameRef:
    name: str
    section: str


ClassRef = Union[ClassIdRef, ClassNameRef]


def class_ref_for(student: Student) -> ClassRef:
    if student.class_id:
        return ClassIdRef(student.class_id)
    # Some imports wrote the class id into class_name itself.
    if safe_object_id(student.class_name):
        return ClassIdRef(student.class_name)
    return ClassNameRef(student.class_name, student.section)


async def resolve_class_ref(school_id: str, ref: ClassRef) -> Optional[SchoolClass]:
    if isinstance(ref, ClassIdRef):
        oid = safe_object_id(ref.class_id)
        if not oid:
            return None
        return await SchoolClass.find_one({"_id": oid, "school_id": school_id})
    return await SchoolClass.find_one(
        {"school_id": school_id, "name": ref.name, "section": ref.section}
    )


async def resolve_student_class(student: Student) -> Optional[SchoolClass]:
    """SchoolClass for the student, or None when no mapping exists yet."""
    school_class = await resolve_class_ref(student.school_id, class_ref_for(student))
    if school_class is None:
        logger.debug(
            "No class mapping for student %s (%s/%s)", student.id, student.class_name, student.section
        )
    return school_class
