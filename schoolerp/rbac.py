"""RBAC module/action registry and per-role defaults for school staff."""
from __future__ import annotations

from typing import Literal

PermissionAction = Literal["view", "add", "edit", "delete"]

ACTION_BY_METHOD: dict[str, PermissionAction] = {
    "GET": "view",
    "HEAD": "view",
    "OPTIONS": "view",
    "POST": "add",
    "PUT": "edit",
    "PATCH": "edit",
    "DELETE": "delete",
}

SYSTEM_MODULES: list[dict[str, str]] = [
    {"key": "users", "name": "Users"},
    {"key": "students", "name": "Students"},
    {"key": "academics", "name": "Academics"},
    {"key": "library", "name": "Library"},
    {"key": "hostel", "name": "Hostel"},
    {"key": "leave", "name": "Leave Management"},
    {"key": "staff_attendance", "name": "Staff Attendance"},
]


def _full_permissions() -> dict[str, bool]:
    return {"view": True, "add": True, "edit": True, "delete": True}


def _view_only() -> dict[str, bool]:
    return {"view": True, "add": False, "edit": False, "delete": False}


def _no_delete() -> dict[str, bool]:
    return {"view": True, "add": True, "edit": True, "delete": False}


def _module_defaults(fill: dict[str, bool]) -> dict[str, dict[str, bool]]:
    return {module["key"]: dict(fill) for module in SYSTEM_MODULES}


_NONE = {"view": False, "add": False, "edit": False, "delete": False}

# Students and parents have no entry: they only reach the self-service portals.
DEFAULT_ROLE_PERMISSIONS: dict[str, dict[str, dict[str, bool]]] = {
    "school_admin": _module_defaults(_full_permissions()),
    "teacher": {
        **_module_defaults(_NONE),
        "students": _view_only(),
        "academics": _no_delete(),
        "leave": {"view": True, "add": False, "edit": True, "delete": False},
        "library": _view_only(),
    },
    "accountant": {
        **_module_defaults(_NONE),
        "students": _view_only(),
        "staff_attendance": _view_only(),
    },
    "librarian": {
        **_module_defaults(_NONE),
        "students": _view_only(),
        "library": _no_delete(),
    },
    "hostel_warden": {
        **_module_defaults(_NONE),
        "students": _view_only(),
        "hostel": _no_delete(),
    },
    "receptionist": {
        **_module_defaults(_NONE),
        "students": _no_delete(),
        "academics": _view_only(),
    },
}


def has_permission(role: str | None, module: str, action: str) -> bool:
    if not role:
        return False
    permissions = DEFAULT_ROLE_PERMISSIONS.get(role)
    if not permissions:
        return False
    return bool(permissions.get(module, {}).get(action, False))
