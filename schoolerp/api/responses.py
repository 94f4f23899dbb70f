"""Response envelope: ``{"success": bool, "data"?: T, "error"?: str, "message"?: str}``."""
from typing import Any, Iterable, Optional

from beanie import Document
from fastapi.responses import JSONResponse

_HIDDEN_FIELDS = {"revision_id", "hashed_password"}


def serialize(doc: Document, exclude: Optional[set[str]] = None) -> dict:
    data = doc.model_dump(mode="json", exclude=_HIDDEN_FIELDS | (exclude or set()))
    data["id"] = str(doc.id)
    return data


def serialize_all(docs: Iterable[Document], exclude: Optional[set[str]] = None) -> list[dict]:
    return [serialize(d, exclude) for d in docs]


def ok(data: Any = None, message: Optional[str] = None) -> dict:
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def fail(status_code: int, error: str, headers: Optional[dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error}, headers=headers)
