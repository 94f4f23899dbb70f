"""Status transitions for request-like records.

Transitions are a single conditional update on ``status == pending``: when two
approvers race, exactly one update matches and the other sees Conflict.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional, TypeVar

from beanie import Document, UpdateResponse

from schoolerp.errors import Conflict, NotFound
from schoolerp.models.requests import RequestStatus
from schoolerp.services.scoping import safe_object_id

if TYPE_CHECKING:
    from schoolerp.api.deps import TenantContext

logger = logging.getLogger(__name__)

DocT = TypeVar("DocT", bound=Document)


async def transition(
    model: type[DocT],
    ctx: "TenantContext",
    record_id: str,
    target: RequestStatus,
    *,
    resource: str,
    owner_filter: Optional[dict[str, Any]] = None,
    changes: Optional[dict[str, Any]] = None,
) -> DocT:
    """Move a pending record to ``target``.

    ``owner_filter`` narrows the scope for requester-side actions (cancel);
    records outside the scope raise NotFound, records already in a terminal
    state raise Conflict and are left untouched.
    """
    oid = safe_object_id(record_id)
    if not oid:
        raise NotFound(resource)
    scope = {**(owner_filter or {}), "_id": oid, "school_id": ctx.school_id}

    updated = await model.find_one({**scope, "status": RequestStatus.PENDING.value}).update(
        {"$set": {**(changes or {}), "status": target.value}},
        response_type=UpdateResponse.NEW_DOCUMENT,
    )
    if updated is not None:
        logger.info("%s %s -> %s by user %s", resource, record_id, target.value, ctx.user_id)
        return updated

    current = await model.find_one(scope)
    if current is None:
        raise NotFound(resource)
    current_status = getattr(current.status, "value", current.status)
    logger.info(
        "Rejected %s transition of %s %s: already %s", target.value, resource, record_id, current_status
    )
    raise Conflict(f"{resource} is already {current_status}")
