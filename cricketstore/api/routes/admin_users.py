import logging
import math
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from cricketstore.api.deps import admin_identity, get_db, guard, parse_id
from cricketstore.api.schemas.user import RoleUpdate
from cricketstore.core.errors import ApiError, ErrorCode, with_error_handler
from cricketstore.core.identity import Identity, Role
from cricketstore.core.rate_limit import RateLimitTier
from cricketstore.database import FileBackedDB
from cricketstore.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/users", tags=["admin"])


@router.get("")
@with_error_handler("GET /api/admin/users")
def list_users(
    page: int = Query(1),
    limit: int = Query(20),
    search: Optional[str] = Query(None, max_length=100),
    role: Optional[Role] = Query(None),
    identity: Identity = Depends(guard(RateLimitTier.MODERATE, admin_identity)),
    db: FileBackedDB = Depends(get_db),
):
    if page < 1 or not 1 <= limit <= 100:
        raise ApiError(ErrorCode.INVALID_QUERY_PARAMS, "page must be >= 1 and limit between 1 and 100")

    users = [User.from_dict(r) for r in db.list_records("users")]
    if role is not None:
        users = [u for u in users if u.role is role]
    if search and search.strip():
        term = search.strip().lower()
        users = [u for u in users if term in u.email.lower() or term in (u.display_name or "").lower()]
    users.sort(key=lambda u: (u.created_at or "", u.id or 0), reverse=True)

    total = len(users)
    total_pages = math.ceil(total / limit) if total else 0
    start = (page - 1) * limit
    return {
        "users": [u.to_public() for u in users[start:start + limit]],
        "pagination": {
            "page": page,
            "limit": limit,
            "total_count": total,
            "total_pages": total_pages,
            "has_more": page < total_pages,
        },
    }


@router.get("/{user_id}")
@with_error_handler("GET /api/admin/users/[id]")
def get_user(
    user_id: str,
    identity: Identity = Depends(guard(RateLimitTier.MODERATE, admin_identity)),
    db: FileBackedDB = Depends(get_db),
):
    row = db.get_record("users", "id", parse_id(user_id, "user ID"))
    if not row:
        raise ApiError(ErrorCode.USER_NOT_FOUND)
    return User.from_dict(row).to_public()


@router.patch("/{user_id}")
@with_error_handler("PATCH /api/admin/users/[id]")
def update_user_role(
    user_id: str,
    payload: RoleUpdate = Body(...),
    identity: Identity = Depends(guard(RateLimitTier.STRICT, admin_identity)),
    db: FileBackedDB = Depends(get_db),
):
    uid = parse_id(user_id, "user ID")
    if str(uid) == identity.user_id:
        raise ApiError(ErrorCode.AUTH_INSUFFICIENT_PERMISSIONS, "You cannot change your own role")
    updated = db.update_records("users", {"id": uid}, {"role": payload.role.value})
    if not updated:
        raise ApiError(ErrorCode.USER_NOT_FOUND)
    logger.info("User %s role changed to %s by admin %s", uid, payload.role.value, identity.user_id)
    return {"success": True, "message": "User role updated successfully", "user": User.from_dict(updated).to_public()}
