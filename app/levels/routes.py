from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.deps import AuthContext, get_auth_context, ensure_target_access
from app.core.errors import ValidationError, StorageError
from app.db.session import get_db
from app.levels.curve import curve_table
from app.levels.milestones import list_milestones, record_milestone
from app.levels.progression import (
    get_progression,
    set_progression,
    apply_xp_delta,
    apply_xp_delta_with_milestone,
    erase_progression,
)
from app.levels.serializers import progress_to_dict, milestone_to_dict
from app.levels.validation import (
    validate_level_progress_payload,
    validate_increment_payload,
    validate_milestone_payload,
)

router = APIRouter(prefix="/level", tags=["level"])


def _bad_request(exc: ValidationError):
    body = {"error": exc.message}
    if exc.details:
        body["details"] = exc.details
    return HTTPException(status_code=400, detail=body)


# =========================
# CURVE (client sync)
# =========================
@router.get("/curve")
def get_curve(auth: AuthContext = Depends(get_auth_context)):
    return curve_table()


# =========================
# PROGRESSION
# =========================
@router.get("/{uid}")
def read_level(
    uid: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    target = ensure_target_access(auth, uid)
    try:
        row = get_progression(db, target)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to fetch level progress")
    return progress_to_dict(row)


@router.put("/{uid}")
def write_level(
    uid: str,
    payload: Any = Body(None),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    """Overwrite total XP. Any `level` in the body is ignored in favour of the derived one."""
    target = ensure_target_access(auth, uid)
    try:
        data = validate_level_progress_payload(payload)
        row = set_progression(db, target, data["total_xp"], data["level"], data["updated_at"])
    except ValidationError as exc:
        raise _bad_request(exc)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to save level progress")
    return progress_to_dict(row)


@router.post("/{uid}/increment")
def increment_level(
    uid: str,
    payload: Any = Body(None),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    """
    Apply an XP delta. With `recordMilestone: true` a level-up is logged in the
    same transaction and returned under `milestone`.
    """
    target = ensure_target_access(auth, uid)
    try:
        data = validate_increment_payload(payload)
        if data["record_milestone"]:
            row, milestone = apply_xp_delta_with_milestone(
                db, target, data["xp_delta"], reward_type=data["reward_type"]
            )
            result = progress_to_dict(row)
            result["milestone"] = milestone_to_dict(milestone) if milestone else None
            return result
        row = apply_xp_delta(db, target, data["xp_delta"])
    except ValidationError as exc:
        raise _bad_request(exc)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to increment level progress")
    return progress_to_dict(row)


@router.delete("/{uid}")
def delete_level(
    uid: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    target = ensure_target_access(auth, uid)
    try:
        deleted = erase_progression(db, target)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to delete level progress")
    return {"success": True, "deleted": deleted}


# =========================
# MILESTONES
# =========================
@router.get("/{uid}/milestones")
def read_milestones(
    uid: str,
    limit: str | None = Query(None),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    target = ensure_target_access(auth, uid)
    try:
        rows = list_milestones(db, target, limit)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to fetch level milestones")
    return [milestone_to_dict(m) for m in rows]


@router.post("/{uid}/milestones", status_code=201)
def create_milestone(
    uid: str,
    payload: Any = Body(None),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    target = ensure_target_access(auth, uid)
    try:
        data = validate_milestone_payload(payload)
        milestone = record_milestone(db, target, **data)
    except ValidationError as exc:
        raise _bad_request(exc)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to save level milestone")
    return milestone_to_dict(milestone)
