"""
API routes for the signed-in runner's own progress.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import AuthContext, get_auth_context
from app.core.errors import StorageError
from app.db.session import get_db
from app.levels.curve import progress_summary
from app.levels.milestones import list_milestones
from app.levels.progression import get_progression
from app.levels.serializers import iso, milestone_to_dict

router = APIRouter(prefix="/api", tags=["api"])

_RECENT_MILESTONES = 5


@router.get("/me/progress")
def get_me_progress(
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
):
    """
    Return the caller's level with progress bar data and latest level-ups for UI display.
    """
    try:
        row = get_progression(db, auth.uid)
        recent = list_milestones(db, auth.uid, _RECENT_MILESTONES)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to fetch progress")

    return {
        "userId": auth.uid,
        **progress_summary(row.total_xp or 0),
        "updatedAt": iso(row.updated_at),
        "recentMilestones": [milestone_to_dict(m) for m in recent],
    }
