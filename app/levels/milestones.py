"""
Milestone log: one immutable row per level crossing.

The log stores what the caller asserts happened. It does not re-run the
XP curve to check that new_level > old_level.
"""
import math
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.core.config import MILESTONE_LIST_DEFAULT, MILESTONE_LIST_MAX
from app.core.errors import ValidationError
from app.levels.models import LevelMilestone
from app.levels.store import ProgressionStore
from app.levels.validation import (
    MILESTONE_NUMBER_FIELDS,
    check_number,
    is_finite_number,
    validate_reward_type,
)


def clamp_limit(limit) -> int:
    """Clamp a requested page size to [1, MILESTONE_LIST_MAX]; junk falls back to the default."""
    if isinstance(limit, str):
        try:
            limit = float(limit.strip())
        except ValueError:
            return MILESTONE_LIST_DEFAULT
    if not is_finite_number(limit):
        return MILESTONE_LIST_DEFAULT
    return min(max(math.trunc(limit), 1), MILESTONE_LIST_MAX)


def build_milestone(
    user_id: str,
    old_level,
    new_level,
    xp_gained,
    total_xp,
    reward_type: str | None = None,
    achieved_at: datetime | None = None,
) -> LevelMilestone:
    errors = []
    values = (old_level, new_level, xp_gained, total_xp)
    for (field, _key, bound), value in zip(MILESTONE_NUMBER_FIELDS, values):
        check_number(value, field, errors, bound=bound)
    validate_reward_type(reward_type, errors)
    if errors:
        raise ValidationError("Invalid milestone payload", errors)

    now = datetime.now(timezone.utc)
    return LevelMilestone(
        user_id=user_id,
        old_level=math.trunc(old_level),
        new_level=math.trunc(new_level),
        xp_gained=math.trunc(xp_gained),
        total_xp=math.trunc(total_xp),
        reward_type=reward_type,
        achieved_at=achieved_at or now,
        created_at=now,
    )


def record_milestone(
    db: Session,
    user_id: str,
    old_level,
    new_level,
    xp_gained,
    total_xp,
    reward_type: str | None = None,
    achieved_at: datetime | None = None,
) -> LevelMilestone:
    milestone = build_milestone(
        user_id, old_level, new_level, xp_gained, total_xp,
        reward_type=reward_type, achieved_at=achieved_at,
    )
    store = ProgressionStore(db)
    store.insert(milestone)
    store.commit()
    print(f"[MILESTONE] user={user_id} {milestone.old_level} -> {milestone.new_level} "
          f"xp_gained={milestone.xp_gained} reward={milestone.reward_type}", flush=True)
    return milestone


def list_milestones(db: Session, user_id: str, limit=None) -> list[LevelMilestone]:
    """Most recent first (achieved_at, then created_at)."""
    return ProgressionStore(db).find_many(user_id, clamp_limit(limit))
