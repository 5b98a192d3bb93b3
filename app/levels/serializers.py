from datetime import datetime, timezone

from app.levels.models import LevelProgress, LevelMilestone


def iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def progress_to_dict(row: LevelProgress) -> dict:
    return {
        "userId": row.user_id,
        "totalXp": row.total_xp or 0,
        "level": row.level or 1,
        "createdAt": iso(row.created_at),
        "updatedAt": iso(row.updated_at),
    }


def milestone_to_dict(row: LevelMilestone) -> dict:
    return {
        "id": str(row.id),
        "userId": row.user_id,
        "oldLevel": row.old_level,
        "newLevel": row.new_level,
        "xpGained": row.xp_gained,
        "totalXp": row.total_xp,
        "rewardType": row.reward_type,
        "achievedAt": iso(row.achieved_at),
        "createdAt": iso(row.created_at),
    }
