"""
Payload checks for the level endpoints.

Each validate_* function returns a clean dict or raises ValidationError
listing every field that failed.
"""
import math
from datetime import datetime, timezone

from app.core.errors import ValidationError

VALID_REWARD_TYPES = ("milestone", "legendary")

# Largest integer a JSON client holding doubles round-trips exactly; fits BigInteger.
MAX_XP = 2**53 - 1
# Level columns are 32-bit integers
MAX_LEVEL_VALUE = 2**31 - 1


def is_finite_number(value) -> bool:
    # bool is an int subclass; JSON true/false are not numbers
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, int):
        return True
    return math.isfinite(value)


def check_number(value, field: str, errors: list[str], bound: int = MAX_XP) -> None:
    """Append an error for *field* unless it is a finite number within +/- bound."""
    if not is_finite_number(value):
        errors.append(f"{field} must be a number")
    elif abs(value) > bound:
        errors.append(f"{field} must be between -{bound} and {bound}")


def parse_timestamp(value) -> datetime | None:
    """Parse an ISO-8601 string into an aware UTC datetime. None if unparseable."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def ensure_body_object(body) -> None:
    if not isinstance(body, dict):
        raise ValidationError("Body must be a JSON object")


def _optional_timestamp(payload: dict, field: str, errors: list[str]) -> datetime | None:
    raw = payload.get(field)
    if raw is None:
        return None
    parsed = parse_timestamp(raw)
    if parsed is None:
        errors.append(f"{field} must be an ISO string")
    return parsed


def validate_level_progress_payload(payload) -> dict:
    ensure_body_object(payload)
    errors = []

    total_xp = payload.get("totalXp")
    check_number(total_xp, "totalXp", errors)

    level = payload.get("level")
    if level is not None:
        check_number(level, "level", errors, bound=MAX_LEVEL_VALUE)

    updated_at = _optional_timestamp(payload, "updatedAt", errors)

    if errors:
        raise ValidationError("Invalid level progress payload", errors)
    return {"total_xp": total_xp, "level": level, "updated_at": updated_at}


def validate_reward_type(value, errors: list[str]) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str) or value not in VALID_REWARD_TYPES:
        errors.append(f"rewardType must be one of {', '.join(VALID_REWARD_TYPES)}")
        return None
    return value


def validate_increment_payload(payload) -> dict:
    ensure_body_object(payload)
    errors = []

    xp_delta = payload.get("xpDelta")
    check_number(xp_delta, "xpDelta", errors)

    record = payload.get("recordMilestone", False)
    if not isinstance(record, bool):
        errors.append("recordMilestone must be a boolean")

    reward_type = validate_reward_type(payload.get("rewardType"), errors)

    if errors:
        raise ValidationError("Invalid increment payload", errors)
    return {"xp_delta": xp_delta, "record_milestone": record, "reward_type": reward_type}


MILESTONE_NUMBER_FIELDS = (
    ("oldLevel", "old_level", MAX_LEVEL_VALUE),
    ("newLevel", "new_level", MAX_LEVEL_VALUE),
    ("xpGained", "xp_gained", MAX_XP),
    ("totalXp", "total_xp", MAX_XP),
)


def validate_milestone_payload(payload) -> dict:
    ensure_body_object(payload)
    errors = []

    values = {}
    for field, key, bound in MILESTONE_NUMBER_FIELDS:
        value = payload.get(field)
        check_number(value, field, errors, bound=bound)
        values[key] = value

    values["reward_type"] = validate_reward_type(payload.get("rewardType"), errors)
    values["achieved_at"] = _optional_timestamp(payload, "achievedAt", errors)

    if errors:
        raise ValidationError("Invalid milestone payload", errors)
    return values
