"""
XP curve for runner levels.

  - xp_for_level(n): cost of going from level n-1 to n = round(BASE_XP * (n-1)^EXPONENT)
  - total_xp_for_level(n): cumulative XP needed to stand at level n (level 1 = 0)
  - level_from_xp(xp): largest level in [1, MAX_LEVEL] whose threshold is <= xp

The mobile client carries the same constants; keep them in sync.
"""
import math
from bisect import bisect_right

MAX_LEVEL = 50
BASE_XP = 100
EXPONENT = 1.5


def _round_half_up(value: float) -> int:
    # Same rounding as the client (halves go up), not Python's banker's rounding.
    return int(math.floor(value + 0.5))


def xp_for_level(level: int) -> int:
    """XP needed to advance from ``level - 1`` to ``level``."""
    if level <= 1:
        return 0
    return _round_half_up(BASE_XP * math.pow(level - 1, EXPONENT))


def _build_thresholds() -> tuple[int, ...]:
    thresholds = [0]  # level 1
    for level in range(2, MAX_LEVEL + 1):
        thresholds.append(thresholds[-1] + xp_for_level(level))
    return tuple(thresholds)


# _THRESHOLDS[i] is the cumulative XP for level i + 1. Built once at import.
_THRESHOLDS = _build_thresholds()


def total_xp_for_level(level: int) -> int:
    """Cumulative XP required to reach ``level`` starting from level 1."""
    if level <= 1:
        return 0
    if level <= MAX_LEVEL:
        return _THRESHOLDS[level - 1]
    total = _THRESHOLDS[-1]
    for i in range(MAX_LEVEL + 1, level + 1):
        total += xp_for_level(i)
    return total


def level_from_xp(total_xp) -> int:
    """
    Level implied by a cumulative XP total.

    Non-finite or non-positive input maps to level 1. A total that exactly
    matches a threshold belongs to that level. Saturates at MAX_LEVEL.
    """
    if isinstance(total_xp, bool) or not isinstance(total_xp, (int, float)):
        return 1
    if isinstance(total_xp, float) and not math.isfinite(total_xp):
        return 1
    if total_xp <= 0:
        return 1
    return min(MAX_LEVEL, max(1, bisect_right(_THRESHOLDS, total_xp)))


def clamp_level(level: int) -> int:
    return min(MAX_LEVEL, max(1, int(level)))


def progress_summary(total_xp: int) -> dict:
    """Progress-bar data for a given total: position inside the current level."""
    total_xp = max(0, int(total_xp))
    level = level_from_xp(total_xp)
    current_xp = total_xp_for_level(level)
    is_max = level >= MAX_LEVEL

    if is_max:
        next_xp = current_xp
        percent = 100.0
    else:
        next_xp = total_xp_for_level(level + 1)
        percent = round((total_xp - current_xp) * 100.0 / (next_xp - current_xp), 2)

    return {
        "level": level,
        "totalXp": total_xp,
        "currentLevelXp": current_xp,
        "nextLevelXp": next_xp,
        "xpIntoLevel": total_xp - current_xp,
        "xpForNextLevel": next_xp - current_xp,
        "progressPercent": percent,
        "isMaxLevel": is_max,
    }


def curve_table() -> dict:
    return {
        "maxLevel": MAX_LEVEL,
        "baseXp": BASE_XP,
        "exponent": EXPONENT,
        "levels": [
            {"level": lvl, "xpForLevel": xp_for_level(lvl), "totalXp": total_xp_for_level(lvl)}
            for lvl in range(1, MAX_LEVEL + 1)
        ],
    }
