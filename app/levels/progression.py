"""
Progression engine.
Core rules:
  - total_xp is never negative; every write floors it at 0
  - level is never written directly: it is always level_from_xp(total_xp)
  - a client-declared level is informational only and always overridden
  - deltas for one user are serialized (per-user lock + SELECT FOR UPDATE);
    different users never share a lock
"""
import math
import threading
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.levels.curve import level_from_xp, clamp_level
from app.levels.milestones import build_milestone
from app.levels.models import LevelProgress, LevelMilestone
from app.levels.store import ProgressionStore
from app.levels.validation import MAX_XP, check_number, is_finite_number, validate_reward_type


# ---------------------------------------------------------------------------
# Per-user locks
# ---------------------------------------------------------------------------

class UserLocks:
    """Lock registry keyed by user id. Entries are dropped once nobody holds or waits on them."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}

    @contextmanager
    def hold(self, user_id: str):
        with self._guard:
            entry = self._locks.setdefault(user_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[user_id]

    def __len__(self):
        with self._guard:
            return len(self._locks)


user_locks = UserLocks()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _derive(total_xp: int) -> tuple[int, int]:
    # Sums past MAX_XP saturate; level is already pinned at MAX_LEVEL there
    total = min(MAX_XP, max(0, int(total_xp)))
    return total, clamp_level(level_from_xp(total))


def _require_number(value, field: str, message: str) -> None:
    errors = []
    check_number(value, field, errors)
    if errors:
        raise ValidationError(message, errors)


@contextmanager
def _rollback_on_error(db: Session):
    """Nothing flushed inside the block survives an exception."""
    try:
        yield
    except Exception:
        db.rollback()
        raise


# ---------------------------------------------------------------------------
# GET
# ---------------------------------------------------------------------------

def get_progression(db: Session, user_id: str) -> LevelProgress:
    """Return the stored record, or an unsaved default (0 XP, level 1) if none exists."""
    row = ProgressionStore(db).find_one(user_id)
    if row is None:
        return LevelProgress(user_id=user_id, total_xp=0, level=1, created_at=None, updated_at=None)
    return row


# ---------------------------------------------------------------------------
# SET (absolute)
# ---------------------------------------------------------------------------

def set_progression(
    db: Session,
    user_id: str,
    total_xp,
    level=None,
    updated_at: datetime | None = None,
) -> LevelProgress:
    """
    Overwrite the user's total XP. ``level`` is accepted for compatibility with
    clients that send it, but the stored level is always re-derived.
    """
    _require_number(total_xp, "totalXp", "Invalid level progress payload")

    new_total, new_level = _derive(math.trunc(total_xp))
    now = _now()

    if level is not None and is_finite_number(level) and int(level) != new_level:
        print(f"[LEVEL] user={user_id} declared level={level} overridden -> {new_level}", flush=True)

    store = ProgressionStore(db)
    with _rollback_on_error(db):
        row = store.upsert_set(
            user_id,
            {"total_xp": new_total, "level": new_level, "updated_at": updated_at or now},
            {"created_at": now},
        )
        store.commit()
    print(f"[LEVEL] set user={user_id} total_xp={new_total} level={new_level}", flush=True)
    return row


# ---------------------------------------------------------------------------
# INCREMENT (relative)
# ---------------------------------------------------------------------------

def _apply_delta_locked(store: ProgressionStore, user_id: str, xp_delta: int) -> tuple[LevelProgress, int]:
    """Read-modify-write without commit. Caller must hold the user's lock. Returns (row, old_level)."""
    existing = store.find_one(user_id, for_update=True)
    current = int(existing.total_xp or 0) if existing is not None else 0
    old_level = existing.level if existing is not None else 1

    new_total, new_level = _derive(current + xp_delta)
    now = _now()
    row = store.upsert_set(
        user_id,
        {"total_xp": new_total, "level": new_level, "updated_at": now},
        {"created_at": now},
    )
    return row, old_level


def apply_xp_delta(db: Session, user_id: str, xp_delta) -> LevelProgress:
    """Add *xp_delta* (may be negative) to the user's total, flooring at 0."""
    _require_number(xp_delta, "xpDelta", "Invalid increment payload")
    delta = math.trunc(xp_delta)

    store = ProgressionStore(db)
    with user_locks.hold(user_id), _rollback_on_error(db):
        row, old_level = _apply_delta_locked(store, user_id, delta)
        new_total, new_level = row.total_xp, row.level
        store.commit()

    print(f"[LEVEL] increment user={user_id} delta={delta} total_xp={new_total} level={new_level}", flush=True)
    if new_level > old_level:
        print(f"[LEVEL-UP] user={user_id} {old_level} -> {new_level}", flush=True)
    return row


def apply_xp_delta_with_milestone(
    db: Session,
    user_id: str,
    xp_delta,
    reward_type: str | None = None,
) -> tuple[LevelProgress, LevelMilestone | None]:
    """
    Like apply_xp_delta, but if the level rose the milestone is written in the
    same transaction, so neither is persisted without the other.
    """
    errors = []
    check_number(xp_delta, "xpDelta", errors)
    validate_reward_type(reward_type, errors)
    if errors:
        raise ValidationError("Invalid increment payload", errors)
    delta = math.trunc(xp_delta)

    store = ProgressionStore(db)
    milestone = None
    with user_locks.hold(user_id), _rollback_on_error(db):
        row, old_level = _apply_delta_locked(store, user_id, delta)
        new_total, new_level = row.total_xp, row.level
        if new_level > old_level:
            milestone = store.insert(build_milestone(
                user_id,
                old_level=old_level,
                new_level=new_level,
                xp_gained=delta,
                total_xp=new_total,
                reward_type=reward_type,
            ))
        store.commit()

    print(f"[LEVEL] increment user={user_id} delta={delta} total_xp={new_total} level={new_level}", flush=True)
    if milestone is not None:
        print(f"[LEVEL-UP] user={user_id} {old_level} -> {new_level} milestone={milestone.id}", flush=True)
    return row, milestone


# ---------------------------------------------------------------------------
# ERASE (account deletion)
# ---------------------------------------------------------------------------

def erase_progression(db: Session, user_id: str) -> dict:
    store = ProgressionStore(db)
    with user_locks.hold(user_id), _rollback_on_error(db):
        progress, milestones = store.delete_for_user(user_id)
        store.commit()
    print(f"[LEVEL] erased user={user_id} progress={progress} milestones={milestones}", flush=True)
    return {"progress": progress, "milestones": milestones}
