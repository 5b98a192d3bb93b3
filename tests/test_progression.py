import threading
from datetime import datetime, timezone

import pytest

from app.core.errors import ValidationError, StorageError
from app.db.base import SessionLocal
from app.levels.curve import MAX_LEVEL, total_xp_for_level, level_from_xp
from app.levels.milestones import list_milestones
from app.levels.models import LevelProgress
from app.levels.progression import (
    get_progression,
    set_progression,
    apply_xp_delta,
    apply_xp_delta_with_milestone,
    erase_progression,
    user_locks,
)
from app.levels.store import ProgressionStore
from app.levels.validation import MAX_XP, check_number, is_finite_number, validate_level_progress_payload


def test_get_progression_defaults_for_unknown_user(db):
    row = get_progression(db, "nobody")
    assert row.total_xp == 0
    assert row.level == 1
    assert row.created_at is None
    # The default is never persisted
    assert db.query(LevelProgress).count() == 0


def test_apply_delta_on_fresh_user_levels_up(db):
    row = apply_xp_delta(db, "runner", 150)
    assert row.total_xp == 150
    assert row.level == 2
    assert row.created_at is not None


def test_negative_delta_floors_at_zero(db):
    row = apply_xp_delta(db, "runner", -9999)
    assert row.total_xp == 0
    assert row.level == 1


def test_delta_is_truncated(db):
    assert apply_xp_delta(db, "runner", 99.9).total_xp == 99
    assert apply_xp_delta(db, "runner", -0.9).total_xp == 99


def test_deltas_clamp_at_each_step(db):
    set_progression(db, "runner", 50)
    apply_xp_delta(db, "runner", -80)
    row = apply_xp_delta(db, "runner", 40)
    # max(0, max(0, 50 - 80) + 40) = 40, not max(0, 50 - 80 + 40) = 10
    assert row.total_xp == 40


def test_set_progression_ignores_declared_level(db):
    row = set_progression(db, "runner", 150, level=37)
    assert row.total_xp == 150
    assert row.level == 2


def test_set_progression_floors_and_truncates(db):
    row = set_progression(db, "runner", -500.7)
    assert row.total_xp == 0
    assert row.level == 1
    row = set_progression(db, "runner", 383.99)
    assert row.total_xp == 383
    assert row.level == 3


def test_set_progression_saturates_level(db):
    row = set_progression(db, "runner", total_xp_for_level(MAX_LEVEL) * 10)
    assert row.level == MAX_LEVEL


def test_set_progression_is_idempotent(db):
    stamp = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
    first = set_progression(db, "runner", 1234, updated_at=stamp)
    snapshot = (first.total_xp, first.level, first.created_at, first.updated_at)
    second = set_progression(db, "runner", 1234, updated_at=stamp)
    assert (second.total_xp, second.level, second.created_at, second.updated_at) == snapshot


def test_created_at_preserved_across_writes(db):
    first = set_progression(db, "runner", 10)
    created = first.created_at
    apply_xp_delta(db, "runner", 10)
    row = set_progression(db, "runner", 500)
    assert row.created_at == created
    assert row.updated_at >= created


def test_stored_level_always_matches_total(db):
    for delta in (30, 70, 250, -90, 1000, -5000, 777):
        row = apply_xp_delta(db, "runner", delta)
        assert row.level == level_from_xp(row.total_xp)
        assert row.total_xp >= 0


def test_non_finite_input_rejected_before_write(db):
    with pytest.raises(ValidationError) as exc:
        apply_xp_delta(db, "runner", float("nan"))
    assert exc.value.details == ["xpDelta must be a number"]
    with pytest.raises(ValidationError):
        set_progression(db, "runner", float("inf"))
    with pytest.raises(ValidationError):
        apply_xp_delta(db, "runner", True)
    assert db.query(LevelProgress).count() == 0


def test_concurrent_deltas_for_one_user_are_not_lost():
    threads_count, per_thread, delta = 8, 5, 10

    def worker():
        session = SessionLocal()
        try:
            for _ in range(per_thread):
                apply_xp_delta(session, "racer", delta)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(threads_count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    session = SessionLocal()
    try:
        row = get_progression(session, "racer")
        assert row.total_xp == threads_count * per_thread * delta
        assert row.level == level_from_xp(400)
    finally:
        session.close()
    # Lock registry empties once nobody holds a user's lock
    assert len(user_locks) == 0


def test_user_locks_are_per_user():
    acquired = threading.Event()

    def other_user():
        with user_locks.hold("b"):
            acquired.set()

    with user_locks.hold("a"):
        t = threading.Thread(target=other_user)
        t.start()
        assert acquired.wait(timeout=2)
        t.join()


def test_delta_with_milestone_logs_level_up(db):
    row, milestone = apply_xp_delta_with_milestone(db, "runner", 150, reward_type="milestone")
    assert row.level == 2
    assert milestone is not None
    assert (milestone.old_level, milestone.new_level) == (1, 2)
    assert milestone.xp_gained == 150
    assert milestone.total_xp == 150
    assert milestone.reward_type == "milestone"


def test_delta_with_milestone_skips_log_without_level_up(db):
    row, milestone = apply_xp_delta_with_milestone(db, "runner", 20)
    assert row.level == 1
    assert milestone is None
    assert list_milestones(db, "runner") == []


def test_erase_progression_removes_record_and_log(db):
    apply_xp_delta_with_milestone(db, "runner", 500)
    apply_xp_delta(db, "other", 10)
    assert erase_progression(db, "runner") == {"progress": 1, "milestones": 1}
    assert get_progression(db, "runner").created_at is None
    assert get_progression(db, "other").total_xp == 10


def test_storage_failure_surfaces_as_storage_error(db, monkeypatch):
    def boom(self):
        from sqlalchemy.exc import OperationalError
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(type(db), "commit", boom)
    with pytest.raises(StorageError):
        apply_xp_delta(db, "runner", 100)
    monkeypatch.undo()
    assert get_progression(db, "runner").total_xp == 0
    assert len(user_locks) == 0


def test_store_upsert_sets_defaults_only_on_insert(db):
    store = ProgressionStore(db)
    first_stamp = datetime(2026, 1, 1, tzinfo=timezone.utc)
    later_stamp = datetime(2026, 2, 1, tzinfo=timezone.utc)
    store.upsert_set("runner", {"total_xp": 5, "level": 1, "updated_at": first_stamp}, {"created_at": first_stamp})
    store.commit()
    row = store.upsert_set("runner", {"total_xp": 6, "updated_at": later_stamp}, {"created_at": later_stamp})
    store.commit()
    assert row.total_xp == 6
    assert row.created_at.replace(tzinfo=None) == first_stamp.replace(tzinfo=None)


XP_RANGE_ERROR = f"must be between -{MAX_XP} and {MAX_XP}"


def test_xp_beyond_range_rejected_without_poisoning_session(db):
    for huge in (10**400, 1e20, -(MAX_XP + 1)):
        with pytest.raises(ValidationError) as exc:
            set_progression(db, "runner", huge)
        assert exc.value.details == [f"totalXp {XP_RANGE_ERROR}"]
    with pytest.raises(ValidationError) as exc:
        apply_xp_delta(db, "runner", 1e20)
    assert exc.value.details == [f"xpDelta {XP_RANGE_ERROR}"]

    # The same session keeps working afterwards
    assert apply_xp_delta(db, "other", 1).total_xp == 1
    assert get_progression(db, "runner").created_at is None
    assert db.query(LevelProgress).count() == 1


def test_big_ints_are_numbers_but_out_of_range():
    assert is_finite_number(10**400)
    errors = []
    check_number(10**400, "totalXp", errors)
    assert errors == [f"totalXp {XP_RANGE_ERROR}"]
    with pytest.raises(ValidationError):
        validate_level_progress_payload({"totalXp": 10**400})


def test_total_saturates_at_max_xp(db):
    set_progression(db, "runner", MAX_XP)
    row = apply_xp_delta(db, "runner", MAX_XP)
    assert row.total_xp == MAX_XP
    assert row.level == MAX_LEVEL


def test_delta_with_milestone_rejects_reward_type_before_writing(db):
    with pytest.raises(ValidationError) as exc:
        apply_xp_delta_with_milestone(db, "runner", 150, reward_type="bogus")
    assert exc.value.details == ["rewardType must be one of milestone, legendary"]
    # A later commit on the same session must not carry the rejected write
    apply_xp_delta(db, "other", 1)
    row = get_progression(db, "runner")
    assert row.total_xp == 0
    assert row.created_at is None
    assert list_milestones(db, "runner") == []


def test_delta_with_milestone_rejects_reward_type_without_level_up(db):
    with pytest.raises(ValidationError):
        apply_xp_delta_with_milestone(db, "runner", 20, reward_type="bogus")
    assert db.query(LevelProgress).count() == 0


def test_failed_milestone_insert_rolls_back_total(db, monkeypatch):
    from sqlalchemy.exc import OperationalError

    def boom(self, milestone):
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(ProgressionStore, "insert", boom)
    with pytest.raises(OperationalError):
        apply_xp_delta_with_milestone(db, "runner", 150)
    monkeypatch.undo()
    apply_xp_delta(db, "other", 1)
    assert get_progression(db, "runner").created_at is None
    assert len(user_locks) == 0
