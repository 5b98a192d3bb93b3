"""
SQLAlchemy-backed store for progression rows and the milestone log.

Every database failure is rolled back and re-raised as StorageError so
callers never see driver exceptions.
"""
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import StorageError
from app.levels.models import LevelProgress, LevelMilestone

# The DBAPI raises OverflowError for integers it cannot bind
DB_ERRORS = (SQLAlchemyError, OverflowError)


class ProgressionStore:
    def __init__(self, db: Session):
        self.db = db

    def _fail(self, action: str, exc: Exception):
        self.db.rollback()
        print(f"[DB] {action} failed: {exc!r}", flush=True)
        raise StorageError(f"{action} failed") from exc

    # ------------------------------------------------------------------
    # level_progress
    # ------------------------------------------------------------------

    def find_one(self, user_id: str, for_update: bool = False) -> LevelProgress | None:
        try:
            query = self.db.query(LevelProgress).filter(LevelProgress.user_id == user_id)
            if for_update:
                query = query.with_for_update()
            return query.first()
        except DB_ERRORS as exc:
            self._fail("find_one", exc)

    def upsert_set(self, user_id: str, fields: dict, defaults_on_insert: dict) -> LevelProgress:
        """Apply *fields* to the user's row, inserting it with *defaults_on_insert* if missing."""
        try:
            row = (
                self.db.query(LevelProgress)
                .filter(LevelProgress.user_id == user_id)
                .with_for_update()
                .first()
            )
            if row is None:
                row = LevelProgress(user_id=user_id, **defaults_on_insert)
                self.db.add(row)
            for key, value in fields.items():
                setattr(row, key, value)
            self.db.flush()
            return row
        except DB_ERRORS as exc:
            self._fail("upsert_set", exc)

    # ------------------------------------------------------------------
    # level_milestones
    # ------------------------------------------------------------------

    def insert(self, milestone: LevelMilestone) -> LevelMilestone:
        try:
            self.db.add(milestone)
            self.db.flush()
            return milestone
        except DB_ERRORS as exc:
            self._fail("insert", exc)

    def find_many(self, user_id: str, limit: int) -> list[LevelMilestone]:
        try:
            return (
                self.db.query(LevelMilestone)
                .filter(LevelMilestone.user_id == user_id)
                .order_by(
                    LevelMilestone.achieved_at.desc(),
                    LevelMilestone.created_at.desc(),
                    LevelMilestone.id.desc(),
                )
                .limit(limit)
                .all()
            )
        except DB_ERRORS as exc:
            self._fail("find_many", exc)

    # ------------------------------------------------------------------
    # shared
    # ------------------------------------------------------------------

    def delete_for_user(self, user_id: str) -> tuple[int, int]:
        """Remove the progress row and every milestone. Returns (progress, milestones) counts."""
        try:
            milestones = (
                self.db.query(LevelMilestone)
                .filter(LevelMilestone.user_id == user_id)
                .delete(synchronize_session=False)
            )
            progress = (
                self.db.query(LevelProgress)
                .filter(LevelProgress.user_id == user_id)
                .delete(synchronize_session=False)
            )
            return progress, milestones
        except DB_ERRORS as exc:
            self._fail("delete_for_user", exc)

    def commit(self) -> None:
        try:
            self.db.commit()
        except DB_ERRORS as exc:
            self._fail("commit", exc)
